"""
Tests for settings persistence.
"""
import json
import tempfile
import unittest
from pathlib import Path

from config_manager import ConfigManager
from models import QuantizationMethod, ToneSettings


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = Path(self.temp_dir.name) / "settings.json"
        self.manager = ConfigManager(self.path)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_missing_file_gives_defaults(self):
        self.assertEqual(self.manager.load(), ToneSettings())

    def test_round_trip(self):
        settings = ToneSettings(
            k=12,
            method=QuantizationMethod.KMEANS,
            threshold_slider=0.25,
            last_image_path="/tmp/photo.png",
        )
        success, error = self.manager.save(settings)
        self.assertTrue(success)
        self.assertIsNone(error)
        self.assertEqual(self.manager.load(), settings)

    def test_method_stored_by_value(self):
        self.manager.save(ToneSettings(method=QuantizationMethod.DIRECT))
        with open(self.path) as f:
            data = json.load(f)
        self.assertEqual(data["method"], "direct")

    def test_partial_file_keeps_defaults(self):
        self.path.write_text(json.dumps({"k": 9}))
        settings = self.manager.load()
        self.assertEqual(settings.k, 9)
        self.assertEqual(settings.method, QuantizationMethod.UNIFORM)

    def test_corrupt_file_gives_defaults(self):
        self.path.write_text("{not json")
        self.assertEqual(self.manager.load(), ToneSettings())

    def test_unknown_method_gives_defaults(self):
        self.path.write_text(json.dumps({"k": 3, "method": "median-cut"}))
        self.assertEqual(self.manager.load(), ToneSettings())

    def test_save_failure_is_reported(self):
        manager = ConfigManager(Path(self.temp_dir.name) / "missing" / "settings.json")
        success, error = manager.save(ToneSettings())
        self.assertFalse(success)
        self.assertTrue(error)


if __name__ == "__main__":
    unittest.main()
