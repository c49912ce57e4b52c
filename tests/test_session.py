"""
Tests for the tone session orchestration.
"""
import tempfile
import unittest
from pathlib import Path

from PIL import Image

from config_manager import ConfigManager
from helpers import ensure_app, make_buffer, solid_buffer
from models import QuantizationMethod, RebuildStatus, ToneSettings
from tone_engine import InvalidImageError, ToneSession

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


class SessionTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.app = ensure_app()

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.config_path = Path(self.temp_dir.name) / "config.json"

    def make_session(self, settings=None, persist=False) -> ToneSession:
        config_manager = ConfigManager(self.config_path) if persist else None
        session = ToneSession(settings=settings, config_manager=config_manager, threaded=False)
        self.addCleanup(session.shutdown)
        return session


class TestLoading(SessionTestCase):

    def test_load_pixels_builds_palette(self):
        session = self.make_session(ToneSettings(method=QuantizationMethod.DIRECT))
        finished = []
        session.rebuild_finished.connect(finished.append)

        result = session.load_pixels(make_buffer([RED, GREEN, BLUE, RED], 2, 2), 2, 2)

        self.assertTrue(result.applied)
        self.assertEqual(result.palette_size, 3)
        self.assertEqual(finished, [result])
        self.assertEqual(session.quantizer.palette_size, 3)

    def test_color_count_warning_updates_k(self):
        session = self.make_session(persist=True)
        warnings = []
        session.color_count_warning.connect(warnings.append)

        result = session.load_pixels(solid_buffer(RED, 4, 4), 4, 4)

        self.assertEqual(len(warnings), 1)
        self.assertEqual(warnings[0].requested_k, 4)
        self.assertEqual(warnings[0].actual_k, 1)
        self.assertEqual(result.palette_size, 1)
        self.assertEqual(session.settings.k, 1)
        self.assertEqual(ConfigManager(self.config_path).load().k, 1)
        self.assertEqual(session.quantizer.k, 1)

        # The next image is quantized with the reflected K
        pixels = [(x * 30, 0, 255 - x * 30) for x in range(8)]
        result = session.load_pixels(make_buffer(pixels, 8, 1), 8, 1)
        self.assertEqual(result.unique_color_count, 8)
        self.assertEqual(result.palette_size, min(session.settings.k, 8))
        self.assertEqual(session.quantizer.palette_size, 1)

    def test_invalid_buffer_is_reported(self):
        session = self.make_session()
        result = session.load_pixels(b"\x00" * 8, 4, 4)
        self.assertEqual(result.status, RebuildStatus.INVALID_IMAGE)

    def test_load_image_records_path(self):
        image_path = Path(self.temp_dir.name) / "stripes.png"
        image = Image.new("RGB", (6, 6), RED)
        for x in range(3, 6):
            for y in range(6):
                image.putpixel((x, y), BLUE)
        image.save(image_path)

        session = self.make_session(persist=True)
        result = session.load_image(image_path)

        self.assertTrue(result.applied)
        self.assertEqual(result.unique_color_count, 2)
        self.assertEqual(session.settings.last_image_path, str(image_path))
        self.assertEqual(ConfigManager(self.config_path).load().last_image_path, str(image_path))

    def test_load_image_rejects_missing_file(self):
        session = self.make_session()
        with self.assertRaises(InvalidImageError):
            session.load_image(Path(self.temp_dir.name) / "missing.png")
        self.assertIsNone(session.settings.last_image_path)


class TestConfiguration(SessionTestCase):

    def test_request_config_rebuilds(self):
        session = self.make_session(persist=True)
        pixels = [(x * 30, 0, 255 - x * 30) for x in range(8)]
        session.load_pixels(make_buffer(pixels, 8, 1), 8, 1)
        finished = []
        session.rebuild_finished.connect(finished.append)

        session.request_config(k=2, method=QuantizationMethod.KMEANS)

        self.assertEqual(session.quantizer.k, 2)
        self.assertEqual(session.quantizer.method, QuantizationMethod.KMEANS)
        self.assertEqual(session.quantizer.palette_size, 2)
        self.assertEqual(len(finished), 1)
        self.assertTrue(finished[0].applied)

        saved = ConfigManager(self.config_path).load()
        self.assertEqual(saved.k, 2)
        self.assertEqual(saved.method, QuantizationMethod.KMEANS)

    def test_request_config_clamps_k(self):
        session = self.make_session()
        session.request_config(k=1000)
        self.assertEqual(session.settings.k, 256)
        self.assertEqual(session.quantizer.k, 256)

    def test_request_config_before_image_is_harmless(self):
        session = self.make_session()
        finished = []
        session.rebuild_finished.connect(finished.append)
        session.request_config(method=QuantizationMethod.DIRECT)
        self.assertEqual(session.quantizer.method, QuantizationMethod.DIRECT)
        self.assertEqual([r.status for r in finished], [RebuildStatus.NO_PIXELS])

    def test_settings_loaded_from_config_manager(self):
        ConfigManager(self.config_path).save(
            ToneSettings(k=7, method=QuantizationMethod.KMEANS, threshold_slider=1.0)
        )
        session = self.make_session(persist=True)
        self.assertEqual(session.quantizer.k, 7)
        self.assertAlmostEqual(session.threshold_feet, 200.0)


class TestThreshold(SessionTestCase):

    def test_slider_sets_feet(self):
        session = self.make_session()
        self.assertAlmostEqual(session.set_threshold_slider(0.0), 1.0)
        self.assertAlmostEqual(session.set_threshold_slider(1.0), 200.0)
        self.assertEqual(session.settings.threshold_slider, 1.0)

    def test_feet_sync_slider(self):
        session = self.make_session()
        session.set_threshold_feet(200.0)
        self.assertAlmostEqual(session.settings.threshold_slider, 1.0)
        self.assertAlmostEqual(session.threshold_feet, 200.0)

    def test_feet_are_clamped(self):
        session = self.make_session()
        self.assertEqual(session.set_threshold_feet(500.0), 200.0)
        self.assertEqual(session.set_threshold_feet(0.1), 1.0)
        self.assertEqual(session.settings.threshold_slider, 0.0)


class TestPlayback(SessionTestCase):

    def test_movement_plays_tones_in_pixel_order(self):
        session = self.make_session(ToneSettings(method=QuantizationMethod.DIRECT))
        session.load_pixels(make_buffer([BLUE, RED, GREEN], 3, 1), 3, 1)
        session.set_threshold_feet(1.0)
        played = []
        session.tone_played.connect(played.append)

        session.start()
        for _ in range(21):
            session.feed_sample(0.2)

        # Hue order: red 0, green 1, blue 2
        self.assertEqual([play.tone_index for play in played], [2, 0, 1])

    def test_acceleration_feeds_accumulator(self):
        session = self.make_session()
        session.load_pixels(solid_buffer(GREEN, 2, 2), 2, 2)
        session.start()
        play = session.feed_acceleration(3.0, 4.0, 0.0)
        self.assertIsNotNone(play)
        self.assertEqual(play.tone_index, 0)

    def test_stopped_session_ignores_samples(self):
        session = self.make_session()
        session.load_pixels(solid_buffer(GREEN, 2, 2), 2, 2)
        session.stop()
        self.assertIsNone(session.feed_sample(10.0))

    def test_frequency_follows_palette_size(self):
        session = self.make_session(ToneSettings(method=QuantizationMethod.DIRECT))
        session.load_pixels(make_buffer([RED, GREEN, BLUE], 3, 1), 3, 1)
        self.assertEqual(session.frequency_for(0), 311.13)
        self.assertEqual(session.frequency_for(1), 349.23)
        self.assertEqual(session.frequency_for(3), 311.13)

    def test_preview_image(self):
        session = self.make_session()
        self.assertIsNone(session.preview_image())
        session.load_pixels(solid_buffer(BLUE, 4, 4), 4, 4)
        preview = session.preview_image()
        self.assertEqual(preview.size, (4, 4))
        self.assertEqual(preview.getpixel((0, 0)), BLUE)


if __name__ == "__main__":
    unittest.main()
