"""
Tests for grid sampling and image decoding.
Run from project root: python -m pytest tests/ -v
"""
import tempfile
import unittest
from pathlib import Path

import numpy as np
from PIL import Image

from helpers import make_buffer, solid_buffer
from tone_engine.errors import InvalidImageError
from tone_engine.sampler import PixelSampler, decode_image


class TestSampleStep(unittest.TestCase):
    """Grid stride keeps the sample count bounded."""

    def test_small_images_sample_every_pixel(self):
        sampler = PixelSampler()
        self.assertEqual(sampler.sample_step(100, 100), 1)
        self.assertEqual(sampler.sample_step(3, 2), 1)

    def test_stride_rounds_up(self):
        sampler = PixelSampler()
        self.assertEqual(sampler.sample_step(1000, 1000), 10)
        self.assertEqual(sampler.sample_step(101, 100), 2)

    def test_sample_count_stays_near_limit(self):
        sampler = PixelSampler()
        buffer = solid_buffer((10, 20, 30), 400, 300)
        samples = sampler.sample(buffer, 400, 300)
        self.assertLessEqual(len(samples), 10000)
        self.assertEqual(sampler.sample_step(400, 300), 4)
        self.assertEqual(len(samples), 100 * 75)


class TestSample(unittest.TestCase):
    """Sampled colors, order and validation."""

    def test_row_major_order_and_scaling(self):
        pixels = [(0, 0, 0), (255, 0, 0), (0, 255, 0), (0, 0, 255)]
        samples = PixelSampler().sample(make_buffer(pixels, 2, 2), 2, 2)
        self.assertEqual(samples.shape, (4, 3))
        self.assertEqual(tuple(samples[1]), (1.0, 0.0, 0.0))
        self.assertEqual(tuple(samples[3]), (0.0, 0.0, 1.0))

    def test_alpha_is_ignored(self):
        buffer = bytes([51, 102, 153, 0])
        samples = PixelSampler().sample(buffer, 1, 1)
        self.assertEqual(tuple(samples[0]), (51 / 255.0, 102 / 255.0, 153 / 255.0))

    def test_strided_grid(self):
        pixels = [(x * 10, y * 10, 0) for y in range(4) for x in range(4)]
        samples = PixelSampler(max_samples=4).sample(make_buffer(pixels, 4, 4), 4, 4)
        # step 2 keeps (0,0), (2,0), (0,2), (2,2)
        expected = [(0, 0), (20, 0), (0, 20), (20, 20)]
        self.assertEqual([tuple(np.rint(s[:2] * 255).astype(int)) for s in samples], expected)

    def test_accepts_numpy_buffer(self):
        array = np.zeros((2, 3, 4), dtype=np.uint8)
        array[..., 0] = 255
        samples = PixelSampler().sample(array, 3, 2)
        self.assertEqual(len(samples), 6)
        self.assertTrue(np.all(samples[:, 0] == 1.0))

    def test_rejects_bad_dimensions(self):
        with self.assertRaises(InvalidImageError):
            PixelSampler().sample(b"", 0, 10)
        with self.assertRaises(InvalidImageError):
            PixelSampler().sample(b"\x00" * 16, 2, -2)

    def test_rejects_short_buffer(self):
        with self.assertRaises(InvalidImageError):
            PixelSampler().sample(b"\x00" * 15, 2, 2)


class TestDecodeImage(unittest.TestCase):
    """Pillow decode into RGBA buffers."""

    def test_decodes_png_to_rgba(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "two.png"
            image = Image.new("RGB", (2, 1))
            image.putpixel((0, 0), (255, 0, 0))
            image.putpixel((1, 0), (0, 0, 255))
            image.save(path)

            buffer, width, height = decode_image(path)

        self.assertEqual((width, height), (2, 1))
        self.assertEqual(buffer, bytes([255, 0, 0, 255, 0, 0, 255, 255]))

    def test_garbage_file_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "broken.png"
            path.write_bytes(b"not an image")
            with self.assertRaises(InvalidImageError):
                decode_image(path)

    def test_missing_file_raises_value_error(self):
        with self.assertRaises(ValueError):
            decode_image("/nonexistent/image.png")


if __name__ == "__main__":
    unittest.main()
