"""Grid sampling of decoded RGBA pixel buffers.

AIDEV-NOTE: The sampler bounds processing cost by keeping one pixel per
step x step cell, so roughly MAX_SAMPLES colors reach the quantizer no
matter how large the source image is.
"""

import logging
import math
from pathlib import Path

import numpy as np
from PIL import Image

from models import MAX_SAMPLES

from .errors import InvalidImageError

logger = logging.getLogger(__name__)

BYTES_PER_PIXEL = 4  # R, G, B, A


def decode_image(file_path: str | Path) -> "tuple[bytes, int, int]":
    """Decode an image file into a row-major RGBA buffer.

    Args:
        file_path: Path to image file (PNG, JPG, etc.)

    Returns:
        Tuple of (RGBA bytes, width, height)

    Raises:
        InvalidImageError: If the file cannot be opened or decoded
    """
    try:
        with Image.open(file_path) as image:
            # AIDEV-NOTE: Always convert to RGBA so the buffer layout is fixed
            rgba = image.convert("RGBA")
    except Exception as e:
        raise InvalidImageError(f"Failed to load image: {e}") from e

    width, height = rgba.size
    logger.debug(f"Decoded {file_path} ({width}x{height})")
    return rgba.tobytes(), width, height


class PixelSampler:
    """Extracts a bounded grid sample of colors from an RGBA buffer."""

    def __init__(self, max_samples: int = MAX_SAMPLES):
        self.max_samples = max_samples

    def sample_step(self, width: int, height: int) -> int:
        """Grid stride that keeps the sample count near max_samples."""
        return max(1, math.ceil(math.sqrt(width * height / self.max_samples)))

    def sample(self, buffer, width: int, height: int) -> np.ndarray:
        """Sample colors on the grid in row-major order.

        Args:
            buffer: RGBA bytes (bytes, bytearray, memoryview or uint8 array)
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            (N, 3) float64 array of RGB channels in [0, 1]

        Raises:
            InvalidImageError: If dimensions or buffer size are invalid
        """
        if width <= 0 or height <= 0:
            raise InvalidImageError(f"Invalid image dimensions: {width}x{height}")

        try:
            if isinstance(buffer, np.ndarray):
                data = buffer.astype(np.uint8, copy=False).ravel()
            else:
                data = np.frombuffer(buffer, dtype=np.uint8)
        except (TypeError, ValueError) as e:
            raise InvalidImageError(f"Unreadable pixel buffer: {e}") from e

        expected = width * height * BYTES_PER_PIXEL
        if data.size < expected:
            raise InvalidImageError(
                f"Pixel buffer too small: {data.size} bytes, expected {expected}"
            )

        step = self.sample_step(width, height)
        grid = data[:expected].reshape(height, width, BYTES_PER_PIXEL)[::step, ::step, :3]
        samples = grid.reshape(-1, 3).astype(np.float64) / 255.0

        logger.debug(f"Grid sample step {step}: {len(samples)} samples")
        return samples
