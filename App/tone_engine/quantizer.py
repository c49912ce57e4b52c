"""Palette ownership, atomic rebuilds and color-to-tone resolution.

AIDEV-NOTE: Palette, tone map and pixel sequence live together in one
QuantizationState that is swapped wholesale under a single QMutex. Readers
that need them consistent (tone lookup, preview, unique count) take the same
mutex. Nothing outside this module may hold a reference to a live tone map.
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, field

import numpy as np
from PIL import Image
from PyQt6.QtCore import QMutex, QMutexLocker

from models import (
    MAX_K,
    MIN_K,
    QuantizationConfig,
    QuantizationMethod,
    RebuildResult,
    RebuildStatus,
)

from .errors import EmptySequenceError, InvalidImageError
from .quantization import nearest_indices, quantize_colors, unique_colors
from .sampler import PixelSampler

logger = logging.getLogger(__name__)


def clamp_k(k: int) -> int:
    """Limit K to [MIN_K, MAX_K]."""
    return max(MIN_K, min(int(k), MAX_K))


@dataclass(frozen=True)
class QuantizationState:
    """Everything a rebuild produces, replaced as one unit."""

    palette: "tuple[tuple[float, float, float], ...]" = ()
    palette_array: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    # Exact color -> tone index; grows with nearest-color lookups
    tone_map: "dict[tuple[float, float, float], int]" = field(default_factory=dict)
    sequence: "tuple[tuple[float, float, float], ...]" = ()
    unique_color_count: int = 0


class ColorQuantizer:
    """Builds tone palettes from sampled pixels and resolves colors to tones."""

    def __init__(
        self,
        config: QuantizationConfig | None = None,
        sampler: PixelSampler | None = None,
    ):
        config = config or QuantizationConfig()
        self.sampler = sampler or PixelSampler()
        self._k = clamp_k(config.k)
        self._method = config.method

        self._state = QuantizationState()
        self._samples: np.ndarray | None = None

        self._mutex = QMutex()
        self._load_guard = QMutex()  # held for the duration of a load

        logger.debug(f"ColorQuantizer initialized with k={self._k}, method={self._method}")

    # -------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------

    @property
    def k(self) -> int:
        return self._k

    @property
    def method(self) -> QuantizationMethod:
        return self._method

    def set_k(self, new_k: int) -> RebuildResult:
        """Set palette size (clamped to 1-256) and rebuild if pixels are loaded."""
        with QMutexLocker(self._mutex):
            logger.debug(f"Setting k from {self._k} to {new_k}")
            self._k = clamp_k(new_k)
            return self._rebuild_locked()

    def set_method(self, method: QuantizationMethod) -> RebuildResult:
        """Set the quantization strategy and rebuild if pixels are loaded."""
        with QMutexLocker(self._mutex):
            logger.debug(f"Setting quantization method to {method}")
            self._method = method
            return self._rebuild_locked()

    def store_k(self, k: int):
        """Record K for the next rebuild without rebuilding now.

        Used to reflect a color-count warning's actual_k back into the
        quantizer so the palette already built is left as is.
        """
        with QMutexLocker(self._mutex):
            self._k = clamp_k(k)

    def configure(self, k: int, method: QuantizationMethod) -> RebuildResult:
        """Apply K and method together with a single rebuild."""
        with QMutexLocker(self._mutex):
            self._k = clamp_k(k)
            self._method = method
            return self._rebuild_locked()

    # -------------------------------------------------------------
    # Loading & rebuilding
    # -------------------------------------------------------------

    def load_pixels(self, buffer, width: int, height: int) -> RebuildResult:
        """Sample a decoded RGBA buffer and rebuild the palette from it.

        Args:
            buffer: Row-major RGBA bytes, 4 per pixel
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            RebuildResult; any status other than APPLIED leaves the previous
            palette, map and sequence in place.

        AIDEV-NOTE: A load that arrives while another is running is rejected,
        not queued. Callers retry if they still want it.
        """
        if not self._load_guard.tryLock():
            logger.warning("Image processing already in progress, load rejected")
            return RebuildResult(RebuildStatus.LOAD_IN_PROGRESS)

        try:
            try:
                samples = self.sampler.sample(buffer, width, height)
            except InvalidImageError as e:
                logger.warning(f"Invalid pixel buffer: {e}")
                return RebuildResult(RebuildStatus.INVALID_IMAGE)

            with QMutexLocker(self._mutex):
                return self._rebuild_locked(samples)
        finally:
            self._load_guard.unlock()

    def _rebuild_locked(self, samples: np.ndarray | None = None) -> RebuildResult:
        """Quantize and swap in a new state. Caller holds the mutex."""
        source = self._samples if samples is None else samples
        if source is None:
            return RebuildResult(RebuildStatus.NO_PIXELS)

        logger.debug(f"Starting color quantization with method {self._method}, k={self._k}")
        uniques, inverse = unique_colors(source)
        logger.debug(f"Found {len(uniques)} unique colors in {len(source)} samples")

        palette_array, warning = quantize_colors(uniques, self._k, self._method)
        if len(palette_array) == 0:
            logger.warning("No quantized colors generated, keeping previous palette")
            return RebuildResult(
                RebuildStatus.EMPTY_PALETTE, unique_color_count=len(uniques)
            )

        palette = tuple(tuple(color) for color in palette_array.tolist())
        tone_map = {}
        for index, color in enumerate(palette):
            tone_map.setdefault(color, index)

        # Resolve each unique color once, then fan out to every sample
        unique_tones = np.empty(len(uniques), dtype=np.intp)
        misses = []
        for i, color in enumerate(uniques.tolist()):
            index = tone_map.get(tuple(color))
            if index is None:
                misses.append(i)
            else:
                unique_tones[i] = index

        if misses:
            nearest = nearest_indices(uniques[misses], palette_array)
            for i, index in zip(misses, nearest.tolist()):
                tone_map[tuple(uniques[i].tolist())] = index
                unique_tones[i] = index

        sequence = tuple(palette[index] for index in unique_tones[inverse].tolist())

        self._state = QuantizationState(
            palette=palette,
            palette_array=np.array(palette, dtype=np.float64),
            tone_map=tone_map,
            sequence=sequence,
            unique_color_count=len(uniques),
        )
        self._samples = source

        logger.debug(f"Generated {len(palette)} quantized colors for {len(sequence)} pixels")
        return RebuildResult(
            RebuildStatus.APPLIED,
            palette_size=len(palette),
            unique_color_count=len(uniques),
            warning=warning,
        )

    # -------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------

    @contextmanager
    def locked(self):
        """Hold the quantization mutex and yield the current state."""
        with QMutexLocker(self._mutex):
            yield self._state

    @staticmethod
    def resolve_locked(
        state: QuantizationState, color: "tuple[float, float, float]"
    ) -> int:
        """Tone index for a color: exact map hit, else nearest palette entry.

        Nearest matches are cached in the state's tone map. Caller must hold
        the mutex via locked().
        """
        index = state.tone_map.get(color)
        if index is not None:
            return index

        distances = ((state.palette_array - np.asarray(color, dtype=np.float64)) ** 2).sum(axis=1)
        index = int(distances.argmin())
        state.tone_map[color] = index
        return index

    def resolve(self, color) -> int:
        """Tone index for an arbitrary RGB color in [0, 1].

        Raises:
            EmptySequenceError: If no palette has been built yet
        """
        key = tuple(float(channel) for channel in color)
        with self.locked() as state:
            if not state.palette:
                raise EmptySequenceError("No palette available")
            return self.resolve_locked(state, key)

    # -------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------

    def get_unique_color_count(self) -> int:
        with QMutexLocker(self._mutex):
            return self._state.unique_color_count

    @property
    def palette(self) -> "tuple[tuple[float, float, float], ...]":
        with QMutexLocker(self._mutex):
            return self._state.palette

    @property
    def palette_size(self) -> int:
        with QMutexLocker(self._mutex):
            return len(self._state.palette)

    @property
    def sequence(self) -> "tuple[tuple[float, float, float], ...]":
        with QMutexLocker(self._mutex):
            return self._state.sequence

    @property
    def has_pixels(self) -> bool:
        with QMutexLocker(self._mutex):
            return bool(self._state.sequence)

    def preview_image(self) -> Image.Image | None:
        """Square RGB raster of the re-projected pixels, row-major.

        The side is floor(sqrt(N)); trailing pixels that do not fill a full
        row are dropped.
        """
        with QMutexLocker(self._mutex):
            sequence = self._state.sequence
            if not sequence:
                return None

            side = math.isqrt(len(sequence))
            pixels = np.asarray(sequence[: side * side], dtype=np.float64)
            raster = np.rint(pixels * 255.0).astype(np.uint8).reshape(side, side, 3)
            return Image.fromarray(raster)
