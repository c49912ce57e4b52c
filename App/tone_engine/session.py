"""Session orchestrating image load, reconfiguration and movement playback.

AIDEV-NOTE: ToneSession is the single entry point the outer layers (CLI,
UI, sensor adapters) talk to. It owns every engine component and routes
configuration changes through the ReconfigurationController so they share
the image-load rebuild path.
"""

import logging
import time
from pathlib import Path
from typing import Callable

from PIL import Image
from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from config_manager import ConfigManager
from models import (
    QuantizationConfig,
    QuantizationMethod,
    RebuildResult,
    TonePlay,
    ToneSettings,
)

from .movement import MovementAccumulator
from .quantizer import ColorQuantizer, clamp_k
from .reconfiguration import ReconfigurationController
from .sampler import decode_image
from .scale import frequency_for
from .sequencer import ToneSequencer
from .threshold import ThresholdMapper

logger = logging.getLogger(__name__)


class ToneSession(QObject):
    """Turns an image plus a movement stream into a sequence of tones."""

    tone_played = pyqtSignal(object)  # TonePlay
    color_count_warning = pyqtSignal(object)  # ColorCountWarning
    rebuild_finished = pyqtSignal(object)  # RebuildResult
    error = pyqtSignal(str)  # Error message

    def __init__(
        self,
        settings: ToneSettings | None = None,
        config_manager: ConfigManager | None = None,
        threaded: bool = True,
        clock: Callable[[], float] = time.monotonic,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self.config_manager = config_manager
        if settings is None:
            settings = config_manager.load() if config_manager else ToneSettings()
        self.settings = settings
        self.settings.k = clamp_k(self.settings.k)

        self.quantizer = ColorQuantizer(self.settings.quantization_config())
        self.sequencer = ToneSequencer(self.quantizer)
        self.mapper = ThresholdMapper()
        self.accumulator = MovementAccumulator(
            self.sequencer,
            threshold_feet=self.mapper.to_threshold(self.settings.threshold_slider),
            mapper=self.mapper,
        )

        self.controller = ReconfigurationController(
            self._apply_config, clock=clock, threaded=threaded, parent=self
        )
        self.controller.rebuild_finished.connect(self._on_rebuild_finished)
        self.controller.error.connect(self.error)

    # -------------------------------------------------------------
    # Image loading
    # -------------------------------------------------------------

    def load_image(self, file_path: str | Path) -> RebuildResult:
        """Decode an image file and build tones from it.

        Raises:
            InvalidImageError: If the file cannot be decoded
        """
        logger.info(f"Loading image {file_path}")
        buffer, width, height = decode_image(file_path)
        result = self.load_pixels(buffer, width, height)
        if result.applied:
            self.settings.last_image_path = str(file_path)
            self._save_settings()
        return result

    def load_pixels(self, buffer, width: int, height: int) -> RebuildResult:
        """Build tones from an already decoded RGBA buffer."""
        result = self.quantizer.load_pixels(buffer, width, height)
        self._handle_result(result)
        return result

    # -------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------

    def request_config(
        self, k: int | None = None, method: QuantizationMethod | None = None
    ):
        """Queue a change of K and/or method through the debounced controller."""
        if k is not None:
            self.settings.k = clamp_k(k)
        if method is not None:
            self.settings.method = method
        self._save_settings()
        self.controller.request(self.settings.quantization_config())

    def set_threshold_slider(self, value: float) -> float:
        """Set the movement threshold from a 0-1 slider; returns feet."""
        self.settings.threshold_slider = max(0.0, min(1.0, value))
        feet = self.accumulator.set_threshold_slider(self.settings.threshold_slider)
        self._save_settings()
        return feet

    def set_threshold_feet(self, feet: float) -> float:
        """Set the movement threshold in feet, keeping the slider in sync."""
        feet = max(self.mapper.min_threshold, min(self.mapper.max_threshold, feet))
        self.accumulator.threshold_feet = feet
        if self.mapper.slider_needs_sync(feet, self.settings.threshold_slider):
            self.settings.threshold_slider = self.mapper.to_slider(feet)
            logger.debug(f"Slider value updated to {self.settings.threshold_slider}")
            self._save_settings()
        return feet

    @property
    def threshold_feet(self) -> float:
        return self.accumulator.threshold_feet

    # -------------------------------------------------------------
    # Playback
    # -------------------------------------------------------------

    def start(self):
        logger.info("Starting playback")
        self.accumulator.start()

    def stop(self):
        logger.info("Stopping playback")
        self.accumulator.stop()

    def feed_sample(self, magnitude: float) -> TonePlay | None:
        play = self.accumulator.on_sample(magnitude)
        if play is not None:
            self.tone_played.emit(play)
        return play

    def feed_acceleration(self, x: float, y: float, z: float) -> TonePlay | None:
        play = self.accumulator.on_acceleration(x, y, z)
        if play is not None:
            self.tone_played.emit(play)
        return play

    def frequency_for(self, tone_index: int) -> float:
        """Frequency in Hz for a tone index under the current palette."""
        return frequency_for(tone_index, self.quantizer.palette_size)

    def preview_image(self) -> Image.Image | None:
        return self.quantizer.preview_image()

    def shutdown(self):
        self.stop()
        self.controller.shutdown()
        self._save_settings()

    # -------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------

    def _apply_config(self, config: QuantizationConfig) -> RebuildResult:
        # Runs on the controller's worker thread
        return self.quantizer.configure(config.k, config.method)

    @pyqtSlot(object, object)
    def _on_rebuild_finished(self, config: QuantizationConfig, result: RebuildResult | None):
        if result is not None:
            self._handle_result(result)

    def _handle_result(self, result: RebuildResult):
        if result.warning is not None:
            # Reflect what the quantizer could honor; no new rebuild is needed
            self.settings.k = result.warning.actual_k
            self.quantizer.store_k(result.warning.actual_k)
            self._save_settings()
            self.color_count_warning.emit(result.warning)
        self.rebuild_finished.emit(result)

    def _save_settings(self):
        if self.config_manager is None:
            return
        success, error = self.config_manager.save(self.settings)
        if not success:
            logger.warning(f"Could not save settings: {error}")
