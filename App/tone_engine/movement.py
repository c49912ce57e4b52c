"""Movement magnitude accumulation and tone triggering."""

import logging
import math

from models import (
    METERS_TO_FEET,
    MIN_THRESHOLD,
    MOVEMENT_SCALE,
    NOISE_FLOOR,
    MovementState,
    TonePlay,
)

from .errors import EmptySequenceError
from .sequencer import ToneSequencer
from .threshold import ThresholdMapper

logger = logging.getLogger(__name__)


class MovementAccumulator:
    """Turns sensor magnitudes into distance and pulls a tone per threshold.

    AIDEV-NOTE: Samples arrive from the sensor collaborator at a nominal
    0.1 s interval; the accumulator has no clock of its own. Each sample is
    treated as a distance increment, not integrated over time.
    """

    def __init__(
        self,
        sequencer: ToneSequencer,
        threshold_feet: float = MIN_THRESHOLD,
        mapper: ThresholdMapper | None = None,
    ):
        self.sequencer = sequencer
        self.mapper = mapper or ThresholdMapper()
        self.state = MovementState(threshold_feet=threshold_feet)
        self.running = True  # cleared by stop()

    # -------------------------------------------------------------
    # Threshold
    # -------------------------------------------------------------

    @property
    def threshold_feet(self) -> float:
        return self.state.threshold_feet

    @threshold_feet.setter
    def threshold_feet(self, value: float):
        self.state.threshold_feet = value

    def set_threshold_slider(self, slider: float) -> float:
        """Set the threshold from a 0-1 slider value and return it in feet."""
        self.state.threshold_feet = self.mapper.to_threshold(slider)
        logger.debug(f"Threshold updated to {self.state.threshold_feet:.2f} feet (slider {slider})")
        return self.state.threshold_feet

    # -------------------------------------------------------------
    # Session control
    # -------------------------------------------------------------

    def start(self):
        """Begin accepting samples with a fresh per-tone counter."""
        self.reset()
        self.running = True

    def stop(self):
        """Stop accepting samples. Counters are kept."""
        self.running = False

    def reset(self):
        """Zero the per-tone counter and display value; lifetime is kept."""
        self.state.since_last_tone = 0.0
        self.state.current_movement = 0.0

    def reset_session(self):
        """Zero every counter, including lifetime distance."""
        self.reset()
        self.state.lifetime = 0.0

    # -------------------------------------------------------------
    # Samples
    # -------------------------------------------------------------

    def on_acceleration(self, x: float, y: float, z: float) -> TonePlay | None:
        """Feed a user-acceleration vector; its length is the magnitude."""
        return self.on_sample(math.sqrt(x * x + y * y + z * z))

    def on_sample(self, magnitude: float) -> TonePlay | None:
        """Accumulate one movement sample.

        Args:
            magnitude: Non-negative movement magnitude from the sensor

        Returns:
            TonePlay if this sample crossed the threshold, else None
        """
        if not self.running or magnitude <= NOISE_FLOOR:
            return None

        delta = magnitude * METERS_TO_FEET * MOVEMENT_SCALE
        self.state.since_last_tone += delta
        self.state.lifetime += delta
        self.state.current_movement = self.state.lifetime

        if self.state.since_last_tone < self.state.threshold_feet:
            return None

        # Threshold reached; the counter resets even if no tone can be served
        self.state.since_last_tone = 0.0
        try:
            tone_index = self.sequencer.next_tone()
        except EmptySequenceError:
            logger.warning("Movement threshold reached but no image is loaded")
            return None

        logger.debug(f"Threshold reached at {self.state.lifetime:.2f} feet, tone {tone_index}")
        return TonePlay(tone_index=tone_index, lifetime_feet=self.state.lifetime)
