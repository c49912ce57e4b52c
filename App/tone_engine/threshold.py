"""Slider <-> movement threshold mapping.

AIDEV-NOTE: The slider moves through geometric steps, each STEP_MULTIPLIER
times the previous, so fine control is available at short distances while
the far end still reaches MAX_THRESHOLD feet.
"""

import math

from models import MAX_THRESHOLD, MIN_THRESHOLD, STEP_MULTIPLIER

# Slider difference below which the two values are considered in sync
SLIDER_SYNC_TOLERANCE = 0.001


class ThresholdMapper:
    """Converts a 0-1 slider value to a threshold in feet and back."""

    def __init__(
        self,
        min_threshold: float = MIN_THRESHOLD,
        max_threshold: float = MAX_THRESHOLD,
        step_multiplier: float = STEP_MULTIPLIER,
    ):
        self.min_threshold = min_threshold
        self.max_threshold = max_threshold
        self.step_multiplier = step_multiplier

    @property
    def total_steps(self) -> float:
        """Number of multiplier steps between the two ends."""
        return math.log(self.max_threshold / self.min_threshold) / math.log(
            self.step_multiplier
        )

    def to_threshold(self, slider: float) -> float:
        """Threshold in feet for a slider position."""
        slider = max(0.0, min(1.0, slider))
        threshold = self.min_threshold * self.step_multiplier ** (slider * self.total_steps)
        return max(self.min_threshold, min(self.max_threshold, threshold))

    def to_slider(self, threshold: float) -> float:
        """Slider position for a threshold in feet."""
        threshold = max(self.min_threshold, min(self.max_threshold, threshold))
        current_step = math.log(threshold / self.min_threshold) / math.log(
            self.step_multiplier
        )
        return max(0.0, min(1.0, current_step / self.total_steps))

    def slider_needs_sync(self, threshold: float, slider: float) -> bool:
        """True when slider no longer reflects threshold."""
        return abs(self.to_slider(threshold) - slider) > SLIDER_SYNC_TOLERANCE
