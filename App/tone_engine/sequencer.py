"""Circular playback over the re-projected pixel sequence."""

import logging

from .errors import EmptySequenceError
from .quantizer import ColorQuantizer

logger = logging.getLogger(__name__)


class ToneSequencer:
    """Serves tone indices in pixel order, wrapping at the end.

    AIDEV-NOTE: The cursor survives rebuilds. When a rebuild shortens the
    sequence the cursor is wrapped onto the new length on the next call.
    """

    def __init__(self, quantizer: ColorQuantizer):
        self.quantizer = quantizer
        self.cursor = 0

    def next_tone(self) -> int:
        """Tone index for the pixel under the cursor, then advance.

        Raises:
            EmptySequenceError: If no pixels have been loaded
        """
        with self.quantizer.locked() as state:
            length = len(state.sequence)
            if length == 0:
                raise EmptySequenceError("No pixels available")

            position = self.cursor % length
            tone = self.quantizer.resolve_locked(state, state.sequence[position])
            self.cursor = (position + 1) % length

        logger.debug(f"Pixel {position} -> tone {tone}")
        return tone

    def reset(self):
        self.cursor = 0
