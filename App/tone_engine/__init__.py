"""Color-to-tone engine.

AIDEV-NOTE: This package turns images into replayable tone sequences and
movement streams into tone triggers. Organized into modular components:
- sampler: Grid sampling of RGBA buffers
- quantization: Direct, uniform and k-means palette strategies
- quantizer: ColorQuantizer, owner of palette/map/sequence
- sequencer: Circular tone playback
- movement: Movement accumulation and triggering
- threshold: Slider <-> threshold mapping
- reconfiguration: Debounced rebuild controller
- scale: Tone index to frequency
- session: ToneSession orchestrator
"""

from .errors import EmptySequenceError, InvalidImageError, ToneEngineError
from .movement import MovementAccumulator
from .quantizer import ColorQuantizer
from .reconfiguration import ReconfigState, ReconfigurationController
from .sampler import PixelSampler, decode_image
from .sequencer import ToneSequencer
from .session import ToneSession
from .threshold import ThresholdMapper

__all__ = [
    "ColorQuantizer",
    "EmptySequenceError",
    "InvalidImageError",
    "MovementAccumulator",
    "PixelSampler",
    "ReconfigState",
    "ReconfigurationController",
    "ThresholdMapper",
    "ToneEngineError",
    "ToneSequencer",
    "ToneSession",
    "decode_image",
]
