"""Data models and constants for the Fractal Tones engine."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

# AIDEV-NOTE: Sampling and palette bounds. Direct mapping ignores MAX_K.
MAX_SAMPLES = 10000  # grid samples per image
MIN_K = 1
MAX_K = 256
KMEANS_MAX_ITERATIONS = 50

# Movement constants
NOISE_FLOOR = 0.05  # magnitudes at or below this are sensor drift
METERS_TO_FEET = 3.28084
MOVEMENT_SCALE = 0.25
SAMPLE_INTERVAL = 0.1  # seconds between sensor samples (nominal)

# Threshold slider mapping
MIN_THRESHOLD = 1.0  # feet
MAX_THRESHOLD = 200.0  # feet
STEP_MULTIPLIER = 1.2  # each step is 20% larger than the previous

# Reconfiguration debounce window
DEBOUNCE_SECONDS = 0.5

# Configuration file path
CONFIG_FILE = Path.home() / ".fractal_tones_config.json"


class QuantizationMethod(Enum):
    """Palette derivation strategies."""

    DIRECT = "direct"  # Every unique color, sorted by hue
    UNIFORM = "uniform"  # K colors interpolated between channel extremes
    KMEANS = "kmeans"  # Lloyd's algorithm over the unique colors


class RebuildStatus(Enum):
    """Outcome of a palette rebuild or pixel load."""

    APPLIED = "applied"
    NO_PIXELS = "no_pixels"  # Parameters stored, nothing loaded to rebuild
    INVALID_IMAGE = "invalid_image"
    LOAD_IN_PROGRESS = "load_in_progress"
    EMPTY_PALETTE = "empty_palette"


@dataclass
class QuantizationConfig:
    """Quantization parameters applied on every rebuild."""

    k: int = 4
    method: QuantizationMethod = QuantizationMethod.UNIFORM


@dataclass(frozen=True)
class ColorCountWarning:
    """Returned in a RebuildResult when the image has fewer colors than K.

    AIDEV-NOTE: Consumers must reflect actual_k back into their configuration.
    """

    requested_k: int
    actual_k: int
    message: str


@dataclass(frozen=True)
class RebuildResult:
    """Result of a quantizer rebuild."""

    status: RebuildStatus
    palette_size: int = 0
    unique_color_count: int = 0
    warning: ColorCountWarning | None = None

    @property
    def applied(self) -> bool:
        return self.status is RebuildStatus.APPLIED


@dataclass
class MovementState:
    """Distance counters owned by the movement accumulator (feet)."""

    since_last_tone: float = 0.0
    lifetime: float = 0.0
    threshold_feet: float = MIN_THRESHOLD
    current_movement: float = 0.0  # display value


@dataclass(frozen=True)
class TonePlay:
    """A movement-triggered request to play a tone."""

    tone_index: int
    lifetime_feet: float


@dataclass
class ToneSettings:
    """Persisted configuration surface."""

    k: int = 4
    method: QuantizationMethod = QuantizationMethod.UNIFORM
    threshold_slider: float = 0.0  # 0-1, mapped to feet
    last_image_path: str | None = None

    def quantization_config(self) -> QuantizationConfig:
        return QuantizationConfig(k=self.k, method=self.method)
