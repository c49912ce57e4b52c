"""Tone index to frequency mapping."""

# E flat major, Eb3 to Eb4 (Hz)
BASE_SCALE = (
    311.13,  # Eb3
    349.23,  # F3
    392.00,  # G3
    415.30,  # Ab3
    466.16,  # Bb3
    523.25,  # C4
    587.33,  # D4
    622.25,  # Eb4
)


def scale_for(num_colors: int) -> "list[float]":
    """Frequencies for a palette of num_colors entries.

    Palettes larger than the base scale get the octave spread linearly.
    """
    if num_colors <= 1:
        return [BASE_SCALE[0]]
    if num_colors <= len(BASE_SCALE):
        return list(BASE_SCALE[:num_colors])

    base = BASE_SCALE[0]
    step = (BASE_SCALE[-1] - base) / (num_colors - 1)
    return [base + step * i for i in range(num_colors)]


def frequency_for(tone_index: int, num_colors: int) -> float:
    scale = scale_for(num_colors)
    return scale[tone_index % len(scale)]
