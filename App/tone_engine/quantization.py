"""Color quantization strategies for deriving tone palettes.

AIDEV-NOTE: Every strategy works on the unique sampled colors as an (N, 3)
float64 array in linear RGB and returns a palette array in the same form.
Palette row order is the tone index, so these functions must stay
deterministic for a given input order.
"""

import colorsys
import logging

import numpy as np

from models import KMEANS_MAX_ITERATIONS, ColorCountWarning, QuantizationMethod

logger = logging.getLogger(__name__)

# Rows per chunk when computing point-to-palette distances
DISTANCE_CHUNK = 2048


def unique_colors(samples: np.ndarray) -> "tuple[np.ndarray, np.ndarray]":
    """Unique colors in order of first appearance.

    Returns:
        Tuple of (unique colors, index into unique colors for every sample)
    """
    if len(samples) == 0:
        return np.empty((0, 3), dtype=np.float64), np.empty(0, dtype=np.intp)

    uniques, first_seen, inverse = np.unique(
        samples, axis=0, return_index=True, return_inverse=True
    )
    order = np.argsort(first_seen, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))
    return uniques[order], rank[inverse.reshape(-1)]


def nearest_indices(points: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Index of the closest palette entry for every point.

    Squared Euclidean RGB distance; ties resolve to the lowest index.
    """
    labels = np.empty(len(points), dtype=np.intp)
    for start in range(0, len(points), DISTANCE_CHUNK):
        chunk = points[start : start + DISTANCE_CHUNK]
        distances = ((chunk[:, np.newaxis, :] - palette[np.newaxis, :, :]) ** 2).sum(axis=2)
        labels[start : start + len(chunk)] = distances.argmin(axis=1)
    return labels


def quantize_colors(
    colors: np.ndarray,
    num_colors: int,
    method: QuantizationMethod = QuantizationMethod.UNIFORM,
) -> "tuple[np.ndarray, ColorCountWarning | None]":
    """Reduce unique colors to a tone palette.

    Args:
        colors: Unique colors, (N, 3) in [0, 1]
        num_colors: Requested palette size K (ignored by DIRECT)
        method: Quantization strategy

    Returns:
        Tuple of (palette array, warning if K could not be honored)
    """
    if method is QuantizationMethod.DIRECT:
        return quantize_direct(colors), None
    elif method is QuantizationMethod.KMEANS:
        centroids, iterations = quantize_kmeans(colors, num_colors)
        logger.debug(f"k-means stopped after {iterations} iterations")
        return centroids, None
    else:
        return quantize_uniform(colors, num_colors)


def quantize_direct(colors: np.ndarray) -> np.ndarray:
    """Every unique color, sorted by hue.

    AIDEV-NOTE: K is not applied here; the palette can grow past MAX_K on
    photographs.
    """
    hues = np.array([colorsys.rgb_to_hsv(r, g, b)[0] for r, g, b in colors.tolist()])
    return colors[np.argsort(hues, kind="stable")]


def quantize_uniform(
    colors: np.ndarray, num_colors: int
) -> "tuple[np.ndarray, ColorCountWarning | None]":
    """Interpolate K colors between the per-channel extremes."""
    count = len(colors)
    if count < num_colors:
        message = (
            f"Image only has {count} unique colors. "
            f"Adjusting k from {num_colors} to {count}."
        )
        logger.warning(message)
        return colors.copy(), ColorCountWarning(
            requested_k=num_colors, actual_k=count, message=message
        )

    mins = colors.min(axis=0)
    maxs = colors.max(axis=0)
    if num_colors == 1:
        return mins[np.newaxis, :], None

    step = (maxs - mins) / (num_colors - 1)
    palette = mins + np.arange(num_colors)[:, np.newaxis] * step
    palette[-1] = maxs  # endpoints are exact
    return palette, None


def quantize_kmeans(
    colors: np.ndarray,
    num_colors: int,
    max_iterations: int = KMEANS_MAX_ITERATIONS,
) -> "tuple[np.ndarray, int]":
    """Lloyd's algorithm over the unique colors.

    Stops when a round leaves every centroid bit-identical, or after
    max_iterations rounds. There is no distance tolerance.

    Returns:
        Tuple of (K centroids, iterations run)
    """
    count = len(colors)
    if count == 0:
        return np.empty((0, 3), dtype=np.float64), 0

    if count <= num_colors:
        # Use every color, cycling to pad up to K
        centroids = colors[np.arange(num_colors) % count].copy()
    else:
        step = count // num_colors
        picks = np.minimum(np.arange(num_colors) * step, count - 1)
        centroids = colors[picks].copy()

    previous = None
    iterations = 0
    while iterations < max_iterations and (
        previous is None or not np.array_equal(centroids, previous)
    ):
        previous = centroids.copy()

        labels = nearest_indices(colors, centroids)
        sizes = np.bincount(labels, minlength=num_colors)
        filled = sizes > 0
        for channel in range(3):
            sums = np.bincount(labels, weights=colors[:, channel], minlength=num_colors)
            # Empty clusters keep their centroid this round
            centroids[filled, channel] = sums[filled] / sizes[filled]

        iterations += 1

    return centroids, iterations
