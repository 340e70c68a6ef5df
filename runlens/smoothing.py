"""
Adaptive Gaussian smoothing for noisy training curves.

The kernel width scales with both the caller's smoothing level and the
series length, so a 50k-step run and a 200-step run look comparably smooth
at the same level.

Examples:
    >>> gaussian_smooth([1.0, 5.0, 1.0], 0.0)  # level 0 still applies a tiny kernel
    [1.0, 5.0, 1.0]
"""

import math
from typing import Optional

MIN_SIGMA = 0.1
# Upper sigma is max(3, N / 50)
BASE_MAX_SIGMA = 3
LENGTH_SIGMA_DIVISOR = 50

# Axis limits lean 10% from the smoothed extremes toward the raw ones
RAW_LIMIT_BLEND = 0.1


def is_valid(value) -> bool:
    """True for finite, non-null numbers."""
    return (
        value is not None
        and isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def smoothing_sigma(level: float, length: int) -> float:
    """Convert a smoothing level in [0, 1] to a Gaussian sigma."""
    max_sigma = max(BASE_MAX_SIGMA, length / LENGTH_SIGMA_DIVISOR)
    return MIN_SIGMA + (max_sigma - MIN_SIGMA) * level


def gaussian_kernel(sigma: float) -> list[float]:
    """Normalized Gaussian kernel of odd size ceil(6 * sigma)."""
    size = int(math.ceil(sigma * 6)) | 1
    center = size // 2
    weights = [math.exp(-((i - center) ** 2) / (2 * sigma * sigma)) for i in range(size)]
    total = sum(weights)
    return [w / total for w in weights]


def gaussian_smooth(values: list, level: float = 0.5) -> list:
    """
    Smooth a series with a Gaussian kernel.

    Only finite neighbours contribute, and each output is re-normalized by the
    weight actually used. Near the edges the kernel is simply truncated, so
    edge points are smoothed a little less than interior ones. A position whose
    whole neighbourhood is invalid keeps its original value.

    Args:
        values: Series values (may contain None/NaN/inf)
        level: Smoothing intensity in [0, 1]

    Returns:
        New list of the same length as `values`
    """
    if not 0 <= level <= 1:
        raise ValueError(f"smoothing level must be in [0, 1], got {level}")

    n = len(values)
    if n <= 1:
        return list(values)

    kernel = gaussian_kernel(smoothing_sigma(level, n))
    radius = len(kernel) // 2
    smoothed = []

    for i in range(n):
        weighted_sum = 0.0
        total_weight = 0.0
        for j, weight in enumerate(kernel):
            idx = i - radius + j
            if 0 <= idx < n and is_valid(values[idx]):
                weighted_sum += values[idx] * weight
                total_weight += weight
        smoothed.append(weighted_sum / total_weight if total_weight > 0 else values[i])

    return smoothed


def smoothed_limits(
    raw: list,
    smoothed: list,
    padding: float = 0.05,
) -> Optional[tuple[float, float]]:
    """
    Y-axis limits that follow the smoothed curve instead of raw outliers.

    Returns:
        (min, max) or None if either input has no finite values
    """
    raw_valid = [v for v in raw if is_valid(v)]
    smoothed_valid = [v for v in smoothed if is_valid(v)]
    if not raw_valid or not smoothed_valid:
        return None

    low = min(smoothed_valid)
    high = max(smoothed_valid)
    low += (min(raw_valid) - low) * RAW_LIMIT_BLEND
    high += (max(raw_valid) - high) * RAW_LIMIT_BLEND

    pad = (high - low) * padding
    return low - pad, high + pad
