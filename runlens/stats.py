"""
Descriptive statistics and start-vs-end improvement for metric series.

Mean and variance are population statistics (divide by N, not N - 1).
Median and quartiles use nearest-rank selection at index floor(N * p) of the
sorted values, without interpolation.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .series import extract_series, split_series
from .smoothing import is_valid

IMPROVEMENT_WINDOW_FRACTION = 0.05
MAX_IMPROVEMENT_WINDOW = 500
ZERO_TOLERANCE = 1e-8


@dataclass(frozen=True)
class SeriesStats:
    """Summary statistics over one series' finite values."""
    mean: float
    std_dev: float
    min: float
    max: float
    median: float
    p25: float
    p75: float
    count: int

    @property
    def coefficient_of_variation(self) -> Optional[float]:
        """std_dev / |mean|, or None when the mean is ~0."""
        if abs(self.mean) < ZERO_TOLERANCE:
            return None
        return self.std_dev / abs(self.mean)

    def to_dict(self) -> dict:
        return {
            "mean": self.mean,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "median": self.median,
            "p25": self.p25,
            "p75": self.p75,
        }


def finite_values(values: list) -> list[float]:
    """Drop None, NaN and inf."""
    return [float(v) for v in values if is_valid(v)]


def calculate_stats(values: list) -> Optional[SeriesStats]:
    """
    Compute summary statistics.

    Returns:
        SeriesStats, or None if there are no finite values
    """
    clean = finite_values(values)
    if not clean:
        return None

    n = len(clean)
    ordered = sorted(clean)
    mean = sum(clean) / n
    variance = sum((v - mean) ** 2 for v in clean) / n

    return SeriesStats(
        mean=mean,
        std_dev=math.sqrt(variance),
        min=ordered[0],
        max=ordered[-1],
        median=ordered[int(n * 0.5)],
        p25=ordered[int(n * 0.25)],
        p75=ordered[int(n * 0.75)],
        count=n,
    )


def calculate_improvement(values: list) -> Optional[float]:
    """
    Percentage change between the early and late window means.

    The window is 5% of the series, capped at 500 points. Positive means the
    metric went up.

    Returns:
        Signed percentage, or None for short series or a ~0 starting mean
    """
    clean = finite_values(values)
    n = len(clean)
    if n < 2:
        return None

    window = min(MAX_IMPROVEMENT_WINDOW, int(n * IMPROVEMENT_WINDOW_FRACTION))
    if window < 1:
        return None

    start = sum(clean[:window]) / window
    end = sum(clean[-window:]) / window
    if abs(start) < ZERO_TOLERANCE:
        return None
    return (end - start) / abs(start) * 100


@dataclass(frozen=True)
class AdvancedStats:
    """Everything the insight and display-stat rules read."""
    loss: Optional[SeriesStats] = None
    reward: Optional[SeriesStats] = None
    grad_norm: Optional[SeriesStats] = None
    loss_improvement: Optional[float] = None
    reward_improvement: Optional[float] = None
    last_grad_norm: Optional[float] = None
    dataset_size: int = 0


def calculate_advanced_stats(log_history: list[dict]) -> AdvancedStats:
    """Compute loss/reward/grad-norm statistics for a whole log."""
    if not log_history:
        return AdvancedStats()

    _, loss = split_series(extract_series(log_history, "loss"))
    _, reward = split_series(extract_series(log_history, "reward"))
    _, grad = split_series(extract_series(log_history, "grad_norm"))

    return AdvancedStats(
        loss=calculate_stats(loss),
        reward=calculate_stats(reward),
        grad_norm=calculate_stats(grad),
        loss_improvement=calculate_improvement(loss),
        reward_improvement=calculate_improvement(reward),
        last_grad_norm=grad[-1] if grad and is_valid(grad[-1]) else None,
        dataset_size=len(log_history),
    )
