"""
Change metrics for card-style display, plus progress and value formatting.
"""

from dataclasses import dataclass
from typing import Optional

from .series import DEFAULT_REWARD_SCAN_LIMIT, discover_reward_metrics, extract_series, split_series
from .stats import AdvancedStats, calculate_advanced_stats, calculate_improvement

# Series shorter than this never report a change
MIN_POINTS_FOR_CHANGE = 10
# Neutral stats are flagged beyond this absolute change
NEUTRAL_FLAG_THRESHOLD = 10.0


@dataclass(frozen=True)
class DisplayStat:
    """A single 'X Change' card."""
    label: str
    value: float
    is_positive_good: bool = False
    is_neutral: bool = False

    @property
    def tone(self) -> str:
        """'good', 'bad' or 'warning' depending on direction."""
        if self.is_neutral:
            return "good" if abs(self.value) < NEUTRAL_FLAG_THRESHOLD else "warning"
        if (self.value > 0) == self.is_positive_good:
            return "good"
        return "bad"

    @property
    def formatted(self) -> str:
        return f"{self.value:.1f}%"

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "value": self.value,
            "isPositiveGood": self.is_positive_good,
            "isNeutral": self.is_neutral,
        }


def _series_change(log_history: list[dict], key: str) -> Optional[float]:
    _, values = split_series(extract_series(log_history, key))
    if len(values) <= MIN_POINTS_FOR_CHANGE:
        return None
    return calculate_improvement(values)


def build_display_stats(
    log_history: list[dict],
    advanced: Optional[AdvancedStats] = None,
    reward_scan_limit: int = DEFAULT_REWARD_SCAN_LIMIT,
) -> list[DisplayStat]:
    """
    Assemble change cards for loss, reward, grad norm, KL and each reward function.

    Args:
        log_history: Observation log
        advanced: Precomputed stats (computed here if None)
        reward_scan_limit: Records scanned for reward function keys
    """
    if not log_history:
        return []

    advanced = advanced or calculate_advanced_stats(log_history)
    stats = []

    if advanced.loss_improvement is not None:
        stats.append(DisplayStat("Loss Change", advanced.loss_improvement, is_positive_good=False))

    if advanced.reward_improvement is not None:
        stats.append(DisplayStat("Reward Change", advanced.reward_improvement, is_positive_good=True))

    if advanced.grad_norm is not None:
        change = _series_change(log_history, "grad_norm")
        if change is not None:
            stats.append(DisplayStat("Grad Norm Change", change, is_neutral=True))

    change = _series_change(log_history, "kl")
    if change is not None:
        stats.append(DisplayStat("KL Change", change, is_neutral=True))

    for metric in discover_reward_metrics(log_history, reward_scan_limit):
        change = _series_change(log_history, metric.key)
        if change is not None:
            stats.append(DisplayStat(f"{metric.display_name} Change", change, is_positive_good=True))

    return stats


def calculate_progress(step, total_steps) -> Optional[float]:
    """Completion percentage, or None without a usable total."""
    if not total_steps or total_steps <= 0:
        return None
    return step / total_steps * 100


def format_metric_value(value: float, label: str) -> str:
    """Format a value according to the metric family named in `label`."""
    if "Loss" in label or "KL" in label or "Gradient" in label:
        return f"{value:.4f}"
    if "Learning Rate" in label:
        return f"{value:.2e}"
    if "Reward" in label:
        return f"{value:.3f}"
    if "Length" in label:
        return f"{round(value):,}"
    return f"{value:.4g}"
