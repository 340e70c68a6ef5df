"""
Rule-based training insights.

Each rule reads one signal from AdvancedStats and emits at most one Insight.
Rules are independent and always evaluated in the same order; a rule whose
input is unavailable is skipped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .stats import AdvancedStats


class InsightType(str, Enum):
    SUCCESS = "success"
    GOOD = "good"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


# Percent thresholds on improvement
STRONG_CHANGE = 10.0
MILD_CHANGE = 2.0

GRAD_NORM_HIGH = 10.0
GRAD_NORM_LOW = 0.001

STABLE_CV = 0.05
UNSTABLE_CV = 0.3
MIN_LOG_SIZE_FOR_STABILITY = 20

SMALL_LOG_SIZE = 1000

# Labels used when rendering as text
TYPE_LABELS = {
    InsightType.SUCCESS: "OK",
    InsightType.GOOD: "GOOD",
    InsightType.WARNING: "WARN",
    InsightType.ERROR: "ISSUE",
    InsightType.INFO: "INFO",
}


@dataclass(frozen=True)
class Insight:
    """A categorized observation: '<headline> - <detail>'."""
    type: InsightType
    message: str

    @property
    def headline(self) -> str:
        return self.message.split(" - ", 1)[0]

    @property
    def detail(self) -> str:
        parts = self.message.split(" - ", 1)
        return parts[1] if len(parts) > 1 else ""

    def to_dict(self) -> dict:
        return {"type": self.type.value, "message": self.message}


def _loss_insight(change: Optional[float]) -> Optional[Insight]:
    if change is None:
        return None
    if change < -STRONG_CHANGE:
        return Insight(
            InsightType.SUCCESS,
            f"Excellent loss reduction ({abs(change):.1f}%) - Model is learning effectively.",
        )
    if change < -MILD_CHANGE:
        return Insight(
            InsightType.GOOD,
            f"Good loss reduction ({abs(change):.1f}%) - Training is progressing well.",
        )
    if change <= MILD_CHANGE:
        return Insight(
            InsightType.WARNING,
            "Loss is relatively stable - Consider adjusting learning rate or checking for convergence.",
        )
    return Insight(
        InsightType.ERROR,
        f"Loss is increasing ({change:.1f}%) - Learning rate may be too high or training is unstable.",
    )


def _grad_norm_insight(last: Optional[float]) -> Optional[Insight]:
    if last is None:
        return None
    if last > GRAD_NORM_HIGH:
        return Insight(
            InsightType.ERROR,
            f"High gradient norm ({last:.2f}) - Consider gradient clipping to stabilize training.",
        )
    if last < GRAD_NORM_LOW:
        return Insight(
            InsightType.WARNING,
            f"Very low gradient norm ({last:.4f}) - May indicate vanishing gradients or convergence.",
        )
    return Insight(
        InsightType.SUCCESS,
        f"Healthy gradient norm ({last:.3f}) - Gradients are in a good range for stable learning.",
    )


def _reward_insight(change: Optional[float]) -> Optional[Insight]:
    if change is None:
        return None
    if change > STRONG_CHANGE:
        return Insight(
            InsightType.SUCCESS,
            f"Excellent reward improvement ({change:.1f}%) - Model performance is increasing significantly.",
        )
    if change > MILD_CHANGE:
        return Insight(
            InsightType.GOOD,
            f"Good reward improvement ({change:.1f}%) - Model is improving steadily.",
        )
    if change > -MILD_CHANGE:
        return Insight(
            InsightType.WARNING,
            "Reward is relatively stable - Model may be reaching a plateau.",
        )
    # Falling reward has no rule of its own
    return None


def _stability_insight(stats: AdvancedStats) -> Optional[Insight]:
    loss = stats.loss
    if loss is None or not loss.std_dev or stats.dataset_size <= MIN_LOG_SIZE_FOR_STABILITY:
        return None
    cv = loss.coefficient_of_variation
    if cv is None:
        return None
    if cv < STABLE_CV:
        return Insight(
            InsightType.SUCCESS,
            "Very stable training - Consistent loss with low variance.",
        )
    if cv > UNSTABLE_CV:
        return Insight(
            InsightType.WARNING,
            f"Training shows some instability - Loss variation is {cv * 100:.1f}%. "
            "Consider learning rate scheduling.",
        )
    return None


def _dataset_size_insight(size: int) -> Optional[Insight]:
    if 0 < size <= SMALL_LOG_SIZE:
        return Insight(
            InsightType.INFO,
            f"Training log contains {size:,} data points - Consider longer training for better insights.",
        )
    return None


def generate_insights(stats: AdvancedStats) -> list[Insight]:
    """Apply every rule in order and collect the insights produced."""
    candidates = [
        _loss_insight(stats.loss_improvement),
        _grad_norm_insight(stats.last_grad_norm),
        _reward_insight(stats.reward_improvement),
        _stability_insight(stats),
        _dataset_size_insight(stats.dataset_size),
    ]
    return [insight for insight in candidates if insight is not None]


def format_insights(insights: list[Insight], compact: bool = False) -> str:
    """
    Render insights as text.

    Compact mode drops the detail after ' - ' for token efficiency.
    """
    if not insights:
        return "INSIGHTS: (none)"

    lines = ["INSIGHTS:"]
    for insight in insights:
        label = TYPE_LABELS[insight.type]
        if compact or not insight.detail:
            lines.append(f"  [{label}] {insight.headline}")
        else:
            lines.append(f"  [{label}] {insight.headline}: {insight.detail}")
    return "\n".join(lines)
