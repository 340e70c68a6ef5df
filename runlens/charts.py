"""
Render-ready chart payloads.

Each builder turns the observation log into aligned raw/smoothed (and
optionally envelope) series, decimated for plotting, together with axis
limits and a full-resolution table for non-graphical consumers.

Decimation is always driven by the raw primary series, so the retained
points do not move when the smoothing level changes.
"""

from dataclasses import dataclass, field
from typing import Optional

from .decimation import DEFAULT_THRESHOLD, decimate_aligned
from .series import (
    DEFAULT_REWARD_SCAN_LIMIT,
    discover_reward_metrics,
    extract_columns,
    to_table,
)
from .smoothing import gaussian_smooth, is_valid, smoothed_limits


@dataclass
class ChartData:
    """Everything needed to draw one chart."""
    key: str
    title: str
    labels: list
    series: dict[str, list]
    table: dict
    limits: Optional[tuple[float, float]] = None
    y_floor_zero: bool = False
    log_scale: bool = False
    groups: list[str] = field(default_factory=list)  # envelope group names

    def __len__(self) -> int:
        return len(self.labels)


def _with_envelope(smoothed: list, spread: list, sign: int) -> list:
    return [
        v + sign * s if is_valid(v) and is_valid(s) else None
        for v, s in zip(smoothed, spread)
    ]


def _finalize(
    key: str,
    title: str,
    steps: list,
    datasets: dict[str, list],
    table_columns: dict[str, list],
    limit_raw: list,
    limit_smoothed: list,
    threshold: int,
    primary: str = "raw",
    y_floor_zero: bool = False,
    log_scale: bool = False,
    groups: Optional[list[str]] = None,
) -> ChartData:
    limits = None
    if not log_scale:
        limits = smoothed_limits(limit_raw, limit_smoothed)
        if limits is not None and y_floor_zero:
            limits = (0.0, limits[1])

    decimated, labels = decimate_aligned(datasets, steps, primary, threshold)
    return ChartData(
        key=key,
        title=title,
        labels=labels,
        series=decimated,
        table=to_table(steps, table_columns),
        limits=limits,
        y_floor_zero=y_floor_zero,
        log_scale=log_scale,
        groups=groups or [],
    )


def build_scalar_chart(
    log_history: list[dict],
    key: str,
    title: str,
    level: float,
    threshold: int = DEFAULT_THRESHOLD,
    y_floor_zero: bool = False,
) -> Optional[ChartData]:
    """Raw + smoothed chart for a single metric (loss, grad_norm, kl)."""
    steps, columns = extract_columns(log_history, [key])
    if not steps:
        return None

    raw = columns[key]
    smoothed = gaussian_smooth(raw, level)
    return _finalize(
        key, title, steps,
        {"raw": raw, "smoothed": smoothed},
        {title: raw},
        raw, smoothed, threshold,
        y_floor_zero=y_floor_zero,
    )


def build_learning_rate_chart(
    log_history: list[dict],
    threshold: int = DEFAULT_THRESHOLD,
) -> Optional[ChartData]:
    """Learning rate on a log scale; schedules are not smoothed."""
    steps, columns = extract_columns(log_history, ["learning_rate"])
    if not steps:
        return None

    raw = columns["learning_rate"]
    return _finalize(
        "learning_rate", "Learning Rate", steps,
        {"raw": raw},
        {"Learning Rate": raw},
        raw, raw, threshold,
        log_scale=True,
    )


def build_reward_chart(
    log_history: list[dict],
    level: float,
    threshold: int = DEFAULT_THRESHOLD,
) -> Optional[ChartData]:
    """Overall reward with a +/- reward_std envelope."""
    steps, columns = extract_columns(
        log_history, ["reward", "reward_std"],
        anchor_keys=["reward"],
        defaults={"reward_std": 0.0},
    )
    if not steps:
        return None

    raw = columns["reward"]
    smoothed = gaussian_smooth(raw, level)
    smoothed_std = gaussian_smooth(columns["reward_std"], level)
    upper = _with_envelope(smoothed, smoothed_std, 1)
    lower = _with_envelope(smoothed, smoothed_std, -1)

    return _finalize(
        "reward", "Overall Reward", steps,
        {"raw": raw, "smoothed": smoothed, "upper": upper, "lower": lower},
        {"Overall Reward": raw},
        raw, smoothed + upper + lower, threshold,
    )


def build_completion_length_chart(
    log_history: list[dict],
    level: float,
    threshold: int = DEFAULT_THRESHOLD,
) -> Optional[ChartData]:
    """Mean completion length with a smoothed min/max band."""
    mean_key = "completions/mean_length"
    max_key = "completions/max_length"
    min_key = "completions/min_length"
    steps, columns = extract_columns(
        log_history, [mean_key, max_key, min_key],
        anchor_keys=[mean_key],
        defaults={max_key: mean_key, min_key: mean_key},
    )
    if not steps:
        return None

    raw = columns[mean_key]
    smoothed = gaussian_smooth(raw, level)
    upper = gaussian_smooth(columns[max_key], level)
    lower = gaussian_smooth(columns[min_key], level)

    return _finalize(
        "completion_length", "Completion Length", steps,
        {"raw": raw, "smoothed": smoothed, "upper": upper, "lower": lower},
        {"Completion Length": raw},
        raw, smoothed + upper + lower, threshold,
    )


def build_individual_rewards_chart(
    log_history: list[dict],
    level: float,
    threshold: int = DEFAULT_THRESHOLD,
    reward_scan_limit: int = DEFAULT_REWARD_SCAN_LIMIT,
) -> Optional[ChartData]:
    """
    One smoothed band per reward function.

    Series are named '<Name>', '<Name> (Raw)', '<Name> Upper', '<Name> Lower'.
    Records are aligned on any reward function key, so a function missing
    from a record has None at that position.
    """
    metrics = discover_reward_metrics(log_history, reward_scan_limit)
    if not metrics:
        return None

    mean_keys = [m.key for m in metrics]
    std_keys = [m.key[: -len("/mean")] + "/std" for m in metrics]
    steps, columns = extract_columns(
        log_history, mean_keys + std_keys,
        anchor_keys=mean_keys,
        defaults={k: 0.0 for k in std_keys},
    )
    if not steps:
        return None

    datasets: dict[str, list] = {}
    table_columns: dict[str, list] = {}
    all_raw: list = []
    all_smoothed: list = []
    groups = []

    for metric, std_key in zip(metrics, std_keys):
        name = metric.display_name
        raw = columns[metric.key]
        smoothed = gaussian_smooth(raw, level)
        smoothed_std = gaussian_smooth(columns[std_key], level)
        upper = _with_envelope(smoothed, smoothed_std, 1)
        lower = _with_envelope(smoothed, smoothed_std, -1)

        datasets[f"{name} Upper"] = upper
        datasets[f"{name} Lower"] = lower
        datasets[name] = smoothed
        datasets[f"{name} (Raw)"] = raw
        table_columns[name] = raw
        all_raw.extend(raw)
        all_smoothed.extend(smoothed + upper + lower)
        groups.append(name)

    return _finalize(
        "individual_rewards", "Individual Reward Functions", steps,
        datasets, table_columns,
        all_raw, all_smoothed, threshold,
        primary=f"{groups[0]} (Raw)",
        groups=groups,
    )


# name -> (metric key, title, floor at zero)
SCALAR_CHARTS = {
    "loss": ("loss", "Training Loss", True),
    "grad_norm": ("grad_norm", "Gradient Norm", True),
    "kl": ("kl", "KL Divergence", False),
}

CHART_NAMES = (
    "reward",
    "individual_rewards",
    "loss",
    "kl",
    "learning_rate",
    "grad_norm",
    "completion_length",
)


def build_chart(
    log_history: list[dict],
    name: str,
    level: float,
    threshold: int = DEFAULT_THRESHOLD,
    reward_scan_limit: int = DEFAULT_REWARD_SCAN_LIMIT,
) -> Optional[ChartData]:
    """Build a chart by name; None when the log lacks its metric."""
    if name in SCALAR_CHARTS:
        key, title, floor = SCALAR_CHARTS[name]
        return build_scalar_chart(log_history, key, title, level, threshold, y_floor_zero=floor)
    if name == "reward":
        return build_reward_chart(log_history, level, threshold)
    if name == "individual_rewards":
        return build_individual_rewards_chart(log_history, level, threshold, reward_scan_limit)
    if name == "learning_rate":
        return build_learning_rate_chart(log_history, threshold)
    if name == "completion_length":
        return build_completion_length_chart(log_history, level, threshold)
    raise KeyError(f"Unknown chart: {name}")
