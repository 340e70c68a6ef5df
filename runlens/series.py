"""
Series extraction and metric schema discovery.

An observation log is a list of dict records, one per logging step. Each
record carries a `step` plus an arbitrary subset of numeric metrics. This
module projects the log onto single metrics and discovers which metrics a
log actually carries.

Examples:
    >>> log = [{"step": 1, "loss": 2.0}, {"step": 2}, {"step": 3, "loss": 1.5}]
    >>> extract_series(log, "loss")
    [(1, 2.0), (3, 1.5)]
"""

import re
from dataclasses import dataclass
from typing import Optional

STEP_KEY = "step"

# Per-reward-function keys, e.g. "rewards/format/mean" + "rewards/format/std"
REWARD_KEY_PATTERN = re.compile(r"^rewards/(?P<name>.+)/mean$")

DEFAULT_REWARD_SCAN_LIMIT = 10


@dataclass(frozen=True)
class MetricDescriptor:
    """A metric the log carries, with how it should be read."""
    key: str
    display_name: str
    std_key: Optional[str] = None  # paired spread metric, if any
    higher_is_better: Optional[bool] = None  # None = neutral


# Fixed metrics a trainer log may carry
SCALAR_METRICS = (
    MetricDescriptor("loss", "Training Loss", higher_is_better=False),
    MetricDescriptor("reward", "Overall Reward", std_key="reward_std", higher_is_better=True),
    MetricDescriptor("kl", "KL Divergence"),
    MetricDescriptor("grad_norm", "Gradient Norm"),
    MetricDescriptor("learning_rate", "Learning Rate"),
    MetricDescriptor("completions/mean_length", "Completion Length"),
)


def is_number(value) -> bool:
    """True for int/float values (bools are not metrics)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def has_metric(log_history: list[dict], key: str) -> bool:
    """Check whether any record carries a numeric value for `key`."""
    return any(is_number(record.get(key)) for record in log_history if record)


def reward_display_name(key: str) -> str:
    """
    Human-readable name for a reward function key.

    Example: 'rewards/format/mean' -> 'Format'
    """
    match = REWARD_KEY_PATTERN.match(key)
    name = match.group("name") if match else key
    return name[:1].upper() + name[1:]


def discover_reward_metrics(
    log_history: list[dict],
    scan_limit: int = DEFAULT_REWARD_SCAN_LIMIT,
) -> list[MetricDescriptor]:
    """
    Find per-reward-function metrics in a log.

    Only the first `scan_limit` records are inspected, so a reward function
    that first appears later in the run is not discovered. Keys are returned
    in first-seen order.
    """
    seen: dict[str, None] = {}
    std_keys = set()

    for record in log_history[:scan_limit]:
        if not record:
            continue
        for key in record:
            if REWARD_KEY_PATTERN.match(key):
                seen.setdefault(key, None)
            elif key.startswith("rewards/") and key.endswith("/std"):
                std_keys.add(key)

    descriptors = []
    for key in seen:
        std_key = key[: -len("/mean")] + "/std"
        descriptors.append(MetricDescriptor(
            key=key,
            display_name=reward_display_name(key),
            std_key=std_key if std_key in std_keys else None,
            higher_is_better=True,
        ))
    return descriptors


def discover_metrics(
    log_history: list[dict],
    reward_scan_limit: int = DEFAULT_REWARD_SCAN_LIMIT,
) -> list[MetricDescriptor]:
    """All metrics present in the log: fixed scalars first, then reward functions."""
    found = [m for m in SCALAR_METRICS if has_metric(log_history, m.key)]
    found.extend(discover_reward_metrics(log_history, reward_scan_limit))
    return found


def extract_series(log_history: list[dict], key: str) -> list[tuple[int, float]]:
    """
    Project the log onto one metric as ordered (step, value) pairs.

    Records where the key is absent, null or non-numeric are skipped.
    NaN/inf values are kept; aggregation stages filter them.
    """
    series = []
    for index, record in enumerate(log_history):
        if not record:
            continue
        value = record.get(key)
        if not is_number(value):
            continue
        series.append((record.get(STEP_KEY, index), float(value)))
    return series


def split_series(series: list[tuple[int, float]]) -> tuple[list[int], list[float]]:
    """Split (step, value) pairs into parallel step and value lists."""
    return [step for step, _ in series], [value for _, value in series]


def extract_columns(
    log_history: list[dict],
    keys: list[str],
    anchor_keys: Optional[list[str]] = None,
    defaults: Optional[dict] = None,
) -> tuple[list[int], dict[str, list]]:
    """
    Extract several metrics aligned on the same records.

    A record is included when any of `anchor_keys` (default: `keys`) has a
    numeric value. Missing values are filled from `defaults`, where a default
    may be a constant or the name of another key to fall back to; otherwise
    they are None.

    Returns:
        Tuple of (steps, {key: values}) where every value list has len(steps)
    """
    anchors = anchor_keys or keys
    defaults = defaults or {}
    steps = []
    columns: dict[str, list] = {key: [] for key in keys}

    for index, record in enumerate(log_history):
        if not record or not any(is_number(record.get(k)) for k in anchors):
            continue
        steps.append(record.get(STEP_KEY, index))
        for key in keys:
            value = record.get(key)
            if not is_number(value):
                fallback = defaults.get(key)
                if isinstance(fallback, str):
                    value = record.get(fallback)
                    value = value if is_number(value) else None
                else:
                    value = fallback
            columns[key].append(None if value is None else float(value))

    return steps, columns


def to_table(steps: list[int], columns: dict[str, list]) -> dict:
    """
    Full-resolution tabular projection of aligned columns.

    Returns:
        {"columns": [names...], "rows": [{"step": s, "values": {name: v}}, ...]}
    """
    names = list(columns)
    rows = [
        {"step": step, "values": {name: columns[name][i] for name in names}}
        for i, step in enumerate(steps)
    ]
    return {"columns": names, "rows": rows}
