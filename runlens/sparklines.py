"""
Sparkline generation for compact trend visualization.

Converts numeric sequences to Unicode block characters. Long series are
reduced with LTTB first, so spikes survive where bucket averaging would
flatten them.

Examples:
    >>> sparkline([1, 2, 3, 4, 5])
    '▁▂▄▆█'
    >>> sparkline([1, 1, 1, 5, 1])  # Spike detection
    '▁▁▁█▁'
"""

from typing import Optional

from .decimation import MIN_THRESHOLD, decimate_lttb
from .smoothing import is_valid

# Unicode block characters for sparklines (8 levels)
SPARK_CHARS = "▁▂▃▄▅▆▇█"


def sparkline(values: list, width: Optional[int] = None) -> str:
    """
    Convert a list of values to a sparkline string.

    Args:
        values: Numeric values (None/NaN/inf are dropped)
        width: Optional maximum width (reduced with LTTB if needed)

    Returns:
        Sparkline string, '' for no input, '?' if nothing is finite
    """
    if not values:
        return ""

    clean = [v for v in values if is_valid(v)]
    if not clean:
        return "?"

    if width and len(clean) > width:
        clean, _ = decimate_lttb(clean, list(range(len(clean))), max(width, MIN_THRESHOLD))

    low = min(clean)
    value_range = max(clean) - low
    if value_range == 0:
        return SPARK_CHARS[len(SPARK_CHARS) // 2] * len(clean)

    chars = []
    for v in clean:
        idx = int((v - low) / value_range * (len(SPARK_CHARS) - 1))
        chars.append(SPARK_CHARS[max(0, min(len(SPARK_CHARS) - 1, idx))])
    return "".join(chars)


def format_compact(v: float) -> str:
    if abs(v) < 0.001 or abs(v) > 1000:
        return f"{v:.1e}"
    elif abs(v) < 1:
        return f"{v:.3f}"
    return f"{v:.2f}"


def format_metric_with_spark(name: str, values: list, width: int = 10) -> str:
    """
    Format a metric with its sparkline and first/last values.

    Example: 'loss: ▇▆▅▃▂▁ (1.50→0.200)'
    """
    clean = [v for v in values if is_valid(v)]
    if not clean:
        return f"{name}: - (no data)"

    spark = sparkline(clean, width=width)
    return f"{name}: {spark} ({format_compact(clean[0])}→{format_compact(clean[-1])})"
