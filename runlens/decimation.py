"""
Largest-Triangle-Three-Buckets (LTTB) decimation.

Reduces a long series to a fixed number of points while keeping its visual
shape: peaks, dips and trend changes survive, unlike plain stride sampling.
The first and last points are always kept.
"""

from .smoothing import is_valid

DEFAULT_THRESHOLD = 1000
MIN_THRESHOLD = 3


def lttb_indices(values: list, steps: list, threshold: int = DEFAULT_THRESHOLD) -> list[int]:
    """
    Select the indices LTTB keeps.

    Args:
        values: Y values. None/NaN/inf are never selected inside a bucket
            and are left out of the triangle anchor and bucket averages
        steps: X values, same length as `values`
        threshold: Maximum number of points to keep

    Returns:
        Ascending indices; all indices if len(values) <= threshold,
        otherwise exactly `threshold` of them
    """
    if threshold < MIN_THRESHOLD:
        raise ValueError(f"threshold must be at least {MIN_THRESHOLD}, got {threshold}")
    if len(steps) != len(values):
        raise ValueError("values and steps must have the same length")

    n = len(values)
    if n <= threshold:
        return list(range(n))

    valid = [i for i in range(n) if is_valid(values[i])]
    # Anchor and fallback always refer to valid points
    prev = valid[0] if valid else None
    last_valid = valid[-1] if valid else None

    bucket_size = (n - 2) / (threshold - 2)
    selected = [0]

    for bucket in range(threshold - 2):
        start = int(bucket * bucket_size) + 1
        end = int((bucket + 1) * bucket_size) + 1
        if prev is None:
            selected.append(start)
            continue

        # Average of the following bucket
        avg_start = end
        avg_end = min(int((bucket + 2) * bucket_size) + 1, n)
        avg_x = avg_y = 0.0
        count = 0
        for i in range(avg_start, avg_end):
            if is_valid(values[i]):
                avg_x += steps[i]
                avg_y += values[i]
                count += 1
        if count:
            avg_x /= count
            avg_y /= count
        else:
            avg_x, avg_y = steps[last_valid], values[last_valid]

        # Point of the current bucket forming the largest triangle
        prev_x, prev_y = steps[prev], values[prev]
        best = start
        best_area = -1.0
        for i in range(start, end):
            if not is_valid(values[i]):
                continue
            area = abs(
                (prev_x - avg_x) * (values[i] - prev_y)
                - (prev_x - steps[i]) * (avg_y - prev_y)
            )
            if area > best_area:
                best_area = area
                best = i

        selected.append(best)
        if best_area >= 0:
            prev = best

    selected.append(n - 1)
    return selected


def decimate_lttb(
    values: list,
    steps: list,
    threshold: int = DEFAULT_THRESHOLD,
) -> tuple[list, list]:
    """
    Decimate a single series.

    Returns:
        Tuple of (values, steps); copies of the inputs when no reduction is needed
    """
    indices = lttb_indices(values, steps, threshold)
    return [values[i] for i in indices], [steps[i] for i in indices]


def decimate_aligned(
    datasets: dict[str, list],
    steps: list,
    primary: str,
    threshold: int = DEFAULT_THRESHOLD,
) -> tuple[dict[str, list], list]:
    """
    Decimate several aligned series with one shared selection.

    The selection is computed on `datasets[primary]` only and then applied to
    every series and to the steps, so position i of every output refers to the
    same original record.

    Args:
        datasets: Named series, each the same length as `steps`
        steps: Shared x values
        primary: Name of the series that drives the selection

    Returns:
        Tuple of ({name: decimated values}, decimated steps)
    """
    if primary not in datasets:
        raise KeyError(f"primary series '{primary}' not in datasets")
    for name, data in datasets.items():
        if len(data) != len(steps):
            raise ValueError(f"series '{name}' is not aligned with steps")

    indices = lttb_indices(datasets[primary], steps, threshold)
    decimated = {name: [data[i] for i in indices] for name, data in datasets.items()}
    return decimated, [steps[i] for i in indices]
