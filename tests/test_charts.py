"""Tests for chart payload builders."""

import pytest

from runlens.charts import CHART_NAMES, build_chart


def test_loss_chart_decimated_with_full_table(grpo_log):
    chart = build_chart(grpo_log, "loss", level=0.5, threshold=1000)
    assert chart.title == "Training Loss"
    assert len(chart) == 1000
    assert set(chart.series) == {"raw", "smoothed"}
    assert all(len(v) == 1000 for v in chart.series.values())
    assert chart.labels[0] == 1 and chart.labels[-1] == 1500
    # Table stays full resolution
    assert len(chart.table["rows"]) == 1500
    assert chart.table["columns"] == ["Training Loss"]
    # Loss axis is floored at zero
    assert chart.y_floor_zero
    assert chart.limits[0] == 0.0


def test_selection_independent_of_smoothing(grpo_log):
    a = build_chart(grpo_log, "reward", level=0.1, threshold=300)
    b = build_chart(grpo_log, "reward", level=0.9, threshold=300)
    assert a.labels == b.labels
    assert a.series["raw"] == b.series["raw"]
    assert a.series["smoothed"] != b.series["smoothed"]


def test_reward_envelope(grpo_log):
    chart = build_chart(grpo_log, "reward", level=0.3, threshold=5000)
    for mid, up, low in zip(chart.series["smoothed"], chart.series["upper"], chart.series["lower"]):
        assert up == pytest.approx(mid + 0.1)
        assert low == pytest.approx(mid - 0.1)


def test_reward_std_defaults_to_zero():
    log = [{"step": i, "reward": float(i)} for i in range(50)]
    chart = build_chart(log, "reward", level=0.3)
    assert chart.series["upper"] == chart.series["smoothed"]


def test_completion_length_falls_back_to_mean():
    log = [{"step": i, "completions/mean_length": 100.0} for i in range(30)]
    chart = build_chart(log, "completion_length", level=0.5)
    assert chart.series["upper"] == pytest.approx([100.0] * 30)
    assert chart.series["lower"] == pytest.approx([100.0] * 30)


def test_learning_rate_log_scale_unsmoothed(grpo_log):
    chart = build_chart(grpo_log, "learning_rate", level=0.5, threshold=2000)
    assert chart.log_scale
    assert chart.limits is None
    assert list(chart.series) == ["raw"]
    assert chart.series["raw"][0] == pytest.approx(1e-5 + 1e-7)


def test_individual_rewards_aligned(grpo_log):
    chart = build_chart(grpo_log, "individual_rewards", level=0.5, threshold=400)
    assert chart.groups == ["Format", "Accuracy"]
    assert len(chart) == 400
    for name in ("Format", "Format (Raw)", "Format Upper", "Format Lower",
                 "Accuracy", "Accuracy (Raw)", "Accuracy Upper", "Accuracy Lower"):
        assert len(chart.series[name]) == 400
    assert chart.table["columns"] == ["Format", "Accuracy"]
    # Missing /std counts as zero spread
    assert chart.series["Accuracy Upper"] == pytest.approx(chart.series["Accuracy"])


def test_individual_rewards_missing_function_is_none():
    log = [
        {"step": 1, "rewards/a/mean": 0.1, "rewards/b/mean": 0.2},
        {"step": 2, "rewards/a/mean": 0.3},
    ]
    chart = build_chart(log, "individual_rewards", level=0.5)
    assert chart.series["B (Raw)"] == [0.2, None]
    assert chart.table["rows"][1]["values"]["B"] is None


def test_missing_metric_returns_none():
    log = [{"step": i, "loss": 1.0} for i in range(10)]
    for name in CHART_NAMES:
        if name != "loss":
            assert build_chart(log, name, level=0.5) is None


def test_unknown_chart():
    with pytest.raises(KeyError):
        build_chart([], "accuracy", level=0.5)


def test_individual_rewards_leading_null_in_first_function():
    log = [{"step": 1, "rewards/a/mean": None, "rewards/b/mean": 0.5}]
    log += [
        {"step": i, "rewards/a/mean": (i % 9) / 10, "rewards/b/mean": 0.5 + (i % 4) / 10}
        for i in range(2, 1501)
    ]
    chart = build_chart(log, "individual_rewards", level=0.3, threshold=1000)
    assert chart.groups == ["A", "B"]
    assert len(chart) == 1000
    assert chart.series["A (Raw)"][0] is None
    assert chart.labels[0] == 1 and chart.labels[-1] == 1500
    assert chart.limits is not None
