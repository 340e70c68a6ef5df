"""Tests for the RunAnalyzer facade."""

import pytest

from runlens.config import RunlensConfig
from runlens.core import RunAnalyzer
from runlens.loader import from_records


@pytest.fixture
def analyzer(grpo_log):
    run = from_records(grpo_log, max_steps=3000, epoch=0.5, num_train_epochs=1)
    return RunAnalyzer(run, RunlensConfig(smoothing_level=0.3, decimation_threshold=500))


def test_smoothed_memoized_per_level(analyzer):
    first = analyzer.smoothed("loss")
    assert analyzer.smoothed("loss") is first

    analyzer.smoothing_level = 0.8
    heavier = analyzer.smoothed("loss")
    assert heavier is not first
    assert len(heavier) == len(first) == 1500

    analyzer.smoothing_level = 0.3
    assert analyzer.smoothed("loss") is first


def test_invalid_settings(analyzer):
    with pytest.raises(ValueError):
        analyzer.smoothing_level = 1.2
    with pytest.raises(ValueError):
        analyzer.decimation_threshold = 1


def test_charts_all_present(analyzer):
    charts = analyzer.charts()
    assert list(charts) == [
        "reward", "individual_rewards", "loss", "kl",
        "learning_rate", "grad_norm", "completion_length",
    ]
    assert all(len(chart) == 500 for chart in charts.values())


def test_chart_cache_keyed_by_threshold(analyzer):
    small = analyzer.chart("loss")
    analyzer.decimation_threshold = 1000
    large = analyzer.chart("loss")
    assert len(small) == 500
    assert len(large) == 1000
    analyzer.decimation_threshold = 500
    assert analyzer.chart("loss") is small


def test_run_without_reward():
    run = from_records([{"step": i, "loss": 2.0 - i * 0.001} for i in range(1200)])
    analyzer = RunAnalyzer(run)
    assert analyzer.series("reward") == []
    assert analyzer.stats("reward") is None
    assert analyzer.chart("reward") is None
    assert "reward" not in analyzer.charts()
    assert not any("eward" in i.message for i in analyzer.insights())


def test_summarize(analyzer):
    text = analyzer.summarize()
    assert "=== Training Run Summary ===" in text
    assert "Records: 1,500" in text
    assert "CHANGES:" in text
    assert "Loss Change" in text
    assert "INSIGHTS:" in text
    assert "Excellent loss reduction" in text
    assert "rewards/format/mean" in text


def test_format_stats_missing_key(analyzer):
    text = analyzer.format_stats(["loss", "accuracy"])
    lines = text.splitlines()
    assert lines[2].startswith("loss")
    assert "--" in lines[3]


def test_format_series_csv(analyzer):
    lines = analyzer.format_series_csv("loss").splitlines()
    assert lines[0] == "step,loss,loss_smoothed"
    assert len(lines) == 501
    assert lines[1].startswith("1,2,")
    assert lines[-1].startswith("1500,0.5,")
    assert analyzer.format_series_csv("nope") == "No data for key: nope"


def test_format_table_csv_full_resolution(analyzer):
    lines = analyzer.format_table_csv("loss").splitlines()
    assert lines[0] == "step,loss"
    assert len(lines) == 1501


def test_format_keys(analyzer):
    text = analyzer.format_keys()
    assert "loss" in text
    assert "1,500 points" in text
    assert "(+ rewards/format/std)" in text


def test_level_cache_bounded(analyzer):
    first = analyzer.smoothed("loss")
    analyzer.chart("loss")
    for level in (0.4, 0.5, 0.6):
        analyzer.smoothing_level = level
        analyzer.smoothed("loss")
    analyzer.smoothing_level = 0.3
    assert analyzer.smoothed("loss") is first

    for level in (0.7, 0.8, 0.9, 1.0):
        analyzer.smoothing_level = level
        analyzer.smoothed("loss")
    levels = {key[2] for key in analyzer._cache if key[0] in ("smoothed", "chart")}
    assert levels == {0.7, 0.8, 0.9, 1.0}

    analyzer.smoothing_level = 0.3
    again = analyzer.smoothed("loss")
    assert again is not first
    assert again == first


def test_summarize_trends_and_stats_formatting(analyzer):
    text = analyzer.summarize()
    assert "TRENDS (smoothed):" in text
    assert "  loss: " in text
    assert "→" in text
    stats_line = next(line for line in text.splitlines() if line.startswith("learning_rate"))
    assert "e-0" in stats_line
