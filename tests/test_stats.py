"""Tests for descriptive statistics and improvement."""

import math

import pytest

from runlens.stats import calculate_advanced_stats, calculate_improvement, calculate_stats


def test_empty_series_has_no_stats():
    assert calculate_stats([]) is None
    assert calculate_stats([None, float("nan")]) is None


def test_population_variance():
    stats = calculate_stats([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    assert stats.mean == pytest.approx(5.0)
    # Population std (divide by N) is exactly 2 here; sample std would be ~2.14
    assert stats.std_dev == pytest.approx(2.0)


def test_nearest_rank_percentiles():
    stats = calculate_stats([5.0, 1.0, 4.0, 2.0, 3.0])
    assert stats.min == 1.0
    assert stats.max == 5.0
    assert stats.median == 3.0  # sorted[floor(2.5)]
    assert stats.p25 == 2.0  # sorted[floor(1.25)]
    assert stats.p75 == 4.0  # sorted[floor(3.75)]

    even = calculate_stats([1.0, 2.0, 3.0, 4.0])
    assert even.median == 3.0  # no interpolation


def test_stats_filter_non_finite():
    stats = calculate_stats([1.0, float("inf"), None, 3.0, float("nan")])
    assert stats.count == 2
    assert stats.mean == pytest.approx(2.0)


def test_coefficient_of_variation():
    stats = calculate_stats([9.0, 11.0])
    assert stats.coefficient_of_variation == pytest.approx(0.1)
    assert calculate_stats([-1.0, 1.0]).coefficient_of_variation is None


def test_to_dict_keys():
    assert set(calculate_stats([1.0]).to_dict()) == {
        "mean", "stdDev", "min", "max", "median", "p25", "p75"
    }


def test_improvement_constant_series_is_zero():
    assert calculate_improvement([0.7] * 100) == pytest.approx(0.0)


def test_improvement_absent_cases():
    assert calculate_improvement([]) is None
    assert calculate_improvement([1.0]) is None
    # floor(19 * 0.05) == 0
    assert calculate_improvement([1.0] * 19) is None
    # Starting mean ~0
    assert calculate_improvement([0.0] * 20 + [1.0] * 20) is None


def test_improvement_sign_and_magnitude():
    values = [1.0] * 20 + [2.0] * 20
    # window 2: start 1.0, end 2.0
    assert calculate_improvement(values) == pytest.approx(100.0)
    assert calculate_improvement(list(reversed(values))) == pytest.approx(-50.0)


def test_improvement_uses_absolute_start():
    values = [-2.0] * 20 + [-1.0] * 20
    assert calculate_improvement(values) == pytest.approx(50.0)


def test_improvement_window_capped():
    values = [1.0] * 10000 + [3.0] * 10000
    # window = min(500, 1000) = 500
    assert calculate_improvement(values) == pytest.approx(200.0)


def test_decreasing_loss_scenario(grpo_log):
    stats = calculate_advanced_stats(grpo_log)
    assert stats.loss_improvement == pytest.approx(-72.6, abs=1.0)
    assert -80 < stats.loss_improvement < -70
    assert stats.dataset_size == 1500
    assert stats.last_grad_norm == pytest.approx(1.0 + 0.1 * math.sin(1499))


def test_advanced_stats_without_reward():
    log = [{"step": i, "loss": 1.0} for i in range(30)]
    stats = calculate_advanced_stats(log)
    assert stats.reward is None
    assert stats.reward_improvement is None
    assert stats.grad_norm is None
    assert stats.last_grad_norm is None


def test_advanced_stats_empty_log():
    stats = calculate_advanced_stats([])
    assert stats.loss is None
    assert stats.dataset_size == 0
