import math

import pytest

from scoutvision.metrics import (
    NEUTRAL_BOUNDS,
    MetricBounds,
    bounds,
    bounds_from_values,
    metric_keys,
    normalize,
    normalized_matrix,
    percentile_rank,
    round_half_up,
    z_score,
)


def test_percentile_rank_uses_mid_rank():
    assert percentile_rank(3, [1, 2, 3, 4]) == 63


def test_percentile_rank_extremes_and_empty():
    assert percentile_rank(10, [1, 2, 3]) == 100
    assert percentile_rank(0, [1, 2, 3]) == 0
    assert percentile_rank(5, []) == 50


def test_percentile_rank_all_equal_is_fifty():
    assert percentile_rank(2, [2, 2, 2, 2]) == 50


def test_round_half_up_rounds_point_five_up():
    assert round_half_up(62.5) == 63
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_bounds_of_cohort(make_player):
    cohort = [make_player(f"P{i}", {"Goals": float(i)}) for i in range(1, 5)]
    result = bounds(cohort, "Goals")
    assert result.min == 1.0
    assert result.max == 4.0
    assert result.mean == pytest.approx(2.5)
    assert result.std_dev == pytest.approx(math.sqrt(1.25))


def test_bounds_empty_cohort_is_neutral():
    assert bounds([], "Goals") == NEUTRAL_BOUNDS
    assert NEUTRAL_BOUNDS == MetricBounds(0.0, 1.0, 0.0, 1.0)


def test_bounds_zero_width_range_is_widened():
    result = bounds_from_values([3.0, 3.0, 3.0])
    assert result.min == 3.0
    assert result.max == 4.0
    assert result.std_dev == 0.0
    assert z_score(3.0, result) == 0.0


def test_bounds_ignore_non_finite_values():
    result = bounds_from_values([1.0, float("nan"), 3.0])
    assert (result.min, result.max) == (1.0, 3.0)


def test_missing_metric_counts_as_zero(make_player):
    cohort = [make_player("A", {"Goals": 2.0}), make_player("B")]
    assert bounds(cohort, "Goals").min == 0.0
    assert bounds(cohort, "Unknown metric").max == 1.0


def test_normalize_is_clamped():
    span = MetricBounds(min=0.0, max=10.0, mean=5.0, std_dev=2.0)
    assert normalize(5.0, span) == 0.5
    assert normalize(-3.0, span) == 0.0
    assert normalize(42.0, span) == 1.0


def test_z_score():
    span = MetricBounds(min=0.0, max=10.0, mean=5.0, std_dev=2.0)
    assert z_score(9.0, span) == pytest.approx(2.0)


def test_metric_keys_is_sorted_union(make_player):
    cohort = [make_player("A", {"b": 1.0}), make_player("B", {"a": 1.0, "b": 2.0})]
    assert metric_keys(cohort) == ["a", "b"]


def test_normalized_matrix_stays_in_unit_range(make_player):
    cohort = [make_player(f"P{i}", {"x": float(i), "y": 5.0}) for i in range(3)]
    metrics = ["x", "y"]
    matrix = normalized_matrix(cohort, metrics, {m: bounds(cohort, m) for m in metrics})
    assert matrix.shape == (3, 2)
    assert matrix.min() >= 0.0
    assert matrix.max() <= 1.0
    assert list(matrix[:, 0]) == [0.0, 0.5, 1.0]


def test_percentile_rank_is_monotonic():
    cohort = [0.2, 1.5, 1.5, 3.0, 7.0]
    ranks = [percentile_rank(v, cohort) for v in (0.0, 0.2, 1.0, 1.5, 2.0, 3.0, 7.0, 9.0)]
    assert ranks == sorted(ranks)
