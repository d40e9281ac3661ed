"""Statistical primitives over a cohort of players.

All functions are pure. Degenerate inputs (empty cohorts, zero variance) give
fixed neutral values instead of NaN.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from .entities import Player

NEUTRAL_PERCENTILE = 50


@dataclass(frozen=True)
class MetricBounds:
    min: float
    max: float
    mean: float
    std_dev: float

    @property
    def span(self) -> float:
        return self.max - self.min


NEUTRAL_BOUNDS = MetricBounds(min=0.0, max=1.0, mean=0.0, std_dev=1.0)


def round_half_up(value: float) -> int:
    """Round .5 away from the floor, matching how percentiles are reported."""

    return int(math.floor(value + 0.5))


def metric_values(cohort: Sequence[Player], metric: str) -> np.ndarray:
    return np.fromiter((player.metric(metric) for player in cohort), dtype=float, count=len(cohort))


def bounds_from_values(values: Iterable[float]) -> MetricBounds:
    array = np.fromiter(values, dtype=float)
    array = array[np.isfinite(array)]
    if array.size == 0:
        return NEUTRAL_BOUNDS
    low = float(array.min())
    high = float(array.max())
    if high == low:
        high = low + 1.0
    return MetricBounds(
        min=low,
        max=high,
        mean=float(array.mean()),
        std_dev=float(array.std()),
    )


def bounds(cohort: Sequence[Player], metric: str) -> MetricBounds:
    """Min, max, mean and population standard deviation of ``metric``."""

    if not cohort:
        return NEUTRAL_BOUNDS
    return bounds_from_values(metric_values(cohort, metric))


def all_bounds(cohort: Sequence[Player], metrics: Iterable[str]) -> dict[str, MetricBounds]:
    return {metric: bounds(cohort, metric) for metric in metrics}


def normalize(value: float, metric_bounds: MetricBounds) -> float:
    span = metric_bounds.span
    if span <= 0:
        return 0.5
    scaled = (value - metric_bounds.min) / span
    return float(min(1.0, max(0.0, scaled)))


def z_score(value: float, metric_bounds: MetricBounds) -> float:
    if metric_bounds.std_dev == 0:
        return 0.0
    return (value - metric_bounds.mean) / metric_bounds.std_dev


def percentile_rank(value: float, values: Iterable[float]) -> int:
    """Mid-rank percentile: ``(below + 0.5 * equal) / n * 100``, rounded."""

    array = np.fromiter(values, dtype=float)
    if array.size == 0:
        return NEUTRAL_PERCENTILE
    below = int(np.count_nonzero(array < value))
    equal = int(np.count_nonzero(array == value))
    rank = round_half_up((below + 0.5 * equal) / array.size * 100)
    return max(0, min(100, rank))


def metric_keys(cohort: Iterable[Player]) -> list[str]:
    """Sorted union of metric names present across ``cohort``."""

    keys: set[str] = set()
    for player in cohort:
        keys.update(player.metrics)
    return sorted(keys)


def normalized_matrix(
    cohort: Sequence[Player],
    metrics: Sequence[str],
    metric_bounds: dict[str, MetricBounds],
) -> np.ndarray:
    """Players x metrics matrix scaled into [0, 1] with the given bounds."""

    if not cohort or not metrics:
        return np.zeros((len(cohort), len(metrics)))
    raw = np.array([[player.metric(metric) for metric in metrics] for player in cohort], dtype=float)
    lows = np.array([metric_bounds[m].min for m in metrics], dtype=float)
    spans = np.array([metric_bounds[m].span for m in metrics], dtype=float)
    spans[spans <= 0] = 1.0
    return np.clip((raw - lows) / spans, 0.0, 1.0)


def normalized_vector(
    player: Player,
    metrics: Sequence[str],
    metric_bounds: dict[str, MetricBounds],
) -> np.ndarray:
    return np.array([normalize(player.metric(m), metric_bounds[m]) for m in metrics], dtype=float)
