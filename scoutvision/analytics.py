"""Percentile profiles and cohort-level statistics for scouting reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .entities import Player
from .metrics import (
    NEUTRAL_PERCENTILE,
    bounds,
    metric_keys,
    metric_values,
    percentile_rank,
    round_half_up,
    z_score,
)
from .positions import METRIC_GROUPS, value_metrics

logger = logging.getLogger("scoutvision.analytics")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
logger.setLevel(logging.INFO)
logger.propagate = False

TREND_THRESHOLD = 5.0


@dataclass(frozen=True)
class PercentileAnalysis:
    metric: str
    value: float
    percentile: int
    z_score: float
    cohort_mean: float
    cohort_std: float
    cohort_size: int
    rank: int


@dataclass(frozen=True)
class PercentileProfile:
    player: Player
    percentiles: dict[str, int] = field(default_factory=dict)
    z_scores: dict[str, float] = field(default_factory=dict)
    averages: dict[str, float] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            {
                "metric": list(self.percentiles),
                "value": [self.player.metric(m) for m in self.percentiles],
                "percentile": list(self.percentiles.values()),
                "z_score": [self.z_scores[m] for m in self.percentiles],
                "cohort_mean": [self.averages[m] for m in self.percentiles],
            }
        )
        return frame.sort_values("percentile", ascending=False, kind="stable").reset_index(drop=True)


@dataclass(frozen=True)
class StrengthReport:
    strengths: list[str]
    weaknesses: list[str]
    average: list[str]


@dataclass(frozen=True)
class DistributionBin:
    low: float
    high: float
    count: int
    percentage: float

    @property
    def label(self) -> str:
        return f"{self.low:.1f}-{self.high:.1f}"


@dataclass(frozen=True)
class Outlier:
    player: Player
    value: float
    z_score: float


@dataclass(frozen=True)
class PositionValue:
    score: int
    breakdown: dict[str, int]


@dataclass(frozen=True)
class Prospect:
    player: Player
    score: int
    value_ratio: float


@dataclass(frozen=True)
class SeasonTrend:
    metric: str
    current: float
    previous: Optional[float]
    change: Optional[float]
    trend: str


def analyze_percentiles(
    player: Player,
    cohort: Sequence[Player],
    metrics: Optional[Iterable[str]] = None,
) -> list[PercentileAnalysis]:
    """Per-metric percentile, z-score and rank of ``player`` within ``cohort``."""

    keys = list(metrics) if metrics is not None else metric_keys(cohort)
    if not cohort:
        return []
    analyses = []
    for metric in keys:
        value = player.metric(metric)
        values = metric_values(cohort, metric)
        metric_bounds = bounds(cohort, metric)
        analyses.append(
            PercentileAnalysis(
                metric=metric,
                value=value,
                percentile=percentile_rank(value, values),
                z_score=round(z_score(value, metric_bounds), 2),
                cohort_mean=round(metric_bounds.mean, 2),
                cohort_std=round(metric_bounds.std_dev, 2),
                cohort_size=len(values),
                rank=int(np.count_nonzero(values > value)) + 1,
            )
        )
    return sorted(analyses, key=lambda item: item.percentile, reverse=True)


def percentile_profile(
    player: Player,
    cohort: Sequence[Player],
    metrics: Optional[Iterable[str]] = None,
) -> PercentileProfile:
    keys = list(metrics) if metrics is not None else metric_keys(cohort)
    percentiles: dict[str, int] = {}
    z_scores: dict[str, float] = {}
    averages: dict[str, float] = {}
    for metric in keys:
        value = player.metric(metric)
        metric_bounds = bounds(cohort, metric)
        percentiles[metric] = percentile_rank(value, metric_values(cohort, metric))
        z_scores[metric] = round(z_score(value, metric_bounds), 2)
        averages[metric] = round(metric_bounds.mean, 2)
    logger.debug("Percentile profile for %s over %s metrics", player.name, len(keys))
    return PercentileProfile(player=player, percentiles=percentiles, z_scores=z_scores, averages=averages)


def strengths_and_weaknesses(
    profile: PercentileProfile,
    strong: float = 75,
    weak: float = 25,
) -> StrengthReport:
    strengths, weaknesses, average = [], [], []
    for metric, percentile in profile.percentiles.items():
        if percentile >= strong:
            strengths.append(metric)
        elif percentile <= weak:
            weaknesses.append(metric)
        else:
            average.append(metric)
    return StrengthReport(strengths=strengths, weaknesses=weaknesses, average=average)


def category_scores(
    profile: PercentileProfile,
    groups: Mapping[str, Sequence[str]] = METRIC_GROUPS,
) -> dict[str, float]:
    """Mean percentile per metric group, skipping groups with no data."""

    scores: dict[str, float] = {}
    for group, metrics in groups.items():
        values = [profile.percentiles[m] for m in metrics if m in profile.percentiles]
        if values:
            scores[group] = float(np.mean(values))
    return scores


def distribution(cohort: Sequence[Player], metric: str, bins: int = 10) -> list[DistributionBin]:
    """Equal-width histogram; the last bin is closed on the right."""

    if bins < 1:
        raise ValueError("bins must be positive")
    values = metric_values(cohort, metric)
    if values.size == 0:
        return []
    low, high = float(values.min()), float(values.max())
    width = (high - low) / bins
    result = []
    for index in range(bins):
        lower = low + index * width
        upper = low + (index + 1) * width
        if index == bins - 1:
            count = int(np.count_nonzero((values >= lower) & (values <= upper)))
        else:
            count = int(np.count_nonzero((values >= lower) & (values < upper)))
        result.append(
            DistributionBin(
                low=lower,
                high=upper,
                count=count,
                percentage=round(count / values.size * 100, 1),
            )
        )
    return result


def detect_outliers(cohort: Sequence[Player], metric: str, threshold: float = 2.5) -> list[Outlier]:
    metric_bounds = bounds(cohort, metric)
    outliers = []
    for player in cohort:
        value = player.metric(metric)
        score = z_score(value, metric_bounds)
        if abs(score) > threshold:
            outliers.append(Outlier(player=player, value=value, z_score=round(score, 2)))
    return sorted(outliers, key=lambda item: abs(item.z_score), reverse=True)


def correlation(cohort: Sequence[Player], metric_a: str, metric_b: str) -> float:
    """Pearson correlation rounded to 3 decimals; 0 when undefined."""

    if len(cohort) < 3:
        return 0.0
    a = metric_values(cohort, metric_a)
    b = metric_values(cohort, metric_b)
    n = a.size
    numerator = n * float(np.dot(a, b)) - float(a.sum()) * float(b.sum())
    denominator = (n * float(np.dot(a, a)) - float(a.sum()) ** 2) * (n * float(np.dot(b, b)) - float(b.sum()) ** 2)
    if denominator <= 1e-12:
        return 0.0
    return round(numerator / float(np.sqrt(denominator)), 3)


def correlated_metrics(
    cohort: Sequence[Player],
    target: str,
    metrics: Optional[Iterable[str]] = None,
    top_n: int = 5,
) -> list[tuple[str, float]]:
    keys = list(metrics) if metrics is not None else metric_keys(cohort)
    scored = [(metric, correlation(cohort, target, metric)) for metric in keys if metric != target]
    scored.sort(key=lambda item: abs(item[1]), reverse=True)
    return scored[:top_n]


def correlation_matrix(cohort: Sequence[Player], metrics: Sequence[str]) -> pd.DataFrame:
    """Pairwise Pearson matrix; undefined pairs are filled with 0."""

    frame = pd.DataFrame({metric: metric_values(cohort, metric) for metric in metrics})
    return frame.corr(method="pearson").fillna(0.0)


def position_value(player: Player, cohort: Sequence[Player]) -> PositionValue:
    """Mean percentile over the metrics that matter for the player's position."""

    selected = value_metrics(player.position, metric_keys(cohort))
    breakdown = {
        metric: percentile_rank(player.metric(metric), metric_values(cohort, metric))
        for metric in selected
    }
    if not breakdown:
        return PositionValue(score=NEUTRAL_PERCENTILE, breakdown={})
    return PositionValue(score=round_half_up(sum(breakdown.values()) / len(breakdown)), breakdown=breakdown)


def high_potential_prospects(
    cohort: Sequence[Player],
    max_age: float = 23,
    min_score: float = 70,
    min_age: float = 16,
) -> list[Prospect]:
    """Young players scoring well for their position, best value per million first."""

    prospects = []
    for player in cohort:
        if not min_age <= player.age <= max_age:
            continue
        score = position_value(player, cohort).score
        if score < min_score:
            continue
        millions = (player.market_value or 1.0) / 1_000_000
        prospects.append(Prospect(player=player, score=score, value_ratio=score / millions))
    logger.info("Found %s prospects aged <= %s", len(prospects), max_age)
    return sorted(prospects, key=lambda item: item.value_ratio, reverse=True)


def compare_seasons(
    current: Player,
    previous: Optional[Player],
    metrics: Iterable[str],
) -> list[SeasonTrend]:
    trends = []
    for metric in metrics:
        now = current.metric(metric)
        before = previous.metric(metric) if previous is not None else None
        change = None
        trend = "stable"
        if before:
            change = (now - before) / before * 100
            if change > TREND_THRESHOLD:
                trend = "up"
            elif change < -TREND_THRESHOLD:
                trend = "down"
        trends.append(
            SeasonTrend(
                metric=metric,
                current=round(now, 2),
                previous=round(before, 2) if before is not None else None,
                change=round(change, 1) if change is not None else None,
                trend=trend,
            )
        )
    return trends
