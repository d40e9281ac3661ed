"""Similarity search over normalised metric vectors."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, Union

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from .cancellation import CancellationToken, check
from .entities import Player
from .metrics import (
    all_bounds,
    metric_keys,
    metric_values,
    normalized_matrix,
    normalized_vector,
    percentile_rank,
    round_half_up,
)
from .names import normalize_name
from .positions import key_metrics, positions_overlap, similarity_metrics
from .settings import PLAY_STYLES_PATH, SettingsError, SimilaritySettings, load_category_weights, load_yaml_config

logger = logging.getLogger(__name__)

DISTANCES = ("euclidean", "weighted", "manhattan", "cosine")


@dataclass(frozen=True)
class SimilarityOptions:
    max_results: Optional[int] = None
    same_position_only: bool = False
    exclude_same_team: bool = False
    min_minutes: Optional[float] = None
    weights: Mapping[str, float] = field(default_factory=dict)
    distance: str = "euclidean"
    strategy: Union[str, Sequence[str]] = "position"
    include_breakdown: bool = False


@dataclass(frozen=True)
class SimilarityResult:
    player: Player
    score: int
    distance: float
    metric_count: int
    breakdown: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ReplacementResult:
    player: Player
    score: int
    distance: float
    metric_count: int
    replacement_score: int
    age_difference: float
    value_difference: float


@dataclass(frozen=True)
class PlayStyle:
    name: str
    metrics: Mapping[str, float]
    description: str = ""


@dataclass(frozen=True)
class PlayStyleMatch:
    style: str
    score: float
    description: str


@dataclass(frozen=True)
class MetricComparison:
    metric: str
    value_a: float
    value_b: float
    difference: float
    percent_difference: float
    winner: str


@dataclass(frozen=True)
class ComparisonSummary:
    wins_a: int
    wins_b: int
    ties: int
    advantage: str


def similarity_score(distance: float, metric_count: int, spread_factor: float = 0.6) -> int:
    """Map a distance to 0-100; ``spread_factor`` scales the theoretical max distance."""

    if metric_count <= 0:
        return 0
    scale = math.sqrt(metric_count) * spread_factor
    return max(0, min(100, round_half_up(100 * (1 - distance / scale))))


# Distances between a reference vector and one candidate vector -------------

def euclidean_distance(a: np.ndarray, b: np.ndarray, weights: np.ndarray) -> float:
    return float(np.sqrt(np.sum((a - b) ** 2)))


def weighted_distance(a: np.ndarray, b: np.ndarray, weights: np.ndarray) -> float:
    total = float(weights.sum())
    return float(np.sqrt(np.sum(weights * (a - b) ** 2) / (total or 1.0)))


def manhattan_distance(a: np.ndarray, b: np.ndarray, weights: np.ndarray) -> float:
    return float(np.sum(np.abs(a - b) * weights) / a.size)


def cosine_distance(a: np.ndarray, b: np.ndarray, weights: np.ndarray) -> float:
    if not np.any(a) or not np.any(b):
        return 1.0
    similarity = cosine_similarity(a.reshape(1, -1), b.reshape(1, -1))[0, 0]
    return float(max(0.0, 1.0 - similarity))


DISTANCE_FUNCTIONS: dict[str, Callable[[np.ndarray, np.ndarray, np.ndarray], float]] = {
    "euclidean": euclidean_distance,
    "weighted": weighted_distance,
    "manhattan": manhattan_distance,
    "cosine": cosine_distance,
}


# Metric selection strategies ------------------------------------------------

def position_strategy(reference: Player, pool: Sequence[Player], settings: SimilaritySettings) -> list[str]:
    """The fixed list for the reference's position family, limited to known metrics."""

    available = set(metric_keys([reference, *pool]))
    selected = [metric for metric in similarity_metrics(reference.position) if metric in available]
    return selected or sorted(available)


def strengths_strategy(reference: Player, pool: Sequence[Player], settings: SimilaritySettings) -> list[str]:
    """The reference's best non-zero metrics by percentile within the pool."""

    ranked = []
    for metric in metric_keys(pool):
        value = reference.metric(metric)
        if value <= 0:
            continue
        ranked.append((metric, percentile_rank(value, metric_values(pool, metric))))
    ranked.sort(key=lambda item: item[1], reverse=True)
    return [metric for metric, _ in ranked[: settings.top_metric_count]]


def all_metrics_strategy(reference: Player, pool: Sequence[Player], settings: SimilaritySettings) -> list[str]:
    return metric_keys(pool)


METRIC_STRATEGIES: dict[str, Callable[[Player, Sequence[Player], SimilaritySettings], list[str]]] = {
    "position": position_strategy,
    "strengths": strengths_strategy,
    "all": all_metrics_strategy,
}


def load_play_styles(path: Optional[Path] = None) -> dict[str, PlayStyle]:
    data = load_yaml_config(Path(path) if path else PLAY_STYLES_PATH)
    styles = {}
    for name, entry in data.items():
        try:
            metrics = {str(metric): float(weight) for metric, weight in entry["metrics"].items()}
        except (KeyError, AttributeError, TypeError, ValueError) as exc:
            raise SettingsError(f"Invalid play style {name!r}") from exc
        styles[str(name)] = PlayStyle(name=str(name), metrics=metrics, description=str(entry.get("description", "")))
    return styles


def _same_team(a: Player, b: Player) -> bool:
    if a.team_id is not None and a.team_id == b.team_id:
        return True
    return bool(a.team_name) and normalize_name(a.team_name) == normalize_name(b.team_name)


def _is_reference(reference: Player, candidate: Player) -> bool:
    return candidate.id == reference.id or (
        candidate.key == reference.key and normalize_name(candidate.team_name) == normalize_name(reference.team_name)
    )


class SimilarityEngine:
    """Ranks a candidate pool by closeness to a reference player."""

    def __init__(
        self,
        settings: Optional[SimilaritySettings] = None,
        category_weights: Optional[Mapping[str, float]] = None,
        play_styles: Optional[Mapping[str, PlayStyle]] = None,
    ) -> None:
        self.settings = settings or SimilaritySettings()
        self.category_weights = dict(category_weights) if category_weights is not None else load_category_weights()
        self.play_styles = dict(play_styles) if play_styles is not None else load_play_styles()

    def select_metrics(self, reference: Player, pool: Sequence[Player], strategy: Union[str, Sequence[str]]) -> list[str]:
        if not isinstance(strategy, str):
            return list(dict.fromkeys(strategy))
        try:
            selector = METRIC_STRATEGIES[strategy]
        except KeyError:
            raise ValueError(
                f"Unknown metric strategy {strategy!r}; expected one of {', '.join(METRIC_STRATEGIES)} or a metric list"
            ) from None
        return selector(reference, pool, self.settings)

    def _weights(self, metrics: Sequence[str], options: SimilarityOptions) -> np.ndarray:
        if options.distance == "weighted":
            return np.array(
                [options.weights.get(m) or self.category_weights.get(m, 1.0) for m in metrics],
                dtype=float,
            )
        return np.array([options.weights.get(m) or 1.0 for m in metrics], dtype=float)

    def _eligible(self, reference: Player, candidate: Player, options: SimilarityOptions, min_minutes: float) -> bool:
        if _is_reference(reference, candidate):
            return False
        if options.same_position_only and not positions_overlap(reference.positions, candidate.positions):
            return False
        if options.exclude_same_team and _same_team(reference, candidate):
            return False
        return candidate.minutes_played >= min_minutes

    def find_similar(
        self,
        reference: Player,
        pool: Sequence[Player],
        options: Optional[SimilarityOptions] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> list[SimilarityResult]:
        """Top candidates by similarity score, best first; ties keep pool order.

        Metrics are bounded over the whole ``pool`` before any filtering, so
        scores do not depend on which candidates the filters drop.
        """

        options = options or SimilarityOptions()
        if options.distance not in DISTANCE_FUNCTIONS:
            raise ValueError(f"Unknown distance {options.distance!r}; expected one of {', '.join(DISTANCES)}")
        max_results = options.max_results if options.max_results is not None else self.settings.max_results
        if max_results < 1:
            raise ValueError("max_results must be positive")
        min_minutes = options.min_minutes if options.min_minutes is not None else self.settings.min_minutes

        metrics = self.select_metrics(reference, pool, options.strategy)
        if not metrics or not pool:
            return []

        metric_bounds = all_bounds(pool, metrics)
        reference_vector = normalized_vector(reference, metrics, metric_bounds)
        candidates = [p for p in pool if self._eligible(reference, p, options, min_minutes)]
        matrix = normalized_matrix(candidates, metrics, metric_bounds)
        weights = self._weights(metrics, options)
        distance_fn = DISTANCE_FUNCTIONS[options.distance]
        with_breakdown = options.include_breakdown or options.distance == "weighted"

        results = []
        for candidate, vector in zip(candidates, matrix):
            check(cancel, "similarity search")
            distance = distance_fn(reference_vector, vector, weights)
            breakdown = (
                {m: round(abs(float(d)), 3) for m, d in zip(metrics, reference_vector - vector)}
                if with_breakdown
                else {}
            )
            results.append(
                SimilarityResult(
                    player=candidate,
                    score=similarity_score(distance, len(metrics), self.settings.spread_factor),
                    distance=distance,
                    metric_count=len(metrics),
                    breakdown=breakdown,
                )
            )

        results.sort(key=lambda result: result.score, reverse=True)
        logger.debug(
            "Similarity for %s: %s candidates, %s metrics, %s distance",
            reference.name,
            len(candidates),
            len(metrics),
            options.distance,
        )
        return results[:max_results]

    def find_position_specific(
        self,
        reference: Player,
        pool: Sequence[Player],
        options: Optional[SimilarityOptions] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> list[SimilarityResult]:
        """Weighted search over all metrics, doubling the position's key metrics."""

        options = options or SimilarityOptions()
        available = set(metric_keys(pool))
        weights = {
            metric: self.settings.key_metric_weight
            for metric in key_metrics(reference.position)
            if metric in available
        }
        return self.find_similar(
            reference,
            pool,
            replace(options, weights=weights, distance="weighted", strategy="all"),
            cancel=cancel,
        )

    def find_replacements(
        self,
        reference: Player,
        pool: Sequence[Player],
        *,
        max_age: float = 28,
        max_market_value: Optional[float] = None,
        prefer_younger: bool = True,
        min_score: int = 60,
        cancel: Optional[CancellationToken] = None,
    ) -> list[ReplacementResult]:
        """Similar players from other clubs, rewarded for being younger or cheaper."""

        similar = self.find_position_specific(
            reference,
            pool,
            SimilarityOptions(max_results=50, same_position_only=True, exclude_same_team=True, min_minutes=900),
            cancel=cancel,
        )
        reference_value = reference.market_value or 1.0
        replacements = []
        for result in similar:
            candidate = result.player
            age = candidate.age or 99.0
            if age > max_age:
                continue
            if max_market_value is not None and candidate.market_value > max_market_value:
                continue
            if result.score < min_score:
                continue

            bonus = 0
            if prefer_younger and candidate.age < reference.age:
                bonus += min(10, round_half_up((reference.age - candidate.age) * 2))
            candidate_value = candidate.market_value or 1.0
            if candidate_value < reference_value:
                bonus += round_half_up((1 - candidate_value / reference_value) * 10)

            replacements.append(
                ReplacementResult(
                    player=candidate,
                    score=result.score,
                    distance=result.distance,
                    metric_count=result.metric_count,
                    replacement_score=min(100, result.score + bonus),
                    age_difference=candidate.age - reference.age,
                    value_difference=candidate_value - reference_value,
                )
            )
        replacements.sort(key=lambda item: item.replacement_score, reverse=True)
        return replacements

    def identify_play_style(self, player: Player) -> list[PlayStyleMatch]:
        """Weighted average of raw values per style, over the metrics the player has."""

        matches = []
        for style in self.play_styles.values():
            present = {m: w for m, w in style.metrics.items() if m in player.metrics}
            total = sum(present.values())
            if total <= 0:
                continue
            score = sum(player.metric(m) * w for m, w in present.items()) / total
            matches.append(PlayStyleMatch(style=style.name, score=round(score, 2), description=style.description))
        return sorted(matches, key=lambda match: match.score, reverse=True)

    def find_similar_play_style(
        self,
        reference: Player,
        pool: Sequence[Player],
        style: str,
        max_results: int = 10,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> list[SimilarityResult]:
        definition = self.play_styles.get(style)
        if definition is None:
            logger.warning("Unknown play style %r, falling back to plain similarity", style)
            return self.find_similar(reference, pool, SimilarityOptions(max_results=max_results), cancel=cancel)
        options = SimilarityOptions(
            max_results=max_results,
            weights=dict(definition.metrics),
            distance="weighted",
            strategy="all",
        )
        return self.find_similar(reference, pool, options, cancel=cancel)


def compare_players(player_a: Player, player_b: Player, metrics: Sequence[str]) -> list[MetricComparison]:
    comparisons = []
    for metric in metrics:
        a = player_a.metric(metric)
        b = player_b.metric(metric)
        diff = a - b
        comparisons.append(
            MetricComparison(
                metric=metric,
                value_a=a,
                value_b=b,
                difference=round(diff, 2),
                percent_difference=round(diff / b * 100, 1) if b != 0 else 0.0,
                winner="A" if diff > 0 else "B" if diff < 0 else "tie",
            )
        )
    return comparisons


def comparison_summary(comparisons: Sequence[MetricComparison]) -> ComparisonSummary:
    wins_a = sum(1 for c in comparisons if c.winner == "A")
    wins_b = sum(1 for c in comparisons if c.winner == "B")
    ties = len(comparisons) - wins_a - wins_b
    advantage = "A" if wins_a > wins_b else "B" if wins_b > wins_a else "even"
    return ComparisonSummary(wins_a=wins_a, wins_b=wins_b, ties=ties, advantage=advantage)
