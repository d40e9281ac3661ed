"""K-means clustering of players over normalised metric vectors."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from sklearn.metrics.pairwise import euclidean_distances

from .cancellation import CancellationToken, check
from .entities import Player
from .metrics import MetricBounds, all_bounds, normalize, normalized_matrix
from .settings import ClusteringSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterConfig:
    k: int = 5
    max_iterations: int = 50
    metrics: tuple[str, ...] = ()
    seed: Optional[int] = 42
    label_threshold: float = 0.7

    @classmethod
    def from_settings(cls, settings: ClusteringSettings, metrics: Sequence[str] = ()) -> "ClusterConfig":
        return cls(
            k=settings.k,
            max_iterations=settings.max_iterations,
            metrics=tuple(metrics),
            seed=settings.seed,
            label_threshold=settings.label_threshold,
        )


@dataclass(frozen=True)
class Cluster:
    cluster_id: int
    centroid: tuple[float, ...]
    players: tuple[Player, ...]
    label: str

    @property
    def size(self) -> int:
        return len(self.players)


@dataclass(frozen=True)
class KMeansResult:
    centroids: np.ndarray
    assignments: np.ndarray
    iterations: int
    converged: bool


def kmeans(
    vectors: np.ndarray,
    k: int,
    max_iterations: int,
    rng: np.random.Generator,
    cancel: Optional[CancellationToken] = None,
) -> KMeansResult:
    """Lloyd iterations seeded from ``k`` distinct input vectors.

    A centroid whose cluster empties keeps its previous position.
    """

    order = rng.permutation(len(vectors))
    centroids = vectors[order[:k]].astype(float).copy()
    assignments = np.full(len(vectors), -1, dtype=int)
    converged = False
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        check(cancel, "clustering")
        # argmin keeps the lowest centroid index on ties.
        updated = euclidean_distances(vectors, centroids).argmin(axis=1)
        if np.array_equal(updated, assignments):
            converged = True
            break
        assignments = updated
        for index in range(k):
            members = vectors[assignments == index]
            if len(members):
                centroids[index] = members.mean(axis=0)

    return KMeansResult(centroids=centroids, assignments=assignments, iterations=iterations, converged=converged)


def cluster_label(
    players: Sequence[Player],
    metrics: Sequence[str],
    metric_bounds: dict[str, MetricBounds],
    threshold: float = 0.7,
) -> str:
    """``High X/Y`` from standout metrics, else the dominant primary position."""

    if not players:
        return "Empty"
    standout = []
    for metric in metrics:
        mean = sum(player.metric(metric) for player in players) / len(players)
        if normalize(mean, metric_bounds[metric]) > threshold:
            standout.append(metric.split(" ")[0])
    if standout:
        return f"High {'/'.join(standout[:2])}"

    positions = Counter(player.primary_position for player in players if player.primary_position)
    if positions:
        dominant, _ = positions.most_common(1)[0]
        return f"{dominant} Group"
    return "Mixed"


class ClusteringEngine:
    def __init__(self, settings: Optional[ClusteringSettings] = None) -> None:
        self.settings = settings or ClusteringSettings()

    def default_config(self, metrics: Sequence[str] = ()) -> ClusterConfig:
        return ClusterConfig.from_settings(self.settings, metrics)

    def cluster(
        self,
        players: Sequence[Player],
        config: Optional[ClusterConfig] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Cluster]:
        """Non-empty clusters sorted by size; ``[]`` when k exceeds the pool or no metrics."""

        config = config or self.default_config()
        if config.max_iterations < 1:
            raise ValueError("max_iterations must be positive")
        metrics = list(dict.fromkeys(config.metrics))
        if config.k < 1 or len(players) < config.k or not metrics:
            return []

        metric_bounds = all_bounds(players, metrics)
        vectors = normalized_matrix(players, metrics, metric_bounds)
        rng = np.random.default_rng(config.seed)
        result = kmeans(vectors, config.k, config.max_iterations, rng, cancel)

        clusters = []
        for index in range(config.k):
            members = tuple(p for p, assigned in zip(players, result.assignments) if assigned == index)
            if not members:
                continue
            clusters.append(
                Cluster(
                    cluster_id=index,
                    centroid=tuple(float(v) for v in result.centroids[index]),
                    players=members,
                    label=cluster_label(members, metrics, metric_bounds, config.label_threshold),
                )
            )
        clusters.sort(key=lambda cluster: cluster.size, reverse=True)
        logger.info(
            "Clustered %s players into %s groups in %s iterations (converged=%s)",
            len(players),
            len(clusters),
            result.iterations,
            result.converged,
        )
        return clusters
