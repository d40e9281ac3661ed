"""Engine context tying one data load to the scoring and search services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional, Sequence

from .cancellation import CancellationToken
from .clustering import Cluster, ClusterConfig, ClusteringEngine
from .entities import Player
from .names import ResolverSpec
from .query import Clock, QueryService
from .roles import RoleDefinition, RoleScore, RoleScorer
from .settings import EngineSettings, load_settings
from .similarity import SimilarityEngine, SimilarityOptions, SimilarityResult
from .store import EntityStore, LoadReport, Row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetStats:
    player_count: int
    team_count: int
    shot_count: int
    leagues: list[str]
    seasons: list[str]
    positions: list[str]
    nationalities: list[str]
    metric_count: int


@dataclass(frozen=True)
class _Snapshot:
    store: EntityStore
    query: QueryService


class ScoutEngine:
    """One independent dataset plus the services that read it.

    Each ``load`` builds a fresh store and query service and replaces the
    previous pair in a single assignment; several engines can coexist.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        clock: Optional[Clock] = None,
        roles: Optional[Mapping[str, RoleDefinition]] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._clock = clock
        self.roles = RoleScorer(roles)
        self.similarity = SimilarityEngine(self.settings.similarity)
        self.clusters = ClusteringEngine(self.settings.clustering)
        self._snapshot = self._empty_snapshot()

    def _empty_snapshot(self) -> _Snapshot:
        store = EntityStore()
        return _Snapshot(store=store, query=QueryService(store, self.settings.query, clock=self._clock))

    def load(
        self,
        players: Iterable[Row] = (),
        teams: Iterable[Row] = (),
        shots: Iterable[Row] = (),
        *,
        resolver: ResolverSpec = None,
        create_missing_teams: bool = True,
    ) -> LoadReport:
        store = EntityStore()
        report = store.load(
            players,
            teams,
            shots,
            resolver=resolver,
            create_missing_teams=create_missing_teams,
        )
        query = QueryService(store, self.settings.query, clock=self._clock)
        self._snapshot = _Snapshot(store=store, query=query)
        return report

    def reset(self) -> None:
        self._snapshot = self._empty_snapshot()
        logger.info("Engine reset")

    @property
    def store(self) -> EntityStore:
        return self._snapshot.store

    @property
    def query(self) -> QueryService:
        return self._snapshot.query

    @property
    def report(self) -> LoadReport:
        return self._snapshot.store.report

    @property
    def has_data(self) -> bool:
        return not self._snapshot.store.is_empty

    def dataset_stats(self) -> DatasetStats:
        players = self.store.players()
        return DatasetStats(
            player_count=len(players),
            team_count=len(self.query.available_teams()),
            shot_count=len(self.store.shots()),
            leagues=sorted({p.league for p in players if p.league}),
            seasons=self.query.available_seasons(),
            positions=self.query.available_positions(),
            nationalities=sorted({p.nationality for p in players if p.nationality}),
            metric_count=len(self.query.metric_keys()),
        )

    # Convenience entry points for the presentation layer ---------------------

    def player(self, name_or_id: str, team: Optional[str] = None) -> Optional[Player]:
        return self.store.get_player(name_or_id) or self.store.player_by_name(name_or_id, team)

    def best_roles(self, player: Player, cohort_mode: str = "all", limit: int = 3) -> list[RoleScore]:
        return self.roles.best_roles(player, self.query.cohort(player, cohort_mode), limit=limit)

    def similar_players(
        self,
        player: Player,
        options: Optional[SimilarityOptions] = None,
        *,
        pool: Optional[Sequence[Player]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> list[SimilarityResult]:
        candidates = pool if pool is not None else self.store.players()
        return self.similarity.find_similar(player, candidates, options, cancel=cancel)

    def cluster_players(
        self,
        metrics: Sequence[str],
        *,
        players: Optional[Sequence[Player]] = None,
        config: Optional[ClusterConfig] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Cluster]:
        pool = players if players is not None else self.store.players()
        if config is None:
            config = self.clusters.default_config(metrics)
        elif not config.metrics:
            config = replace(config, metrics=tuple(metrics))
        return self.clusters.cluster(pool, config, cancel=cancel)
