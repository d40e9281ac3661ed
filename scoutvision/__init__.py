"""Scouting analytics engine over Wyscout-style player, team and shot data."""

from .cancellation import CancellationToken, OperationCancelled
from .clustering import Cluster, ClusterConfig, ClusteringEngine
from .engine import DatasetStats, ScoutEngine
from .entities import Player, Shot, Team
from .metrics import MetricBounds, bounds, normalize, percentile_rank, z_score
from .names import (
    ExactNameResolver,
    FuzzyNameResolver,
    NameResolver,
    SubstringNameResolver,
    make_resolver,
    normalize_name,
)
from .query import PlayerFilters, QueryService, TTLCache
from .roles import RoleDefinition, RoleNotFoundError, RoleScore, RoleScorer
from .settings import EngineSettings, SettingsError, load_settings
from .similarity import SimilarityEngine, SimilarityOptions, SimilarityResult
from .store import EntityStore, LoadReport

__version__ = "0.3.0"

__all__ = [
    "CancellationToken",
    "Cluster",
    "ClusterConfig",
    "ClusteringEngine",
    "DatasetStats",
    "EngineSettings",
    "EntityStore",
    "ExactNameResolver",
    "FuzzyNameResolver",
    "LoadReport",
    "MetricBounds",
    "NameResolver",
    "OperationCancelled",
    "Player",
    "PlayerFilters",
    "QueryService",
    "RoleDefinition",
    "RoleNotFoundError",
    "RoleScore",
    "RoleScorer",
    "ScoutEngine",
    "SettingsError",
    "Shot",
    "SimilarityEngine",
    "SimilarityOptions",
    "SimilarityResult",
    "SubstringNameResolver",
    "TTLCache",
    "Team",
    "bounds",
    "load_settings",
    "make_resolver",
    "normalize",
    "normalize_name",
    "percentile_rank",
    "z_score",
]
