"""Configuration loading for the scouting engine."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

PACKAGE_ROOT = Path(__file__).resolve().parent
CONFIG_DIR = PACKAGE_ROOT / "config"
SETTINGS_PATH = CONFIG_DIR / "settings.toml"
ROLES_PATH = CONFIG_DIR / "roles.yaml"
PLAY_STYLES_PATH = CONFIG_DIR / "play_styles.yaml"
METRIC_CATEGORIES_PATH = CONFIG_DIR / "metric_categories.yaml"


class SettingsError(ValueError):
    """Raised when a configuration file is malformed."""


@dataclass(frozen=True)
class QuerySettings:
    cache_ttl_seconds: float = 60.0
    search_limit: int = 15
    player_search_limit: int = 50


@dataclass(frozen=True)
class SimilaritySettings:
    min_minutes: float = 450.0
    max_results: int = 10
    spread_factor: float = 0.6
    top_metric_count: int = 8
    key_metric_weight: float = 2.0


@dataclass(frozen=True)
class ClusteringSettings:
    k: int = 5
    max_iterations: int = 50
    seed: Optional[int] = 42
    label_threshold: float = 0.7


@dataclass(frozen=True)
class EngineSettings:
    query: QuerySettings = field(default_factory=QuerySettings)
    similarity: SimilaritySettings = field(default_factory=SimilaritySettings)
    clustering: ClusteringSettings = field(default_factory=ClusteringSettings)


def _load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _load_toml(path: Path) -> dict:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _to_int(raw: Any) -> int:
    if isinstance(raw, bool):
        raise TypeError("booleans are not integers")
    if isinstance(raw, int):
        return raw
    value = float(raw)
    if not value.is_integer():
        raise ValueError(f"{raw!r} is not a whole number")
    return int(value)


def _build_section(cls: type, name: str, data: Mapping[str, Any]) -> Any:
    if not isinstance(data, Mapping):
        raise SettingsError(f"[{name}] must be a table, got {type(data).__name__}")
    known = {item.name: item for item in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise SettingsError(f"Unknown keys in [{name}]: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, raw in data.items():
        default = getattr(cls(), key)
        if raw is None:
            values[key] = None
            continue
        try:
            values[key] = float(raw) if isinstance(default, float) else _to_int(raw)
        except (TypeError, ValueError) as exc:
            raise SettingsError(f"Invalid value for {name}.{key}: {raw!r}") from exc
    return cls(**values)


def settings_from_mapping(data: Mapping[str, Any]) -> EngineSettings:
    unknown = sorted(set(data) - {"query", "similarity", "clustering"})
    if unknown:
        raise SettingsError(f"Unknown settings tables: {', '.join(unknown)}")
    settings = EngineSettings(
        query=_build_section(QuerySettings, "query", data.get("query", {})),
        similarity=_build_section(SimilaritySettings, "similarity", data.get("similarity", {})),
        clustering=_build_section(ClusteringSettings, "clustering", data.get("clustering", {})),
    )
    # TOML has no null; a negative seed asks for unseeded clustering.
    if settings.clustering.seed is not None and settings.clustering.seed < 0:
        settings = replace(settings, clustering=replace(settings.clustering, seed=None))
    _validate(settings)
    return settings


def _validate(settings: EngineSettings) -> None:
    if settings.query.cache_ttl_seconds < 0:
        raise SettingsError("query.cache_ttl_seconds must be >= 0")
    if settings.query.search_limit < 1 or settings.query.player_search_limit < 1:
        raise SettingsError("search limits must be positive")
    if settings.similarity.spread_factor <= 0:
        raise SettingsError("similarity.spread_factor must be > 0")
    if settings.similarity.max_results < 1:
        raise SettingsError("similarity.max_results must be positive")
    if settings.clustering.max_iterations < 1:
        raise SettingsError("clustering.max_iterations must be positive")


def load_settings_file(path: Union[str, Path]) -> EngineSettings:
    path = Path(path)
    try:
        data = _load_toml(path)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"Cannot parse settings file {path}: {exc}") from exc
    return settings_from_mapping(data)


@lru_cache(maxsize=1)
def load_settings() -> EngineSettings:
    return load_settings_file(SETTINGS_PATH)


@lru_cache(maxsize=None)
def load_yaml_config(path: Path) -> dict:
    try:
        return _load_yaml(path)
    except yaml.YAMLError as exc:
        raise SettingsError(f"Cannot parse {path.name}: {exc}") from exc


def load_category_weights(path: Optional[Path] = None) -> dict[str, float]:
    """Map each metric to the weight of its metric family."""

    data = load_yaml_config(path or METRIC_CATEGORIES_PATH)
    family_weights = {str(k): float(v) for k, v in data.get("weights", {}).items()}
    weights: dict[str, float] = {}
    for family, metrics in data.get("metrics", {}).items():
        if family not in family_weights:
            raise SettingsError(f"Metric family {family!r} has no weight")
        for metric in metrics or []:
            weights.setdefault(str(metric), family_weights[family])
    return weights
