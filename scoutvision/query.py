"""Indexed lookups over an entity store plus a TTL cache for aggregates."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Hashable, Iterable, Optional, Sequence, TypeVar

import pandas as pd

from .entities import Player, Shot, Team, extract_season
from .metrics import metric_keys
from .names import normalize_name
from .settings import QuerySettings
from .store import EntityStore

logger = logging.getLogger("scoutvision.query")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
logger.setLevel(logging.INFO)
logger.propagate = False

Clock = Callable[[], float]
T = TypeVar("T")

COHORT_MODES = ("all", "position", "team", "league")
SORT_FIELDS = {
    "name": lambda p: p.name.lower(),
    "team": lambda p: p.team_name.lower(),
    "league": lambda p: p.league.lower(),
    "position": lambda p: p.position,
    "age": lambda p: p.age,
    "market_value": lambda p: p.market_value,
    "minutes_played": lambda p: p.minutes_played,
    "matches_played": lambda p: p.matches_played,
}


class TTLCache:
    """Key -> (value, timestamp) cache with a fixed time-to-live.

    An entry is served as-is until ``now - timestamp > ttl``; after that it is
    evicted and recomputed as a whole.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Optional[Clock] = None) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self._clock: Clock = clock or time.monotonic
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _expired(self, stamp: float) -> bool:
        return self._clock() - stamp > self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, stamp = entry
        if self._expired(stamp):
            del self._entries[key]
            self.evictions += 1
            logger.debug("Cache entry %s expired", key)
            return default
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        entry = self._entries.get(key)
        if entry is not None:
            value, stamp = entry
            if not self._expired(stamp):
                self.hits += 1
                logger.debug("Cache hit for %s", key)
                return value
            self.evictions += 1
            logger.debug("Cache entry %s expired, recomputing", key)
        self.misses += 1
        value = compute()
        self.set(key, value)
        return value

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry[1])

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }


@dataclass(frozen=True)
class TeamIndex:
    name: str
    team: Optional[Team]
    players: tuple[Player, ...]
    shots: tuple[Shot, ...]

    @property
    def stats(self) -> dict[str, float]:
        return dict(self.team.stats) if self.team else {}


@dataclass(frozen=True)
class TeamAggregates:
    team: str
    player_count: int
    average_age: float
    total_market_value: float
    total_goals: float
    total_assists: float
    metric_means: dict[str, float]


@dataclass(frozen=True)
class PlayerFilters:
    search: Optional[str] = None
    team: Optional[str] = None
    league: Optional[str] = None
    position: Optional[str] = None
    nationality: Optional[str] = None
    age_min: Optional[float] = None
    age_max: Optional[float] = None
    market_value_min: Optional[float] = None
    market_value_max: Optional[float] = None
    minutes_min: Optional[float] = None
    season: Optional[str] = None


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total: int

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.total / self.page_size)) if self.page_size else 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count


@dataclass
class SeasonSlice:
    season: str
    players: list[Player] = field(default_factory=list)
    teams: list[Team] = field(default_factory=list)
    shots: list[Shot] = field(default_factory=list)


def _check_limit(limit: int) -> int:
    if limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit}")
    return limit


def _matches_season(player: Player, season: str) -> bool:
    if player.season:
        return player.season == season
    return season in player.league


def apply_filters(players: Iterable[Player], filters: PlayerFilters) -> list[Player]:
    search = normalize_name(filters.search) if filters.search else ""
    team = normalize_name(filters.team) if filters.team else ""
    season = extract_season(filters.season) or (filters.season or "")
    position = (filters.position or "").strip().upper()

    selected = []
    for player in players:
        if search and not (
            search in player.key
            or search in normalize_name(player.team_name)
            or search in normalize_name(player.position)
        ):
            continue
        if team and normalize_name(player.team_name) != team:
            continue
        if filters.league and filters.league not in player.league:
            continue
        if position and position not in player.positions:
            continue
        if filters.nationality and player.nationality != filters.nationality:
            continue
        if filters.age_min is not None and player.age < filters.age_min:
            continue
        if filters.age_max is not None and player.age > filters.age_max:
            continue
        if filters.market_value_min is not None and player.market_value < filters.market_value_min:
            continue
        if filters.market_value_max is not None and player.market_value > filters.market_value_max:
            continue
        if filters.minutes_min is not None and player.minutes_played < filters.minutes_min:
            continue
        if season and season.lower() != "all" and not _matches_season(player, season):
            continue
        selected.append(player)
    return selected


def sort_players(players: Iterable[Player], field_name: str = "name", descending: bool = False) -> list[Player]:
    """Sort by a profile field or by any metric name; ties keep input order."""

    key = SORT_FIELDS.get(field_name)
    if key is None:
        key = lambda p: p.profile(field_name)  # noqa: E731
    return sorted(players, key=key, reverse=descending)


def paginate(items: Sequence[T], page: int = 1, page_size: int = 25) -> Page[T]:
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be positive")
    start = (page - 1) * page_size
    return Page(items=list(items[start : start + page_size]), page=page, page_size=page_size, total=len(items))


def players_frame(players: Iterable[Player], metrics: Sequence[str] = ()) -> pd.DataFrame:
    """Flat table of players for display or export."""

    rows = []
    for player in players:
        row = {
            "player_id": player.id,
            "player": player.name,
            "team": player.team_name,
            "position": player.position,
            "league": player.league,
            "age": player.age,
            "market_value": player.market_value,
            "minutes_played": player.minutes_played,
        }
        row.update({metric: player.metric(metric) for metric in metrics})
        rows.append(row)
    return pd.DataFrame(rows, columns=[
        "player_id", "player", "team", "position", "league", "age", "market_value", "minutes_played", *metrics
    ])


class QueryService:
    """Grouping indexes built once per load over an :class:`EntityStore`."""

    def __init__(
        self,
        store: EntityStore,
        settings: Optional[QuerySettings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.settings = settings or QuerySettings()
        self.cache = TTLCache(self.settings.cache_ttl_seconds, clock=clock)
        self.rebuild()

    def rebuild(self) -> None:
        """Recompute every index from the store; there is no incremental path."""

        started = time.perf_counter()
        players_by_team: dict[str, list[Player]] = {}
        shots_by_team: dict[str, list[Shot]] = {}
        teams_by_name: dict[str, Team] = {}
        leagues: dict[str, set[str]] = {}
        by_position: dict[str, list[Player]] = {}
        by_league: dict[str, list[Player]] = {}
        ungrouped: list[Player] = []

        for team in self.store.teams():
            teams_by_name.setdefault(team.name, team)
            if team.league:
                leagues.setdefault(team.league, set()).add(team.name)

        for player in self.store.players():
            team_name = self._canonical_team(player.team_id, player.team_name)
            if player.team_id is None:
                ungrouped.append(player)
            if team_name:
                players_by_team.setdefault(team_name, []).append(player)
            if player.league:
                by_league.setdefault(player.league, []).append(player)
                if team_name:
                    leagues.setdefault(player.league, set()).add(team_name)
            for position in player.positions:
                by_position.setdefault(position, []).append(player)

        for shot in self.store.shots():
            team_name = self._canonical_team(shot.team_id, shot.team_name)
            if team_name:
                shots_by_team.setdefault(team_name, []).append(shot)

        names = sorted(set(players_by_team) | set(shots_by_team) | set(teams_by_name), key=str.lower)
        self._team_index = {
            name: TeamIndex(
                name=name,
                team=teams_by_name.get(name),
                players=tuple(players_by_team.get(name, ())),
                shots=tuple(shots_by_team.get(name, ())),
            )
            for name in names
        }
        self._league_index = leagues
        self._position_index = by_position
        self._league_players = by_league
        self._ungrouped = ungrouped
        self._team_names = names
        self._sorted_players = sorted(self.store.players(), key=lambda p: (p.name.lower(), p.id))
        self._metric_keys = metric_keys(self._sorted_players)
        self.cache.clear()
        logger.info(
            "Indexed %s teams, %s leagues, %s positions in %.3fs",
            len(self._team_index),
            len(self._league_index),
            len(self._position_index),
            time.perf_counter() - started,
        )

    def _canonical_team(self, team_id: Optional[str], raw_name: str) -> str:
        if team_id is not None:
            team = self.store.get_team(team_id)
            if team is not None:
                return team.name
        return raw_name

    # Index lookups -----------------------------------------------------------

    def team(self, name: str) -> Optional[TeamIndex]:
        entry = self._team_index.get(name)
        if entry is None:
            team = self.store.team_by_name(name)
            entry = self._team_index.get(team.name) if team else None
        return entry

    def team_players(self, name: str) -> list[Player]:
        entry = self.team(name)
        return list(entry.players) if entry else []

    def team_shots(self, name: str) -> list[Shot]:
        entry = self.team(name)
        return list(entry.shots) if entry else []

    def league_teams(self, league: str) -> list[str]:
        return sorted(self._league_index.get(league, ()), key=str.lower)

    def players_by_league(self, league: str) -> list[Player]:
        return list(self._league_players.get(league, ()))

    def players_by_position(self, position: str) -> list[Player]:
        return list(self._position_index.get(position.strip().upper(), ()))

    def ungrouped_players(self) -> list[Player]:
        return list(self._ungrouped)

    def available_teams(self) -> list[str]:
        return list(self._team_names)

    def available_leagues(self) -> list[str]:
        return sorted(self._league_index)

    def available_positions(self) -> list[str]:
        return sorted(self._position_index)

    def available_seasons(self) -> list[str]:
        seasons = {p.season for p in self.store.players() if p.season}
        seasons.update(t.season for t in self.store.teams() if t.season)
        return sorted(seasons, reverse=True)

    def metric_keys(self) -> list[str]:
        return list(self._metric_keys)

    # Search ------------------------------------------------------------------

    def search_teams(self, query: str, limit: Optional[int] = None) -> list[str]:
        """Team names containing ``query``, in alphabetical order."""

        limit = _check_limit(limit if limit is not None else self.settings.search_limit)
        needle = normalize_name(query)
        results: list[str] = []
        for name in self._team_names:
            if needle in normalize_name(name):
                results.append(name)
                if len(results) >= limit:
                    break
        return results

    def search_players(
        self,
        query: str,
        *,
        team: Optional[str] = None,
        position: Optional[str] = None,
        league: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Player]:
        """Players whose name or team contains ``query``, in alphabetical order."""

        limit = _check_limit(limit if limit is not None else self.settings.player_search_limit)
        needle = normalize_name(query)
        team_key = normalize_name(team) if team else ""
        position = position.strip().upper() if position else ""
        results: list[Player] = []
        for player in self._sorted_players:
            if team_key and normalize_name(player.team_name) != team_key:
                continue
            if position and position not in player.positions:
                continue
            if league and league not in player.league:
                continue
            if needle in player.key or needle in normalize_name(player.team_name):
                results.append(player)
                if len(results) >= limit:
                    break
        return results

    # Filtering and cohorts ---------------------------------------------------

    def filter_players(self, filters: PlayerFilters) -> list[Player]:
        return apply_filters(self._sorted_players, filters)

    def sort_players(self, players: Iterable[Player], field_name: str = "name", descending: bool = False) -> list[Player]:
        return sort_players(players, field_name, descending)

    def paginate(self, items: Sequence[T], page: int = 1, page_size: int = 25) -> Page[T]:
        return paginate(items, page, page_size)

    def cohort(self, reference: Player, mode: str = "position") -> list[Player]:
        """Comparison group for ``reference``; ``all`` is the whole dataset."""

        if mode not in COHORT_MODES:
            raise ValueError(f"Unknown cohort mode {mode!r}; expected one of {', '.join(COHORT_MODES)}")
        if mode == "all":
            return self.store.players()
        if mode == "team":
            entry = self.team(self._canonical_team(reference.team_id, reference.team_name))
            return list(entry.players) if entry else [reference]
        if mode == "league":
            return self.players_by_league(reference.league) or [reference]
        seen: dict[str, Player] = {}
        for position in reference.positions:
            for player in self._position_index.get(position, ()):
                seen.setdefault(player.id, player)
        return list(seen.values()) or [reference]

    def season_slice(self, season: str) -> SeasonSlice:
        if not season or season.lower() == "all":
            return SeasonSlice("all", self.store.players(), self.store.teams(), self.store.shots())
        label = extract_season(season) or season
        return SeasonSlice(
            season=label,
            players=[p for p in self.store.players() if _matches_season(p, label)],
            teams=[t for t in self.store.teams() if not t.season or t.season == label],
            shots=[s for s in self.store.shots() if not s.season or s.season == label],
        )

    # Cached aggregates -------------------------------------------------------

    def team_aggregates(self, name: str) -> Optional[TeamAggregates]:
        entry = self.team(name)
        if entry is None:
            return None
        return self.cache.get_or_compute(("team_aggregates", entry.name), lambda: self._aggregate(entry))

    def _aggregate(self, entry: TeamIndex) -> TeamAggregates:
        players = entry.players
        count = len(players)
        keys = metric_keys(players)
        return TeamAggregates(
            team=entry.name,
            player_count=count,
            average_age=sum(p.age for p in players) / count if count else 0.0,
            total_market_value=sum(p.market_value for p in players),
            total_goals=sum(p.metric("Goals") for p in players),
            total_assists=sum(p.metric("Assists") for p in players),
            metric_means={
                key: sum(p.metric(key) for p in players) / count for key in keys
            } if count else {},
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict[str, int]:
        return self.cache.stats()
