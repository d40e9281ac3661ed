"""Canonical Player, Team and Shot records built from raw rows."""

from __future__ import annotations

import math
import numbers
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .names import make_id, normalize_name
from .positions import parse_positions

# Player identity / descriptive columns, never metrics.
PLAYER_TEXT_COLUMNS = (
    "Player",
    "Team",
    "Team within selected timeframe",
    "Position",
    "Main Position",
    "League",
    "Foot",
    "Birth country",
    "Passport country",
    "Contract expires",
    "On loan",
    "Index",
)

# Constraints and filters rather than performance signals.
PROFILE_COLUMNS = (
    "Age",
    "Market value",
    "Height",
    "Weight",
    "Matches played",
    "Minutes played",
)

EXCLUDED_METRIC_COLUMNS = frozenset(PLAYER_TEXT_COLUMNS + PROFILE_COLUMNS)

TEAM_TEXT_COLUMNS = frozenset({"team", "league", "season", "squad_id", "id"})

SHOT_COLUMNS = (
    "id",
    "player",
    "team",
    "X",
    "Y",
    "xG",
    "result",
    "situation",
    "shotType",
    "minute",
    "h_a",
    "lastAction",
    "match_id",
    "season",
)

_SEASON_SPAN = re.compile(r"(\d{4})-(\d{2})|(?<!\d)(\d{2})-(\d{2})(?!\d)")
_TRAILING_YEAR = re.compile(r"(?:^|\s)(\d{4})\s*$")


def is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a cell to float; blanks, NaN and garbage become ``default``."""

    if value is None or isinstance(value, bool):
        return default
    if is_number(value):
        number = float(value)
        return number if math.isfinite(number) else default
    text = str(value).strip().replace(",", ".")
    if not text:
        return default
    try:
        number = float(text)
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def to_text(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def to_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if is_number(value):
        return float(value) != 0
    return to_text(value).lower() in {"yes", "true", "1", "y", "oui"}


def extract_season(text: object) -> str:
    """Short season label from league/season text.

    ``"Serie A 2024-25"`` and ``"MLS 2024"`` both give ``"24-25"``; text
    without a season gives ``""``.
    """

    value = to_text(text)
    if not value:
        return ""
    match = _SEASON_SPAN.search(value)
    if match:
        if match.group(1):
            return f"{match.group(1)[2:]}-{match.group(2)}"
        return f"{match.group(3)}-{match.group(4)}"
    match = _TRAILING_YEAR.search(value)
    if match:
        year = int(match.group(1))
        return f"{year % 100:02d}-{(year + 1) % 100:02d}"
    return ""


def _frozen(mapping: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    league: str = ""
    season: str = ""
    stats: Mapping[str, float] = field(default_factory=dict)
    has_stats: bool = True

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    def stat(self, name: str) -> float:
        return float(self.stats.get(name, 0.0))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Optional["Team"]:
        name = to_text(row.get("team"))
        if not name:
            return None
        league = to_text(row.get("league"))
        season = to_text(row.get("season"))
        stats = {
            key: to_float(value)
            for key, value in row.items()
            if key not in TEAM_TEXT_COLUMNS and is_number(value)
        }
        return cls(
            id=make_id("team", name, league, season),
            name=name,
            league=league,
            season=extract_season(season) or season,
            stats=_frozen(stats),
        )

    @classmethod
    def placeholder(cls, name: str, league: str = "") -> "Team":
        """Stat-less team created for a club only seen in player rows."""

        return cls(
            id=make_id("team", name, league),
            name=name,
            league=league,
            season=extract_season(league),
            stats=_frozen({}),
            has_stats=False,
        )


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    team_id: Optional[str]
    team_name: str
    position: str
    league: str
    season: str = ""
    age: float = 0.0
    height: float = 0.0
    weight: float = 0.0
    foot: str = ""
    market_value: float = 0.0
    nationality: str = ""
    birth_country: str = ""
    contract_expires: str = ""
    on_loan: bool = False
    matches_played: float = 0.0
    minutes_played: float = 0.0
    metrics: Mapping[str, float] = field(default_factory=dict)

    @property
    def positions(self) -> tuple[str, ...]:
        return parse_positions(self.position)

    @property
    def primary_position(self) -> str:
        positions = self.positions
        return positions[0] if positions else ""

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    def metric(self, name: str) -> float:
        """Metric value; metrics missing from the source row count as 0."""

        return float(self.metrics.get(name, 0.0))

    def profile(self, name: str) -> float:
        """Numeric profile attribute by its source column name, else the metric."""

        attribute = _PROFILE_ATTRIBUTES.get(name)
        if attribute is not None:
            return float(getattr(self, attribute))
        return self.metric(name)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], team_id: Optional[str] = None) -> Optional["Player"]:
        name = to_text(row.get("Player"))
        team_name = to_text(row.get("Team"))
        if not name or not team_name:
            return None
        league = to_text(row.get("League"))
        metrics = {
            key: to_float(value)
            for key, value in row.items()
            if key not in EXCLUDED_METRIC_COLUMNS and is_number(value)
        }
        passport = to_text(row.get("Passport country"))
        birth = to_text(row.get("Birth country"))
        return cls(
            id=make_id("player", name, team_name, league),
            name=name,
            team_id=team_id,
            team_name=team_name,
            position=to_text(row.get("Position")),
            league=league,
            season=extract_season(league),
            age=to_float(row.get("Age")),
            height=to_float(row.get("Height")),
            weight=to_float(row.get("Weight")),
            foot=to_text(row.get("Foot")),
            market_value=to_float(row.get("Market value")),
            nationality=passport or birth,
            birth_country=birth,
            contract_expires=to_text(row.get("Contract expires")),
            on_loan=to_flag(row.get("On loan")),
            matches_played=to_float(row.get("Matches played")),
            minutes_played=to_float(row.get("Minutes played")),
            metrics=_frozen(metrics),
        )


_PROFILE_ATTRIBUTES = {
    "Age": "age",
    "Market value": "market_value",
    "Height": "height",
    "Weight": "weight",
    "Matches played": "matches_played",
    "Minutes played": "minutes_played",
    "age": "age",
    "market_value": "market_value",
    "height": "height",
    "weight": "weight",
    "matches_played": "matches_played",
    "minutes_played": "minutes_played",
}


@dataclass(frozen=True)
class Shot:
    id: str
    player_id: Optional[str]
    team_id: Optional[str]
    player_name: str
    team_name: str
    x: float
    y: float
    xg: float
    result: str
    situation: str
    body_part: str
    minute: float
    home_away: str = ""
    last_action: str = ""
    match_id: str = ""
    season: str = ""

    @property
    def is_goal(self) -> bool:
        return self.result == "Goal"

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        index: int,
        player_id: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> "Shot":
        player_name = to_text(row.get("player"))
        source_id = to_text(row.get("id"))
        shot_id = make_id("shot", source_id) if source_id else make_id("shot", index, player_name)
        return cls(
            id=shot_id,
            player_id=player_id,
            team_id=team_id,
            player_name=player_name,
            team_name=to_text(row.get("team")),
            x=to_float(row.get("X")),
            y=to_float(row.get("Y")),
            xg=to_float(row.get("xG")),
            result=to_text(row.get("result")),
            situation=to_text(row.get("situation")),
            body_part=to_text(row.get("shotType")),
            minute=to_float(row.get("minute")),
            home_away=to_text(row.get("h_a")).lower(),
            last_action=to_text(row.get("lastAction")),
            match_id=to_text(row.get("match_id")),
            season=extract_season(row.get("season")) or to_text(row.get("season")),
        )
