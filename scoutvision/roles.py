"""Weighted linear role scoring.

A role is a position-scoped set of ``metric -> weight`` pairs. A player's raw
score is the weighted sum of their metric values. It is normalised against the
best raw score of the cohort passed to each call, so normalised scores only
compare within that cohort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from .entities import Player
from .metrics import percentile_rank, round_half_up
from .positions import parse_positions
from .settings import ROLES_PATH, SettingsError, load_yaml_config

logger = logging.getLogger(__name__)

ROLE_CATEGORIES = ("goalkeeper", "defender", "midfielder", "attacker")


class RoleNotFoundError(KeyError):
    """Raised when a role name is not in the loaded catalogue."""


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    category: str
    positions: tuple[str, ...]
    metrics: Mapping[str, float]
    description: str = ""

    def is_eligible(self, player: Player) -> bool:
        """True when the player's positions intersect the role's; empty means any."""

        if not self.positions:
            return True
        return not set(self.positions).isdisjoint(player.positions)


@dataclass(frozen=True)
class ContributionRow:
    metric: str
    value: float
    weight: float
    contribution: float


@dataclass(frozen=True)
class RoleScore:
    role: str
    raw_score: float
    normalized_score: int
    percentile: int
    breakdown: tuple[ContributionRow, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RankedPlayer:
    player: Player
    raw_score: float
    normalized_score: int


def _parse_role(entry: Mapping) -> RoleDefinition:
    try:
        name = str(entry["name"])
        metrics = {str(metric): float(weight) for metric, weight in entry["metrics"].items()}
    except (KeyError, AttributeError, TypeError, ValueError) as exc:
        raise SettingsError(f"Invalid role definition: {entry!r}") from exc
    category = str(entry.get("category", "")).lower()
    if category and category not in ROLE_CATEGORIES:
        raise SettingsError(f"Role {name!r} has unknown category {category!r}")
    positions = entry.get("positions") or ()
    if isinstance(positions, str):
        positions = parse_positions(positions)
    return RoleDefinition(
        name=name,
        category=category,
        positions=tuple(str(p).strip().upper() for p in positions),
        metrics=metrics,
        description=str(entry.get("description", "")),
    )


def load_role_definitions(path: Optional[Path] = None) -> dict[str, RoleDefinition]:
    data = load_yaml_config(Path(path) if path else ROLES_PATH)
    roles: dict[str, RoleDefinition] = {}
    for entry in data.get("roles", []):
        role = _parse_role(entry)
        if role.name in roles:
            raise SettingsError(f"Duplicate role {role.name!r}")
        roles[role.name] = role
    return roles


def raw_score(player: Player, role: RoleDefinition) -> float:
    return sum(player.metric(metric) * weight for metric, weight in role.metrics.items())


def normalized_score(raw: float, cohort_max: float) -> int:
    """``round(100 * raw / cohort_max)`` clipped to 0-100."""

    if cohort_max <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * raw / cohort_max)))


def breakdown(player: Player, role: RoleDefinition) -> tuple[ContributionRow, ...]:
    rows = [
        ContributionRow(
            metric=metric,
            value=player.metric(metric),
            weight=weight,
            contribution=player.metric(metric) * weight,
        )
        for metric, weight in role.metrics.items()
    ]
    rows.sort(key=lambda row: abs(row.contribution), reverse=True)
    return tuple(rows)


class RoleScorer:
    """Scores players against the role catalogue.

    Nothing is cached between calls: the cohort maximum and percentile pool
    are recomputed from whichever cohort the caller passes in.
    """

    def __init__(self, roles: Optional[Mapping[str, RoleDefinition]] = None) -> None:
        self.roles: dict[str, RoleDefinition] = dict(roles) if roles is not None else load_role_definitions()

    def role(self, name: str) -> RoleDefinition:
        try:
            return self.roles[name]
        except KeyError:
            raise RoleNotFoundError(name) from None

    def role_names(self) -> list[str]:
        return list(self.roles)

    def roles_for_position(self, position: str) -> list[str]:
        positions = set(parse_positions(position))
        return [name for name, role in self.roles.items() if positions & set(role.positions)]

    def roles_by_category(self, category: str) -> list[str]:
        category = category.lower()
        return [name for name, role in self.roles.items() if role.category == category]

    def eligible_players(self, role_name: str, cohort: Iterable[Player]) -> list[Player]:
        role = self.role(role_name)
        return [player for player in cohort if role.is_eligible(player)]

    def score(self, player: Player, role_name: str, cohort: Sequence[Player]) -> Optional[RoleScore]:
        """Score ``player`` for one role; ``None`` if the position does not fit.

        The normalised score divides by the best raw score in ``cohort``; the
        percentile only ranks against positionally eligible cohort members.
        """

        role = self.role(role_name)
        if not role.is_eligible(player):
            return None
        raw = raw_score(player, role)
        cohort_raw = [raw_score(member, role) for member in cohort]
        cohort_max = max(cohort_raw, default=0.0)
        eligible_raw = [
            value for member, value in zip(cohort, cohort_raw) if role.is_eligible(member)
        ]
        return RoleScore(
            role=role.name,
            raw_score=raw,
            normalized_score=normalized_score(raw, cohort_max),
            percentile=percentile_rank(raw, eligible_raw),
            breakdown=breakdown(player, role),
        )

    def score_all(self, player: Player, cohort: Sequence[Player]) -> list[RoleScore]:
        results = []
        for name in self.roles:
            result = self.score(player, name, cohort)
            if result is not None:
                results.append(result)
        return results

    def best_roles(self, player: Player, cohort: Sequence[Player], limit: int = 3) -> list[RoleScore]:
        if limit < 1:
            raise ValueError("limit must be positive")
        results = self.score_all(player, cohort)
        results.sort(key=lambda result: result.normalized_score, reverse=True)
        return results[:limit]

    def rank_players(
        self,
        role_name: str,
        cohort: Sequence[Player],
        limit: Optional[int] = None,
    ) -> list[RankedPlayer]:
        """Eligible cohort members ordered by score for ``role_name``."""

        role = self.role(role_name)
        eligible = [player for player in cohort if role.is_eligible(player)]
        scores = [raw_score(player, role) for player in eligible]
        cohort_max = max(scores, default=0.0)
        ranked = [
            RankedPlayer(player=player, raw_score=raw, normalized_score=normalized_score(raw, cohort_max))
            for player, raw in zip(eligible, scores)
        ]
        ranked.sort(key=lambda item: item.raw_score, reverse=True)
        logger.debug("Ranked %s players for %s", len(ranked), role.name)
        return ranked[:limit] if limit is not None else ranked
