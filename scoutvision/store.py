"""Entity store: canonical players, teams and shots with cross-references."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from .entities import Player, Shot, Team, to_text
from .names import ExactNameResolver, NameResolver, ResolverSpec, make_resolver, normalize_name

logger = logging.getLogger("scoutvision.store")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
logger.setLevel(logging.INFO)
logger.propagate = False

Row = Mapping[str, Any]


@dataclass(frozen=True)
class SkippedRow:
    kind: str
    index: int
    reason: str


@dataclass
class LoadReport:
    """Outcome of a load: entity counts and the rows that were dropped."""

    players: int = 0
    teams: int = 0
    placeholder_teams: int = 0
    shots: int = 0
    unresolved_player_teams: int = 0
    unresolved_shot_players: int = 0
    unresolved_shot_teams: int = 0
    skipped: list[SkippedRow] = field(default_factory=list)

    def skip(self, kind: str, index: int, reason: str) -> None:
        self.skipped.append(SkippedRow(kind=kind, index=index, reason=reason))

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skipped_by_kind(self) -> dict[str, int]:
        return dict(Counter(row.kind for row in self.skipped))


@dataclass(frozen=True)
class ShotStats:
    total: int
    goals: int
    xg_total: float
    xg_per_shot: float
    conversion_rate: float
    on_target: int
    by_body_part: Mapping[str, int]
    by_situation: Mapping[str, int]
    by_result: Mapping[str, int]


ON_TARGET_RESULTS = frozenset({"Goal", "SavedShot"})


def summarize_shots(shots: Sequence[Shot]) -> ShotStats:
    total = len(shots)
    goals = sum(1 for shot in shots if shot.is_goal)
    xg_total = sum(shot.xg for shot in shots)
    return ShotStats(
        total=total,
        goals=goals,
        xg_total=xg_total,
        xg_per_shot=xg_total / total if total else 0.0,
        conversion_rate=goals / total * 100 if total else 0.0,
        on_target=sum(1 for shot in shots if shot.result in ON_TARGET_RESULTS),
        by_body_part=dict(Counter(shot.body_part or "Unknown" for shot in shots)),
        by_situation=dict(Counter(shot.situation or "Unknown" for shot in shots)),
        by_result=dict(Counter(shot.result or "Unknown" for shot in shots)),
    )


class EntityStore:
    """Holds the three entity collections for one data load.

    ``load`` builds every collection and cross-reference table locally and
    only then swaps them in, so readers never observe a half-built store.
    """

    def __init__(self) -> None:
        self._players: dict[str, Player] = {}
        self._teams: dict[str, Team] = {}
        self._shots: dict[str, Shot] = {}
        self._team_names: NameResolver = ExactNameResolver()
        self._player_names: NameResolver = make_resolver()
        self._team_players: dict[Optional[str], list[str]] = {}
        self._team_shots: dict[Optional[str], list[str]] = {}
        self._player_shots: dict[Optional[str], list[str]] = {}
        self.report = LoadReport()

    def load(
        self,
        players: Iterable[Row] = (),
        teams: Iterable[Row] = (),
        shots: Iterable[Row] = (),
        *,
        resolver: ResolverSpec = None,
        create_missing_teams: bool = True,
    ) -> LoadReport:
        report = LoadReport()
        team_map: dict[str, Team] = {}
        team_names = ExactNameResolver()

        # Teams first so player and shot rows can resolve against them.
        for index, row in enumerate(teams):
            team = Team.from_row(row)
            if team is None:
                report.skip("team", index, "missing team name")
                logger.warning("Dropping team row %s: missing team name", index)
                continue
            if team.id in team_map:
                report.skip("team", index, f"duplicate team {team.id}")
                continue
            team_map[team.id] = team
            team_names.register(team.name, team.id)

        player_map: dict[str, Player] = {}
        player_names = make_resolver(resolver)
        team_players: dict[Optional[str], list[str]] = {}
        for index, row in enumerate(players):
            team_name = to_text(row.get("Team"))
            team_id = team_names.resolve(team_name) if team_name else None
            if team_id is None and team_name and to_text(row.get("Player")) and create_missing_teams:
                placeholder = Team.placeholder(team_name, to_text(row.get("League")))
                team_map.setdefault(placeholder.id, placeholder)
                team_names.register(placeholder.name, placeholder.id)
                team_id = placeholder.id
                report.placeholder_teams += 1

            player = Player.from_row(row, team_id=team_id)
            if player is None:
                reason = "missing player name" if not to_text(row.get("Player")) else "missing team name"
                report.skip("player", index, reason)
                logger.warning("Dropping player row %s: %s", index, reason)
                continue
            if player.id in player_map:
                report.skip("player", index, f"duplicate player {player.id}")
                continue
            if team_id is None:
                report.unresolved_player_teams += 1
            player_map[player.id] = player
            player_names.register(player.name, player.id, qualifier=player.team_name)
            team_players.setdefault(team_id, []).append(player.id)

        shot_map: dict[str, Shot] = {}
        team_shots: dict[Optional[str], list[str]] = {}
        player_shots: dict[Optional[str], list[str]] = {}
        for index, row in enumerate(shots):
            player_name = to_text(row.get("player"))
            team_name = to_text(row.get("team"))
            player_id = player_names.resolve(player_name, qualifier=team_name) if player_name else None
            team_id = team_names.resolve(team_name) if team_name else None
            if team_id is None and player_id is not None:
                team_id = player_map[player_id].team_id
            shot = Shot.from_row(row, index, player_id=player_id, team_id=team_id)
            if shot.id in shot_map:
                report.skip("shot", index, f"duplicate shot {shot.id}")
                continue
            if player_id is None:
                report.unresolved_shot_players += 1
            if team_id is None:
                report.unresolved_shot_teams += 1
            shot_map[shot.id] = shot
            team_shots.setdefault(team_id, []).append(shot.id)
            player_shots.setdefault(player_id, []).append(shot.id)

        report.players = len(player_map)
        report.teams = len(team_map)
        report.shots = len(shot_map)

        (
            self._players,
            self._teams,
            self._shots,
            self._team_names,
            self._player_names,
            self._team_players,
            self._team_shots,
            self._player_shots,
            self.report,
        ) = (
            player_map,
            team_map,
            shot_map,
            team_names,
            player_names,
            team_players,
            team_shots,
            player_shots,
            report,
        )
        logger.info(
            "Loaded %s players, %s teams (%s placeholders), %s shots; %s rows skipped",
            report.players,
            report.teams,
            report.placeholder_teams,
            report.shots,
            report.skipped_count,
        )
        return report

    def reset(self) -> None:
        self._players, self._teams, self._shots = {}, {}, {}
        self._team_names = ExactNameResolver()
        self._player_names = make_resolver()
        self._team_players, self._team_shots, self._player_shots = {}, {}, {}
        self.report = LoadReport()

    def __len__(self) -> int:
        return len(self._players) + len(self._teams) + len(self._shots)

    @property
    def is_empty(self) -> bool:
        return not self._players and not self._teams and not self._shots

    # Lookups -----------------------------------------------------------------

    def get_player(self, player_id: str) -> Optional[Player]:
        return self._players.get(player_id)

    def get_team(self, team_id: str) -> Optional[Team]:
        return self._teams.get(team_id)

    def get_shot(self, shot_id: str) -> Optional[Shot]:
        return self._shots.get(shot_id)

    def player_by_name(self, name: str, team: Optional[str] = None) -> Optional[Player]:
        player_id = self._player_names.resolve(name, qualifier=team)
        return self._players.get(player_id) if player_id else None

    def team_by_name(self, name: str) -> Optional[Team]:
        team_id = self._team_names.resolve(name)
        return self._teams.get(team_id) if team_id else None

    def players_named(self, name: str) -> list[Player]:
        """Every player whose normalised name equals ``name``."""

        key = normalize_name(name)
        return [player for player in self._players.values() if player.key == key]

    def players(self) -> list[Player]:
        return list(self._players.values())

    def teams(self) -> list[Team]:
        return list(self._teams.values())

    def shots(self) -> list[Shot]:
        return list(self._shots.values())

    # Cross references --------------------------------------------------------

    def team_players(self, team_id: str) -> list[Player]:
        return [self._players[pid] for pid in self._team_players.get(team_id, [])]

    def team_shots(self, team_id: str) -> list[Shot]:
        return [self._shots[sid] for sid in self._team_shots.get(team_id, [])]

    def player_shots(self, player_id: str) -> list[Shot]:
        return [self._shots[sid] for sid in self._player_shots.get(player_id, [])]

    def team_of(self, player_id: str) -> Optional[Team]:
        player = self._players.get(player_id)
        if player is None or player.team_id is None:
            return None
        return self._teams.get(player.team_id)

    def ungrouped_players(self) -> list[Player]:
        return [self._players[pid] for pid in self._team_players.get(None, [])]

    def ungrouped_shots(self) -> list[Shot]:
        """Shots whose player could not be resolved."""

        return [self._shots[sid] for sid in self._player_shots.get(None, [])]

    def shots_by_result(self, result: str) -> list[Shot]:
        return [shot for shot in self._shots.values() if shot.result == result]

    def player_shot_stats(self, player_id: str) -> ShotStats:
        return summarize_shots(self.player_shots(player_id))

    def team_shot_summary(self, team_id: str) -> ShotStats:
        return summarize_shots(self.team_shots(team_id))
