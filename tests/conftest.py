from __future__ import annotations

from typing import Optional

import pytest

from scoutvision.engine import ScoutEngine
from scoutvision.entities import Player
from scoutvision.roles import RoleDefinition
from scoutvision.settings import EngineSettings


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def player_row(
    name: str,
    team: str = "FC Test",
    position: str = "ST",
    league: str = "Ligue 1 2024-25",
    metrics: Optional[dict] = None,
    **profile,
) -> dict:
    row = {
        "Player": name,
        "Team": team,
        "Position": position,
        "League": league,
        "Age": profile.get("age", 24),
        "Market value": profile.get("market_value", 1_000_000),
        "Minutes played": profile.get("minutes", 1800),
        "Matches played": profile.get("matches", 20),
        "Passport country": profile.get("nationality", "France"),
    }
    row.update(metrics or {})
    return row


PLAYER_ROWS = [
    player_row("Alpha Striker", "FC Alpha", "ST", metrics={"Goals per 90": 0.8, "xG per 90": 0.7, "Accurate passes, %": 70.0}),
    player_row("Beta Forward", "FC Beta", "CF, ST", age=21, metrics={"Goals per 90": 0.6, "xG per 90": 0.5, "Accurate passes, %": 75.0}),
    player_row("Gamma Keeper", "FC Alpha", "GK", age=30, metrics={"Save rate, %": 72.0, "Accurate passes, %": 80.0}),
    player_row("Delta Mid", "FC Beta", "CMF", age=27, metrics={"Goals per 90": 0.1, "xG per 90": 0.1, "Accurate passes, %": 90.0}),
    player_row("Epsilon Wing", "FC Gamma", "LW", league="Serie A 2024-25", age=19, metrics={"Goals per 90": 0.4, "xG per 90": 0.3}),
]

TEAM_ROWS = [
    {"team": "FC Alpha", "league": "Ligue 1", "season": "2024-25", "xG": 55.2, "goals": 60},
    {"team": "FC Beta", "league": "Ligue 1", "season": "2024-25", "xG": 41.0, "goals": 38},
]

SHOT_ROWS = [
    {"id": "s1", "player": "Alpha Striker", "team": "FC Alpha", "X": 0.91, "Y": 0.5, "xG": 0.42, "result": "Goal",
     "situation": "OpenPlay", "shotType": "RightFoot", "minute": 12, "h_a": "h", "season": "2024"},
    {"id": "s2", "player": "Alpha Striker", "team": "FC Alpha", "X": 0.8, "Y": 0.4, "xG": 0.08, "result": "SavedShot",
     "situation": "OpenPlay", "shotType": "LeftFoot", "minute": 55, "h_a": "h", "season": "2024"},
    {"id": "s3", "player": "Beta Forward", "team": "", "X": 0.85, "Y": 0.6, "xG": 0.2, "result": "MissedShots",
     "situation": "SetPiece", "shotType": "Head", "minute": 70, "h_a": "a", "season": "2024"},
    {"id": "s4", "player": "Nobody Known", "team": "FC Beta", "X": 0.7, "Y": 0.5, "xG": 0.05, "result": "BlockedShot",
     "situation": "OpenPlay", "shotType": "RightFoot", "minute": 88, "h_a": "a", "season": "2024"},
]

FINISHER = RoleDefinition(
    name="Finisher",
    category="attacker",
    positions=("ST", "CF"),
    metrics={"Goals per 90": 1.0},
)
PLAYMAKER = RoleDefinition(
    name="Playmaker",
    category="midfielder",
    positions=("CMF", "AMF"),
    metrics={"Accurate passes, %": 0.01, "Goals per 90": 0.5},
)
TEST_ROLES = {role.name: role for role in (FINISHER, PLAYMAKER)}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_player():
    def factory(name: str, metrics: Optional[dict] = None, **kwargs) -> Player:
        row = player_row(name, metrics=metrics, **kwargs)
        return Player.from_row(row, team_id=f"team_{row['Team']}")

    return factory


@pytest.fixture
def engine(clock: FakeClock) -> ScoutEngine:
    engine = ScoutEngine(EngineSettings(), clock=clock, roles=TEST_ROLES)
    engine.load(PLAYER_ROWS, TEAM_ROWS, SHOT_ROWS)
    return engine
