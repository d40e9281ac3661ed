"""Position vocabulary and the metric lists attached to each position family."""

from __future__ import annotations

from typing import Iterable

POSITION_CATEGORIES: dict[str, tuple[str, ...]] = {
    "GK": ("GK",),
    "DEF": ("CB", "LCB", "RCB"),
    "FB": ("LB", "RB", "LWB", "RWB"),
    "MID": ("DMF", "LDMF", "RDMF", "CMF", "LCMF", "RCMF"),
    "ATT_MID": ("AMF", "LAMF", "RAMF"),
    "WING": ("LW", "RW", "LWF", "RWF"),
    "FWD": ("CF", "SS", "ST"),
}

DEFAULT_CATEGORY = "MID"

_CATEGORY_BY_POSITION = {
    position: category
    for category, positions in POSITION_CATEGORIES.items()
    for position in positions
}

SIMILARITY_METRICS: dict[str, list[str]] = {
    "GK": [
        "Save rate, %",
        "Prevented goals per 90",
        "xG against per 90",
        "Exits per 90",
        "Aerial duels per 90",
        "Aerial duels won, %",
        "Accurate passes, %",
        "Accurate long passes, %",
        "Received passes per 90",
        "Back passes received as GK per 90",
    ],
    "DEF": [
        "Defensive duels per 90",
        "Defensive duels won, %",
        "Aerial duels per 90",
        "Aerial duels won, %",
        "PAdj Interceptions",
        "Interceptions per 90",
        "Shots blocked per 90",
        "Successful defensive actions per 90",
        "Accurate passes, %",
        "Accurate long passes, %",
        "Progressive passes per 90",
        "Forward passes per 90",
    ],
    "FB": [
        "Defensive duels won, %",
        "Successful defensive actions per 90",
        "Interceptions per 90",
        "Crosses per 90",
        "Accurate crosses, %",
        "Progressive runs per 90",
        "Dribbles per 90",
        "Successful dribbles, %",
        "Key passes per 90",
        "xA",
        "Accurate passes, %",
        "Duels won, %",
    ],
    "MID": [
        "Accurate passes, %",
        "Progressive passes per 90",
        "Forward passes per 90",
        "Key passes per 90",
        "Passes to final third per 90",
        "Defensive duels per 90",
        "Defensive duels won, %",
        "Duels won, %",
        "xA",
        "xG",
        "Successful defensive actions per 90",
        "Interceptions per 90",
    ],
    "ATT_MID": [
        "xG",
        "xA",
        "Goals per 90",
        "Assists per 90",
        "Key passes per 90",
        "Smart passes per 90",
        "Through passes per 90",
        "Dribbles per 90",
        "Successful dribbles, %",
        "Shots per 90",
        "Offensive duels won, %",
        "Progressive runs per 90",
    ],
    "WING": [
        "xG",
        "xA",
        "Goals per 90",
        "Assists per 90",
        "Dribbles per 90",
        "Successful dribbles, %",
        "Crosses per 90",
        "Accurate crosses, %",
        "Progressive runs per 90",
        "Key passes per 90",
        "Offensive duels per 90",
        "Accelerations per 90",
    ],
    "FWD": [
        "Goals per 90",
        "xG per 90",
        "xG",
        "Goal conversion, %",
        "Shots per 90",
        "Shots on target, %",
        "Aerial duels per 90",
        "Aerial duels won, %",
        "Touches in box per 90",
        "Offensive duels per 90",
        "Offensive duels won, %",
        "Head goals per 90",
    ],
}

# Keyed by primary position; CMF is the fallback.
KEY_METRICS: dict[str, list[str]] = {
    "GK": ["Save rate, %", "Prevented goals per 90", "Exits per 90", "Accurate passes, %", "Accurate long passes, %"],
    "CB": ["Defensive duels won, %", "Aerial duels won, %", "PAdj Interceptions", "Progressive passes per 90", "Accurate passes, %"],
    "LB": ["xA per 90", "Progressive passes per 90", "Accurate crosses, %", "Defensive duels won, %", "Progressive runs per 90"],
    "RB": ["xA per 90", "Progressive passes per 90", "Accurate crosses, %", "Defensive duels won, %", "Progressive runs per 90"],
    "DMF": ["PAdj Interceptions", "Passes per 90", "Accurate passes, %", "Progressive passes per 90", "Defensive duels won, %"],
    "CMF": ["xA per 90", "Progressive passes per 90", "Key passes per 90", "Accurate passes, %", "Duels won, %"],
    "AMF": ["xG per 90", "xA per 90", "Key passes per 90", "Dribbles per 90", "Shot assists per 90"],
    "LW": ["xG per 90", "xA per 90", "Dribbles per 90", "Successful dribbles, %", "Progressive runs per 90"],
    "RW": ["xG per 90", "xA per 90", "Dribbles per 90", "Successful dribbles, %", "Progressive runs per 90"],
    "CF": ["xG per 90", "Goals per 90", "Shots on target, %", "Touches in box per 90", "Aerial duels won, %"],
}

VALUE_METRICS: dict[str, list[str]] = {
    "GK": ["Save rate, %", "Prevented goals per 90", "Exits per 90", "Accurate passes, %", "Accurate long passes, %", "Clean sheets"],
    "CB": ["Defensive duels won, %", "Aerial duels won, %", "PAdj Interceptions", "Accurate passes, %", "Progressive passes per 90", "Shots blocked per 90"],
    "LB": ["xA per 90", "Key passes per 90", "Progressive passes per 90", "Accurate crosses, %", "Defensive duels won, %", "Progressive runs per 90"],
    "RB": ["xA per 90", "Key passes per 90", "Progressive passes per 90", "Accurate crosses, %", "Defensive duels won, %", "Progressive runs per 90"],
    "DMF": ["PAdj Interceptions", "Defensive duels won, %", "Passes per 90", "Accurate passes, %", "Progressive passes per 90", "Duels won, %"],
    "CMF": ["xA per 90", "Key passes per 90", "Progressive passes per 90", "xG per 90", "Accurate passes, %", "Duels won, %"],
    "AMF": ["xA per 90", "xG per 90", "Key passes per 90", "Shot assists per 90", "Progressive runs per 90", "Dribbles per 90"],
    "LW": ["xG per 90", "xA per 90", "Dribbles per 90", "Successful dribbles, %", "Key passes per 90", "Shots per 90"],
    "RW": ["xG per 90", "xA per 90", "Dribbles per 90", "Successful dribbles, %", "Key passes per 90", "Shots per 90"],
    "CF": ["xG per 90", "Goals per 90", "Shots on target, %", "Touches in box per 90", "Aerial duels won, %", "Offensive duels won, %"],
}

GENERIC_METRICS = [
    "xG",
    "xA",
    "Passes per 90",
    "Accurate passes, %",
    "Duels won, %",
    "Successful defensive actions per 90",
]

METRIC_GROUPS: dict[str, list[str]] = {
    "Attacking": ["xG", "xG per 90", "Goals", "Goals per 90", "Non-penalty goals per 90", "Shots per 90", "Shots on target, %", "Touches in box per 90"],
    "Creation": ["xA", "xA per 90", "Assists", "Key passes per 90", "Shot assists per 90", "Deep completions per 90", "Accurate crosses, %"],
    "Passing": ["Passes per 90", "Accurate passes, %", "Progressive passes per 90", "Passes to final third per 90", "Accurate long passes, %"],
    "Defensive": ["Successful defensive actions per 90", "Defensive duels won, %", "PAdj Interceptions", "Aerial duels won, %", "Shots blocked per 90"],
    "Possession": ["Dribbles per 90", "Successful dribbles, %", "Progressive runs per 90", "Offensive duels won, %"],
    "Physical": ["Duels won, %", "Duels per 90", "Aerial duels won, %"],
}


def parse_positions(cell: object) -> tuple[str, ...]:
    """Split a ``"LW, RW"`` style cell into upper-case position codes."""

    if cell is None or (isinstance(cell, float) and cell != cell):
        return ()
    tokens = [token.strip().upper() for token in str(cell).replace(";", ",").split(",")]
    return tuple(dict.fromkeys(token for token in tokens if token))


def primary_position(cell: object) -> str:
    positions = parse_positions(cell)
    return positions[0] if positions else ""


def position_category(position: str) -> str:
    """Map a position code (or a multi-valued cell) to its family."""

    primary = primary_position(position)
    return _CATEGORY_BY_POSITION.get(primary, DEFAULT_CATEGORY)


def positions_overlap(left: Iterable[str], right: Iterable[str]) -> bool:
    return not set(left).isdisjoint(right)


def similarity_metrics(position: str) -> list[str]:
    return list(SIMILARITY_METRICS[position_category(position)])


def key_metrics(position: str) -> list[str]:
    return list(KEY_METRICS.get(primary_position(position), KEY_METRICS["CMF"]))


def value_metrics(position: str, available: Iterable[str], limit: int = 8) -> list[str]:
    """Position metrics present in ``available``, topped up with generic ones."""

    available = set(available)
    primary = primary_position(position) or "CMF"
    selected = [m for m in VALUE_METRICS.get(primary, VALUE_METRICS["CMF"]) if m in available]
    if len(selected) < 6:
        for metric in GENERIC_METRICS:
            if len(selected) >= limit:
                break
            if metric in available and metric not in selected:
                selected.append(metric)
    return selected[:limit]
