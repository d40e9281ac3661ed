"""Turn CSV exports into the typed row dicts the entity store consumes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import numpy as np
import pandas as pd

from .entities import PLAYER_TEXT_COLUMNS, SHOT_COLUMNS, TEAM_TEXT_COLUMNS

logger = logging.getLogger(__name__)

SHOT_TEXT_COLUMNS = frozenset(set(SHOT_COLUMNS) - {"X", "Y", "xG", "minute"})
TEXT_COLUMNS = frozenset(PLAYER_TEXT_COLUMNS) | TEAM_TEXT_COLUMNS | SHOT_TEXT_COLUMNS

NUMERIC_RATIO_THRESHOLD = 0.5


def _coerce_numeric(series: pd.Series) -> pd.Series:
    cleaned = (
        series.astype(str)
        .str.strip()
        .str.replace("%", "", regex=False)
        .str.replace("€", "", regex=False)
        .str.replace("M", "e6", regex=False)
        .str.replace("k", "e3", regex=False)
        .str.replace(",", ".", regex=False)
        .replace({"-": np.nan, "nan": np.nan, "None": np.nan, "": np.nan})
    )
    return pd.to_numeric(cleaned, errors="coerce").astype(float)


def _is_text(series: pd.Series) -> bool:
    # Text loads as object on pandas 2 and as the string dtype on pandas 3.
    return pd.api.types.is_object_dtype(series) or pd.api.types.is_string_dtype(series)


def coerce_numeric_columns(df: pd.DataFrame, text_columns: Iterable[str] = TEXT_COLUMNS) -> pd.DataFrame:
    """Convert text columns that mostly hold formatted numbers to floats."""

    working = df.copy()
    skip = set(text_columns)
    for col in working.columns:
        if col in skip or not _is_text(working[col]):
            continue
        present = working[col].notna()
        if not present.any():
            continue
        coerced = _coerce_numeric(working[col])
        numeric_ratio = np.isfinite(coerced[present]).mean()
        if numeric_ratio >= NUMERIC_RATIO_THRESHOLD:
            working[col] = coerced
    return working


def rows_from_frame(df: pd.DataFrame, text_columns: Iterable[str] = TEXT_COLUMNS) -> list[dict[str, Any]]:
    """Records with numeric columns as floats and blanks as ``None``."""

    working = coerce_numeric_columns(df, text_columns)
    working = working.astype(object).where(working.notna(), None)
    return working.to_dict(orient="records")


def load_rows(path: Union[str, Path], *, n_rows: Optional[int] = None) -> list[dict[str, Any]]:
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"Data file not found: {path_obj}")
    logger.info("Loading rows from %s", path_obj)
    df = pd.read_csv(path_obj, nrows=n_rows)
    return rows_from_frame(df)
