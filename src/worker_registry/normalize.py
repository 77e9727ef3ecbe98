from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

import pandas as pd


def strip_whitespace(df: pd.DataFrame) -> pd.DataFrame:
    def _clean(v):
        if isinstance(v, str):
            return re.sub(r"\s+", " ", v.strip())
        return v

    # pandas 2.2 deprecates DataFrame.applymap in favor of DataFrame.map
    return df.map(_clean)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def cell_text(value: Any) -> str:
    """Render a spreadsheet cell as trimmed text ('' for blanks).

    Whole floats lose their trailing '.0' so numeric IDs read from Excel
    (1001.0) match the text typed elsewhere ('1001').
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return re.sub(r"\s+", " ", str(value).strip())


def clean_optional(value: Any) -> Any:
    """Trim strings, turning blanks into None; other values pass through."""
    if value is None:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed if trimmed else None
    return value


__all__ = ["strip_whitespace", "is_blank", "cell_text", "clean_optional"]
