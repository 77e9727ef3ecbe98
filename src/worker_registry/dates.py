from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

# D/M/YYYY or D.M.YYYY, separators may be mixed
_DMY_RE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{4})$")


def is_lifetime(text: str) -> bool:
    low = text.strip().lower()
    return low == "lifetime" or "life time" in low


def parse_dmy(text: str) -> Optional[date]:
    """Strict day/month/year parse. Returns None for non-matching text or
    calendar values that do not exist (e.g. 31/02/2024)."""
    m = _DMY_RE.match(text.strip())
    if not m:
        return None
    d, mo, y = map(int, m.groups())
    try:
        out = date(y, mo, d)
    except ValueError:
        return None
    if (out.day, out.month, out.year) != (d, mo, y):
        return None
    return out


def normalize_date(value: Any) -> Optional[date]:
    """Convert a spreadsheet cell or free-text date into a ``date``.

    Empty cells, "lifetime" markers and anything unparseable come back as
    None. Never raises.
    """
    if value is None:
        return None
    # NaT subclasses datetime, so the missing-value check comes first
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if not s or is_lifetime(s):
        return None

    parsed = parse_dmy(s)
    if parsed is not None:
        return parsed

    # Fallback via pandas; also catches month-first text such as 12/25/2025
    try:
        ts = pd.to_datetime(s, errors="coerce")
    except Exception:
        return None
    if ts is None or pd.isna(ts):
        return None
    try:
        return ts.date()
    except (AttributeError, ValueError):
        return None


def format_dmy(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def to_iso(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


__all__ = ["normalize_date", "parse_dmy", "is_lifetime", "format_dmy", "to_iso"]
