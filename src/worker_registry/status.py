from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:  # pragma: no cover
    from .models import Certification

ACTIVE = "active"
EXPIRING_SOON = "expiring_soon"
EXPIRED = "expired"
STATUSES = (ACTIVE, EXPIRING_SOON, EXPIRED)

# Certifications and work permits share one window
EXPIRING_SOON_DAYS = 60

DateLike = Union[date, datetime]


def days_until(expiry: DateLike, now: DateLike) -> int:
    """Whole days from ``now`` to ``expiry``, rounded up."""
    if not isinstance(expiry, datetime) and not isinstance(now, datetime):
        return (expiry - now).days
    exp_dt = expiry if isinstance(expiry, datetime) else datetime(expiry.year, expiry.month, expiry.day)
    now_dt = now if isinstance(now, datetime) else datetime(now.year, now.month, now.day)
    if exp_dt.tzinfo is not None and now_dt.tzinfo is None:
        exp_dt = exp_dt.replace(tzinfo=None)
    elif now_dt.tzinfo is not None and exp_dt.tzinfo is None:
        now_dt = now_dt.replace(tzinfo=None)
    return math.ceil((exp_dt - now_dt).total_seconds() / 86400)


def derive_status(
    expiry: Optional[DateLike],
    now: Optional[DateLike] = None,
    *,
    window_days: int = EXPIRING_SOON_DAYS,
) -> str:
    if expiry is None:
        return ACTIVE
    now = now if now is not None else date.today()
    days = days_until(expiry, now)
    if days < 0:
        return EXPIRED
    if days <= window_days:
        return EXPIRING_SOON
    return ACTIVE


def with_derived_status(cert: "Certification", now: Optional[DateLike] = None) -> "Certification":
    """Copy of ``cert`` whose status reflects its expiry as of ``now``."""
    return replace(cert, status=derive_status(cert.expiry_date, now))


def permit_state(
    expiry: Optional[DateLike],
    now: Optional[DateLike] = None,
    *,
    window_days: int = EXPIRING_SOON_DAYS,
) -> str:
    """Work permit state: '' when no expiry is recorded, otherwise
    'expired' (expiry on or before now), 'expiring_soon' or 'valid'."""
    if expiry is None:
        return ""
    now = now if now is not None else date.today()
    days = days_until(expiry, now)
    if days <= 0:
        return EXPIRED
    if days <= window_days:
        return EXPIRING_SOON
    return "valid"


__all__ = [
    "ACTIVE",
    "EXPIRING_SOON",
    "EXPIRED",
    "STATUSES",
    "EXPIRING_SOON_DAYS",
    "days_until",
    "derive_status",
    "with_derived_status",
    "permit_state",
]
