from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from dateutil import parser as dateparser

WEEK = timedelta(days=7)
MONTH = timedelta(days=30)

Period = Literal["week", "month"]

# abbreviations dateutil does not know on its own, as UTC offsets in seconds
_TZINFOS = {"JST": 9 * 3600}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: str | None) -> Optional[datetime]:
    """RFC 2822 / ISO 8601 feed date -> aware UTC datetime, None if unreadable."""

    if not value:
        return None
    try:
        dt = dateparser.parse(value, tzinfos=_TZINFOS)
    except (ValueError, OverflowError):
        return None
    if dt is None:
        return None
    return ensure_utc(dt)


def to_iso(dt: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. 2025-01-15T10:30:00.000Z."""

    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def threshold(period: Period, now: Optional[datetime] = None) -> datetime:
    base = now or utcnow()
    return base - (WEEK if period == "week" else MONTH)
