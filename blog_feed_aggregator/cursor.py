"""Opaque pagination cursors for post listings.

recent:  "<ISO-8601 publishedAt of the last row>"
popular: "<bookmark count>:<ISO-8601 publishedAt>"  (split on the first colon;
         the timestamp itself contains colons)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Literal, Sequence, TypeVar

from dateutil import parser as dateparser

from blog_feed_aggregator.dates import ensure_utc, to_iso

SortMode = Literal["recent", "popular"]

T = TypeVar("T")


class InvalidCursorError(ValueError):
    pass


@dataclass(frozen=True)
class PopularCursor:
    count: int
    date: datetime


@dataclass(frozen=True)
class CursorPage(Generic[T]):
    data: list[T]
    next_cursor: str | None
    has_more: bool


def _parse_iso(value: str, cursor: str) -> datetime:
    try:
        return ensure_utc(dateparser.isoparse(value))
    except (ValueError, OverflowError) as exc:
        raise InvalidCursorError(f"invalid cursor timestamp: {cursor!r}") from exc


def encode_recent_cursor(date: datetime) -> str:
    return to_iso(date)


def decode_recent_cursor(cursor: str) -> datetime:
    return _parse_iso(cursor, cursor)


def encode_popular_cursor(count: int, date: datetime) -> str:
    return f"{int(count)}:{to_iso(date)}"


def decode_popular_cursor(cursor: str) -> PopularCursor:
    count_part, sep, date_part = (cursor or "").partition(":")
    if not sep or not (count_part.isascii() and count_part.isdigit()):
        raise InvalidCursorError(f"invalid popular cursor: {cursor!r}")
    return PopularCursor(count=int(count_part), date=_parse_iso(date_part, cursor))


def _field(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def cursor_for(row: Any, sort: SortMode = "recent") -> str:
    published_at = _field(row, "published_at")
    if sort == "popular":
        # rows whose count was never fetched sort as 0
        return encode_popular_cursor(_field(row, "hatena_bookmark_count") or 0, published_at)
    return encode_recent_cursor(published_at)


def build_cursor_response(rows: Sequence[T], limit: int, sort: SortMode = "recent") -> CursorPage[T]:
    """Page from a query that fetched ``limit + 1`` rows.

    The extra row only signals that more data exists; the cursor points at the
    last row actually returned.
    """

    has_more = len(rows) > limit
    data = list(rows[:limit]) if has_more else list(rows)

    next_cursor = None
    if has_more and data:
        next_cursor = cursor_for(data[-1], sort)

    return CursorPage(data=data, next_cursor=next_cursor, has_more=has_more)
