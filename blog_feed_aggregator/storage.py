from __future__ import annotations

import logging
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol

import pandas as pd

from blog_feed_aggregator.dates import ensure_utc, utcnow
from blog_feed_aggregator.types import FEED_TYPES, FeedSource, Post

logger = logging.getLogger(__name__)

FEED_COLUMNS = [f.name for f in fields(FeedSource)]
POST_COLUMNS = [f.name for f in fields(Post)]
BOOKMARK_COLUMNS = ["user_id", "feed_id", "created_at"]


class StorageError(Exception):
    pass


class DuplicatePostError(StorageError):
    pass


class DuplicateFeedError(StorageError):
    pass


class Store(Protocol):
    """Persistence operations the ingestion pipeline relies on."""

    def list_sources(self) -> list[FeedSource]: ...

    def find_source_by_url(self, feed_url: str) -> Optional[FeedSource]: ...

    def insert_source(self, source: FeedSource) -> None: ...

    def update_source_fetched_at(self, source_id: str, when: datetime) -> None: ...

    def list_sources_missing_description(self) -> list[FeedSource]: ...

    def update_source_description(self, source_id: str, description: str) -> None: ...

    def update_source_bookmark_count(self, source_id: str, count: int) -> None: ...

    def count_feed_bookmarks(self) -> dict[str, int]: ...

    def existing_post_urls(self) -> set[str]: ...

    def find_post_by_url(self, url: str) -> Optional[Post]: ...

    def insert_post(self, post: Post) -> None: ...

    def update_post_bookmark_count(self, post_id: str, count: int) -> None: ...

    def update_post_thumbnail(self, post_id: str, thumbnail_url: str) -> None: ...

    def list_posts_for_reconciliation(self, since: datetime, cap: int) -> list[Post]: ...


def read_existing(path: Path) -> pd.DataFrame | None:
    if not path.exists():
        return None

    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path, dtype=object, keep_default_na=False, na_values=[""])


def write_frame(path: Path, df: pd.DataFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".parquet":
        df.to_parquet(path, index=False)
        return
    df.to_csv(path, index=False, encoding="utf-8")


def _missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _opt_str(value: Any) -> Optional[str]:
    return None if _missing(value) else str(value)


def _opt_int(value: Any) -> Optional[int]:
    return None if _missing(value) else int(float(value))


def _opt_float(value: Any) -> Optional[float]:
    return None if _missing(value) else float(value)


def _opt_dt(value: Any) -> Optional[datetime]:
    if _missing(value):
        return None
    return ensure_utc(pd.Timestamp(value).to_pydatetime())


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return False if _missing(value) else bool(value)


def _empty(columns: list[str]) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=object) for c in columns})


def _append(df: pd.DataFrame, row: dict[str, Any]) -> pd.DataFrame:
    new = pd.DataFrame([row], columns=list(df.columns), dtype=object)
    if df.empty:
        return new
    return pd.concat([df, new], ignore_index=True)


def _to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    return df.to_dict(orient="records")


def row_to_source(row: dict[str, Any]) -> FeedSource:
    return FeedSource(
        id=str(row["id"]),
        title=str(row["title"]),
        feed_url=str(row["feed_url"]),
        site_url=str(row["site_url"]),
        description=_opt_str(row.get("description")),
        type=row["type"] if row.get("type") in FEED_TYPES else "blog",
        is_official=_bool(row.get("is_official")),
        bookmark_count=_opt_int(row.get("bookmark_count")) or 0,
        author_id=_opt_str(row.get("author_id")),
        last_fetched_at=_opt_dt(row.get("last_fetched_at")),
        created_at=_opt_dt(row.get("created_at")),
        updated_at=_opt_dt(row.get("updated_at")),
    )


def row_to_post(row: dict[str, Any]) -> Post:
    return Post(
        id=str(row["id"]),
        title=str(row["title"]),
        url=str(row["url"]),
        published_at=_opt_dt(row["published_at"]) or utcnow(),
        feed_id=str(row["feed_id"]),
        summary=_opt_str(row.get("summary")),
        thumbnail_url=_opt_str(row.get("thumbnail_url")),
        tech_score=_opt_float(row.get("tech_score")),
        main_topic=_opt_str(row.get("main_topic")),
        sub_topic=_opt_str(row.get("sub_topic")),
        hatena_bookmark_count=_opt_int(row.get("hatena_bookmark_count")),
        created_at=_opt_dt(row.get("created_at")),
    )


class FrameStore:
    """pandas-backed store: one frame per table, written to ``path`` after each change.

    With ``path=None`` everything stays in memory. Feed URL and post URL are
    unique; inserting a duplicate raises instead of silently overwriting.
    """

    def __init__(self, path: Path | None = None, fmt: str = "csv") -> None:
        self.path = path
        self.fmt = fmt
        self._feeds = _empty(FEED_COLUMNS)
        self._posts = _empty(POST_COLUMNS)
        self._bookmarks = _empty(BOOKMARK_COLUMNS)

    @classmethod
    def open(cls, path: Path, fmt: str = "csv") -> "FrameStore":
        store = cls(path=path, fmt=fmt)
        for attr, name, columns in store._tables():
            df = read_existing(store._file(name))
            if df is not None and not df.empty:
                for c in columns:
                    if c not in df.columns:
                        df[c] = None
                setattr(store, attr, df[columns].astype(object))
        logger.debug("opened store at %s (%d feeds, %d posts)", path, len(store._feeds), len(store._posts))
        return store

    def _tables(self) -> list[tuple[str, str, list[str]]]:
        return [
            ("_feeds", "feeds", FEED_COLUMNS),
            ("_posts", "posts", POST_COLUMNS),
            ("_bookmarks", "feed_bookmarks", BOOKMARK_COLUMNS),
        ]

    def _file(self, name: str) -> Path:
        assert self.path is not None
        suffix = ".parquet" if self.fmt == "parquet" else ".csv"
        return self.path / f"{name}{suffix}"

    def _commit(self, **frames: pd.DataFrame) -> None:
        """Swap in the given frames and write them; on a failed write keep the old ones."""

        previous = {attr: getattr(self, attr) for attr in frames}
        for attr, df in frames.items():
            setattr(self, attr, df)
        if self.path is None:
            return
        try:
            for attr, name, _ in self._tables():
                if attr in frames:
                    write_frame(self._file(name), frames[attr])
        except (OSError, ValueError, ImportError) as exc:
            for attr, df in previous.items():
                setattr(self, attr, df)
            raise StorageError(f"could not write store at {self.path}: {exc}") from exc

    # feeds

    def list_sources(self) -> list[FeedSource]:
        """Never-fetched sources first, then least recently fetched."""

        sources = [row_to_source(r) for r in _to_records(self._feeds)]
        # sorted() is stable, so ties keep storage order
        return sorted(
            sources,
            key=lambda s: (s.last_fetched_at is not None, s.last_fetched_at.timestamp() if s.last_fetched_at else 0.0),
        )

    def find_source_by_url(self, feed_url: str) -> Optional[FeedSource]:
        match = self._feeds[self._feeds["feed_url"] == feed_url]
        if match.empty:
            return None
        return row_to_source(_to_records(match)[0])

    def insert_source(self, source: FeedSource) -> None:
        if self.find_source_by_url(source.feed_url) is not None:
            raise DuplicateFeedError(f"feed already registered: {source.feed_url}")
        now = utcnow()
        row = asdict(source)
        row["created_at"] = row["created_at"] or now
        row["updated_at"] = row["updated_at"] or now
        self._commit(_feeds=_append(self._feeds, row))

    def _update_source(self, source_id: str, **values: Any) -> None:
        mask = self._feeds["id"] == source_id
        if not mask.any():
            raise StorageError(f"unknown feed id: {source_id}")
        df = self._feeds.copy()
        for col, value in {**values, "updated_at": utcnow()}.items():
            df.loc[mask, col] = value
        self._commit(_feeds=df)

    def update_source_fetched_at(self, source_id: str, when: datetime) -> None:
        self._update_source(source_id, last_fetched_at=when)

    def list_sources_missing_description(self) -> list[FeedSource]:
        return [s for s in self.list_sources() if not s.description]

    def update_source_description(self, source_id: str, description: str) -> None:
        self._update_source(source_id, description=description)

    def update_source_bookmark_count(self, source_id: str, count: int) -> None:
        self._update_source(source_id, bookmark_count=int(count))

    def delete_source(self, source_id: str) -> None:
        """Delete a feed together with its posts and bookmarks."""

        self._commit(
            _feeds=self._feeds[self._feeds["id"] != source_id].reset_index(drop=True),
            _posts=self._posts[self._posts["feed_id"] != source_id].reset_index(drop=True),
            _bookmarks=self._bookmarks[self._bookmarks["feed_id"] != source_id].reset_index(drop=True),
        )

    # feed bookmarks (users <-> feeds)

    def add_feed_bookmark(self, user_id: str, feed_id: str) -> None:
        dup = (self._bookmarks["user_id"] == user_id) & (self._bookmarks["feed_id"] == feed_id)
        if dup.any():
            return
        row = {"user_id": user_id, "feed_id": feed_id, "created_at": utcnow()}
        self._commit(_bookmarks=_append(self._bookmarks, row))

    def count_feed_bookmarks(self) -> dict[str, int]:
        if self._bookmarks.empty:
            return {}
        counts = self._bookmarks.groupby("feed_id").size()
        return {str(k): int(v) for k, v in counts.items()}

    # posts

    def existing_post_urls(self) -> set[str]:
        return {str(u) for u in self._posts["url"].tolist()}

    def find_post_by_url(self, url: str) -> Optional[Post]:
        match = self._posts[self._posts["url"] == url]
        if match.empty:
            return None
        return row_to_post(_to_records(match)[0])

    def list_posts(self) -> list[Post]:
        return [row_to_post(r) for r in _to_records(self._posts)]

    def insert_post(self, post: Post) -> None:
        if (self._posts["url"] == post.url).any():
            raise DuplicatePostError(f"post already stored: {post.url}")
        row = asdict(post)
        row["created_at"] = row["created_at"] or utcnow()
        self._commit(_posts=_append(self._posts, row))

    def _update_post(self, post_id: str, **values: Any) -> None:
        mask = self._posts["id"] == post_id
        if not mask.any():
            raise StorageError(f"unknown post id: {post_id}")
        df = self._posts.copy()
        for col, value in values.items():
            df.loc[mask, col] = value
        self._commit(_posts=df)

    def update_post_bookmark_count(self, post_id: str, count: int) -> None:
        self._update_post(post_id, hatena_bookmark_count=int(count))

    def update_post_thumbnail(self, post_id: str, thumbnail_url: str) -> None:
        self._update_post(post_id, thumbnail_url=thumbnail_url)

    def list_posts_for_reconciliation(self, since: datetime, cap: int) -> list[Post]:
        """Posts never looked up, or published at/after ``since``; newest first."""

        since = ensure_utc(since)
        selected = [
            p
            for p in self.list_posts()
            if p.hatena_bookmark_count is None or p.published_at >= since
        ]
        selected.sort(key=lambda p: p.published_at, reverse=True)
        return selected[: max(0, cap)]
