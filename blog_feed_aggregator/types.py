from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

FeedType = Literal["blog", "slide"]
FEED_TYPES: tuple[FeedType, ...] = ("blog", "slide")


@dataclass(frozen=True)
class FeedSource:
    id: str
    title: str
    feed_url: str
    site_url: str
    description: Optional[str] = None
    type: FeedType = "blog"
    is_official: bool = False
    bookmark_count: int = 0
    author_id: Optional[str] = None

    # populated by ingestion
    last_fetched_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Post:
    id: str
    title: str
    url: str
    published_at: datetime
    feed_id: str
    summary: Optional[str] = None
    thumbnail_url: Optional[str] = None

    # scoring / classification
    tech_score: Optional[float] = None
    main_topic: Optional[str] = None
    sub_topic: Optional[str] = None

    # None means "not fetched yet"
    hatena_bookmark_count: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ParsedItem:
    title: str
    link: str
    description: Optional[str] = None
    pub_date: Optional[str] = None
    thumbnail: Optional[str] = None


@dataclass(frozen=True)
class ParsedFeed:
    title: str
    link: str
    description: Optional[str] = None
    items: list[ParsedItem] = field(default_factory=list)


@dataclass(frozen=True)
class TopicAssignment:
    main: Optional[str] = None
    sub: Optional[str] = None
