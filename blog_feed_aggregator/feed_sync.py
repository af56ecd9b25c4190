from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from blog_feed_aggregator.anchors import ScoringOracle
from blog_feed_aggregator.config import load_yaml
from blog_feed_aggregator.pipeline import FeedFetcher, build_post, fetch_and_parse_feed, generate_id
from blog_feed_aggregator.storage import DuplicateFeedError, StorageError, Store
from blog_feed_aggregator.types import FeedSource
from blog_feed_aggregator.urls import detect_feed_type, extract_site_url, normalize_url

logger = logging.getLogger(__name__)


class FeedRegistrationError(Exception):
    pass


class FeedExistsError(FeedRegistrationError):
    pass


class InvalidFeedError(FeedRegistrationError):
    pass


@dataclass(frozen=True)
class OfficialFeed:
    label: str
    url: str


@dataclass
class SyncResult:
    added: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)


def load_official_feeds(path: str | Path) -> list[OfficialFeed]:
    raw = load_yaml(path)
    feeds: list[OfficialFeed] = []
    for entry in raw.get("official_feeds") or []:
        label = str(entry.get("label") or "").strip()
        url = str(entry.get("url") or "").strip()
        if label and url:
            feeds.append(OfficialFeed(label=label, url=url))
    return feeds


def official_feed_diff(store: Store, official: list[OfficialFeed]) -> list[OfficialFeed]:
    """Official feeds that are not registered yet."""

    existing = {s.feed_url for s in store.list_sources()}
    return [f for f in official if f.url not in existing]


def sync_official_feeds(store: Store, official: list[OfficialFeed], dry_run: bool = False) -> SyncResult:
    """Register missing official feeds. Existing feeds are never updated or deleted."""

    to_add = official_feed_diff(store, official)
    existing = [f.label for f in official if f not in to_add]

    if dry_run:
        return SyncResult(added=[f.label for f in to_add], existing=existing)

    result = SyncResult(existing=existing)
    for feed in to_add:
        source = FeedSource(
            id=generate_id(),
            title=feed.label,
            feed_url=feed.url,
            site_url=extract_site_url(feed.url),
            type="blog",
            is_official=True,
        )
        try:
            store.insert_source(source)
        except StorageError as exc:
            result.errors.append({"url": feed.url, "error": str(exc) or type(exc).__name__})
            continue
        result.added.append(feed.label)

    logger.info("official feed sync: %d added, %d existing, %d errors", len(result.added), len(result.existing), len(result.errors))
    return result


async def register_feed(
    store: Store,
    client: FeedFetcher,
    raw_url: str,
    *,
    author_id: Optional[str] = None,
    oracle: Optional[ScoringOracle] = None,
) -> tuple[FeedSource, int]:
    """Register a user-submitted feed and import its current items.

    Returns the stored source and the number of posts imported.
    """

    feed_url = normalize_url(raw_url)
    logger.info("[Feed Register] Normalized URL: %s -> %s", raw_url, feed_url)

    if store.find_source_by_url(feed_url) is not None:
        raise FeedExistsError(f"feed already registered: {feed_url}")

    parsed = await fetch_and_parse_feed(client, feed_url)
    if parsed is None:
        raise InvalidFeedError(f"failed to fetch or parse feed: {feed_url}")

    source = FeedSource(
        id=generate_id(),
        title=parsed.title,
        description=parsed.description,
        feed_url=feed_url,
        site_url=parsed.link or feed_url,
        type=detect_feed_type(feed_url),
        author_id=author_id,
    )
    try:
        store.insert_source(source)
    except DuplicateFeedError as exc:
        raise FeedExistsError(str(exc)) from exc

    imported = 0
    for item in parsed.items:
        if not item.title or not item.link:
            continue
        if store.find_post_by_url(item.link) is not None:
            continue
        try:
            store.insert_post(build_post(item, source.id, oracle=oracle))
        except StorageError as exc:
            logger.warning("[Feed Register] Skip post: %s (%s)", item.link, exc)
            continue
        imported += 1

    logger.info("[Feed Register] Feed created: %s (type: %s), %d posts imported", source.id, source.type, imported)
    return source, imported
