from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Protocol

import aiohttp

from blog_feed_aggregator.anchors import AnchorSimilarityScorer, ScoringOracle
from blog_feed_aggregator.config import Config, load_config
from blog_feed_aggregator.dates import parse_datetime, utcnow
from blog_feed_aggregator.extract import extract_og_image
from blog_feed_aggregator.hatena import BookmarkCountClient
from blog_feed_aggregator.http import DomainRateLimiter, HttpClient, RequestSequencer, Sleep
from blog_feed_aggregator.rss import parse_feed
from blog_feed_aggregator.scoring import tech_score
from blog_feed_aggregator.storage import DuplicatePostError, FrameStore, StorageError, Store
from blog_feed_aggregator.topics import assign_topics
from blog_feed_aggregator.types import FeedSource, ParsedFeed, ParsedItem, Post

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 500
DESCRIPTION_MAX_CHARS = 500


class FeedFetcher(Protocol):
    async def get_bytes(self, url: str) -> Optional[bytes]: ...

    async def get_text(self, url: str) -> Optional[str]: ...


@dataclass
class IngestStats:
    feeds_fetched: int = 0
    feeds_failed: int = 0
    posts_added: int = 0
    posts_skipped: int = 0
    posts_failed: int = 0
    descriptions_backfilled: int = 0
    thumbnails_filled: int = 0
    added: list[Post] = field(default_factory=list)


@dataclass
class RunSummary:
    ingest: IngestStats
    bookmarks_updated: int
    feeds_reconciled: int


def generate_id() -> str:
    return str(uuid.uuid4())


def score_item(title: str, summary: Optional[str], oracle: Optional[ScoringOracle] = None) -> float:
    """Oracle score when one is available and works, keyword score otherwise."""

    if oracle is not None:
        try:
            return float(oracle.score(title, summary))
        except Exception as exc:
            logger.warning("scoring oracle failed for %r, using keyword score: %s", title, exc)
    return tech_score(title, summary)


def build_post(
    item: ParsedItem,
    feed_id: str,
    *,
    oracle: Optional[ScoringOracle] = None,
    now: Optional[datetime] = None,
    summary_max_chars: int = SUMMARY_MAX_CHARS,
) -> Post:
    summary = item.description[:summary_max_chars] if item.description else None
    topics = assign_topics(item.title, summary)
    return Post(
        id=generate_id(),
        title=item.title,
        summary=summary,
        url=item.link,
        thumbnail_url=item.thumbnail,
        published_at=parse_datetime(item.pub_date) or now or utcnow(),
        feed_id=feed_id,
        tech_score=score_item(item.title, summary, oracle),
        main_topic=topics.main,
        sub_topic=topics.sub,
    )


async def fetch_and_parse_feed(client: FeedFetcher, feed_url: str) -> Optional[ParsedFeed]:
    body = await client.get_bytes(feed_url)
    if body is None:
        return None
    return parse_feed(body)


def _backfill_description(store: Store, source: FeedSource, parsed: ParsedFeed) -> bool:
    if source.description or not parsed.description:
        return False
    try:
        store.update_source_description(source.id, parsed.description[:DESCRIPTION_MAX_CHARS])
    except StorageError as exc:
        logger.warning("could not store description for %s: %s", source.feed_url, exc)
        return False
    logger.info("Updated description for feed %s", source.id)
    return True


def _ingest_items(
    store: Store,
    source: FeedSource,
    parsed: ParsedFeed,
    existing_urls: set[str],
    stats: IngestStats,
    *,
    oracle: Optional[ScoringOracle],
    now: datetime,
    summary_max_chars: int,
) -> None:
    for item in parsed.items:
        if not item.title or not item.link:
            continue
        if item.link in existing_urls:
            stats.posts_skipped += 1
            logger.debug("skip existing post %s", item.link)
            continue

        try:
            post = build_post(item, source.id, oracle=oracle, now=now, summary_max_chars=summary_max_chars)
            store.insert_post(post)
        except DuplicatePostError:
            existing_urls.add(item.link)
            stats.posts_skipped += 1
            continue
        except StorageError as exc:
            stats.posts_failed += 1
            logger.warning("failed to store %s: %s", item.link, exc)
            continue

        # first feed to publish a URL wins within a run as well
        existing_urls.add(item.link)
        stats.posts_added += 1
        stats.added.append(post)
        topics = ", ".join(t for t in (post.main_topic, post.sub_topic) if t) or "none"
        logger.info("Added: %s (techScore: %.2f, topics: %s)", post.title, post.tech_score or 0.0, topics)


async def fetch_og_images(
    store: Store,
    client: FeedFetcher,
    posts: list[Post],
    *,
    limit: int = 3,
    delay_ms: int = 200,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """Fill missing thumbnails from the article's og:image / twitter:image."""

    todo = [p for p in posts if not p.thumbnail_url][: max(0, limit)]
    if not todo:
        return 0

    sequencer = RequestSequencer(delay_ms / 1000.0, sleep=sleep)
    updated = 0
    for post in todo:
        await sequencer.wait()
        html = await client.get_text(post.url)
        if not html:
            continue
        image = extract_og_image(html)
        if not image:
            continue
        try:
            store.update_post_thumbnail(post.id, image)
        except StorageError as exc:
            logger.warning("could not store og:image for %s: %s", post.url, exc)
            continue
        updated += 1

    logger.info("[OGP] Updated %d/%d posts with og:image", updated, len(todo))
    return updated


async def fetch_feeds(
    store: Store,
    client: FeedFetcher,
    *,
    oracle: Optional[ScoringOracle] = None,
    max_feed_fetches: int = 30,
    summary_max_chars: int = SUMMARY_MAX_CHARS,
    og_image_limit: int = 3,
    og_image_delay_ms: int = 200,
    sleep: Sleep = asyncio.sleep,
    now: Optional[datetime] = None,
) -> IngestStats:
    """Poll every registered source once, one after another.

    A failing source (HTTP error, unparsable markup, unexpected exception) is
    logged and skipped; nothing here aborts the run.
    """

    stats = IngestStats()
    run_at = now or utcnow()

    sources = store.list_sources()
    existing_urls = store.existing_post_urls()
    logger.info(
        "Starting RSS feed fetch: %d feeds, up to %d per run, %d known posts",
        len(sources),
        max_feed_fetches,
        len(existing_urls),
    )

    for source in sources:
        if stats.feeds_fetched >= max_feed_fetches:
            logger.info("Reached fetch budget (%d), stopping feed fetch", max_feed_fetches)
            break

        try:
            logger.info("Fetching: %s", source.feed_url)
            body = await client.get_bytes(source.feed_url)
            stats.feeds_fetched += 1

            # stamped on failure too, so a broken feed rotates to the back
            try:
                store.update_source_fetched_at(source.id, utcnow())
            except StorageError as exc:
                logger.warning("could not stamp fetch time for %s: %s", source.feed_url, exc)

            if body is None:
                stats.feeds_failed += 1
                continue

            parsed = parse_feed(body)
            if parsed is None:
                stats.feeds_failed += 1
                logger.warning("Failed to parse feed: %s", source.feed_url)
                continue

            if _backfill_description(store, source, parsed):
                stats.descriptions_backfilled += 1

            _ingest_items(
                store,
                source,
                parsed,
                existing_urls,
                stats,
                oracle=oracle,
                now=run_at,
                summary_max_chars=summary_max_chars,
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            stats.feeds_failed += 1
            logger.exception("Error processing %s", source.feed_url)

    stats.thumbnails_filled = await fetch_og_images(
        store,
        client,
        stats.added,
        limit=og_image_limit,
        delay_ms=og_image_delay_ms,
        sleep=sleep,
    )

    logger.info(
        "RSS feed fetch complete: fetched=%d failed=%d added=%d skipped=%d",
        stats.feeds_fetched,
        stats.feeds_failed,
        stats.posts_added,
        stats.posts_skipped,
    )
    return stats


async def update_recent_bookmark_counts(
    store: Store,
    bookmarks: BookmarkCountClient,
    *,
    window_days: int = 7,
    batch_size: int = 40,
    delay_ms: int = 100,
    now: Optional[datetime] = None,
) -> int:
    """Refresh Hatena counts for never-counted or recently published posts.

    The batch cap keeps one run inside the host's time budget; only changed
    values are written. Returns the number of posts updated.
    """

    since = (now or utcnow()) - timedelta(days=window_days)
    posts = store.list_posts_for_reconciliation(since, batch_size)
    if not posts:
        return 0

    counts = await bookmarks.fetch_counts([p.url for p in posts], delay_ms=delay_ms)

    updated = 0
    for post in posts:
        count = counts.get(post.url, 0)
        if count == post.hatena_bookmark_count:
            continue
        try:
            store.update_post_bookmark_count(post.id, count)
        except StorageError as exc:
            logger.warning("could not store bookmark count for %s: %s", post.url, exc)
            continue
        updated += 1

    logger.info("[Hatena] Updated bookmark counts for %d/%d posts", updated, len(posts))
    return updated


def reconcile_feed_bookmark_counts(store: Store) -> int:
    """Reset each feed's bookmark_count to the real number of bookmark rows."""

    actual = store.count_feed_bookmarks()
    fixed = 0
    for source in store.list_sources():
        count = actual.get(source.id, 0)
        if count == source.bookmark_count:
            continue
        try:
            store.update_source_bookmark_count(source.id, count)
        except StorageError as exc:
            logger.warning("could not reconcile bookmark count for %s: %s", source.id, exc)
            continue
        fixed += 1

    if fixed:
        logger.info("Reconciled bookmark counts for %d feeds", fixed)
    return fixed


def open_store(config: Config) -> FrameStore:
    return FrameStore.open(config.output_dir, fmt=config.storage_format)


def build_oracle(config: Config) -> Optional[ScoringOracle]:
    if bool(config.scoring.get("use_anchor_oracle", False)):
        return AnchorSimilarityScorer()
    return None


async def run_once(config: Config, store: Optional[Store] = None) -> RunSummary:
    store = store if store is not None else open_store(config)
    http_cfg = config.http
    rl_cfg = config.rate_limit
    ingest_cfg = config.ingest
    bm_cfg = config.bookmarks

    limiter = DomainRateLimiter(
        max_requests_per_period=int(rl_cfg["max_requests_per_period"]),
        period_seconds=float(rl_cfg["period_seconds"]),
    )
    connector = aiohttp.TCPConnector(limit=int(http_cfg["max_connections"]))

    async with aiohttp.ClientSession(connector=connector) as session:
        feeds_client = HttpClient(
            session,
            user_agent=str(http_cfg["user_agent"]),
            timeout_seconds=float(http_cfg["timeout_seconds"]),
            limiter=limiter,
        )
        api_client = HttpClient(
            session,
            user_agent=str(http_cfg["user_agent"]),
            timeout_seconds=float(http_cfg["timeout_seconds"]),
        )

        ingest = await fetch_feeds(
            store,
            feeds_client,
            oracle=build_oracle(config),
            max_feed_fetches=int(ingest_cfg["max_feed_fetches_per_run"]),
            summary_max_chars=int(ingest_cfg["summary_max_chars"]),
            og_image_limit=int(ingest_cfg["og_image_fetch_limit"]),
            og_image_delay_ms=int(ingest_cfg["og_image_delay_ms"]),
        )
        bookmarks_updated = await update_recent_bookmark_counts(
            store,
            BookmarkCountClient(api_client, api_url=str(bm_cfg["api_url"])),
            window_days=int(bm_cfg["refresh_window_days"]),
            batch_size=int(bm_cfg["batch_size"]),
            delay_ms=int(bm_cfg["delay_ms"]),
        )

    feeds_reconciled = reconcile_feed_bookmark_counts(store)
    return RunSummary(ingest=ingest, bookmarks_updated=bookmarks_updated, feeds_reconciled=feeds_reconciled)


def run_scheduled(config: Optional[Config] = None, store: Optional[Store] = None) -> None:
    """Entry point for the scheduler: one full ingestion + reconciliation pass."""

    asyncio.run(run_once(config or load_config(), store))
