from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

import aiohttp

from blog_feed_aggregator.config import Config, load_config
from blog_feed_aggregator.feed_sync import (
    FeedRegistrationError,
    load_official_feeds,
    register_feed,
    sync_official_feeds,
)
from blog_feed_aggregator.http import HttpClient
from blog_feed_aggregator.pipeline import build_oracle, open_store, reconcile_feed_bookmark_counts, run_once


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="blog-feed-aggregator", description="Tech blog feed ingestion")
    p.add_argument("--config", default="config.yaml", help="path to config.yaml")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="fetch all feeds, refresh bookmark counts, reconcile")

    sync = sub.add_parser("sync-official", help="register missing official feeds")
    sync.add_argument("--sources", default="sources.yaml", help="official feed list")
    sync.add_argument("--dry-run", action="store_true")

    reg = sub.add_parser("register", help="register a feed URL and import its posts")
    reg.add_argument("url")
    reg.add_argument("--author", default=None, help="owning user id")

    sub.add_parser("reconcile", help="recompute feed bookmark counts")
    return p


def _configure_logging(cfg: Config, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


async def _register(cfg: Config, url: str, author: Optional[str]) -> int:
    store = open_store(cfg)
    async with aiohttp.ClientSession() as session:
        client = HttpClient(
            session,
            user_agent=str(cfg.http["user_agent"]),
            timeout_seconds=float(cfg.http["timeout_seconds"]),
        )
        try:
            source, imported = await register_feed(store, client, url, author_id=author, oracle=build_oracle(cfg))
        except FeedRegistrationError as exc:
            print(f"Registration failed: {exc}", file=sys.stderr)
            return 1
    print(f"Registered {source.title} ({source.feed_url}) | Imported: {imported}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = load_config(args.config)
    _configure_logging(cfg, args.verbose)

    if args.command == "run":
        summary = asyncio.run(run_once(cfg))
        s = summary.ingest
        print(
            f"Fetched: {s.feeds_fetched} | Failed: {s.feeds_failed} | Added: {s.posts_added} | "
            f"Bookmarks updated: {summary.bookmarks_updated} | Feeds reconciled: {summary.feeds_reconciled}"
        )
        print(f"Output dir: {cfg.output_dir}")
        return 0

    if args.command == "sync-official":
        result = sync_official_feeds(open_store(cfg), load_official_feeds(args.sources), dry_run=args.dry_run)
        prefix = "Would add" if args.dry_run else "Added"
        print(f"{prefix}: {len(result.added)} | Existing: {len(result.existing)} | Errors: {len(result.errors)}")
        for label in result.added:
            print(f"  + {label}")
        for err in result.errors:
            print(f"  ! {err['url']}: {err['error']}")
        return 1 if result.errors else 0

    if args.command == "register":
        return asyncio.run(_register(cfg, args.url, args.author))

    if args.command == "reconcile":
        fixed = reconcile_feed_bookmark_counts(open_store(cfg))
        print(f"Feeds reconciled: {fixed}")
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
