from __future__ import annotations

import io
import re
from typing import Any, Literal, Optional

import feedparser

from blog_feed_aggregator.extract import clean_description, first_image_src
from blog_feed_aggregator.types import ParsedFeed, ParsedItem

FeedFormat = Literal["atom", "rss"]

# Blogger and a few others emit single-quoted namespace declarations
_ATOM_ROOT_RE = re.compile(
    r"""<feed\b[^>]*\bxmlns\s*=\s*(["'])http://www\.w3\.org/2005/Atom\1""",
    re.IGNORECASE,
)
_CHANNEL_RE = re.compile(r"<channel[\s>]", re.IGNORECASE)


def _as_text(markup: str | bytes) -> str:
    if isinstance(markup, bytes):
        return markup.decode("utf-8", errors="ignore")
    return markup or ""


def _as_bytes(markup: str | bytes) -> bytes:
    if isinstance(markup, bytes):
        return markup
    return (markup or "").encode("utf-8")


def _read(markup: str | bytes) -> Any:
    # A stream keeps feedparser from treating the markup as a URL or a file name.
    return feedparser.parse(io.BytesIO(_as_bytes(markup)))


def detect_format(markup: str | bytes) -> FeedFormat:
    if _ATOM_ROOT_RE.search(_as_text(markup)):
        return "atom"
    return "rss"


def _text(value: Any) -> str:
    return str(value or "").strip()


def _first_content(entry: Any) -> Optional[str]:
    for c in entry.get("content") or []:
        value = _text(c.get("value"))
        if value:
            return value
    return None


def _alternate_href(links: Any) -> Optional[str]:
    candidates = [link for link in (links or []) if _text(link.get("href"))]
    for link in candidates:
        if link.get("rel", "alternate") == "alternate":
            return _text(link.get("href"))
    if candidates:
        return _text(candidates[0].get("href"))
    return None


def _thumbnail(entry: Any, html_sources: tuple[Optional[str], ...]) -> Optional[str]:
    for enc in entry.get("enclosures") or []:
        href = _text(enc.get("href") or enc.get("url"))
        if href and _text(enc.get("type")).lower().startswith("image"):
            return href

    for media in entry.get("media_thumbnail") or []:
        url = _text(media.get("url"))
        if url:
            return url

    for html in html_sources:
        src = first_image_src(html)
        if src:
            return src

    return None


def _feed_title(feed: Any) -> str:
    return _text(feed.get("title")) or "Unknown"


def parse_rss(markup: str | bytes) -> Optional[ParsedFeed]:
    """Parse RSS 2.0 markup. Returns None when no <channel> can be found."""

    if not _CHANNEL_RE.search(_as_text(markup)):
        return None

    d = _read(markup)
    feed = d.get("feed") or {}

    items: list[ParsedItem] = []
    for e in d.get("entries") or []:
        title = _text(e.get("title"))
        # permalink-only feeds publish the article URL as <guid>
        link = _text(e.get("link")) or _text(e.get("id"))
        if not title or not link:
            continue

        description = e.get("summary")
        items.append(
            ParsedItem(
                title=title,
                link=link,
                description=clean_description(description),
                pub_date=_text(e.get("published") or e.get("updated")) or None,
                thumbnail=_thumbnail(e, (_first_content(e), description)),
            )
        )

    return ParsedFeed(
        title=_feed_title(feed),
        description=clean_description(feed.get("subtitle")),
        link=_text(feed.get("link")),
        items=items,
    )


def parse_atom(markup: str | bytes) -> Optional[ParsedFeed]:
    """Parse an Atom feed. Returns None when feedparser does not see Atom."""

    d = _read(markup)
    if not str(d.get("version") or "").startswith("atom"):
        return None
    feed = d.get("feed") or {}

    items: list[ParsedItem] = []
    for e in d.get("entries") or []:
        title = _text(e.get("title"))
        # feedparser copies <id> into entry.link when no <link> exists
        link = _alternate_href(e.get("links"))
        if not title or not link:
            continue

        content = _first_content(e)
        summary = _text(e.get("summary")) or None
        items.append(
            ParsedItem(
                title=title,
                link=link,
                description=clean_description(summary or content),
                pub_date=_text(e.get("published") or e.get("updated")) or None,
                thumbnail=_thumbnail(e, (content, summary)),
            )
        )

    return ParsedFeed(
        title=_feed_title(feed),
        description=clean_description(feed.get("subtitle")),
        link=_alternate_href(feed.get("links")) or _text(feed.get("link")),
        items=items,
    )


def parse_feed(markup: str | bytes) -> Optional[ParsedFeed]:
    if detect_format(markup) == "atom":
        return parse_atom(markup)
    return parse_rss(markup)
