from __future__ import annotations

import re
from urllib.parse import urlsplit

from blog_feed_aggregator.types import FeedType

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_BAD_HOST_RE = re.compile(r"[\s<>\"{}|\\^`]")

# only a trailing match is stripped; "/feed/@user" stays intact
_FEED_SUFFIXES = (
    re.compile(r"/(feed|rss|atom)(\.xml)?$", re.IGNORECASE),
    re.compile(r"/index\.xml$", re.IGNORECASE),
    re.compile(r"/feed/?$", re.IGNORECASE),
)

_SLIDE_HOSTS = {"speakerdeck.com", "www.speakerdeck.com"}
_SLIDE_HOST_SUBSTRINGS = ("slideshare.net", "docswell.com")


def normalize_url(url: str) -> str:
    """Canonical form of a feed URL, used to avoid registering a blog twice.

    - adds https:// when no scheme is given (http:// is upgraded too)
    - lower-cases the host and drops a leading "www." label and any port
    - strips a trailing slash from non-root paths
    - keeps the query string verbatim

    Input that cannot be read as a URL is returned trimmed with the scheme
    prepended.
    """

    normalized = (url or "").strip()
    if not _SCHEME_RE.match(normalized):
        normalized = f"https://{normalized}"

    try:
        parsed = urlsplit(normalized)
        hostname = parsed.hostname or ""
        # raises ValueError for a non-numeric port
        parsed.port
    except ValueError:
        return normalized

    if not hostname or _BAD_HOST_RE.search(hostname):
        return normalized

    if hostname.startswith("www."):
        hostname = hostname[4:]
    # IPv6 literals lose their brackets in SplitResult.hostname
    if ":" in hostname:
        hostname = f"[{hostname}]"

    path = parsed.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]

    query = f"?{parsed.query}" if parsed.query else ""
    return f"https://{hostname}{path}{query}"


def extract_site_url(feed_url: str) -> str:
    """Best-effort human site URL for a feed URL (drops /feed, /rss.xml, ...)."""

    try:
        parsed = urlsplit(feed_url)
    except ValueError:
        return feed_url
    if not parsed.scheme or not parsed.netloc:
        return feed_url

    path = parsed.path
    for pattern in _FEED_SUFFIXES:
        path = pattern.sub("", path)

    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path or '/'}"


def detect_feed_type(feed_url: str) -> FeedType:
    hostname = (urlsplit(feed_url).hostname or "").lower()
    if hostname in _SLIDE_HOSTS:
        return "slide"
    if any(s in hostname for s in _SLIDE_HOST_SUBSTRINGS):
        return "slide"
    return "blog"
