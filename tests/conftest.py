from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pytest

from blog_feed_aggregator.storage import FrameStore
from blog_feed_aggregator.types import FeedSource, Post


RSS_SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
<channel>
  <title>Example Tech Blog</title>
  <link>https://blog.example.com/</link>
  <description><![CDATA[Engineering notes &amp; more]]></description>
  <item>
    <title>First &amp; Foremost</title>
    <link>https://blog.example.com/posts/1</link>
    <description>&lt;p&gt;Hello&lt;/p&gt;&lt;p&gt;World&lt;/p&gt;</description>
    <pubDate>Mon, 15 Jan 2024 10:00:00 +0900</pubDate>
    <enclosure url="https://blog.example.com/img/1.png" type="image/png" length="0"/>
  </item>
  <item>
    <title><![CDATA[CDATA title]]></title>
    <guid>https://blog.example.com/posts/2</guid>
    <description><![CDATA[<p>Mixed <strong>HTML</strong> and text</p>]]></description>
    <media:thumbnail url="https://blog.example.com/img/2.png"/>
  </item>
  <item>
    <title>No link here</title>
    <description>dropped</description>
  </item>
  <item>
    <link>https://blog.example.com/posts/4</link>
  </item>
</channel>
</rss>
"""

ATOM_SAMPLE = """<?xml version='1.0' encoding='UTF-8'?>
<feed xmlns='http://www.w3.org/2005/Atom'>
  <title>Atom Blog</title>
  <subtitle>Posts about things</subtitle>
  <link rel='self' href='https://atom.example.com/feeds/posts/default'/>
  <link rel='alternate' type='text/html' href='https://atom.example.com/'/>
  <id>tag:atom.example.com,2024:blog</id>
  <updated>2024-01-17T00:00:00Z</updated>
  <entry>
    <title>Entry one</title>
    <id>tag:atom.example.com,2024:1</id>
    <link rel='replies' href='https://atom.example.com/1#comments'/>
    <link rel='alternate' href='https://atom.example.com/1'/>
    <summary>Short summary</summary>
    <content type='html'>&lt;p&gt;Long content&lt;/p&gt;</content>
    <published>2024-01-15T10:00:00+09:00</published>
    <updated>2024-01-16T10:00:00+09:00</updated>
  </entry>
  <entry>
    <title>Entry two</title>
    <id>tag:atom.example.com,2024:2</id>
    <link href='https://atom.example.com/2'/>
    <content type='html'>&lt;p&gt;Only &lt;img src="https://atom.example.com/2.png"/&gt; content&lt;/p&gt;</content>
    <updated>2024-01-17T00:00:00Z</updated>
  </entry>
  <entry>
    <title>Missing link</title>
    <id>tag:atom.example.com,2024:3</id>
  </entry>
</feed>
"""


def rss_feed(title: str, items: list[tuple[str, str]], description: str = "") -> bytes:
    """Minimal RSS 2.0 document with (title, link) items."""

    body = "".join(
        f"<item><title>{t}</title><link>{link}</link>"
        f"<pubDate>Mon, 15 Jan 2024 10:00:00 +0000</pubDate></item>"
        for t, link in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>{title}</title>'
        f"<link>https://{title.lower().replace(' ', '')}.example/</link>"
        f"<description>{description}</description>{body}</channel></rss>"
    ).encode("utf-8")


class StubClient:
    """In-memory stand-in for HttpClient; unknown URLs behave like failed requests."""

    def __init__(self, feeds: Optional[dict[str, bytes]] = None, pages: Optional[dict[str, str]] = None):
        self.feeds = feeds or {}
        self.pages = pages or {}
        self.requested: list[str] = []

    async def get_bytes(self, url: str) -> Optional[bytes]:
        self.requested.append(url)
        return self.feeds.get(url)

    async def get_text(self, url: str) -> Optional[str]:
        self.requested.append(url)
        return self.pages.get(url)


def make_source(feed_url: str, title: str = "Feed", **kw) -> FeedSource:
    return FeedSource(
        id=kw.pop("id", feed_url),
        title=title,
        feed_url=feed_url,
        site_url=kw.pop("site_url", feed_url),
        **kw,
    )


def make_post(url: str, published_at: datetime, feed_id: str = "feed-1", **kw) -> Post:
    return Post(
        id=kw.pop("id", url),
        title=kw.pop("title", "Post"),
        url=url,
        published_at=published_at,
        feed_id=feed_id,
        **kw,
    )


@pytest.fixture
def store() -> FrameStore:
    return FrameStore()


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def recorded_sleep():
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep
