"""Hatena Bookmark count API.

``GET https://bookmark.hatenaapis.com/count/entry?url=<URL>`` answers with a
bare JSON integer. There is no batch endpoint and no documented concurrency
tolerance, so lookups run one at a time with a fixed delay in between.
"""
from __future__ import annotations

import asyncio
import logging
import math
from typing import Optional
from urllib.parse import urlencode

from blog_feed_aggregator.http import HttpClient, RequestSequencer, Sleep

logger = logging.getLogger(__name__)

HATENA_BOOKMARK_API = "https://bookmark.hatenaapis.com/count/entry"
DEFAULT_DELAY_MS = 100


class BookmarkCountClient:
    def __init__(
        self,
        client: HttpClient,
        api_url: str = HATENA_BOOKMARK_API,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._api_url = api_url
        self._sleep = sleep

    async def fetch_count(self, url: str) -> int:
        """Bookmark count for ``url``; 0 whenever the lookup fails."""

        try:
            payload = await self._client.get_json(f"{self._api_url}?{urlencode({'url': url})}")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("bookmark count lookup failed for %s: %s", url, exc)
            return 0

        # bool is an int subclass; JSON true/false is not a count
        if isinstance(payload, bool) or not isinstance(payload, (int, float)):
            if payload is not None:
                logger.warning("unexpected bookmark count for %s: %r", url, payload)
            return 0
        if not math.isfinite(payload):
            logger.warning("unexpected bookmark count for %s: %r", url, payload)
            return 0
        return max(0, int(payload))

    async def fetch_counts(self, urls: list[str], delay_ms: Optional[int] = None) -> dict[str, int]:
        """Look up every URL strictly one after another.

        Failed lookups are present in the result as 0.
        """

        delay = DEFAULT_DELAY_MS if delay_ms is None else delay_ms
        sequencer = RequestSequencer(delay / 1000.0, sleep=self._sleep)

        counts: dict[str, int] = {}
        for url in urls:
            await sequencer.wait()
            counts[url] = await self.fetch_count(url)
        return counts
