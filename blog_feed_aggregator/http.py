from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlparse

import aiohttp

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RequestSequencer:
    """Fixed delay between consecutive calls; the first call never waits.

    Callers await ``wait()`` before each request. ``sleep`` is injectable so
    tests can record delays instead of sleeping.
    """

    def __init__(self, delay_seconds: float, sleep: Sleep = asyncio.sleep) -> None:
        self._delay = max(0.0, float(delay_seconds))
        self._sleep = sleep
        self._calls = 0

    @property
    def calls(self) -> int:
        return self._calls

    async def wait(self) -> None:
        if self._calls > 0 and self._delay > 0:
            await self._sleep(self._delay)
        self._calls += 1


class DomainRateLimiter:
    """Simple per-domain token bucket implemented with asyncio primitives."""

    def __init__(
        self,
        max_requests_per_period: int,
        period_seconds: float,
        *,
        clock: Optional[Callable[[], float]] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._max = max(1, int(max_requests_per_period))
        self._period = float(period_seconds)
        self._clock = clock
        self._sleep = sleep
        self._domain_locks: dict[str, asyncio.Lock] = {}
        self._domain_times: dict[str, list[float]] = {}

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    async def acquire(self, url: str) -> None:
        domain = urlparse(url).netloc.lower()
        lock = self._domain_locks.setdefault(domain, asyncio.Lock())

        while True:
            async with lock:
                now = self._now()
                times = self._domain_times.setdefault(domain, [])
                cutoff = now - self._period
                while times and times[0] <= cutoff:
                    times.pop(0)

                if len(times) < self._max:
                    times.append(now)
                    return

                # wait until the oldest token expires
                wait_for = (times[0] + self._period) - now

            logger.debug("rate limit: waiting %.2fs for %s", wait_for, domain)
            await self._sleep(max(0.0, wait_for))


class HttpClient:
    """GET helper: identifying user agent, bounded timeout, no retries.

    Every failure (transport error, timeout, non-2xx) is logged and turned
    into ``None``; a failed request is simply tried again on the next run.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        user_agent: str,
        timeout_seconds: float,
        limiter: Optional[DomainRateLimiter] = None,
    ) -> None:
        self._session = session
        self._ua = user_agent
        self._limiter = limiter
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _get(self, url: str, accept: str) -> Optional[bytes]:
        headers = {"User-Agent": self._ua, "Accept": accept}

        if self._limiter is not None:
            await self._limiter.acquire(url)
        try:
            async with self._session.get(url, headers=headers, timeout=self._timeout) as r:
                if r.status < 200 or r.status >= 300:
                    logger.warning("GET %s failed: HTTP %s", url, r.status)
                    return None
                return await r.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("GET %s failed: %s", url, exc or type(exc).__name__)
            return None

    async def get_bytes(self, url: str) -> Optional[bytes]:
        return await self._get(url, "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8")

    async def get_text(self, url: str) -> Optional[str]:
        body = await self._get(url, "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8")
        if body is None:
            return None
        return body.decode("utf-8", errors="ignore")

    async def get_json(self, url: str) -> Any:
        body = await self._get(url, "application/json")
        if body is None:
            return None
        try:
            return json.loads(body)
        except ValueError:
            logger.warning("GET %s returned a non-JSON body", url)
            return None
