import asyncio

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from blog_feed_aggregator.hatena import BookmarkCountClient
from blog_feed_aggregator.http import HttpClient

COUNTS = {
    "https://a.example/1": 12,
    "https://a.example/2": 0,
    "https://a.example/neg": -3,
}


def lookup(urls, sleep, delay_ms=None):
    requested = []

    async def entry(request):
        url = request.query.get("url")
        requested.append(url)
        if url == "https://fail.example/":
            return web.Response(status=500)
        if url == "https://text.example/":
            return web.Response(text="not a number")
        if url == "https://bool.example/":
            return web.json_response(True)
        if url.startswith("https://nonfinite.example/"):
            return web.Response(text=url.rsplit("=", 1)[1], content_type="application/json")
        return web.json_response(COUNTS.get(url, 0))

    async def run():
        app = web.Application()
        app.router.add_get("/count/entry", entry)
        async with TestServer(app) as server:
            async with aiohttp.ClientSession() as session:
                client = HttpClient(session, user_agent="test-agent/1.0", timeout_seconds=5)
                bookmarks = BookmarkCountClient(client, api_url=str(server.make_url("/count/entry")), sleep=sleep)
                return await bookmarks.fetch_counts(urls, delay_ms=delay_ms)

    return asyncio.run(run()), requested


def test_counts_are_fetched_sequentially_with_delay(recorded_sleep):
    urls = ["https://a.example/1", "https://a.example/2", "https://a.example/1?x=1&y=2"]
    counts, requested = lookup(urls, recorded_sleep)

    assert counts == {"https://a.example/1": 12, "https://a.example/2": 0, "https://a.example/1?x=1&y=2": 0}
    # the URL survives query-string encoding intact
    assert requested == urls
    assert recorded_sleep.delays == [0.1, 0.1]


def test_custom_delay(recorded_sleep):
    lookup(["https://a.example/1", "https://a.example/2"], recorded_sleep, delay_ms=250)
    assert recorded_sleep.delays == [0.25]


def test_failures_become_zero(recorded_sleep):
    urls = ["https://fail.example/", "https://text.example/", "https://bool.example/", "https://a.example/neg"]
    counts, _ = lookup(urls, recorded_sleep)

    assert counts == {u: 0 for u in urls}


def test_empty_input_makes_no_requests(recorded_sleep):
    counts, requested = lookup([], recorded_sleep)

    assert counts == {}
    assert requested == []
    assert recorded_sleep.delays == []


def test_non_finite_numbers_become_zero(recorded_sleep):
    urls = [f"https://nonfinite.example/?body={body}" for body in ("NaN", "Infinity", "-Infinity", "1e999")]
    counts, _ = lookup(urls, recorded_sleep)

    assert counts == {u: 0 for u in urls}
