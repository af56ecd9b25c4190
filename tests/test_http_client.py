import asyncio

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from blog_feed_aggregator.http import DomainRateLimiter, HttpClient, RequestSequencer


def serve(routes, body):
    """Run ``body(client, server)`` against a local aiohttp app."""

    async def run():
        app = web.Application()
        for path, handler in routes.items():
            app.router.add_get(path, handler)
        async with TestServer(app) as server:
            async with aiohttp.ClientSession() as session:
                client = HttpClient(session, user_agent="test-agent/1.0", timeout_seconds=5)
                return await body(client, server)

    return asyncio.run(run())


def test_sequencer_first_call_never_waits(recorded_sleep):
    seq = RequestSequencer(0.1, sleep=recorded_sleep)

    async def run():
        for _ in range(3):
            await seq.wait()

    asyncio.run(run())
    assert recorded_sleep.delays == [0.1, 0.1]
    assert seq.calls == 3


def test_sequencer_zero_delay_never_sleeps(recorded_sleep):
    seq = RequestSequencer(0, sleep=recorded_sleep)

    async def run():
        await seq.wait()
        await seq.wait()

    asyncio.run(run())
    assert recorded_sleep.delays == []


def test_rate_limiter_waits_per_domain():
    now = [0.0]
    delays = []

    async def sleep(seconds):
        delays.append(seconds)
        now[0] += seconds

    limiter = DomainRateLimiter(2, 1.0, clock=lambda: now[0], sleep=sleep)

    async def run():
        await limiter.acquire("https://a.example/1")
        await limiter.acquire("https://a.example/2")
        await limiter.acquire("https://b.example/1")
        await limiter.acquire("https://a.example/3")

    asyncio.run(run())
    assert delays == [1.0]


def test_get_text_sends_user_agent():
    seen = {}

    async def page(request):
        seen["ua"] = request.headers.get("User-Agent")
        return web.Response(text="<html>ok</html>")

    async def body(client, server):
        return await client.get_text(str(server.make_url("/page")))

    assert serve({"/page": page}, body) == "<html>ok</html>"
    assert seen["ua"] == "test-agent/1.0"


def test_non_2xx_is_none():
    async def missing(request):
        return web.Response(status=404, text="nope")

    async def body(client, server):
        return await client.get_bytes(str(server.make_url("/missing")))

    assert serve({"/missing": missing}, body) is None


def test_get_json():
    async def good(request):
        return web.json_response(42)

    async def bad(request):
        return web.Response(text="not json")

    async def body(client, server):
        return (
            await client.get_json(str(server.make_url("/good"))),
            await client.get_json(str(server.make_url("/bad"))),
        )

    assert serve({"/good": good, "/bad": bad}, body) == (42, None)


def test_connection_error_is_none():
    async def run():
        async with aiohttp.ClientSession() as session:
            client = HttpClient(session, user_agent="test-agent/1.0", timeout_seconds=2)
            return await client.get_bytes("http://127.0.0.1:1/feed")

    assert asyncio.run(run()) is None
