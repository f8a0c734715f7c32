from __future__ import annotations

import asyncio

import pytest
from aiohttp import test_utils, web

from config import Config
from tools.fetch import ACCEPT_HEADER, FetchFailure, ResponseCache, TextRetriever


def _app(hits: list[dict[str, str]]) -> web.Application:
    async def page(request: web.Request) -> web.Response:
        hits.append(dict(request.headers))
        return web.Response(text="<p>Applications open</p>", content_type="text/html")

    async def missing(request: web.Request) -> web.Response:
        hits.append(dict(request.headers))
        return web.Response(status=404, text="not here")

    app = web.Application()
    app.router.add_get("/page", page)
    app.router.add_get("/missing", missing)
    return app


def test_fetch_text_serves_repeat_requests_from_cache() -> None:
    hits: list[dict[str, str]] = []

    async def scenario() -> tuple[str, str]:
        async with test_utils.TestServer(_app(hits)) as server:
            async with TextRetriever(Config()) as retriever:
                url = str(server.make_url("/page"))
                return await retriever.fetch_text(url), await retriever.fetch_text(url)

    first, second = asyncio.run(scenario())

    assert first == second == "<p>Applications open</p>"
    assert len(hits) == 1
    assert hits[0]["User-Agent"] == "DCAM-NoticeBoard/1.1"
    assert hits[0]["Accept"] == ACCEPT_HEADER


def test_non_2xx_status_raises_and_is_not_cached() -> None:
    hits: list[dict[str, str]] = []

    async def scenario() -> list[FetchFailure]:
        failures = []
        async with test_utils.TestServer(_app(hits)) as server:
            async with TextRetriever(Config()) as retriever:
                url = str(server.make_url("/missing"))
                for _ in range(2):
                    try:
                        await retriever.fetch_text(url)
                    except FetchFailure as e:
                        failures.append(e)
        return failures

    failures = asyncio.run(scenario())

    assert [f.status for f in failures] == [404, 404]
    assert len(hits) == 2


def test_transport_error_raises_fetch_failure_without_status() -> None:
    async def scenario() -> None:
        async with TextRetriever(Config()) as retriever:
            await retriever.fetch_text("http://127.0.0.1:1/unreachable")

    with pytest.raises(FetchFailure) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.status is None
    assert excinfo.value.reason


def test_response_cache_expires_after_ttl() -> None:
    now = [0.0]
    cache = ResponseCache(ttl_seconds=10, clock=lambda: now[0])
    cache.put("https://x.example", "body")

    now[0] = 9.9
    assert cache.get("https://x.example") == "body"

    now[0] = 10.0
    assert cache.get("https://x.example") is None
    assert len(cache) == 0
