"""HTTP surface for the notice board.

Routes:
    GET /api/notice-board   Notice board payload (always 200)
    GET /healthz            Liveness probe

One TextRetriever lives on the application, so every request shares the
same connection pool and response cache. It is opened and closed with the
application through cleanup_ctx.
"""

import logging
from datetime import datetime, timezone
from typing import AsyncIterator

from aiohttp import web

from agents.validator import ValidatorAgent
from config import Config
from models.notice import NoticeBoardResponse
from pipeline import DEFAULT_ERROR_MESSAGE, Pipeline
from tools.fetch import TextRetriever

logger = logging.getLogger(__name__)

PIPELINE_KEY = web.AppKey("pipeline", Pipeline)
RETRIEVER_KEY = web.AppKey("retriever", TextRetriever)

# Seconds a CDN may keep serving a stale payload while it revalidates
STALE_WHILE_REVALIDATE_SECONDS = 300


def cache_control(revalidate_seconds: int) -> str:
    """Cache-Control header value for notice board responses."""
    return (
        f"public, s-maxage={revalidate_seconds}, "
        f"stale-while-revalidate={STALE_WHILE_REVALIDATE_SECONDS}"
    )


async def notice_board(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    revalidate = pipeline.config.revalidate_seconds
    try:
        payload = (await pipeline.build_response()).to_payload()
    except Exception as e:
        # build_response reduces its own errors; this guards serialization
        logger.error("Notice board request failed | type=%s error=%s", type(e).__name__, e, exc_info=True)
        payload = NoticeBoardResponse(
            fetched_at=datetime.now(timezone.utc).isoformat(),
            revalidate_seconds=revalidate,
            error=str(e) or DEFAULT_ERROR_MESSAGE,
        ).to_payload()
    return web.json_response(payload, headers={"Cache-Control": cache_control(revalidate)})


async def healthz(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(
    config: Config,
    retriever: TextRetriever | None = None,
    validator: ValidatorAgent | None = None,
) -> web.Application:
    """Create the aiohttp application.

    Args:
        config: Application configuration
        retriever: Shared retriever (created from config by default)
        validator: Judgment-model validator (created from config by default)

    Returns:
        Configured web.Application
    """
    retriever = retriever if retriever is not None else TextRetriever(config)

    app = web.Application()
    app[RETRIEVER_KEY] = retriever
    app[PIPELINE_KEY] = Pipeline(config, retriever, validator)

    async def retriever_lifecycle(app: web.Application) -> AsyncIterator[None]:
        await app[RETRIEVER_KEY].open()
        logger.info("Retriever opened | cache_ttl=%ds", config.revalidate_seconds)
        yield
        await app[RETRIEVER_KEY].close()
        logger.info("Retriever closed")

    app.cleanup_ctx.append(retriever_lifecycle)
    app.router.add_get("/api/notice-board", notice_board)
    app.router.add_get("/healthz", healthz)
    return app


def run_server(config: Config) -> None:
    """Serve the notice board until interrupted."""
    logger.info(
        "Server starting | host=%s port=%d validator=%s",
        config.host, config.port, "on" if config.validator_enabled else "off",
    )
    web.run_app(create_app(config), host=config.host, port=config.port, print=None)
