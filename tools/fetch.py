"""Text retrieval for official pages and news feeds.

This module provides the single I/O boundary of the pipeline: a GET that
returns the response body as text or raises FetchFailure.

Features:
    - One pooled aiohttp session per retriever
    - Descriptive User-Agent and an Accept header covering HTML and XML
    - Read-through response cache bounded by the revalidation window

There are no retries here. A failure surfaces immediately and the caller
decides how to degrade.
"""

import asyncio
import logging
import ssl
import time
from typing import Callable

import aiohttp
import certifi

from config import Config

logger = logging.getLogger(__name__)

# Official pages are HTML, news feeds are XML
ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def ssl_setting(verify: bool) -> ssl.SSLContext | bool:
    """Connector TLS setting: a certifi-backed context, or False to skip verification."""
    if not verify:
        return False
    return ssl.create_default_context(cafile=certifi.where())


class FetchFailure(Exception):
    """A GET that returned a non-2xx status or failed in transport.

    Attributes:
        url: Requested URL
        status: HTTP status when a response was received, else None
        reason: Transport error description when no response was received
    """

    def __init__(self, url: str, status: int | None = None, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"HTTP {status}" if status is not None else (reason or "transport error")
        super().__init__(f"Fetch failed: {detail} ({url})")


class ResponseCache:
    """In-process response cache keyed by URL.

    Entries younger than ttl_seconds are served as-is. Concurrent misses on
    the same URL may both fetch; the later write wins.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    def get(self, url: str) -> str | None:
        entry = self._entries.get(url)
        if entry is None:
            return None
        stored_at, text = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[url]
            return None
        return text

    def put(self, url: str, text: str) -> None:
        self._entries[url] = (self._clock(), text)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TextRetriever:
    """Fetches URLs as text through a shared cache.

    Use as an async context manager, or call open()/close() explicitly
    (the HTTP server ties them to the application lifecycle). The session
    is also opened lazily on first fetch.

    Example:
        >>> async with TextRetriever(config) as retriever:
        ...     html = await retriever.fetch_text("https://jeemain.nta.nic.in/")
    """

    def __init__(self, config: Config, cache: ResponseCache | None = None):
        """Initialize the retriever.

        Args:
            config: Application configuration (user agent, TLS, cache window)
            cache: Shared cache; a new one sized to the revalidation window by default
        """
        self.config = config
        self.cache = cache if cache is not None else ResponseCache(config.revalidate_seconds)
        self._session: aiohttp.ClientSession | None = None

    async def open(self) -> None:
        """Create the underlying HTTP session if needed."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=ssl_setting(self.config.verify_ssl))
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self.config.user_agent, "Accept": ACCEPT_HEADER},
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "TextRetriever":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def fetch_text(self, url: str) -> str:
        """GET a URL and return its body as text.

        Args:
            url: Absolute http(s) URL

        Returns:
            Response body, possibly served from the cache

        Raises:
            FetchFailure: On non-2xx status or any transport error
        """
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug("Cache hit | url=%s", url)
            return cached

        await self.open()
        started = time.monotonic()
        try:
            async with self._session.get(url) as resp:
                if not 200 <= resp.status < 300:
                    logger.debug("Fetch rejected | url=%s status=%d", url, resp.status)
                    raise FetchFailure(url, status=resp.status)
                text = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("Fetch error | url=%s type=%s error=%s", url, type(e).__name__, e)
            raise FetchFailure(url, reason=f"{type(e).__name__}: {e}") from e

        logger.debug(
            "Fetched | url=%s chars=%d elapsed=%.2fs",
            url, len(text), time.monotonic() - started,
        )
        self.cache.put(url, text)
        return text
