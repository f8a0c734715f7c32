"""News feed parsing for secondary coverage.

This module builds the news search feed URL for a program and converts a
fetched feed document into a bounded list of RawFeedItem candidates.

Error Handling Strategy:
    - Parsing is best effort: malformed documents yield a partial or empty
      list, never an exception
    - A document feedparser cannot read at all is sanitized (control
      characters removed, bare ampersands escaped) and parsed once more
    - Entries without a title or link are skipped
"""

import logging
import re
from urllib.parse import urlencode

import feedparser

from models.notice import RawFeedItem
from tools.text import normalize_text

logger = logging.getLogger(__name__)

NEWS_SEARCH_RSS_BASE = "https://news.google.com/rss/search"

# Locale/region/language for Indian English coverage
NEWS_SEARCH_PARAMS = {
    "hl": "en-IN",
    "gl": "IN",
    "ceid": "IN:en",
}


def build_feed_url(query: str) -> str:
    """Build the news search feed URL for a query."""
    params = {"q": query, **NEWS_SEARCH_PARAMS}
    return f"{NEWS_SEARCH_RSS_BASE}?{urlencode(params)}"


def _sanitize_xml(content: str) -> str:
    cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", content)
    return re.sub(
        r"&(?![a-zA-Z]{2,6};|#\d{2,5};|#x[0-9a-fA-F]{2,5};)",
        "&amp;",
        cleaned,
    )


def _source_label(entry: dict) -> str:
    """Publisher name from the entry's <source> element, if any."""
    source = entry.get("source") or {}
    if isinstance(source, dict):
        return normalize_text(source.get("title", ""))
    return normalize_text(str(source))


def _to_item(entry: dict) -> RawFeedItem | None:
    """Convert a feedparser entry, or None when title or link is missing."""
    title = normalize_text(entry.get("title", ""))
    link = normalize_text(entry.get("link", ""))
    if not title or not link:
        return None
    return RawFeedItem(
        title=title,
        link=link,
        summary=normalize_text(entry.get("description", "") or entry.get("summary", "")),
        published_at=normalize_text(entry.get("published", "") or entry.get("updated", "")),
        source=_source_label(entry),
    )


def parse_feed(document: str, max_items: int) -> list[RawFeedItem]:
    """Parse a feed document into at most max_items candidates.

    Args:
        document: Feed XML (RSS or Atom)
        max_items: Maximum number of items to return

    Returns:
        Items in document order, possibly empty
    """
    if not document or max_items <= 0:
        return []

    try:
        feed = feedparser.parse(document)
        if feed.bozo and not feed.entries:
            logger.debug("Feed unreadable, retrying sanitized | error=%s", feed.get("bozo_exception"))
            feed = feedparser.parse(_sanitize_xml(document))
    except Exception as e:
        logger.warning("Feed parse error | type=%s error=%s", type(e).__name__, e)
        return []

    items: list[RawFeedItem] = []
    for entry in feed.entries:
        if len(items) >= max_items:
            break
        item = _to_item(entry)
        if item is not None:
            items.append(item)

    logger.debug("Feed parsed | entries=%d kept=%d", len(feed.entries), len(items))
    return items
