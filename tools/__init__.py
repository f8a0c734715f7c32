"""Retrieval and extraction tools for the notice pipeline.

fetch:
    TextRetriever (aiohttp GET with a shared response cache) and
    FetchFailure, the only exception raised by retrieval.

text:
    Markup normalization, literal date detection, contextual date
    inference, open/closed classification and deadline checks.

verify:
    Official-page verdicts built on the text extractor.

Example:
    >>> from tools import normalize_text, is_likely_open
    >>> is_likely_open(normalize_text("<p>Applications open. Apply now!</p>"))
    True
"""

from tools.fetch import ACCEPT_HEADER, FetchFailure, ResponseCache, TextRetriever
from tools.text import (
    detect_dates,
    infer_close_date,
    infer_date_by_context,
    infer_start_date,
    is_likely_open,
    looks_within_deadline,
    normalize_text,
    parse_date,
)
from tools.verify import choose_verification, verify_official_page

__all__ = [
    "FetchFailure",
    "ResponseCache",
    "TextRetriever",
    "detect_dates",
    "infer_close_date",
    "infer_date_by_context",
    "infer_start_date",
    "is_likely_open",
    "looks_within_deadline",
    "normalize_text",
    "parse_date",
    "choose_verification",
    "verify_official_page",
    "ACCEPT_HEADER",
]
