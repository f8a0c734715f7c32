"""Official-source verification.

Applies the text extractor to a program's own pages. The apply page is
preferred because that is where candidates actually submit; many portals
are static landing pages though, so a closed apply verdict falls back to
the info page.
"""

import logging

from models.verification import OfficialVerification
from tools.text import (
    OFFICIAL_CLOSE_DATE_KEYWORDS,
    OFFICIAL_START_DATE_KEYWORDS,
    infer_date_by_context,
    is_likely_open,
    normalize_text,
)

logger = logging.getLogger(__name__)

# Normalized page text kept as judgment-model context
TEXT_SAMPLE_CHARS = 4500

OPEN_EVIDENCE = "Official page indicates application/registration is open."


def verify_official_page(raw: str, source_url: str = "") -> OfficialVerification:
    """Extract an open/closed verdict and dates from an official page.

    Args:
        raw: Page markup as fetched
        source_url: URL the markup came from (kept for logging)

    Returns:
        OfficialVerification for the page
    """
    text = normalize_text(raw)
    is_open = is_likely_open(text)
    last_date = infer_date_by_context(text, OFFICIAL_CLOSE_DATE_KEYWORDS)
    start_date = infer_date_by_context(text, OFFICIAL_START_DATE_KEYWORDS)

    evidence: list[str] = []
    if is_open:
        evidence.append(OPEN_EVIDENCE)
    if last_date:
        evidence.append(f"Official page deadline: {last_date}")

    return OfficialVerification(
        is_open=is_open,
        last_date=last_date,
        start_date=start_date,
        evidence=evidence,
        text_sample=text[:TEXT_SAMPLE_CHARS],
        source_url=source_url,
    )


def choose_verification(
    apply: OfficialVerification | None,
    info: OfficialVerification | None,
) -> OfficialVerification | None:
    """Pick the program-level verdict.

    The apply-page verdict wins when it is open; otherwise the info-page
    verdict is used. A missing side (page could not be fetched) defers to
    the other.
    """
    if apply is not None and apply.is_open:
        return apply
    if info is not None:
        return info
    return apply
