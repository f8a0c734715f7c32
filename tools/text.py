"""Text normalization and date/signal extraction.

This module turns raw page markup or feed text into the three signals the
pipeline relies on:

    detect_dates:           every literal date substring, in order
    infer_date_by_context:  the date that follows a keyword phrase
    is_likely_open:         two-list open/closed vocabulary veto

Recognized date shapes:
    numeric         31/12/2099, 1-6-25
    day month year  31 December 2099, 5 Sept 2025
    month day year  December 31, 2099

Every function here is total: malformed input yields empty results, never
an exception. Only the I/O layer signals failures.
"""

import html
import logging
import re
from datetime import date
from html.parser import HTMLParser
from io import StringIO

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

_MONTHS = (
    r"(?:Jan|January|Feb|February|Mar|March|Apr|April|May|Jun|June|Jul|July|Aug|August"
    r"|Sep|Sept|September|Oct|October|Nov|November|Dec|December)"
)
_NUMERIC_DATE = r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"
_DAY_MONTH_YEAR = rf"\d{{1,2}}\s+{_MONTHS}\s+\d{{4}}"
_MONTH_DAY_YEAR = rf"{_MONTHS}\s+\d{{1,2}},\s+\d{{4}}"

# Detection passes, applied in this order
_DATE_PATTERNS = (
    re.compile(rf"\b{_NUMERIC_DATE}\b"),
    re.compile(rf"\b{_DAY_MONTH_YEAR}\b", re.IGNORECASE),
    re.compile(rf"\b{_MONTH_DAY_YEAR}\b", re.IGNORECASE),
)
_ANY_DATE = rf"({_NUMERIC_DATE}|{_DAY_MONTH_YEAR}|{_MONTH_DAY_YEAR})"

# Max characters between a keyword phrase and its date
CONTEXT_WINDOW_CHARS = 110

# === Keyword phrases for contextual inference ===
START_DATE_KEYWORDS = (
    r"(?:registration\s+start|registration\s+open|application\s+start"
    r"|application\s+open|form\s+start|from)\b"
)
CLOSE_DATE_KEYWORDS = (
    r"(?:last\s+date|closing\s+date|deadline|form\s+close|till|extended\s+to|apply\s+till)\b"
)
OFFICIAL_START_DATE_KEYWORDS = (
    r"(?:application\s+start|registration\s+start|registration\s+open\s+from"
    r"|registration\s+open|application\s+open|form\s+start|from)\b"
)
OFFICIAL_CLOSE_DATE_KEYWORDS = (
    r"(?:last\s+date|closing\s+date|deadline|form\s+close|apply\s+till|registration\s+ends"
    r"|extended\s+to|till)\b"
)

# === Open/closed vocabulary ===
OPEN_SIGNALS = (
    "application open",
    "applications open",
    "registration open",
    "registration started",
    "application started",
    "apply now",
    "online application",
    "form filling started",
    "forms available",
    "registration live",
    "application live",
    "extended till",
    "extended to",
    "application window open",
)

# Any hit here vetoes an open verdict
CLOSED_SIGNALS = (
    "registration closed",
    "application closed",
    "window closed",
    "last date over",
    "deadline passed",
    "admit card",
    "answer key",
    "answer-key",
    "result declared",
    "results declared",
    "counselling",
    "counseling",
    "exam city intimation",
    "seat allotment",
)

_CDATA_MARKERS = re.compile(r"<!\[CDATA\[|\]\]>")
_WHITESPACE = re.compile(r"\s+")
_NUMERIC_ONLY = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")


class _HTMLTextExtractor(HTMLParser):
    """Extract readable text from HTML, skipping non-rendered content.

    Tags are replaced by a single space so adjacent cells and paragraphs
    do not run together ("Last date</td><td>31/12/2099"). Input is already
    entity-decoded, so leftover references are written back verbatim.
    """

    SKIP_TAGS = frozenset({"script", "style", "noscript", "template"})

    def __init__(self):
        super().__init__(convert_charrefs=False)
        self._buffer = StringIO()
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self.SKIP_TAGS:
            self._skip_depth += 1
        self._buffer.write(" ")

    def handle_endtag(self, tag):
        if tag in self.SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1
        self._buffer.write(" ")

    def handle_data(self, data):
        if self._skip_depth == 0:
            self._buffer.write(data)

    def handle_entityref(self, name):
        self.handle_data(f"&{name};")

    def handle_charref(self, name):
        self.handle_data(f"&#{name};")

    def get_text(self) -> str:
        """Return accumulated text content."""
        return self._buffer.getvalue()


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def strip_markup(raw: str) -> str:
    """Remove tags, dropping script/style bodies."""
    parser = _HTMLTextExtractor()
    try:
        parser.feed(raw)
        parser.close()
        return parser.get_text()
    except Exception:
        return re.sub(r"<[^>]+>", " ", raw)


def normalize_text(raw: str | None) -> str:
    """Markup-stripped, entity-decoded, whitespace-collapsed text.

    Entities are decoded before tags are stripped, so escaped markup such
    as feed descriptions (`&lt;a href=...&gt;`) is removed as well.
    """
    if not raw:
        return ""
    text = _CDATA_MARKERS.sub("", raw)
    text = html.unescape(text)
    return collapse_whitespace(strip_markup(text))


def detect_dates(text: str) -> list[str]:
    """Collect literal date substrings, deduplicated in order of discovery.

    Numeric dates come first, then "day month year", then "month day, year".

    Args:
        text: Plain text (normalize markup first)

    Returns:
        Date strings exactly as they appear in the text
    """
    compact = collapse_whitespace(text or "")
    found: list[str] = []
    for pattern in _DATE_PATTERNS:
        found.extend(match.group(0) for match in pattern.finditer(compact))
    return list(dict.fromkeys(found))


def infer_date_by_context(text: str, keywords: str) -> str | None:
    """Find the date that follows a keyword phrase.

    The date must start within CONTEXT_WINDOW_CHARS of the keyword without
    crossing a full stop or newline. Literal dates elsewhere in the text are
    ignored: proximity to a keyword is required.

    Args:
        text: Plain text to search
        keywords: Regex alternation of keyword phrases (e.g. CLOSE_DATE_KEYWORDS)

    Returns:
        The matched date text unchanged, or None
    """
    if not text:
        return None
    normalized = collapse_whitespace(text)
    pattern = re.compile(
        rf"{keywords}[^.\n]{{0,{CONTEXT_WINDOW_CHARS}}}?{_ANY_DATE}",
        re.IGNORECASE,
    )
    match = pattern.search(normalized)
    return match.group(1) if match else None


def infer_start_date(text: str) -> str | None:
    """Application start date inferred from opening phrases."""
    return infer_date_by_context(text, START_DATE_KEYWORDS)


def infer_close_date(text: str) -> str | None:
    """Application close date inferred from deadline phrases."""
    return infer_date_by_context(text, CLOSE_DATE_KEYWORDS)


def is_likely_open(text: str) -> bool:
    """Whether text reads as an open application window.

    True only if some open signal is present and no closed signal is.
    Closed signals take precedence regardless of how many open signals
    also appear.
    """
    normalized = (text or "").lower()
    if any(signal in normalized for signal in CLOSED_SIGNALS):
        return False
    return any(signal in normalized for signal in OPEN_SIGNALS)


def parse_date(value: str | None) -> date | None:
    """Parse a date string into a calendar date.

    The numeric D/M/YY[YY] shape is read day-first, with two-digit years
    taken as 2000+YY. Anything else goes through dateutil.

    Returns:
        The parsed date, or None if unparsable
    """
    if not value:
        return None
    normalized = collapse_whitespace(value)
    if not normalized:
        return None

    numeric = _NUMERIC_ONLY.match(normalized)
    if numeric:
        day, month, year_str = int(numeric.group(1)), int(numeric.group(2)), numeric.group(3)
        year = 2000 + int(year_str) if len(year_str) == 2 else int(year_str)
        try:
            return date(year, month, day)
        except ValueError:
            # e.g. 12/31/2025; let dateutil try month-first
            pass

    try:
        return date_parser.parse(normalized).date()
    except (ValueError, OverflowError):
        logger.debug("Unparsable date | value=%s", normalized[:40])
        return None


def looks_within_deadline(close_date: str | None, today: date | None = None) -> bool:
    """Whether a close date has not passed yet.

    Missing dates fail; unparsable dates pass (fail open), since plenty of
    real-world deadlines are written in shapes the parser does not know.

    Args:
        close_date: Close date string as extracted
        today: Reference date (defaults to the current local date)
    """
    if not close_date:
        return False
    parsed = parse_date(close_date)
    if parsed is None:
        return True
    return parsed >= (today or date.today())
