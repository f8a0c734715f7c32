from __future__ import annotations

import asyncio

import pipeline as pipeline_module
from config import Config
from feeds import build_feed_url
from models.notice import NoticeItem
from models.program import Program
from models.verification import AiDecision
from pipeline import (
    DEFAULT_ERROR_MESSAGE,
    OFFICIAL_SOURCE_LABEL,
    Pipeline,
    dedupe_by_link,
    rank_notices,
)
from tools.fetch import FetchFailure

DEMO = Program(
    id="demo",
    exam_name="Demo Exam",
    official_info_url="https://demo.example/info",
    official_apply_url="https://demo.example/apply",
    feed_query="Demo Exam application last date",
)
OTHER = Program(
    id="other",
    exam_name="Other Exam",
    official_info_url="https://other.example/info",
    official_apply_url="https://other.example/apply",
    feed_query="Other Exam application last date",
)

OPEN_APPLY = "<html><body><p>Online application form. Last date: 31/12/2099</p></body></html>"
OPEN_INFO = "<p>Applications open. Apply now. Deadline 20/12/2099</p>"
CLOSED_PAGE = "<p>Registration closed. Results declared.</p>"


def _rss(*items: tuple[str, str]) -> str:
    body = "".join(f"<item><title>{title}</title><link>{link}</link></item>" for title, link in items)
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Search</title>{body}</channel></rss>'


FEED = _rss(
    ("Demo Exam registration open, last date 15/12/2099", "https://news.example.com/a"),
    ("Demo Exam application closed", "https://news.example.com/closed"),
    ("Demo Exam apply now, deadline 01/01/2000", "https://news.example.com/expired"),
    ("Demo Exam applications open till 10/12/2099", "https://news.example.com/b"),
    ("Demo Exam apply now", "https://news.example.com/undated"),
)


class FakeRetriever:
    """Serves canned pages by URL; unknown URLs fail with 404."""

    def __init__(self, pages: dict[str, str | Exception]):
        self.pages = pages
        self.requested: list[str] = []

    async def fetch_text(self, url: str) -> str:
        self.requested.append(url)
        value = self.pages.get(url)
        if value is None:
            raise FetchFailure(url, status=404)
        if isinstance(value, Exception):
            raise value
        return value


class FakeValidator:
    def __init__(self, decision: AiDecision | None, enabled: bool = True):
        self.decision = decision
        self.enabled = enabled
        self.requests: list = []

    async def validate(self, request):
        self.requests.append(request)
        return self.decision


def _pages(program: Program = DEMO, info: str | None = OPEN_INFO, apply: str | None = OPEN_APPLY,
           feed: str | None = FEED) -> dict[str, str]:
    pages = {}
    if info is not None:
        pages[program.official_info_url] = info
    if apply is not None:
        pages[program.official_apply_url] = apply
    if feed is not None:
        pages[build_feed_url(program.feed_query)] = feed
    return pages


def _build(pages: dict, validator=None, programs=(DEMO,)) -> dict:
    pipeline = Pipeline(Config(), FakeRetriever(pages), validator or FakeValidator(None, enabled=False))
    return asyncio.run(pipeline.build_response(list(programs))).to_payload()


def test_open_apply_page_yields_official_notice_then_feed_notices_by_deadline() -> None:
    payload = _build(_pages())

    assert payload["automated"] is True
    assert payload["revalidateSeconds"] == 1800
    assert "error" not in payload
    [section] = payload["sections"]
    assert section["id"] == "demo"
    assert section["examName"] == "Demo Exam"

    updates = section["updates"]
    assert [u["link"] for u in updates] == [
        "https://demo.example/apply",
        "https://news.example.com/b",
        "https://news.example.com/a",
    ]
    official = updates[0]
    assert official["title"] == "Demo Exam applications are open"
    assert official["source"] == OFFICIAL_SOURCE_LABEL
    assert official["formCloseDate"] == "31/12/2099"
    assert official["detectedDates"] == ["31/12/2099"]
    assert official["publishedAt"].endswith("GMT")
    assert official["summary"] == (
        "Official page indicates application/registration is open. "
        "Official page deadline: 31/12/2099"
    )
    assert updates[1]["formCloseDate"] == "10/12/2099"


def test_closed_apply_page_falls_back_to_open_info_page() -> None:
    payload = _build(_pages(apply=CLOSED_PAGE))

    [section] = payload["sections"]
    official = section["updates"][0]
    assert official["link"] == "https://demo.example/apply"
    assert official["formCloseDate"] == "20/12/2099"


def test_both_official_pages_closed_excludes_program_without_validation() -> None:
    validator = FakeValidator(AiDecision(include=True, confidence=1.0))

    payload = _build(_pages(info=CLOSED_PAGE, apply=CLOSED_PAGE), validator=validator)

    assert payload["sections"] == []
    assert validator.requests == []


def test_confident_validator_decision_annotates_official_notice() -> None:
    validator = FakeValidator(AiDecision(
        include=True,
        confidence=0.9,
        reasoning="Portal is accepting forms.",
        normalized_last_date="25/12/2099",
    ))

    payload = _build(_pages(), validator=validator)

    [section] = payload["sections"]
    official = section["updates"][0]
    assert official["formCloseDate"] == "25/12/2099"
    assert official["summary"].endswith("Portal is accepting forms.")
    [request] = validator.requests
    assert request.exam_name == "Demo Exam"
    assert request.candidates[0].link == "https://demo.example/apply"


def test_low_confidence_decision_empties_section() -> None:
    validator = FakeValidator(AiDecision(include=True, confidence=0.5, reasoning="Unclear."))

    assert _build(_pages(), validator=validator)["sections"] == []


def test_negative_decision_empties_section() -> None:
    validator = FakeValidator(AiDecision(include=False, confidence=0.95, reasoning="Closed."))

    assert _build(_pages(), validator=validator)["sections"] == []


def test_expired_normalized_date_empties_section() -> None:
    validator = FakeValidator(AiDecision(include=True, confidence=0.9, normalized_last_date="01/01/2000"))

    assert _build(_pages(), validator=validator)["sections"] == []


def test_decision_without_dates_falls_back_to_missing_official_date() -> None:
    undated = "<p>Online application form. Apply now.</p>"
    validator = FakeValidator(AiDecision(include=True, confidence=0.9, reasoning="Looks open."))

    payload = _build(_pages(info=undated, apply=undated), validator=validator)

    assert payload["sections"] == []
    assert len(validator.requests) == 1


def test_decision_without_normalized_date_checks_official_date() -> None:
    expired = "<p>Online application form. Last date: 01/01/2000</p>"
    validator = FakeValidator(AiDecision(include=True, confidence=0.9, reasoning="Looks open."))

    payload = _build(_pages(info=expired, apply=expired), validator=validator)

    assert payload["sections"] == []
    assert validator.requests[0].verification.last_date == "01/01/2000"


def test_validator_without_opinion_keeps_heuristic_verdict() -> None:
    payload = _build(_pages(), validator=FakeValidator(None))

    [section] = payload["sections"]
    assert section["updates"][0]["formCloseDate"] == "31/12/2099"


def test_one_failed_official_page_defers_to_the_other() -> None:
    payload = _build(_pages(apply=None))

    [section] = payload["sections"]
    assert section["updates"][0]["formCloseDate"] == "20/12/2099"


def test_failed_feed_leaves_only_official_notice() -> None:
    payload = _build(_pages(feed=None))

    [section] = payload["sections"]
    assert [u["link"] for u in section["updates"]] == ["https://demo.example/apply"]


def test_feed_item_sharing_apply_link_is_deduplicated() -> None:
    feed = _rss(("Demo Exam registration open, last date 15/12/2099", DEMO.official_apply_url))

    payload = _build(_pages(feed=feed))

    [section] = payload["sections"]
    assert len(section["updates"]) == 1
    assert section["updates"][0]["source"] == OFFICIAL_SOURCE_LABEL


def test_failing_program_does_not_affect_others() -> None:
    pages = _pages()
    pages[OTHER.official_info_url] = RuntimeError("boom")
    pages[OTHER.official_apply_url] = RuntimeError("boom")

    payload = _build(pages, programs=(OTHER, DEMO))

    assert [s["id"] for s in payload["sections"]] == ["demo"]
    assert "error" not in payload


def test_unreachable_program_is_excluded() -> None:
    payload = _build(_pages(), programs=(DEMO, OTHER))

    assert [s["id"] for s in payload["sections"]] == ["demo"]


def test_both_official_pages_failing_raises_from_evaluate_program() -> None:
    pipeline = Pipeline(Config(), FakeRetriever({}), FakeValidator(None, enabled=False))

    try:
        asyncio.run(pipeline.evaluate_program(DEMO))
    except FetchFailure as e:
        assert e.status == 404
        assert e.url == DEMO.official_apply_url
    else:
        raise AssertionError("expected FetchFailure")

    evaluation = asyncio.run(pipeline.evaluate_program_safe(DEMO))
    assert evaluation.error
    assert evaluation.has_updates is False


class _ExplodingStats:
    message = ""

    @classmethod
    def from_evaluations(cls, evaluations, duration):
        raise RuntimeError(cls.message)


def test_orchestration_error_yields_error_payload(monkeypatch) -> None:
    monkeypatch.setattr(pipeline_module, "PipelineStats", _ExplodingStats)

    monkeypatch.setattr(_ExplodingStats, "message", "registry unavailable")
    payload = _build(_pages())
    assert payload["sections"] == []
    assert payload["error"] == "registry unavailable"
    assert payload["revalidateSeconds"] == 1800

    monkeypatch.setattr(_ExplodingStats, "message", "")
    assert _build(_pages())["error"] == DEFAULT_ERROR_MESSAGE


def test_dedupe_keeps_first_and_is_idempotent() -> None:
    items = [
        NoticeItem(title="first", link="https://x.example/1"),
        NoticeItem(title="second", link="https://x.example/2"),
        NoticeItem(title="dupe", link="https://x.example/1"),
    ]

    once = dedupe_by_link(items)

    assert [i.title for i in once] == ["first", "second"]
    assert dedupe_by_link(once) == once


def test_rank_pins_first_item_and_puts_undated_last() -> None:
    items = [
        NoticeItem(title="official", link="o", form_close_date="31/12/2099"),
        NoticeItem(title="undated", link="u"),
        NoticeItem(title="late", link="l", form_close_date="20/12/2099"),
        NoticeItem(title="garbled", link="g", form_close_date="soon-ish"),
        NoticeItem(title="early", link="e", form_close_date="1 December 2099"),
    ]

    ranked = rank_notices(items)

    assert [i.title for i in ranked] == ["official", "early", "late", "undated", "garbled"]
    assert rank_notices([]) == []
