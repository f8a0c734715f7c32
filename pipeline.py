"""Notice board orchestration.

This module coordinates the per-request workflow:

Pipeline Flow:
    1. FETCH: Official info page, official apply page and news feed,
       concurrently for every program
    2. VERIFY: Heuristic open/closed verdict from the official pages
       (apply page preferred, info page as fallback)
    3. FILTER: Keep feed items that read as open and carry a close date
       that has not passed
    4. MERGE: Synthetic official notice first, feed notices after,
       deduplicated by link and ranked by close date
    5. VALIDATE: Optional judgment-model decision gates the section
    6. ASSEMBLE: Drop empty sections and build the response payload

Failure Isolation:
    - A program whose evaluation fails contributes no section
    - One failed official page defers to the other page
    - A failed feed is treated as an empty feed
    - An error outside the per-program isolation yields an error payload
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from email.utils import format_datetime
from typing import Any, Protocol, Sequence

from agents.validator import ValidationRequest, ValidatorAgent
from config import Config
from feeds import build_feed_url, parse_feed
from models.notice import ExamSection, NoticeBoardResponse, NoticeItem, RawFeedItem
from models.program import Program
from models.verification import AiDecision, OfficialVerification
from observability.logging import clear_context, set_run_context
from observability.tracing import setup_tracing, trace_operation
from registry import PROGRAMS
from tools.fetch import FetchFailure, TextRetriever
from tools.text import (
    detect_dates,
    infer_close_date,
    infer_start_date,
    is_likely_open,
    looks_within_deadline,
    parse_date,
)
from tools.verify import choose_verification, verify_official_page

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to fetch notice feeds."
OFFICIAL_SOURCE_LABEL = "Official Website"


class Retriever(Protocol):
    async def fetch_text(self, url: str) -> str: ...


@dataclass
class ProgramEvaluation:
    """Everything learned about one program during a run.

    Only `section` reaches clients; the rest backs logging and the
    `check` command.

    Attributes:
        program: Program evaluated
        verification: Chosen official verdict (None if both pages failed)
        candidates: Ranked notices before the validator gate
        decision: Judgment-model decision, None when disabled or unavailable
        section: Final section; empty updates mean "not shown"
        error: Failure description when the evaluation raised
    """

    program: Program
    verification: OfficialVerification | None = None
    candidates: list[NoticeItem] = field(default_factory=list)
    decision: AiDecision | None = None
    section: ExamSection | None = None
    error: str | None = None

    @property
    def has_updates(self) -> bool:
        return self.section is not None and bool(self.section.updates)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict (camelCase for client-facing models)."""
        return {
            "program": self.program.model_dump(by_alias=True),
            "verification": self.verification.model_dump() if self.verification else None,
            "candidates": [c.model_dump(by_alias=True, exclude_none=True) for c in self.candidates],
            "decision": self.decision.model_dump() if self.decision else None,
            "section": self.section.model_dump(by_alias=True, exclude_none=True) if self.section else None,
            "error": self.error,
        }


@dataclass
class PipelineStats:
    """Statistics from a single notice board build.

    Attributes:
        programs: Programs evaluated
        sections: Sections with at least one update
        closed: Programs whose official verdict was not open
        rejected: Programs emptied by the validator gate
        failed: Programs whose evaluation raised
        duration: Total build time in seconds
    """

    programs: int = 0
    sections: int = 0
    closed: int = 0
    rejected: int = 0
    failed: int = 0
    duration: float = 0.0

    @classmethod
    def from_evaluations(cls, evaluations: list[ProgramEvaluation], duration: float) -> "PipelineStats":
        stats = cls(programs=len(evaluations), duration=duration)
        for ev in evaluations:
            if ev.error:
                stats.failed += 1
            elif ev.has_updates:
                stats.sections += 1
            elif ev.verification is not None and not ev.verification.is_open:
                stats.closed += 1
            else:
                stats.rejected += 1
        return stats

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


def select_feed_notices(items: list[RawFeedItem], today: date | None = None) -> list[NoticeItem]:
    """Turn raw feed items into notices, keeping only open ones.

    An item survives when its "<title>. <summary>" text reads as open AND a
    close date can be inferred from it AND that date has not passed.

    Args:
        items: Parsed feed items, already capped
        today: Reference date for the deadline check

    Returns:
        Notices in feed order
    """
    notices: list[NoticeItem] = []
    for raw in items:
        text = raw.combined_text
        if not is_likely_open(text):
            continue
        close_date = infer_close_date(text)
        if not close_date or not looks_within_deadline(close_date, today):
            continue
        notices.append(NoticeItem(
            title=raw.title,
            link=raw.link,
            source=raw.source or None,
            published_at=raw.published_at or None,
            summary=raw.summary or None,
            detected_dates=detect_dates(text),
            form_start_date=infer_start_date(text),
            form_close_date=close_date,
        ))
    return notices


def build_official_notice(program: Program, verification: OfficialVerification) -> NoticeItem:
    """Synthetic notice standing in for the official page itself."""
    return NoticeItem(
        title=f"{program.exam_name} applications are open",
        link=program.official_apply_url,
        source=OFFICIAL_SOURCE_LABEL,
        published_at=format_datetime(datetime.now(timezone.utc), usegmt=True),
        summary=" ".join(verification.evidence),
        detected_dates=[d for d in (verification.start_date, verification.last_date) if d],
        form_start_date=verification.start_date,
        form_close_date=verification.last_date,
    )


def dedupe_by_link(items: list[NoticeItem]) -> list[NoticeItem]:
    """Drop later notices whose link was already seen (first wins)."""
    seen: set[str] = set()
    unique: list[NoticeItem] = []
    for item in items:
        if item.link in seen:
            continue
        seen.add(item.link)
        unique.append(item)
    return unique


def rank_notices(items: list[NoticeItem]) -> list[NoticeItem]:
    """Order notices: first item pinned, the rest by earliest close date.

    Notices without a parsable close date go last, keeping their order.
    """
    if not items:
        return []

    def sort_key(item: NoticeItem) -> tuple[bool, date]:
        parsed = parse_date(item.form_close_date)
        return (parsed is None, parsed or date.max)

    head, rest = items[0], items[1:]
    return [head, *sorted(rest, key=sort_key)]


class Pipeline:
    """Builds the notice board for the registered programs.

    Components:
        - Retriever: Anything with `async fetch_text(url) -> str` that raises
          FetchFailure (normally a shared TextRetriever)
        - ValidatorAgent: Optional judgment-model gate (only runs when a
          credential is configured)

    Example:
        >>> async with TextRetriever(config) as retriever:
        ...     pipeline = Pipeline(config, retriever)
        ...     response = await pipeline.build_response()
    """

    def __init__(
        self,
        config: Config,
        retriever: Retriever,
        validator: ValidatorAgent | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Application configuration
            retriever: Text retriever shared across programs
            validator: Judgment-model validator (created from config by default)
        """
        self.config = config
        self.retriever = retriever
        self.validator = validator if validator is not None else ValidatorAgent(config)

        # Optional: Distributed tracing
        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="noticeboard", token=config.logfire_token)

    def _verify_page(self, result: str | BaseException, url: str) -> OfficialVerification | None:
        if isinstance(result, FetchFailure):
            logger.warning("Official page unavailable | url=%s error=%s", url, result)
            return None
        if isinstance(result, BaseException):
            raise result
        return verify_official_page(result, source_url=url)

    def _feed_items(self, result: str | BaseException, program: Program) -> list[RawFeedItem]:
        if isinstance(result, FetchFailure):
            logger.warning("Feed unavailable | id=%s error=%s", program.id, result)
            return []
        if isinstance(result, BaseException):
            raise result
        return parse_feed(result, self.config.feed_max_items)

    async def evaluate_program(self, program: Program) -> ProgramEvaluation:
        """Evaluate one program end to end.

        Args:
            program: Program to evaluate

        Returns:
            ProgramEvaluation; its section is empty unless the program is open

        Raises:
            FetchFailure: When both official pages failed
        """
        evaluation = ProgramEvaluation(program=program)
        section = ExamSection.from_program(program)
        evaluation.section = section

        info_result, apply_result, feed_result = await asyncio.gather(
            self.retriever.fetch_text(program.official_info_url),
            self.retriever.fetch_text(program.official_apply_url),
            self.retriever.fetch_text(build_feed_url(program.feed_query)),
            return_exceptions=True,
        )

        info = self._verify_page(info_result, program.official_info_url)
        apply = self._verify_page(apply_result, program.official_apply_url)
        if info is None and apply is None:
            raise apply_result

        verification = choose_verification(apply, info)
        evaluation.verification = verification
        if not verification.is_open:
            logger.info("Program closed | id=%s source=%s", program.id, verification.source_url)
            return evaluation

        feed_notices = select_feed_notices(self._feed_items(feed_result, program))
        official = build_official_notice(program, verification)
        candidates = rank_notices(dedupe_by_link([official, *feed_notices]))
        evaluation.candidates = candidates

        decision = None
        if self.validator.enabled:
            decision = await self.validator.validate(ValidationRequest(
                exam_name=program.exam_name,
                verification=verification,
                official_info_url=program.official_info_url,
                official_apply_url=program.official_apply_url,
                candidates=candidates,
            ))
        evaluation.decision = decision

        if decision is not None:
            last_date = decision.normalized_last_date or verification.last_date
            if (
                not decision.include
                or decision.confidence < self.config.confidence_threshold
                or not looks_within_deadline(last_date)
            ):
                logger.info(
                    "Program rejected by validator | id=%s %s last_date=%s",
                    program.id, decision, last_date,
                )
                return evaluation

            first = candidates[0]
            candidates = [
                first.model_copy(update={
                    "form_close_date": (
                        decision.normalized_last_date or first.form_close_date or verification.last_date
                    ),
                    "summary": f"{first.summary or ''} {decision.reasoning}".strip(),
                }),
                *candidates[1:],
            ]

        section.updates = candidates
        logger.info(
            "Program evaluated | id=%s updates=%d feed=%d validated=%s",
            program.id, len(candidates), len(feed_notices), decision is not None,
        )
        return evaluation

    async def evaluate_program_safe(self, program: Program) -> ProgramEvaluation:
        """Evaluate one program; any failure yields an empty section."""
        with trace_operation("evaluate_program", {"program": program.id}) as attrs:
            try:
                evaluation = await self.evaluate_program(program)
            except asyncio.CancelledError:
                raise
            except FetchFailure as e:
                logger.warning("Program skipped | id=%s error=%s", program.id, e)
                evaluation = ProgramEvaluation(program=program, error=str(e))
            except Exception as e:
                logger.error(
                    "Program evaluation failed | id=%s type=%s error=%s",
                    program.id, type(e).__name__, e, exc_info=True,
                )
                evaluation = ProgramEvaluation(program=program, error=f"{type(e).__name__}: {e}")
            attrs["updates"] = len(evaluation.section.updates) if evaluation.section else 0
        return evaluation

    async def build_response(self, programs: Sequence[Program] | None = None) -> NoticeBoardResponse:
        """Build the notice board payload.

        Args:
            programs: Programs to evaluate (defaults to the full registry)

        Returns:
            NoticeBoardResponse; never raises
        """
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id)
        start = time.time()
        fetched_at = datetime.now(timezone.utc).isoformat()

        try:
            with trace_operation("build_notice_board", {"run_id": run_id}) as attrs:
                selected = list(PROGRAMS if programs is None else programs)
                logger.info("Notice board started | programs=%d", len(selected))

                evaluations = await asyncio.gather(
                    *(self.evaluate_program_safe(p) for p in selected)
                )
                sections = [ev.section for ev in evaluations if ev.has_updates]

                stats = PipelineStats.from_evaluations(list(evaluations), time.time() - start)
                attrs.update(stats.to_dict())
                logger.info(
                    "Notice board done | duration=%.1fs sections=%d closed=%d rejected=%d failed=%d",
                    stats.duration, stats.sections, stats.closed, stats.rejected, stats.failed,
                )
                return NoticeBoardResponse(
                    fetched_at=fetched_at,
                    revalidate_seconds=self.config.revalidate_seconds,
                    sections=sections,
                )
        except asyncio.CancelledError:
            logger.info("Notice board build cancelled")
            raise
        except Exception as e:
            logger.error("Notice board error | type=%s error=%s", type(e).__name__, e, exc_info=True)
            return NoticeBoardResponse(
                fetched_at=fetched_at,
                revalidate_seconds=self.config.revalidate_seconds,
                sections=[],
                error=str(e) or DEFAULT_ERROR_MESSAGE,
            )
        finally:
            clear_context()


async def build_notice_board(config: Config, programs: Sequence[Program] | None = None) -> dict[str, Any]:
    """Build the notice board once and return the JSON payload.

    Args:
        config: Application configuration
        programs: Programs to evaluate (defaults to the full registry)
    """
    async with TextRetriever(config) as retriever:
        response = await Pipeline(config, retriever).build_response(programs)
    return response.to_payload()


async def check_program(config: Config, program: Program) -> dict[str, Any]:
    """Evaluate a single program and return the full evaluation for debugging.

    Args:
        config: Application configuration
        program: Program to evaluate
    """
    async with TextRetriever(config) as retriever:
        evaluation = await Pipeline(config, retriever).evaluate_program_safe(program)
    return evaluation.to_dict()
