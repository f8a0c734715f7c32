"""Validator agent for confirming that an application window is open.

This module implements the ValidatorAgent, a precision-biased second
opinion layered on top of the deterministic official-page heuristic.

Design:
    - One prompt per program: official evidence, a bounded sample of the
      official page, and up to four candidate notices
    - Primary model first, then a single retry on a cheaper fallback model
    - Total failure yields None (no opinion), never a negative decision

The validator outputs an AiDecision with:
    - include: True only when the model is confident the window is open now
    - confidence: Model's certainty (0-1), gated by the pipeline
    - reasoning: Short justification appended to the official notice
    - normalized_last_date: Close date, when confidently detected
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable

from pydantic_ai import Agent, UsageLimits

from config import Config
from models.notice import NoticeItem
from models.verification import AiDecision, OfficialVerification

logger = logging.getLogger(__name__)

# Candidate notices included in the prompt
MAX_PROMPT_CANDIDATES = 4


VALIDATOR_PROMPT = """You are an admissions notice verifier. Your task is to decide whether an exam's application form is CURRENTLY OPEN for submissions.

## Sources You Will Receive
- Evidence extracted from the official website by keyword heuristics
- A sample of the official page text
- Candidate notices from news coverage, with any deadline they mention

## Decision Rules
1. include=true ONLY if you are confident the application window is open right now.
2. If the last date appears expired or is missing, include=false.
3. Prefer official evidence over media feed text. News articles are often stale or speculative.
4. Return normalized_last_date only if the closing date is confidently detected; keep the date as written on the source.

## Confidence Calibration
- 0.9-1.0: Official text states the window is open and gives a future deadline
- 0.7-0.9: Official text suggests open; deadline inferred or corroborated by news
- Below 0.7: Ambiguous, stale, or contradictory signals

## Output Requirements
- include: boolean
- confidence: number between 0-1
- reasoning: 1-2 sentence explanation citing the evidence used
- normalized_last_date: closing date string, or omit"""


class ValidatorFailure(Exception):
    """A single model attempt failed (error, timeout, or unusable output)."""

    def __init__(self, model: str, cause: object):
        self.model = model
        self.cause = cause
        super().__init__(f"Validator model {model} failed: {cause}")


# submit(model_id, prompt) -> structured decision
Submit = Callable[[str, str], Awaitable[AiDecision | None]]


@dataclass
class ValidationRequest:
    """Everything the validator sees about one program.

    Attributes:
        exam_name: Program display name
        verification: Official-page verdict (evidence and text sample)
        official_info_url: Official information page
        official_apply_url: Official application page
        candidates: Ranked notices; only the first few reach the prompt
    """
    exam_name: str
    verification: OfficialVerification
    official_info_url: str
    official_apply_url: str
    candidates: list[NoticeItem] = field(default_factory=list)


def build_validation_prompt(request: ValidationRequest, today: date | None = None) -> str:
    """Build the user prompt for one program.

    Args:
        request: Program context
        today: Reference date shown to the model (defaults to today)

    Returns:
        Prompt text
    """
    verification = request.verification
    evidence = "\n".join(verification.evidence) or "No explicit evidence extracted."
    sample = verification.text_sample or "No text sample available."

    candidate_lines = []
    for idx, item in enumerate(request.candidates[:MAX_PROMPT_CANDIDATES], start=1):
        candidate_lines.append(
            f"{idx}. {item.title}\n"
            f"   summary={item.summary or 'n/a'}\n"
            f"   lastDate={item.form_close_date or 'n/a'}"
        )
    candidates = "\n".join(candidate_lines) or "No feed candidates."

    return f"""Validate whether this exam application form is CURRENTLY OPEN.

Today's date: {(today or date.today()).isoformat()}

Exam: {request.exam_name}
Official Info URL: {request.official_info_url}
Official Apply URL: {request.official_apply_url}

Official extracted evidence:
{evidence}

Official text sample:
{sample}

Feed candidates:
{candidates}"""


def _create_agent(model: str) -> Agent[None, AiDecision]:
    """Create the underlying PydanticAI agent for one model id.

    Args:
        model: PydanticAI model string (e.g., 'google-gla:gemini-2.5-pro')

    Returns:
        Configured PydanticAI Agent with AiDecision structured output
    """
    return Agent(
        model,
        output_type=AiDecision,
        system_prompt=VALIDATOR_PROMPT,
        retries=2,
    )


class ValidatorAgent:
    """Asks a judgment model to confirm an open application window.

    The model call is an injectable capability: by default a PydanticAI
    agent per model id, created lazily so that nothing touches the model
    provider while the validator is disabled.

    Example:
        >>> validator = ValidatorAgent(config)
        >>> if validator.enabled:
        ...     decision = await validator.validate(request)
        ...     if decision is None:
        ...         pass  # no opinion; keep the heuristic verdict
    """

    def __init__(self, config: Config, submit: Submit | None = None):
        """Initialize the validator.

        Args:
            config: Application configuration (credential and model ids)
            submit: Replacement for the model call, `submit(model_id, prompt)`
        """
        self.config = config
        self._submit = submit or self._run_agent
        self._agents: dict[str, Agent[None, AiDecision]] = {}

    @property
    def enabled(self) -> bool:
        """Whether a credential is configured."""
        return self.config.validator_enabled

    @property
    def models(self) -> list[str]:
        """Model ids in the order they are tried."""
        ordered = [self.config.validator_model, self.config.validator_fallback_model]
        return [m for m in dict.fromkeys(ordered) if m]

    async def _run_agent(self, model: str, prompt: str) -> AiDecision:
        agent = self._agents.get(model)
        if agent is None:
            agent = self._agents[model] = _create_agent(model)
        result = await agent.run(prompt, usage_limits=UsageLimits(request_limit=3))
        logger.debug("Validator run | model=%s requests=%d", model, result.usage().requests)
        return result.output

    async def _attempt(self, model: str, prompt: str) -> AiDecision:
        try:
            decision = await self._submit(model, prompt)
        except Exception as e:
            raise ValidatorFailure(model, f"{type(e).__name__}: {e}") from e
        if decision is None:
            raise ValidatorFailure(model, "empty output")
        return decision

    async def validate(self, request: ValidationRequest) -> AiDecision | None:
        """Get a decision for one program.

        Args:
            request: Program context

        Returns:
            The first successful decision, or None when every model failed
        """
        prompt = build_validation_prompt(request)
        for model in self.models:
            try:
                decision = await self._attempt(model, prompt)
            except ValidatorFailure as e:
                logger.warning("Validator attempt failed | exam=%s model=%s error=%s", request.exam_name, model, e.cause)
                continue
            logger.info(
                "Validator decision | exam=%s model=%s %s",
                request.exam_name, model, decision,
            )
            return decision

        logger.warning("Validator unavailable, keeping heuristic verdict | exam=%s", request.exam_name)
        return None
