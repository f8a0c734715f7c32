"""Verification models for the open-window decision.

Two independent opinions feed the final decision for a program:

OfficialVerification:
    Deterministic verdict extracted from the program's own pages by the
    signal/date heuristics. Always computed.

AiDecision:
    Structured output of the judgment model. Optional: the pipeline holds
    it as `AiDecision | None`, and `None` means "no opinion", never "no".
"""

from pydantic import BaseModel, Field


class OfficialVerification(BaseModel):
    """Verdict extracted from an official program page.

    Attributes:
        is_open: Whether the page text reads as an open application window
        last_date: Close date inferred from deadline phrases
        start_date: Start date inferred from opening phrases
        evidence: Human-readable statements backing the verdict
        text_sample: Leading slice of the normalized page text (model context)
        source_url: Page the verdict was extracted from
    """

    is_open: bool = Field(description="Page indicates an open application window")
    last_date: str | None = Field(default=None, description="Inferred close date")
    start_date: str | None = Field(default=None, description="Inferred start date")
    evidence: list[str] = Field(default_factory=list, description="Evidence statements")
    text_sample: str = Field(default="", description="Bounded normalized page text")
    source_url: str = Field(default="", description="Official page URL")

    def __str__(self) -> str:
        status = "OPEN" if self.is_open else "CLOSED"
        return f"Verification({status}, last_date={self.last_date or '-'})"


class AiDecision(BaseModel):
    """Judgment model's answer to "is this application window open right now?".

    Example:
        >>> decision = AiDecision(
        ...     include=True,
        ...     confidence=0.86,
        ...     reasoning="Official portal lists registration open until 31 Dec",
        ...     normalized_last_date="31/12/2099",
        ... )
    """

    include: bool = Field(description="True only when confident the application window is open right now")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence in the decision (0-1)")
    reasoning: str = Field(default="", description="One or two sentence justification")
    normalized_last_date: str | None = Field(
        default=None,
        description="Application close date, only when confidently detected",
    )

    def __str__(self) -> str:
        status = "INCLUDE" if self.include else "EXCLUDE"
        return f"AiDecision({status}, {self.confidence:.2f})"
