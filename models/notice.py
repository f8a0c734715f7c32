"""Notice models returned to clients.

Client-facing models serialize with camelCase keys and omit unset optional
fields, so the JSON matches what the front end renders:

    {"title": ..., "link": ..., "publishedAt": ..., "formCloseDate": ...}

Python code always uses the snake_case attribute names.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.program import Program

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RawFeedItem(BaseModel):
    """A candidate item pulled from a syndication feed, before any filtering.

    All fields are plain text: entity-decoded, markup stripped and
    whitespace collapsed. Missing values are empty strings.
    """

    title: str = ""
    link: str = ""
    summary: str = ""
    published_at: str = ""
    source: str = ""

    @property
    def combined_text(self) -> str:
        """Title and summary joined the way the extractor expects."""
        return f"{self.title}. {self.summary}"


class NoticeItem(BaseModel):
    """A single notice shown under a program.

    Secondary items only exist once their text looked open and carried a
    close date that has not passed. The synthetic official item is built
    straight from the official-page verification instead.

    Attributes:
        title: Headline
        link: Target URL, unique within a section
        source: Publisher label
        published_at: Publication date as given by the source
        summary: Plain-text summary or official evidence
        detected_dates: Every literal date found, in order of appearance
        form_start_date: Application start date inferred from context
        form_close_date: Application close date inferred from context
    """

    model_config = _CAMEL

    title: str
    link: str
    source: str | None = None
    published_at: str | None = None
    summary: str | None = None
    detected_dates: list[str] = Field(default_factory=list)
    form_start_date: str | None = None
    form_close_date: str | None = None


class ExamSection(BaseModel):
    """Aggregated notices for one program.

    The synthetic official notice is always the first update when present.
    Sections without updates never reach the response.
    """

    model_config = _CAMEL

    id: str
    exam_name: str
    official_info_url: str
    official_apply_url: str
    feed_query: str
    updates: list[NoticeItem] = Field(default_factory=list)

    @classmethod
    def from_program(cls, program: Program, updates: list[NoticeItem] | None = None) -> "ExamSection":
        """Create a section carrying the program's identity fields."""
        return cls(
            id=program.id,
            exam_name=program.exam_name,
            official_info_url=program.official_info_url,
            official_apply_url=program.official_apply_url,
            feed_query=program.feed_query,
            updates=list(updates or []),
        )


class NoticeBoardResponse(BaseModel):
    """Top-level payload served by the notice board endpoint."""

    model_config = _CAMEL

    automated: bool = True
    fetched_at: str
    revalidate_seconds: int
    sections: list[ExamSection] = Field(default_factory=list)
    error: str | None = None

    def to_payload(self) -> dict:
        """Serialize to the JSON-ready dict sent to clients."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
