"""Pydantic models for the exam notice board.

This package contains all data models used throughout the pipeline:

Program:
    Registry entry describing a monitored admission program.

RawFeedItem:
    Candidate item parsed from a news feed, before filtering.

NoticeItem:
    A notice shown to users (camelCase JSON).

ExamSection:
    All notices for one program; the official notice comes first.

NoticeBoardResponse:
    Top-level payload served by the HTTP endpoint.

OfficialVerification:
    Heuristic verdict extracted from official pages.

AiDecision:
    Structured output of the judgment model.

Example:
    >>> from models import NoticeItem
    >>> item = NoticeItem(title="...", link="https://...", form_close_date="31/12/2099")
    >>> item.model_dump(by_alias=True, exclude_none=True)["formCloseDate"]
    '31/12/2099'
"""

from models.program import Program
from models.notice import ExamSection, NoticeBoardResponse, NoticeItem, RawFeedItem
from models.verification import AiDecision, OfficialVerification

__all__ = [
    "Program",
    "RawFeedItem",
    "NoticeItem",
    "ExamSection",
    "NoticeBoardResponse",
    "OfficialVerification",
    "AiDecision",
]
