"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

Priority = Literal["high", "medium", "low"]
Sentiment = Literal["positive", "negative", "neutral"]
DateKind = Literal["deadline", "meeting", "event", "general"]
ExtractionMethod = Literal["heuristic", "llm", "hybrid"]
Provenance = Literal["local", "cloud"]
AnalysisTier = Literal["local", "cloud", "heuristic", "minimal"]
JobKind = Literal[
    "grammar", "summary", "action_items", "reply_suggestion", "thread_summary"
]
JobStatus = Literal["pending", "processing", "completed", "failed"]


@dataclass(slots=True, frozen=True)
class AttachmentMeta:
    """Metadata describing an email attachment."""

    filename: str | None
    content_type: str | None
    size: int | None


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True, frozen=True)
class EmailMessage:
    """An email as received from the mail client; never mutated."""

    id: str
    subject: str
    sender: str
    body: str
    timestamp: datetime
    thread_id: str | None = None
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    html_body: str | None = None
    attachments: tuple[AttachmentMeta, ...] = ()
    labels: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ExtractedDate:
    """A date mentioned in an email, resolved against an anchor instant."""

    text: str
    date: datetime
    kind: DateKind
    confidence: float


@dataclass(slots=True)
class ActionItem:
    """Obligation found in an email.

    ``due_date`` is ``None`` when no date was detected for the item.
    """

    text: str
    priority: Priority
    category: str
    due_date: datetime | None = None
    is_completed: bool = False

    @property
    def identity(self) -> tuple[str, str]:
        """Key under which two items are considered the same."""
        return (self.text.lower(), self.category)


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Action items and dates mined from a single message."""

    action_items: tuple[ActionItem, ...] = ()
    extracted_dates: tuple[ExtractedDate, ...] = ()
    confidence: float = 0.0
    method: ExtractionMethod = "heuristic"


@dataclass(slots=True, frozen=True)
class SuggestedReply:
    """Candidate reply offered to the user."""

    text: str
    tone: Literal["formal", "casual", "concise"]
    length: Literal["short", "medium", "long"]
    confidence: float


@dataclass(slots=True, frozen=True)
class GrammarIssue:
    """Writing issue located by character offsets in the body."""

    text: str
    suggestion: str
    severity: Literal["error", "warning", "info"]
    start: int
    end: int


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True, frozen=True)
class AnalysisResult:
    """Unit of analysis returned to callers and stored in the cache."""

    message_id: str
    summary: str
    action_items: tuple[ActionItem, ...]
    suggested_replies: tuple[SuggestedReply, ...]
    grammar_issues: tuple[GrammarIssue, ...]
    sentiment: Sentiment
    priority: Priority
    categories: tuple[str, ...]
    extracted_dates: tuple[ExtractedDate, ...]
    created_at: datetime
    model_used: Provenance
    tier: AnalysisTier = "local"


@dataclass(slots=True)
class ProcessingJob:
    """Bookkeeping record for one analysis request."""

    id: str
    message_id: str
    kind: JobKind
    created_at: datetime
    status: JobStatus = "pending"
    result: AnalysisResult | None = None
    error: str | None = None
    completed_at: datetime | None = None


__all__ = [
    "ActionItem",
    "AnalysisResult",
    "AnalysisTier",
    "AttachmentMeta",
    "DateKind",
    "EmailMessage",
    "ExtractedDate",
    "ExtractionMethod",
    "ExtractionResult",
    "GrammarIssue",
    "JobKind",
    "JobStatus",
    "Priority",
    "ProcessingJob",
    "Provenance",
    "Sentiment",
    "SuggestedReply",
]
