"""JSON conversion for domain objects exposed over HTTP and the CLI."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from inbox_sage.core.datetime_utils import ensure_aware, serialize_datetime, utc_now
from inbox_sage.core.models import (
    ActionItem,
    AnalysisResult,
    EmailMessage,
    ExtractedDate,
    ExtractionResult,
    ProcessingJob,
)
from inbox_sage.extraction import ActionPattern


class MessagePayload(BaseModel):
    """Inbound message document; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(min_length=1)
    subject: str = ""
    sender: str = Field(default="", alias="from")
    body: str = ""
    timestamp: datetime | None = None
    thread_id: str | None = None
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    html_body: str | None = None
    labels: list[str] = Field(default_factory=list)

    def to_model(self) -> EmailMessage:
        """Convert to an immutable :class:`EmailMessage`."""
        return EmailMessage(
            id=self.id,
            subject=self.subject,
            sender=self.sender,
            body=self.body,
            timestamp=ensure_aware(self.timestamp) if self.timestamp else utc_now(),
            thread_id=self.thread_id,
            to=tuple(self.to),
            cc=tuple(self.cc),
            html_body=self.html_body,
            labels=tuple(self.labels),
        )


def serialize_action_item(item: ActionItem) -> dict[str, Any]:
    return {
        "text": item.text,
        "dueDate": serialize_datetime(item.due_date),
        "priority": item.priority,
        "category": item.category,
        "isCompleted": item.is_completed,
    }


def serialize_extracted_date(extracted: ExtractedDate) -> dict[str, Any]:
    return {
        "text": extracted.text,
        "date": serialize_datetime(extracted.date),
        "type": extracted.kind,
        "confidence": extracted.confidence,
    }


def serialize_extraction(result: ExtractionResult) -> dict[str, Any]:
    return {
        "actionItems": [serialize_action_item(item) for item in result.action_items],
        "extractedDates": [
            serialize_extracted_date(extracted) for extracted in result.extracted_dates
        ],
        "confidence": result.confidence,
        "method": result.method,
    }


def serialize_analysis(result: AnalysisResult) -> dict[str, Any]:
    return {
        "messageId": result.message_id,
        "summary": result.summary,
        "actionItems": [serialize_action_item(item) for item in result.action_items],
        "suggestedReplies": [
            {
                "text": reply.text,
                "tone": reply.tone,
                "length": reply.length,
                "confidence": reply.confidence,
            }
            for reply in result.suggested_replies
        ],
        "grammarIssues": [
            {
                "text": issue.text,
                "suggestion": issue.suggestion,
                "severity": issue.severity,
                "position": {"start": issue.start, "end": issue.end},
            }
            for issue in result.grammar_issues
        ],
        "sentiment": result.sentiment,
        "priority": result.priority,
        "categories": list(result.categories),
        "extractedDates": [
            serialize_extracted_date(extracted) for extracted in result.extracted_dates
        ],
        "createdAt": serialize_datetime(result.created_at),
        "modelUsed": result.model_used,
        "tier": result.tier,
    }


def serialize_job(job: ProcessingJob) -> dict[str, Any]:
    return {
        "id": job.id,
        "messageId": job.message_id,
        "type": job.kind,
        "status": job.status,
        "error": job.error,
        "createdAt": serialize_datetime(job.created_at),
        "completedAt": serialize_datetime(job.completed_at),
    }


def serialize_pattern(pattern: ActionPattern) -> dict[str, Any]:
    return {
        "name": pattern.name,
        "pattern": pattern.expression.pattern,
        "priority": pattern.priority,
        "category": pattern.category,
        "requiresDate": pattern.requires_date,
        "description": pattern.description,
    }


__all__ = [
    "MessagePayload",
    "serialize_action_item",
    "serialize_analysis",
    "serialize_extracted_date",
    "serialize_extraction",
    "serialize_job",
    "serialize_pattern",
]
