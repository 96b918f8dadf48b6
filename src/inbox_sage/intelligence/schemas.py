"""Pydantic schemas validating JSON produced by language models."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from inbox_sage.core.datetime_utils import ensure_aware, utc_now
from inbox_sage.core.models import (
    ActionItem,
    AnalysisResult,
    AnalysisTier,
    EmailMessage,
    ExtractedDate,
    ExtractionResult,
    GrammarIssue,
    Provenance,
    SuggestedReply,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ActionItemPayload(BaseModel):
    """An action item as described by a model."""

    text: str = Field(min_length=1)
    priority: Literal["high", "medium", "low"] = "medium"
    category: str = "general"
    due_date: datetime | None = None

    @field_validator("text", "category")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    def to_model(self) -> ActionItem:
        """Convert to the domain :class:`ActionItem`."""
        return ActionItem(
            text=self.text,
            priority=self.priority,
            category=self.category or "general",
            due_date=ensure_aware(self.due_date) if self.due_date else None,
        )


class DatePayload(BaseModel):
    """A date mention as described by a model."""

    text: str = Field(min_length=1)
    date: datetime
    type: Literal["deadline", "meeting", "event", "general"] = "general"
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    def to_model(self) -> ExtractedDate:
        """Convert to the domain :class:`ExtractedDate`."""
        return ExtractedDate(
            text=self.text,
            date=ensure_aware(self.date),
            kind=self.type,
            confidence=self.confidence,
        )


class ReplyPayload(BaseModel):
    """A suggested reply as described by a model."""

    text: str = Field(min_length=1)
    tone: Literal["formal", "casual", "concise"] = "formal"
    length: Literal["short", "medium", "long"] = "short"
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)


class GrammarPayload(BaseModel):
    """A grammar finding as described by a model."""

    text: str = Field(min_length=1)
    suggestion: str
    severity: Literal["error", "warning", "info"] = "info"
    start: int = Field(default=0, ge=0)
    end: int = Field(default=0, ge=0)

    def to_model(self) -> GrammarIssue:
        """Convert to the domain :class:`GrammarIssue`."""
        return GrammarIssue(
            text=self.text,
            suggestion=self.suggestion,
            severity=self.severity,
            start=self.start,
            end=max(self.start, self.end),
        )


class AnalysisPayload(BaseModel):
    """Full analysis reply expected from local and cloud models."""

    summary: str = Field(min_length=1)
    action_items: list[ActionItemPayload] = Field(default_factory=list)
    suggested_replies: list[ReplyPayload] = Field(default_factory=list)
    grammar_issues: list[GrammarPayload] = Field(default_factory=list)
    sentiment: Literal["positive", "negative", "neutral"] = "neutral"
    priority: Literal["high", "medium", "low"] = "medium"
    categories: list[str] = Field(default_factory=list)
    extracted_dates: list[DatePayload] = Field(default_factory=list)

    def to_result(
        self,
        message: EmailMessage,
        *,
        model_used: Provenance,
        tier: AnalysisTier,
        max_summary_length: int | None = None,
    ) -> AnalysisResult:
        """Build an :class:`AnalysisResult` for ``message``."""
        summary = self.summary.strip()
        if max_summary_length is not None:
            summary = summary[:max_summary_length]
        return AnalysisResult(
            message_id=message.id,
            summary=summary,
            action_items=_unique_items(item.to_model() for item in self.action_items),
            suggested_replies=tuple(
                SuggestedReply(
                    text=reply.text.strip(),
                    tone=reply.tone,
                    length=reply.length,
                    confidence=reply.confidence,
                )
                for reply in self.suggested_replies
            ),
            grammar_issues=tuple(issue.to_model() for issue in self.grammar_issues),
            sentiment=self.sentiment,
            priority=self.priority,
            categories=tuple(
                category.strip() for category in self.categories if category.strip()
            )
            or ("general",),
            extracted_dates=tuple(date.to_model() for date in self.extracted_dates),
            created_at=utc_now(),
            model_used=model_used,
            tier=tier,
        )


class ActionExtractionPayload(BaseModel):
    """Action-only reply used for hybrid extraction."""

    action_items: list[ActionItemPayload] = Field(default_factory=list)
    extracted_dates: list[DatePayload] = Field(default_factory=list)

    def to_result(self, confidence: float) -> ExtractionResult:
        """Build an ``llm``-tagged :class:`ExtractionResult`."""
        return ExtractionResult(
            action_items=_unique_items(item.to_model() for item in self.action_items),
            extracted_dates=tuple(date.to_model() for date in self.extracted_dates),
            confidence=confidence,
            method="llm",
        )


def _unique_items(items: Iterable[ActionItem]) -> tuple[ActionItem, ...]:
    unique: dict[tuple[str, str], ActionItem] = {}
    for item in items:
        unique.setdefault(item.identity, item)
    return tuple(unique.values())


def parse_payload(raw: str, schema: type[ModelT]) -> ModelT:
    """Decode ``raw`` model output into ``schema``.

    Raises ``ValueError`` when the text is not JSON or does not fit the schema.
    """
    cleaned = _FENCE.sub("", raw.strip())
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError("Model output was not valid JSON") from exc
    try:
        return schema.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError(f"Model output did not match schema: {exc}") from exc


__all__ = [
    "ActionExtractionPayload",
    "ActionItemPayload",
    "AnalysisPayload",
    "DatePayload",
    "GrammarPayload",
    "ReplyPayload",
    "parse_payload",
]
