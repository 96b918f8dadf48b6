"""Deterministic analysis used when no model tier is available."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from inbox_sage.core.datetime_utils import utc_now
from inbox_sage.core.models import (
    ActionItem,
    AnalysisResult,
    EmailMessage,
    GrammarIssue,
    Sentiment,
    SuggestedReply,
)
from inbox_sage.extraction import ActionExtractor

from .category import KeywordCategoryService
from .priority import score_priority

LOGGER = logging.getLogger(__name__)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_MIN_SENTENCE_LENGTH = 10
_SUMMARY_SENTENCES = 3
_SUMMARY_KEYWORDS = (
    "meeting",
    "deadline",
    "urgent",
    "important",
    "project",
    "budget",
    "schedule",
    "review",
    "action",
    "task",
    "follow",
    "next",
    "please",
    "need",
    "must",
    "should",
    "will",
    "can",
    "would",
)
_POSITIVE_WORDS = (
    "thank",
    "great",
    "excellent",
    "good",
    "happy",
    "pleased",
    "appreciate",
    "wonderful",
    "amazing",
)
_NEGATIVE_WORDS = (
    "urgent",
    "problem",
    "issue",
    "error",
    "failed",
    "bad",
    "terrible",
    "disappointed",
    "concerned",
)


@dataclass(slots=True, frozen=True)
class _GrammarCheck:
    pattern: re.Pattern[str]
    fix: Callable[[str], str]
    severity: Literal["error", "warning", "info"]


_GRAMMAR_CHECKS: tuple[_GrammarCheck, ...] = (
    _GrammarCheck(re.compile(r"(?<![\w'])i(?![\w'])"), lambda _: "I", "error"),
    _GrammarCheck(re.compile(r"(?<=\S) {2,}(?=\S)"), lambda _: " ", "warning"),
    _GrammarCheck(re.compile(r"(?<=[.!?] )[a-z]"), str.upper, "warning"),
)
_REPLY_RULES: tuple[tuple[tuple[str, ...], tuple[SuggestedReply, ...]], ...] = (
    (
        ("meeting",),
        (
            SuggestedReply(
                "Thank you for the meeting invitation. I'm available and will "
                "attend as scheduled.",
                "formal",
                "short",
                0.8,
            ),
            SuggestedReply(
                "Thanks for the invite! I'll be there.", "casual", "short", 0.9
            ),
        ),
    ),
    (
        ("deadline",),
        (
            SuggestedReply(
                "I understand the deadline and will ensure the task is completed "
                "on time.",
                "formal",
                "short",
                0.8,
            ),
            SuggestedReply(
                "Got it, I'll make sure to get this done by the deadline.",
                "casual",
                "short",
                0.9,
            ),
        ),
    ),
    (
        ("thank",),
        (
            SuggestedReply(
                "You're very welcome. I'm happy to help.", "formal", "short", 0.9
            ),
            SuggestedReply(
                "No problem at all! Happy to help anytime.", "casual", "short", 0.9
            ),
        ),
    ),
)
_GENERIC_REPLIES = (
    SuggestedReply(
        "Thank you for your message. I'll review this and get back to you soon.",
        "formal",
        "short",
        0.7,
    ),
    SuggestedReply(
        "Thanks for reaching out! I'll get back to you soon.", "casual", "short", 0.8
    ),
)


class HeuristicAnalyzer:
    """Build a full analysis from keyword rules and the extraction engine."""

    def __init__(
        self,
        extractor: ActionExtractor,
        *,
        categories: KeywordCategoryService | None = None,
        max_summary_length: int = 200,
    ) -> None:
        self._extractor = extractor
        self._categories = categories or KeywordCategoryService()
        self._max_summary_length = max_summary_length

    async def analyze(
        self,
        message: EmailMessage,
        *,
        anchor: datetime | None = None,
        max_summary_length: int | None = None,
        include_external: bool = True,
    ) -> AnalysisResult:
        """Return a ``heuristic`` tier analysis tagged as locally produced.

        ``include_external`` is passed to the extractor; turn it off when the
        model behind a hybrid extractor must not be contacted.
        """
        summary_length = max_summary_length or self._max_summary_length
        extraction = await self._extractor.extract(
            message, anchor=anchor, include_external=include_external
        )
        LOGGER.debug(
            "Heuristic analysis for %s found %d action items",
            message.id,
            len(extraction.action_items),
        )
        return AnalysisResult(
            message_id=message.id,
            summary=build_extractive_summary(message, summary_length),
            action_items=extraction.action_items,
            suggested_replies=suggest_replies(message),
            grammar_issues=check_grammar(message.body),
            sentiment=score_sentiment(message),
            priority=score_priority(message),
            categories=self._categories.categorize(message),
            extracted_dates=extraction.extracted_dates,
            created_at=utc_now(),
            model_used="local",
            tier="heuristic",
        )


def build_extractive_summary(message: EmailMessage, max_length: int = 200) -> str:
    """Pick the highest scoring body sentences, kept in their original order."""
    sentences = [
        part.strip()
        for part in _SENTENCE_SPLIT.split(message.body)
        if len(part.strip()) > _MIN_SENTENCE_LENGTH
    ]
    if not sentences:
        return _fallback_summary(message)[:max_length]

    scored = sorted(
        range(len(sentences)),
        key=lambda index: _score_sentence(sentences[index], index, len(sentences)),
        reverse=True,
    )
    chosen = sorted(scored[:_SUMMARY_SENTENCES])
    summary = ". ".join(sentences[index] for index in chosen) + "."
    return summary[:max_length]


def _score_sentence(sentence: str, index: int, total: int) -> int:
    score = 0
    if index == 0:
        score += 2
    if index == total - 1:
        score += 1
    if 20 < len(sentence) < 100:
        score += 1
    lowered = sentence.lower()
    score += sum(1 for keyword in _SUMMARY_KEYWORDS if keyword in lowered)
    if "?" in sentence:
        score += 1
    return score


def score_sentiment(message: EmailMessage) -> Sentiment:
    """Compare positive and negative keyword counts."""
    text = f"{message.subject} {message.body}".lower()
    positive = sum(1 for word in _POSITIVE_WORDS if word in text)
    negative = sum(1 for word in _NEGATIVE_WORDS if word in text)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def suggest_replies(message: EmailMessage) -> tuple[SuggestedReply, ...]:
    """Return canned replies for the first matching message type."""
    text = f"{message.subject} {message.body}".lower()
    for keywords, replies in _REPLY_RULES:
        if any(keyword in text for keyword in keywords):
            return replies
    return _GENERIC_REPLIES


def check_grammar(text: str) -> tuple[GrammarIssue, ...]:
    """Flag a lower-case ``i``, doubled spaces and lower-case sentence starts."""
    issues: list[GrammarIssue] = []
    for check in _GRAMMAR_CHECKS:
        for match in check.pattern.finditer(text):
            found = match.group(0)
            issues.append(
                GrammarIssue(
                    text=found,
                    suggestion=check.fix(found),
                    severity=check.severity,
                    start=match.start(),
                    end=match.end(),
                )
            )
    issues.sort(key=lambda issue: issue.start)
    return tuple(issues)


def build_minimal_analysis(message: EmailMessage) -> AnalysisResult:
    """Return the trivial analysis used when every other tier has failed."""
    body = message.body or ""
    lowered = body.lower()
    words = len(body.split())
    subject = message.subject or "(no subject)"
    if words < 50:
        summary = f'Short message about "{subject}"'
    elif words < 200:
        summary = f'Medium-length message discussing "{subject}". Contains {words} words.'
    else:
        summary = (
            f'Long message about "{subject}". This appears to be a detailed '
            f"communication with {words} words covering multiple topics."
        )

    items: list[ActionItem] = []
    if "meeting" in lowered:
        items.append(ActionItem("Schedule meeting", "high", "scheduling"))
    if "deadline" in lowered or "due" in lowered:
        items.append(ActionItem("Review deadline requirements", "high", "deadline"))
    if "reply" in lowered or "response" in lowered:
        items.append(ActionItem("Send response", "medium", "communication"))

    return AnalysisResult(
        message_id=message.id,
        summary=summary,
        action_items=tuple(items),
        suggested_replies=(
            SuggestedReply(
                f'Thank you for your message about "{subject}". '
                "I'll review this and get back to you soon.",
                "formal",
                "short",
                0.8,
            ),
            SuggestedReply(
                "Thanks for reaching out! I'll look into this and let you know "
                "what I find.",
                "casual",
                "short",
                0.9,
            ),
        ),
        grammar_issues=(),
        sentiment="neutral",
        priority="medium",
        categories=("general",),
        extracted_dates=(),
        created_at=utc_now(),
        model_used="local",
        tier="minimal",
    )


def _fallback_summary(message: EmailMessage) -> str:
    return f'Email from {message.sender} about "{message.subject}"'


__all__ = [
    "HeuristicAnalyzer",
    "build_extractive_summary",
    "build_minimal_analysis",
    "check_grammar",
    "score_sentiment",
    "suggest_replies",
]
