"""Heuristic action-item and date extraction with optional hybrid merge."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from datetime import datetime

from inbox_sage.core.datetime_utils import ensure_aware, utc_now
from inbox_sage.core.interfaces import ExternalActionExtractor
from inbox_sage.core.models import (
    ActionItem,
    EmailMessage,
    ExtractedDate,
    ExtractionResult,
)

from .dates import DateResolver, classify_date_context
from .patterns import ActionPattern, PatternCatalog

LOGGER = logging.getLogger(__name__)

_SENTENCE_BREAK = re.compile(r"[.!?]+")
_MIN_ACTION_LENGTH = 3

Span = tuple[int, int]


class ActionExtractor:
    """Mine obligations and deadlines from email text.

    The pattern catalog is scanned in order over ``subject`` and ``body``.
    Each accepted item claims its action span; later matches overlapping a
    claimed span, or sharing an item's ``(text, category)`` identity, are
    dropped. When an external extractor is configured its items and dates
    are merged in and the result is tagged ``hybrid``.
    """

    def __init__(
        self,
        catalog: PatternCatalog | None = None,
        *,
        resolver: DateResolver | None = None,
        external: ExternalActionExtractor | None = None,
        external_timeout: float = 30.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._catalog = catalog if catalog is not None else PatternCatalog()
        self._resolver = resolver or DateResolver()
        self._external = external
        self._external_timeout = external_timeout
        self._clock = clock

    @property
    def catalog(self) -> PatternCatalog:
        """The pattern catalog consulted on every call."""
        return self._catalog

    async def extract(
        self,
        message: EmailMessage,
        *,
        anchor: datetime | None = None,
        include_external: bool = True,
    ) -> ExtractionResult:
        """Return heuristic results, merged with external ones when available.

        The external extractor is skipped when ``include_external`` is false
        and abandoned after ``external_timeout`` seconds.
        """
        heuristic = self.extract_heuristic(message, anchor=anchor)
        if self._external is None or not include_external:
            return heuristic
        try:
            external = await asyncio.wait_for(
                self._external.extract_actions(message),
                timeout=self._external_timeout,
            )
        except TimeoutError:
            LOGGER.warning(
                "External action extraction timed out after %ss for %s",
                self._external_timeout,
                message.id,
            )
            return heuristic
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "External action extraction failed for %s: %s", message.id, exc
            )
            return heuristic
        if external is None:
            LOGGER.debug("External action extraction unavailable for %s", message.id)
            return heuristic
        return merge_results(heuristic, external)

    def extract_heuristic(
        self, message: EmailMessage, *, anchor: datetime | None = None
    ) -> ExtractionResult:
        """Run the pattern catalog and date detectors over ``message``."""
        if not isinstance(message.subject, str) or not isinstance(message.body, str):
            raise TypeError("Message subject and body must be strings")

        buffer = _scanning_buffer(message)
        if not buffer.strip():
            return ExtractionResult()

        resolved_anchor = ensure_aware(anchor or self._clock())
        sentences = _sentence_spans(buffer)
        dates = self._standalone_dates(buffer, sentences, resolved_anchor)

        items: list[ActionItem] = []
        seen: set[tuple[str, str]] = set()
        claimed: list[Span] = []
        for pattern in self._catalog.snapshot():
            for match in pattern.expression.finditer(buffer):
                action_text = _normalise_phrase(match.group("action"))
                if len(action_text) < _MIN_ACTION_LENGTH:
                    continue
                span = match.span("action")
                if any(_overlaps(span, other) for other in claimed):
                    continue
                due_date = self._resolve_due_date(
                    pattern, match, buffer, sentences, resolved_anchor
                )
                if pattern.requires_date and due_date is None:
                    continue
                item = ActionItem(
                    text=action_text,
                    priority=pattern.priority,
                    category=pattern.category,
                    due_date=due_date,
                )
                if item.identity in seen:
                    continue
                seen.add(item.identity)
                claimed.append(span)
                items.append(item)

        return ExtractionResult(
            action_items=tuple(items),
            extracted_dates=tuple(dates),
            confidence=score_extraction(items, dates),
            method="heuristic",
        )

    def _standalone_dates(
        self, buffer: str, sentences: Sequence[Span], anchor: datetime
    ) -> list[ExtractedDate]:
        dates: list[ExtractedDate] = []
        seen_text: set[str] = set()
        for found in self._resolver.find_all(buffer, anchor):
            if found.text in seen_text:
                continue
            seen_text.add(found.text)
            start, end = sentences[_sentence_index(sentences, found.start)]
            dates.append(
                ExtractedDate(
                    text=found.text,
                    date=found.date,
                    kind=classify_date_context(buffer[start:end]),
                    confidence=found.confidence,
                )
            )
        return dates

    def _resolve_due_date(
        self,
        pattern: ActionPattern,
        match: re.Match[str],
        buffer: str,
        sentences: Sequence[Span],
        anchor: datetime,
    ) -> datetime | None:
        if pattern.captures_date and match.group("date"):
            # A captured date phrase is final; unresolvable means undated.
            return self._resolver.resolve(match.group("date"), anchor)
        phrase = None if pattern.captures_date else match.group("action")
        due_date = self._resolver.resolve(phrase, anchor) if phrase else None
        if due_date is None and pattern.requires_date:
            due_date = self._nearby_date(match.start("action"), buffer, sentences, anchor)
        return due_date

    def _nearby_date(
        self, position: int, buffer: str, sentences: Sequence[Span], anchor: datetime
    ) -> datetime | None:
        index = _sentence_index(sentences, position)
        # Same sentence first, then the one before, then the one after.
        for candidate in (index, index - 1, index + 1):
            if 0 <= candidate < len(sentences):
                start, end = sentences[candidate]
                resolved = self._resolver.resolve(buffer[start:end], anchor)
                if resolved is not None:
                    return resolved
        return None


def score_extraction(
    items: Sequence[ActionItem], dates: Sequence[ExtractedDate]
) -> float:
    """Aggregate confidence for a heuristic extraction, within ``[0, 1]``."""
    if not items:
        return 0.0
    score = 0.5 + min(0.3, 0.1 * len(items))
    if dates or any(item.due_date is not None for item in items):
        score += 0.2
    score += 0.1 * sum(1 for item in items if item.priority == "high")
    return max(0.0, min(score, 1.0))


def merge_results(
    heuristic: ExtractionResult, external: ExtractionResult
) -> ExtractionResult:
    """Union two extractions; heuristic entries win identity ties."""
    items = list(heuristic.action_items)
    seen = {item.identity for item in items}
    for item in external.action_items:
        if item.identity not in seen:
            seen.add(item.identity)
            items.append(item)

    dates = list(heuristic.extracted_dates)
    seen_text = {extracted.text for extracted in dates}
    for extracted in external.extracted_dates:
        if extracted.text not in seen_text:
            seen_text.add(extracted.text)
            dates.append(extracted)

    confidence = max(heuristic.confidence, external.confidence)
    return ExtractionResult(
        action_items=tuple(items),
        extracted_dates=tuple(dates),
        confidence=max(0.0, min(confidence, 1.0)),
        method="hybrid",
    )


def _scanning_buffer(message: EmailMessage) -> str:
    parts = [part for part in (message.subject, message.body) if part]
    return "\n".join(parts)


def _sentence_spans(buffer: str) -> list[Span]:
    spans: list[Span] = []
    start = 0
    for boundary in _SENTENCE_BREAK.finditer(buffer):
        spans.append((start, boundary.start()))
        start = boundary.end()
    spans.append((start, len(buffer)))
    return spans


def _sentence_index(sentences: Sequence[Span], position: int) -> int:
    for index, (_, end) in enumerate(sentences):
        if position <= end:
            return index
    return len(sentences) - 1


def _overlaps(first: Span, second: Span) -> bool:
    return first[0] < second[1] and second[0] < first[1]


def _normalise_phrase(raw: str | None) -> str:
    if not raw:
        return ""
    collapsed = re.sub(r"\s+", " ", raw).strip()
    return collapsed.rstrip(",;:- ")


__all__ = ["ActionExtractor", "merge_results", "score_extraction"]
