"""Tests for heuristic and hybrid action-item extraction."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from inbox_sage.core.models import ActionItem, EmailMessage, ExtractionResult
from inbox_sage.extraction import (
    ActionExtractor,
    ActionPattern,
    merge_results,
    score_extraction,
)

ANCHOR = datetime(2024, 12, 2, 9, 0, tzinfo=UTC)


def _message(body: str, subject: str = "") -> EmailMessage:
    return EmailMessage(
        id="msg-1",
        subject=subject,
        sender="manager@example.com",
        body=body,
        timestamp=ANCHOR,
    )


class StubExternal:
    """Stub external extractor returning a canned result."""

    def __init__(
        self,
        result: ExtractionResult | None,
        *,
        raise_error: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.result = result
        self.raise_error = raise_error
        self.delay = delay
        self.calls = 0

    async def extract_actions(self, message: EmailMessage) -> ExtractionResult | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raise_error:
            raise RuntimeError("model offline")
        return self.result


def test_review_with_explicit_deadline() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("Please review the document by Friday, December 15th."), anchor=ANCHOR
    )

    assert len(result.action_items) == 1
    item = result.action_items[0]
    assert "review the document" in item.text
    assert item.due_date is not None
    assert item.due_date.day == 15
    assert item.category == "review"
    assert item.priority == "medium"
    assert result.method == "heuristic"
    assert result.confidence == pytest.approx(0.8)


def test_urgent_instruction_is_high_priority() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("URGENT: Fix the critical bug immediately."), anchor=ANCHOR
    )

    assert len(result.action_items) == 1
    item = result.action_items[0]
    assert item.priority == "high"
    assert item.category == "urgent"
    assert item.text == "Fix the critical bug immediately"
    assert item.due_date is None
    assert result.confidence == pytest.approx(0.7)


def test_empty_message_yields_nothing() -> None:
    result = ActionExtractor().extract_heuristic(_message(""), anchor=ANCHOR)

    assert result.action_items == ()
    assert result.extracted_dates == ()
    assert result.confidence == 0


def test_non_string_body_is_rejected() -> None:
    message = EmailMessage(
        id="msg-1", subject="Hi", sender="a@example.com", body=None, timestamp=ANCHOR  # type: ignore[arg-type]
    )

    with pytest.raises(TypeError):
        ActionExtractor().extract_heuristic(message, anchor=ANCHOR)


def test_subject_is_scanned_with_body() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("", subject="ASAP: approve the budget"), anchor=ANCHOR
    )

    assert [item.text for item in result.action_items] == ["approve the budget"]


def test_dates_are_collected_and_classified() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("Please review the document by Friday, December 15th."), anchor=ANCHOR
    )

    by_text = {extracted.text: extracted for extracted in result.extracted_dates}
    assert set(by_text) == {"Friday", "December 15th"}
    assert by_text["December 15th"].kind == "deadline"
    assert by_text["December 15th"].date == datetime(2024, 12, 15, tzinfo=UTC)


def test_scheduling_takes_date_from_next_sentence() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("Let's schedule a meeting with the design team. How about Tuesday?"),
        anchor=ANCHOR,
    )

    assert len(result.action_items) == 1
    item = result.action_items[0]
    assert item.text == "schedule a meeting with the design team"
    assert item.category == "scheduling"
    assert item.due_date == datetime(2024, 12, 3, 9, 0, tzinfo=UTC)


def test_nearby_date_prefers_the_same_sentence() -> None:
    result = ActionExtractor().extract_heuristic(
        _message(
            "The office is free tomorrow. On Friday we could schedule a call with "
            "Dana. Thursday works too."
        ),
        anchor=ANCHOR,
    )

    assert [item.text for item in result.action_items] == ["schedule a call with Dana"]
    assert result.action_items[0].due_date == datetime(2024, 12, 6, 9, 0, tzinfo=UTC)


def test_nearby_date_prefers_previous_sentence_over_next() -> None:
    result = ActionExtractor().extract_heuristic(
        _message(
            "The office is free tomorrow. We could schedule a call with Dana. "
            "Thursday works too."
        ),
        anchor=ANCHOR,
    )

    assert [item.text for item in result.action_items] == ["schedule a call with Dana"]
    assert result.action_items[0].due_date == datetime(2024, 12, 3, 9, 0, tzinfo=UTC)


def test_unresolvable_inline_date_discards_the_item() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("Review the report by end of day. The party is tomorrow."),
        anchor=ANCHOR,
    )

    assert result.action_items == ()
    assert [extracted.text for extracted in result.extracted_dates] == ["tomorrow"]


def test_extraction_is_idempotent() -> None:
    extractor = ActionExtractor()
    message = _message(
        "URGENT: Fix the login bug. Please send the report. "
        "Review the budget by December 15th. Let's schedule a demo. How about Tuesday?"
    )

    first = extractor.extract_heuristic(message, anchor=ANCHOR)
    second = extractor.extract_heuristic(message, anchor=ANCHOR)

    def items(result: ExtractionResult) -> set[tuple[str, str, datetime | None]]:
        return {(item.text, item.category, item.due_date) for item in result.action_items}

    assert len(first.action_items) == 4
    assert items(first) == items(second)
    assert set(first.extracted_dates) == set(second.extracted_dates)
    assert first.confidence == second.confidence


def test_dated_pattern_without_any_date_is_dropped() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("Schedule a call with Dana."), anchor=ANCHOR
    )

    assert result.action_items == ()
    assert result.confidence == 0


def test_repeated_requests_are_deduplicated() -> None:
    result = ActionExtractor().extract_heuristic(
        _message("Please send the report. Please send the report."), anchor=ANCHOR
    )

    assert [item.text for item in result.action_items] == ["send the report"]
    assert result.action_items[0].category == "request"


def test_custom_patterns_are_used() -> None:
    extractor = ActionExtractor()
    extractor.catalog.add(
        ActionPattern.compile(
            "invoice",
            r"\binvoice\s+(?P<action>[^.]+)",
            priority="high",
            category="billing",
            requires_date=False,
        )
    )

    result = extractor.extract_heuristic(
        _message("Invoice the client for November."), anchor=ANCHOR
    )

    assert [(item.text, item.category) for item in result.action_items] == [
        ("the client for November", "billing")
    ]


def test_external_items_are_merged() -> None:
    external = StubExternal(
        ExtractionResult(
            action_items=(
                ActionItem("fix the critical bug immediately", "low", "urgent"),
                ActionItem("Book travel", "medium", "travel"),
            ),
            confidence=0.9,
            method="llm",
        )
    )
    extractor = ActionExtractor(external=external)

    result = asyncio.run(
        extractor.extract(
            _message("URGENT: Fix the critical bug immediately."), anchor=ANCHOR
        )
    )

    assert external.calls == 1
    assert result.method == "hybrid"
    assert [item.text for item in result.action_items] == [
        "Fix the critical bug immediately",
        "Book travel",
    ]
    assert result.action_items[0].priority == "high"
    assert result.confidence == pytest.approx(0.9)


@pytest.mark.parametrize("external", [StubExternal(None), StubExternal(None, raise_error=True)])
def test_unavailable_external_keeps_heuristics(external: StubExternal) -> None:
    extractor = ActionExtractor(external=external)

    result = asyncio.run(
        extractor.extract(
            _message("URGENT: Fix the critical bug immediately."), anchor=ANCHOR
        )
    )

    assert result.method == "heuristic"
    assert len(result.action_items) == 1


def test_score_extraction_is_clamped() -> None:
    items = [ActionItem(f"task {index}", "high", "urgent") for index in range(4)]
    items[0].due_date = ANCHOR

    assert score_extraction(items, []) == 1.0
    assert score_extraction([], []) == 0.0
    assert score_extraction([ActionItem("task", "low", "request")], []) == pytest.approx(0.6)


def test_merge_results_unions_dates_by_text() -> None:
    heuristic = ExtractionResult(confidence=0.4)
    external = ExtractionResult(confidence=0.3, method="llm")

    merged = merge_results(heuristic, external)

    assert merged.method == "hybrid"
    assert merged.confidence == pytest.approx(0.4)


def test_extract_without_external_matches_heuristic_pass() -> None:
    extractor = ActionExtractor()
    message = _message("Please review the document by Friday, December 15th.")

    result = asyncio.run(extractor.extract(message, anchor=ANCHOR))

    assert result == extractor.extract_heuristic(message, anchor=ANCHOR)


def test_slow_external_is_abandoned() -> None:
    external = StubExternal(
        ExtractionResult(action_items=(ActionItem("Book travel", "medium", "travel"),)),
        delay=1.0,
    )
    extractor = ActionExtractor(external=external, external_timeout=0.01)

    result = asyncio.run(
        extractor.extract(
            _message("URGENT: Fix the critical bug immediately."), anchor=ANCHOR
        )
    )

    assert external.calls == 1
    assert result.method == "heuristic"
    assert [item.text for item in result.action_items] == [
        "Fix the critical bug immediately"
    ]


def test_external_can_be_skipped() -> None:
    external = StubExternal(ExtractionResult(method="llm"))
    extractor = ActionExtractor(external=external)

    result = asyncio.run(
        extractor.extract(
            _message("URGENT: Fix the critical bug immediately."),
            anchor=ANCHOR,
            include_external=False,
        )
    )

    assert external.calls == 0
    assert result.method == "heuristic"
