"""Tests for date expression resolution."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from inbox_sage.extraction import DateResolver, classify_date_context

# A Monday.
ANCHOR = datetime(2024, 12, 2, 9, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2024-12-20", datetime(2024, 12, 20, tzinfo=UTC)),
        ("15/01/2025", datetime(2025, 1, 15, tzinfo=UTC)),
        ("December 15th", datetime(2024, 12, 15, tzinfo=UTC)),
        ("the 20th of December", datetime(2024, 12, 20, tzinfo=UTC)),
        ("Jan 3, 2026", datetime(2026, 1, 3, tzinfo=UTC)),
        ("tomorrow", datetime(2024, 12, 3, 9, 0, tzinfo=UTC)),
        ("yesterday", datetime(2024, 12, 1, 9, 0, tzinfo=UTC)),
        ("next week", datetime(2024, 12, 9, 9, 0, tzinfo=UTC)),
        ("next month", datetime(2025, 1, 2, 9, 0, tzinfo=UTC)),
        ("Friday", datetime(2024, 12, 6, 9, 0, tzinfo=UTC)),
        ("in 3 days", datetime(2024, 12, 5, 9, 0, tzinfo=UTC)),
        ("in two weeks", datetime(2024, 12, 16, 9, 0, tzinfo=UTC)),
    ],
)
def test_resolve_supported_forms(text: str, expected: datetime) -> None:
    assert DateResolver().resolve(text, ANCHOR) == expected


def test_past_month_day_rolls_into_next_year() -> None:
    resolved = DateResolver().resolve("March 3", ANCHOR)

    assert resolved == datetime(2025, 3, 3, tzinfo=UTC)


def test_february_29_without_year_waits_for_a_leap_year() -> None:
    resolver = DateResolver()
    anchor = datetime(2027, 3, 1, 9, 0, tzinfo=UTC)

    assert resolver.resolve("February 29", anchor) == datetime(2028, 2, 29, tzinfo=UTC)
    assert resolver.resolve("29th of Feb", anchor) == datetime(2028, 2, 29, tzinfo=UTC)
    assert resolver.resolve("February 30", anchor) is None


@pytest.mark.parametrize(
    ("text", "anchor", "expected"),
    [
        (
            "next month",
            datetime(2025, 1, 31, 9, 0, tzinfo=UTC),
            datetime(2025, 2, 28, 9, 0, tzinfo=UTC),
        ),
        (
            "in 2 months",
            datetime(2024, 12, 31, 9, 0, tzinfo=UTC),
            datetime(2025, 2, 28, 9, 0, tzinfo=UTC),
        ),
        (
            "last year",
            datetime(2024, 2, 29, 9, 0, tzinfo=UTC),
            datetime(2023, 2, 28, 9, 0, tzinfo=UTC),
        ),
    ],
)
def test_month_arithmetic_clamps_to_month_end(
    text: str, anchor: datetime, expected: datetime
) -> None:
    assert DateResolver().resolve(text, anchor) == expected


def test_weekday_matching_anchor_means_next_week() -> None:
    resolved = DateResolver().resolve("Monday", ANCHOR)

    assert resolved == datetime(2024, 12, 9, 9, 0, tzinfo=UTC)


def test_unsupported_phrasing_resolves_to_none() -> None:
    resolver = DateResolver()

    assert resolver.resolve("whenever you get a chance", ANCHOR) is None
    assert resolver.resolve("2024-02-30", ANCHOR) is None


def test_explicit_dates_win_over_relative_words() -> None:
    resolved = DateResolver().resolve("tomorrow or December 20", ANCHOR)

    assert resolved == datetime(2024, 12, 20, tzinfo=UTC)


def test_naive_anchor_is_treated_as_utc() -> None:
    resolved = DateResolver().resolve("tomorrow", datetime(2024, 12, 2, 9, 0))

    assert resolved is not None
    assert resolved.tzinfo is UTC


def test_find_all_returns_matches_in_text_order() -> None:
    found = DateResolver().find_all("Call me Friday, December 15th or tomorrow", ANCHOR)

    assert [match.text for match in found] == ["Friday", "December 15th", "tomorrow"]
    assert [match.form for match in found] == ["weekday", "month_day", "keyword"]
    assert found[1].confidence > found[0].confidence


@pytest.mark.parametrize(
    ("context", "kind"),
    [
        ("The report is due Friday", "deadline"),
        ("Team meeting on Monday", "meeting"),
        ("The conference starts next week", "event"),
        ("See you Friday", "general"),
    ],
)
def test_classify_date_context(context: str, kind: str) -> None:
    assert classify_date_context(context) == kind
