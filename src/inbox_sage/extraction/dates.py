"""Resolve date expressions in email text to absolute instants."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from inbox_sage.core.datetime_utils import ensure_aware
from inbox_sage.core.models import DateKind

_MONTHS = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
_MONTH_INDEX = {
    name: index
    for index, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
_NUMBER_WORDS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
}
_KEYWORD_OFFSETS = {"today": 0, "tomorrow": 1, "yesterday": -1}
_LEAP_SEARCH_YEARS = 9

_CONTEXT_KINDS: tuple[tuple[DateKind, tuple[str, ...]], ...] = (
    ("deadline", ("deadline", "due", "by", "before", "until", "no later than")),
    ("meeting", ("meeting", "call", "appointment", "sync", "interview")),
    ("event", ("event", "conference", "workshop", "webinar", "party", "launch")),
)

Builder = Callable[[re.Match[str], datetime], datetime | None]


@dataclass(slots=True, frozen=True)
class DateMatch:
    """A resolvable date expression found in a piece of text."""

    text: str
    start: int
    end: int
    date: datetime
    form: str
    confidence: float


@dataclass(slots=True, frozen=True)
class _DateForm:
    name: str
    expression: re.Pattern[str]
    confidence: float
    build: Builder


def _midnight(day: date, anchor: datetime) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=anchor.tzinfo)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _expand_year(raw: str) -> int:
    year = int(raw)
    return 2000 + year if len(raw) == 2 else year


def _month_number(raw: str) -> int:
    return _MONTH_INDEX[raw[:3].lower()]


def _calendar_day(
    month: int, day: int, year_text: str | None, anchor: datetime
) -> datetime | None:
    if year_text:
        resolved = _safe_date(int(year_text), month, day)
        return _midnight(resolved, anchor) if resolved else None
    # Next occurrence on or after the anchor day; February 29 can sit up to
    # eight years ahead.
    for year in range(anchor.year, anchor.year + _LEAP_SEARCH_YEARS):
        resolved = _safe_date(year, month, day)
        if resolved is not None and resolved >= anchor.date():
            return _midnight(resolved, anchor)
    return None


def _build_iso(match: re.Match[str], anchor: datetime) -> datetime | None:
    year, month, day = (int(part) for part in match.groups())
    resolved = _safe_date(year, month, day)
    return _midnight(resolved, anchor) if resolved else None


def _build_numeric(match: re.Match[str], anchor: datetime) -> datetime | None:
    day, month, year_text = match.groups()
    resolved = _safe_date(_expand_year(year_text), int(month), int(day))
    return _midnight(resolved, anchor) if resolved else None


def _build_month_day(match: re.Match[str], anchor: datetime) -> datetime | None:
    month_text, day_text, year_text = match.groups()
    return _calendar_day(_month_number(month_text), int(day_text), year_text, anchor)


def _build_day_month(match: re.Match[str], anchor: datetime) -> datetime | None:
    day_text, month_text, year_text = match.groups()
    return _calendar_day(_month_number(month_text), int(day_text), year_text, anchor)


def _build_keyword(match: re.Match[str], anchor: datetime) -> datetime | None:
    return anchor + timedelta(days=_KEYWORD_OFFSETS[match.group(1).lower()])


def _build_relative_period(match: re.Match[str], anchor: datetime) -> datetime | None:
    direction = 1 if match.group(1).lower() == "next" else -1
    unit = match.group(2).lower()
    if unit == "week":
        return anchor + timedelta(days=7 * direction)
    if unit == "month":
        return anchor + relativedelta(months=direction)
    return anchor + relativedelta(years=direction)


def _build_weekday(match: re.Match[str], anchor: datetime) -> datetime | None:
    target = _WEEKDAYS.index(match.group(1).lower())
    days_ahead = (target - anchor.weekday()) % 7 or 7
    return anchor + timedelta(days=days_ahead)


def _build_offset(match: re.Match[str], anchor: datetime) -> datetime | None:
    raw_amount, unit = match.group(1).lower(), match.group(2).lower()
    amount = int(raw_amount) if raw_amount.isdigit() else _NUMBER_WORDS[raw_amount]
    if unit.startswith("day"):
        return anchor + timedelta(days=amount)
    if unit.startswith("week"):
        return anchor + timedelta(weeks=amount)
    return anchor + relativedelta(months=amount)


_FORMS: tuple[_DateForm, ...] = (
    _DateForm(
        "iso",
        re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b"),
        0.9,
        _build_iso,
    ),
    _DateForm(
        "numeric",
        re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4}|\d{2})\b"),
        0.9,
        _build_numeric,
    ),
    _DateForm(
        "month_day",
        re.compile(
            rf"\b({_MONTHS})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}})\b)?",
            re.IGNORECASE,
        ),
        0.8,
        _build_month_day,
    ),
    _DateForm(
        "day_month",
        re.compile(
            rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?({_MONTHS})\b\.?(?:,?\s+(\d{{4}})\b)?",
            re.IGNORECASE,
        ),
        0.8,
        _build_day_month,
    ),
    _DateForm(
        "keyword",
        re.compile(r"\b(today|tomorrow|yesterday)\b", re.IGNORECASE),
        0.7,
        _build_keyword,
    ),
    _DateForm(
        "relative_period",
        re.compile(r"\b(next|last)\s+(week|month|year)\b", re.IGNORECASE),
        0.7,
        _build_relative_period,
    ),
    _DateForm(
        "weekday",
        re.compile(rf"\b({'|'.join(_WEEKDAYS)})\b", re.IGNORECASE),
        0.5,
        _build_weekday,
    ),
    _DateForm(
        "offset",
        re.compile(
            rf"\bin\s+(\d{{1,3}}|{'|'.join(_NUMBER_WORDS)})\s+(days?|weeks?|months?)\b",
            re.IGNORECASE,
        ),
        0.7,
        _build_offset,
    ),
)


class DateResolver:
    """Turn date-bearing text into absolute instants relative to an anchor.

    Forms are tried in a fixed priority order: explicit calendar dates,
    ``today``/``tomorrow``/``yesterday``, ``next``/``last`` periods, bare
    weekday names, then ``in N days|weeks|months``. Text with no supported
    phrasing resolves to ``None``.
    """

    def resolve(self, text: str, anchor: datetime) -> datetime | None:
        """Return the instant described by ``text`` or ``None``."""
        found = self.match(text, anchor)
        return found.date if found else None

    def match(self, text: str, anchor: datetime) -> DateMatch | None:
        """Return the highest-priority resolvable expression inside ``text``."""
        anchor = ensure_aware(anchor)
        for form in _FORMS:
            for candidate in form.expression.finditer(text):
                resolved = form.build(candidate, anchor)
                if resolved is not None:
                    return _to_match(form, candidate, resolved)
        return None

    def find_all(self, text: str, anchor: datetime) -> list[DateMatch]:
        """Return every resolvable expression in ``text`` ordered by position.

        When two expressions overlap, the higher-priority form keeps the span.
        """
        anchor = ensure_aware(anchor)
        found: list[DateMatch] = []
        for form in _FORMS:
            for candidate in form.expression.finditer(text):
                start, end = candidate.span()
                if any(start < other.end and other.start < end for other in found):
                    continue
                resolved = form.build(candidate, anchor)
                if resolved is not None:
                    found.append(_to_match(form, candidate, resolved))
        found.sort(key=lambda item: item.start)
        return found


def _to_match(form: _DateForm, candidate: re.Match[str], resolved: datetime) -> DateMatch:
    return DateMatch(
        text=candidate.group(0),
        start=candidate.start(),
        end=candidate.end(),
        date=resolved,
        form=form.name,
        confidence=form.confidence,
    )


def classify_date_context(context: str) -> DateKind:
    """Tag a date by the words surrounding it."""
    lowered = context.lower()
    for kind, keywords in _CONTEXT_KINDS:
        if any(re.search(rf"\b{re.escape(word)}\b", lowered) for word in keywords):
            return kind
    return "general"


__all__ = ["DateMatch", "DateResolver", "classify_date_context"]
