"""Rule-based categorisation for emails."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from inbox_sage.core.models import EmailMessage


@dataclass(frozen=True)
class _CategoryRule:
    key: str
    keywords: tuple[str, ...]


DEFAULT_RULES: tuple[_CategoryRule, ...] = (
    _CategoryRule(key="meeting", keywords=("meeting", "schedule")),
    _CategoryRule(key="deadline", keywords=("deadline", "due")),
    _CategoryRule(key="project", keywords=("project", "task")),
    _CategoryRule(key="budget", keywords=("budget", "cost")),
    _CategoryRule(key="appreciation", keywords=("thank", "appreciate")),
)


class KeywordCategoryService:
    """Assign categories based on simple keyword heuristics."""

    def __init__(
        self,
        rules: Sequence[_CategoryRule] | None = None,
        *,
        default_category: str | None = "general",
        max_categories: int | None = None,
    ) -> None:
        self._rules: tuple[_CategoryRule, ...] = (
            tuple(rules) if rules is not None else DEFAULT_RULES
        )
        self._default_category = default_category
        self._max_categories = max_categories

    def categorize(self, message: EmailMessage) -> tuple[str, ...]:
        """Return category keys derived from subject and body."""
        haystack = _build_haystack(message)
        selected: list[str] = []

        for rule in self._rules:
            if rule.key in selected:
                continue
            if _contains_keyword(rule.keywords, haystack):
                selected.append(rule.key)
                if (
                    self._max_categories is not None
                    and len(selected) >= self._max_categories
                ):
                    break

        if not selected and self._default_category is not None:
            selected.append(self._default_category)

        return tuple(selected)


def _build_haystack(message: EmailMessage) -> str:
    parts: list[str] = []
    if message.subject:
        parts.append(message.subject)
    if message.body:
        parts.append(message.body)
    return " ".join(parts).lower()


def _contains_keyword(keywords: Iterable[str], haystack: str) -> bool:
    for keyword in keywords:
        if keyword in haystack:
            return True
    return False


__all__ = ["KeywordCategoryService"]
