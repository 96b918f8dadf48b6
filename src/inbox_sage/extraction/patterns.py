"""Ordered catalog of linguistic rules used to find action items."""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from inbox_sage.core.models import Priority

# A phrase runs until sentence punctuation or a line break, and gaps inside a
# rule ([^\S\n]) never span lines.
_PHRASE = r"[^.!?\n]+?"
_DATE_TAIL = r"(?P<date>[^.!?\n]+)"
_END = r"[^\S\n]*(?=[.!?\n]|$)"


@dataclass(slots=True, frozen=True)
class ActionPattern:
    """A rule mapping matched phrasing to a fixed priority and category.

    ``expression`` must define an ``action`` group and may define a ``date``
    group holding an inline deadline clause.
    """

    name: str
    expression: re.Pattern[str]
    priority: Priority
    category: str
    requires_date: bool
    description: str = ""

    def __post_init__(self) -> None:
        if "action" not in self.expression.groupindex:
            raise ValueError(f"Pattern '{self.name}' must define an 'action' group")

    @property
    def captures_date(self) -> bool:
        """Whether the expression carries an inline date clause."""
        return "date" in self.expression.groupindex

    @classmethod
    def compile(
        cls,
        name: str,
        regex: str,
        *,
        priority: Priority,
        category: str,
        requires_date: bool,
        description: str = "",
    ) -> ActionPattern:
        """Build a case-insensitive pattern from a raw regular expression."""
        return cls(
            name=name,
            expression=re.compile(regex, re.IGNORECASE),
            priority=priority,
            category=category,
            requires_date=requires_date,
            description=description,
        )


DEFAULT_PATTERNS: tuple[ActionPattern, ...] = (
    ActionPattern.compile(
        "urgent_deadline",
        r"\b(?:urgent|asap|immediately|right away|as soon as possible)\b[^\S\n]*:?[^\S\n]*"
        rf"(?P<action>{_PHRASE})[^\S\n]+\b(?:by|before|until|due)\b[^\S\n]+{_DATE_TAIL}",
        priority="high",
        category="urgent",
        requires_date=True,
        description="Urgent tasks with deadlines",
    ),
    ActionPattern.compile(
        "urgent",
        r"\b(?:urgent|asap|as soon as possible)\b[^\S\n]*:?[^\S\n]*"
        rf"(?P<action>{_PHRASE}){_END}",
        priority="high",
        category="urgent",
        requires_date=False,
        description="Urgent tasks",
    ),
    ActionPattern.compile(
        "required",
        r"\b(?:need to|needs to|must|have to|has to|required to)[^\S\n]+"
        rf"(?P<action>{_PHRASE})[^\S\n]+\b(?:by|before|until|due)\b[^\S\n]+{_DATE_TAIL}",
        priority="high",
        category="required",
        requires_date=True,
        description="Required tasks with deadlines",
    ),
    ActionPattern.compile(
        "schedule_meeting",
        r"\b(?P<action>(?:schedule|arrange|set up|book)[^\S\n]+(?:(?:a|an|the)[^\S\n]+)?"
        r"(?:meeting|call|appointment|demo|presentation)"
        rf"(?:[^\S\n]+(?:with|for)[^\S\n]+{_PHRASE})?)"
        rf"[^\S\n]+\b(?:on|for|at|by)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="scheduling",
        requires_date=True,
        description="Meeting scheduling tasks",
    ),
    ActionPattern.compile(
        "schedule_meeting_nearby",
        r"\b(?P<action>(?:schedule|arrange|set up|book)[^\S\n]+(?:(?:a|an|the)[^\S\n]+)?"
        r"(?:meeting|call|appointment|demo|presentation)"
        rf"(?:[^\S\n]+(?:with|for)[^\S\n]+{_PHRASE})?){_END}",
        priority="medium",
        category="scheduling",
        requires_date=True,
        description="Meeting scheduling tasks dated in a neighbouring sentence",
    ),
    ActionPattern.compile(
        "prepare_meeting",
        r"\b(?P<action>(?:prepare|get ready)[^\S\n]+for[^\S\n]+(?:(?:the|a)[^\S\n]+)?"
        r"(?:meeting|call|presentation|demo)"
        rf"(?:[^\S\n]+(?:with|for)[^\S\n]+{_PHRASE})?)"
        rf"[^\S\n]+\b(?:on|at|by)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="preparation",
        requires_date=True,
        description="Meeting preparation tasks",
    ),
    ActionPattern.compile(
        "review",
        r"\b(?P<action>(?:review|check|approve|sign off on|look over)[^\S\n]+"
        rf"{_PHRASE})[^\S\n]+\b(?:by|before|until|due)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="review",
        requires_date=True,
        description="Review and approval tasks",
    ),
    ActionPattern.compile(
        "review_and_respond",
        rf"\b(?P<action>(?:look at|go through|examine)[^\S\n]+{_PHRASE})[^\S\n]+"
        r"(?:and[^\S\n]+)?(?:let me know|get back to me|respond)[^\S\n]+"
        rf"(?:by|before|until)[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="review",
        requires_date=True,
        description="Review tasks with a response required",
    ),
    ActionPattern.compile(
        "communication",
        r"\b(?P<action>(?:send|email|call|contact|reply to|respond to)[^\S\n]+"
        rf"{_PHRASE})[^\S\n]+\b(?:by|before|until|on)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="communication",
        requires_date=True,
        description="Communication tasks with deadlines",
    ),
    ActionPattern.compile(
        "follow_up",
        r"\b(?P<action>(?:follow up|follow-up|check in|touch base)[^\S\n]+(?:with|on)[^\S\n]+"
        rf"{_PHRASE})[^\S\n]+\b(?:by|before|until|on)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="follow-up",
        requires_date=True,
        description="Follow-up tasks with deadlines",
    ),
    ActionPattern.compile(
        "project",
        r"\b(?P<action>(?:work on|complete|finish|deliver|submit)[^\S\n]+"
        rf"{_PHRASE})[^\S\n]+\b(?:by|before|until|due)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="project",
        requires_date=True,
        description="Project work with deadlines",
    ),
    ActionPattern.compile(
        "modification",
        r"\b(?P<action>(?:update|modify|change|revise)[^\S\n]+"
        rf"{_PHRASE})[^\S\n]+\b(?:by|before|until|due)\b[^\S\n]+{_DATE_TAIL}",
        priority="medium",
        category="modification",
        requires_date=True,
        description="Modification tasks with deadlines",
    ),
    ActionPattern.compile(
        "request",
        rf"\b(?:please|kindly|can you|could you|would you)[^\S\n]+(?P<action>{_PHRASE}){_END}",
        priority="low",
        category="request",
        requires_date=False,
        description="General requests",
    ),
    ActionPattern.compile(
        "labelled_action",
        r"\b(?:action items?|action|tasks?|todo|to-do|next steps?)[^\S\n]*:[^\S\n]*"
        rf"(?P<action>{_PHRASE}){_END}",
        priority="medium",
        category="general",
        requires_date=False,
        description="Explicitly labelled action items",
    ),
    ActionPattern.compile(
        "reminder",
        r"\b(?:remember to|don't forget to|do not forget to|make sure to|be sure to)[^\S\n]+"
        rf"(?P<action>{_PHRASE}){_END}",
        priority="medium",
        category="reminder",
        requires_date=False,
        description="Reminder tasks",
    ),
)


class PatternCatalog:
    """Ordered, mutable collection of :class:`ActionPattern` rules.

    Readers work from :meth:`snapshot`, an immutable tuple. Mutations build a
    new tuple and swap it in one assignment, so a reader sees either the old
    or the new catalog, never a half-applied change.
    """

    def __init__(self, patterns: Iterable[ActionPattern] | None = None) -> None:
        self._lock = threading.Lock()
        self._patterns: tuple[ActionPattern, ...] = (
            tuple(patterns) if patterns is not None else DEFAULT_PATTERNS
        )

    def snapshot(self) -> tuple[ActionPattern, ...]:
        """Return the current catalog as an immutable tuple."""
        return self._patterns

    def add(self, pattern: ActionPattern) -> None:
        """Append ``pattern`` to the end of the scan order."""
        with self._lock:
            if any(existing.name == pattern.name for existing in self._patterns):
                raise ValueError(f"Pattern '{pattern.name}' already exists")
            self._patterns = (*self._patterns, pattern)

    def remove(self, name: str) -> bool:
        """Remove the pattern called ``name``. Returns ``True`` if removed."""
        with self._lock:
            remaining = tuple(item for item in self._patterns if item.name != name)
            if len(remaining) == len(self._patterns):
                return False
            self._patterns = remaining
            return True

    def reset(self) -> None:
        """Restore the built-in catalog."""
        with self._lock:
            self._patterns = DEFAULT_PATTERNS

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[ActionPattern]:
        return iter(self._patterns)


__all__ = ["DEFAULT_PATTERNS", "ActionPattern", "PatternCatalog"]
