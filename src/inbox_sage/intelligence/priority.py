"""Heuristic message-level priority for emails."""

from __future__ import annotations

from inbox_sage.core.models import EmailMessage, Priority

_HIGH_KEYWORDS = ("urgent", "asap", "immediately", "critical", "emergency")
_MEDIUM_KEYWORDS = ("important", "deadline", "priority", "soon")


def score_priority(message: EmailMessage) -> Priority:
    """Return ``high``, ``medium`` or ``low`` from subject and body keywords.

    Only the message as a whole is scored; action items keep the priority
    fixed by the pattern that produced them.
    """
    text = f"{message.subject} {message.body}".lower()
    if any(keyword in text for keyword in _HIGH_KEYWORDS):
        return "high"
    if any(keyword in text for keyword in _MEDIUM_KEYWORDS):
        return "medium"
    return "low"


__all__ = ["score_priority"]
