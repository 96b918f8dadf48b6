"""Remove personal data from messages before they leave the machine."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, replace

from inbox_sage.core.models import EmailMessage


@dataclass(slots=True, frozen=True)
class RedactionRule:
    """Replace every match of ``pattern`` with ``replacement``."""

    label: str
    pattern: re.Pattern[str]
    replacement: str


# Applied in order; URLs and addresses go first so their digits are not
# mistaken for phone or card numbers.
DEFAULT_RULES: tuple[RedactionRule, ...] = (
    RedactionRule("url", re.compile(r"https?://[^\s<>\"']+"), "[URL]"),
    RedactionRule(
        "email",
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "[EMAIL]",
    ),
    RedactionRule("ssn", re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[SSN]"),
    RedactionRule(
        "credit_card", re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b"), "[CREDIT_CARD]"
    ),
    RedactionRule(
        "ip_address", re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"), "[IP_ADDRESS]"
    ),
    RedactionRule(
        "phone",
        re.compile(r"(?<!\d)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)"),
        "[PHONE]",
    ),
)


class PiiRedactor:
    """Apply an ordered rule table to every free-text field of a message."""

    def __init__(self, rules: Sequence[RedactionRule] | None = None) -> None:
        self._rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def redact_text(self, text: str, counts: Counter[str] | None = None) -> str:
        """Return ``text`` with every rule applied, tallying into ``counts``."""
        for rule in self._rules:
            text, hits = rule.pattern.subn(rule.replacement, text)
            if hits and counts is not None:
                counts[rule.label] += hits
        return text

    def redact(self, message: EmailMessage) -> tuple[EmailMessage, str]:
        """Return the redacted message and a summary of what was removed."""
        counts: Counter[str] = Counter()
        redacted = replace(
            message,
            subject=self.redact_text(message.subject, counts),
            sender=self.redact_text(message.sender, counts),
            body=self.redact_text(message.body, counts),
            to=tuple(self.redact_text(value, counts) for value in message.to),
            cc=tuple(self.redact_text(value, counts) for value in message.cc),
            html_body=(
                self.redact_text(message.html_body, counts)
                if message.html_body
                else message.html_body
            ),
        )
        return redacted, _summarise(counts)


def _summarise(counts: Counter[str]) -> str:
    if not counts:
        return "No personal data found"
    parts = [f"{count} {label}" for label, count in sorted(counts.items())]
    return "Redacted " + ", ".join(parts)


__all__ = ["DEFAULT_RULES", "PiiRedactor", "RedactionRule"]
