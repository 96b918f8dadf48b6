"""Tests for PII redaction."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from inbox_sage.core.models import EmailMessage
from inbox_sage.intelligence import PiiRedactor, RedactionRule


def _message(body: str, **overrides: object) -> EmailMessage:
    fields: dict[str, object] = {
        "id": "msg-3",
        "subject": "Account details",
        "sender": "support@example.com",
        "body": body,
        "timestamp": datetime(2024, 12, 2, 9, 0, tzinfo=UTC),
    }
    fields.update(overrides)
    return EmailMessage(**fields)  # type: ignore[arg-type]


def test_redacts_emails_and_phone_numbers() -> None:
    redactor = PiiRedactor()

    redacted, summary = redactor.redact(
        _message("Contact me at jane.doe@example.com or 555-123-4567.")
    )

    assert redacted.body == "Contact me at [EMAIL] or [PHONE]."
    assert redacted.sender == "[EMAIL]"
    assert summary == "Redacted 2 email, 1 phone"


def test_redacts_identifiers_in_rule_order() -> None:
    text = PiiRedactor().redact_text(
        "SSN 123-45-6789, card 4111 1111 1111 1111, host 192.168.0.1, "
        "link https://example.com/reset?token=abc"
    )

    assert text == (
        "SSN [SSN], card [CREDIT_CARD], host [IP_ADDRESS], link [URL]"
    )


def test_redacts_recipients_and_html() -> None:
    message = _message(
        "Hi",
        to=("bob@example.com",),
        cc=("carol@example.com",),
        html_body="<p>Call 555.987.6543</p>",
    )

    redacted, _ = PiiRedactor().redact(message)

    assert redacted.to == ("[EMAIL]",)
    assert redacted.cc == ("[EMAIL]",)
    assert redacted.html_body == "<p>Call [PHONE]</p>"
    assert message.to == ("bob@example.com",)


def test_clean_message_is_unchanged() -> None:
    message = _message("Lunch at noon?", sender="Team")

    redacted, summary = PiiRedactor().redact(message)

    assert redacted == message
    assert summary == "No personal data found"


def test_custom_rules_replace_defaults() -> None:
    redactor = PiiRedactor(
        [RedactionRule("ticket", re.compile(r"TICKET-\d+"), "[TICKET]")]
    )

    redacted, summary = redactor.redact(_message("See TICKET-42 from bob@example.com"))

    assert redacted.body == "See [TICKET] from bob@example.com"
    assert summary == "Redacted 1 ticket"
