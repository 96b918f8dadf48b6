"""Tests for RFC822 parsing into email messages."""

from __future__ import annotations

from datetime import UTC, datetime
from email.message import EmailMessage as MimeMessage

from inbox_sage.ingestion import EmailParser, strip_html


def _raw_email(*, with_text: bool = True, message_id: str | None = "<1234@example.com>") -> bytes:
    mime = MimeMessage()
    mime["Subject"] = "Test Email"
    mime["From"] = "Sender Name <sender@example.com>"
    mime["To"] = "User <user@example.com>"
    mime["Cc"] = "another@example.com"
    mime["Date"] = "Mon, 02 Dec 2024 09:00:00 +0000"
    mime["In-Reply-To"] = "<thread@example.com>"
    if message_id is not None:
        mime["Message-ID"] = message_id
    if with_text:
        mime.set_content("Hello world.")
        mime.add_alternative("<p>Hello <strong>world</strong>.</p>", subtype="html")
    else:
        mime.set_content("<p>Hello <strong>world</strong> &amp; team.</p>", subtype="html")
    mime.add_attachment(
        b"Attachment content",
        maintype="application",
        subtype="octet-stream",
        filename="note.txt",
    )
    return mime.as_bytes()


def test_email_parser_extracts_headers_and_bodies() -> None:
    message = EmailParser().parse(_raw_email())

    assert message.id == "<1234@example.com>"
    assert message.subject == "Test Email"
    assert message.sender == "sender@example.com"
    assert message.to == ("user@example.com",)
    assert message.cc == ("another@example.com",)
    assert message.thread_id == "<thread@example.com>"
    assert message.timestamp == datetime(2024, 12, 2, 9, 0, tzinfo=UTC)
    assert message.body == "Hello world."
    assert "<strong>world</strong>" in (message.html_body or "")
    assert len(message.attachments) == 1
    attachment = message.attachments[0]
    assert attachment.filename == "note.txt"
    assert attachment.content_type == "application/octet-stream"
    assert attachment.size == 18


def test_html_only_messages_get_a_text_body() -> None:
    message = EmailParser().parse(_raw_email(with_text=False))

    assert message.body == "Hello world & team."
    assert message.html_body is not None


def test_missing_message_id_is_derived_from_payload() -> None:
    payload = _raw_email(message_id=None)

    first = EmailParser().parse(payload)
    second = EmailParser().parse(payload)

    assert first.id == second.id
    assert len(first.id) == 16


def test_strip_html_drops_tags_and_entities() -> None:
    assert strip_html("<div>Hi&nbsp;there</div>\n\n\n<p>Bye</p>") == "Hi\xa0there \n\n Bye"
