"""Utilities for parsing raw RFC822 messages into domain messages."""

from __future__ import annotations

import hashlib
import html
import re
from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.message import EmailMessage as MimeMessage
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime

from ..core.datetime_utils import ensure_aware, utc_now
from ..core.models import AttachmentMeta, EmailMessage

_WHITESPACE_RUN = re.compile(r"[ \t]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


class EmailParser:
    """Convert raw email payloads into immutable :class:`EmailMessage` objects."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, payload: bytes) -> EmailMessage:
        """Parse raw RFC822 bytes into an :class:`EmailMessage`.

        The message id falls back to a digest of the payload when the
        ``Message-ID`` header is missing.
        """
        message = self._parser.parsebytes(payload)
        subject = message.get("Subject") or ""
        sent_at = _try_parse_datetime(message.get("Date"))
        message_id = (message.get("Message-ID") or "").strip() or _digest(payload)
        sender = _take_first_address(message.get("From")) or ""
        to_recipients = tuple(_extract_addresses(message.get_all("To", [])))
        cc_recipients = tuple(_extract_addresses(message.get_all("Cc", [])))

        body_text, body_html = _extract_bodies(message)
        if not body_text and body_html:
            body_text = strip_html(body_html)

        return EmailMessage(
            id=message_id,
            subject=str(subject),
            sender=sender,
            body=body_text or "",
            timestamp=ensure_aware(sent_at) if sent_at else utc_now(),
            thread_id=_resolve_thread_id(message),
            to=to_recipients,
            cc=cc_recipients,
            html_body=body_html,
            attachments=tuple(_collect_attachments(message)),
        )


def strip_html(payload: str) -> str:
    """Reduce HTML to readable text by dropping tags and entities."""
    cleaned = []
    skip = False
    for char in payload:
        if char == "<":
            skip = True
            continue
        if char == ">":
            skip = False
            cleaned.append(" ")
            continue
        if not skip:
            cleaned.append(char)
    text = html.unescape("".join(cleaned))
    text = _WHITESPACE_RUN.sub(" ", text)
    return _BLANK_LINES.sub("\n\n", text).strip()


def _digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()[:16]


def _extract_addresses(headers: Iterable[str]) -> Iterable[str]:
    for _, email_address in getaddresses(headers):
        if email_address:
            yield email_address


def _take_first_address(header_value: str | None) -> str | None:
    if header_value is None:
        return None
    addresses = list(_extract_addresses([header_value]))
    return addresses[0] if addresses else None


def _resolve_thread_id(message: MimeMessage) -> str | None:
    for header in (
        "Thread-Index",
        "Thread-Id",
        "In-Reply-To",
        "References",
        "Message-ID",
    ):
        value = message.get(header)
        if isinstance(value, str) and value:
            return value.split()[0]
    return None


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _extract_bodies(message: MimeMessage) -> tuple[str | None, str | None]:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        content_type = part.get_content_type()
        disposition = part.get_content_disposition()
        if disposition == "attachment":
            continue
        try:
            content_obj = part.get_content()
        except LookupError:
            continue
        if not isinstance(content_obj, str):
            continue
        content = content_obj.strip()
        if content_type == "text/plain":
            plain_chunks.append(content)
        elif content_type == "text/html":
            html_chunks.append(content)

    text = _collapse_chunks(plain_chunks, "\n\n")
    html = _collapse_chunks(html_chunks, "\n")
    return text, html


def _collect_attachments(message: MimeMessage) -> Iterable[AttachmentMeta]:
    for part in message.iter_attachments():
        payload = part.get_payload(decode=True) or b""
        yield AttachmentMeta(
            filename=part.get_filename(),
            content_type=part.get_content_type(),
            size=len(payload) if payload else None,
        )


def _try_parse_datetime(header_value: str | None) -> datetime | None:
    if header_value is None:
        return None
    try:
        return parsedate_to_datetime(header_value)
    except (TypeError, ValueError):
        return None


__all__ = ["EmailParser", "strip_html"]
