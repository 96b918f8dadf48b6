"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import UTC, datetime

__all__ = [
    "ensure_aware",
    "serialize_datetime",
    "utc_now",
]


def utc_now() -> datetime:
    """Return the current instant as a timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def ensure_aware(value: datetime) -> datetime:
    """Return ``value`` with UTC attached when it carries no timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def serialize_datetime(value: datetime | None) -> str | None:
    """Serialise ``value`` to ISO 8601, keeping its own timezone."""
    if value is None:
        return None
    return value.isoformat()
