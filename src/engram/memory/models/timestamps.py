"""Timestamp helpers shared by the persisted formats.

All persisted timestamps are UTC ISO-8601 strings with a ``Z`` suffix, e.g.
``2024-05-01T12:30:00.250000Z``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive values and normalise aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) into UTC.

    Raises:
        ValueError: If ``value`` is not a recognisable timestamp.
    """

    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


__all__ = ["ensure_utc", "format_timestamp", "parse_timestamp", "utc_now"]
