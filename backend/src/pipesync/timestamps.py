"""ISO 8601 helpers for timestamps exchanged with the execution service."""

from __future__ import annotations

from datetime import datetime, timezone


def parse_iso8601(value: str | datetime | None) -> datetime | None:
    """Normalize a received timestamp to an aware UTC datetime.

    ``None`` and empty strings mean "unset" and return None, never epoch zero.
    Naive values are taken to be UTC, as the service emits them without offset.
    A trailing ``Z`` is accepted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso8601(value: datetime | None) -> str | None:
    """Render a datetime in the canonical exchange form, e.g. ``2024-01-02T00:00:00Z``."""
    if value is None:
        return None
    text = value.astimezone(timezone.utc).isoformat()
    return text.replace("+00:00", "Z")


def format_yyyymmdd(value: datetime | None) -> str:
    """Date part only, ``YYYY-MM-DD``; empty string when unset."""
    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d")


def latest(current: datetime | None, incoming: datetime | None) -> datetime | None:
    """Pick the later of two timestamps, never moving a set value backwards or unsetting it."""
    if incoming is None:
        return current
    if current is None or incoming >= current:
        return incoming
    return current
