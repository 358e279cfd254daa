"""Helpers for working with ISO-8601 timestamps on the wire."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Final

_ZULU_SUFFIX: Final[re.Pattern[str]] = re.compile(r"[zZ]$")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive values; aware values are returned unchanged."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string into an aware datetime.

    Returns ``None`` for anything that is not a string or cannot be parsed.
    Naive timestamps are interpreted as UTC and a trailing ``Z`` designator is
    accepted on every supported interpreter.
    """

    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(_ZULU_SUFFIX.sub("+00:00", text))
    except ValueError:
        return None
    return ensure_aware(parsed)


def format_timestamp(value: datetime | None) -> str | None:
    """Render ``value`` as an ISO-8601 string using ``Z`` for UTC."""

    if value is None:
        return None

    aware = ensure_aware(value)
    if aware.utcoffset() == timezone.utc.utcoffset(None):
        return aware.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return aware.isoformat()
