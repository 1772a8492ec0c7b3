"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def isoformat_z(value: dt.datetime) -> str:
    """Render an aware timestamp as ISO 8601 with a ``Z`` suffix."""
    if value.tzinfo is None:
        msg = "timestamp must be timezone-aware"
        raise ValueError(msg)
    text = value.astimezone(dt.UTC).replace(microsecond=0).isoformat()
    return text.replace("+00:00", "Z")
