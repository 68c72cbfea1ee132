"""
Low-level timezone and timestamp utilities.

Helpers for timezone-aware UTC datetime operations. Domain-agnostic: season
rules live in date_utils.py.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from .parsing import is_missing


def now_utc() -> datetime:
    """Return the current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def date_to_utc_datetime(day: date) -> datetime:
    """Convert a date to a timezone-aware UTC datetime at midnight."""
    return datetime.combine(day, datetime.min.time()).replace(tzinfo=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_provider_datetime(value: Any) -> datetime | None:
    """Parse provider timestamps into aware UTC datetimes.

    Accepts ISO 8601 strings (including the ``2024-05-14T23:00Z`` form the
    schedule files use), plain dates, and datetime/date objects. Returns None
    for missing markers; raises ValueError for anything else.
    """
    if is_missing(value):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return date_to_utc_datetime(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"unrecognized datetime: {value!r}") from exc
    return ensure_utc(parsed)
