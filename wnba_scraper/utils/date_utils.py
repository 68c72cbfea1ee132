"""
Domain-level date and season calculation utilities.

Handles WNBA calendar logic. Operates on 'date' objects and should NOT
contain time-of-day or timezone-specific logic (which belongs in
datetime_utils.py).
"""

from __future__ import annotations

from datetime import date

# Provider codes for season types (ESPN numbering)
SEASON_TYPE_CODES = {
    "1": "preseason",
    "2": "regular",
    "3": "postseason",
    "4": "offseason",
}


def season_from_date(day: date) -> int:
    """Calculate season year from a game date.

    The WNBA season runs May through October inside one calendar year, so
    the season is the calendar year of the game.
    """
    return day.year


def normalize_season_type(value: str | None) -> str:
    """Map provider season type codes or labels to canonical names."""
    if not value:
        return "regular"
    normalized = value.strip().lower()
    if normalized in SEASON_TYPE_CODES:
        return SEASON_TYPE_CODES[normalized]
    if normalized in {"regular season", "regular-season"}:
        return "regular"
    if normalized in {"playoffs", "post", "post-season", "postseason"}:
        return "postseason"
    if normalized in {"pre", "pre-season", "preseason"}:
        return "preseason"
    return normalized
