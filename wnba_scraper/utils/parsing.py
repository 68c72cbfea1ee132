"""
Generic, format-agnostic parsing utilities.

The lenient ``parse_float`` returns None for anything unparseable. The
``*_strict`` variants are used as pydantic validators: they map provider
"missing" markers to None but raise ValueError for values that are present
and malformed, so bad rows are reported instead of silently blanked.
"""

from __future__ import annotations

from typing import Any

# Markers the provider writes for absent values ("NA" comes from R exports)
MISSING_VALUES = frozenset({"", "-", "NA", "N/A", "NaN", "nan", "null", "None"})

_TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_VALUES = frozenset({"false", "f", "no", "n", "0"})


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and value.strip() in MISSING_VALUES


def clean_str(value: Any) -> str | None:
    """Strip whitespace and map missing markers to None."""
    if is_missing(value):
        return None
    return str(value).strip()


def parse_float(value: str | float | None) -> float | None:
    """Parse a string value to a float, handling common edge cases."""
    if is_missing(value):
        return None
    try:
        # Handle time format like "32:45" (minutes:seconds)
        if ":" in str(value):
            parts = str(value).split(":")
            if len(parts) == 2:
                return float(parts[0]) + float(parts[1]) / 60
        return float(value)
    except (ValueError, TypeError):
        return None


def parse_int_strict(value: Any) -> int | None:
    if is_missing(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"expected an integer, got {value!r}") from exc
    if not number.is_integer():
        raise ValueError(f"expected an integer, got {value!r}")
    return int(number)


def parse_float_strict(value: Any) -> float | None:
    if is_missing(value):
        return None
    parsed = parse_float(value)
    if parsed is None:
        raise ValueError(f"expected a number, got {value!r}")
    return parsed


def parse_bool_strict(value: Any) -> bool | None:
    if is_missing(value):
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got {value!r}")
