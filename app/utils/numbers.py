"""Numeric coercion helpers shared by the report model builders.

Two explicit flavours:

    number_or_zero  — aggregation-safe, anything unparseable becomes 0
    number_or_null  — display-safe, anything unparseable becomes None so the
                      sheet can tell "no data" apart from "zero"
"""

from __future__ import annotations

import math


def _parse(value) -> int | float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        n = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        try:
            n = float(raw)
        except ValueError:
            return None
        if math.isfinite(n) and n.is_integer():
            return int(n)
    if math.isnan(n) or math.isinf(n):
        return None
    return n


def number_or_zero(value) -> int | float:
    """Return *value* as a finite number, or ``0`` when it is missing/invalid."""
    n = _parse(value)
    return 0 if n is None else n


def number_or_null(value) -> int | float | None:
    """Return *value* as a finite number, or ``None`` when it is missing/invalid."""
    return _parse(value)


def safe_div(numerator, denominator):
    """Divide, returning ``None`` when the denominator is zero or invalid."""
    d = number_or_zero(denominator)
    if d == 0:
        return None
    return number_or_zero(numerator) / d


def pct_to_display(fraction):
    """Scale a fraction to a percentage for display (0.25 → 25)."""
    n = number_or_null(fraction)
    return None if n is None else n * 100
