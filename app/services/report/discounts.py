"""
Scholarship / discount totals.

Each entry of ``inputs.discounts`` reaches a share of the tuition students,
either as an explicit ``studentCount`` or as a ``ratio`` (0..1); year 2/3
use the ``...Y2`` / ``...Y3`` fields without falling back to other years.

    percent mode   contributes ratio × value        (value is a 0..1 fraction)
    fixed mode     contributes ratio × perStudent / average tuition fee;
                   a year without its own value uses Y1 × inflation factor

The summed rate is capped at 1 and applied to gross tuition.
"""

from __future__ import annotations

import re
import unicodedata

from app.utils.numbers import number_or_zero

_YEAR_SUFFIX = {"y1": "", "y2": "Y2", "y3": "Y3"}
_TR_ASCII = str.maketrans("ıİşŞğĞüÜöÖçÇ", "iIsSgGuUoOcC")
_NON_NAME = re.compile(r"[^A-Za-z0-9 ]")


def normalize_name(value) -> str:
    """``"Kardeş İndirimi"`` → ``"KARDES INDIRIMI"``."""
    text = unicodedata.normalize("NFD", str(value or "").translate(_TR_ASCII))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return " ".join(_NON_NAME.sub(" ", text).split()).upper()


def discount_lookup(discounts) -> dict:
    """Discount entries keyed by their normalized name; later duplicates win."""
    out = {}
    for d in discounts or []:
        if isinstance(d, dict) and normalize_name(d.get("name")):
            out[normalize_name(d.get("name"))] = d
    return out


def _clamp(value, low=0, high=1):
    return max(low, min(high, value))


def _is_blank(value) -> bool:
    return value is None or value == ""


def pick_year_value(discount: dict, base_key: str, year_key: str):
    return discount.get(f"{base_key}{_YEAR_SUFFIX.get(year_key, '')}")


def discount_mode(discount) -> str:
    return "fixed" if str(discount.get("mode") or "percent") == "fixed" else "percent"


def discount_ratio(discount: dict, year_key: str, tuition_students) -> float:
    """Share of tuition students receiving *discount* in *year_key*."""
    students = number_or_zero(tuition_students)
    raw_count = pick_year_value(discount, "studentCount", year_key)
    if not _is_blank(raw_count) and students > 0:
        count = max(0, round(number_or_zero(raw_count)))
        return _clamp(count / students)
    return _clamp(number_or_zero(pick_year_value(discount, "ratio", year_key)))


def discount_student_count(discount: dict, year_key: str, tuition_students) -> int:
    raw_count = pick_year_value(discount, "studentCount", year_key)
    if not _is_blank(raw_count):
        return max(0, round(number_or_zero(raw_count)))
    return round(number_or_zero(tuition_students) * discount_ratio(discount, year_key, tuition_students))


def discount_pct(discount: dict, year_key: str) -> float:
    """Percent-mode discount fraction; fixed-mode entries report 0."""
    if discount_mode(discount) == "fixed":
        return 0
    return _clamp(number_or_zero(pick_year_value(discount, "value", year_key)))


def fixed_per_student(discount: dict, year_key: str, factor=1) -> float:
    """Per-student amount of a fixed discount.

    A year without its own value grows the Y1 value by the inflation *factor*.
    """
    raw = pick_year_value(discount, "value", year_key)
    if not _is_blank(raw):
        return max(0, number_or_zero(raw))
    return max(0, number_or_zero(discount.get("value"))) * number_or_zero(factor)


def discount_rate(discount: dict, year_key: str, tuition_students, avg_tuition_fee, factor=1) -> float:
    """Contribution of one discount to the tuition-wide discount rate."""
    ratio = discount_ratio(discount, year_key, tuition_students)
    if discount_mode(discount) == "fixed":
        per_student = fixed_per_student(discount, year_key, factor)
        fee = number_or_zero(avg_tuition_fee)
        return ratio * per_student / fee if fee > 0 else 0
    return ratio * discount_pct(discount, year_key)


def compute_discount_total_for_year(discounts, year_key, gross_tuition, tuition_students,
                                    avg_tuition_fee, factor=1):
    gross = number_or_zero(gross_tuition)
    if gross <= 0 or number_or_zero(tuition_students) <= 0:
        return 0
    rate = sum(
        discount_rate(d, year_key, tuition_students, avg_tuition_fee, factor)
        for d in discounts or [] if isinstance(d, dict)
    )
    return min(gross * _clamp(rate), gross)


def scale_discounts(discounts, scale) -> list[dict]:
    """Convert the money fields (fixed-mode values) of each discount."""
    out = []
    for d in discounts if isinstance(discounts, list) else []:
        if not isinstance(d, dict):
            continue
        d = dict(d)
        if discount_mode(d) == "fixed":
            for key in ("value", "valueY2", "valueY3"):
                if not _is_blank(d.get(key)):
                    d[key] = number_or_zero(d[key]) * scale
        out.append(d)
    return out
