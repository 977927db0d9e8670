"""
Kademe (grade band) configuration helpers.

A scenario groups the grade sequence ``KG, 1 .. 12`` into four bands:

    okulOncesi  Okul Öncesi   KG - KG
    ilkokul     İlkokul       1  - 5
    ortaokul    Ortaokul      6  - 9
    lise        Lise          10 - 12

Stored configs are user-edited and frequently partial, so every public
function normalizes its input first.  After normalization each band has
``{"enabled": bool, "from": grade, "to": grade}`` with ``from`` never after
``to`` in the canonical grade order.
"""

from __future__ import annotations

import re

from app.utils.numbers import number_or_zero

GRADES: tuple[str, ...] = ("KG", "1", "2", "3", "4", "5", "6", "7", "8", "9", "10", "11", "12")
GRADE_INDEX = {g: i for i, g in enumerate(GRADES)}

KADEME_DEFS: tuple[dict, ...] = (
    {"key": "okulOncesi", "label": "Okul Öncesi", "default_from": "KG", "default_to": "KG"},
    {"key": "ilkokul", "label": "İlkokul", "default_from": "1", "default_to": "5"},
    {"key": "ortaokul", "label": "Ortaokul", "default_from": "6", "default_to": "9"},
    {"key": "lise", "label": "Lise", "default_from": "10", "default_to": "12"},
)
KADEME_KEYS: tuple[str, ...] = tuple(d["key"] for d in KADEME_DEFS)
_DEFS_BY_KEY = {d["key"]: d for d in KADEME_DEFS}

_GRADE_DIGITS = re.compile(r"^\d{1,2}$")


# ── Grades ───────────────────────────────────────────────────────────────────


def normalize_grade(value) -> str | None:
    """Return the canonical grade token for *value*, or None if it is not one."""
    v = str(value if value is not None else "").strip().upper()
    if v == "KG":
        return "KG"
    if not _GRADE_DIGITS.match(v):
        return None
    n = int(v)
    if n < 1 or n > 12:
        return None
    return str(n)


def grade_index(value) -> int:
    """Position of *value* in :data:`GRADES`, ``-1`` when invalid."""
    g = normalize_grade(value)
    if g is None:
        return -1
    return GRADE_INDEX[g]


def get_grade_options() -> list[str]:
    return list(GRADES)


# ── Config normalization ────────────────────────────────────────────────────


def _normalize_range(from_value, to_value, definition) -> tuple[str, str]:
    start = normalize_grade(from_value) or definition["default_from"]
    end = normalize_grade(to_value) or definition["default_to"]
    if GRADE_INDEX[start] <= GRADE_INDEX[end]:
        return start, end
    return end, start


def get_kademe_definitions() -> list[dict]:
    """Copies of the band definitions (key, label, default range)."""
    return [dict(d) for d in KADEME_DEFS]


def get_default_kademe_config() -> dict:
    return {
        d["key"]: {"enabled": True, "from": d["default_from"], "to": d["default_to"]}
        for d in KADEME_DEFS
    }


def normalize_kademe_config(config) -> dict:
    """Return a full four-band config from a possibly partial/malformed one."""
    cfg = config if isinstance(config, dict) else {}
    out = {}
    for d in KADEME_DEFS:
        row = cfg.get(d["key"])
        row = row if isinstance(row, dict) else {}
        start, end = _normalize_range(row.get("from"), row.get("to"), d)
        out[d["key"]] = {"enabled": row.get("enabled") is not False, "from": start, "to": end}
    return out


# ── Labels ───────────────────────────────────────────────────────────────────


def get_kademe_range_label(config, key: str) -> str:
    """``"1-5"`` style range for an enabled band; ``""`` otherwise."""
    if key not in _DEFS_BY_KEY:
        return ""
    row = normalize_kademe_config(config)[key]
    if not row["enabled"]:
        return ""
    if row["from"] == row["to"]:
        return row["from"]
    return f"{row['from']}-{row['to']}"


def format_kademe_label(label: str, config, key: str) -> str:
    rng = get_kademe_range_label(config, key)
    if not rng:
        return label
    return f"{label} ({rng})"


# ── Grade ↔ band lookups ─────────────────────────────────────────────────────


def get_kademe_for_grade(grade, config) -> str | None:
    """Key of the first enabled band containing *grade*."""
    idx = grade_index(grade)
    if idx < 0:
        return None
    cfg = normalize_kademe_config(config)
    for d in KADEME_DEFS:
        row = cfg[d["key"]]
        if not row["enabled"]:
            continue
        if GRADE_INDEX[row["from"]] <= idx <= GRADE_INDEX[row["to"]]:
            return d["key"]
    return None


def summarize_grades_by_kademe(grades, config) -> dict:
    """Sum students per band.

    ``studentsPerBranch`` holds the TOTAL students of a grade (the field name
    is historical).  Grades outside any enabled band still count toward
    ``total``.
    """
    out = {"okulOncesi": 0, "ilkokul": 0, "ortaokul": 0, "lise": 0, "total": 0}
    for row in grades if isinstance(grades, list) else []:
        if not isinstance(row, dict):
            continue
        students = number_or_zero(row.get("studentsPerBranch"))
        out["total"] += students
        key = get_kademe_for_grade(row.get("grade"), config)
        if key in out:
            out[key] += students
    return out


def resolve_visible_grades(config) -> list[str]:
    """Union of enabled band ranges in canonical order (all grades if none)."""
    cfg = normalize_kademe_config(config)
    included = set()
    for row in cfg.values():
        if not row["enabled"]:
            continue
        start, end = GRADE_INDEX[row["from"]], GRADE_INDEX[row["to"]]
        for i in range(min(start, end), max(start, end) + 1):
            included.add(GRADES[i])
    visible = [g for g in GRADES if g in included]
    return visible or list(GRADES)


def build_kademe_segments(grade_order, config) -> list[dict]:
    """Split *grade_order* into contiguous runs owned by the same band.

    Runs with no owning (enabled) band keep ``key=None`` and an empty label.
    """
    order = list(grade_order) if grade_order else list(GRADES)
    segments: list[dict] = []
    cur_key = None
    cur_grades: list[str] = []

    def _flush():
        if not cur_grades:
            return
        if cur_key:
            label = format_kademe_label(_DEFS_BY_KEY[cur_key]["label"], config, cur_key)
        else:
            label = ""
        segments.append({"key": cur_key, "label": label, "grades": list(cur_grades)})

    for g in order:
        k = get_kademe_for_grade(g, config)
        if k != cur_key and cur_grades:
            _flush()
            cur_grades = []
        cur_key = k
        cur_grades.append(g)
    _flush()
    return segments
