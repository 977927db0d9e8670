"""
Kapasite sheet model.

Periods: current (or pre-registration) and the three planning years.
Rows, in order:

    growthDelta   students added versus the previous period
    growthRate    that delta as a % of the previous period
    kademe × N    capacity, students, utilisation % per visible band
    total         TOPLAM
"""

from __future__ import annotations

import re

from app.services.report.common import as_dict, normalize_planning_grades
from app.utils.kademe import (
    KADEME_DEFS,
    format_kademe_label,
    normalize_kademe_config,
    summarize_grades_by_kademe,
)
from app.utils.numbers import number_or_zero, safe_div
from app.utils.program_type import (
    is_kademe_key_visible,
    map_base_kademe_to_variant,
    normalize_program_type,
)

PERIOD_KEYS: tuple[str, ...] = ("cur", "y1", "y2", "y3")

_START_YEAR_RE = re.compile(r"^(\d{4})")


def parse_academic_start_year(academic_year) -> int | None:
    match = _START_YEAR_RE.match(str(academic_year or "").strip())
    return int(match.group(1)) if match else None


def get_year_label(base_year, offset: int) -> str:
    if base_year is None:
        return f"{offset + 1}. YIL"
    return f"{offset + 1}. YIL ({base_year + offset}-{base_year + offset + 1})"


def utilization_pct(students, capacity):
    return students / capacity * 100 if capacity > 0 else None


def _visible_kademeler(kademeler, program_type) -> list[dict]:
    active = [d for d in KADEME_DEFS if kademeler[d["key"]]["enabled"]]
    candidates = active or list(KADEME_DEFS)
    visible = [
        d for d in candidates
        if is_kademe_key_visible(map_base_kademe_to_variant(d["key"], program_type), program_type)
    ]
    return visible or candidates


def build_kapasite_model(scenario=None, inputs=None, program_type=None, currency_meta=None) -> dict:
    inputs = as_dict(inputs)
    cap = as_dict(inputs.get("kapasite"))
    kademeler = normalize_kademe_config(as_dict(inputs.get("temelBilgiler")).get("kademeler"))
    ptype = normalize_program_type(program_type)
    visible = _visible_kademeler(kademeler, ptype)

    planning = normalize_planning_grades(inputs.get("gradesYears") or inputs.get("grades"))
    students_by_period = {
        "cur": summarize_grades_by_kademe(inputs.get("gradesCurrent"), kademeler),
        **{y: summarize_grades_by_kademe(planning[y], kademeler) for y in ("y1", "y2", "y3")},
    }

    # kapasite.byKademe[key].caps = {cur, y1, y2, y3}; older rows hold the caps inline
    src_by_kademe = as_dict(cap.get("byKademe"))
    caps_by_kademe = {}
    for d in visible:
        row = as_dict(src_by_kademe.get(d["key"]))
        caps = row["caps"] if isinstance(row.get("caps"), dict) else row
        caps_by_kademe[d["key"]] = {p: number_or_zero(caps.get(p)) for p in PERIOD_KEYS}

    cap_totals = {p: sum(c[p] for c in caps_by_kademe.values()) for p in PERIOD_KEYS}
    student_totals = {p: number_or_zero(students_by_period[p]["total"]) for p in PERIOD_KEYS}

    delta = {
        "y1": student_totals["y1"] - student_totals["cur"],
        "y2": student_totals["y2"] - student_totals["y1"],
        "y3": student_totals["y3"] - student_totals["y2"],
    }
    prev_period = {"y1": "cur", "y2": "y1", "y3": "y2"}
    growth_rate = {}
    for y, prev in prev_period.items():
        rate = safe_div(delta[y], student_totals[prev])
        growth_rate[y] = None if rate is None else rate * 100

    base_year = parse_academic_start_year(as_dict(scenario).get("academic_year"))
    periods = {
        "cur": {"key": "cur", "label": "Mevcut veya Ön Kayıt"},
        "y1": {"key": "y1", "label": get_year_label(base_year, 0)},
        "y2": {"key": "y2", "label": get_year_label(base_year, 1)},
        "y3": {"key": "y3", "label": get_year_label(base_year, 2)},
    }

    rows = [
        {"kind": "growthDelta", "label": "Bir Önceki Yıla Göre Öğrenci Artışı", "values": delta},
        {"kind": "growthRate", "label": "1'nci Yıla Göre Öğrenci Artış Oranı", "values": growth_rate},
    ]
    for d in visible:
        key = d["key"]
        period_cells = {}
        for p in PERIOD_KEYS:
            capacity = caps_by_kademe[key][p]
            students = number_or_zero(students_by_period[p][key])
            period_cells[p] = {
                "capacity": capacity,
                "students": students,
                "utilizationPct": utilization_pct(students, capacity),
            }
        rows.append({
            "kind": "kademe",
            "key": key,
            "label": format_kademe_label(d["label"], kademeler, key),
            "periods": period_cells,
        })

    rows.append({
        "kind": "total",
        "label": "TOPLAM",
        "periods": {
            p: {
                "capacity": cap_totals[p],
                "students": student_totals[p],
                "utilizationPct": utilization_pct(student_totals[p], cap_totals[p]),
            }
            for p in PERIOD_KEYS
        },
    })

    return {
        "title": "Kapasite",
        "periods": periods,
        "rows": rows,
        "meta": {"programType": ptype, "currencyMeta": currency_meta or None},
    }
