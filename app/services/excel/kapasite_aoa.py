"""
Kapasite model → AOA.

13 columns: label, then (capacity, students, utilisation %) for each of
cur / y1 / y2 / y3.  Growth rows only carry the students cell of each
planning year (columns 5, 8, 11).  The TOPLAM row's capacity and
utilisation are recomputed from the kademe rows above it.
"""

from __future__ import annotations

from app.services.report.common import as_dict, as_list
from app.utils.numbers import number_or_null, number_or_zero

PERIOD_KEYS = ("cur", "y1", "y2", "y3")
WIDTH = 13
GROWTH_COLUMNS = {"y1": 5, "y2": 8, "y3": 11}


def build_headers(periods) -> list[str]:
    periods = as_dict(periods)
    defaults = {"cur": "Mevcut", "y1": "1. YIL", "y2": "2. YIL", "y3": "3. YIL"}
    headers = ["Kademe"]
    for p in PERIOD_KEYS:
        label = as_dict(periods.get(p)).get("label") or defaults[p]
        headers += [
            f"{label} Kapasite",
            f"{label} Öğrenci Sayısı",
            f"{label} Kapasite Kullanım Oranı (%)",
        ]
    return headers


def _period_cells(period) -> list:
    period = period if isinstance(period, dict) else {}
    return [
        number_or_null(period.get("capacity")),
        number_or_null(period.get("students")),
        number_or_null(period.get("utilizationPct")),
    ]


def _recomputed_total(row, kademe_rows) -> list:
    cells = [str(row.get("label") or "TOPLAM")]
    periods = as_dict(row.get("periods"))
    for p in PERIOD_KEYS:
        capacity = sum(
            number_or_zero(as_dict(as_dict(r.get("periods")).get(p)).get("capacity"))
            for r in kademe_rows
        )
        students = number_or_null(as_dict(periods.get(p)).get("students"))
        util = (students / capacity * 100) if students is not None and capacity > 0 else None
        cells += [capacity, students, util]
    return cells


def build_kapasite_aoa(model=None) -> list[list]:
    if not isinstance(model, dict):
        return [["Kapasite"], build_headers(None), ["Kapasite model empty"]]

    rows = [r for r in as_list(model.get("rows")) if isinstance(r, dict)]
    kademe_rows = [r for r in rows if r.get("kind") == "kademe"]

    aoa: list[list] = [["Kapasite"], build_headers(model.get("periods"))]
    for r in rows:
        kind = str(r.get("kind") or "")
        label = str(r.get("label") or "")

        if kind in ("growthDelta", "growthRate"):
            values = as_dict(r.get("values"))
            out = [label] + [None] * (WIDTH - 1)
            for y, col in GROWTH_COLUMNS.items():
                out[col] = number_or_null(values.get(y))
            aoa.append(out)
            continue

        if kind == "total":
            aoa.append(_recomputed_total(r, kademe_rows))
            continue

        out = [label]
        for p in PERIOD_KEYS:
            out += _period_cells(as_dict(r.get("periods")).get(p))
        aoa.append(out)

    return aoa
