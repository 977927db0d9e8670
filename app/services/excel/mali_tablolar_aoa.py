"""Mali Tablolar model → AOA: title, header, one row per KPI, currency note."""

from __future__ import annotations

from app.services.report.common import as_list

DEFAULT_HEADERS = ["Kalem", "Y1", "Y2", "Y3"]


def build_mali_tablolar_aoa(model=None) -> list[list]:
    if not isinstance(model, dict):
        return [["Mali Tablolar"], list(DEFAULT_HEADERS), ["Model empty", None, None, None]]

    aoa: list[list] = [
        [str(model.get("title") or "Mali Tablolar")],
        list(as_list(model.get("headers"))) or list(DEFAULT_HEADERS),
    ]
    for row in as_list(model.get("rows")):
        if not isinstance(row, dict):
            continue
        values = row.get("values")
        if not isinstance(values, list):
            values = [row.get("value")]
        padded = (list(values) + [None, None, None])[:3]
        aoa.append([str(row.get("label") or "")] + padded)

    if model.get("currencyLabel"):
        aoa.append(["Para Birimi", str(model["currencyLabel"]), None, None])
    return aoa
