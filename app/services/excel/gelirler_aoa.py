"""Gelirler ( Incomes ) model → AOA: title, currency line, then each table."""

from __future__ import annotations

from app.services.excel.sections import as_row
from app.services.report.common import as_list

EMPTY = [["Gelirler model empty"]]


def build_gelirler_aoa(model=None) -> list[list]:
    if not isinstance(model, dict):
        return [list(r) for r in EMPTY]

    aoa: list[list] = [
        [str(model.get("sheetTitle") or "Gelirler ( Incomes )")],
        [f"Para Birimi: {model.get('currencyCode') or 'USD'}"],
        [],
    ]
    for table in as_list(model.get("tables")):
        if not isinstance(table, dict):
            continue
        aoa.append([str(table.get("title") or "")])
        for header in as_list(table.get("headerRows")):
            aoa.append(as_row(header))
        for r in as_list(table.get("rows")):
            aoa.append(as_row(r))
        aoa.append([])

    if len(aoa) <= 3:
        return [list(r) for r in EMPTY]
    return aoa
