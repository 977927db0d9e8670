"""Flatten a ``{title, sections: [{title, tables: [...]}]}`` model into rows."""

from __future__ import annotations

from app.services.report.common import as_list


def as_row(value) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def flatten_sections(model) -> list[list]:
    """Title, then per section: section title, table title, headers, rows.

    An empty row follows every table and every section.
    """
    aoa: list[list] = []
    if model.get("title"):
        aoa.append([str(model["title"])])
        aoa.append([])

    for section in as_list(model.get("sections")):
        if not isinstance(section, dict):
            continue
        section_title = str(section.get("title") or "").strip()
        if section_title:
            aoa.append([section_title])

        for table in as_list(section.get("tables")):
            if not isinstance(table, dict):
                continue
            table_title = str(table.get("title") or "").strip()
            if table_title:
                aoa.append([table_title])
            if table.get("headers"):
                aoa.append(as_row(table["headers"]))
            for r in as_list(table.get("rows")):
                aoa.append(as_row(r))
            aoa.append([])

        aoa.append([])

    return aoa
