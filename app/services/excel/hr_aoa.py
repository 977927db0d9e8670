"""HR ( IK ) model → AOA rows (section title, table title, headers, rows)."""

from __future__ import annotations

from app.services.excel.sections import flatten_sections


def build_hr_aoa(model=None) -> list[list]:
    if not isinstance(model, dict):
        return [["HR ( IK )"], [], ["HR model empty"]]
    return flatten_sections(model)
