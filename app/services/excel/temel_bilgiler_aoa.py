"""TEMEL BİLGİLER model → AOA.  Pure data rows, no template layout."""

from __future__ import annotations

from app.services.excel.sections import flatten_sections


def build_temel_bilgiler_aoa(model=None) -> list[list]:
    if not isinstance(model, dict):
        return [["TEMEL BİLGİLER"], [], ["Temel Bilgiler model empty"]]
    return flatten_sections(model)
