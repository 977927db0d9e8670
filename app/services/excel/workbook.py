"""Write ordered ``(sheet name, aoa)`` pairs into an xlsx workbook."""

import io
import logging
import math

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

MAX_SHEET_NAME = 31
_INVALID_SHEET_CHARS = str.maketrans({c: " " for c in "[]:*?/\\"})


def sheet_title(name: str, used: set[str]) -> str:
    """Excel-safe, unique sheet title (31 chars, no ``[]:*?/\\``)."""
    base = (str(name or "Sheet").translate(_INVALID_SHEET_CHARS).strip() or "Sheet")[:MAX_SHEET_NAME]
    title, n = base, 2
    while title.lower() in used:
        suffix = f" ({n})"
        title = base[: MAX_SHEET_NAME - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


def _cell_value(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if value is None or isinstance(value, (str, int, float)):
        return value
    return str(value)


def _auto_width(ws) -> None:
    """Column widths from content, capped at 60 chars."""
    for col in ws.columns:
        max_len = 0
        for cell in col:
            if cell.value is not None:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        if max_len:
            ws.column_dimensions[get_column_letter(col[0].column)].width = max(max_len + 2, 10)


def build_workbook(sheets) -> bytes:
    """
    Build an xlsx workbook from ``[(sheet name, aoa), ...]``.

    AOA row N lands on sheet row N + 1; empty rows stay empty.

    Returns:
        bytes: Raw .xlsx file content.
    """
    wb = Workbook()
    wb.remove(wb.active)
    used: set[str] = set()

    for name, aoa in sheets:
        ws = wb.create_sheet(sheet_title(name, used))
        for r_idx, row in enumerate(aoa or [], 1):
            for c_idx, value in enumerate(row or [], 1):
                value = _cell_value(value)
                if value is not None and value != "":
                    ws.cell(row=r_idx, column=c_idx, value=value)
        _auto_width(ws)

    if not wb.worksheets:
        wb.create_sheet("Sheet")

    buf = io.BytesIO()
    wb.save(buf)
    logger.debug("Workbook built with %d sheets", len(wb.worksheets))
    return buf.getvalue()
