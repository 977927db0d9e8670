"""
Previous academic year scenario loader.

Year-over-year sections of the export (capacity "current" column, prior
period performance, RAPOR comparisons) read the same school's scenario for
the preceding academic year:

    prev = get_prev_scenario(pool, school_id=3, academic_year="2025-2026")
    prev["scenario_row"], prev["inputs_json"], prev["results_json"]

When no scenario exists for the exact predecessor year, the latest scenario
whose start year is earlier than the current one is used instead.
"""

from __future__ import annotations

import logging
import math
import re

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^(\d{4})\s*([-/])\s*(\d{2,4})$")
_SINGLE_RE = re.compile(r"^(\d{4})$")
_START_YEAR_RE = re.compile(r"(\d{4})")


def compute_prev_academic_year(academic_year) -> str | None:
    """Predecessor of an academic year string, keeping its format.

    ``"2025-2026"`` → ``"2024-2025"``, ``"2025/26"`` → ``"2024/25"``,
    ``"2025"`` → ``"2024-2025"``.  Anything else gives ``None``.
    """
    raw = str(academic_year if academic_year is not None else "").strip()

    match = _RANGE_RE.match(raw)
    if match:
        prev_start = int(match.group(1)) - 1
        sep = match.group(2)
        end_raw = match.group(3)
        if prev_start <= 0:
            return None
        if len(end_raw) == 2:
            return f"{prev_start}{sep}{(prev_start + 1) % 100:02d}"
        prev_end = int(end_raw) - 1
        if prev_end <= 0:
            return None
        return f"{prev_start}{sep}{prev_end}"

    match = _SINGLE_RE.match(raw)
    if match:
        start = int(match.group(1))
        if start - 1 > 0:
            return f"{start - 1}-{start}"
        return None

    return None


def extract_academic_start_year(value) -> int | None:
    match = _START_YEAR_RE.search(str(value if value is not None else ""))
    return int(match.group(1)) if match else None


def _validate_school_id(school_id) -> int:
    try:
        sid = float(school_id)
    except (TypeError, ValueError):
        raise ValueError("get_prev_scenario invalid school_id") from None
    if isinstance(school_id, bool) or not math.isfinite(sid) or sid <= 0:
        raise ValueError("get_prev_scenario invalid school_id")
    return int(sid)


def _first(rows):
    return rows[0] if rows else None


def _find_latest_earlier(pool, school_id: int, academic_year):
    current_start = extract_academic_start_year(academic_year)
    if not current_start:
        return None
    rows = pool.query(
        "SELECT id, school_id, academic_year, input_currency, local_currency_code, "
        "fx_usd_to_local, program_type FROM school_scenarios WHERE school_id=:sid",
        {"sid": school_id},
    )
    candidates = []
    for row in rows:
        start = extract_academic_start_year(row.get("academic_year"))
        if start is not None and start < current_start:
            candidates.append((start, row))
    if not candidates:
        return None
    candidates.sort(key=lambda item: item[0], reverse=True)
    return candidates[0][1]


def get_prev_scenario(pool, school_id, academic_year) -> dict | None:
    """Load the prior year's scenario row with its inputs and results JSON.

    Args:
        pool: Query executor exposing ``query(sql, params) -> list[dict]``.
        school_id: Owning school; must be a positive number.
        academic_year: Academic year of the *current* scenario.

    Returns:
        ``{"scenario_row", "inputs_json", "results_json"}`` or ``None`` when
        no predecessor can be derived or found.

    Raises:
        ValueError: *pool* missing or *school_id* invalid.  Database errors
            propagate unchanged.
    """
    if pool is None:
        raise ValueError("get_prev_scenario requires pool")
    sid = _validate_school_id(school_id)

    prev_year = compute_prev_academic_year(academic_year)
    if not prev_year:
        return None

    scenario_row = _first(pool.query(
        "SELECT * FROM school_scenarios WHERE school_id=:sid AND academic_year=:ay LIMIT 1",
        {"sid": sid, "ay": prev_year},
    ))
    if scenario_row is None:
        scenario_row = _find_latest_earlier(pool, sid, academic_year)
        if scenario_row is None:
            return None
        logger.info(
            "No %s scenario for school %s; using %s (id=%s) as previous year",
            prev_year, sid, scenario_row.get("academic_year"), scenario_row.get("id"),
        )

    inputs_row = _first(pool.query(
        "SELECT inputs_json FROM scenario_inputs WHERE scenario_id=:id LIMIT 1",
        {"id": scenario_row["id"]},
    ))
    results_row = _first(pool.query(
        "SELECT results_json FROM scenario_results WHERE scenario_id=:id LIMIT 1",
        {"id": scenario_row["id"]},
    ))

    return {
        "scenario_row": scenario_row,
        "inputs_json": inputs_row.get("inputs_json") if inputs_row else None,
        "results_json": results_row.get("results_json") if results_row else None,
    }
