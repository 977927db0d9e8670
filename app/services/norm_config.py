"""
Norm (N.Kadro) configuration lookup.

A norm config holds the teacher weekly hour limit and the curriculum
matrix ``{grade: {"teacher||lesson": weekly_hours}}``.  The scenario may
override the school default; rows come in two stored shapes:

    flat       {"KG": {...}, "1": {...}, ...}
    per-year   {"years": {"y1": {...}, "y2": {...}, "y3": {...}}}
               (or the y1/y2/y3 keys at the top level)

``normalize_norm_config_row`` turns either shape into the dict consumed by
``app.services.report.norm_model.build_norm_model``.
"""

from __future__ import annotations

import json
import logging

from app.utils.numbers import number_or_null

logger = logging.getLogger(__name__)

DEFAULT_NORM_MAX_HOURS = 24
NORM_YEAR_KEYS: tuple[str, ...] = ("y1", "y2", "y3")


def _positive_hours(value, fallback):
    n = number_or_null(value)
    return n if n is not None and n > 0 else fallback


def _load_curriculum(raw):
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unparseable curriculum_weekly_hours_json")
            return None
    return raw


def normalize_norm_config_row(row) -> dict:
    row = row if isinstance(row, dict) else {}
    base_hours = _positive_hours(row.get("teacher_weekly_max_hours"), DEFAULT_NORM_MAX_HOURS)
    raw = _load_curriculum(row.get("curriculum_weekly_hours_json"))

    year_source = None
    if isinstance(raw, dict):
        if isinstance(raw.get("years"), dict):
            year_source = raw["years"]
        elif any(y in raw for y in NORM_YEAR_KEYS):
            year_source = raw

    if year_source is None:
        return {
            "teacherWeeklyMaxHours": base_hours,
            "curriculumWeeklyHours": raw if isinstance(raw, dict) else {},
        }

    years = {}
    for y in NORM_YEAR_KEYS:
        src = year_source.get(y) or {}
        src = src if isinstance(src, dict) else {}
        hours = _positive_hours(src.get("teacherWeeklyMaxHours", base_hours), base_hours)
        if isinstance(src.get("curriculumWeeklyHours"), dict):
            curriculum = src["curriculumWeeklyHours"]
        else:
            curriculum = src
        years[y] = {"teacherWeeklyMaxHours": hours, "curriculumWeeklyHours": curriculum}

    return {
        "years": years,
        "teacherWeeklyMaxHours": years["y1"]["teacherWeeklyMaxHours"],
        "curriculumWeeklyHours": years["y1"]["curriculumWeeklyHours"],
    }


def get_norm_config_row_for_scenario(pool, school_id, scenario_id) -> dict | None:
    """Scenario override first, then the school default; ``None`` if neither."""
    if pool is None:
        raise ValueError("get_norm_config_row_for_scenario requires pool")
    try:
        sid, scid = int(school_id), int(scenario_id)
    except (TypeError, ValueError):
        return None

    rows = pool.query(
        "SELECT teacher_weekly_max_hours, curriculum_weekly_hours_json, updated_at "
        "FROM scenario_norm_configs WHERE scenario_id=:id",
        {"id": scid},
    )
    if rows:
        return rows[0]
    rows = pool.query(
        "SELECT teacher_weekly_max_hours, curriculum_weekly_hours_json, updated_at "
        "FROM school_norm_configs WHERE school_id=:id",
        {"id": sid},
    )
    return rows[0] if rows else None
