"""
N.Kadro (norm staffing) sheet model for one planning year.

The curriculum matrix stores weekly lesson hours per grade under a
``"teacher||lesson"`` string.  Internally every row is identified by a
:class:`CurriculumKey` decoded from that string at the FIRST separator.
A teacher name that itself contains ``||`` therefore decodes with the
remainder folded into the lesson; stored keys are not validated for it.

Staffing figures:

    row total hours         Σ weekly hours × planned branches (visible grades)
    required teachers       ceil(total hours / teacher weekly limit)
    per-teacher FTE         hours / limit, ``needed`` = ceil(hours / limit)
    preschool staff         ceil(KG students / 50)
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple

from app.services.report.common import YEAR_KEYS, as_dict, normalize_planning_grades
from app.utils.kademe import GRADES, build_kademe_segments, resolve_visible_grades
from app.utils.numbers import number_or_null, number_or_zero

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOURS = 24
KEY_SEP = "||"
OKUL_ONCESI_STUDENTS_PER_STAFF = 50
NO_TEACHER = "(No Teacher)"


class CurriculumKey(NamedTuple):
    teacher: str
    lesson: str

    @classmethod
    def decode(cls, raw) -> "CurriculumKey":
        text = str(raw or "")
        if KEY_SEP in text:
            teacher, lesson = text.split(KEY_SEP, 1)
            return cls(teacher, lesson)
        return cls(text, text)

    def encode(self) -> str:
        return f"{self.teacher}{KEY_SEP}{self.lesson}"


# ── Input normalization ─────────────────────────────────────────────────────


def normalize_grades(grades, grade_order=None) -> list[dict]:
    """One ``{grade, branchCount, studentsPerBranch}`` per grade in *grade_order*.

    ``studentsPerBranch`` is the TOTAL number of students of the grade.
    """
    data = [g for g in grades if isinstance(g, dict)] if isinstance(grades, list) else []
    order = list(grade_order) if grade_order else list(GRADES)
    out = []
    for g in order:
        row = next((x for x in data if str(x.get("grade")) == g), {})
        out.append({
            "grade": g,
            "branchCount": number_or_zero(row.get("branchCount")),
            "studentsPerBranch": number_or_zero(row.get("studentsPerBranch")),
        })
    return out


def _positive_hours(value, fallback):
    n = number_or_null(value)
    return n if n is not None and n > 0 else fallback


def _first_dict(*candidates):
    for c in candidates:
        if isinstance(c, dict):
            return c
    return None


def normalize_norm_years(norm_config) -> dict:
    """``{y1|y2|y3: {teacherWeeklyMaxHours, curriculumWeeklyHours}}``.

    A year without its own block inherits the base hours and curriculum.
    """
    base = as_dict(norm_config)
    years_src = as_dict(base.get("years"))
    base_hours = _positive_hours(
        base.get("teacherWeeklyMaxHours", base.get("teacher_weekly_max_hours")), DEFAULT_MAX_HOURS,
    )
    base_curriculum = _first_dict(
        base.get("curriculumWeeklyHours"), base.get("curriculum_weekly_hours_json"),
    ) or {}

    years = {}
    for y in YEAR_KEYS:
        src = years_src.get(y)
        if not isinstance(src, dict) or not src:
            years[y] = {"teacherWeeklyMaxHours": base_hours, "curriculumWeeklyHours": base_curriculum}
            continue
        hours = _positive_hours(
            src.get("teacherWeeklyMaxHours", src.get("teacher_weekly_max_hours", base_hours)), base_hours,
        )
        curriculum = _first_dict(
            src.get("curriculumWeeklyHours"), src.get("curriculum_weekly_hours_json"),
        )
        years[y] = {
            "teacherWeeklyMaxHours": hours,
            "curriculumWeeklyHours": curriculum if curriculum is not None else src,
        }
    return years


# ── Computation ─────────────────────────────────────────────────────────────


def collect_curriculum_rows(curriculum_weekly_hours) -> list[dict]:
    """Distinct curriculum rows across ALL grades, sorted by teacher then lesson.

    Stored keys that decode to the same :class:`CurriculumKey` share one
    row; their hours are summed per grade.
    """
    by_key: dict[CurriculumKey, list[str]] = {}
    for g in GRADES:
        for stored in as_dict(curriculum_weekly_hours.get(g)):
            if not str(stored).strip():
                continue
            key = CurriculumKey.decode(stored)
            stored_keys = by_key.setdefault(key, [])
            if stored not in stored_keys:
                stored_keys.append(stored)

    rows = [
        {"key": key, "teacher": key.teacher, "lesson": key.lesson, "storedKeys": stored}
        for key, stored in by_key.items()
    ]
    rows.sort(key=lambda r: (r["teacher"].casefold(), r["lesson"].casefold()))
    return rows


def row_hours_for_grade(curriculum_weekly_hours, row, grade):
    grade_hours = as_dict(curriculum_weekly_hours.get(grade))
    return sum(number_or_zero(grade_hours.get(k)) for k in row["storedKeys"])


def build_norm_model(year_index=0, scenario=None, inputs=None, report=None, norm_config=None) -> dict:
    try:
        idx = int(year_index or 0)
    except (TypeError, ValueError):
        idx = 0
    year_key = YEAR_KEYS[idx] if 0 <= idx < len(YEAR_KEYS) else "y1"

    inputs = as_dict(inputs)
    kademe_config = as_dict(inputs.get("temelBilgiler")).get("kademeler")
    visible_grades = resolve_visible_grades(kademe_config)
    segments = build_kademe_segments(visible_grades, kademe_config)

    year_norm = normalize_norm_years(norm_config)[year_key]
    max_hours = number_or_zero(year_norm["teacherWeeklyMaxHours"]) or DEFAULT_MAX_HOURS
    curriculum = as_dict(year_norm["curriculumWeeklyHours"])

    planning_by_year = normalize_planning_grades(inputs.get("gradesYears") or inputs.get("grades"))
    active_planning = planning_by_year[year_key]
    current_grades = inputs.get("gradesCurrent") or []

    planning_rows = normalize_grades(active_planning, visible_grades)
    current_rows = normalize_grades(current_grades, visible_grades)

    def totals_of(rows):
        return {
            "totalBranches": sum(r["branchCount"] for r in rows),
            "totalStudents": sum(r["studentsPerBranch"] for r in rows),
        }

    def segment_totals(rows):
        students = {r["grade"]: r["studentsPerBranch"] for r in rows}
        return [sum(students.get(g, 0) for g in seg["grades"]) for seg in segments]

    branch_by_grade, students_by_grade = {}, {}
    for r in normalize_grades(active_planning, GRADES):
        branch_by_grade[r["grade"]] = r["branchCount"]
        students_by_grade[r["grade"]] = r["studentsPerBranch"]

    curriculum_rows = collect_curriculum_rows(curriculum)
    row_totals: dict[CurriculumKey, float] = {}
    for row in curriculum_rows:
        row["hours"] = {g: row_hours_for_grade(curriculum, row, g) for g in visible_grades}
        row_totals[row["key"]] = sum(row["hours"][g] * branch_by_grade[g] for g in visible_grades)
    grade_class_hour_totals = {
        g: sum(row["hours"][g] for row in curriculum_rows) for g in visible_grades
    }

    total_teaching_hours = sum(row_totals.values())
    required_overall = math.ceil(total_teaching_hours / max_hours) if max_hours > 0 else 0

    hours_by_teacher: dict[str, float] = {}
    for row in curriculum_rows:
        teacher = row["teacher"].strip() or NO_TEACHER
        hours_by_teacher[teacher] = hours_by_teacher.get(teacher, 0) + row_totals[row["key"]]
    teacher_rows = sorted(
        (
            {
                "teacher": teacher,
                "hours": hours,
                "fte": hours / max_hours if max_hours > 0 else 0,
                "needed": math.ceil(hours / max_hours) if max_hours > 0 else 0,
            }
            for teacher, hours in hours_by_teacher.items()
        ),
        key=lambda r: r["hours"],
        reverse=True,
    )
    required_by_branch = sum(r["needed"] for r in teacher_rows)

    total_branches = sum(branch_by_grade[g] for g in visible_grades)
    total_students = sum(students_by_grade[g] for g in visible_grades)
    kg_visible = "KG" in visible_grades
    kg_branches = branch_by_grade["KG"] if kg_visible else 0
    kg_students = students_by_grade["KG"] if kg_visible else 0
    okul_oncesi_staff = (
        math.ceil(kg_students / OKUL_ONCESI_STUDENTS_PER_STAFF) if kg_students > 0 else 0
    )
    educators = required_overall + okul_oncesi_staff

    logger.debug(
        "Norm %s: %s teaching hours, %s teachers (+%s preschool)",
        year_key, total_teaching_hours, required_overall, okul_oncesi_staff,
    )
    return {
        "yearIndex": idx if 0 <= idx < len(YEAR_KEYS) else 0,
        "yearKey": year_key,
        "meta": {"teacherWeeklyMaxHours": max_hours},
        "visibleGrades": visible_grades,
        "segments": segments,
        "planning": {
            "rows": planning_rows,
            "totals": totals_of(planning_rows),
            "segmentTotals": segment_totals(planning_rows),
            "branchByGrade": branch_by_grade,
            "studentsByGrade": students_by_grade,
        },
        "current": {
            "rows": current_rows,
            "totals": totals_of(current_rows),
            "segmentTotals": segment_totals(current_rows),
        },
        "curriculum": {
            "rows": curriculum_rows,
            "curriculumWeeklyHours": curriculum,
            "rowTotals": row_totals,
            "gradeClassHourTotals": grade_class_hour_totals,
        },
        "summary": {
            "totalTeachingHours": total_teaching_hours,
            "requiredTeachersOverall": required_overall,
            "requiredTeachersByBranch": required_by_branch,
            "totalBranches": total_branches,
            "totalStudents": total_students,
            "kgBranches": kg_branches,
            "kgStudents": kg_students,
            "okulOncesiPersonel50": okul_oncesi_staff,
            "totalEducatorsWithOkulOncesi": educators,
            "studentTeacherRatio": total_students / educators if educators > 0 else None,
            "teacherClassRatio": educators / total_branches if total_branches > 0 else None,
            "studentClassRatio": total_students / total_branches if total_branches > 0 else None,
            "teacherRows": teacher_rows,
        },
        "debug": {
            "scenarioAcademicYear": as_dict(scenario).get("academic_year"),
            "hasReport": bool(report),
        },
    }
