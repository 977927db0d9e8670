"""
N.Kadro model → AOA.

Blocks, separated by an empty row: Özet KPIs, per-teacher hours, planned
and current grade tables, and the weekly curriculum matrix.  The matrix
TOPLAM row is summed from the matrix rows themselves.
"""

from __future__ import annotations

from app.services.report.common import as_dict, as_list
from app.utils.numbers import number_or_zero

OKUL_ONCESI_NOTE = (
    "Okul öncesi personeli hesaplaması: KG öğrenci sayısına göre 50 öğrenciye 1 personel."
)


def _round(value, decimals=2):
    if value is None:
        return ""
    return round(number_or_zero(value), decimals)


def spread_segment_totals(visible_grades, segments, segment_totals) -> list:
    """Place each segment total under the first grade of that segment."""
    out = ["" for _ in visible_grades]
    col_of = {g: i for i, g in enumerate(visible_grades)}
    totals = as_list(segment_totals)
    for i, seg in enumerate(as_list(segments)):
        grades = as_list(as_dict(seg).get("grades"))
        if not grades or not isinstance(grades[0], str) or grades[0] not in col_of:
            continue
        out[col_of[grades[0]]] = number_or_zero(totals[i] if i < len(totals) else 0)
    return out


def _grade_table(title, grades, segments, branch_by_grade, students_by_grade, block) -> list[list]:
    totals = as_dict(block.get("totals"))
    return [
        [title],
        [""] + list(grades) + ["TOPLAM"],
        ["Şube Sayısı"]
        + [number_or_zero(branch_by_grade.get(g)) for g in grades]
        + [number_or_zero(totals.get("totalBranches"))],
        ["Öğrenci"]
        + [number_or_zero(students_by_grade.get(g)) for g in grades]
        + [number_or_zero(totals.get("totalStudents"))],
        ["Kademe Toplamı"]
        + spread_segment_totals(grades, segments, block.get("segmentTotals"))
        + [number_or_zero(totals.get("totalStudents"))],
    ]


def build_norm_aoa(model=None, sheet_title=None) -> list[list]:
    title = str(sheet_title or "N.Kadro").strip() or "N.Kadro"
    if not isinstance(model, dict):
        return [[title], [], ["Norm model empty"]]

    grades = [g for g in as_list(model.get("visibleGrades")) if isinstance(g, str)]
    segments = as_list(model.get("segments"))
    s = as_dict(model.get("summary"))

    aoa: list[list] = [[title], []]

    aoa += [
        ["Özet"],
        ["Kalem", "Değer"],
        ["Toplam Ders Saati (Haftalık)", number_or_zero(s.get("totalTeachingHours"))],
        ["Toplam Eğitimci (Genel)", number_or_zero(s.get("requiredTeachersOverall"))],
        ["Okul Öncesi (KG) Yardımcı Sınıf Öğrt. (Sınıf Sayısı)", number_or_zero(s.get("kgBranches"))],
        ["Okul Öncesi Personeli (50 öğrenci / 1)", number_or_zero(s.get("okulOncesiPersonel50"))],
        ["Toplam Eğitimci (Genel + Okul Öncesi)", number_or_zero(s.get("totalEducatorsWithOkulOncesi"))],
        ["Öğrenci / Öğretmen", _round(s.get("studentTeacherRatio"))],
        ["Öğretmen / Sınıf", _round(s.get("teacherClassRatio"))],
        ["Öğrenci / Sınıf", _round(s.get("studentClassRatio"))],
        ["Eğitimci (Branşa Göre Toplam)", number_or_zero(s.get("requiredTeachersByBranch"))],
        ["Not", OKUL_ONCESI_NOTE],
        [],
    ]

    limit = number_or_zero(as_dict(model.get("meta")).get("teacherWeeklyMaxHours"))
    aoa.append(["Branş Bazlı (Toplam Ders Saati)"])
    aoa.append(["Branş Öğretmeni", "Toplam Ders Saati", "Limit", "FTE", "Eğitimci"])
    for r in as_list(s.get("teacherRows")):
        if not isinstance(r, dict):
            continue
        aoa.append([
            str(r.get("teacher") or ""),
            number_or_zero(r.get("hours")),
            limit,
            _round(r.get("fte")),
            number_or_zero(r.get("needed")),
        ])
    aoa.append([])

    plan = as_dict(model.get("planning"))
    aoa += _grade_table(
        "PLANLANAN DÖNEM BİLGİLERİ", grades, segments,
        as_dict(plan.get("branchByGrade")), as_dict(plan.get("studentsByGrade")), plan,
    )
    aoa.append([])

    cur = as_dict(model.get("current"))
    cur_branches, cur_students = {}, {}
    for r in as_list(cur.get("rows")):
        if not isinstance(r, dict):
            continue
        cur_branches[str(r.get("grade"))] = number_or_zero(r.get("branchCount"))
        cur_students[str(r.get("grade"))] = number_or_zero(r.get("studentsPerBranch"))
    aoa += _grade_table("MEVCUT DÖNEM BİLGİLERİ", grades, segments, cur_branches, cur_students, cur)
    aoa.append([])

    curr = as_dict(model.get("curriculum"))
    row_totals = as_dict(curr.get("rowTotals"))
    branch_by_grade = as_dict(plan.get("branchByGrade"))
    aoa.append(["Ders Dağılımı (Haftalık)"])
    aoa.append(["Branş Öğretmeni", "Ders Adı"] + grades + ["Toplam Ders Saati"])
    aoa.append(["", "Planlanan Şube"] + [number_or_zero(branch_by_grade.get(g)) for g in grades] + [""])

    column_totals = {g: 0 for g in grades}
    grand_total = 0
    for r in as_list(curr.get("rows")):
        if not isinstance(r, dict):
            continue
        hours = as_dict(r.get("hours"))
        line = [str(r.get("teacher") or ""), str(r.get("lesson") or "")]
        for g in grades:
            h = number_or_zero(hours.get(g))
            column_totals[g] += h
            line.append(h)
        key = r.get("key")
        total = number_or_zero(row_totals.get(key)) if isinstance(key, str) else 0
        grand_total += total
        line.append(total)
        aoa.append(line)

    aoa.append(["TOPLAM", ""] + [column_totals[g] for g in grades] + [grand_total])
    return aoa
