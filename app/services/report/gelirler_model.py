"""
Gelirler ( Incomes ) sheet model.

Only Y1 fees are entered; Y2/Y3 fees are Y1 × the cumulative inflation
factor.  Tuition student counts come from the planning grades of each year
(summed per kademe); non-education and dormitory rows carry manual
per-year counts (``studentCountY2`` / ``studentCountY3`` default to Y1).

:func:`compute_income_by_year` is shared with the Giderler sheet so both
sheets agree on gross tuition, discounts and net turnover.
"""

from __future__ import annotations

import logging

from app.services.report.common import (
    YEAR_KEYS,
    CurrencyContext,
    as_dict,
    as_list,
    build_year_meta,
    inflation_factors,
    normalize_planning_grades,
)
from app.services.report.discounts import compute_discount_total_for_year, scale_discounts
from app.utils.kademe import KADEME_DEFS, format_kademe_label, normalize_kademe_config, summarize_grades_by_kademe
from app.utils.numbers import number_or_zero
from app.utils.program_type import is_kademe_key_visible, normalize_program_type

logger = logging.getLogger(__name__)

SHEET_TITLE = "Gelirler ( Incomes )"

# (row key, owning kademe)
TUITION_ROWS: tuple[tuple[str, str], ...] = (
    ("okulOncesi", "okulOncesi"),
    ("ilkokulYerel", "ilkokul"),
    ("ilkokulInt", "ilkokul"),
    ("ortaokulYerel", "ortaokul"),
    ("ortaokulInt", "ortaokul"),
    ("liseYerel", "lise"),
    ("liseInt", "lise"),
)

NON_ED_ROWS: tuple[tuple[str, str], ...] = (
    ("yemek", "Yemek"),
    ("uniforma", "Üniforma"),
    ("kitap", "Kitap"),
    ("ulasim", "Ulaşım"),
)

DORM_ROWS: tuple[tuple[str, str], ...] = (
    ("yurt", "Yurt Gelirleri"),
    ("yazOkulu", "Yaz Okulu Dersleri Gelirleri"),
)

OTHER_INCOME_ROWS: tuple[tuple[str, str], ...] = (
    ("gayrimenkulKira", "Gayrimenkul Kira Gelirleri ve Diğer Gelirler"),
    ("isletmeGelirleri",
     "İşletme Gelirleri (Kantin, Kafeterya, Sosyal Faaliyet ve Spor Kulüpleri vb.)"),
    ("tesisKira",
     "Bina ve Tesislerin Konaklama, Sosyal, Kültür, Spor vb. Amaçlı Kullanımından "
     "Kaynaklı Tesis Kira Gelirleri"),
    ("egitimDisiHizmet", "Eğitim Dışı Verilen Hizmetler (Danışmanlık vb.) Karşılığı Gelirler"),
    ("yazOkuluOrganizasyon", "Yaz Okulları, Organizasyon, Kurs vb. İkinci Eğitim Gelirleri"),
    ("kayitUcreti", "Kayıt Ücreti"),
    ("bagislar", "Bağışlar"),
    ("stkKamu", "STK/Kamu Sübvansiyonları"),
    ("faizPromosyon", "Faiz, Banka Promosyon/Komisyon vb. Kaynaklı Gelirler"),
)


# ── Input normalization ─────────────────────────────────────────────────────


def merge_rows(defaults, saved_rows) -> list[dict]:
    """Default rows overlaid by saved rows of the same key; unknown saved rows are appended."""
    saved = [r for r in as_list(saved_rows) if isinstance(r, dict)]
    by_key = {str(r.get("key") or ""): r for r in saved}
    merged = []
    for row in defaults:
        override = by_key.get(row["key"])
        merged.append({**row, **override, "key": row["key"], "label": row["label"]} if override else dict(row))
    known = {row["key"] for row in defaults}
    merged += [r for r in saved if str(r.get("key") or "") not in known]
    return merged


def _with_year_counts(rows) -> list[dict]:
    out = []
    for r in rows:
        count = number_or_zero(r.get("studentCount"))
        out.append({
            **r,
            "studentCount": count,
            "studentCountY2": count if r.get("studentCountY2") is None else number_or_zero(r["studentCountY2"]),
            "studentCountY3": count if r.get("studentCountY3") is None else number_or_zero(r["studentCountY3"]),
        })
    return out


def normalize_gelirler(saved) -> dict:
    """Full Gelirler document from a stored (possibly legacy or partial) one.

    The legacy flat shape (``tuitionFeePerStudentYearly`` and friends) seeds
    zero unit fees of the tuition, ``yemek`` and ``yurt`` rows.
    """
    g = as_dict(saved)
    tuition = merge_rows(
        [{"key": k, "label": k, "studentCount": 0, "unitFee": 0} for k, _ in TUITION_ROWS],
        as_dict(g.get("tuition")).get("rows"),
    )
    non_ed = _with_year_counts(merge_rows(
        [{"key": k, "label": label, "studentCount": 0, "unitFee": 0} for k, label in NON_ED_ROWS],
        as_dict(g.get("nonEducationFees")).get("rows"),
    ))
    dorm = _with_year_counts(merge_rows(
        [{"key": k, "label": label, "studentCount": 0, "unitFee": 0} for k, label in DORM_ROWS],
        as_dict(g.get("dormitory")).get("rows"),
    ))
    other = merge_rows(
        [{"key": k, "label": label, "amount": 0} for k, label in OTHER_INCOME_ROWS],
        as_dict(g.get("otherInstitutionIncome")).get("rows"),
    )

    is_legacy = not g.get("tuition") and any(
        g.get(k) is not None
        for k in ("tuitionFeePerStudentYearly", "lunchFeePerStudentYearly",
                  "dormitoryFeePerStudentYearly", "otherFeePerStudentYearly")
    )
    if is_legacy:
        seeds = (
            (tuition, None, g.get("tuitionFeePerStudentYearly")),
            (non_ed, "yemek", g.get("lunchFeePerStudentYearly")),
            (dorm, "yurt", g.get("dormitoryFeePerStudentYearly")),
        )
        for rows, only_key, fee in seeds:
            for r in rows:
                if (only_key is None or r["key"] == only_key) and not number_or_zero(r.get("unitFee")):
                    r["unitFee"] = number_or_zero(fee)

    return {
        "tuition": {"rows": tuition},
        "nonEducationFees": {"rows": non_ed},
        "dormitory": {"rows": dorm},
        "otherInstitutionIncome": {"rows": other},
        "governmentIncentives": number_or_zero(g.get("governmentIncentives")),
    }


def manual_student_count(row, year_key) -> int | float:
    if not isinstance(row, dict):
        return 0
    if year_key == "y2":
        return number_or_zero(row.get("studentCountY2", row.get("studentCount")))
    if year_key == "y3":
        return number_or_zero(row.get("studentCountY3", row.get("studentCount")))
    return number_or_zero(row.get("studentCount"))


# ── Computation ─────────────────────────────────────────────────────────────


class IncomeContext:
    """Normalized incomes of one scenario, in report currency."""

    def __init__(self, inputs, scenario=None, program_type=None, currency: CurrencyContext | None = None):
        inputs = as_dict(inputs)
        self.currency = currency or CurrencyContext(scenario)
        self.program_type = normalize_program_type(program_type)
        self.kademe_config = as_dict(inputs.get("temelBilgiler")).get("kademeler")
        self.kademeler = normalize_kademe_config(self.kademe_config)
        self.factors = inflation_factors(inputs.get("temelBilgiler"))
        self.gelirler = normalize_gelirler(inputs.get("gelirler"))
        self.discounts = scale_discounts(inputs.get("discounts"), self.currency.input_scale)

        planning = normalize_planning_grades(inputs.get("gradesYears") or inputs.get("grades"))
        self.students_by_year = {
            y: summarize_grades_by_kademe(planning[y], self.kademe_config) for y in YEAR_KEYS
        }
        base_of = dict(TUITION_ROWS)
        self.visible_tuition_rows = [
            r for r in self.gelirler["tuition"]["rows"]
            if (r["key"] not in base_of or self.kademeler[base_of[r["key"]]]["enabled"])
            and is_kademe_key_visible(r["key"], self.program_type)
        ]

    def money(self, value):
        return self.currency.input_money(value)

    def tuition_students(self, row_key, year_key):
        base = dict(TUITION_ROWS).get(row_key)
        return number_or_zero(self.students_by_year[year_key].get(base)) if base else 0

    def rows(self, section):
        return self.gelirler[section]["rows"]

    def year(self, year_key) -> dict:
        f = self.factors[year_key]
        tuition_students = sum(self.tuition_students(r["key"], year_key) for r in self.visible_tuition_rows)
        tuition_total = sum(
            self.tuition_students(r["key"], year_key) * self.money(r.get("unitFee")) * f
            for r in self.visible_tuition_rows
        )
        non_ed_total = sum(
            manual_student_count(r, year_key) * self.money(r.get("unitFee")) * f
            for r in self.rows("nonEducationFees")
        )
        dorm_total = sum(
            manual_student_count(r, year_key) * self.money(r.get("unitFee")) * f
            for r in self.rows("dormitory")
        )
        activity_gross = tuition_total + non_ed_total + dorm_total
        other_institution = sum(self.money(r.get("amount")) * f for r in self.rows("otherInstitutionIncome"))
        govt = self.money(self.gelirler["governmentIncentives"]) * f
        other_total = other_institution + govt

        base_students = tuition_students if tuition_students > 0 else self.students_by_year[year_key]["total"]
        avg_tuition_fee = tuition_total / base_students if base_students > 0 else 0
        total_discounts = compute_discount_total_for_year(
            self.discounts, year_key, tuition_total, base_students, avg_tuition_fee, f,
        )
        net_activity = activity_gross - total_discounts
        net_income = activity_gross + other_total - total_discounts
        return {
            "tuitionStudents": base_students,
            "tuitionTotal": tuition_total,
            "avgTuitionFee": avg_tuition_fee,
            "nonEdTotal": non_ed_total,
            "dormTotal": dorm_total,
            "activityGross": activity_gross,
            "otherInstitutionTotal": other_institution,
            "govt": govt,
            "otherTotal": other_total,
            "grossTotal": activity_gross + other_total,
            "totalDiscounts": total_discounts,
            "netActivity": net_activity,
            "netIncome": net_income,
            "netCiroPerStudent": net_activity / base_students if base_students > 0 else None,
            "otherIncomeRatio": other_total / net_income if net_income > 0 else None,
        }


def tuition_row_labels(kademeler) -> dict:
    """``{"ilkokulYerel": "İlkokul (1-5)-YEREL", ...}`` for the tuition rows."""
    base_labels = {d["key"]: d["label"] for d in KADEME_DEFS}
    labels = {}
    for key, base in TUITION_ROWS:
        label = format_kademe_label(base_labels[base], kademeler, base)
        suffix = "-YEREL" if key.endswith("Yerel") else "-INT." if key.endswith("Int") else ""
        labels[key] = f"{label}{suffix}"
    return labels


def compute_income_by_year(inputs, scenario=None, program_type=None, currency=None) -> dict:
    ctx = IncomeContext(inputs, scenario, program_type, currency)
    return {y: ctx.year(y) for y in YEAR_KEYS}


# ── Model ────────────────────────────────────────────────────────────────────


def _per_student_table(title, rows, label_of, count_of, ctx, year_meta, code) -> dict:
    header_rows = [
        ["Kalem", year_meta["y1"]["labelLong"], None, None,
         year_meta["y2"]["labelLong"], None, None,
         year_meta["y3"]["labelLong"], None, None],
        [None] + [h for _ in YEAR_KEYS
                  for h in ("Öğrenci Sayısı", f"Birim Ücret ({code})", f"Toplam ({code})")],
    ]
    totals = {y: 0 for y in YEAR_KEYS}
    students = {y: 0 for y in YEAR_KEYS}
    out = []
    for r in rows:
        line = [label_of(r)]
        unit_y1 = ctx.money(r.get("unitFee"))
        for y in YEAR_KEYS:
            count = count_of(r, y)
            unit = unit_y1 * ctx.factors[y]
            total = count * unit
            totals[y] += total
            students[y] += count
            line += [count, unit, total]
        out.append(line)
    total_line = ["TOPLAM"]
    for y in YEAR_KEYS:
        total_line += [students[y], None, totals[y]]
    out.append(total_line)
    return {"title": title, "headerRows": header_rows, "rows": out}


def build_gelirler_model(scenario=None, inputs=None, report=None, program_type=None,
                         currency_meta=None, report_currency="usd") -> dict:
    scenario = as_dict(scenario)
    currency = CurrencyContext(scenario, currency_meta, report_currency)
    code = currency.currency_code
    ptype = normalize_program_type(program_type or scenario.get("program_type"))
    ctx = IncomeContext(inputs, scenario, ptype, currency)
    by_year = {y: ctx.year(y) for y in YEAR_KEYS}
    year_meta = build_year_meta(scenario.get("academic_year"))
    short = [year_meta[y]["labelShort"] for y in YEAR_KEYS]
    kademe_labels = tuition_row_labels(ctx.kademeler)

    tuition_table = _per_student_table(
        f"EĞİTİM FAALİYET GELİRLERİ / YIL ({code})",
        ctx.visible_tuition_rows,
        lambda r: kademe_labels.get(r["key"]) or str(r.get("label") or r["key"]),
        lambda r, y: ctx.tuition_students(r["key"], y),
        ctx, year_meta, code,
    )
    non_ed_table = _per_student_table(
        f"ÖĞRENİM DIŞI ÜCRETLER / YIL ({code})",
        ctx.rows("nonEducationFees"),
        lambda r: str(r.get("label") or r["key"]),
        manual_student_count,
        ctx, year_meta, code,
    )
    dorm_table = _per_student_table(
        f"YURT / KONAKLAMA GELİRLERİ / YIL ({code})",
        ctx.rows("dormitory"),
        lambda r: str(r.get("label") or r["key"]),
        manual_student_count,
        ctx, year_meta, code,
    )

    other_rows = []
    other_totals = [0, 0, 0]
    for r in ctx.rows("otherInstitutionIncome"):
        amounts = [ctx.money(r.get("amount")) * ctx.factors[y] for y in YEAR_KEYS]
        other_totals = [a + b for a, b in zip(other_totals, amounts)]
        other_rows.append([str(r.get("label") or r.get("key") or "")] + amounts)
    other_rows.append(["TOPLAM"] + other_totals)

    govt = [ctx.money(ctx.gelirler["governmentIncentives"]) * ctx.factors[y] for y in YEAR_KEYS]

    def summary_row(label, key, sign=1):
        return [label] + [
            None if by_year[y][key] is None else sign * by_year[y][key] for y in YEAR_KEYS
        ]

    tables = [
        tuition_table,
        non_ed_table,
        dorm_table,
        {
            "title": f"ÖĞRENCİ ÜCRETLERİ HARİÇ KURUMUN DİĞER GELİRLERİ (BRÜT) / YIL ({code})",
            "headerRows": [["Gelir Kalemi"] + short],
            "rows": other_rows,
        },
        {
            "title": f"DEVLET TEŞVİKLERİ / YIL ({code})",
            "headerRows": [["Gelir Kalemi"] + short],
            "rows": [["Devlet Teşvikleri"] + govt, ["TOPLAM"] + govt],
        },
        {
            "title": "ÖZET",
            "headerRows": [[None] + short],
            "rows": [
                summary_row("FAALİYET GELİRLERİ (Brüt)", "activityGross"),
                summary_row("BURS VE İNDİRİMLER (Önizleme)", "totalDiscounts", sign=-1),
                summary_row("NET FAALİYET GELİRLERİ", "netActivity"),
                summary_row("NET KİŞİ BAŞI CİRO", "netCiroPerStudent"),
                summary_row("DİĞER GELİRLER (Brüt + Devlet Teşvikleri)", "otherTotal"),
                summary_row("DİĞER GELİRLER %", "otherIncomeRatio"),
                summary_row("NET TOPLAM GELİR", "netIncome"),
            ],
        },
    ]

    logger.debug("Gelirler model: net income y1=%s (%s)", by_year["y1"]["netIncome"], code)
    return {
        "sheetTitle": SHEET_TITLE,
        "currencyCode": code,
        "reportCurrency": currency.report_currency,
        "yearMeta": year_meta,
        "factors": ctx.factors,
        "byYear": by_year,
        "tables": tables,
        "meta": {"programType": ptype, "hasReport": bool(report)},
    }
