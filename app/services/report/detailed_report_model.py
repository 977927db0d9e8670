"""
Detailed report (RAPOR) model.

The RAPOR sheet mirrors the paper form a school fills in for the fee
commission.  Everything here is in USD: inputs money of a LOCAL scenario is
divided by ``fx_usd_to_local``, results money is already USD.  The AOA
builder converts to the local currency at the boundary when asked to.

Figures shared with the other sheets are computed by the same helpers:
incomes and tuition students by :class:`IncomeContext`, operating and
salary expenses by :class:`ExpenseCalculator`, scholarship costs by the
discount helpers.  Values of the stored results (Y1) take precedence where
they exist.
"""

from __future__ import annotations

import logging

from app.services.report.common import (
    YEAR_KEYS,
    CurrencyContext,
    as_dict,
    as_list,
    get_path,
    pick_years,
)
from app.services.report.discounts import (
    discount_lookup,
    discount_mode,
    discount_pct,
    discount_student_count,
    fixed_per_student,
    normalize_name,
)
from app.services.report.gelirler_model import IncomeContext, manual_student_count, tuition_row_labels
from app.services.report.giderler_model import (
    DORM_ITEMS,
    OPERATING_ITEMS,
    SERVICE_ITEMS,
    ExpenseCalculator,
)
from app.services.report.hr_model import SALARY_BUCKETS, compute_ik_years
from app.services.report.kapasite_model import parse_academic_start_year
from app.services.report.temel_bilgiler_model import (
    DEFAULT_BASE_YEAR,
    HEADCOUNT_ROWS,
    compute_current_branches,
    compute_current_students,
    compute_planned_headcounts,
)
from app.utils.kademe import format_kademe_label
from app.utils.numbers import number_or_null, number_or_zero, safe_div
from app.utils.program_type import INTERNATIONAL, normalize_program_type

logger = logging.getLogger(__name__)

# (inputs key, form name); the first seven are scholarships, the rest discounts
DISCOUNT_DEFS: tuple[tuple[str, str], ...] = (
    ("magisBasariBursu", "MAGIS BASARI BURSU"),
    ("maarifYetenekBursu", "MAARIF YETENEK BURSU"),
    ("ihtiyacBursu", "IHTIYAC BURSU"),
    ("okulBasariBursu", "OKUL BASARI BURSU"),
    ("tamEgitimBursu", "TAM EGITIM BURSU"),
    ("barinmaBursu", "BARINMA BURSU"),
    ("turkceBasariBursu", "TURKCE BASARI BURSU"),
    ("uluslararasiYukumlulukIndirimi", "VAKFIN ULUSLARARASI YUKUMLULUKLERINDEN KAYNAKLI INDIRIM"),
    ("vakifCalisaniIndirimi", "VAKIF CALISANI INDIRIMI"),
    ("kardesIndirimi", "KARDES INDIRIMI"),
    ("erkenKayitIndirimi", "ERKEN KAYIT INDIRIMI"),
    ("pesinOdemeIndirimi", "PESIN ODEME INDIRIMI"),
    ("kademeGecisIndirimi", "KADEME GECIS INDIRIMI"),
    ("temsilIndirimi", "TEMSIL INDIRIMI"),
    ("kurumIndirimi", "KURUM INDIRIMI"),
    ("istisnaiIndirim", "ISTISNAI INDIRIM"),
    ("yerelMevzuatIndirimi", "YEREL MEVZUATIN SART KOSTUGU INDIRIM"),
)
SCHOLARSHIP_DEFS = DISCOUNT_DEFS[:7]
OTHER_DISCOUNT_DEFS = DISCOUNT_DEFS[7:]

COMPETITOR_LEVELS: tuple[tuple[str, str], ...] = (
    ("okulOncesi", "Okul Oncesi"),
    ("ilkokul", "Ilkokul"),
    ("ortaokul", "Ortaokul"),
    ("lise", "Lise"),
)

# non-education fee rows shown next to each tuition row
FEE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("uniform", "uniforma"),
    ("books", "kitap"),
    ("transport", "ulasim"),
    ("meal", "yemek"),
)

HR_KEYS = tuple(SALARY_BUCKETS)
HR_TURK_KEYS = ("turkPersonelMaas", "turkDestekPersonelMaas")
HR_YEREL_KEYS = ("yerelPersonelMaas", "yerelDestekPersonelMaas", "internationalPersonelMaas")
BAD_DEBT_KEY = "tahsilEdilemeyenGelirler"

# fallback inflation keys for the three years before the base year
INFLATION_HISTORY_KEYS = ("y2023", "y2024", "y2025")


def _clamp(value, low=0, high=1):
    return max(low, min(high, value))


def _sum(values) -> int | float:
    return sum(number_or_zero(v) for v in values)


def _capacity(kapasite, year_key) -> int | float:
    by_kademe = as_dict(kapasite.get("byKademe"))
    return _sum(get_path(as_dict(row), f"caps.{year_key}") for row in by_kademe.values())


def compute_capacity(inputs) -> dict:
    """Building capacity, current and planned (Y1) occupancy."""
    inputs = as_dict(inputs)
    kapasite = as_dict(inputs.get("kapasite"))
    current_students = compute_current_students(inputs)
    current_branches = compute_current_branches(inputs)

    school_capacity = (
        number_or_zero(get_path(kapasite, "totals.cur"))
        or _capacity(kapasite, "cur")
        or number_or_zero(kapasite.get("currentStudents"))
    )
    capacity_y1 = (
        number_or_zero(get_path(kapasite, "years.y1"))
        or number_or_zero(get_path(kapasite, "totals.y1"))
        or _capacity(kapasite, "y1")
        or school_capacity
    )

    planned_rows = [as_dict(r) for r in as_list(get_path(inputs, "gradesYears.y1"))]
    planned_students = _sum(r.get("studentsPerBranch") for r in planned_rows)
    planned_branches = _sum(r.get("branchCount") for r in planned_rows)
    return {
        "schoolCapacity": school_capacity,
        "capacityYear1": capacity_y1,
        "currentStudents": current_students,
        "totalBranches": current_branches,
        "classroomUtilization": safe_div(current_students, current_branches),
        "plannedStudents": planned_students,
        "plannedBranches": planned_branches,
        "plannedUtilization": safe_div(planned_students, school_capacity),
        "avgStudentsPerClassPlanned": safe_div(planned_students, planned_branches),
    }


def build_tuition_table(ctx: IncomeContext, raise_rates) -> tuple[list[dict], float]:
    """Tuition rows plus ``TOPLAM`` and ``ORTALAMA UCRET``; returns ``(rows, avg_tuition)``."""
    fees = {r.get("key"): r for r in ctx.rows("nonEducationFees")}
    unit_fees = {col: ctx.money(as_dict(fees.get(key)).get("unitFee")) for col, key in FEE_COLUMNS}
    labels = tuition_row_labels(ctx.kademeler)
    raise_rates = as_dict(raise_rates)

    rows = []
    for r in ctx.visible_tuition_rows:
        edu = ctx.money(r.get("unitFee"))
        rows.append({
            "key": r["key"],
            "level": labels.get(r["key"]) or str(r.get("label") or r["key"]),
            "edu": edu,
            **unit_fees,
            "raisePct": max(0, number_or_zero(raise_rates.get(r["key"]))),
            "total": edu + sum(unit_fees.values()),
            "studentCount": ctx.tuition_students(r["key"], "y1"),
        })

    students = sum(r["studentCount"] for r in rows)
    if students:
        avg_tuition = sum(r["edu"] * r["studentCount"] for r in rows) / students
    else:
        avg_tuition = sum(r["edu"] for r in rows) / len(rows) if rows else 0

    total_row = {"key": "total", "level": "TOPLAM", "raisePct": None, "studentCount": students}
    for col in ("edu", "uniform", "books", "transport", "meal", "total"):
        total_row[col] = sum(r[col] for r in rows)

    average_row = {
        "key": "average",
        "level": "ORTALAMA UCRET",
        "edu": avg_tuition,
        **{col: unit_fees[col] if rows else 0 for col in unit_fees},
        "raisePct": None,
        "total": avg_tuition + sum(unit_fees.values()) if rows else 0,
        "studentCount": students,
    }
    return rows + [total_row, average_row], avg_tuition


def build_discount_plan_row(name, key, entry, tuition_students, avg_tuition, current_count) -> dict:
    """Y1 plan of one scholarship / discount: students, cost and effective rate."""
    d = entry or {"name": name, "mode": "percent", "value": 0, "ratio": 0}
    planned = discount_student_count(d, "y1", tuition_students)
    if tuition_students > 0:
        planned = min(planned, tuition_students)

    if discount_mode(d) == "fixed":
        per_student = fixed_per_student(d, "y1")
        rate = _clamp(per_student / avg_tuition) if avg_tuition > 0 else None
        cost = planned * per_student
    else:
        rate = discount_pct(d, "y1")
        cost = avg_tuition * planned * rate
    return {"name": name, "key": key, "planned": planned, "cost": cost, "cur": current_count, "rate": rate}


def weighted_avg_rate(rows, avg_tuition):
    """Student-weighted average of the plan rates; ``None`` without planned students."""
    total_planned = sum(number_or_zero(r.get("planned")) for r in rows)
    if total_planned <= 0:
        return None
    weighted = 0
    for r in rows:
        planned = number_or_zero(r.get("planned"))
        if planned <= 0:
            continue
        rate = number_or_null(r.get("rate"))
        if rate is None:
            if avg_tuition <= 0:
                continue
            rate = number_or_zero(r.get("cost")) / (planned * avg_tuition)
        weighted += planned * _clamp(rate)
    return weighted / total_planned


def _group_analysis(rows, target_students, capacity_y1, parent_revenue, avg_tuition) -> dict:
    total_cost = sum(number_or_zero(r.get("cost")) for r in rows)
    planned = sum(number_or_zero(r.get("planned")) for r in rows)
    if parent_revenue > 0:
        revenue_share = total_cost / parent_revenue if total_cost > 0 else 0
    else:
        revenue_share = None
    return {
        "perTargetStudent": total_cost / target_students if target_students > 0 else None,
        "studentShare": planned / capacity_y1 if capacity_y1 > 0 else None,
        "revenueShare": revenue_share,
        "weightedAvgRate": weighted_avg_rate(rows, avg_tuition),
        "plannedStudents": planned,
        "totalCost": total_cost,
    }


def _variance(planned, actual):
    if planned is None or actual is None or planned == 0:
        return None
    return (actual - planned) / planned


def build_performance_rows(prev_report, performans, input_currency) -> tuple[list[dict], float | None]:
    """Previous plan (results, USD) against realised figures (inputs money)."""
    performans = as_dict(performans)
    realised_fx = number_or_zero(performans.get("prevYearRealizedFxUsdToLocal"))
    actuals = as_dict(performans.get("gerceklesen"))

    def to_usd(value):
        raw = number_or_null(value)
        if raw is None:
            return None
        if input_currency == "LOCAL":
            return raw / realised_fx if realised_fx > 0 else None
        return raw

    plan = as_dict(pick_years(prev_report)["y1"])
    planned_students = number_or_null(get_path(plan, "students.totalStudents"))
    planned_income = number_or_null(get_path(plan, "income.netIncome"))
    planned_expenses = number_or_null(get_path(plan, "expenses.totalExpenses"))
    planned_discounts = number_or_null(get_path(plan, "income.totalDiscounts"))
    planned_profit = (
        planned_income - planned_expenses
        if planned_income is not None and planned_expenses is not None else None
    )

    actual_income = to_usd(actuals.get("gelirler"))
    actual_expenses = to_usd(actuals.get("giderler"))
    if actual_income is not None and actual_expenses is not None:
        actual_profit = actual_income - actual_expenses
    else:
        actual_profit = to_usd(actuals.get("karZarar"))

    rows = [
        ("Ogrenci Sayisi", planned_students, number_or_null(actuals.get("ogrenciSayisi"))),
        ("Gelirler", planned_income, actual_income),
        ("Giderler", planned_expenses, actual_expenses),
        ("Kar Zarar", planned_profit, actual_profit),
        ("Burs ve Indirimler", planned_discounts, to_usd(actuals.get("bursVeIndirimler"))),
    ]
    return [
        {"metric": metric, "planned": p, "actual": a, "variance": _variance(p, a)}
        for metric, p, a in rows
    ], (realised_fx if realised_fx > 0 else None)


def build_competitor_rows(rakip_analizi, kademeler, program_type, money) -> list[dict]:
    suffix = "INT." if program_type == INTERNATIONAL else "YEREL"
    rows = []
    for key, base_label in COMPETITOR_LEVELS:
        if not kademeler[key]["enabled"]:
            continue
        source = as_dict(as_dict(rakip_analizi).get(key))
        label = format_kademe_label(base_label, kademeler, key)
        rows.append({
            "level": label if key == "okulOncesi" else f"{label} - {suffix}",
            "a": money(source.get("a")),
            "b": money(source.get("b")),
            "c": money(source.get("c")),
        })
    return rows


def has_competitor_data(rakip_analizi) -> bool:
    rakip_analizi = as_dict(rakip_analizi)
    return any(
        number_or_zero(get_path(rakip_analizi, f"{key}.{col}")) > 0
        for key, _ in COMPETITOR_LEVELS
        for col in ("a", "b", "c")
    )


def inflation_years(inflation, base_year) -> list[dict]:
    """The three calendar years before *base_year*, with their inflation rate."""
    inflation = as_dict(inflation)
    ref = base_year if isinstance(base_year, int) else DEFAULT_BASE_YEAR
    out = []
    for idx, year in enumerate((ref - 3, ref - 2, ref - 1)):
        exact = number_or_null(inflation.get(f"y{year}"))
        fallback = number_or_null(inflation.get(INFLATION_HISTORY_KEYS[idx]))
        out.append({"year": year, "value": exact if exact is not None else fallback})
    return out


def _report_override(value, fallback):
    n = number_or_null(value)
    return n if n is not None else fallback


def _ratio_rows(rows, total) -> list[dict]:
    return [{**r, "ratio": safe_div(r["amount"], total)} for r in rows]


def build_detailed_report_model(school=None, scenario=None, inputs=None, report=None, prev_report=None,
                                currency_meta=None, prev_currency_meta=None, report_currency="usd",
                                program_type=None) -> dict:
    school = as_dict(school)
    scenario = as_dict(scenario)
    inputs = as_dict(inputs)
    temel = as_dict(inputs.get("temelBilgiler"))
    okul = as_dict(temel.get("okulEgitimBilgileri"))
    yetkililer = as_dict(temel.get("yetkililer"))
    inflation = as_dict(temel.get("inflation"))
    ptype = normalize_program_type(program_type or scenario.get("program_type"))

    # the model is always USD; report_currency only reaches the AOA builder
    usd = CurrencyContext(scenario, currency_meta, "usd")
    ctx = IncomeContext(inputs, scenario, ptype, usd)
    money = usd.input_money

    school_name = school.get("name") or "Okul"
    header_label = " > ".join(
        p for p in (school_name, scenario.get("name") or "", scenario.get("academic_year") or "") if p
    )
    capacity = compute_capacity(inputs)

    # B. tuition
    tuition_table, avg_tuition = build_tuition_table(ctx, temel.get("ucretArtisOranlari"))
    raise_rates = [r["raisePct"] for r in tuition_table if r["raisePct"] is not None]
    planned_raise_avg = sum(raise_rates) / len(raise_rates) if raise_rates else None

    # C.3 revenues
    income_y1 = ctx.year("y1")
    report_y1 = as_dict(pick_years(report)["y1"])
    report_income = as_dict(report_y1.get("income"))
    report_expenses = as_dict(report_y1.get("expenses"))

    gross_tuition = number_or_zero(report_income.get("grossTuition")) or income_y1["tuitionTotal"]
    non_ed_total = number_or_zero(report_income.get("nonEducationFeesTotal")) or income_y1["nonEdTotal"]
    dorm_total = number_or_zero(report_income.get("dormitoryRevenuesTotal")) or income_y1["dormTotal"]
    govt = income_y1["govt"]
    other_pure = income_y1["otherInstitutionTotal"]
    other_total = number_or_zero(report_income.get("otherIncomeTotal")) or income_y1["otherTotal"]
    gross_income = (
        number_or_zero(report_income.get("totalGrossIncome"))
        or gross_tuition + non_ed_total + dorm_total + other_total
    )

    fee_rows = {r.get("key"): r for r in ctx.rows("nonEducationFees")}

    def fee_revenue(key):
        row = fee_rows.get(key)
        return manual_student_count(row, "y1") * money(as_dict(row).get("unitFee"))

    revenues = _ratio_rows([
        {"name": "Egitim Ucreti", "amount": gross_tuition},
        {"name": "Uniforma", "amount": fee_revenue("uniforma")},
        {"name": "Kitap Kirtasiye", "amount": fee_revenue("kitap")},
        {"name": "Yemek", "amount": fee_revenue("yemek")},
        {"name": "Servis", "amount": fee_revenue("ulasim")},
        {"name": "Yurt Gelirleri", "amount": dorm_total},
        {"name": "Diger (kantin, kira vb.)", "amount": other_pure},
        {"name": "Devlet Tesvikleri", "amount": govt},
    ], gross_income)

    non_ed_breakdown = [
        {"name": str(r.get("label") or r.get("key") or ""), "amount": fee_revenue(r.get("key"))}
        for r in ctx.rows("nonEducationFees")
    ]
    other_breakdown = [
        {"name": str(r.get("label") or r.get("key") or ""), "amount": money(r.get("amount"))}
        for r in ctx.rows("otherInstitutionIncome")
    ]
    if govt:
        other_breakdown.append({"name": "Devlet Tesvikleri", "amount": govt})

    # C.4 expenses
    giderler = as_dict(inputs.get("giderler"))
    ik_years = compute_ik_years(inputs, usd)["years"]
    calc = ExpenseCalculator(
        giderler, {y: ik_years[y]["salaryExpenseMapping"] for y in YEAR_KEYS}, ctx.factors, money,
    )
    operating_total = sum(calc.amount(key, "y1") for key, _, _ in OPERATING_ITEMS)
    hr_total = sum(calc.amount(key, "y1") for key in HR_KEYS)
    hr_turk = sum(calc.amount(key, "y1") for key in HR_TURK_KEYS)
    hr_yerel = sum(calc.amount(key, "y1") for key in HR_YEREL_KEYS)
    bad_debt = calc.amount(BAD_DEBT_KEY, "y1")
    operating_without_hr = max(0, operating_total - hr_total - bad_debt)

    income_rows = {r.get("key"): r for r in ctx.rows("nonEducationFees") + ctx.rows("dormitory")}

    def unit_cost_total(items, section):
        src = as_dict(get_path(giderler, f"{section}.items"))
        costs = {}
        for key, _, _, income_key in items:
            unit = money(as_dict(src.get(key)).get("unitCost"))
            costs[key] = unit * manual_student_count(income_rows.get(income_key), "y1")
        costs["total"] = sum(costs.values())
        return costs

    service_costs = unit_cost_total(SERVICE_ITEMS, "ogrenimDisi")
    dorm_costs = unit_cost_total(DORM_ITEMS, "yurt")

    # C.7 scholarships and discounts
    tuition_students = income_y1["tuitionStudents"] or capacity["plannedStudents"] or capacity["currentStudents"]
    avg_for_discounts = income_y1["tuitionTotal"] / tuition_students if tuition_students > 0 else 0
    lookup = discount_lookup(ctx.discounts)
    current_counts = as_dict(temel.get("bursIndirimOgrenciSayilari"))

    def plan_rows(defs):
        return [
            build_discount_plan_row(
                name, key, lookup.get(normalize_name(name)), tuition_students, avg_for_discounts,
                max(0, number_or_zero(current_counts.get(key))),
            )
            for key, name in defs
        ]

    scholarships = plan_rows(SCHOLARSHIP_DEFS)
    discounts = plan_rows(OTHER_DISCOUNT_DEFS)
    scholarships_cost = sum(r["cost"] for r in scholarships)
    discounts_cost = sum(r["cost"] for r in discounts)
    scholarships_amount = _report_override(report_expenses.get("scholarshipsTotal"), scholarships_cost)
    discounts_amount = _report_override(report_expenses.get("discountsTotal"), discounts_cost)

    expense_total = (
        operating_total + service_costs["total"] + dorm_costs["total"] + scholarships_amount + discounts_amount
    )
    expenses = _ratio_rows([
        {"name": "IK Giderleri (Toplam)", "amount": _report_override(report_expenses.get("hrTotal"), hr_total)},
        {"name": "Isletme Giderleri (IK Haric)", "amount": operating_without_hr},
        {"name": "Egitim Disi Hizmet Maliyetleri",
         "amount": _report_override(report_expenses.get("nonTuitionServicesCostTotal"), service_costs["total"])},
        {"name": "Yurt Maliyetleri", "amount": dorm_costs["total"]},
        {"name": "Indirimler", "amount": discounts_amount},
        {"name": "Burslar", "amount": scholarships_amount},
    ], expense_total)

    target_students = capacity["plannedStudents"] if capacity["plannedStudents"] > 0 else tuition_students
    parent_revenue = (
        number_or_zero(report_income.get("activityGross")) or gross_tuition + non_ed_total + dorm_total
    )
    discount_analysis = {
        "targetStudents": target_students,
        "parentStudentRevenue": parent_revenue,
        "scholarships": _group_analysis(
            scholarships, target_students, capacity["capacityYear1"], parent_revenue, avg_for_discounts,
        ),
        "discounts": _group_analysis(
            discounts, target_students, capacity["capacityYear1"], parent_revenue, avg_for_discounts,
        ),
    }

    detailed_expenses = [
        {"name": "IK Giderleri (Turk Personel)", "amount": hr_turk, "targetPct": 0.15},
        {"name": "IK (Yerel Personel)", "amount": hr_yerel, "targetPct": 0.45},
        {"name": "Isletme Giderleri", "amount": operating_without_hr},
        {"name": "Yemek (Ogrenci Yemegi)", "amount": service_costs["yemek"]},
        {"name": "Uniforma", "amount": service_costs["uniforma"]},
        {"name": "Kitap- Kirtasiye", "amount": service_costs["kitapKirtasiye"]},
        {"name": "Ogrenci Servisi", "amount": service_costs["ulasimServis"]},
        {"name": "Yurt Giderleri", "amount": dorm_costs["total"]},
        {"name": "Indirimler", "amount": discounts_cost, "targetPct": 0.08},
        {"name": "Burslar", "amount": scholarships_cost, "targetPct": 0.05},
        {"name": "Tahsil Edilemeyecek Gelirler", "amount": bad_debt, "targetPct": 0.02},
    ]
    detailed_expense_total = sum(r["amount"] for r in detailed_expenses)
    detailed_expenses = _ratio_rows(detailed_expenses, detailed_expense_total)

    # C.2 HR
    planned_headcounts = compute_planned_headcounts(inputs.get("ik"))
    ik_mevcut = as_dict(temel.get("ikMevcut"))
    hr_rows = [
        {"item": label, "current": number_or_zero(ik_mevcut.get(key)), "planned": planned_headcounts[key]}
        for key, label, _ in HEADCOUNT_ROWS
    ]

    # D. performance
    performance, realised_fx = build_performance_rows(prev_report, temel.get("performans"), usd.input_currency)
    prev_fx = number_or_zero(as_dict(prev_currency_meta).get("fx_usd_to_local"))
    planned_fx = prev_fx if prev_fx > 0 else realised_fx

    rakip = temel.get("rakipAnalizi")
    competitor_status = "VAR" if has_competitor_data(rakip) else "YOK"
    competitors = build_competitor_rows(rakip, ctx.kademeler, ptype, money)

    base_year = parse_academic_start_year(scenario.get("academic_year"))
    current_fee = number_or_null(inflation.get("currentSeasonAvgFee"))
    current_fee_usd = money(current_fee) if current_fee is not None else None
    final_fee = number_or_null(inflation.get("finalFee"))
    final_fee_usd = money(final_fee) if final_fee is not None else tuition_table[-1]["total"]

    revenue_total = gross_income
    net_total = revenue_total - expense_total
    per_student_cost = safe_div(expense_total, capacity["plannedStudents"]) if capacity["plannedStudents"] > 0 else None

    parameters = [
        {"no": "1", "desc": "Planlanan Donem Kapasite Kullanim Orani (%)",
         "value": capacity["plannedUtilization"], "valueType": "percent"},
        {"no": "2", "desc": "Insan Kaynaklari Planlamasi (Turk + Yerel + International)",
         "value": sum(planned_headcounts.values()), "valueType": "number"},
        {"no": "3", "desc": "Gelir Planlamasi", "value": revenue_total, "valueType": "currency"},
        {"no": "4", "desc": "Gider Planlamasi", "value": expense_total, "valueType": "currency"},
        {"no": "", "desc": "Gelir - Gider Farki", "value": net_total, "valueType": "currency"},
        {"no": "5", "desc": "Tahsil Edilemeyecek Gelirler (Onceki Donemin Tahsil Edilemeyen yuzdelik rakami)",
         "value": bad_debt, "valueType": "currency"},
        {"no": "6", "desc": "Giderlerin Sapma Yuzdeligi (%... Olarak Hesaplanabilir)",
         "value": inflation.get("expenseDeviationPct"), "valueType": "percent"},
        {"no": "7", "desc": "Burs ve Indirim Giderleri (Fizibilite-G71)",
         "value": scholarships_cost + discounts_cost, "valueType": "currency"},
        {"no": "", "desc": "Ogrenci Basina Maliyet (Tum Giderler (Parametre 4 / Planlanan Ogrenci Sayisi))",
         "value": per_student_cost, "valueType": "currency"},
        {"no": "8", "desc": "Rakip Kurumlarin Analizi (VAR / YOK)", "value": competitor_status},
        {"no": "", "desc": "Planlanan Donem Egitim Ucretleri Artis Orani",
         "value": planned_raise_avg, "valueType": "percent"},
        {"no": "9", "desc": "Yerel Mevzuatta uygunluk (yasal azami artis, Protokol Sinirliliklari, "
                            "Son 3 yilin resmi enflasyon orn.)", "value": None},
        {"no": "10", "desc": "Mevcut Egitim Sezonu Ucreti (ortalama)",
         "value": current_fee_usd, "valueType": "currency"},
        {"no": "", "desc": "Nihai Ucret", "value": final_fee_usd, "valueType": "currency"},
    ]

    logger.debug(
        "Detailed report model %s: revenue=%s expense=%s (USD)", header_label, revenue_total, expense_total,
    )
    return {
        "currencyCode": "USD",
        "headerLabel": header_label,
        "countryName": school.get("country_name") or school.get("country") or "Ülke",
        "schoolName": school_name,
        "principalName": yetkililer.get("mudur") or school.get("principal_name") or "",
        "reporterName": yetkililer.get("raporuHazirlayan") or "",
        "temsilciName": yetkililer.get("ulkeTemsilcisi") or school.get("representative_name") or "",
        "academicStartYear": base_year,
        "programType": okul.get("uygulananProgram") or ("Uluslararasi" if ptype == INTERNATIONAL else "Ulusal"),
        "periodStartDate": okul.get("egitimBaslamaTarihi") or "",
        "schoolCapacity": capacity["schoolCapacity"],
        "currentStudents": capacity["currentStudents"],
        "compulsoryEducation": okul.get("zorunluEgitimDonemleri") or "",
        "lessonDuration": okul.get("birDersSuresiDakika"),
        "dailyLessonHours": okul.get("gunlukDersSaati"),
        "weeklyLessonHours": okul.get("haftalikDersSaatiToplam"),
        "shiftSystem": okul.get("sabahciOglenci") or "",
        "teacherWeeklyHoursAvg": okul.get("ogretmenHaftalikDersOrt"),
        "classroomUtilization": capacity["classroomUtilization"],
        "transitionExamInfo": okul.get("gecisSinaviBilgisi") or "",
        "tuitionTable": tuition_table,
        "parameters": parameters,
        "capacity": {
            "buildingCapacity": capacity["schoolCapacity"],
            "currentStudents": capacity["currentStudents"],
            "plannedStudents": capacity["plannedStudents"],
            "plannedUtilization": capacity["plannedUtilization"],
            "plannedBranches": capacity["plannedBranches"],
            "totalBranches": capacity["totalBranches"],
            "usedBranches": capacity["totalBranches"],
            "avgStudentsPerClass": capacity["classroomUtilization"],
            "avgStudentsPerClassPlanned": capacity["avgStudentsPerClassPlanned"],
        },
        "hr": hr_rows,
        "revenues": revenues,
        "revenuesMeta": {
            "nonEducationBreakdown": [r for r in non_ed_breakdown if r["name"] and r["amount"]],
            "otherIncomeBreakdown": [r for r in other_breakdown if r["name"] and r["amount"]],
        },
        "expenses": expenses,
        "scholarships": scholarships,
        "discounts": discounts,
        "discountAnalysis": discount_analysis,
        "performance": performance,
        "performanceMeta": {
            "realized_fx_usd_to_local": realised_fx,
            "planned_fx_usd_to_local": planned_fx,
            "local_currency_code": (
                as_dict(currency_meta).get("local_currency_code")
                or as_dict(prev_currency_meta).get("local_currency_code")
            ),
        },
        "competitors": competitors,
        "revenueTotal": revenue_total,
        "expenseTotal": expense_total,
        "netTotal": net_total,
        "avgTuition": avg_tuition,
        "margin": safe_div(net_total, revenue_total),
        "parametersMeta": {
            "expenseDeviationPct": inflation.get("expenseDeviationPct"),
            "currentSeasonAvgFeeUsd": current_fee_usd,
            "perStudentCost": per_student_cost,
            "plannedRaiseAvg": planned_raise_avg,
            "scholarshipsAndDiscountsTotal": scholarships_cost + discounts_cost,
            "uncollectableExpenseAmount": bad_debt,
            "inflationYears": inflation_years(inflation, base_year),
            "inflationBaseYear": base_year,
            "competitorStatus": competitor_status,
            "finalFeeUsd": final_fee_usd,
            "serviceCosts": service_costs,
            "dormCosts": dorm_costs,
            "hrTurkCost": hr_turk,
            "hrYerelCost": hr_yerel,
            "detailedExpenses": detailed_expenses,
            "detailedExpenseTotal": detailed_expense_total,
            "discountAnalysis": discount_analysis,
        },
    }
