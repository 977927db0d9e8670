"""
Tests for the RAPOR (detailed report) model and its fixed-layout AOA.
"""

import pytest

from app.services.excel.rapor_aoa import (
    RAPOR_COLUMNS,
    RAPOR_WIDTH,
    SECTION_A_ROW,
    SECTION_B_ROW,
    build_rapor_aoa,
    flatten,
)
from app.services.report.detailed_report_model import (
    build_competitor_rows,
    build_detailed_report_model,
    build_performance_rows,
    compute_capacity,
    has_competitor_data,
    inflation_years,
    weighted_avg_rate,
)
from app.utils.kademe import normalize_kademe_config
from app.utils.numbers import number_or_zero

KADEMELER = {
    "okulOncesi": {"enabled": True, "from": "KG", "to": "KG"},
    "ilkokul": {"enabled": True, "from": "1", "to": "4"},
    "ortaokul": {"enabled": False},
    "lise": {"enabled": False},
}
SCHOOL = {"name": "Ankara Koleji", "country_name": "Türkiye"}
SCENARIO = {"name": "Baz", "academic_year": "2025-2026", "input_currency": "USD"}
AVG_TUITION = 58000 / 38


def _inputs():
    return {
        "temelBilgiler": {
            "kademeler": KADEMELER,
            "inflation": {"y2": 0.1, "y3": 0, "currentSeasonAvgFee": 1500},
            "ucretArtisOranlari": {"okulOncesi": 0.1, "ilkokulYerel": 0.2},
            "yetkililer": {"mudur": "Ayşe Yılmaz"},
            "bursIndirimOgrenciSayilari": {"kardesIndirimi": 5},
            "ikMevcut": {"turkPersonelYoneticiEgitimci": 1},
        },
        "kapasite": {"byKademe": {
            "okulOncesi": {"caps": {"cur": 40, "y1": 40}},
            "ilkokul": {"caps": {"cur": 60, "y1": 60}},
        }},
        "gradesCurrent": [{"grade": "1", "branchCount": 2, "studentsPerBranch": 30}],
        "gradesYears": {"y1": [
            {"grade": "KG", "branchCount": 1, "studentsPerBranch": 18},
            {"grade": "1", "branchCount": 1, "studentsPerBranch": 20},
        ]},
        "gelirler": {
            "tuition": {"rows": [{"key": "okulOncesi", "unitFee": 1000}, {"key": "ilkokulYerel", "unitFee": 2000}]},
            "nonEducationFees": {"rows": [
                {"key": "yemek", "studentCount": 10, "unitFee": 100},
                {"key": "uniforma", "studentCount": 0, "unitFee": 50},
            ]},
        },
        "discounts": [
            {"name": "MAGİS Başarı Bursu", "mode": "fixed", "studentCount": 2, "value": 300},
            {"name": "Kardeş İndirimi", "mode": "percent", "ratio": 0.5, "value": 0.1},
        ],
        "ik": {"years": {"y1": {
            "unitCosts": {"turk_egitimci": 1000},
            "headcountsByLevel": {"ilkokulYerel": {"turk_egitimci": 2}},
        }}},
        "giderler": {
            "isletme": {"items": {
                "kira": 500, "turkPersonelMaas": 2500, "yerelPersonelMaas": 300, "tahsilEdilemeyenGelirler": 100,
            }},
            "ogrenimDisi": {"items": {"yemek": {"unitCost": 40}}},
        },
    }


@pytest.fixture()
def model():
    return build_detailed_report_model(SCHOOL, SCENARIO, _inputs())


def _by_name(rows):
    return {r["name"]: r for r in rows}


# ── Helpers ──────────────────────────────────────────────────────────────────


class TestHelpers:
    def test_capacity(self):
        cap = compute_capacity(_inputs())
        assert cap["schoolCapacity"] == 100
        assert cap["capacityYear1"] == 100
        assert cap["currentStudents"] == 30
        assert cap["classroomUtilization"] == 15
        assert cap["plannedStudents"] == 38
        assert cap["plannedUtilization"] == pytest.approx(0.38)
        assert cap["avgStudentsPerClassPlanned"] == 19

    def test_capacity_prefers_totals(self):
        cap = compute_capacity({"kapasite": {"totals": {"cur": 500, "y1": 550}}})
        assert (cap["schoolCapacity"], cap["capacityYear1"]) == (500, 550)
        assert cap["classroomUtilization"] is None

    def test_performance_rows_convert_local_actuals(self):
        prev = {"years": {"y1": {
            "students": {"totalStudents": 40},
            "income": {"netIncome": 1000},
            "expenses": {"totalExpenses": 600},
        }}}
        performans = {
            "prevYearRealizedFxUsdToLocal": 20,
            "gerceklesen": {"ogrenciSayisi": 44, "gelirler": 2000, "giderler": 1000},
        }
        rows, fx = build_performance_rows(prev, performans, "LOCAL")
        by_metric = {r["metric"]: r for r in rows}
        assert fx == 20
        assert by_metric["Ogrenci Sayisi"]["variance"] == pytest.approx(0.1)
        assert by_metric["Gelirler"]["actual"] == 100
        assert by_metric["Gelirler"]["variance"] == pytest.approx(-0.9)
        assert by_metric["Kar Zarar"]["planned"] == 400
        assert by_metric["Kar Zarar"]["actual"] == 50
        assert by_metric["Burs ve Indirimler"]["variance"] is None

    def test_performance_without_fx(self):
        rows, fx = build_performance_rows(None, {"gerceklesen": {"gelirler": 10}}, "LOCAL")
        assert fx is None
        assert rows[1]["actual"] is None

    def test_competitors(self):
        rakip = {"okulOncesi": {"a": 100}}
        rows = build_competitor_rows(rakip, normalize_kademe_config(KADEMELER), "local", number_or_zero)
        assert [r["level"] for r in rows] == ["Okul Oncesi (KG)", "Ilkokul (1-4) - YEREL"]
        assert rows[0]["a"] == 100
        assert has_competitor_data(rakip)
        assert not has_competitor_data({"lise": {"a": 0}})

    def test_inflation_years(self):
        years = inflation_years({"y2023": 0.4, "y2024": 0.5}, 2026)
        assert years == [
            {"year": 2023, "value": 0.4},
            {"year": 2024, "value": 0.5},
            {"year": 2025, "value": None},
        ]

    def test_weighted_avg_rate(self):
        rows = [{"planned": 1, "rate": 0.5}, {"planned": 3, "rate": None, "cost": 300}]
        assert weighted_avg_rate(rows, 1000) == pytest.approx((0.5 + 3 * 0.1) / 4)
        assert weighted_avg_rate([{"planned": 0}], 1000) is None


# ── Model ────────────────────────────────────────────────────────────────────


class TestDetailedReportModel:
    def test_header(self, model):
        assert model["currencyCode"] == "USD"
        assert model["headerLabel"] == "Ankara Koleji > Baz > 2025-2026"
        assert model["principalName"] == "Ayşe Yılmaz"
        assert model["programType"] == "Ulusal"
        assert model["academicStartYear"] == 2025

    def test_tuition_table(self, model):
        table = model["tuitionTable"]
        assert [r["level"] for r in table] == [
            "Okul Öncesi (KG)", "İlkokul (1-4)-YEREL", "TOPLAM", "ORTALAMA UCRET",
        ]
        assert table[0]["total"] == 1000 + 50 + 100
        assert table[0]["raisePct"] == 0.1
        assert table[2]["edu"] == 3000
        assert table[2]["studentCount"] == 38
        assert table[3]["edu"] == pytest.approx(AVG_TUITION)
        assert model["avgTuition"] == pytest.approx(AVG_TUITION)

    def test_scholarships_and_discounts(self, model):
        magis = model["scholarships"][0]
        assert magis["name"] == "MAGIS BASARI BURSU"
        assert (magis["planned"], magis["cost"]) == (2, 600)
        assert magis["rate"] == pytest.approx(300 / AVG_TUITION)

        kardes = _by_name(model["discounts"])["KARDES INDIRIMI"]
        assert kardes["planned"] == 19
        assert kardes["cost"] == pytest.approx(2900)
        assert kardes["cur"] == 5

    def test_revenues_and_expenses(self, model):
        revenues = _by_name(model["revenues"])
        assert revenues["Egitim Ucreti"]["amount"] == 58000
        assert revenues["Yemek"]["amount"] == 1000
        assert revenues["Egitim Ucreti"]["ratio"] == pytest.approx(58000 / 59000)

        expenses = _by_name(model["expenses"])
        assert expenses["IK Giderleri (Toplam)"]["amount"] == 2800
        assert expenses["Isletme Giderleri (IK Haric)"]["amount"] == 500
        assert expenses["Egitim Disi Hizmet Maliyetleri"]["amount"] == 400

        assert model["revenueTotal"] == 59000
        assert model["expenseTotal"] == pytest.approx(7300)
        assert model["netTotal"] == pytest.approx(51700)

    def test_stored_results_override_scholarships(self):
        report = {"years": {"y1": {"expenses": {"scholarshipsTotal": 999}}}}
        m = build_detailed_report_model(SCHOOL, SCENARIO, _inputs(), report)
        assert _by_name(m["expenses"])["Burslar"]["amount"] == 999
        assert m["expenseTotal"] == pytest.approx(7300 - 600 + 999)

    def test_parameters(self, model):
        params = {p["desc"]: p["value"] for p in model["parameters"]}
        assert params["Gelir Planlamasi"] == 59000
        assert params["Burs ve Indirim Giderleri (Fizibilite-G71)"] == pytest.approx(3500)
        assert params["Mevcut Egitim Sezonu Ucreti (ortalama)"] == 1500
        assert params["Nihai Ucret"] == pytest.approx(AVG_TUITION + 150)
        assert params["Rakip Kurumlarin Analizi (VAR / YOK)"] == "YOK"

    def test_discount_analysis(self, model):
        analysis = model["discountAnalysis"]["scholarships"]
        assert analysis["perTargetStudent"] == pytest.approx(600 / 38)
        assert analysis["studentShare"] == pytest.approx(2 / 100)
        assert analysis["revenueShare"] == pytest.approx(600 / 59000)

    def test_local_scenario_inputs_are_converted_to_usd(self):
        scenario = {**SCENARIO, "input_currency": "LOCAL", "fx_usd_to_local": 10, "local_currency_code": "TRY"}
        m = build_detailed_report_model(SCHOOL, scenario, _inputs(), report_currency="local")
        assert m["currencyCode"] == "USD"
        assert m["revenueTotal"] == pytest.approx(5900)


# ── AOA ──────────────────────────────────────────────────────────────────────


class TestRaporAoa:
    def test_flatten(self):
        row = flatten({"label": "x", "total": 5})
        assert len(row) == RAPOR_WIDTH
        assert row[RAPOR_COLUMNS["label"]] == "x"
        assert row[RAPOR_COLUMNS["total"]] == 5

    def test_fixed_section_rows(self, model):
        aoa = build_rapor_aoa(model)
        assert aoa[2][RAPOR_COLUMNS["country"]] == "Türkiye"
        assert aoa[27][RAPOR_COLUMNS["signature"]] == "ANKARA KOLEJI"
        assert aoa[SECTION_A_ROW][1] == "A. OKUL EĞİTİM BİLGİLERİ"
        assert aoa[SECTION_B_ROW][1] == "B. OKUL ÜCRETLERİ TABLOSU (YENİ EĞİTİM DÖNEMİ)"

    def test_tuition_rows(self, model):
        aoa = build_rapor_aoa(model)
        header = aoa[SECTION_B_ROW + 3]
        assert header[RAPOR_COLUMNS["edu"]] == "Eğitim Ücreti (USD)"
        first = aoa[SECTION_B_ROW + 4]
        assert first[1] == "Okul Öncesi (KG)"
        assert first[RAPOR_COLUMNS["edu"]] == 1000
        assert first[RAPOR_COLUMNS["total"]] == 1150

    def test_totals_and_parameters(self, model):
        aoa = build_rapor_aoa(model)
        assert ["3", "Gelir Planlamasi", 59000] in aoa
        revenue_total = flatten({"label": "Toplam", "amount": 59000, "ratio": 1})
        assert revenue_total in aoa

    def test_local_conversion(self, model):
        meta = {"input_currency": "LOCAL", "fx_usd_to_local": 40, "local_currency_code": "TRY"}
        aoa = build_rapor_aoa(model, "local", meta)
        assert aoa[SECTION_B_ROW + 3][RAPOR_COLUMNS["edu"]] == "Eğitim Ücreti (TRY)"
        assert aoa[SECTION_B_ROW + 4][RAPOR_COLUMNS["edu"]] == 40000
        assert ["3", "Gelir Planlamasi", 59000 * 40] in aoa

    def test_performance_header(self, model):
        aoa = build_rapor_aoa(model)
        assert any(
            len(r) == RAPOR_WIDTH and r[RAPOR_COLUMNS["perf_planned"]] == "2025-2026 Donemi Planlanan"
            for r in aoa
        )

    def test_empty(self):
        assert build_rapor_aoa(None) == [["Rapor model empty"]]
