"""
Tests for the TEMEL BİLGİLER model: parameter rows, headcount summary,
scholarship grouping and the previous-period performance comparison.
"""

import pytest

from app.services.excel.temel_bilgiler_aoa import build_temel_bilgiler_aoa
from app.services.report.temel_bilgiler_model import (
    PERF_FX_WARNING,
    build_fee_param_rows,
    build_temel_bilgiler_model,
    compute_current_students,
    compute_planned_headcounts,
    compute_planned_perf,
    get_scholarship_groups,
)

PREV_REPORT = {
    "years": {
        "y1": {
            "students": {"totalStudents": 40},
            "income": {"netIncome": 1000, "totalDiscounts": 50},
            "expenses": {"totalExpenses": 600},
        }
    }
}
LOCAL_META = {"input_currency": "LOCAL", "fx_usd_to_local": 40, "local_currency_code": "TRY"}


def _inputs(**tb):
    base = {
        "ucretArtisOranlari": {"okulOncesi": 0.1, "ilkokulYerel": 0.3, "ilkokulInt": 0.9},
        "performans": {"gerceklesen": {"ogrenciSayisi": 38, "gelirler": 2000, "giderler": 1500}},
        "inflation": {"y1": 0.25},
    }
    base.update(tb)
    return {
        "temelBilgiler": base,
        "gradesCurrent": [{"grade": "1", "branchCount": 2, "studentsPerBranch": 30}],
        "ik": {"years": {"y1": {"headcountsByLevel": {"ilkokulYerel": {"turk_mudur": 1, "turk_egitimci": 2}}}}},
    }


def _table(model, title):
    for section in model["sections"]:
        for table in section["tables"]:
            if table["title"] == title:
                return table
    raise AssertionError(title)


def _perf(model):
    return {row[0]: row for row in _table(model, "Planlanan (Önceki Senaryo) vs Gerçek")["rows"]}


class TestHelpers:
    def test_fee_param_labels_follow_base_year(self):
        labels = [r["label"] for r in build_fee_param_rows(2025)]
        assert "2022 YILI ENFLASYON ORANI" in labels
        assert "1. YIL TAHMİNİ ENFLASYON ORANI (2025 YILI)" in labels
        assert build_fee_param_rows(None)[4]["label"].endswith("(2026 YILI)")

    def test_planned_headcounts_sum_levels(self):
        counts = compute_planned_headcounts({
            "years": {"y1": {"headcountsByLevel": {
                "ilkokulYerel": {"turk_mudur": 1, "turk_egitimci": 2},
                "liseYerel": {"yerel_destek": 4, "turk_egitimci": 1},
            }}}
        })
        assert counts["turkPersonelYoneticiEgitimci"] == 4
        assert counts["yerelDestek"] == 4
        assert counts["international"] == 0

    def test_scholarship_groups(self):
        groups = {g["key"]: g for g in get_scholarship_groups()}
        assert set(groups) == {"burs", "indirim"}
        assert len(groups["burs"]["rows"]) == 7
        assert ("kardesIndirimi", "Kardeş İndirimi") in groups["indirim"]["rows"]

    def test_planned_perf(self):
        perf = compute_planned_perf(PREV_REPORT)
        assert perf == {"ogrenci": 40, "gelirler": 1000, "giderler": 600, "karZarar": 400, "bursIndirim": 50}
        assert compute_planned_perf(None) is None

    def test_current_students_prefers_declared(self):
        assert compute_current_students({"kapasite": {"currentStudents": 99}, "gradesCurrent": []}) == 99
        assert compute_current_students(_inputs()) == 30


class TestTemelBilgilerModel:
    def test_summary_and_fee_rows(self):
        model = build_temel_bilgiler_model(
            school={"name": "Ankara Koleji"},
            scenario={"academic_year": "2025-2026", "input_currency": "USD"},
            inputs=_inputs(),
        )
        assert model["meta"]["schoolName"] == "Ankara Koleji"
        assert model["meta"]["programLabel"] == "Yerel"
        assert _table(model, "Genel Göstergeler")["rows"][2] == ["Öğr./Sınıf (Fiili)", 15]

        rates = _table(model, "Okul Ücretleri Artış Oranları")["rows"]
        assert [r[0] for r in rates] == [
            "Okul Öncesi (KG)", "İlkokul (1-5)-YEREL", "Ortaokul (6-9)-YEREL", "Lise (10-12)-YEREL",
        ]
        assert rates[1][1] == pytest.approx(30)

        ik = _table(model, "Mevcut vs Planlanan (IK)")["rows"]
        assert ik[0][2] == 3

    def test_usd_report_of_local_scenario_needs_realised_fx(self):
        model = build_temel_bilgiler_model(
            scenario={"academic_year": "2025-2026"}, inputs=_inputs(),
            prev_report=PREV_REPORT, currency_meta=LOCAL_META,
        )
        perf = _perf(model)
        assert perf["Gelirler"] == ["Gelirler", 1000, None, "USD"]
        assert perf["Not"][1] == PERF_FX_WARNING

    def test_usd_report_converts_realised_with_fx(self):
        inputs = _inputs()
        inputs["temelBilgiler"]["performans"]["prevYearRealizedFxUsdToLocal"] = 20
        perf = _perf(build_temel_bilgiler_model(
            scenario={}, inputs=inputs, prev_report=PREV_REPORT, currency_meta=LOCAL_META,
        ))
        assert perf["Gelirler"][2] == 100
        assert perf["Kar / Zarar"][1:] == [400, 25, "USD"]
        assert "Not" not in perf

    def test_local_report_uses_previous_scenario_fx_for_plan(self):
        perf = _perf(build_temel_bilgiler_model(
            scenario={}, inputs=_inputs(), prev_report=PREV_REPORT,
            currency_meta=LOCAL_META, prev_currency_meta={"fx_usd_to_local": 30},
            report_currency="local",
        ))
        assert perf["Gelirler"] == ["Gelirler", 30000, 2000, "TRY"]
        assert perf["Öğrenci Sayısı"][1:3] == [40, 38]

    def test_no_previous_report(self):
        perf = _perf(build_temel_bilgiler_model(scenario={}, inputs=_inputs()))
        assert perf["Gelirler"][1] is None


class TestTemelBilgilerAoa:
    def test_flattened(self):
        aoa = build_temel_bilgiler_aoa(build_temel_bilgiler_model(inputs=_inputs()))
        assert aoa[0] == ["TEMEL BİLGİLER"]
        assert ["Gösterge", "Değer"] in aoa

    def test_empty(self):
        assert build_temel_bilgiler_aoa(None)[2] == ["Temel Bilgiler model empty"]
