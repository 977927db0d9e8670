"""
Tests for the scenario xlsx export service.
"""

import io
import logging

import pytest
from openpyxl import load_workbook

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.scenario import School
from app.services.export_service import (
    academic_year_with_offset,
    build_export_sheets,
    build_scenario_export,
    export_filename,
)

SHEETS = [
    "RAPOR",
    "TEMEL BİLGİLER",
    "Kapasite",
    "HR ( IK )",
    "Gelirler ( Incomes )",
    "Giderler ( Expenses )",
    "N.Kadro ( 2025-2026 )",
    "N.Kadro ( 2026-2027 )",
    "N.Kadro ( 2027-2028 )",
    "Mali Tablolar",
]
LOCAL_COLS = {"input_currency": "LOCAL", "fx_usd_to_local": 40, "local_currency_code": "TRY"}


def _load(content):
    return load_workbook(io.BytesIO(content))


# ── Helpers ──────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("year,offset,expected", [
    ("2025-2026", 0, "2025-2026"),
    ("2025-2026", 2, "2027-2028"),
    ("2025 - 2026", 1, "2026-2027"),
    ("2025", 1, "2026-2027"),
    ("Bahar", 1, "Bahar"),
    (None, 2, "Y3"),
])
def test_academic_year_with_offset(year, offset, expected):
    assert academic_year_with_offset(year, offset) == expected


def test_export_filename():
    assert export_filename("Ankara Koleji", "2025-2026") == "Ankara Koleji-2025-2026.xlsx"
    assert export_filename("Ankara Koleji", "2025-2026", "TRY") == "Ankara Koleji-2025-2026-TRY.xlsx"
    assert export_filename(None, "") == "school.xlsx"


def test_build_export_sheets_order():
    sheets = build_export_sheets(
        {"name": "Okul"}, {"academic_year": "2025-2026"}, {}, {}, {},
    )
    assert [name for name, _ in sheets] == SHEETS
    assert sheets[6][1][0] == ["N.Kadro ( 2025-2026 )"]


# ── Full export ──────────────────────────────────────────────────────────────


class TestBuildScenarioExport:
    def test_usd_export(self, pool, school, scenario):
        filename, content = build_scenario_export(pool, school.id, scenario.id)
        assert filename == "Ankara Koleji-2025-2026.xlsx"

        wb = _load(content)
        assert wb.sheetnames == SHEETS
        assert wb["N.Kadro ( 2026-2027 )"]["A1"].value == "N.Kadro ( 2026-2027 )"
        assert wb["RAPOR"]["B59"].value == "A. OKUL EĞİTİM BİLGİLERİ"

        mali = wb["Mali Tablolar"]
        assert mali["A4"].value == "Net Ciro"
        assert mali["B4"].value == 90000
        assert mali["A8"].value == "Para Birimi"
        assert mali["B8"].value == "USD"

    def test_local_export(self, pool, school, make_scenario):
        sc = make_scenario(**LOCAL_COLS)
        filename, content = build_scenario_export(pool, school.id, sc.id, "LOCAL")
        assert filename == "Ankara Koleji-2025-2026-TRY.xlsx"
        mali = _load(content)["Mali Tablolar"]
        assert mali["B4"].value == 90000 * 40
        assert mali["B8"].value == "TRY"

    def test_usd_export_of_local_scenario(self, pool, school, make_scenario):
        sc = make_scenario(**LOCAL_COLS)
        filename, content = build_scenario_export(pool, school.id, sc.id, "usd")
        assert filename == "Ankara Koleji-2025-2026.xlsx"
        assert _load(content)["Mali Tablolar"]["B4"].value == 90000

    def test_previous_scenario_feeds_performance(self, pool, school, make_scenario):
        make_scenario("2024-2025", results={"years": {"y1": {"income": {"netIncome": 1234}}}})
        sc = make_scenario("2025-2026")
        _, content = build_scenario_export(pool, school.id, sc.id)
        rows = list(_load(content)["TEMEL BİLGİLER"].iter_rows(values_only=True))
        assert any(r[0] == "Gelirler" and r[1] == 1234 for r in rows)

    def test_missing_results_still_export(self, pool, school, make_scenario):
        sc = make_scenario(results=False)
        _, content = build_scenario_export(pool, school.id, sc.id)
        assert _load(content)["Mali Tablolar"]["B4"].value is None

    def test_logs_context(self, pool, school, scenario, caplog):
        with caplog.at_level(logging.INFO, logger="app.services.export_service"):
            build_scenario_export(pool, school.id, scenario.id)
        record = next(r for r in caplog.records if r.getMessage().startswith("Scenario export built"))
        assert record.scenario_id == scenario.id
        assert record.report_currency == "usd"


class TestExportErrors:
    def test_unknown_school(self, pool, scenario):
        with pytest.raises(NotFoundError, match="School"):
            build_scenario_export(pool, 9999, scenario.id)

    def test_scenario_of_other_school(self, pool, scenario):
        other = School(name="Başka Okul")
        db.session.add(other)
        db.session.commit()
        with pytest.raises(NotFoundError, match="Scenario"):
            build_scenario_export(pool, other.id, scenario.id)

    def test_invalid_currency(self, pool, school, scenario):
        with pytest.raises(ValidationError, match="Invalid reportCurrency"):
            build_scenario_export(pool, school.id, scenario.id, "eur")

    def test_local_needs_local_scenario(self, pool, school, scenario):
        with pytest.raises(ValidationError, match="requires LOCAL scenario"):
            build_scenario_export(pool, school.id, scenario.id, "local")

    def test_local_needs_fx_and_code(self, pool, school, make_scenario):
        sc = make_scenario(input_currency="LOCAL", fx_usd_to_local=40)
        with pytest.raises(ValidationError, match="FX rate and local currency code required"):
            build_scenario_export(pool, school.id, sc.id, "local")

    def test_norm_config_missing(self, pool, make_scenario):
        bare = School(name="Normsuz Okul")
        db.session.add(bare)
        db.session.commit()
        sc = make_scenario(school_id=bare.id)
        with pytest.raises(ValidationError, match="Norm config missing"):
            build_scenario_export(pool, bare.id, sc.id)
