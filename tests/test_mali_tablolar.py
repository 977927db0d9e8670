"""Tests for the Mali Tablolar model and AOA."""

import pytest

from app.services.excel.mali_tablolar_aoa import build_mali_tablolar_aoa
from app.services.report.mali_tablolar_model import build_mali_tablolar_model

REPORT = {
    "years": {
        "y1": {
            "income": {"netIncome": 1000, "netActivityIncome": 900},
            "expenses": {"totalExpenses": 800},
            "result": {"netResult": 200},
            "kpis": {"profitMargin": 0.2},
        },
        "y2": {"income": {"netIncome": 1100}},
    }
}
LOCAL_META = {"input_currency": "LOCAL", "fx_usd_to_local": 40, "local_currency_code": "TRY"}


def _values(model):
    return {r["label"]: r["values"] for r in model["rows"]}


def test_usd_rows():
    model = build_mali_tablolar_model({"id": 7, "academic_year": "2025-2026"}, {}, REPORT)
    values = _values(model)
    assert values["Net Toplam Gelir"] == [1000, 1100, None]
    assert values["Net Sonuç"] == [200, None, None]
    assert values["Kâr Marjı"][0] == pytest.approx(20)
    assert model["currencyLabel"] == "USD"
    assert model["meta"]["scenarioId"] == 7
    assert next(r for r in model["rows"] if r["label"] == "Net Sonuç")["emphasize"] is True


def test_local_report_converts_money_not_margin():
    model = build_mali_tablolar_model({}, {}, REPORT, currency_meta=LOCAL_META, report_currency="local")
    values = _values(model)
    assert values["Toplam Gider"][0] == 32000
    assert values["Kâr Marjı"][0] == pytest.approx(20)
    assert model["currencyLabel"] == "TRY"


def test_aoa():
    aoa = build_mali_tablolar_aoa(build_mali_tablolar_model({}, {}, REPORT))
    assert aoa[0] == ["Mali Tablolar"]
    assert aoa[1] == ["Kalem", "Y1", "Y2", "Y3"]
    assert aoa[2] == ["Net Toplam Gelir", 1000, 1100, None]
    assert aoa[-1] == ["Para Birimi", "USD", None, None]


def test_aoa_pads_rows():
    aoa = build_mali_tablolar_aoa({"rows": [{"label": "x", "value": 5}]})
    assert aoa[-1] == ["x", 5, None, None]
    assert build_mali_tablolar_aoa(None)[2] == ["Model empty", None, None, None]
