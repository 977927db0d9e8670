"""
Tests for the Giderler ( Expenses ) model: HR-fed salary rows, inflation
growth, per-student service costs, scholarship rows and the AOA.
"""

import pytest

from app.services.excel.giderler_aoa import build_giderler_aoa
from app.services.report.giderler_model import (
    OPERATING_ITEMS,
    ExpenseCalculator,
    build_giderler_model,
)
from app.utils.numbers import number_or_zero


def _inputs():
    return {
        "temelBilgiler": {
            "kademeler": {
                "okulOncesi": {"enabled": True, "from": "KG", "to": "KG"},
                "ilkokul": {"enabled": True, "from": "1", "to": "4"},
                "ortaokul": {"enabled": False},
                "lise": {"enabled": False},
            },
            "inflation": {"y2": 0.1, "y3": 0},
        },
        "gradesYears": {"y1": [
            {"grade": "KG", "branchCount": 1, "studentsPerBranch": 18},
            {"grade": "1", "branchCount": 1, "studentsPerBranch": 20},
        ]},
        "gelirler": {
            "tuition": {"rows": [{"key": "okulOncesi", "unitFee": 1000}, {"key": "ilkokulYerel", "unitFee": 2000}]},
            "nonEducationFees": {"rows": [{"key": "yemek", "studentCount": 10, "studentCountY2": 12, "unitFee": 100}]},
        },
        "discounts": [{"name": "Kardeş İndirimi", "mode": "percent", "ratio": 0.5, "value": 0.1}],
        "ik": {"years": {"y1": {
            "unitCosts": {"turk_egitimci": 1000},
            "headcountsByLevel": {"ilkokulYerel": {"turk_egitimci": 2}},
        }}},
        "giderler": {
            "isletme": {"items": {"kira": 500, "turkPersonelMaas": 2500, "yerelPersonelMaas": 300}},
            "ogrenimDisi": {"items": {"yemek": {"unitCost": 40}}},
        },
    }


@pytest.fixture()
def model():
    return build_giderler_model({"academic_year": "2025-2026"}, _inputs())


def _operating(model, key):
    return next(r for r in model["sections"]["operating"]["rows"] if r["key"] == key)


class TestExpenseCalculator:
    def _calc(self, items, hr_y1=0, hr_y2=0):
        salary = {
            "y1": {"turkPersonelMaas": hr_y1},
            "y2": {"turkPersonelMaas": hr_y2},
            "y3": {"turkPersonelMaas": 0},
        }
        return ExpenseCalculator({"isletme": {"items": items}}, salary, {"y1": 1, "y2": 1.5, "y3": 2}, number_or_zero)

    def test_plain_item_grows_with_inflation(self):
        calc = self._calc({"kira": 100})
        assert calc.amount("kira", "y3") == 200
        assert calc.amount("vergiler", "y1") == 0

    def test_salary_from_hr_keeps_entered_extra(self):
        calc = self._calc({"turkPersonelMaas": 1200}, hr_y1=1000, hr_y2=1100)
        assert calc.amount("turkPersonelMaas", "y1") == 1200
        assert calc.amount("turkPersonelMaas", "y2") == 1100 + 200 * 1.5
        assert calc.amount("turkPersonelMaas", "y3") == 1000 * 2 + 200 * 2

    def test_salary_without_hr_uses_entered(self):
        calc = self._calc({"turkPersonelMaas": 400})
        assert calc.amount("turkPersonelMaas", "y2") == 600


class TestGiderlerModel:
    def test_operating_rows(self, model):
        rows = model["sections"]["operating"]["rows"]
        assert len(rows) == len(OPERATING_ITEMS)
        assert _operating(model, "kira")["groupLabel"] == "Eğitim Hizmetleri Maliyetleri"
        assert _operating(model, "emsalKira")["groupLabel"] == ""
        assert _operating(model, "kira")["y2"]["yoyPct"] == pytest.approx(10)
        assert "yoyPct" not in _operating(model, "kira")["y1"]

    def test_salary_rows(self, model):
        assert _operating(model, "turkPersonelMaas")["y1"]["amount"] == 2500
        assert _operating(model, "turkPersonelMaas")["y2"]["amount"] == pytest.approx(2550)
        assert _operating(model, "yerelPersonelMaas")["y2"]["amount"] == pytest.approx(330)

    def test_totals(self, model):
        totals = model["totals"]
        assert totals["operatingTotals"]["y1"] == 3300
        assert totals["operatingTotals"]["y2"] == pytest.approx(3430)
        assert totals["svcTotals"]["y1"] == 400
        assert totals["svcTotals"]["y2"] == pytest.approx(12 * 44)
        assert totals["totalExpenses"]["y1"] == 3700
        assert totals["netCiro"]["y1"] == pytest.approx(56100)
        assert _operating(model, "kira")["y1"]["opPct"] == pytest.approx(500 / 3300 * 100)

    def test_scholarship_rows(self, model):
        burs = model["sections"]["burs"]
        kardes = next(r for r in burs["rows"] if r["name"] == "KARDEŞ İNDİRİMİ")
        assert kardes["y1"]["studentCount"] == 19
        assert kardes["y1"]["avgPct"] == pytest.approx(10)
        assert kardes["y1"]["total"] == pytest.approx(2900)
        assert burs["totals"]["y1"]["studentCount"] == 19
        assert burs["ratios"]["ratioStudentsY1"] == pytest.approx(50)
        assert burs["ratios"]["ratioAmountY1"] == pytest.approx(5)

    def test_summary(self, model):
        summary = {r["label"]: r for r in model["sections"]["summary"]["rows"]}
        assert summary["Toplam Gider"]["y1"] == 3700
        assert summary["Gider / Net Ciro"]["y1"] == pytest.approx(3700 / 56100 * 100)


class TestGiderlerAoa:
    def test_layout(self, model):
        aoa = build_giderler_aoa(model)
        assert aoa[:2] == [["Giderler ( Expenses )"], ["Para Birimi", "USD"]]
        assert aoa[3] == ["GİDERLER (İŞLETME) / YIL (USD)"]
        assert len(aoa[5]) == 14

        total = next(r for r in aoa if len(r) > 2 and r[2] == "TOPLAM")
        assert total[3:5] == [3300, 100]
        assert total[6] == pytest.approx((3430 / 3300 - 1) * 100)

        assert ["Toplam Gider", 3700, pytest.approx(3430 + 528), pytest.approx(3430 + 440)] in aoa

    def test_empty(self):
        assert build_giderler_aoa(None) == [["Giderler model empty"]]
