"""Mali Tablolar sheet model: the five summary KPI lines for Y1..Y3."""

from __future__ import annotations

from app.services.report.common import CurrencyContext, as_dict, get_path, pick_years
from app.utils.numbers import number_or_null, pct_to_display

HEADERS = ["Kalem", "Y1", "Y2", "Y3"]

MONEY_ROWS: tuple[tuple[str, str], ...] = (
    ("Net Toplam Gelir", "income.netIncome"),
    ("Net Ciro", "income.netActivityIncome"),
    ("Toplam Gider", "expenses.totalExpenses"),
    ("Net Sonuç", "result.netResult"),
)
PROFIT_MARGIN = ("Kâr Marjı", "kpis.profitMargin")


def build_mali_tablolar_model(scenario=None, inputs=None, report=None,
                              currency_meta=None, report_currency="usd") -> dict:
    years = pick_years(report)
    currency = CurrencyContext(scenario, currency_meta, report_currency)
    scenario = as_dict(scenario)
    inputs = as_dict(inputs)

    def values(path, convert):
        return [convert(number_or_null(get_path(years[y], path))) for y in ("y1", "y2", "y3")]

    rows = []
    for label, path in MONEY_ROWS:
        row = {"label": label, "values": values(path, currency.result_money), "type": "money"}
        if label == "Net Sonuç":
            row["emphasize"] = True
        rows.append(row)
    rows.append({
        "label": PROFIT_MARGIN[0],
        "values": values(PROFIT_MARGIN[1], pct_to_display),
        "type": "percent",
    })

    return {
        "title": "Mali Tablolar",
        "currencyLabel": currency.currency_code,
        "headers": list(HEADERS),
        "rows": rows,
        "meta": {
            "scenarioId": scenario.get("id"),
            "schoolId": scenario.get("school_id"),
            "academicYear": scenario.get("academic_year"),
            "programType": scenario.get("program_type")
            or as_dict(inputs.get("temelBilgiler")).get("programType"),
        },
    }
