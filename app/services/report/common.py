"""
Shared pieces of the report model builders.

Currency
--------
Two kinds of money flow into a sheet:

    results money   stored in USD by the feasibility engine; a LOCAL report
                    multiplies it by ``fx_usd_to_local``
    inputs money    stored in the scenario's input currency; a USD report of
                    a LOCAL scenario divides it by ``fx_usd_to_local``

A LOCAL report is only possible for a LOCAL scenario with a positive FX
rate and a currency code; the export endpoint rejects anything else, and
``CurrencyContext`` falls back to USD for the same cases.
"""

from __future__ import annotations

import re

from app.utils.numbers import number_or_null, number_or_zero

YEAR_KEYS: tuple[str, ...] = ("y1", "y2", "y3")

_RANGE_YEAR_RE = re.compile(r"^(\d{4})\s*-\s*(\d{4})$")
_SINGLE_YEAR_RE = re.compile(r"^(\d{4})$")


def as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def as_list(value) -> list:
    return value if isinstance(value, list) else []


def get_path(obj, path: str):
    """Walk a dotted path through nested dicts; ``None`` on any gap."""
    cur = obj
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


def pick_years(report) -> dict:
    """``{"y1", "y2", "y3"}`` year blocks of a results document.

    A flat (single year) document is treated as ``y1``.
    """
    if not isinstance(report, dict):
        return {"y1": None, "y2": None, "y3": None}
    years = report.get("years")
    if isinstance(years, dict):
        return {k: years.get(k) or None for k in YEAR_KEYS}
    return {"y1": report, "y2": None, "y3": None}


def can_show_local(currency_meta) -> bool:
    meta = as_dict(currency_meta)
    fx = number_or_zero(meta.get("fx_usd_to_local"))
    return (
        str(meta.get("input_currency") or "").upper() == "LOCAL"
        and fx > 0
        and bool(meta.get("local_currency_code"))
    )


class CurrencyContext:
    """Resolved currency settings for one export."""

    def __init__(self, scenario=None, currency_meta=None, report_currency="usd"):
        scenario = as_dict(scenario)
        meta = as_dict(currency_meta)
        merged = {
            "input_currency": meta.get("input_currency") or scenario.get("input_currency") or "USD",
            "fx_usd_to_local": meta.get("fx_usd_to_local") or scenario.get("fx_usd_to_local"),
            "local_currency_code": meta.get("local_currency_code") or scenario.get("local_currency_code"),
        }
        self.input_currency = str(merged["input_currency"]).upper()
        self.fx = number_or_zero(merged["fx_usd_to_local"])
        self.local_code = merged["local_currency_code"] or None
        self.report_currency = "local" if str(report_currency or "usd").lower() == "local" else "usd"
        self.show_local = self.report_currency == "local" and can_show_local(merged)
        self.currency_code = str(self.local_code) if self.show_local else "USD"

    @property
    def input_scale(self) -> float:
        """Factor turning inputs money into report money."""
        if not self.show_local and self.input_currency == "LOCAL" and self.fx > 0:
            return 1 / self.fx
        return 1

    def input_money(self, value):
        return number_or_zero(value) * self.input_scale

    def result_money(self, value):
        """Results (USD) money in report currency; ``None`` stays ``None``."""
        n = number_or_null(value)
        if n is None:
            return None
        return n * self.fx if self.show_local else n


def inflation_factors(temel_bilgiler) -> dict:
    """Cumulative price factors: y1 = 1, y2 = 1+i2, y3 = (1+i2)(1+i3)."""
    infl = as_dict(as_dict(temel_bilgiler).get("inflation"))
    i2 = number_or_zero(infl.get("y2"))
    i3 = number_or_zero(infl.get("y3"))
    return {"y1": 1, "y2": 1 + i2, "y3": (1 + i2) * (1 + i3)}


def build_year_meta(academic_year) -> dict:
    """Long/short column labels for the three planning years.

    ``"2025-2026"`` → ``{"y1": {"labelLong": "1.Yıl (2025-2026 EĞİTİM
    ÖĞRETİM YILI)", "labelShort": "1.Yıl (2025-2026)"}, ...}``.
    """
    raw = str(academic_year or "").strip()
    start = None
    match = _RANGE_YEAR_RE.match(raw) or _SINGLE_YEAR_RE.match(raw)
    if match:
        start = int(match.group(1))

    meta = {}
    for idx, key in enumerate(YEAR_KEYS):
        n = idx + 1
        if start is None:
            meta[key] = {"labelLong": f"{n}.Yıl", "labelShort": f"{n}.Yıl"}
            continue
        s, e = start + idx, start + idx + 1
        meta[key] = {
            "labelLong": f"{n}.Yıl ({s}-{e} EĞİTİM ÖĞRETİM YILI)",
            "labelShort": f"{n}.Yıl ({s}-{e})",
        }
    return meta


def normalize_planning_grades(value) -> dict:
    """Planning grade rows per year.

    A bare list applies to every year; a per-year dict (optionally under
    ``years``) falls back to Y1 for a missing Y2/Y3.
    """
    if isinstance(value, list):
        return {"y1": value, "y2": value, "y3": value}
    if isinstance(value, dict):
        years = value.get("years") if isinstance(value.get("years"), dict) else value
        y1 = as_list(years.get("y1"))
        y2 = years["y2"] if isinstance(years.get("y2"), list) else y1
        y3 = years["y3"] if isinstance(years.get("y3"), list) else y1
        return {"y1": y1, "y2": y2, "y3": y3}
    return {"y1": [], "y2": [], "y3": []}
