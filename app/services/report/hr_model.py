"""
HR ( IK ) sheet model.

Headcounts per organisational level × role and the yearly employer cost of
each role, for the three planning years.

Only Y1 unit costs are entered.  Y2/Y3 are derived here and never stored:

    yerel roles   Y1 × inflation factor   (1+i2), (1+i2)(1+i3)
    other roles   Y1 × ratio, Y2 × ratio  (``ik.unitCostRatio``, default 1)
"""

from __future__ import annotations

import copy
import logging

from app.services.report.common import YEAR_KEYS, CurrencyContext, as_dict, inflation_factors
from app.utils.kademe import KADEME_KEYS, format_kademe_label, normalize_kademe_config
from app.utils.numbers import number_or_zero
from app.utils.program_type import is_kademe_key_visible, normalize_program_type

logger = logging.getLogger(__name__)

YEARS = (("y1", "1.Yıl"), ("y2", "2.Yıl"), ("y3", "3.Yıl"))
DEFAULT_UNIT_COST_RATIO = 1

LEVEL_DEFS: tuple[dict, ...] = (
    {"key": "merkez", "base_label": "MERKEZ / HQ", "kademe_key": None, "suffix": ""},
    {"key": "okulOncesi", "base_label": "Okul Öncesi", "kademe_key": "okulOncesi", "suffix": ""},
    {"key": "ilkokulYerel", "base_label": "İlkokul", "kademe_key": "ilkokul", "suffix": "-YEREL"},
    {"key": "ilkokulInt", "base_label": "İlkokul", "kademe_key": "ilkokul", "suffix": "-INT."},
    {"key": "ortaokulYerel", "base_label": "Ortaokul", "kademe_key": "ortaokul", "suffix": "-YEREL"},
    {"key": "ortaokulInt", "base_label": "Ortaokul", "kademe_key": "ortaokul", "suffix": "-INT."},
    {"key": "liseYerel", "base_label": "Lise", "kademe_key": "lise", "suffix": "-YEREL"},
    {"key": "liseInt", "base_label": "Lise", "kademe_key": "lise", "suffix": "-INT."},
)

ROLE_GROUPS: tuple[dict, ...] = (
    {
        "group_key": "turk",
        "group_label": "MERKEZ TARAFINDAN GÖREVLENDİRİLEN (TÜRK PER.)",
        "roles": (
            ("turk_mudur", "Müdür"),
            ("turk_mdyard", "Md.Yrd."),
            ("turk_egitimci", "Eğitimci (Eğitimci, Öğretmen, Belletmen vb.)"),
            ("turk_temsil", "TEMSİLCİLİK / EĞİTİM KURUMU ÇALIŞANLARI"),
        ),
    },
    {
        "group_key": "yerel",
        "group_label": "YEREL KAYNAKTAN TEMİN EDİLEN ÇALIŞANLAR",
        "roles": (
            ("yerel_yonetici_egitimci", "Yönetici ve Eğitimci"),
            ("yerel_destek", "Destek Per."),
            ("yerel_ulke_temsil_destek", "Ülke Temsilciliği Destek Per."),
        ),
    },
    {
        "group_key": "international",
        "group_label": "INTERNATIONAL",
        "roles": (("int_yonetici_egitimci", "Yönetici ve Eğitimci"),),
    },
)

ALL_ROLES: tuple[tuple[str, str], ...] = tuple(r for g in ROLE_GROUPS for r in g["roles"])
ROLE_GROUP_OF = {key: g["group_key"] for g in ROLE_GROUPS for key, _ in g["roles"]}

# Expense rows of the Giderler sheet fed by HR annual costs
SALARY_BUCKETS: dict[str, tuple[str, ...]] = {
    "turkPersonelMaas": ("turk_mudur", "turk_mdyard", "turk_egitimci"),
    "turkDestekPersonelMaas": ("turk_temsil",),
    "yerelPersonelMaas": ("yerel_yonetici_egitimci",),
    "yerelDestekPersonelMaas": ("yerel_destek", "yerel_ulke_temsil_destek"),
    "internationalPersonelMaas": ("int_yonetici_egitimci",),
}


# ── IK document normalization ───────────────────────────────────────────────


def _deep_merge(target, source) -> dict:
    out = dict(target or {})
    for key, value in as_dict(source).items():
        if isinstance(value, dict):
            out[key] = _deep_merge(as_dict(out.get(key)), value)
        else:
            out[key] = value
    return out


def default_year_ik() -> dict:
    return {
        "unitCosts": {key: 0 for key, _ in ALL_ROLES},
        "headcountsByLevel": {
            lvl["key"]: {key: 0 for key, _ in ALL_ROLES} for lvl in LEVEL_DEFS
        },
    }


def build_ik(value) -> dict:
    """Merge a stored IK document over the zeroed 3-year default.

    The legacy single-year shape ``{unitCosts, headcountsByLevel}`` is read
    as Y1.
    """
    base = {
        "unitCostRatio": DEFAULT_UNIT_COST_RATIO,
        "years": {y: default_year_ik() for y in YEAR_KEYS},
    }
    v = as_dict(value)
    if isinstance(v.get("years"), dict):
        return _deep_merge(base, v)
    if v.get("unitCosts") or v.get("headcountsByLevel"):
        return _deep_merge(base, {"years": {"y1": v}})
    return _deep_merge(base, v)


def normalize_unit_cost_ratio(value):
    n = number_or_zero(value)
    return n if n > 0 else DEFAULT_UNIT_COST_RATIO


def apply_unit_cost_growth(ik, ratio_value, factors=None) -> dict:
    """Derive Y2/Y3 unit costs from Y1."""
    ratio = normalize_unit_cost_ratio(ratio_value)
    factors = factors or {"y1": 1, "y2": 1, "y3": 1}

    out = copy.deepcopy(build_ik(ik))
    out["unitCostRatio"] = ratio
    years = out["years"]
    for y in YEAR_KEYS:
        years[y] = as_dict(years.get(y)) or default_year_ik()
        years[y]["unitCosts"] = as_dict(years[y].get("unitCosts"))

    for key, _ in ALL_ROLES:
        base = number_or_zero(years["y1"]["unitCosts"].get(key))
        if ROLE_GROUP_OF[key] == "yerel":
            y2 = base * factors.get("y2", 1)
            y3 = base * factors.get("y3", 1)
        else:
            y2 = base * ratio
            y3 = y2 * ratio
        years["y2"]["unitCosts"][key] = y2
        years["y3"]["unitCosts"][key] = y3
    return out


def compute_year(year_ik) -> dict:
    """Role totals, annual costs, monthly per-head averages and salary buckets."""
    year_ik = as_dict(year_ik)
    unit_costs = as_dict(year_ik.get("unitCosts"))
    headcounts = as_dict(year_ik.get("headcountsByLevel"))

    role_totals, role_annual, role_monthly = {}, {}, {}
    for key, _ in ALL_ROLES:
        count = sum(
            number_or_zero(as_dict(headcounts.get(lvl["key"])).get(key)) for lvl in LEVEL_DEFS
        )
        annual = number_or_zero(unit_costs.get(key)) * count
        role_totals[key] = count
        role_annual[key] = annual
        role_monthly[key] = annual / 12 / count if count > 0 else 0

    salary_mapping = {
        bucket: sum(role_annual[k] for k in keys) for bucket, keys in SALARY_BUCKETS.items()
    }
    return {
        "roleTotals": role_totals,
        "roleAnnualCosts": role_annual,
        "roleMonthlyPerPersonAvg": role_monthly,
        "salaryExpenseMapping": salary_mapping,
        "totals": {
            "totalAnnual": sum(role_annual.values()),
            "totalHeadcount": sum(role_totals.values()),
        },
    }


def compute_ik_years(inputs, currency: CurrencyContext | None = None) -> dict:
    """Per-year computed IK values (in report currency) for other builders."""
    inputs = as_dict(inputs)
    temel = as_dict(inputs.get("temelBilgiler"))
    raw = build_ik(inputs.get("ik"))
    ik = apply_unit_cost_growth(raw, raw.get("unitCostRatio"), inflation_factors(temel))
    convert = currency.input_money if currency else number_or_zero

    out = {}
    for y in YEAR_KEYS:
        src = ik["years"][y]
        unit_costs = {key: convert(src["unitCosts"].get(key)) for key, _ in ALL_ROLES}
        out[y] = compute_year(
            {"unitCosts": unit_costs, "headcountsByLevel": src.get("headcountsByLevel")}
        )
        out[y]["unitCosts"] = unit_costs
    return {"ik": ik, "years": out}


# ── Model ────────────────────────────────────────────────────────────────────


def _visible_levels(kademeler, program_type) -> list[dict]:
    levels = []
    for lvl in LEVEL_DEFS:
        label = format_kademe_label(lvl["base_label"], kademeler, lvl["kademe_key"])
        levels.append({**lvl, "label": f"{label}{lvl['suffix']}"})

    if all(kademeler[k]["enabled"] is False for k in KADEME_KEYS):
        visible = [lvl for lvl in levels if lvl["key"] == "merkez"]
    else:
        visible = [
            lvl for lvl in levels
            if lvl["key"] != "merkez"
            and kademeler[lvl["kademe_key"]]["enabled"] is not False
            and is_kademe_key_visible(lvl["key"], program_type)
        ]
    return visible or levels


def build_hr_model(scenario=None, inputs=None, report=None, program_type=None,
                   currency_meta=None, report_currency="usd") -> dict:
    inputs = as_dict(inputs)
    ptype = normalize_program_type(program_type)
    currency = CurrencyContext(scenario, currency_meta, report_currency)
    code = currency.currency_code

    kademeler = normalize_kademe_config(as_dict(inputs.get("temelBilgiler")).get("kademeler"))
    visible_levels = _visible_levels(kademeler, ptype)

    computed = compute_ik_years(inputs, currency)
    ik = computed["ik"]
    by_year = computed["years"]

    matrix_headers = ["Kademeler / Satır"]
    for _, role_label in ALL_ROLES:
        for _, year_label in YEARS:
            matrix_headers.append(f"{role_label} ({year_label})")

    def matrix_row(label, value_of):
        row = [label]
        for role_key, _ in ALL_ROLES:
            for year_key, _ in YEARS:
                row.append(value_of(role_key, year_key))
        return row

    matrix_rows = [
        matrix_row(
            f"Birim İşveren Maliyeti / YIL ({code})",
            lambda r, y: number_or_zero(by_year[y]["unitCosts"].get(r)),
        )
    ]
    for lvl in visible_levels:
        matrix_rows.append(matrix_row(
            lvl["label"],
            lambda r, y, lvl_key=lvl["key"]: int(number_or_zero(
                as_dict(as_dict(ik["years"][y].get("headcountsByLevel")).get(lvl_key)).get(r)
            )),
        ))
    matrix_rows.append(matrix_row(
        "TOPLAM YILLIK MALİYET", lambda r, y: by_year[y]["roleAnnualCosts"][r],
    ))
    matrix_rows.append(matrix_row(
        "Ortalama Aylık / Kişi (Bilgi)", lambda r, y: by_year[y]["roleMonthlyPerPersonAvg"][r],
    ))
    matrix_rows.append(matrix_row(
        "TOPLAM PERSONEL SAYISI", lambda r, y: int(by_year[y]["roleTotals"][r]),
    ))

    totals_rows = [
        [year_label, by_year[y]["totals"]["totalAnnual"], int(by_year[y]["totals"]["totalHeadcount"])]
        for y, year_label in YEARS
    ]
    salary_rows = [
        [bucket] + [by_year[y]["salaryExpenseMapping"][bucket] for y in YEAR_KEYS]
        for bucket in SALARY_BUCKETS
    ]

    logger.debug("HR model: %d visible levels, currency %s", len(visible_levels), code)
    return {
        "title": "HR ( IK )",
        "currencyCode": code,
        "unitCostRatio": ik["unitCostRatio"],
        "meta": {"programType": ptype, "hasReport": bool(report)},
        "sections": [
            {
                "title": "PERSONEL SAYILARI VE İŞVEREN MALİYETLERİ",
                "tables": [
                    {
                        "title": "Parametreler",
                        "headers": ["Parametre", "Değer"],
                        "rows": [
                            ["Yıllık Birim Maliyet Çarpanı (Y2/Y3)", ik["unitCostRatio"]],
                            ["Para Birimi", code],
                        ],
                    },
                    {
                        "title": "Personel ve Maliyet Matrisi",
                        "headers": matrix_headers,
                        "rows": matrix_rows,
                    },
                    {
                        "title": "Yıllık Toplamlar",
                        "headers": ["Yıl", f"Toplam Yıllık Maliyet ({code})", "Toplam Personel"],
                        "rows": totals_rows,
                    },
                    {
                        "title": "Gider Anahtarı (Salary Mapping)",
                        "headers": [
                            "Gider Anahtarı",
                            f"1.Yıl ({code})",
                            f"2.Yıl ({code})",
                            f"3.Yıl ({code})",
                        ],
                        "rows": salary_rows,
                    },
                ],
            }
        ],
    }
