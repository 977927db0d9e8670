"""
Scenario xlsx export.

Loads one scenario with everything its report needs (school, inputs,
results, norm config, previous year), runs the model builders, flattens
each model to AOA and writes the sheets in a fixed order:

    RAPOR, TEMEL BİLGİLER, Kapasite, HR ( IK ), Gelirler ( Incomes ),
    Giderler ( Expenses ), N.Kadro ( <year> ) x3, Mali Tablolar

Results are read as stored in ``scenario_results``; nothing is recomputed.
Content returned in-memory, no temp files.
"""

from __future__ import annotations

import logging
import re

from app.core.exceptions import NotFoundError, ValidationError
from app.services.excel.gelirler_aoa import build_gelirler_aoa
from app.services.excel.giderler_aoa import build_giderler_aoa
from app.services.excel.hr_aoa import build_hr_aoa
from app.services.excel.kapasite_aoa import build_kapasite_aoa
from app.services.excel.mali_tablolar_aoa import build_mali_tablolar_aoa
from app.services.excel.norm_aoa import build_norm_aoa
from app.services.excel.rapor_aoa import build_rapor_aoa
from app.services.excel.temel_bilgiler_aoa import build_temel_bilgiler_aoa
from app.services.excel.workbook import build_workbook
from app.services.norm_config import get_norm_config_row_for_scenario, normalize_norm_config_row
from app.services.prev_scenario import get_prev_scenario
from app.services.report.common import can_show_local
from app.services.report.detailed_report_model import build_detailed_report_model
from app.services.report.gelirler_model import build_gelirler_model
from app.services.report.giderler_model import build_giderler_model
from app.services.report.hr_model import build_hr_model
from app.services.report.kapasite_model import build_kapasite_model
from app.services.report.mali_tablolar_model import build_mali_tablolar_model
from app.services.report.norm_model import build_norm_model
from app.services.report.temel_bilgiler_model import build_temel_bilgiler_model
from app.utils.program_type import get_program_type
from app.utils.scenario_profile import safe_parse_inputs

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
REPORT_CURRENCIES = ("usd", "local")
NORM_SHEET_COUNT = 3

_YEAR_RANGE_RE = re.compile(r"^(\d{4})\s*-\s*(\d{4})$")
_YEAR_SINGLE_RE = re.compile(r"^(\d{4})$")


def academic_year_with_offset(academic_year, offset: int) -> str:
    """``"2025-2026"`` + 1 → ``"2026-2027"``; unparseable years fall back to ``Y<n>``."""
    raw = str(academic_year or "").strip()
    match = _YEAR_RANGE_RE.match(raw)
    if match:
        return f"{int(match.group(1)) + offset}-{int(match.group(2)) + offset}"
    match = _YEAR_SINGLE_RE.match(raw)
    if match:
        start = int(match.group(1)) + offset
        return f"{start}-{start + 1}"
    return raw or f"Y{offset + 1}"


def currency_meta_of(row) -> dict:
    row = row or {}
    return {
        "input_currency": row.get("input_currency"),
        "fx_usd_to_local": row.get("fx_usd_to_local"),
        "local_currency_code": row.get("local_currency_code"),
        "program_type": row.get("program_type"),
    }


def export_filename(school_name, academic_year, local_code=None) -> str:
    parts = [str(school_name or "school").strip(), str(academic_year or "").strip()]
    if local_code:
        parts.append(str(local_code).strip())
    return "-".join(p for p in parts if p) + ".xlsx"


def _first(rows):
    return rows[0] if rows else None


def _load_school_and_scenario(pool, school_id, scenario_id) -> tuple[dict, dict]:
    school = _first(pool.query(
        "SELECT id, name, country_name, principal_name, representative_name "
        "FROM schools WHERE id=:id",
        {"id": school_id},
    ))
    if school is None:
        raise NotFoundError(resource="School", resource_id=school_id)
    scenario = _first(pool.query(
        "SELECT * FROM school_scenarios WHERE id=:id AND school_id=:sid",
        {"id": scenario_id, "sid": school_id},
    ))
    if scenario is None:
        raise NotFoundError(resource="Scenario", resource_id=scenario_id)
    return school, scenario


def _validate_report_currency(report_currency, currency_meta) -> str:
    currency = str(report_currency or "usd").strip().lower()
    if currency not in REPORT_CURRENCIES:
        raise ValidationError("Invalid reportCurrency", details={"reportCurrency": "usd | local"})
    if currency == "local":
        if str(currency_meta.get("input_currency") or "").upper() != "LOCAL":
            raise ValidationError("Local report requires LOCAL scenario")
        if not can_show_local(currency_meta):
            raise ValidationError("FX rate and local currency code required")
    return currency


def build_export_sheets(school, scenario, inputs, report, norm_config, prev_report=None,
                        currency_meta=None, prev_currency_meta=None, report_currency="usd") -> list:
    """Ordered ``[(sheet name, aoa), ...]`` for one scenario."""
    program_type = get_program_type(scenario, inputs)

    detailed = build_detailed_report_model(
        school=school, scenario=scenario, inputs=inputs, report=report, prev_report=prev_report,
        currency_meta=currency_meta, prev_currency_meta=prev_currency_meta,
        report_currency=report_currency, program_type=program_type,
    )
    temel = build_temel_bilgiler_model(
        school=school, scenario=scenario, inputs=inputs, report=report, prev_report=prev_report,
        currency_meta=currency_meta, prev_currency_meta=prev_currency_meta,
        report_currency=report_currency, program_type=program_type,
    )
    kapasite = build_kapasite_model(
        scenario=scenario, inputs=inputs, program_type=program_type, currency_meta=currency_meta,
    )
    hr = build_hr_model(
        scenario=scenario, inputs=inputs, report=report, program_type=program_type,
        currency_meta=currency_meta, report_currency=report_currency,
    )
    gelirler = build_gelirler_model(
        scenario=scenario, inputs=inputs, report=report, program_type=program_type,
        currency_meta=currency_meta, report_currency=report_currency,
    )
    giderler = build_giderler_model(
        scenario=scenario, inputs=inputs, report=report, program_type=program_type,
        currency_meta=currency_meta, report_currency=report_currency,
    )
    mali = build_mali_tablolar_model(
        scenario=scenario, inputs=inputs, report=report,
        currency_meta=currency_meta, report_currency=report_currency,
    )

    sheets = [
        ("RAPOR", build_rapor_aoa(detailed, report_currency, currency_meta)),
        ("TEMEL BİLGİLER", build_temel_bilgiler_aoa(temel)),
        ("Kapasite", build_kapasite_aoa(kapasite)),
        ("HR ( IK )", build_hr_aoa(hr)),
        ("Gelirler ( Incomes )", build_gelirler_aoa(gelirler)),
        ("Giderler ( Expenses )", build_giderler_aoa(giderler)),
    ]
    for idx in range(NORM_SHEET_COUNT):
        title = f"N.Kadro ( {academic_year_with_offset(scenario.get('academic_year'), idx)} )"
        norm = build_norm_model(
            year_index=idx, scenario=scenario, inputs=inputs, report=report, norm_config=norm_config,
        )
        sheets.append((title, build_norm_aoa(norm, title)))
    sheets.append(("Mali Tablolar", build_mali_tablolar_aoa(mali)))
    return sheets


def build_scenario_export(pool, school_id, scenario_id, report_currency="usd") -> tuple[str, bytes]:
    """Build the xlsx export of one scenario.

    Args:
        pool: Query executor exposing ``query(sql, params) -> list[dict]``.
        school_id: Owning school.
        scenario_id: Scenario to export.
        report_currency: ``usd`` or ``local``.

    Returns:
        ``(filename, xlsx bytes)``.

    Raises:
        NotFoundError: school or scenario missing.
        ValidationError: bad currency request, or no norm config for the school.
    """
    school, scenario = _load_school_and_scenario(pool, school_id, scenario_id)
    currency_meta = currency_meta_of(scenario)
    currency = _validate_report_currency(report_currency, currency_meta)

    inputs_row = _first(pool.query(
        "SELECT inputs_json FROM scenario_inputs WHERE scenario_id=:id", {"id": scenario_id},
    ))
    results_row = _first(pool.query(
        "SELECT results_json FROM scenario_results WHERE scenario_id=:id", {"id": scenario_id},
    ))
    inputs = safe_parse_inputs(inputs_row.get("inputs_json") if inputs_row else None)
    report = safe_parse_inputs(results_row.get("results_json") if results_row else None)

    norm_row = get_norm_config_row_for_scenario(pool, school_id, scenario_id)
    if norm_row is None:
        raise ValidationError("Norm config missing for school")
    norm_config = normalize_norm_config_row(norm_row)

    prev_report = None
    prev_currency_meta = None
    prev = get_prev_scenario(pool, school_id, scenario.get("academic_year"))
    if prev is not None:
        prev_currency_meta = currency_meta_of(prev.get("scenario_row"))
        prev_report = safe_parse_inputs(prev.get("results_json")) or None

    sheets = build_export_sheets(
        school, scenario, inputs, report, norm_config,
        prev_report=prev_report, currency_meta=currency_meta,
        prev_currency_meta=prev_currency_meta, report_currency=currency,
    )
    content = build_workbook(sheets)

    local_code = currency_meta.get("local_currency_code") if currency == "local" else None
    filename = export_filename(school.get("name"), scenario.get("academic_year"), local_code)
    logger.info(
        "Scenario export built: %d sheets, %d bytes",
        len(sheets), len(content),
        extra={"scenario_id": scenario_id, "school_id": school_id, "report_currency": currency},
    )
    return filename, content
