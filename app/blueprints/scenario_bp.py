"""
School Feasibility Reporting Service
Scenario Blueprint — listing, review workflow and xlsx export.

Endpoints:
    Scenarios:
        GET    /api/v1/schools/<sid>/scenarios                               — List scenarios

    Workflow:
        GET    /api/v1/schools/<sid>/scenarios/<id>/work-items               — Work items (cached)
        POST   /api/v1/schools/<sid>/scenarios/<id>/work-items/<wid>/submit  — Submit a module
        POST   /api/v1/schools/<sid>/scenarios/<id>/work-items/<wid>/review  — Approve / revise
        POST   /api/v1/schools/<sid>/scenarios/<id>/send-for-approval        — Forward to admins

    Export:
        GET    /api/v1/schools/<sid>/scenarios/<id>/export-xlsx              — Workbook download

Services never commit; every mutating endpoint commits here through
``db_commit_or_error`` and then drops the scenario's cached work items.
"""

import io
import logging

from flask import Blueprint, current_app, jsonify, request, send_file
from sqlalchemy.exc import SQLAlchemyError

from app import limiter
from app.core.exceptions import ConflictError, ListParamError, NotFoundError, ValidationError
from app.models import db
from app.models.scenario import School
from app.services import scenario_workflow
from app.services.cache_service import work_items_key
from app.services.export_service import XLSX_MIMETYPE, build_scenario_export
from app.utils.errors import E, api_error
from app.utils.helpers import SqlExecutor, db_commit_or_error, get_scenario_or_404
from app.utils.list_params import parse_list_params

logger = logging.getLogger(__name__)

scenario_bp = Blueprint("scenario", __name__, url_prefix="/api/v1")

SCENARIO_ORDER_COLUMNS = {
    "id": "id",
    "name": "name",
    "academic_year": "academic_year",
    "status": "status",
    "created_at": "created_at",
}
BRIEF_COLUMNS = "id, school_id, name, academic_year, status"
ALL_COLUMNS = (
    "id, school_id, name, academic_year, status, input_currency, fx_usd_to_local, "
    "local_currency_code, program_type, sent_at, sent_by, checked_at, created_at"
)


def _cache():
    return current_app.extensions["cache"]


def _export_rate_limit():
    return current_app.config.get("EXPORT_RATE_LIMIT", "20/minute")


# ── Error handlers ────────────────────────────────────────────────────────────


@scenario_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@scenario_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_RULE, str(error), details=error.details)


@scenario_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(E.CONFLICT_STATE, str(error))


@scenario_bp.errorhandler(ListParamError)
def _handle_list_param(error: ListParamError):
    return api_error(E.VALIDATION_INVALID, error.message, status=error.status)


@scenario_bp.errorhandler(SQLAlchemyError)
def _handle_database(error: SQLAlchemyError):
    db.session.rollback()
    logger.exception("Database error in scenario_bp endpoint=%s", request.endpoint)
    return api_error(E.DATABASE, "Database error")


# ═════════════════════════════════════════════════════════════════════════════
# SCENARIOS
# ═════════════════════════════════════════════════════════════════════════════


@scenario_bp.route("/schools/<int:school_id>/scenarios", methods=["GET"])
def list_scenarios(school_id):
    """List a school's scenarios.

    Query params: limit, offset, fields (all | brief), order (column[:asc|desc]).
    Without any of them every scenario is returned, newest first.
    """
    if db.session.get(School, school_id) is None:
        return api_error(E.NOT_FOUND, "School not found")

    params = parse_list_params(
        request.args,
        allowed_order_columns=SCENARIO_ORDER_COLUMNS,
        default_order="created_at:desc",
    )
    columns = BRIEF_COLUMNS if params["fields"] == "brief" else ALL_COLUMNS
    sql = (
        f"SELECT {columns} FROM school_scenarios WHERE school_id=:sid "
        f"ORDER BY {params['order_by']}, id DESC"
    )
    binds = {"sid": school_id}
    if params["limit"] is not None:
        sql += " LIMIT :limit OFFSET :offset"
        binds.update(limit=params["limit"], offset=params["offset"])

    pool = SqlExecutor()
    rows = pool.query(sql, binds)
    if not params["is_paged_or_selective"]:
        return jsonify(rows), 200

    total = pool.query(
        "SELECT COUNT(*) AS n FROM school_scenarios WHERE school_id=:sid", {"sid": school_id},
    )[0]["n"]
    return jsonify({
        "items": rows,
        "total": total,
        "limit": params["limit"],
        "offset": params["offset"],
    }), 200


# ═════════════════════════════════════════════════════════════════════════════
# WORKFLOW
# ═════════════════════════════════════════════════════════════════════════════


@scenario_bp.route("/schools/<int:school_id>/scenarios/<int:scenario_id>/work-items", methods=["GET"])
def list_work_items(school_id, scenario_id):
    """Work items of a scenario plus the ids it needs for approval."""
    scenario, err = get_scenario_or_404(school_id, scenario_id)
    if err:
        return err

    key = work_items_key(scenario_id)
    cached = _cache().get_json(key)
    if cached is not None:
        return jsonify(cached), 200

    data = scenario_workflow.list_work_items(SqlExecutor(), scenario_id)
    _cache().set_json(key, data)
    return jsonify(data), 200


@scenario_bp.route(
    "/schools/<int:school_id>/scenarios/<int:scenario_id>/work-items/<path:work_id>/submit",
    methods=["POST"],
)
def submit_work_item(school_id, scenario_id, work_id):
    scenario, err = get_scenario_or_404(school_id, scenario_id)
    if err:
        return err

    result = scenario_workflow.submit_work_item(SqlExecutor(), scenario_id, work_id)
    err = db_commit_or_error()
    if err:
        return err
    _cache().invalidate_scenario(scenario_id)
    return jsonify(result), 200


@scenario_bp.route(
    "/schools/<int:school_id>/scenarios/<int:scenario_id>/work-items/<path:work_id>/review",
    methods=["POST"],
)
def review_work_item(school_id, scenario_id, work_id):
    """Approve or send back a work item.

    Body: {"action": "approve" | "revise", "comment": "..."}
    ``comment`` is required for ``revise``.
    """
    scenario, err = get_scenario_or_404(school_id, scenario_id)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    action = data.get("action")
    if not action:
        return api_error(E.VALIDATION_REQUIRED, "action is required")

    result = scenario_workflow.review_work_item(
        SqlExecutor(), scenario_id, work_id, action, data.get("comment"),
    )
    err = db_commit_or_error()
    if err:
        return err
    _cache().invalidate_scenario(scenario_id)
    return jsonify(result), 200


@scenario_bp.route(
    "/schools/<int:school_id>/scenarios/<int:scenario_id>/send-for-approval",
    methods=["POST"],
)
def send_for_approval(school_id, scenario_id):
    """Forward an approved scenario.  Body (optional): {"actor": "..."}"""
    scenario, err = get_scenario_or_404(school_id, scenario_id)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    actor = (str(data.get("actor") or "").strip() or None)
    result = scenario_workflow.send_for_approval(SqlExecutor(), scenario_id, actor=actor)
    err = db_commit_or_error()
    if err:
        return err
    _cache().invalidate_scenario(scenario_id)
    return jsonify(result), 200


# ═════════════════════════════════════════════════════════════════════════════
# EXPORT
# ═════════════════════════════════════════════════════════════════════════════


@scenario_bp.route("/schools/<int:school_id>/scenarios/<int:scenario_id>/export-xlsx", methods=["GET"])
@limiter.limit(_export_rate_limit)
def export_xlsx(school_id, scenario_id):
    """Download the scenario workbook.

    Query params:
        reportCurrency: usd | local (default: usd).  ``local`` needs a LOCAL
            scenario with an FX rate and a currency code.

    Returns:
        Binary xlsx download; bad currency requests and a missing norm
        config give 400.
    """
    report_currency = request.args.get("reportCurrency", "usd")
    try:
        filename, content = build_scenario_export(
            SqlExecutor(), school_id, scenario_id, report_currency=report_currency,
        )
    except ValidationError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    return send_file(
        io.BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=filename,
    )
