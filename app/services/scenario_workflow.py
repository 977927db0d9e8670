"""
Scenario review workflow.

A scenario's ``status`` is recomputed from the states of its REQUIRED work
items every time one of them changes; it is never tracked incrementally:

    no required item recorded          → draft
    any required item needs_revision   → revision_requested
    every required item approved       → approved
    otherwise                          → in_review

``send_for_approval`` then moves an approved scenario to
``sent_for_approval`` and stamps ``sent_at``; from that point on the
scenario is locked for submissions and reviews.

Design decisions:
    - ``pool`` is any executor exposing ``query(sql, params) -> list[dict]``
      (see ``app.utils.helpers.SqlExecutor``).  Nothing here commits; the
      calling request owns the transaction.
    - Database errors propagate unchanged.
    - Recompute is read-then-conditional-update (last write wins).
"""

from __future__ import annotations

import logging

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.utils.scenario_profile import is_headquarter_scenario, safe_parse_inputs

logger = logging.getLogger(__name__)

BASE_REQUIRED_WORK_IDS: tuple[str, ...] = (
    "temel_bilgiler",
    "kapasite",
    "norm.ders_dagilimi",
    "ik.local_staff",
    "gelirler.unit_fee",
    "giderler.isletme",
)
HQ_REQUIRED_WORK_IDS: tuple[str, ...] = (
    "ik.local_staff",
    "gelirler.unit_fee",
    "giderler.isletme",
)
REVIEW_ACTIONS = {"approve": "approved", "revise": "needs_revision"}

_WORK_ITEM_COLUMNS = "work_id, state, submitted_at, reviewed_at, manager_comment, updated_at"


# ── Required work ids ────────────────────────────────────────────────────────


def get_required_work_ids_for_inputs(inputs) -> list[str]:
    """Headquarter scenarios (no school bands) only need the financial modules."""
    if is_headquarter_scenario(safe_parse_inputs(inputs)):
        return list(HQ_REQUIRED_WORK_IDS)
    return list(BASE_REQUIRED_WORK_IDS)


def get_required_work_ids_for_scenario(pool, scenario_id) -> list[str]:
    rows = pool.query(
        "SELECT inputs_json FROM scenario_inputs WHERE scenario_id=:id",
        {"id": scenario_id},
    )
    raw = rows[0].get("inputs_json") if rows else None
    return get_required_work_ids_for_inputs(raw)


# ── Status computation ───────────────────────────────────────────────────────


def derive_workflow_status(required_ids, states: dict) -> str:
    """Pure status rule over a ``{work_id: state}`` snapshot."""
    required = list(required_ids)
    state_map = {wid: str(states[wid] or "") for wid in required if wid in states}
    if not state_map:
        return "draft"
    if any(s == "needs_revision" for s in state_map.values()):
        return "revision_requested"
    if all(state_map.get(wid) == "approved" for wid in required):
        return "approved"
    return "in_review"


def compute_scenario_workflow_status(pool, scenario_id) -> str | None:
    """Recompute and persist the scenario status.

    Returns:
        The newly written status, or ``None`` when it was already current.
    """
    required = get_required_work_ids_for_scenario(pool, scenario_id)
    rows = pool.query(
        "SELECT work_id, state FROM scenario_work_items WHERE scenario_id=:sid",
        {"sid": scenario_id},
    )
    states = {str(r["work_id"]): r.get("state") for r in rows}
    new_status = derive_workflow_status(required, states)

    current = pool.query(
        "SELECT status FROM school_scenarios WHERE id=:sid",
        {"sid": scenario_id},
    )
    current_status = str(current[0].get("status") or "") if current else ""
    if current_status == new_status:
        return None

    pool.query(
        "UPDATE school_scenarios SET status=:status WHERE id=:sid",
        {"status": new_status, "sid": scenario_id},
    )
    logger.info(
        "Scenario %s workflow status %s → %s",
        scenario_id, current_status or "(none)", new_status,
        extra={"scenario_id": scenario_id},
    )
    return new_status


# ── Work item actions ────────────────────────────────────────────────────────


def _load_scenario_state(pool, scenario_id) -> dict:
    rows = pool.query(
        "SELECT id, status, sent_at, checked_at FROM school_scenarios WHERE id=:sid",
        {"sid": scenario_id},
    )
    if not rows:
        raise NotFoundError(resource="Scenario", resource_id=scenario_id)
    return rows[0]


def is_scenario_locked(scenario_row) -> bool:
    status = scenario_row.get("status")
    return status == "sent_for_approval" or (
        status == "approved" and scenario_row.get("sent_at") is not None
    )


def _get_work_item(pool, scenario_id, work_id) -> dict | None:
    rows = pool.query(
        f"SELECT {_WORK_ITEM_COLUMNS} FROM scenario_work_items "
        "WHERE scenario_id=:sid AND work_id=:wid",
        {"sid": scenario_id, "wid": work_id},
    )
    return rows[0] if rows else None


def list_work_items(pool, scenario_id) -> dict:
    """Work items of a scenario plus the ids it needs for approval."""
    rows = pool.query(
        f"SELECT {_WORK_ITEM_COLUMNS} FROM scenario_work_items "
        "WHERE scenario_id=:sid ORDER BY work_id ASC",
        {"sid": scenario_id},
    )
    return {
        "workItems": rows,
        "requiredWorkIds": get_required_work_ids_for_scenario(pool, scenario_id),
    }


def submit_work_item(pool, scenario_id, work_id) -> dict:
    """Mark a module as submitted (creating the row if needed) and recompute."""
    wid = str(work_id or "").strip()
    if not wid:
        raise ValidationError("Invalid work id", details={"work_id": "required"})

    scenario = _load_scenario_state(pool, scenario_id)
    if is_scenario_locked(scenario):
        raise ConflictError("Scenario locked. Awaiting admin review.")

    if _get_work_item(pool, scenario_id, wid) is None:
        pool.query(
            "INSERT INTO scenario_work_items "
            "(scenario_id, work_id, state, submitted_at, reviewed_at, manager_comment, updated_at) "
            "VALUES (:sid, :wid, 'submitted', CURRENT_TIMESTAMP, NULL, NULL, CURRENT_TIMESTAMP)",
            {"sid": scenario_id, "wid": wid},
        )
    else:
        pool.query(
            "UPDATE scenario_work_items SET state='submitted', "
            "submitted_at=CURRENT_TIMESTAMP, reviewed_at=NULL, manager_comment=NULL, "
            "updated_at=CURRENT_TIMESTAMP "
            "WHERE scenario_id=:sid AND work_id=:wid",
            {"sid": scenario_id, "wid": wid},
        )
    logger.info("Work item %s submitted", wid, extra={"scenario_id": scenario_id})

    compute_scenario_workflow_status(pool, scenario_id)
    return {"workItem": _get_work_item(pool, scenario_id, wid)}


def review_work_item(pool, scenario_id, work_id, action, comment=None) -> dict:
    """Approve or send back one work item, then recompute the scenario status.

    ``revise`` requires a comment so the submitter knows what to change.
    When the recompute lands on ``approved`` for the first time the
    scenario's ``checked_at`` is stamped.
    """
    act = str(action or "").strip().lower()
    if act not in REVIEW_ACTIONS:
        raise ValidationError("Invalid action", details={"action": "approve | revise"})
    note = str(comment).strip() if comment is not None else ""
    if act == "revise" and not note:
        raise ValidationError("comment is required when requesting a revision",
                              details={"comment": "required"})

    scenario = _load_scenario_state(pool, scenario_id)
    if is_scenario_locked(scenario):
        raise ConflictError("Scenario locked. Awaiting admin review.")

    wid = str(work_id or "").strip()
    if _get_work_item(pool, scenario_id, wid) is None:
        raise NotFoundError(resource="Work item", resource_id=wid)

    pool.query(
        "UPDATE scenario_work_items SET state=:state, reviewed_at=CURRENT_TIMESTAMP, "
        "manager_comment=:comment, updated_at=CURRENT_TIMESTAMP "
        "WHERE scenario_id=:sid AND work_id=:wid",
        {"state": REVIEW_ACTIONS[act], "comment": note or None, "sid": scenario_id, "wid": wid},
    )
    logger.info("Work item %s reviewed: %s", wid, act, extra={"scenario_id": scenario_id})

    compute_scenario_workflow_status(pool, scenario_id)

    refreshed = _load_scenario_state(pool, scenario_id)
    if (
        refreshed.get("status") == "approved"
        and refreshed.get("sent_at") is None
        and refreshed.get("checked_at") is None
    ):
        pool.query(
            "UPDATE school_scenarios SET checked_at=CURRENT_TIMESTAMP WHERE id=:sid",
            {"sid": scenario_id},
        )
        refreshed = _load_scenario_state(pool, scenario_id)

    return {"workItem": _get_work_item(pool, scenario_id, wid), "scenario": refreshed}


def send_for_approval(pool, scenario_id, actor=None) -> dict:
    """Forward a manager-approved scenario to administrators.

    Raises:
        ConflictError: already sent, or not every required item approved.
    """
    scenario = _load_scenario_state(pool, scenario_id)
    if scenario.get("sent_at") is not None:
        raise ConflictError("Scenario is not ready to send for approval")

    compute_scenario_workflow_status(pool, scenario_id)
    reloaded = _load_scenario_state(pool, scenario_id)
    if reloaded.get("status") != "approved":
        raise ConflictError("Not all required work items are approved")

    pool.query(
        "UPDATE school_scenarios SET status='sent_for_approval', "
        "sent_at=CURRENT_TIMESTAMP, sent_by=:actor, "
        "checked_at=COALESCE(checked_at, CURRENT_TIMESTAMP) WHERE id=:sid",
        {"actor": actor, "sid": scenario_id},
    )
    logger.info("Scenario %s sent for approval", scenario_id, extra={"scenario_id": scenario_id})
    return {"scenario": _load_scenario_state(pool, scenario_id)}
