"""
Tests for the scenario review workflow.

Covers:
  - pure status derivation over work item states
  - required work ids (regular vs headquarter scenario)
  - submit / review / send-for-approval transitions and their guards
  - locking after send
"""

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.services import scenario_workflow as wf

HQ_INPUTS = {
    "temelBilgiler": {
        "kademeler": {k: {"enabled": False} for k in ("okulOncesi", "ilkokul", "ortaokul", "lise")},
    }
}


def _status(pool, scenario_id):
    return pool.query("SELECT status FROM school_scenarios WHERE id=:id", {"id": scenario_id})[0]["status"]


def _approve_all(pool, scenario_id, work_ids):
    for wid in work_ids:
        wf.submit_work_item(pool, scenario_id, wid)
        wf.review_work_item(pool, scenario_id, wid, "approve")


class TestDeriveStatus:
    REQUIRED = ["a", "b"]

    def test_nothing_recorded_is_draft(self):
        assert wf.derive_workflow_status(self.REQUIRED, {}) == "draft"
        assert wf.derive_workflow_status(self.REQUIRED, {"other": "approved"}) == "draft"

    def test_any_revision_wins(self):
        states = {"a": "approved", "b": "needs_revision"}
        assert wf.derive_workflow_status(self.REQUIRED, states) == "revision_requested"

    def test_all_approved(self):
        assert wf.derive_workflow_status(self.REQUIRED, {"a": "approved", "b": "approved"}) == "approved"

    def test_partial_is_in_review(self):
        assert wf.derive_workflow_status(self.REQUIRED, {"a": "approved"}) == "in_review"
        assert wf.derive_workflow_status(self.REQUIRED, {"a": "submitted", "b": None}) == "in_review"


class TestRequiredWorkIds:
    def test_regular_scenario(self):
        assert wf.get_required_work_ids_for_inputs({}) == list(wf.BASE_REQUIRED_WORK_IDS)

    def test_headquarter_scenario(self):
        assert wf.get_required_work_ids_for_inputs(HQ_INPUTS) == [
            "ik.local_staff", "gelirler.unit_fee", "giderler.isletme",
        ]

    def test_from_json_text(self, pool, make_scenario):
        sc = make_scenario(inputs=HQ_INPUTS)
        assert wf.get_required_work_ids_for_scenario(pool, sc.id) == list(wf.HQ_REQUIRED_WORK_IDS)


class TestSubmitAndReview:
    def test_submit_creates_item_and_moves_to_review(self, pool, scenario):
        out = wf.submit_work_item(pool, scenario.id, "kapasite")
        assert out["workItem"]["state"] == "submitted"
        assert _status(pool, scenario.id) == "in_review"

    def test_resubmit_clears_review(self, pool, scenario):
        wf.submit_work_item(pool, scenario.id, "kapasite")
        wf.review_work_item(pool, scenario.id, "kapasite", "revise", "Kapasite eksik")
        assert _status(pool, scenario.id) == "revision_requested"

        out = wf.submit_work_item(pool, scenario.id, "kapasite")
        assert out["workItem"]["state"] == "submitted"
        assert out["workItem"]["manager_comment"] is None
        assert _status(pool, scenario.id) == "in_review"

    def test_blank_work_id_rejected(self, pool, scenario):
        with pytest.raises(ValidationError):
            wf.submit_work_item(pool, scenario.id, "  ")

    def test_unknown_scenario(self, pool):
        with pytest.raises(NotFoundError):
            wf.submit_work_item(pool, 999, "kapasite")

    def test_revise_requires_comment(self, pool, scenario):
        wf.submit_work_item(pool, scenario.id, "kapasite")
        with pytest.raises(ValidationError, match="comment"):
            wf.review_work_item(pool, scenario.id, "kapasite", "revise", "  ")

    def test_invalid_action(self, pool, scenario):
        with pytest.raises(ValidationError, match="Invalid action"):
            wf.review_work_item(pool, scenario.id, "kapasite", "reject")

    def test_review_missing_item(self, pool, scenario):
        with pytest.raises(NotFoundError):
            wf.review_work_item(pool, scenario.id, "kapasite", "approve")

    def test_all_approved_stamps_checked_at(self, pool, scenario):
        _approve_all(pool, scenario.id, wf.BASE_REQUIRED_WORK_IDS)
        row = pool.query(
            "SELECT status, checked_at FROM school_scenarios WHERE id=:id", {"id": scenario.id},
        )[0]
        assert row["status"] == "approved"
        assert row["checked_at"] is not None

    def test_headquarter_needs_only_three_items(self, pool, make_scenario):
        sc = make_scenario(inputs=HQ_INPUTS)
        _approve_all(pool, sc.id, wf.HQ_REQUIRED_WORK_IDS)
        assert _status(pool, sc.id) == "approved"

    def test_compute_returns_none_when_unchanged(self, pool, scenario):
        assert wf.compute_scenario_workflow_status(pool, scenario.id) is None
        pool.query(
            "INSERT INTO scenario_work_items (scenario_id, work_id, state) VALUES (:sid, 'kapasite', 'submitted')",
            {"sid": scenario.id},
        )
        assert wf.compute_scenario_workflow_status(pool, scenario.id) == "in_review"

    def test_list_work_items(self, pool, scenario):
        wf.submit_work_item(pool, scenario.id, "temel_bilgiler")
        wf.submit_work_item(pool, scenario.id, "kapasite")
        data = wf.list_work_items(pool, scenario.id)
        assert [w["work_id"] for w in data["workItems"]] == ["kapasite", "temel_bilgiler"]
        assert data["requiredWorkIds"] == list(wf.BASE_REQUIRED_WORK_IDS)


class TestSendForApproval:
    def test_refuses_unapproved(self, pool, scenario):
        wf.submit_work_item(pool, scenario.id, "kapasite")
        with pytest.raises(ConflictError, match="Not all required"):
            wf.send_for_approval(pool, scenario.id)

    def test_sends_and_locks(self, pool, scenario):
        _approve_all(pool, scenario.id, wf.BASE_REQUIRED_WORK_IDS)
        out = wf.send_for_approval(pool, scenario.id, actor="bolge.muduru")
        db.session.commit()

        assert out["scenario"]["status"] == "sent_for_approval"
        assert out["scenario"]["sent_at"] is not None
        row = pool.query("SELECT sent_by FROM school_scenarios WHERE id=:id", {"id": scenario.id})[0]
        assert row["sent_by"] == "bolge.muduru"

        with pytest.raises(ConflictError, match="locked"):
            wf.submit_work_item(pool, scenario.id, "kapasite")
        with pytest.raises(ConflictError):
            wf.send_for_approval(pool, scenario.id)
