"""
School Feasibility Reporting Service
Tests — Scenario API.

Covers:
    - Scenario listing (plain and paged)
    - Work item caching, submit / review / send-for-approval
    - Workbook export endpoint
"""

import io

import pytest
from openpyxl import load_workbook

from app.models import db as _db
from app.models.scenario import ScenarioWorkItem, School
from app.services.export_service import XLSX_MIMETYPE
from app.services.scenario_workflow import BASE_REQUIRED_WORK_IDS


def _base(school_id, scenario_id=None):
    url = f"/api/v1/schools/{school_id}/scenarios"
    return f"{url}/{scenario_id}" if scenario_id is not None else url


def _submit(client, sc, work_id):
    return client.post(f"{_base(sc.school_id, sc.id)}/work-items/{work_id}/submit")


def _review(client, sc, work_id, **body):
    return client.post(f"{_base(sc.school_id, sc.id)}/work-items/{work_id}/review", json=body)


def _approve_all(client, sc):
    for wid in BASE_REQUIRED_WORK_IDS:
        assert _submit(client, sc, wid).status_code == 200
        assert _review(client, sc, wid, action="approve").status_code == 200


# ═════════════════════════════════════════════════════════════════════════════
# SCENARIOS
# ═════════════════════════════════════════════════════════════════════════════


def test_list_scenarios_plain(client, school, make_scenario):
    make_scenario("2024-2025")
    make_scenario("2025-2026")
    res = client.get(_base(school.id))
    assert res.status_code == 200
    data = res.get_json()
    assert isinstance(data, list)
    assert [s["academic_year"] for s in data] == ["2025-2026", "2024-2025"]
    assert data[0]["input_currency"] == "USD"


def test_list_scenarios_paged(client, school, make_scenario):
    for year in ("2023-2024", "2024-2025", "2025-2026"):
        make_scenario(year)
    res = client.get(_base(school.id), query_string={
        "limit": 2, "offset": 1, "fields": "brief", "order": "academic_year:asc",
    })
    assert res.status_code == 200
    data = res.get_json()
    assert data["total"] == 3
    assert data["limit"] == 2
    assert data["offset"] == 1
    assert [s["academic_year"] for s in data["items"]] == ["2024-2025", "2025-2026"]
    assert "fx_usd_to_local" not in data["items"][0]


@pytest.mark.parametrize("params", [
    {"limit": 0},
    {"limit": "abc"},
    {"offset": -1},
    {"fields": "everything"},
    {"order": "password:asc"},
    {"order": "name:sideways"},
])
def test_list_scenarios_bad_params(client, school, params):
    res = client.get(_base(school.id), query_string=params)
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_list_scenarios_unknown_school(client):
    res = client.get(_base(9999))
    assert res.status_code == 404


def test_other_school_scenario_is_404(client, scenario):
    other = School(name="Başka Okul")
    _db.session.add(other)
    _db.session.commit()
    res = client.get(f"{_base(other.id, scenario.id)}/work-items")
    assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# WORKFLOW
# ═════════════════════════════════════════════════════════════════════════════


def test_work_items_are_cached_until_mutation(client, scenario):
    url = f"{_base(scenario.school_id, scenario.id)}/work-items"
    first = client.get(url).get_json()
    assert first["workItems"] == []
    assert first["requiredWorkIds"] == list(BASE_REQUIRED_WORK_IDS)

    # Written behind the API's back: the cached copy is still served
    _db.session.add(ScenarioWorkItem(scenario_id=scenario.id, work_id="kapasite", state="submitted"))
    _db.session.commit()
    assert client.get(url).get_json()["workItems"] == []

    assert _submit(client, scenario, "gelirler.unit_fee").status_code == 200
    ids = [w["work_id"] for w in client.get(url).get_json()["workItems"]]
    assert ids == ["gelirler.unit_fee", "kapasite"]


def test_submit_moves_scenario_in_review(client, scenario):
    res = _submit(client, scenario, "temel_bilgiler")
    assert res.status_code == 200
    assert res.get_json()["workItem"]["state"] == "submitted"
    _db.session.refresh(scenario)
    assert scenario.status == "in_review"


def test_review_requires_action(client, scenario):
    _submit(client, scenario, "kapasite")
    res = _review(client, scenario, "kapasite")
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


def test_review_invalid_action(client, scenario):
    _submit(client, scenario, "kapasite")
    res = _review(client, scenario, "kapasite", action="reject")
    assert res.status_code == 422
    assert res.get_json()["details"] == {"action": "approve | revise"}


def test_revise_requires_comment(client, scenario):
    _submit(client, scenario, "kapasite")
    assert _review(client, scenario, "kapasite", action="revise").status_code == 422

    res = _review(client, scenario, "kapasite", action="revise", comment="Kapasite eksik")
    assert res.status_code == 200
    body = res.get_json()
    assert body["workItem"]["state"] == "needs_revision"
    assert body["workItem"]["manager_comment"] == "Kapasite eksik"
    assert body["scenario"]["status"] == "revision_requested"


def test_review_unknown_work_item(client, scenario):
    res = _review(client, scenario, "giderler.isletme", action="approve")
    assert res.status_code == 404
    assert "Work item" in res.get_json()["error"]


def test_send_for_approval_before_approval_conflicts(client, scenario):
    _submit(client, scenario, "kapasite")
    res = client.post(f"{_base(scenario.school_id, scenario.id)}/send-for-approval")
    assert res.status_code == 409
    assert res.get_json()["code"] == "ERR_CONFLICT_STATE"


def test_full_approval_flow_locks_scenario(client, scenario):
    _approve_all(client, scenario)
    _db.session.refresh(scenario)
    assert scenario.status == "approved"
    assert scenario.checked_at is not None

    res = client.post(
        f"{_base(scenario.school_id, scenario.id)}/send-for-approval",
        json={"actor": "  Bölge Müdürü  "},
    )
    assert res.status_code == 200
    sent = res.get_json()["scenario"]
    assert sent["status"] == "sent_for_approval"
    assert sent["sent_at"] is not None

    _db.session.refresh(scenario)
    assert scenario.sent_by == "Bölge Müdürü"

    assert _submit(client, scenario, "kapasite").status_code == 409
    again = client.post(f"{_base(scenario.school_id, scenario.id)}/send-for-approval")
    assert again.status_code == 409


# ═════════════════════════════════════════════════════════════════════════════
# EXPORT
# ═════════════════════════════════════════════════════════════════════════════


def test_export_xlsx(client, scenario):
    res = client.get(f"{_base(scenario.school_id, scenario.id)}/export-xlsx")
    assert res.status_code == 200
    assert res.mimetype == XLSX_MIMETYPE
    assert "attachment" in res.headers["Content-Disposition"]
    assert ".xlsx" in res.headers["Content-Disposition"]

    wb = load_workbook(io.BytesIO(res.data))
    assert wb.sheetnames[0] == "RAPOR"
    assert wb.sheetnames[-1] == "Mali Tablolar"


def test_export_local_currency(client, make_scenario):
    sc = make_scenario(input_currency="LOCAL", fx_usd_to_local=40, local_currency_code="TRY")
    res = client.get(
        f"{_base(sc.school_id, sc.id)}/export-xlsx", query_string={"reportCurrency": "local"},
    )
    assert res.status_code == 200
    assert "-TRY.xlsx" in res.headers["Content-Disposition"]


@pytest.mark.parametrize("currency", ["eur", "local"])
def test_export_rejects_bad_currency(client, scenario, currency):
    res = client.get(
        f"{_base(scenario.school_id, scenario.id)}/export-xlsx",
        query_string={"reportCurrency": currency},
    )
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_export_missing_scenario(client, school):
    res = client.get(f"{_base(school.id, 9999)}/export-xlsx")
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"
