"""
Tests — School / scenario models: serialisation and cascades.
"""

import json

from app.models import db as _db
from app.models.scenario import ScenarioInputs, ScenarioWorkItem, School, SchoolScenario


def test_school_to_dict(school):
    data = school.to_dict()
    assert data["name"] == "Ankara Koleji"
    assert data["country_name"] == "Türkiye"
    assert data["representative_name"] == "Ali Demir"


def test_scenario_defaults_and_to_dict(scenario):
    data = scenario.to_dict()
    assert data["status"] == "draft"
    assert data["input_currency"] == "USD"
    assert data["program_type"] == "local"
    assert data["sent_at"] is None
    assert data["created_at"] is not None


def test_inputs_are_stored_as_utf8_json(scenario):
    row = _db.session.get(ScenarioInputs, scenario.id)
    assert "Ayşe Yılmaz" in row.inputs_json
    assert json.loads(row.inputs_json)["gradesYears"]["y1"][0]["grade"] == "KG"


def test_work_item_to_dict_and_relationship(scenario):
    _db.session.add(ScenarioWorkItem(scenario_id=scenario.id, work_id="kapasite"))
    _db.session.commit()
    items = [w.to_dict() for w in scenario.work_items]
    assert items[0]["work_id"] == "kapasite"
    assert items[0]["state"] == "not_started"


def test_deleting_school_removes_scenarios(school, scenario):
    _db.session.delete(school)
    _db.session.commit()
    assert _db.session.query(SchoolScenario).count() == 0
    assert _db.session.query(School).count() == 0
