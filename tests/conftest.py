"""
Shared pytest fixtures for the School Feasibility Reporting test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - pool: SqlExecutor over the test session
    - school / scenario: Pre-created School and SchoolScenario rows
    - make_scenario: factory for extra scenarios (inputs, results, currency)
"""

import json

import pytest

from app import create_app
from app.models import db as _db
from app.models.scenario import (
    School,
    SchoolNormConfig,
    SchoolScenario,
    ScenarioInputs,
    ScenarioResults,
)
from app.utils.helpers import SqlExecutor


def sample_inputs():
    """Small but complete inputs document: KG + ilkokul, one of each section."""
    return {
        "temelBilgiler": {
            "kademeler": {
                "okulOncesi": {"enabled": True, "from": "KG", "to": "KG"},
                "ilkokul": {"enabled": True, "from": "1", "to": "4"},
                "ortaokul": {"enabled": False, "from": "5", "to": "8"},
                "lise": {"enabled": False, "from": "9", "to": "12"},
            },
            "inflation": {"y2": 0.1, "y3": 0.1},
            "yetkililer": {"mudur": "Ayşe Yılmaz", "ulkeTemsilcisi": "Ali Demir"},
        },
        "kapasite": {"byKademe": {"okulOncesi": {"caps": {"cur": 40, "y1": 40, "y2": 40, "y3": 40}}}},
        "gradesCurrent": [{"grade": "KG", "branchCount": 2, "studentsPerBranch": 15}],
        "gradesYears": {
            "y1": [
                {"grade": "KG", "branchCount": 2, "studentsPerBranch": 18},
                {"grade": "1", "branchCount": 1, "studentsPerBranch": 20},
            ],
        },
        "gelirler": {},
        "giderler": {},
        "ik": {},
    }


def sample_results():
    return {
        "years": {
            "y1": {
                "income": {"grossTuition": 100000, "netActivityIncome": 90000},
                "expenses": {"totalExpenses": 60000},
                "result": {"netResult": 30000},
            },
            "y2": None,
            "y3": None,
        }
    }


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        app.extensions["cache"].clear()
        yield
        app.extensions["cache"].clear()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def pool():
    return SqlExecutor()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def school():
    s = School(
        name="Ankara Koleji",
        country_name="Türkiye",
        principal_name="Ayşe Yılmaz",
        representative_name="Ali Demir",
    )
    _db.session.add(s)
    _db.session.flush()
    _db.session.add(SchoolNormConfig(
        school_id=s.id,
        teacher_weekly_max_hours=24,
        curriculum_weekly_hours_json=json.dumps({"1": {"Sınıf Öğretmeni||Türkçe": 10}}),
    ))
    _db.session.commit()
    return s


@pytest.fixture()
def make_scenario(school):
    """Factory: ``make_scenario(academic_year="2025-2026", inputs=..., results=..., **cols)``."""

    def _make(academic_year="2025-2026", inputs=None, results=None, **cols):
        sc = SchoolScenario(
            school_id=cols.pop("school_id", school.id),
            name=cols.pop("name", f"Plan {academic_year}"),
            academic_year=academic_year,
            **cols,
        )
        _db.session.add(sc)
        _db.session.flush()
        si = ScenarioInputs(scenario_id=sc.id)
        si.set_inputs(sample_inputs() if inputs is None else inputs)
        _db.session.add(si)
        if results is not False:
            sr = ScenarioResults(scenario_id=sc.id)
            sr.set_results(sample_results() if results is None else results)
            _db.session.add(sr)
        _db.session.commit()
        return sc

    return _make


@pytest.fixture()
def scenario(make_scenario):
    return make_scenario()
