"""Shared request-side helpers.

get_scenario_or_404:  school-scoped scenario lookup (tuple-return, NOT abort)
db_commit_or_error:   commit + rollback/log/JSON error in one call
SqlExecutor:          ``pool.query(sql, params) -> list[dict]`` over db.session
"""
import logging

from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from app.models import db

logger = logging.getLogger(__name__)


def get_scenario_or_404(school_id, scenario_id):
    """Fetch a scenario belonging to *school_id* or return a 404 error tuple.

    - Success: (scenario, None)
    - Failure: (None, (jsonify_response, 404))

        scenario, err = get_scenario_or_404(sid, scenario_id)
        if err:
            return err
    """
    from app.models.scenario import SchoolScenario

    scenario = db.session.get(SchoolScenario, scenario_id)
    if not scenario or scenario.school_id != school_id:
        return None, (jsonify({"error": "Scenario not found", "code": "ERR_NOT_FOUND"}), 404)
    return scenario, None


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other SQLAlchemyError → 500
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"error": "Database error"}), 500
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return jsonify({"error": "Database error"}), 500


# ── Query executor ───────────────────────────────────────────────────────────

class SqlExecutor:
    """Minimal query executor handed to services as ``pool``.

    Statements use named bind parameters (``:scenario_id``).  Row-returning
    statements give a list of plain dicts; everything else gives ``[]``.
    The caller owns the transaction: nothing here commits, and database
    errors propagate unchanged.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def query(self, sql, params=None):
        result = self.session.execute(text(sql), params or {})
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings()]
