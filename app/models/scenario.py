"""
School Feasibility Reporting Service
School & scenario domain models — School → Scenario → Inputs / Results / Work items.

Models:
    - School: a school the plans are made for
    - SchoolScenario: one academic year's financial plan for one school
    - ScenarioInputs: the editable JSON document of a scenario (1:1)
    - ScenarioResults: precomputed 3-year projections of a scenario (1:1)
    - ScenarioWorkItem: one required module's submission / review record
    - SchoolNormConfig / ScenarioNormConfig: curriculum hours per grade
"""

import json
from datetime import datetime, timezone

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class School(db.Model):
    """A school owning one scenario per academic year."""

    __tablename__ = "schools"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    country_name = db.Column(db.String(120), default="")
    principal_name = db.Column(db.String(200), default="", comment="Okul müdürü")
    representative_name = db.Column(db.String(200), default="", comment="Ülke temsilcisi")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    scenarios = db.relationship(
        "SchoolScenario", backref="school", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "country_name": self.country_name,
            "principal_name": self.principal_name,
            "representative_name": self.representative_name,
        }


class SchoolScenario(db.Model):
    """
    One academic year's financial plan for one school.

    ``status`` is derived from the scenario's work items by
    ``app.services.scenario_workflow``; it is never edited directly.
    """

    __tablename__ = "school_scenarios"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(
        db.Integer, db.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False, default="")
    academic_year = db.Column(
        db.String(20), nullable=False,
        comment="YYYY-YYYY (YYYY/YYYY, YYYY-YY and YYYY tolerated)",
    )
    status = db.Column(
        db.String(30), nullable=False, default="draft",
        comment="draft | in_review | revision_requested | approved | sent_for_approval",
    )

    # Currency
    input_currency = db.Column(db.String(10), nullable=False, default="USD", comment="USD | LOCAL")
    fx_usd_to_local = db.Column(db.Float, nullable=True)
    local_currency_code = db.Column(db.String(10), nullable=True)
    program_type = db.Column(db.String(20), nullable=False, default="local", comment="local | international")

    # Approval trail
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sent_by = db.Column(db.String(200), nullable=True, comment="Reviewer who forwarded the scenario")
    checked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    inputs = db.relationship(
        "ScenarioInputs", uselist=False, backref="scenario", cascade="all, delete-orphan",
    )
    results = db.relationship(
        "ScenarioResults", uselist=False, backref="scenario", cascade="all, delete-orphan",
    )
    work_items = db.relationship(
        "ScenarioWorkItem", backref="scenario", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ScenarioWorkItem.work_id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "school_id": self.school_id,
            "name": self.name,
            "academic_year": self.academic_year,
            "status": self.status,
            "input_currency": self.input_currency,
            "fx_usd_to_local": self.fx_usd_to_local,
            "local_currency_code": self.local_currency_code,
            "program_type": self.program_type,
            "sent_at": _iso(self.sent_at),
            "sent_by": self.sent_by,
            "checked_at": _iso(self.checked_at),
            "created_at": _iso(self.created_at),
        }


class ScenarioInputs(db.Model):
    """Editable inputs document (temel bilgiler, kapasite, grades, ik, gelirler, ...)."""

    __tablename__ = "scenario_inputs"

    scenario_id = db.Column(
        db.Integer, db.ForeignKey("school_scenarios.id", ondelete="CASCADE"), primary_key=True,
    )
    inputs_json = db.Column(db.Text, nullable=False, default="{}")
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def set_inputs(self, data):
        self.inputs_json = json.dumps(data or {}, ensure_ascii=False)


class ScenarioResults(db.Model):
    """Precomputed projections: ``{"years": {"y1": {...}, "y2": {...}, "y3": {...}}}``."""

    __tablename__ = "scenario_results"

    scenario_id = db.Column(
        db.Integer, db.ForeignKey("school_scenarios.id", ondelete="CASCADE"), primary_key=True,
    )
    results_json = db.Column(db.Text, nullable=False, default="{}")
    calculated_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def set_results(self, data):
        self.results_json = json.dumps(data or {}, ensure_ascii=False)


class ScenarioWorkItem(db.Model):
    """Submission / review record of one module (work id) of a scenario."""

    __tablename__ = "scenario_work_items"
    __table_args__ = (
        db.UniqueConstraint("scenario_id", "work_id", name="uq_work_items_scenario_work"),
    )

    id = db.Column(db.Integer, primary_key=True)
    scenario_id = db.Column(
        db.Integer, db.ForeignKey("school_scenarios.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    work_id = db.Column(db.String(60), nullable=False, comment="e.g. temel_bilgiler, ik.local_staff")
    state = db.Column(
        db.String(30), nullable=False, default="not_started",
        comment="not_started | in_progress | submitted | approved | needs_revision",
    )
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    manager_comment = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "work_id": self.work_id,
            "state": self.state,
            "submitted_at": _iso(self.submitted_at),
            "reviewed_at": _iso(self.reviewed_at),
            "manager_comment": self.manager_comment,
            "updated_at": _iso(self.updated_at),
        }


class SchoolNormConfig(db.Model):
    """School-wide default curriculum hours (N.Kadro)."""

    __tablename__ = "school_norm_configs"

    school_id = db.Column(
        db.Integer, db.ForeignKey("schools.id", ondelete="CASCADE"), primary_key=True,
    )
    teacher_weekly_max_hours = db.Column(db.Integer, nullable=False, default=24)
    curriculum_weekly_hours_json = db.Column(
        db.Text, nullable=False, default="{}",
        comment='{grade: {"teacher||lesson": hours}} or {"years": {"y1": ...}}',
    )
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ScenarioNormConfig(db.Model):
    """Scenario-level override of the school's norm config."""

    __tablename__ = "scenario_norm_configs"

    scenario_id = db.Column(
        db.Integer, db.ForeignKey("school_scenarios.id", ondelete="CASCADE"), primary_key=True,
    )
    teacher_weekly_max_hours = db.Column(db.Integer, nullable=False, default=24)
    curriculum_weekly_hours_json = db.Column(db.Text, nullable=False, default="{}")
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
