"""school_scenarios

Create schools, school_scenarios, scenario inputs/results, work items and
norm config tables.

Revision ID: a1f3c9d2e401
Revises:
Create Date: 2026-10-17 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1f3c9d2e401"
down_revision = None
branch_labels = None
depends_on = None


def _scenario_fk():
    return sa.ForeignKeyConstraint(["scenario_id"], ["school_scenarios.id"], ondelete="CASCADE")


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "schools" not in existing_tables:
        op.create_table(
            "schools",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("country_name", sa.String(length=120), nullable=True),
            sa.Column("principal_name", sa.String(length=200), nullable=True),
            sa.Column("representative_name", sa.String(length=200), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "school_scenarios" not in existing_tables:
        op.create_table(
            "school_scenarios",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("school_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("academic_year", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
            sa.Column("input_currency", sa.String(length=10), nullable=False, server_default="USD"),
            sa.Column("fx_usd_to_local", sa.Float(), nullable=True),
            sa.Column("local_currency_code", sa.String(length=10), nullable=True),
            sa.Column("program_type", sa.String(length=20), nullable=False, server_default="local"),
            sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("sent_by", sa.String(length=200), nullable=True),
            sa.Column("checked_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["school_id"], ["schools.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_school_scenarios_school_id", "school_scenarios", ["school_id"])
        op.create_index(
            "ix_school_scenarios_school_year", "school_scenarios", ["school_id", "academic_year"],
        )

    if "scenario_inputs" not in existing_tables:
        op.create_table(
            "scenario_inputs",
            sa.Column("scenario_id", sa.Integer(), nullable=False),
            sa.Column("inputs_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            _scenario_fk(),
            sa.PrimaryKeyConstraint("scenario_id"),
        )

    if "scenario_results" not in existing_tables:
        op.create_table(
            "scenario_results",
            sa.Column("scenario_id", sa.Integer(), nullable=False),
            sa.Column("results_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
            _scenario_fk(),
            sa.PrimaryKeyConstraint("scenario_id"),
        )

    if "scenario_work_items" not in existing_tables:
        op.create_table(
            "scenario_work_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("scenario_id", sa.Integer(), nullable=False),
            sa.Column("work_id", sa.String(length=60), nullable=False),
            sa.Column("state", sa.String(length=30), nullable=False, server_default="not_started"),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("manager_comment", sa.Text(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            _scenario_fk(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("scenario_id", "work_id", name="uq_work_items_scenario_work"),
        )
        op.create_index("ix_scenario_work_items_scenario_id", "scenario_work_items", ["scenario_id"])

    if "school_norm_configs" not in existing_tables:
        op.create_table(
            "school_norm_configs",
            sa.Column("school_id", sa.Integer(), nullable=False),
            sa.Column("teacher_weekly_max_hours", sa.Integer(), nullable=False, server_default="24"),
            sa.Column("curriculum_weekly_hours_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["school_id"], ["schools.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("school_id"),
        )

    if "scenario_norm_configs" not in existing_tables:
        op.create_table(
            "scenario_norm_configs",
            sa.Column("scenario_id", sa.Integer(), nullable=False),
            sa.Column("teacher_weekly_max_hours", sa.Integer(), nullable=False, server_default="24"),
            sa.Column("curriculum_weekly_hours_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            _scenario_fk(),
            sa.PrimaryKeyConstraint("scenario_id"),
        )


def downgrade():
    op.drop_table("scenario_norm_configs")
    op.drop_table("school_norm_configs")
    op.drop_index("ix_scenario_work_items_scenario_id", table_name="scenario_work_items")
    op.drop_table("scenario_work_items")
    op.drop_table("scenario_results")
    op.drop_table("scenario_inputs")
    op.drop_index("ix_school_scenarios_school_year", table_name="school_scenarios")
    op.drop_index("ix_school_scenarios_school_id", table_name="school_scenarios")
    op.drop_table("school_scenarios")
    op.drop_table("schools")
