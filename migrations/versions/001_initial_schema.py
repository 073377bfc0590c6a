"""Initial schema: grades, course grade snapshots and audit logs

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""

import typing as t

from alembic import op
from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.schema import Column
from sqlalchemy.types import Boolean, DateTime, Integer, JSON, String

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | t.Sequence[str] | None = None
depends_on: str | t.Sequence[str] | None = None

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # Grades
    op.create_table(
        "grades",
        Column("grade_id", String, primary_key=True),
        Column("learner_id", String, nullable=False),
        Column("module_id", String, nullable=False),
        Column("course_id", String, nullable=False),
        Column("score", Integer, nullable=False),
        Column("passing_score", Integer, nullable=False),
        Column("passed", Boolean, nullable=False),
        Column("grader_id", String, nullable=False),
        Column("grader_name", String, nullable=False),
        Column("graded_at", DateTime(timezone=True), nullable=False),
        Column("notes", String, nullable=True),
        Column("visible_to_student", Boolean, nullable=False),
        Column("superseded_by", String, nullable=True),
        Column("correction_of", String, nullable=True),
        Column("correction_reason", String, nullable=True),
    )
    op.create_index(
        "grades_current_uq",
        "grades",
        ["learner_id", "module_id"],
        unique=True,
        postgresql_where=text("superseded_by IS NULL"),
        sqlite_where=text("superseded_by IS NULL"),
    )
    op.create_index(
        "grades_learner_module_current_idx",
        "grades",
        ["learner_id", "module_id", "superseded_by", text("graded_at DESC")],
    )
    op.create_index("grades_module_current_idx", "grades", ["module_id", "superseded_by", text("graded_at DESC")])
    op.create_index("grades_learner_current_idx", "grades", ["learner_id", "superseded_by", text("graded_at DESC")])

    # Course Grade Snapshots
    op.create_table(
        "course_grades",
        Column("snapshot_id", String, primary_key=True),
        Column("learner_id", String, nullable=False, index=True),
        Column("course_id", String, nullable=False, index=True),
        Column("overall_score", Integer, nullable=False),
        Column("overall_passed", Boolean, nullable=False),
        Column("total_critical_modules", Integer, nullable=False),
        Column("critical_modules_passed", Integer, nullable=False),
        Column("all_critical_modules_passed", Boolean, nullable=False),
        Column("module_breakdown", JSONDocument, nullable=False),
        Column("total_modules", Integer, nullable=False),
        Column("graded_modules", Integer, nullable=False),
        Column("completion_percent", Integer, nullable=False),
        Column("is_complete", Boolean, nullable=False),
        Column("calculated_at", DateTime(timezone=True), nullable=False),
        Column("update_time", DateTime(timezone=True), nullable=False),
    )

    # Audit Logs
    op.create_table(
        "audit_logs",
        Column("log_id", String(22), primary_key=True),
        Column("actor_id", String, nullable=False, index=True),
        Column("actor_name", String, nullable=False),
        Column("action_type", String, nullable=False, index=True),
        Column("target_id", String, nullable=False, index=True),
        Column("details", String, nullable=False),
        Column("timestamp", DateTime(timezone=True), nullable=False, index=True),
        Column("metadata", JSONDocument, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("course_grades")
    op.drop_index("grades_learner_current_idx", table_name="grades")
    op.drop_index("grades_module_current_idx", table_name="grades")
    op.drop_index("grades_learner_module_current_idx", table_name="grades")
    op.drop_index("grades_current_uq", table_name="grades")
    op.drop_table("grades")
