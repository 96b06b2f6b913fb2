"""Initial schema for grade imports and override review

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""

import typing as t

import sqlalchemy as sa
from alembic import op
from sqlalchemy import func as f
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.schema import Column, ForeignKey, UniqueConstraint
from sqlalchemy.types import Boolean, DateTime, JSON, Numeric, String, Text

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | t.Sequence[str] | None = None
depends_on: str | t.Sequence[str] | None = None

Key = String(22)
Component = String(32)
Grade = Numeric(4, 2)
Timestamp = DateTime(timezone=True)
Document = JSON().with_variant(JSONB(), "postgresql")

GradeKeyColumns = ("period_id", "student_id", "subject_id", "class_id", "component")


def upgrade() -> None:
    # Periods
    op.create_table(
        "grading_periods",
        Column("period_id", Key, primary_key=True),
        Column("semester_id", Key, nullable=False),
        Column("name", String, nullable=False),
        Column("kind", String, nullable=False),
        Column("shape", Document, nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
    )
    op.create_index("ix_grading_periods_semester_id", "grading_periods", ["semester_id"])

    # Roster
    op.create_table(
        "roster_entries",
        Column("class_id", Key, primary_key=True),
        Column("period_id", Key, ForeignKey("grading_periods.period_id"), primary_key=True),
        Column("student_id", Key, primary_key=True),
        Column("student_code", String, nullable=False),
        Column("full_name", String, nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
        UniqueConstraint("class_id", "period_id", "student_code"),
    )

    # Grades
    op.create_table(
        "grade_records",
        Column("grade_id", Key, primary_key=True),
        Column("period_id", Key, ForeignKey("grading_periods.period_id"), nullable=False),
        Column("student_id", Key, nullable=False),
        Column("subject_id", Key, nullable=False),
        Column("class_id", Key, nullable=False),
        Column("component", Component, nullable=False),
        Column("created_by", Key, nullable=False),
        Column("value", Grade, nullable=True),
        Column("updated_by", Key, nullable=True),
        Column("is_final", Boolean, server_default=sa.false(), nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
        Column("update_time", Timestamp, server_default=f.now(), onupdate=f.now(), nullable=False),
        UniqueConstraint(*GradeKeyColumns),
    )

    # Overrides
    op.create_table(
        "override_proposals",
        Column("proposal_id", Key, primary_key=True),
        Column("period_id", Key, ForeignKey("grading_periods.period_id"), nullable=False),
        Column("student_id", Key, nullable=False),
        Column("subject_id", Key, nullable=False),
        Column("class_id", Key, nullable=False),
        Column("component", Component, nullable=False),
        Column("old_value", Grade, nullable=False),
        Column("new_value", Grade, nullable=False),
        Column("requested_by", Key, nullable=False),
        Column("request_note", Text, nullable=True),
        Column("state", String, server_default="pending", nullable=False),
        Column("justification", Text, nullable=True),
        Column("resolved_by", Key, nullable=True),
        Column("resolve_time", Timestamp, nullable=True),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
    )
    op.create_index("ix_override_proposals_state", "override_proposals", ["state"])
    op.create_index(
        "override_proposals_pending_key",
        "override_proposals",
        list(GradeKeyColumns),
        unique=True,
        postgresql_where=sa.text("state = 'pending'"),
        sqlite_where=sa.text("state = 'pending'"),
    )

    # Audit trail
    op.create_table(
        "audit_entries",
        Column("audit_id", Key, primary_key=True),
        Column("proposal_id", Key, ForeignKey("override_proposals.proposal_id"), nullable=False),
        Column("period_id", Key, nullable=False),
        Column("student_id", Key, nullable=False),
        Column("subject_id", Key, nullable=False),
        Column("class_id", Key, nullable=False),
        Column("component", Component, nullable=False),
        Column("old_value", Grade, nullable=False),
        Column("new_value", Grade, nullable=False),
        Column("decision", String, nullable=False),
        Column("justification", Text, nullable=False),
        Column("actor_id", Key, nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
    )
    op.create_index("ix_audit_entries_proposal_id", "audit_entries", ["proposal_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_entries_proposal_id", table_name="audit_entries")
    op.drop_table("audit_entries")
    op.drop_index("override_proposals_pending_key", table_name="override_proposals")
    op.drop_index("ix_override_proposals_state", table_name="override_proposals")
    op.drop_table("override_proposals")
    op.drop_table("grade_records")
    op.drop_table("roster_entries")
    op.drop_index("ix_grading_periods_semester_id", table_name="grading_periods")
    op.drop_table("grading_periods")
