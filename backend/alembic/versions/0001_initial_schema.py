"""initial schema: policies, pto requests, training records, backfill assignments, audit log

Revision ID: 0001
Revises:
Create Date: 2025-01-06 09:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _tz() -> sa.DateTime:
    return sa.DateTime(timezone=True)


def _policy_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", _tz(), server_default=sa.func.now(), nullable=False),
        sa.Column("funeral_home_id", sa.Uuid(), nullable=False),
        sa.Column("business_key", sa.String(length=255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("valid_from", _tz(), nullable=False),
        sa.Column("valid_to", _tz(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        sa.Column("settings_json", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.UniqueConstraint("funeral_home_id", "version", name=f"uq_{name}_version"),
    )
    op.create_index(f"ix_{name}_funeral_home_id", name, ["funeral_home_id"])
    op.create_index(
        f"uq_{name}_current",
        name,
        ["funeral_home_id"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )


def upgrade() -> None:
    _policy_table("pto_policy")
    _policy_table("training_policy")

    op.create_table(
        "pto_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", _tz(), server_default=sa.func.now(), nullable=False),
        sa.Column("funeral_home_id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("employee_name", sa.String(length=255), nullable=False),
        sa.Column("employee_role", sa.String(length=50), nullable=True),
        sa.Column("pto_type", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("requested_days", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=50), server_default="draft", nullable=False),
        sa.Column("policy_id", sa.Uuid(), sa.ForeignKey("pto_policy.id", ondelete="SET NULL"), nullable=True),
        sa.Column("policy_version", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("submitted_at", _tz(), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("rejected_by", sa.Uuid(), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("decided_at", _tz(), nullable=True),
        sa.Column("cancelled_at", _tz(), nullable=True),
        sa.Column("updated_at", _tz(), nullable=False),
    )
    op.create_index("ix_pto_request_funeral_home_id", "pto_request", ["funeral_home_id"])
    op.create_index("ix_pto_request_home_status", "pto_request", ["funeral_home_id", "status"])
    op.create_index("ix_pto_request_home_employee", "pto_request", ["funeral_home_id", "employee_id"])

    op.create_table(
        "training_record",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", _tz(), server_default=sa.func.now(), nullable=False),
        sa.Column("funeral_home_id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("employee_name", sa.String(length=255), nullable=False),
        sa.Column("employee_role", sa.String(length=50), nullable=True),
        sa.Column("training_type", sa.String(length=50), nullable=False),
        sa.Column("training_name", sa.String(length=255), nullable=False),
        sa.Column("required_for_role", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=50), server_default="scheduled", nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("completed_at", _tz(), nullable=True),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=False),
        sa.Column("instructor", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("certification_number", sa.String(length=255), nullable=True),
        sa.Column("expires_at", sa.Date(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("approved_at", _tz(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("updated_at", _tz(), nullable=False),
    )
    op.create_index("ix_training_record_funeral_home_id", "training_record", ["funeral_home_id"])
    op.create_index("ix_training_record_status", "training_record", ["status"])
    op.create_index("ix_training_record_home_employee", "training_record", ["funeral_home_id", "employee_id"])

    op.create_table(
        "backfill_assignment",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", _tz(), server_default=sa.func.now(), nullable=False),
        sa.Column("funeral_home_id", sa.Uuid(), nullable=False),
        sa.Column("absence_id", sa.Uuid(), nullable=False),
        sa.Column("absence_type", sa.String(length=50), nullable=False),
        sa.Column("absence_start_date", sa.Date(), nullable=False),
        sa.Column("absence_end_date", sa.Date(), nullable=False),
        sa.Column("absent_employee_id", sa.Uuid(), nullable=False),
        sa.Column("absent_employee_name", sa.String(length=255), nullable=False),
        sa.Column("absent_employee_role", sa.String(length=50), nullable=True),
        sa.Column("backfill_employee_id", sa.Uuid(), nullable=False),
        sa.Column("backfill_employee_name", sa.String(length=255), nullable=False),
        sa.Column("backfill_employee_role", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=50), server_default="suggested", nullable=False),
        sa.Column("premium_type", sa.String(length=50), nullable=False),
        sa.Column("premium_multiplier", sa.Float(), nullable=False),
        sa.Column("estimated_hours", sa.Float(), nullable=False),
        sa.Column("actual_hours", sa.Float(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("assigned_by", sa.Uuid(), nullable=False),
        sa.Column("suggested_at", _tz(), nullable=False),
        sa.Column("confirmed_at", _tz(), nullable=True),
        sa.Column("confirmed_by", sa.Uuid(), nullable=True),
        sa.Column("rejected_at", _tz(), nullable=True),
        sa.Column("completed_at", _tz(), nullable=True),
        sa.Column("cancelled_at", _tz(), nullable=True),
        sa.Column("updated_at", _tz(), nullable=False),
    )
    op.create_index("ix_backfill_assignment_funeral_home_id", "backfill_assignment", ["funeral_home_id"])
    op.create_index("ix_backfill_assignment_absence_id", "backfill_assignment", ["absence_id"])
    op.create_index(
        "ix_backfill_home_employee_status",
        "backfill_assignment",
        ["funeral_home_id", "backfill_employee_id", "status"],
    )
    op.create_index(
        "ix_backfill_home_absent_employee", "backfill_assignment", ["funeral_home_id", "absent_employee_id"]
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("funeral_home_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", _tz(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_log_funeral_home_id", "audit_log", ["funeral_home_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("backfill_assignment")
    op.drop_table("training_record")
    op.drop_table("pto_request")
    op.drop_table("training_policy")
    op.drop_table("pto_policy")
