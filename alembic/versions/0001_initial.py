"""Initial leave ledger schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_DAYS = sa.Numeric(10, 2)


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "leave_policy",
        _id(),
        _created_at(),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("annual_quota", sa.Integer(), server_default="0", nullable=False),
        sa.Column("accrual_method", sa.String(length=20), server_default="yearly", nullable=False),
        sa.Column("monthly_accrual_rate", _DAYS, nullable=False),
        sa.Column("carry_forward_type", sa.String(length=20), server_default="none", nullable=False),
        sa.Column("carry_forward_limit", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_leave_policy_organization_id", "leave_policy", ["organization_id"])
    op.create_index("ix_leave_policy_org_code", "leave_policy", ["organization_id", "code"])

    op.create_table(
        "employee_leave_balance",
        _id(),
        _created_at(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("policy_id", sa.Uuid(), sa.ForeignKey("leave_policy.id"), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("opening_balance", _DAYS, nullable=False),
        sa.Column("accrued", _DAYS, nullable=False),
        sa.Column("used", _DAYS, nullable=False),
        sa.Column("adjustment", _DAYS, nullable=False),
        sa.Column("current_balance", _DAYS, nullable=False),
        sa.Column("last_accrued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.UniqueConstraint("employee_id", "policy_id", "year", name="uq_balance_employee_policy_year"),
    )
    op.create_index("ix_employee_leave_balance_employee_id", "employee_leave_balance", ["employee_id"])
    op.create_index("ix_employee_leave_balance_policy_id", "employee_leave_balance", ["policy_id"])
    op.create_index("ix_balance_org_year", "employee_leave_balance", ["organization_id", "year"])

    op.create_table(
        "leave_transaction",
        _id(),
        _created_at(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("balance_id", sa.Uuid(), sa.ForeignKey("employee_leave_balance.id"), nullable=False),
        sa.Column("policy_id", sa.Uuid(), sa.ForeignKey("leave_policy.id"), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("transaction_type", sa.String(length=20), nullable=False),
        sa.Column("amount", _DAYS, nullable=False),
        sa.Column("balance_after", _DAYS, nullable=False),
        sa.Column("reference_id", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.UniqueConstraint("balance_id", "transaction_type", "reference_id", name="uq_transaction_reference"),
    )
    op.create_index("ix_leave_transaction_employee_id", "leave_transaction", ["employee_id"])
    op.create_index("ix_leave_transaction_balance_id", "leave_transaction", ["balance_id"])
    op.create_index("ix_leave_transaction_organization_id", "leave_transaction", ["organization_id"])
    op.create_index("ix_transaction_employee_policy", "leave_transaction", ["employee_id", "policy_id"])

    op.create_table(
        "leave_request",
        _id(),
        _created_at(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("policy_id", sa.Uuid(), sa.ForeignKey("leave_policy.id"), nullable=True),
        sa.Column("leave_type", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", _DAYS, nullable=True),
        sa.Column("is_half_day", sa.Boolean(), nullable=False),
        sa.Column("half_day_session", sa.String(length=20), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.String(), nullable=True),
    )
    op.create_index("ix_leave_request_employee_id", "leave_request", ["employee_id"])
    op.create_index("ix_leave_request_organization_id", "leave_request", ["organization_id"])
    op.create_index("ix_leave_request_policy_id", "leave_request", ["policy_id"])
    op.create_index("ix_leave_request_org_status", "leave_request", ["organization_id", "status"])

    op.create_table(
        "comp_off_grant",
        _id(),
        _created_at(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("hours_worked", sa.Numeric(5, 2), nullable=False),
        sa.Column("days_granted", _DAYS, nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("granted_by", sa.Uuid(), nullable=False),
        sa.Column("is_applied", sa.Boolean(), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_comp_off_grant_employee_id", "comp_off_grant", ["employee_id"])
    op.create_index("ix_comp_off_org_applied", "comp_off_grant", ["organization_id", "is_applied"])

    op.create_table(
        "attendance",
        _id(),
        _created_at(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("check_in", sa.String(length=10), nullable=True),
        sa.Column("check_out", sa.String(length=10), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )
    op.create_index("ix_attendance_employee_id", "attendance", ["employee_id"])
    op.create_index("ix_attendance_organization_id", "attendance", ["organization_id"])

    op.create_table(
        "audit_log",
        _id(),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_log_organization_id", "audit_log", ["organization_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("attendance")
    op.drop_table("comp_off_grant")
    op.drop_table("leave_request")
    op.drop_table("leave_transaction")
    op.drop_table("employee_leave_balance")
    op.drop_table("leave_policy")
