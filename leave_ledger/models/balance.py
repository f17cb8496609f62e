# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import DAYS_TYPE, ZERO_DAYS, TimestampMixin, UUIDBase, now_utc


class EmployeeLeaveBalance(UUIDBase, TimestampMixin, table=True):
    """Running day count an employee holds against one policy for one year.

    Mutated only by the ledger functions in ``services.balance``; each
    mutation keeps ``current_balance == opening_balance + accrued + adjustment - used``.
    """

    __tablename__ = "employee_leave_balance"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "policy_id", "year", name="uq_balance_employee_policy_year"),
        sa.Index("ix_balance_org_year", "organization_id", "year"),
    )

    employee_id: uuid.UUID = Field(index=True)
    policy_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_policy.id"), nullable=False, index=True),
    )
    organization_id: uuid.UUID
    year: int
    opening_balance: Decimal = Field(default=ZERO_DAYS, sa_type=DAYS_TYPE)
    accrued: Decimal = Field(default=ZERO_DAYS, sa_type=DAYS_TYPE)
    used: Decimal = Field(default=ZERO_DAYS, sa_type=DAYS_TYPE)
    adjustment: Decimal = Field(default=ZERO_DAYS, sa_type=DAYS_TYPE)
    current_balance: Decimal = Field(default=ZERO_DAYS, sa_type=DAYS_TYPE)
    last_accrued_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
