# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import DAYS_TYPE, TimestampMixin, UUIDBase
from leave_ledger.models.enums import RequestStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request with approval workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (sa.Index("ix_leave_request_org_status", "organization_id", "status"),)

    employee_id: uuid.UUID = Field(index=True)
    organization_id: uuid.UUID = Field(index=True)
    # Null for legacy/manual leave types that bypass the ledger.
    policy_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_policy.id"), nullable=True, index=True),
    )
    leave_type: str = Field(max_length=20)
    start_date: date
    end_date: date
    total_days: Decimal | None = Field(default=None, sa_type=DAYS_TYPE)
    is_half_day: bool = Field(default=False)
    half_day_session: str | None = Field(default=None, max_length=20)
    reason: str | None = None
    status: str = Field(
        default=RequestStatus.PENDING, max_length=20, sa_column_kwargs={"server_default": "pending"}
    )
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    review_notes: str | None = None
