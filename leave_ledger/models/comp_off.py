# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import DAYS_TYPE, TimestampMixin, UUIDBase


class CompOffGrant(UUIDBase, TimestampMixin, table=True):
    """Compensatory days granted for extra work, banked once applied."""

    __tablename__ = "comp_off_grant"
    __table_args__ = (sa.Index("ix_comp_off_org_applied", "organization_id", "is_applied"),)

    employee_id: uuid.UUID = Field(index=True)
    organization_id: uuid.UUID
    work_date: date
    hours_worked: Decimal = Field(default=Decimal("8"), sa_type=sa.Numeric(5, 2))
    days_granted: Decimal = Field(sa_type=DAYS_TYPE)
    source: str = Field(max_length=20)
    reason: str | None = None
    granted_by: uuid.UUID
    is_applied: bool = Field(default=False)
    applied_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
