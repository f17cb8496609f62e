# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import TimestampMixin, UUIDBase


class Attendance(UUIDBase, TimestampMixin, table=True):
    """One attendance row per employee per calendar day."""

    __tablename__ = "attendance"
    __table_args__ = (sa.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),)

    employee_id: uuid.UUID = Field(index=True)
    organization_id: uuid.UUID = Field(index=True)
    date: datetime.date
    status: str = Field(max_length=20)
    check_in: str | None = Field(default=None, max_length=10)
    check_out: str | None = Field(default=None, max_length=10)
    notes: str | None = None
