# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from leave_ledger.models.enums import CompOffSource


class CreateCompOffGrantRequest(BaseModel):
    """Request body for granting compensatory days to an employee."""

    employee_id: uuid.UUID
    work_date: date
    hours_worked: Decimal = Field(default=Decimal("8"), gt=0, le=24, max_digits=5, decimal_places=2)
    days_granted: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    source: CompOffSource
    reason: str | None = Field(default=None, max_length=1000)


class CompOffGrantResponse(BaseModel):
    """Response schema for a comp-off grant."""

    id: uuid.UUID
    employee_id: uuid.UUID
    organization_id: uuid.UUID
    work_date: date
    hours_worked: Decimal
    days_granted: Decimal
    source: CompOffSource
    reason: str | None
    granted_by: uuid.UUID
    is_applied: bool
    applied_at: datetime | None
    created_at: datetime


class CompOffGrantListResponse(BaseModel):
    """List of comp-off grants."""

    items: list[CompOffGrantResponse]
    total: int
