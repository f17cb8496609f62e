# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from leave_ledger.models.enums import AccrualMethod, CarryForwardType, PolicyCode

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreatePolicyRequest(BaseModel):
    """Request body for creating a leave policy."""

    code: PolicyCode
    display_name: str = Field(min_length=1, max_length=255)
    annual_quota: int = Field(default=0, ge=0)
    accrual_method: AccrualMethod = AccrualMethod.YEARLY
    monthly_accrual_rate: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    carry_forward_type: CarryForwardType = CarryForwardType.NONE
    carry_forward_limit: int = Field(default=0, ge=0)
    is_active: bool = True


class UpdatePolicyRequest(BaseModel):
    """Partial update of a leave policy; omitted fields are left unchanged."""

    code: PolicyCode | None = None
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    annual_quota: int | None = Field(default=None, ge=0)
    accrual_method: AccrualMethod | None = None
    monthly_accrual_rate: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    carry_forward_type: CarryForwardType | None = None
    carry_forward_limit: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PolicyResponse(BaseModel):
    """Response schema for a leave policy."""

    id: uuid.UUID
    organization_id: uuid.UUID
    code: PolicyCode
    display_name: str
    annual_quota: int
    accrual_method: AccrualMethod
    monthly_accrual_rate: Decimal
    carry_forward_type: CarryForwardType
    carry_forward_limit: int
    is_active: bool
    created_at: datetime


class PolicyListResponse(BaseModel):
    """List of leave policies."""

    items: list[PolicyResponse]
    total: int
