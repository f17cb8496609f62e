# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from leave_ledger.models.enums import TransactionType

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """One employee's balance against one policy for one year."""

    id: uuid.UUID
    employee_id: uuid.UUID
    policy_id: uuid.UUID
    policy_code: str
    policy_name: str
    organization_id: uuid.UUID
    year: int
    opening_balance: Decimal
    accrued: Decimal
    used: Decimal
    adjustment: Decimal
    current_balance: Decimal
    last_accrued_at: datetime | None
    updated_at: datetime | None


class BalanceListResponse(BaseModel):
    """Balances for an employee or an organization."""

    items: list[BalanceResponse]
    total: int


# ---------------------------------------------------------------------------
# Transaction response schemas
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """A single ledger transaction."""

    id: uuid.UUID
    employee_id: uuid.UUID
    balance_id: uuid.UUID
    policy_id: uuid.UUID
    organization_id: uuid.UUID
    transaction_type: TransactionType
    amount: Decimal
    balance_after: Decimal
    reference_id: str | None
    notes: str | None
    created_by: uuid.UUID | None
    created_at: datetime


class TransactionListResponse(BaseModel):
    """Paginated ledger transactions."""

    items: list[TransactionResponse]
    total: int


# ---------------------------------------------------------------------------
# Write payloads
# ---------------------------------------------------------------------------


class InitializeBalancesRequest(BaseModel):
    """Request body for initializing an employee's balances; year defaults to the current one."""

    year: int | None = Field(default=None, ge=1900, le=9999)


class AdjustBalanceRequest(BaseModel):
    """Request body for a manual balance adjustment."""

    policy_id: uuid.UUID
    amount: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="Signed day count: positive to credit, negative to debit",
    )
    notes: str | None = Field(default=None, max_length=1000)
    year: int | None = Field(default=None, ge=1900, le=9999)

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            msg = "amount must be non-zero"
            raise ValueError(msg)
        return value
