# ruff: noqa: TC003
from __future__ import annotations

import uuid
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import DAYS_TYPE, TimestampMixin, UUIDBase


class LeaveTransaction(UUIDBase, TimestampMixin, table=True):
    """Append-only ledger entry recording one balance-affecting event.

    ``balance_after`` snapshots the balance's ``current_balance`` at write time.
    """

    __tablename__ = "leave_transaction"
    __table_args__ = (
        sa.Index("ix_transaction_employee_policy", "employee_id", "policy_id"),
        sa.UniqueConstraint("balance_id", "transaction_type", "reference_id", name="uq_transaction_reference"),
    )

    employee_id: uuid.UUID = Field(index=True)
    balance_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee_leave_balance.id"), nullable=False, index=True),
    )
    policy_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_policy.id"), nullable=False),
    )
    organization_id: uuid.UUID = Field(index=True)
    transaction_type: str = Field(max_length=20)
    amount: Decimal = Field(sa_type=DAYS_TYPE)
    balance_after: Decimal = Field(sa_type=DAYS_TYPE)
    reference_id: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    created_by: uuid.UUID | None = None
