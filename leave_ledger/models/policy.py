# ruff: noqa: TC003
from __future__ import annotations

import uuid
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import DAYS_TYPE, ZERO_DAYS, TimestampMixin, UUIDBase
from leave_ledger.models.enums import AccrualMethod, CarryForwardType


class LeavePolicy(UUIDBase, TimestampMixin, table=True):
    """Organization-level leave type definition (e.g. Casual Leave).

    At most one *active* policy per (organization, code); inactive duplicates
    are allowed so a policy can be retired and replaced.
    """

    __tablename__ = "leave_policy"
    __table_args__ = (sa.Index("ix_leave_policy_org_code", "organization_id", "code"),)

    organization_id: uuid.UUID = Field(index=True)
    code: str = Field(max_length=20)
    display_name: str = Field(max_length=255)
    annual_quota: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    accrual_method: str = Field(
        default=AccrualMethod.YEARLY, max_length=20, sa_column_kwargs={"server_default": "yearly"}
    )
    monthly_accrual_rate: Decimal = Field(default=ZERO_DAYS, sa_type=DAYS_TYPE)
    carry_forward_type: str = Field(
        default=CarryForwardType.NONE, max_length=20, sa_column_kwargs={"server_default": "none"}
    )
    carry_forward_limit: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    is_active: bool = Field(default=True)
