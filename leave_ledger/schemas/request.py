# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

from leave_ledger.models.enums import HalfDaySession, LeaveType, RequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeaveRequestPayload(BaseModel):
    """Request body for submitting a leave request.

    Date-order and same-year rules are enforced by the service so the error
    messages match the ones returned on approval.
    """

    policy_id: uuid.UUID | None = None
    leave_type: LeaveType = LeaveType.OTHER
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=2000)
    is_half_day: bool = False
    half_day_session: HalfDaySession | None = None

    @model_validator(mode="after")
    def _validate_half_day(self) -> Self:
        if self.half_day_session is not None and not self.is_half_day:
            msg = "half_day_session is only valid for half-day requests"
            raise ValueError(msg)
        return self


class ReviewLeaveRequestPayload(BaseModel):
    """Request body for the admin review transition."""

    status: Literal["approved", "rejected", "cancelled"]
    review_notes: str | None = Field(default=None, max_length=1000)


class CancelLeaveRequestPayload(BaseModel):
    """Optional body for cancelling a request."""

    review_notes: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    organization_id: uuid.UUID
    policy_id: uuid.UUID | None
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: Decimal | None
    is_half_day: bool
    half_day_session: HalfDaySession | None
    reason: str | None
    status: RequestStatus
    reviewed_by: uuid.UUID | None
    reviewed_at: datetime | None
    review_notes: str | None
    created_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
