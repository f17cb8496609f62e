from __future__ import annotations

from pydantic import BaseModel, Field


class MonthlyAccrualRunRequest(BaseModel):
    """Request body for triggering the monthly accrual run."""

    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)


class AccrualRunResponse(BaseModel):
    """Summary of a monthly accrual run."""

    year: int
    month: int
    processed: int
    accrued: int
    skipped: int
