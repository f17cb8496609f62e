# ruff: noqa: TC001
"""Admin trigger for the monthly accrual run."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from leave_ledger.api.deps import AdminDep, validate_organization_scope
from leave_ledger.db import SessionDep
from leave_ledger.schemas.accrual import AccrualRunResponse, MonthlyAccrualRunRequest
from leave_ledger.services.accrual import run_monthly_accruals

accrual_trigger_router = APIRouter(
    prefix="/organizations/{organization_id}/leave-accruals",
    tags=["accruals"],
    dependencies=[Depends(validate_organization_scope)],
)


@accrual_trigger_router.post("/monthly", response_model=AccrualRunResponse)
async def trigger_monthly_accruals(
    payload: MonthlyAccrualRunRequest,
    session: SessionDep,
    auth: AdminDep,
) -> AccrualRunResponse:
    """Credit one month of accrual to the organization's monthly-policy balances (admin only).

    Safe to re-run: balances already credited for the month are skipped.
    """
    result = await run_monthly_accruals(
        session,
        payload.year,
        payload.month,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
    )
    return AccrualRunResponse(
        year=result.year,
        month=result.month,
        processed=result.processed,
        accrued=result.accrued,
        skipped=result.skipped,
    )
