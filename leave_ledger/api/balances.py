# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from leave_ledger.api.deps import AdminDep, AuthDep, ensure_self_or_admin, validate_organization_scope
from leave_ledger.db import SessionDep
from leave_ledger.schemas.balance import (
    AdjustBalanceRequest,
    BalanceListResponse,
    BalanceResponse,
    InitializeBalancesRequest,
    TransactionListResponse,
)
from leave_ledger.services import balance as balance_service

organization_balance_router = APIRouter(
    prefix="/organizations/{organization_id}/leave-balances",
    tags=["balances"],
    dependencies=[Depends(validate_organization_scope)],
)

employee_balance_router = APIRouter(
    prefix="/organizations/{organization_id}/employees/{employee_id}/leave-balances",
    tags=["balances"],
    dependencies=[Depends(validate_organization_scope)],
)

employee_transaction_router = APIRouter(
    prefix="/organizations/{organization_id}/employees/{employee_id}/leave-transactions",
    tags=["balances"],
    dependencies=[Depends(validate_organization_scope)],
)


@organization_balance_router.get("", response_model=BalanceListResponse)
async def list_organization_balances(
    session: SessionDep,
    auth: AdminDep,
    year: int | None = Query(default=None, ge=1900, le=9999),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
) -> BalanceListResponse:
    """Balances of every employee of the organization for a year."""
    return await balance_service.list_organization_balances(
        session, auth.organization_id, year or balance_service.current_year(), offset, limit
    )


@employee_balance_router.get("", response_model=BalanceListResponse)
async def get_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=1900, le=9999),
) -> BalanceListResponse:
    """Get all policy balances of an employee for a year."""
    ensure_self_or_admin(auth, employee_id)
    return await balance_service.get_employee_balances(
        session, auth.organization_id, employee_id, year or balance_service.current_year()
    )


@employee_balance_router.post("/initialize", response_model=BalanceListResponse)
async def initialize_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    payload: InitializeBalancesRequest | None = None,
) -> BalanceListResponse:
    """Create the employee's missing balances for every active policy."""
    return await balance_service.initialize_employee_balances(
        session, auth, employee_id, (payload and payload.year) or balance_service.current_year()
    )


@employee_balance_router.post("/adjust", response_model=BalanceResponse)
async def adjust_balance(
    employee_id: uuid.UUID,
    payload: AdjustBalanceRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Apply a manual credit or debit to an existing balance."""
    return await balance_service.adjust_balance(
        session, auth, employee_id, payload, payload.year or balance_service.current_year()
    )


@employee_transaction_router.get("", response_model=TransactionListResponse)
async def get_employee_transactions(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=1900, le=9999),
    policy_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> TransactionListResponse:
    """Ledger transactions of an employee, newest first."""
    ensure_self_or_admin(auth, employee_id)
    return await balance_service.get_employee_transactions(
        session, auth.organization_id, employee_id, year, policy_id, offset, limit
    )
