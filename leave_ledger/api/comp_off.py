# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from leave_ledger.api.deps import AdminDep, AuthDep, validate_organization_scope
from leave_ledger.db import SessionDep
from leave_ledger.schemas.comp_off import (
    CompOffGrantListResponse,
    CompOffGrantResponse,
    CreateCompOffGrantRequest,
)
from leave_ledger.services import comp_off as comp_off_service

comp_off_router = APIRouter(
    prefix="/organizations/{organization_id}/comp-off-grants",
    tags=["comp-off"],
    dependencies=[Depends(validate_organization_scope)],
)


@comp_off_router.post("", response_model=CompOffGrantResponse, status_code=status.HTTP_201_CREATED)
async def create_grant(
    payload: CreateCompOffGrantRequest,
    session: SessionDep,
    auth: AdminDep,
) -> CompOffGrantResponse:
    """Grant compensatory days to an employee."""
    return await comp_off_service.create_grant(session, auth, payload)


@comp_off_router.get("", response_model=CompOffGrantListResponse)
async def list_grants(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID | None = Query(default=None),
) -> CompOffGrantListResponse:
    """List comp-off grants. Employees only see their own."""
    return await comp_off_service.list_grants(session, auth, employee_id=employee_id)


@comp_off_router.get("/pending", response_model=CompOffGrantListResponse)
async def list_pending_grants(
    session: SessionDep,
    auth: AdminDep,
) -> CompOffGrantListResponse:
    """Grants not yet applied to a balance."""
    return await comp_off_service.list_grants(session, auth, pending_only=True)


@comp_off_router.post("/{grant_id}/apply", response_model=CompOffGrantResponse)
async def apply_grant(
    grant_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> CompOffGrantResponse:
    """Credit a grant to the employee's COMP_OFF balance."""
    return await comp_off_service.apply_grant(session, auth, grant_id)
