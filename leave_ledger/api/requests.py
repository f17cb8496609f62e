# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from leave_ledger.api.deps import AdminDep, AuthDep, validate_organization_scope
from leave_ledger.db import SessionDep
from leave_ledger.models.enums import RequestStatus
from leave_ledger.schemas.request import (
    CancelLeaveRequestPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    ReviewLeaveRequestPayload,
    SubmitLeaveRequestPayload,
)
from leave_ledger.services import request as request_service

requests_router = APIRouter(
    prefix="/organizations/{organization_id}/leave-requests",
    tags=["requests"],
    dependencies=[Depends(validate_organization_scope)],
)


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    payload: SubmitLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a leave request for the caller's employee record."""
    return await request_service.submit_request(session, auth, payload)


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests. Employees only see their own."""
    return await request_service.list_requests(session, auth, status_filter, employee_id, offset, limit)


@requests_router.get("/pending", response_model=LeaveRequestListResponse)
async def list_pending_requests(
    session: SessionDep,
    auth: AdminDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """Pending requests awaiting review."""
    return await request_service.list_pending_requests(session, auth, offset, limit)


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await request_service.get_request(session, auth, request_id)


@requests_router.patch("/{request_id}", response_model=LeaveRequestResponse)
async def review_request(
    request_id: uuid.UUID,
    payload: ReviewLeaveRequestPayload,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveRequestResponse:
    """Approve, reject or cancel a pending request."""
    return await request_service.review_request(session, auth, request_id, payload)


@requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    payload: CancelLeaveRequestPayload | None = None,
) -> LeaveRequestResponse:
    """Cancel a pending request (owner or admin)."""
    return await request_service.cancel_request(session, auth, request_id, payload.review_notes if payload else None)
