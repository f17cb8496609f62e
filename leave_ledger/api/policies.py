# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from leave_ledger.api.deps import AdminDep, AuthDep, validate_organization_scope
from leave_ledger.db import SessionDep
from leave_ledger.schemas.policy import (
    CreatePolicyRequest,
    PolicyListResponse,
    PolicyResponse,
    UpdatePolicyRequest,
)
from leave_ledger.services import policy as policy_service

router = APIRouter(
    prefix="/organizations/{organization_id}/leave-policies",
    tags=["policies"],
    dependencies=[Depends(validate_organization_scope)],
)


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    payload: CreatePolicyRequest,
    session: SessionDep,
    auth: AdminDep,
) -> PolicyResponse:
    """Create a leave policy."""
    return await policy_service.create_policy(session, auth, payload)


@router.get("", response_model=PolicyListResponse)
async def list_policies(
    session: SessionDep,
    auth: AuthDep,
    active_only: bool = Query(default=False),
) -> PolicyListResponse:
    """List the organization's policies. Employees only see active ones."""
    return await policy_service.list_policies(
        session, auth.organization_id, active_only=active_only or not auth.is_admin
    )


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> PolicyResponse:
    """Get a single policy."""
    return await policy_service.get_policy(session, auth.organization_id, policy_id)


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: uuid.UUID,
    payload: UpdatePolicyRequest,
    session: SessionDep,
    auth: AdminDep,
) -> PolicyResponse:
    """Partially update a policy."""
    return await policy_service.update_policy(session, auth, policy_id, payload)


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(
    policy_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> Response:
    """Delete a policy, or deactivate it when it is still referenced."""
    await policy_service.delete_policy(session, auth, policy_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
