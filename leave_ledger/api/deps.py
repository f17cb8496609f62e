# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path

from leave_ledger.exceptions import ForbiddenError
from leave_ledger.models.enums import UserRole
from leave_ledger.schemas.auth import AuthContext


async def get_auth_context(
    x_organization_id: uuid.UUID = Header(),
    x_user_id: uuid.UUID = Header(),
    x_role: UserRole = Header(default=UserRole.EMPLOYEE),
    x_employee_id: uuid.UUID | None = Header(default=None),
) -> AuthContext:
    """Build the auth context from the headers set by the identity middleware."""
    return AuthContext(
        organization_id=x_organization_id,
        user_id=x_user_id,
        role=x_role,
        employee_id=x_employee_id,
    )


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require org admin or super admin role for the request."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def validate_organization_scope(
    organization_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Ensure the path organization_id matches the caller's organization."""
    if organization_id != auth.organization_id:
        raise ForbiddenError("Organization ID mismatch")
    return auth


def ensure_self_or_admin(auth: AuthContext, employee_id: uuid.UUID) -> None:
    """Employees may only read their own records."""
    if not auth.is_admin and auth.employee_id != employee_id:
        raise ForbiddenError("You can only access your own records")
