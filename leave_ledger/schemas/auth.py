# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leave_ledger.models.enums import UserRole


class AuthContext(BaseModel):
    """Acting user and organization scope supplied by the identity middleware."""

    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: UserRole = UserRole.EMPLOYEE
    employee_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ORG_ADMIN, UserRole.SUPER_ADMIN)
