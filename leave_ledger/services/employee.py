# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leave_ledger.exceptions import NotFoundError
from leave_ledger.models.enums import UserRole


class EmployeeInfo(BaseModel):
    """Employee record from the Employee directory."""

    id: uuid.UUID
    organization_id: uuid.UUID
    employee_code: str
    first_name: str
    last_name: str
    email: str
    status: str = "active"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AppUserInfo(BaseModel):
    """Login account; employees' accounts link back to their employee record."""

    id: uuid.UUID
    organization_id: uuid.UUID | None
    role: UserRole
    employee_id: uuid.UUID | None = None


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the Employee directory."""

    async def get_employee(self, organization_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee of the organization. Returns None if not found."""
        ...

    async def list_employees(self, organization_id: uuid.UUID) -> list[EmployeeInfo]:
        """List all employees of an organization."""
        ...

    async def list_users(self, organization_id: uuid.UUID) -> list[AppUserInfo]:
        """List all user accounts of an organization."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[tuple[uuid.UUID, uuid.UUID], EmployeeInfo] = {}
        self._users: dict[uuid.UUID, AppUserInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[(employee.organization_id, employee.id)] = employee

    def seed_user(self, user: AppUserInfo) -> None:
        """Seed a user account for testing."""
        self._users[user.id] = user

    async def get_employee(self, organization_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee of the organization. Returns None if not found."""
        return self._employees.get((organization_id, employee_id))

    async def list_employees(self, organization_id: uuid.UUID) -> list[EmployeeInfo]:
        """List all employees of an organization."""
        return [e for e in self._employees.values() if e.organization_id == organization_id]

    async def list_users(self, organization_id: uuid.UUID) -> list[AppUserInfo]:
        """List all user accounts of an organization."""
        return [u for u in self._users.values() if u.organization_id == organization_id]


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the Employee directory."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def require_employee(organization_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo:
    """Return the employee, or raise 404 when absent or outside the organization."""
    employee = await get_employee_service().get_employee(organization_id, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee
