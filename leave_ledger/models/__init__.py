from sqlmodel import SQLModel

from leave_ledger.models.attendance import Attendance
from leave_ledger.models.audit import AuditLog
from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.base import TimestampMixin, UUIDBase
from leave_ledger.models.comp_off import CompOffGrant
from leave_ledger.models.enums import (
    AccrualMethod,
    AttendanceStatus,
    AuditAction,
    AuditEntityType,
    CarryForwardType,
    CompOffSource,
    HalfDaySession,
    LeaveType,
    PolicyCode,
    RequestStatus,
    TransactionType,
    UserRole,
)
from leave_ledger.models.ledger import LeaveTransaction
from leave_ledger.models.policy import LeavePolicy
from leave_ledger.models.request import LeaveRequest

__all__ = [
    "AccrualMethod",
    "Attendance",
    "AttendanceStatus",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "CarryForwardType",
    "CompOffGrant",
    "CompOffSource",
    "EmployeeLeaveBalance",
    "HalfDaySession",
    "LeavePolicy",
    "LeaveRequest",
    "LeaveTransaction",
    "LeaveType",
    "PolicyCode",
    "RequestStatus",
    "SQLModel",
    "TimestampMixin",
    "TransactionType",
    "UUIDBase",
    "UserRole",
]
