from __future__ import annotations

import enum


class PolicyCode(enum.StrEnum):
    """Leave type code of an organization policy."""

    CL = "CL"
    PL = "PL"
    SL = "SL"
    COMP_OFF = "COMP_OFF"


class AccrualMethod(enum.StrEnum):
    """How a policy's quota is credited to balances."""

    YEARLY = "yearly"
    MONTHLY = "monthly"
    NONE = "none"


class CarryForwardType(enum.StrEnum):
    """Whether unused days may roll into the next year."""

    NONE = "none"
    LIMITED = "limited"
    UNLIMITED = "unlimited"


class TransactionType(enum.StrEnum):
    """Kind of balance-affecting event recorded in the ledger."""

    ACCRUAL = "accrual"
    ADJUSTMENT = "adjustment"
    REQUEST = "request"


class LeaveType(enum.StrEnum):
    """Free-form leave category chosen by the employee."""

    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    UNPAID = "unpaid"
    OTHER = "other"


class RequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class HalfDaySession(enum.StrEnum):
    """Which half of the day a half-day leave covers."""

    FIRST_HALF = "first_half"
    SECOND_HALF = "second_half"


class CompOffSource(enum.StrEnum):
    """Why compensatory time off was granted."""

    OVERTIME = "overtime"
    HOLIDAY_WORK = "holiday_work"
    MANUAL = "manual"


class AttendanceStatus(enum.StrEnum):
    """Daily attendance status."""

    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half_day"
    LEAVE = "leave"
    HOLIDAY = "holiday"


class UserRole(enum.StrEnum):
    """Role tiers supplied by the identity middleware."""

    SUPER_ADMIN = "super_admin"
    ORG_ADMIN = "org_admin"
    EMPLOYEE = "employee"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_POLICY = "LEAVE_POLICY"
    LEAVE_BALANCE = "LEAVE_BALANCE"
    LEAVE_REQUEST = "LEAVE_REQUEST"
    COMP_OFF_GRANT = "COMP_OFF_GRANT"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    DEACTIVATE = "DEACTIVATE"
    INITIALIZE = "INITIALIZE"
    ADJUST = "ADJUST"
    ACCRUE = "ACCRUE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    AUTO_REJECT = "AUTO_REJECT"
    CANCEL = "CANCEL"
    APPLY = "APPLY"
