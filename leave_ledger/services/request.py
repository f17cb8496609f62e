# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_ledger.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from leave_ledger.models.base import now_utc
from leave_ledger.models.enums import (
    AuditAction,
    AuditEntityType,
    HalfDaySession,
    LeaveType,
    RequestStatus,
)
from leave_ledger.models.policy import LeavePolicy
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.request import LeaveRequestListResponse, LeaveRequestResponse
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.balance import LeaveDeduction, apply_leave_deduction, get_balance_for_update
from leave_ledger.services.duration import leave_days
from leave_ledger.services.employee import require_employee
from leave_ledger.services.notification import NotificationType, notify_employee, notify_org_admins

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.request import ReviewLeaveRequestPayload, SubmitLeaveRequestPayload

logger = logging.getLogger(__name__)

CROSS_YEAR_MESSAGE = "Leave requests cannot span across years. Please submit separate requests for each year."

# ---------------------------------------------------------------------------
# Approval outcomes
# ---------------------------------------------------------------------------


@dataclass
class Approved:
    """The request was approved; ``deduction`` is None when no policy is linked."""

    request: LeaveRequest
    deduction: LeaveDeduction | None = None


@dataclass
class RevertedToPending:
    """No balance exists for the request's year; the request stays pending."""

    request: LeaveRequest
    year: int

    @property
    def message(self) -> str:
        return (
            f"Cannot approve: No leave balance record found for year {self.year}. "
            "Please ensure employee has initialized leave balances for this policy and year."
        )


@dataclass
class AutoRejected:
    """The request spans two calendar years and was rejected."""

    request: LeaveRequest
    start_year: int
    end_year: int

    @property
    def message(self) -> str:
        return (
            f"Cannot approve: Leave request spans multiple years ({self.start_year} to {self.end_year}). "
            "Please reject this request and have the employee submit separate requests for each year."
        )


ApprovalResult = Approved | RevertedToPending | AutoRejected


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        organization_id=request.organization_id,
        policy_id=request.policy_id,
        leave_type=LeaveType(request.leave_type),
        start_date=request.start_date,
        end_date=request.end_date,
        total_days=request.total_days,
        is_half_day=request.is_half_day,
        half_day_session=HalfDaySession(request.half_day_session) if request.half_day_session else None,
        reason=request.reason,
        status=RequestStatus(request.status),
        reviewed_by=request.reviewed_by,
        reviewed_at=request.reviewed_at,
        review_notes=request.review_notes,
        created_at=request.created_at,
    )


async def _get_request_or_404(
    session: AsyncSession,
    organization_id: uuid.UUID,
    request_id: uuid.UUID,
    for_update: bool = False,
) -> LeaveRequest:
    """Fetch a request scoped to the organization. Raises 404 if not found."""
    query = select(LeaveRequest).where(
        col(LeaveRequest.id) == request_id,
        col(LeaveRequest.organization_id) == organization_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Leave request not found")
    return request


def _ensure_can_view(auth: AuthContext, request: LeaveRequest) -> None:
    if not auth.is_admin and request.employee_id != auth.employee_id:
        raise ForbiddenError("You can only access your own leave requests")


def _ensure_pending(request: LeaveRequest) -> None:
    if request.status != RequestStatus.PENDING:
        raise ConflictError(f"Leave request is already {request.status}")


async def _ensure_active_policy(session: AsyncSession, organization_id: uuid.UUID, policy_id: uuid.UUID) -> None:
    result = await session.execute(
        select(LeavePolicy.id).where(
            col(LeavePolicy.id) == policy_id,
            col(LeavePolicy.organization_id) == organization_id,
            col(LeavePolicy.is_active).is_(True),
        )
    )
    if result.scalar_one_or_none() is None:
        raise ValidationError("Leave policy not found or inactive")


async def _close_request(
    session: AsyncSession,
    auth: AuthContext,
    request: LeaveRequest,
    new_status: RequestStatus,
    audit_action: AuditAction,
    review_notes: str | None,
) -> LeaveRequest:
    """Shared logic for reject and cancel: a status transition with no ledger effect."""
    before_dict = model_to_audit_dict(request)
    request.status = new_status.value
    request.reviewed_by = auth.user_id
    request.reviewed_at = now_utc()
    if review_notes is not None:
        request.review_notes = review_notes
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=request.id,
        action=audit_action,
        before_json=before_dict,
        after_json=model_to_audit_dict(request),
    )
    await session.commit()
    logger.info("Leave request %s %s by %s", request.id, new_status, auth.user_id)
    return request


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitLeaveRequestPayload,
) -> LeaveRequestResponse:
    """Submit a leave request for the caller's own employee record."""
    if auth.employee_id is None:
        raise ValidationError("Employee account required to submit leave requests")
    employee = await require_employee(auth.organization_id, auth.employee_id)

    if payload.end_date < payload.start_date:
        raise ValidationError("End date must be after start date")
    if payload.start_date.year != payload.end_date.year:
        raise ValidationError(CROSS_YEAR_MESSAGE)
    total_days = leave_days(payload.start_date, payload.end_date, payload.is_half_day)
    if payload.is_half_day and payload.half_day_session is None:
        raise ValidationError("Half-day leave requires a half_day_session")
    if payload.policy_id is not None:
        await _ensure_active_policy(session, auth.organization_id, payload.policy_id)

    request = LeaveRequest(
        employee_id=employee.id,
        organization_id=auth.organization_id,
        policy_id=payload.policy_id,
        leave_type=payload.leave_type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        total_days=total_days,
        is_half_day=payload.is_half_day,
        half_day_session=payload.half_day_session.value if payload.half_day_session else None,
        reason=payload.reason,
        status=RequestStatus.PENDING.value,
    )
    session.add(request)
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=request.id,
        action=AuditAction.SUBMIT,
        after_json=model_to_audit_dict(request),
    )
    await session.commit()
    logger.info("Leave request %s submitted by employee %s for %s day(s)", request.id, employee.id, total_days)

    await notify_org_admins(
        auth.organization_id,
        kind=NotificationType.LEAVE_REQUEST,
        title="New Leave Request",
        message=f"{employee.full_name} requested leave from {request.start_date} to {request.end_date}",
        related_id=request.id,
    )
    return build_request_response(request)


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Fetch a single request; employees may only read their own."""
    request = await _get_request_or_404(session, auth.organization_id, request_id)
    _ensure_can_view(auth, request)
    return build_request_response(request)


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    status: RequestStatus | None = None,
    employee_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List requests, newest first. Non-admins only ever see their own."""
    if not auth.is_admin:
        if auth.employee_id is None:
            return LeaveRequestListResponse(items=[], total=0)
        employee_id = auth.employee_id

    filters = [col(LeaveRequest.organization_id) == auth.organization_id]
    if status is not None:
        filters.append(col(LeaveRequest.status) == status.value)
    if employee_id is not None:
        filters.append(col(LeaveRequest.employee_id) == employee_id)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())
    return LeaveRequestListResponse(items=[build_request_response(r) for r in requests], total=total)


async def list_pending_requests(
    session: AsyncSession,
    auth: AuthContext,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """Pending requests of the organization awaiting review."""
    return await list_requests(session, auth, status=RequestStatus.PENDING, offset=offset, limit=limit)


async def approve_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    review_notes: str | None = None,
) -> ApprovalResult:
    """Approve a pending request and charge it to the ledger.

    1. Lock the request; it must be pending.
    2. No policy linked: approve without touching the ledger.
    3. Dates span two years: reject and commit (``AutoRejected``).
    4. Lock the balance for the start year; absent: leave the request
       pending (``RevertedToPending``).
    5. Deduct, mark attendance, approve, audit and commit once.
    """
    request = await _get_request_or_404(session, auth.organization_id, request_id, for_update=True)
    _ensure_pending(request)
    before_dict = model_to_audit_dict(request)

    if request.policy_id is not None and request.start_date.year != request.end_date.year:
        request.status = RequestStatus.REJECTED.value
        request.reviewed_by = auth.user_id
        request.reviewed_at = now_utc()
        await session.flush()
        await write_audit_log(
            session,
            organization_id=auth.organization_id,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=request.id,
            action=AuditAction.AUTO_REJECT,
            before_json=before_dict,
            after_json=model_to_audit_dict(request),
        )
        await session.commit()
        logger.warning(
            "Leave request %s auto-rejected: spans %d to %d",
            request.id,
            request.start_date.year,
            request.end_date.year,
        )
        return AutoRejected(request=request, start_year=request.start_date.year, end_year=request.end_date.year)

    deduction: LeaveDeduction | None = None
    if request.policy_id is not None:
        year = request.start_date.year
        balance = await get_balance_for_update(session, request.employee_id, request.policy_id, year)
        if balance is None:
            logger.warning("Leave request %s left pending: no balance for year %d", request.id, year)
            return RevertedToPending(request=request, year=year)
        deduction = await apply_leave_deduction(session, request, balance, auth.user_id)

    request.status = RequestStatus.APPROVED.value
    request.reviewed_by = auth.user_id
    request.reviewed_at = now_utc()
    if review_notes is not None:
        request.review_notes = review_notes
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=request.id,
        action=AuditAction.APPROVE,
        before_json=before_dict,
        after_json=model_to_audit_dict(request),
    )
    await session.commit()
    logger.info("Leave request %s approved by %s", request.id, auth.user_id)

    await notify_employee(
        auth.organization_id,
        request.employee_id,
        kind=NotificationType.LEAVE_APPROVED,
        title="Leave Approved",
        message=f"Your leave from {request.start_date} to {request.end_date} has been approved",
        related_id=request.id,
    )
    return Approved(request=request, deduction=deduction)


async def reject_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    review_notes: str | None = None,
) -> LeaveRequest:
    """Reject a pending request."""
    request = await _get_request_or_404(session, auth.organization_id, request_id, for_update=True)
    _ensure_pending(request)
    request = await _close_request(session, auth, request, RequestStatus.REJECTED, AuditAction.REJECT, review_notes)

    await notify_employee(
        auth.organization_id,
        request.employee_id,
        kind=NotificationType.LEAVE_REJECTED,
        title="Leave Rejected",
        message=f"Your leave from {request.start_date} to {request.end_date} has been rejected",
        related_id=request.id,
    )
    return request


async def cancel_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    review_notes: str | None = None,
) -> LeaveRequestResponse:
    """Cancel a pending request. Allowed for admins and the owning employee."""
    request = await _get_request_or_404(session, auth.organization_id, request_id, for_update=True)
    _ensure_can_view(auth, request)
    _ensure_pending(request)
    request = await _close_request(session, auth, request, RequestStatus.CANCELLED, AuditAction.CANCEL, review_notes)
    return build_request_response(request)


async def review_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: ReviewLeaveRequestPayload,
) -> LeaveRequestResponse:
    """Admin review transition. Approval outcomes other than ``Approved`` surface as 400."""
    if payload.status == RequestStatus.APPROVED:
        result = await approve_request(session, auth, request_id, payload.review_notes)
        if not isinstance(result, Approved):
            raise ValidationError(result.message)
        return build_request_response(result.request)

    if payload.status == RequestStatus.REJECTED:
        request = await reject_request(session, auth, request_id, payload.review_notes)
        return build_request_response(request)

    return await cancel_request(session, auth, request_id, payload.review_notes)
