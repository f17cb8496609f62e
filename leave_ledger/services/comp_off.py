# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_ledger.exceptions import ConflictError, NotFoundError, ValidationError
from leave_ledger.models.base import now_utc
from leave_ledger.models.comp_off import CompOffGrant
from leave_ledger.models.enums import AuditAction, AuditEntityType, CompOffSource, PolicyCode
from leave_ledger.schemas.comp_off import CompOffGrantListResponse, CompOffGrantResponse
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.balance import credit_accrual, current_year, get_or_create_balance
from leave_ledger.services.employee import require_employee
from leave_ledger.services.notification import NotificationType, notify_employee
from leave_ledger.services.policy import get_active_policy_by_code

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.comp_off import CreateCompOffGrantRequest

logger = logging.getLogger(__name__)


def build_grant_response(grant: CompOffGrant) -> CompOffGrantResponse:
    """Map a grant model to its response schema."""
    return CompOffGrantResponse(
        id=grant.id,
        employee_id=grant.employee_id,
        organization_id=grant.organization_id,
        work_date=grant.work_date,
        hours_worked=grant.hours_worked,
        days_granted=grant.days_granted,
        source=CompOffSource(grant.source),
        reason=grant.reason,
        granted_by=grant.granted_by,
        is_applied=grant.is_applied,
        applied_at=grant.applied_at,
        created_at=grant.created_at,
    )


async def _get_grant_for_update(
    session: AsyncSession,
    organization_id: uuid.UUID,
    grant_id: uuid.UUID,
) -> CompOffGrant:
    result = await session.execute(
        select(CompOffGrant)
        .where(
            col(CompOffGrant.id) == grant_id,
            col(CompOffGrant.organization_id) == organization_id,
        )
        .with_for_update()
    )
    grant = result.scalar_one_or_none()
    if grant is None:
        raise NotFoundError("Comp off grant not found")
    return grant


async def create_grant(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateCompOffGrantRequest,
) -> CompOffGrantResponse:
    """Record a comp-off grant. It earns nothing until applied."""
    await require_employee(auth.organization_id, payload.employee_id)

    grant = CompOffGrant(
        employee_id=payload.employee_id,
        organization_id=auth.organization_id,
        work_date=payload.work_date,
        hours_worked=payload.hours_worked,
        days_granted=payload.days_granted,
        source=payload.source.value,
        reason=payload.reason,
        granted_by=auth.user_id,
    )
    session.add(grant)
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.COMP_OFF_GRANT,
        entity_id=grant.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(grant),
    )
    await session.commit()
    logger.info("Comp off grant %s of %s day(s) for employee %s", grant.id, grant.days_granted, grant.employee_id)

    await notify_employee(
        auth.organization_id,
        grant.employee_id,
        kind=NotificationType.GENERAL,
        title="Comp Off Granted",
        message=f"You have been granted {grant.days_granted} comp off day(s) for work on {grant.work_date}",
        related_id=grant.id,
    )
    return build_grant_response(grant)


async def list_grants(
    session: AsyncSession,
    auth: AuthContext,
    pending_only: bool = False,
    employee_id: uuid.UUID | None = None,
) -> CompOffGrantListResponse:
    """List grants, newest first. Non-admins only see their own."""
    if not auth.is_admin:
        if auth.employee_id is None:
            return CompOffGrantListResponse(items=[], total=0)
        employee_id = auth.employee_id

    filters = [col(CompOffGrant.organization_id) == auth.organization_id]
    if pending_only:
        filters.append(col(CompOffGrant.is_applied).is_(False))
    if employee_id is not None:
        filters.append(col(CompOffGrant.employee_id) == employee_id)

    count_result = await session.execute(select(func.count()).select_from(CompOffGrant).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(CompOffGrant).where(*filters).order_by(col(CompOffGrant.created_at).desc())
    )
    grants = list(result.scalars().all())
    return CompOffGrantListResponse(items=[build_grant_response(g) for g in grants], total=total)


async def apply_grant(
    session: AsyncSession,
    auth: AuthContext,
    grant_id: uuid.UUID,
) -> CompOffGrantResponse:
    """Credit a grant to the employee's COMP_OFF balance for the current year.

    The grant row stays locked until the single commit, so two concurrent
    applies cannot both credit the balance.
    """
    grant = await _get_grant_for_update(session, auth.organization_id, grant_id)
    if grant.is_applied:
        raise ConflictError("Comp off already applied to balance")

    policy = await get_active_policy_by_code(session, auth.organization_id, PolicyCode.COMP_OFF)
    if policy is None:
        raise ValidationError("No active COMP_OFF leave policy found")

    before_dict = model_to_audit_dict(grant)
    balance, _ = await get_or_create_balance(
        session,
        organization_id=auth.organization_id,
        employee_id=grant.employee_id,
        policy=policy,
        year=current_year(),
        created_by=auth.user_id,
    )
    credit_accrual(
        session,
        balance,
        grant.days_granted,
        reference_id=str(grant.id),
        notes=f"Comp Off grant: {grant.source} on {grant.work_date}",
        created_by=auth.user_id,
    )
    grant.is_applied = True
    grant.applied_at = now_utc()
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.COMP_OFF_GRANT,
        entity_id=grant.id,
        action=AuditAction.APPLY,
        before_json=before_dict,
        after_json=model_to_audit_dict(grant),
    )
    await session.commit()
    logger.info(
        "Applied comp off grant %s to balance %s; balance now %s", grant.id, balance.id, balance.current_balance
    )
    return build_grant_response(grant)
