# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import exists, func, or_, select
from sqlmodel import col

from leave_ledger.exceptions import ConflictError, NotFoundError
from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.enums import (
    AccrualMethod,
    AuditAction,
    AuditEntityType,
    CarryForwardType,
    PolicyCode,
)
from leave_ledger.models.ledger import LeaveTransaction
from leave_ledger.models.policy import LeavePolicy
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.policy import PolicyListResponse, PolicyResponse
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.policy import CreatePolicyRequest, UpdatePolicyRequest

logger = logging.getLogger(__name__)


def build_policy_response(policy: LeavePolicy) -> PolicyResponse:
    """Build a PolicyResponse from a DB model."""
    return PolicyResponse(
        id=policy.id,
        organization_id=policy.organization_id,
        code=PolicyCode(policy.code),
        display_name=policy.display_name,
        annual_quota=policy.annual_quota,
        accrual_method=AccrualMethod(policy.accrual_method),
        monthly_accrual_rate=policy.monthly_accrual_rate,
        carry_forward_type=CarryForwardType(policy.carry_forward_type),
        carry_forward_limit=policy.carry_forward_limit,
        is_active=policy.is_active,
        created_at=policy.created_at,
    )


def normalize_carry_forward_limit(carry_forward_type: str, carry_forward_limit: int) -> int:
    """A limit only persists when the carry-forward type uses it."""
    if carry_forward_type != CarryForwardType.LIMITED.value:
        return 0
    return carry_forward_limit


async def _ensure_code_available(
    session: AsyncSession,
    organization_id: uuid.UUID,
    code: str,
    exclude_policy_id: uuid.UUID | None = None,
) -> None:
    """Raise 409 if another active policy of the organization uses the code."""
    query = select(LeavePolicy.id).where(
        col(LeavePolicy.organization_id) == organization_id,
        col(LeavePolicy.code) == code,
        col(LeavePolicy.is_active).is_(True),
    )
    if exclude_policy_id is not None:
        query = query.where(col(LeavePolicy.id) != exclude_policy_id)
    result = await session.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise ConflictError(f"An active {code} policy already exists for this organization")


async def get_policy_or_404(
    session: AsyncSession,
    organization_id: uuid.UUID,
    policy_id: uuid.UUID,
) -> LeavePolicy:
    """Fetch a policy scoped to the organization. Raises 404 if not found."""
    result = await session.execute(
        select(LeavePolicy).where(
            col(LeavePolicy.id) == policy_id,
            col(LeavePolicy.organization_id) == organization_id,
        )
    )
    policy = result.scalar_one_or_none()
    if policy is None:
        raise NotFoundError("Leave policy not found")
    return policy


async def get_active_policy_by_code(
    session: AsyncSession,
    organization_id: uuid.UUID,
    code: PolicyCode,
) -> LeavePolicy | None:
    """Return the organization's active policy for a code, if any."""
    result = await session.execute(
        select(LeavePolicy)
        .where(
            col(LeavePolicy.organization_id) == organization_id,
            col(LeavePolicy.code) == code.value,
            col(LeavePolicy.is_active).is_(True),
        )
        .order_by(col(LeavePolicy.created_at))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_active_policies(session: AsyncSession, organization_id: uuid.UUID) -> list[LeavePolicy]:
    """All active policies of the organization, oldest first."""
    result = await session.execute(
        select(LeavePolicy)
        .where(
            col(LeavePolicy.organization_id) == organization_id,
            col(LeavePolicy.is_active).is_(True),
        )
        .order_by(col(LeavePolicy.created_at))
    )
    return list(result.scalars().all())


async def create_policy(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreatePolicyRequest,
) -> PolicyResponse:
    """Create a leave policy for the caller's organization."""
    if payload.is_active:
        await _ensure_code_available(session, auth.organization_id, payload.code.value)

    policy = LeavePolicy(
        organization_id=auth.organization_id,
        code=payload.code.value,
        display_name=payload.display_name,
        annual_quota=payload.annual_quota,
        accrual_method=payload.accrual_method.value,
        monthly_accrual_rate=payload.monthly_accrual_rate,
        carry_forward_type=payload.carry_forward_type.value,
        carry_forward_limit=normalize_carry_forward_limit(
            payload.carry_forward_type.value, payload.carry_forward_limit
        ),
        is_active=payload.is_active,
    )
    session.add(policy)
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_POLICY,
        entity_id=policy.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(policy),
    )

    await session.commit()
    await session.refresh(policy)
    logger.info("Created %s policy %s for organization %s", policy.code, policy.id, policy.organization_id)
    return build_policy_response(policy)


async def get_policy(
    session: AsyncSession,
    organization_id: uuid.UUID,
    policy_id: uuid.UUID,
) -> PolicyResponse:
    """Fetch a single policy."""
    policy = await get_policy_or_404(session, organization_id, policy_id)
    return build_policy_response(policy)


async def list_policies(
    session: AsyncSession,
    organization_id: uuid.UUID,
    active_only: bool = False,
) -> PolicyListResponse:
    """List the organization's policies, oldest first."""
    filters = [col(LeavePolicy.organization_id) == organization_id]
    if active_only:
        filters.append(col(LeavePolicy.is_active).is_(True))

    count_result = await session.execute(select(func.count()).select_from(LeavePolicy).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(select(LeavePolicy).where(*filters).order_by(col(LeavePolicy.created_at)))
    policies = list(result.scalars().all())
    return PolicyListResponse(items=[build_policy_response(p) for p in policies], total=total)


async def update_policy(
    session: AsyncSession,
    auth: AuthContext,
    policy_id: uuid.UUID,
    payload: UpdatePolicyRequest,
) -> PolicyResponse:
    """Apply a partial update.

    The carry-forward limit is re-normalized against the merged type, so a
    limit never survives a switch away from ``limited``.
    """
    policy = await get_policy_or_404(session, auth.organization_id, policy_id)
    before_dict = model_to_audit_dict(policy)

    changes = payload.model_dump(exclude_unset=True, mode="python")
    new_code = changes.get("code", policy.code)
    new_active = changes.get("is_active", policy.is_active)
    if new_active and (new_code != policy.code or not policy.is_active):
        await _ensure_code_available(session, auth.organization_id, str(new_code), exclude_policy_id=policy.id)

    for field, value in changes.items():
        if value is None:
            continue
        if field in {"code", "accrual_method", "carry_forward_type"}:
            value = str(value)
        setattr(policy, field, value)

    policy.carry_forward_limit = normalize_carry_forward_limit(policy.carry_forward_type, policy.carry_forward_limit)

    await session.flush()
    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_POLICY,
        entity_id=policy.id,
        action=AuditAction.UPDATE,
        before_json=before_dict,
        after_json=model_to_audit_dict(policy),
    )

    await session.commit()
    await session.refresh(policy)
    return build_policy_response(policy)


async def _is_policy_referenced(session: AsyncSession, policy_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(
            or_(
                exists().where(col(EmployeeLeaveBalance.policy_id) == policy_id),
                exists().where(col(LeaveTransaction.policy_id) == policy_id),
                exists().where(col(LeaveRequest.policy_id) == policy_id),
            )
        )
    )
    return bool(result.scalar())


async def delete_policy(
    session: AsyncSession,
    auth: AuthContext,
    policy_id: uuid.UUID,
) -> None:
    """Delete a policy, or deactivate it when balances or requests reference it."""
    policy = await get_policy_or_404(session, auth.organization_id, policy_id)
    before_dict = model_to_audit_dict(policy)

    if await _is_policy_referenced(session, policy.id):
        policy.is_active = False
        await session.flush()
        await write_audit_log(
            session,
            organization_id=auth.organization_id,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_POLICY,
            entity_id=policy.id,
            action=AuditAction.DEACTIVATE,
            before_json=before_dict,
            after_json=model_to_audit_dict(policy),
        )
        logger.info("Policy %s is referenced; deactivated instead of deleted", policy.id)
    else:
        await session.delete(policy)
        await write_audit_log(
            session,
            organization_id=auth.organization_id,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_POLICY,
            entity_id=policy_id,
            action=AuditAction.DELETE,
            before_json=before_dict,
        )

    await session.commit()
