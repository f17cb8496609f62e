"""Monthly accrual engine for policies with ``accrual_method = monthly``."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.enums import AccrualMethod, AuditAction, AuditEntityType, TransactionType
from leave_ledger.models.policy import LeavePolicy
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.balance import credit_accrual, get_balance_for_update, has_transaction

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = uuid.UUID(int=0)
_CENT = Decimal("0.01")


@dataclass
class AccrualRunResult:
    """Summary of a monthly accrual run."""

    year: int
    month: int
    processed: int = 0
    accrued: int = 0
    skipped: int = 0


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def monthly_accrual_reference(year: int, month: int) -> str:
    """Idempotency reference of the accrual for one period."""
    return f"monthly-accrual:{year}-{month:02d}"


def compute_monthly_amount(policy: LeavePolicy) -> Decimal:
    """Days credited per month: the explicit rate, else a twelfth of the annual quota."""
    if policy.monthly_accrual_rate and policy.monthly_accrual_rate > 0:
        return Decimal(policy.monthly_accrual_rate)
    return (Decimal(policy.annual_quota) / 12).quantize(_CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


async def _find_monthly_balances(
    session: AsyncSession,
    year: int,
    organization_id: uuid.UUID | None,
) -> list[tuple[uuid.UUID, uuid.UUID, LeavePolicy]]:
    filters = [
        col(EmployeeLeaveBalance.year) == year,
        col(LeavePolicy.is_active).is_(True),
        col(LeavePolicy.accrual_method) == AccrualMethod.MONTHLY.value,
    ]
    if organization_id is not None:
        filters.append(col(EmployeeLeaveBalance.organization_id) == organization_id)

    result = await session.execute(
        select(EmployeeLeaveBalance.id, EmployeeLeaveBalance.employee_id, LeavePolicy)
        .join(LeavePolicy, col(LeavePolicy.id) == col(EmployeeLeaveBalance.policy_id))
        .where(*filters)
        .order_by(col(EmployeeLeaveBalance.employee_id))
    )
    return [(balance_id, employee_id, policy) for balance_id, employee_id, policy in result.all()]


async def run_monthly_accruals(
    session: AsyncSession,
    year: int,
    month: int,
    *,
    organization_id: uuid.UUID | None = None,
    actor_id: uuid.UUID | None = None,
) -> AccrualRunResult:
    """Credit one month of accrual to every monthly-policy balance of ``year``.

    Idempotent: a balance already holding the period's accrual transaction
    is skipped. All credits of the run commit together.

    Args:
        session: Database session.
        year: Balance year to credit.
        month: Period (1-12) used as the idempotency reference.
        organization_id: If provided, only process balances of this organization.
        actor_id: Recorded as creator; the system actor when omitted.
    """
    result = AccrualRunResult(year=year, month=month)
    reference = monthly_accrual_reference(year, month)
    actor = actor_id or SYSTEM_ACTOR_ID

    for balance_id, employee_id, policy in await _find_monthly_balances(session, year, organization_id):
        result.processed += 1

        amount = compute_monthly_amount(policy)
        if amount <= 0:
            result.skipped += 1
            continue

        # Check the period reference only while holding the row lock.
        balance = await get_balance_for_update(session, employee_id, policy.id, year)
        if balance is None or await has_transaction(session, balance_id, TransactionType.ACCRUAL, reference):
            result.skipped += 1
            continue

        before_dict = model_to_audit_dict(balance)
        credit_accrual(
            session,
            balance,
            amount,
            reference_id=reference,
            notes=f"Monthly accrual for {year}-{month:02d}",
            created_by=actor_id,
        )
        await session.flush()
        await write_audit_log(
            session,
            organization_id=balance.organization_id,
            actor_id=actor,
            entity_type=AuditEntityType.LEAVE_BALANCE,
            entity_id=balance.id,
            action=AuditAction.ACCRUE,
            before_json=before_dict,
            after_json=model_to_audit_dict(balance),
        )
        result.accrued += 1

    await session.commit()
    logger.info(
        "Monthly accrual %s: processed=%d accrued=%d skipped=%d",
        reference,
        result.processed,
        result.accrued,
        result.skipped,
    )
    return result
