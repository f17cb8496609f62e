"""Leave balance ledger.

Every balance mutation goes through this module: it changes one component
(accrued, adjustment or used), recomputes ``current_balance`` from the
components and appends the matching transaction whose ``balance_after`` is
the new ``current_balance``. Callers own the unit of work and commit.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_ledger.exceptions import ConflictError, NotFoundError
from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.base import ZERO_DAYS, now_utc
from leave_ledger.models.enums import AccrualMethod, AuditAction, AuditEntityType, TransactionType
from leave_ledger.models.ledger import LeaveTransaction
from leave_ledger.models.policy import LeavePolicy
from leave_ledger.schemas.balance import (
    BalanceListResponse,
    BalanceResponse,
    TransactionListResponse,
    TransactionResponse,
)
from leave_ledger.services.attendance import upsert_leave_attendance
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.duration import effective_leave_days
from leave_ledger.services.employee import require_employee
from leave_ledger.services.policy import get_policy_or_404, list_active_policies

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.attendance import Attendance
    from leave_ledger.models.request import LeaveRequest
    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.balance import AdjustBalanceRequest

logger = logging.getLogger(__name__)


@dataclass
class LeaveDeduction:
    """Everything written when an approved request is charged to the ledger."""

    balance: EmployeeLeaveBalance
    transaction: LeaveTransaction
    attendance: list[Attendance]


def initial_allocation_reference(year: int) -> str:
    return f"initial-allocation:{year}"


def current_year() -> int:
    return date.today().year


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def build_balance_response(balance: EmployeeLeaveBalance, policy: LeavePolicy) -> BalanceResponse:
    """Map a balance and its policy to the response schema."""
    return BalanceResponse(
        id=balance.id,
        employee_id=balance.employee_id,
        policy_id=balance.policy_id,
        policy_code=policy.code,
        policy_name=policy.display_name,
        organization_id=balance.organization_id,
        year=balance.year,
        opening_balance=balance.opening_balance,
        accrued=balance.accrued,
        used=balance.used,
        adjustment=balance.adjustment,
        current_balance=balance.current_balance,
        last_accrued_at=balance.last_accrued_at,
        updated_at=balance.updated_at,
    )


def build_transaction_response(transaction: LeaveTransaction) -> TransactionResponse:
    """Map a ledger transaction to its response schema."""
    return TransactionResponse(
        id=transaction.id,
        employee_id=transaction.employee_id,
        balance_id=transaction.balance_id,
        policy_id=transaction.policy_id,
        organization_id=transaction.organization_id,
        transaction_type=TransactionType(transaction.transaction_type),
        amount=transaction.amount,
        balance_after=transaction.balance_after,
        reference_id=transaction.reference_id,
        notes=transaction.notes,
        created_by=transaction.created_by,
        created_at=transaction.created_at,
    )


# ---------------------------------------------------------------------------
# Ledger primitives
# ---------------------------------------------------------------------------


def expected_current_balance(balance: EmployeeLeaveBalance) -> Decimal:
    """opening + accrued + adjustment - used."""
    return balance.opening_balance + balance.accrued + balance.adjustment - balance.used


def _recompute(balance: EmployeeLeaveBalance) -> None:
    balance.current_balance = expected_current_balance(balance)
    balance.updated_at = now_utc()
    balance.version += 1


def _append_transaction(
    session: AsyncSession,
    balance: EmployeeLeaveBalance,
    *,
    transaction_type: TransactionType,
    amount: Decimal,
    reference_id: str | None,
    notes: str | None,
    created_by: uuid.UUID | None,
) -> LeaveTransaction:
    transaction = LeaveTransaction(
        employee_id=balance.employee_id,
        balance_id=balance.id,
        policy_id=balance.policy_id,
        organization_id=balance.organization_id,
        transaction_type=transaction_type.value,
        amount=amount,
        balance_after=balance.current_balance,
        reference_id=reference_id,
        notes=notes,
        created_by=created_by,
    )
    session.add(transaction)
    return transaction


async def get_balance_for_update(
    session: AsyncSession,
    employee_id: uuid.UUID,
    policy_id: uuid.UUID,
    year: int,
) -> EmployeeLeaveBalance | None:
    """Fetch the (employee, policy, year) balance with a FOR UPDATE lock."""
    result = await session.execute(
        select(EmployeeLeaveBalance)
        .where(
            col(EmployeeLeaveBalance.employee_id) == employee_id,
            col(EmployeeLeaveBalance.policy_id) == policy_id,
            col(EmployeeLeaveBalance.year) == year,
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def has_transaction(
    session: AsyncSession,
    balance_id: uuid.UUID,
    transaction_type: TransactionType,
    reference_id: str,
) -> bool:
    """Whether an event with this reference already entered the balance."""
    result = await session.execute(
        select(LeaveTransaction.id)
        .where(
            col(LeaveTransaction.balance_id) == balance_id,
            col(LeaveTransaction.transaction_type) == transaction_type.value,
            col(LeaveTransaction.reference_id) == reference_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


def credit_accrual(
    session: AsyncSession,
    balance: EmployeeLeaveBalance,
    amount: Decimal,
    *,
    reference_id: str | None,
    notes: str | None,
    created_by: uuid.UUID | None,
) -> LeaveTransaction:
    """Credit ``amount`` days to ``accrued`` and log an accrual transaction."""
    balance.accrued += amount
    balance.last_accrued_at = now_utc()
    _recompute(balance)
    return _append_transaction(
        session,
        balance,
        transaction_type=TransactionType.ACCRUAL,
        amount=amount,
        reference_id=reference_id,
        notes=notes,
        created_by=created_by,
    )


async def get_or_create_balance(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    employee_id: uuid.UUID,
    policy: LeavePolicy,
    year: int,
    initial_accrued: Decimal = ZERO_DAYS,
    created_by: uuid.UUID | None = None,
) -> tuple[EmployeeLeaveBalance, bool]:
    """Return the locked (employee, policy, year) balance, creating it when absent.

    A new balance starts at zero; a non-zero ``initial_accrued`` is credited
    through an accrual transaction so the ledger accounts for it. Returns
    ``(balance, created)``.
    """
    balance = await get_balance_for_update(session, employee_id, policy.id, year)
    if balance is not None:
        return balance, False

    balance = EmployeeLeaveBalance(
        employee_id=employee_id,
        policy_id=policy.id,
        organization_id=organization_id,
        year=year,
    )
    session.add(balance)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("Leave balance was created concurrently; retry the operation") from None

    if initial_accrued > 0:
        credit_accrual(
            session,
            balance,
            initial_accrued,
            reference_id=initial_allocation_reference(year),
            notes=f"Annual quota for {year}",
            created_by=created_by,
        )
    return balance, True


async def apply_leave_deduction(
    session: AsyncSession,
    request: LeaveRequest,
    balance: EmployeeLeaveBalance,
    actor_id: uuid.UUID,
) -> LeaveDeduction:
    """Charge an approved request to its (locked) balance.

    Adds the request's days to ``used`` (no floor at zero), logs a
    ``request`` transaction referencing the request and marks every date of
    the request as leave in attendance. Nothing is committed here.
    """
    days = effective_leave_days(request.total_days)
    if await has_transaction(session, balance.id, TransactionType.REQUEST, str(request.id)):
        raise ConflictError("Leave request has already been charged to the balance")

    balance.used += days
    _recompute(balance)
    transaction = _append_transaction(
        session,
        balance,
        transaction_type=TransactionType.REQUEST,
        amount=-days,
        reference_id=str(request.id),
        notes=f"Leave approved: {request.start_date} to {request.end_date}",
        created_by=actor_id,
    )
    attendance = await upsert_leave_attendance(
        session,
        organization_id=request.organization_id,
        employee_id=request.employee_id,
        start_date=request.start_date,
        end_date=request.end_date,
        notes=f"{request.leave_type} - Approved leave",
    )
    await session.flush()

    logger.info(
        "Deducted %s day(s) from balance %s for request %s; balance now %s",
        days,
        balance.id,
        request.id,
        balance.current_balance,
    )
    return LeaveDeduction(balance=balance, transaction=transaction, attendance=attendance)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_employee_balances(
    session: AsyncSession,
    organization_id: uuid.UUID,
    employee_id: uuid.UUID,
    year: int,
) -> BalanceListResponse:
    """All balances of an employee for a year."""
    result = await session.execute(
        select(EmployeeLeaveBalance, LeavePolicy)
        .join(LeavePolicy, col(LeavePolicy.id) == col(EmployeeLeaveBalance.policy_id))
        .where(
            col(EmployeeLeaveBalance.organization_id) == organization_id,
            col(EmployeeLeaveBalance.employee_id) == employee_id,
            col(EmployeeLeaveBalance.year) == year,
        )
        .order_by(col(LeavePolicy.code))
    )
    items = [build_balance_response(balance, policy) for balance, policy in result.all()]
    return BalanceListResponse(items=items, total=len(items))


async def list_organization_balances(
    session: AsyncSession,
    organization_id: uuid.UUID,
    year: int,
    offset: int = 0,
    limit: int = 50,
) -> BalanceListResponse:
    """Balances of every employee of the organization for a year."""
    base_filter = [
        col(EmployeeLeaveBalance.organization_id) == organization_id,
        col(EmployeeLeaveBalance.year) == year,
    ]
    count_result = await session.execute(
        select(func.count()).select_from(EmployeeLeaveBalance).where(*base_filter)
    )
    total = count_result.scalar_one()

    result = await session.execute(
        select(EmployeeLeaveBalance, LeavePolicy)
        .join(LeavePolicy, col(LeavePolicy.id) == col(EmployeeLeaveBalance.policy_id))
        .where(*base_filter)
        .order_by(col(EmployeeLeaveBalance.employee_id), col(LeavePolicy.code))
        .offset(offset)
        .limit(limit)
    )
    items = [build_balance_response(balance, policy) for balance, policy in result.all()]
    return BalanceListResponse(items=items, total=total)


async def get_employee_transactions(
    session: AsyncSession,
    organization_id: uuid.UUID,
    employee_id: uuid.UUID,
    year: int | None = None,
    policy_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> TransactionListResponse:
    """Ledger transactions of an employee, newest first."""
    filters = [
        col(LeaveTransaction.organization_id) == organization_id,
        col(LeaveTransaction.employee_id) == employee_id,
    ]
    if policy_id is not None:
        filters.append(col(LeaveTransaction.policy_id) == policy_id)
    if year is not None:
        filters.append(
            col(LeaveTransaction.balance_id).in_(
                select(EmployeeLeaveBalance.id).where(col(EmployeeLeaveBalance.year) == year)
            )
        )

    count_result = await session.execute(select(func.count()).select_from(LeaveTransaction).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveTransaction)
        .where(*filters)
        .order_by(col(LeaveTransaction.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    transactions = list(result.scalars().all())
    return TransactionListResponse(
        items=[build_transaction_response(t) for t in transactions],
        total=total,
    )


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def initialize_employee_balances(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    year: int,
) -> BalanceListResponse:
    """Create the missing balances of an employee for every active policy.

    Yearly policies start with their annual quota accrued; monthly and
    non-accruing policies start at zero (see ``services.accrual``). Existing
    balances are left untouched, so repeated calls are no-ops.
    """
    await require_employee(auth.organization_id, employee_id)

    created = 0
    for policy in await list_active_policies(session, auth.organization_id):
        initial = Decimal(policy.annual_quota) if policy.accrual_method == AccrualMethod.YEARLY.value else ZERO_DAYS
        balance, was_created = await get_or_create_balance(
            session,
            organization_id=auth.organization_id,
            employee_id=employee_id,
            policy=policy,
            year=year,
            initial_accrued=initial,
            created_by=auth.user_id,
        )
        if not was_created:
            continue
        created += 1
        await session.flush()
        await write_audit_log(
            session,
            organization_id=auth.organization_id,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_BALANCE,
            entity_id=balance.id,
            action=AuditAction.INITIALIZE,
            after_json=model_to_audit_dict(balance),
        )

    await session.commit()
    if created:
        logger.info("Initialized %d balance(s) for employee %s in %d", created, employee_id, year)
    return await get_employee_balances(session, auth.organization_id, employee_id, year)


async def adjust_balance(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    payload: AdjustBalanceRequest,
    year: int,
) -> BalanceResponse:
    """Apply a manual credit (positive) or debit (negative) to an existing balance.

    This is an admin override: the amount is not checked against the quota
    and the balance may go negative.
    """
    await require_employee(auth.organization_id, employee_id)
    policy = await get_policy_or_404(session, auth.organization_id, payload.policy_id)

    balance = await get_balance_for_update(session, employee_id, policy.id, year)
    if balance is None:
        raise NotFoundError("Leave balance not found for this policy")

    before_dict = model_to_audit_dict(balance)
    balance.adjustment += payload.amount
    _recompute(balance)
    _append_transaction(
        session,
        balance,
        transaction_type=TransactionType.ADJUSTMENT,
        amount=payload.amount,
        reference_id=None,
        notes=payload.notes,
        created_by=auth.user_id,
    )
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_BALANCE,
        entity_id=balance.id,
        action=AuditAction.ADJUST,
        before_json=before_dict,
        after_json=model_to_audit_dict(balance),
    )

    await session.commit()
    logger.info("Adjusted balance %s by %s; balance now %s", balance.id, payload.amount, balance.current_balance)
    return build_balance_response(balance, policy)
