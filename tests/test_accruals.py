"""Tests for the monthly accrual engine: amount resolution, idempotency,
organization scoping and the admin trigger.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlmodel import col

from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.ledger import LeaveTransaction
from leave_ledger.models.policy import LeavePolicy
from leave_ledger.services.accrual import compute_monthly_amount, monthly_accrual_reference, run_monthly_accruals
from leave_ledger.services.balance import get_balance_for_update, has_transaction
from leave_ledger.services.employee import EmployeeInfo
from leave_ledger.worker import is_accrual_day

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.services.employee import InMemoryEmployeeService

ORG_ID = uuid.uuid4()
OTHER_ORG_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()
YEAR = 2025

ADMIN_HEADERS = {
    "X-Organization-Id": str(ORG_ID),
    "X-User-Id": str(ADMIN_ID),
    "X-Role": "org_admin",
}
EMPLOYEE_HEADERS = {
    "X-Organization-Id": str(ORG_ID),
    "X-User-Id": str(uuid.uuid4()),
    "X-Role": "employee",
    "X-Employee-Id": str(EMPLOYEE_ID),
}
POLICIES_URL = f"/organizations/{ORG_ID}/leave-policies"
TRIGGER_URL = f"/organizations/{ORG_ID}/leave-accruals/monthly"


@pytest.fixture(autouse=True)
def _seed_employee(employee_service: InMemoryEmployeeService) -> None:
    employee_service.seed(
        EmployeeInfo(
            id=EMPLOYEE_ID,
            organization_id=ORG_ID,
            employee_code="EMP-001",
            first_name="Kiran",
            last_name="Rao",
            email="kiran@example.com",
        )
    )


# ---------------------------------------------------------------------------
# Pure computation helpers
# ---------------------------------------------------------------------------


def _policy(**overrides: Any) -> LeavePolicy:
    fields: dict[str, Any] = {
        "organization_id": ORG_ID,
        "code": "PL",
        "display_name": "Privilege Leave",
        "annual_quota": 18,
        "accrual_method": "monthly",
    }
    fields.update(overrides)
    return LeavePolicy(**fields)


def test_monthly_amount_uses_explicit_rate() -> None:
    assert compute_monthly_amount(_policy(monthly_accrual_rate=Decimal("1.25"))) == Decimal("1.25")


def test_monthly_amount_falls_back_to_twelfth_of_quota() -> None:
    assert compute_monthly_amount(_policy(annual_quota=18)) == Decimal("1.50")


def test_monthly_amount_rounds_to_two_places() -> None:
    assert compute_monthly_amount(_policy(annual_quota=10)) == Decimal("0.83")


def test_monthly_accrual_reference() -> None:
    assert monthly_accrual_reference(2025, 3) == "monthly-accrual:2025-03"


def test_worker_accrues_on_first_of_month() -> None:
    assert is_accrual_day(date(2025, 4, 1))
    assert not is_accrual_day(date(2025, 4, 2))


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


async def _setup_monthly_balance(client: AsyncClient, **policy_fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": "PL",
        "display_name": "Privilege Leave",
        "annual_quota": 12,
        "accrual_method": "monthly",
    }
    payload.update(policy_fields)
    resp = await client.post(POLICIES_URL, json=payload, headers=ADMIN_HEADERS)
    assert resp.status_code == 201, resp.text
    init = await client.post(
        f"/organizations/{ORG_ID}/employees/{EMPLOYEE_ID}/leave-balances/initialize",
        json={"year": YEAR},
        headers=ADMIN_HEADERS,
    )
    assert init.status_code == 200, init.text
    return resp.json()


async def _balance(session: AsyncSession, policy_id: str) -> EmployeeLeaveBalance:
    result = await session.execute(
        select(EmployeeLeaveBalance).where(col(EmployeeLeaveBalance.policy_id) == uuid.UUID(policy_id))
    )
    return result.scalar_one()


async def test_run_credits_monthly_balances(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _setup_monthly_balance(async_client)

    result = await run_monthly_accruals(db_session, YEAR, 1)

    assert (result.processed, result.accrued, result.skipped) == (1, 1, 0)
    balance = await _balance(db_session, policy["id"])
    assert balance.accrued == Decimal(1)
    assert balance.current_balance == Decimal(1)
    assert balance.last_accrued_at is not None

    txn_result = await db_session.execute(
        select(LeaveTransaction).where(col(LeaveTransaction.balance_id) == balance.id)
    )
    (transaction,) = txn_result.scalars().all()
    assert transaction.reference_id == "monthly-accrual:2025-01"
    assert transaction.balance_after == Decimal(1)


async def test_rerun_same_month_is_idempotent(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _setup_monthly_balance(async_client, monthly_accrual_rate="1.5")

    await run_monthly_accruals(db_session, YEAR, 2)
    rerun = await run_monthly_accruals(db_session, YEAR, 2)

    assert (rerun.accrued, rerun.skipped) == (0, 1)
    balance = await _balance(db_session, policy["id"])
    assert balance.current_balance == Decimal("1.5")


async def test_successive_months_accumulate(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _setup_monthly_balance(async_client)
    for month in (1, 2, 3):
        await run_monthly_accruals(db_session, YEAR, month)

    balance = await _balance(db_session, policy["id"])
    assert balance.accrued == Decimal(3)
    assert balance.current_balance == balance.opening_balance + balance.accrued + balance.adjustment - balance.used


async def test_yearly_and_inactive_policies_ignored(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await async_client.post(
        POLICIES_URL,
        json={"code": "CL", "display_name": "Casual Leave", "annual_quota": 12, "accrual_method": "yearly"},
        headers=ADMIN_HEADERS,
    )
    policy = await _setup_monthly_balance(async_client)
    await async_client.patch(f"{POLICIES_URL}/{policy['id']}", json={"is_active": False}, headers=ADMIN_HEADERS)

    result = await run_monthly_accruals(db_session, YEAR, 1)
    assert result.processed == 0


async def test_run_scoped_to_organization(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_monthly_balance(async_client)
    result = await run_monthly_accruals(db_session, YEAR, 1, organization_id=OTHER_ORG_ID)
    assert result.processed == 0


# ---------------------------------------------------------------------------
# Admin trigger
# ---------------------------------------------------------------------------


async def test_trigger_endpoint(async_client: AsyncClient) -> None:
    await _setup_monthly_balance(async_client)

    resp = await async_client.post(TRIGGER_URL, json={"year": YEAR, "month": 4}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"year": YEAR, "month": 4, "processed": 1, "accrued": 1, "skipped": 0}

    again = await async_client.post(TRIGGER_URL, json={"year": YEAR, "month": 4}, headers=ADMIN_HEADERS)
    assert again.json()["skipped"] == 1


async def test_trigger_requires_admin(async_client: AsyncClient) -> None:
    resp = await async_client.post(TRIGGER_URL, json={"year": YEAR, "month": 4}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_trigger_rejects_invalid_month(async_client: AsyncClient) -> None:
    resp = await async_client.post(TRIGGER_URL, json={"year": YEAR, "month": 13}, headers=ADMIN_HEADERS)
    assert resp.status_code == 422


async def test_period_check_runs_under_balance_lock(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_monthly_balance(async_client)
    calls: list[str] = []

    async def _lock(*args: Any, **kwargs: Any) -> EmployeeLeaveBalance | None:
        calls.append("lock")
        return await get_balance_for_update(*args, **kwargs)

    async def _check(*args: Any, **kwargs: Any) -> bool:
        calls.append("check")
        return await has_transaction(*args, **kwargs)

    with (
        patch("leave_ledger.services.accrual.get_balance_for_update", _lock),
        patch("leave_ledger.services.accrual.has_transaction", _check),
    ):
        first = await run_monthly_accruals(db_session, YEAR, 5)
        second = await run_monthly_accruals(db_session, YEAR, 5)

    assert calls == ["lock", "check", "lock", "check"]
    assert (first.accrued, second.skipped) == (1, 1)
