"""Tests for the leave request workflow: submit, approve, reject, cancel,
ledger deduction, attendance marking, auto-reject and notifications.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlmodel import col

from leave_ledger.exceptions import ConflictError
from leave_ledger.models.attendance import Attendance
from leave_ledger.models.audit import AuditLog
from leave_ledger.models.balance import EmployeeLeaveBalance
from leave_ledger.models.enums import UserRole
from leave_ledger.models.ledger import LeaveTransaction
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.auth import AuthContext
from leave_ledger.services.balance import apply_leave_deduction, get_balance_for_update
from leave_ledger.services.employee import AppUserInfo, EmployeeInfo
from leave_ledger.services.notification import (
    InMemoryNotificationService,
    NotificationMessage,
    NotificationType,
    set_notification_service,
)
from leave_ledger.services.request import approve_request

if TYPE_CHECKING:
    from collections.abc import Iterator

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.services.employee import InMemoryEmployeeService

ORG_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()
EMPLOYEE_USER_ID = uuid.uuid4()
OTHER_EMPLOYEE_ID = uuid.uuid4()

ADMIN_HEADERS = {
    "X-Organization-Id": str(ORG_ID),
    "X-User-Id": str(ADMIN_ID),
    "X-Role": "org_admin",
}
EMPLOYEE_HEADERS = {
    "X-Organization-Id": str(ORG_ID),
    "X-User-Id": str(EMPLOYEE_USER_ID),
    "X-Role": "employee",
    "X-Employee-Id": str(EMPLOYEE_ID),
}
OTHER_EMPLOYEE_HEADERS = {
    "X-Organization-Id": str(ORG_ID),
    "X-User-Id": str(uuid.uuid4()),
    "X-Role": "employee",
    "X-Employee-Id": str(OTHER_EMPLOYEE_ID),
}
POLICIES_URL = f"/organizations/{ORG_ID}/leave-policies"
REQUESTS_URL = f"/organizations/{ORG_ID}/leave-requests"
EMPLOYEE_URL = f"/organizations/{ORG_ID}/employees/{EMPLOYEE_ID}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _seed_directory(employee_service: InMemoryEmployeeService) -> None:
    for employee_id, name in ((EMPLOYEE_ID, "Asha"), (OTHER_EMPLOYEE_ID, "Ravi")):
        employee_service.seed(
            EmployeeInfo(
                id=employee_id,
                organization_id=ORG_ID,
                employee_code=f"EMP-{name.upper()}",
                first_name=name,
                last_name="Kumar",
                email=f"{name.lower()}@example.com",
            )
        )
    employee_service.seed_user(AppUserInfo(id=ADMIN_ID, organization_id=ORG_ID, role=UserRole.ORG_ADMIN))
    employee_service.seed_user(
        AppUserInfo(id=EMPLOYEE_USER_ID, organization_id=ORG_ID, role=UserRole.EMPLOYEE, employee_id=EMPLOYEE_ID)
    )


@pytest.fixture(autouse=True)
def _sink(notification_service: InMemoryNotificationService) -> Iterator[InMemoryNotificationService]:
    yield notification_service


class _FailingSink:
    async def send(self, notification: NotificationMessage) -> None:
        raise ConnectionError("notification backend unavailable")


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


async def _create_policy(client: AsyncClient, code: str = "CL", annual_quota: int = 12) -> dict[str, Any]:
    resp = await client.post(
        POLICIES_URL,
        json={"code": code, "display_name": f"{code} leave", "annual_quota": annual_quota},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _initialize(client: AsyncClient, year: int = 2025) -> None:
    resp = await client.post(
        f"{EMPLOYEE_URL}/leave-balances/initialize", json={"year": year}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200, resp.text


async def _submit(client: AsyncClient, **overrides: Any) -> Any:
    payload: dict[str, Any] = {
        "leave_type": "annual",
        "start_date": "2025-03-03",
        "end_date": "2025-03-05",
        "reason": "Family trip",
    }
    payload.update(overrides)
    return await client.post(REQUESTS_URL, json=payload, headers=EMPLOYEE_HEADERS)


async def _review(client: AsyncClient, request_id: str, status: str, notes: str | None = None) -> Any:
    body: dict[str, Any] = {"status": status}
    if notes is not None:
        body["review_notes"] = notes
    return await client.patch(f"{REQUESTS_URL}/{request_id}", json=body, headers=ADMIN_HEADERS)


async def _get_balance(session: AsyncSession, policy_id: str, year: int = 2025) -> EmployeeLeaveBalance:
    result = await session.execute(
        select(EmployeeLeaveBalance).where(
            col(EmployeeLeaveBalance.employee_id) == EMPLOYEE_ID,
            col(EmployeeLeaveBalance.policy_id) == uuid.UUID(policy_id),
            col(EmployeeLeaveBalance.year) == year,
        )
    )
    return result.scalar_one()


async def _request_transactions(session: AsyncSession, request_id: str) -> list[LeaveTransaction]:
    result = await session.execute(
        select(LeaveTransaction).where(
            col(LeaveTransaction.transaction_type) == "request",
            col(LeaveTransaction.reference_id) == request_id,
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def test_submit_request(async_client: AsyncClient, _sink: InMemoryNotificationService) -> None:
    policy = await _create_policy(async_client)
    resp = await _submit(async_client, policy_id=policy["id"])

    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["status"] == "pending"
    assert data["employee_id"] == str(EMPLOYEE_ID)
    assert Decimal(data["total_days"]) == Decimal(3)
    assert data["reviewed_by"] is None

    assert len(_sink.sent) == 1
    assert _sink.sent[0].user_id == ADMIN_ID
    assert _sink.sent[0].type == NotificationType.LEAVE_REQUEST
    assert _sink.sent[0].title == "New Leave Request"


async def test_submit_cross_year_rejected(async_client: AsyncClient, db_session: AsyncSession) -> None:
    resp = await _submit(async_client, start_date="2025-12-30", end_date="2026-01-02")
    assert resp.status_code == 400
    assert resp.json()["detail"] == (
        "Leave requests cannot span across years. Please submit separate requests for each year."
    )
    result = await db_session.execute(select(LeaveRequest))
    assert result.scalars().all() == []


async def test_submit_end_before_start_rejected(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, start_date="2025-03-05", end_date="2025-03-03")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "End date must be after start date"


async def test_submit_half_day(async_client: AsyncClient) -> None:
    resp = await _submit(
        async_client, start_date="2025-03-03", end_date="2025-03-03", is_half_day=True, half_day_session="first_half"
    )
    assert resp.status_code == 201, resp.text
    assert Decimal(resp.json()["total_days"]) == Decimal("0.5")
    assert resp.json()["half_day_session"] == "first_half"


async def test_submit_half_day_requires_session(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, start_date="2025-03-03", end_date="2025-03-03", is_half_day=True)
    assert resp.status_code == 400


async def test_submit_half_day_multiple_dates_rejected(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, is_half_day=True, half_day_session="second_half")
    assert resp.status_code == 400


async def test_submit_inactive_policy_rejected(async_client: AsyncClient) -> None:
    policy = await _create_policy(async_client)
    await async_client.patch(f"{POLICIES_URL}/{policy['id']}", json={"is_active": False}, headers=ADMIN_HEADERS)
    resp = await _submit(async_client, policy_id=policy["id"])
    assert resp.status_code == 400


async def test_submit_requires_employee_account(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        REQUESTS_URL,
        json={"leave_type": "annual", "start_date": "2025-03-03", "end_date": "2025-03-03"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400


async def test_submit_succeeds_when_notification_sink_fails(async_client: AsyncClient) -> None:
    set_notification_service(_FailingSink())
    resp = await _submit(async_client)
    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------


async def test_approve_deducts_balance_and_marks_attendance(
    async_client: AsyncClient,
    db_session: AsyncSession,
    _sink: InMemoryNotificationService,
) -> None:
    policy = await _create_policy(async_client, annual_quota=12)
    await _initialize(async_client)
    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]

    resp = await _review(async_client, request_id, "approved", notes="Enjoy")
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "approved"
    assert data["reviewed_by"] == str(ADMIN_ID)
    assert data["reviewed_at"] is not None
    assert data["review_notes"] == "Enjoy"

    balance = await _get_balance(db_session, policy["id"])
    assert balance.used == Decimal(3)
    assert balance.current_balance == Decimal(9)

    (transaction,) = await _request_transactions(db_session, request_id)
    assert transaction.amount == Decimal(-3)
    assert transaction.balance_after == Decimal(9)
    assert transaction.notes == "Leave approved: 2025-03-03 to 2025-03-05"

    result = await db_session.execute(
        select(Attendance).where(col(Attendance.employee_id) == EMPLOYEE_ID).order_by(col(Attendance.date))
    )
    rows = list(result.scalars().all())
    assert [r.date for r in rows] == [date(2025, 3, 3), date(2025, 3, 4), date(2025, 3, 5)]
    assert {r.status for r in rows} == {"leave"}
    assert rows[0].notes == "annual - Approved leave"

    approved = [n for n in _sink.sent if n.type == NotificationType.LEAVE_APPROVED]
    assert [n.user_id for n in approved] == [EMPLOYEE_USER_ID]


async def test_approve_half_day_deducts_half(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    request_id = (
        await _submit(
            async_client,
            policy_id=policy["id"],
            start_date="2025-03-03",
            end_date="2025-03-03",
            is_half_day=True,
            half_day_session="second_half",
        )
    ).json()["id"]

    resp = await _review(async_client, request_id, "approved")
    assert resp.status_code == 200
    balance = await _get_balance(db_session, policy["id"])
    assert balance.current_balance == Decimal("11.5")


async def test_approve_overwrites_existing_attendance(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    db_session.add(
        Attendance(
            employee_id=EMPLOYEE_ID,
            organization_id=ORG_ID,
            date=date(2025, 3, 4),
            status="present",
            check_in="09:00",
        )
    )
    await db_session.commit()

    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]
    await _review(async_client, request_id, "approved")

    result = await db_session.execute(select(Attendance).where(col(Attendance.date) == date(2025, 3, 4)))
    (row,) = result.scalars().all()
    assert row.status == "leave"
    assert row.check_in == "09:00"


async def test_double_approve_conflicts_without_second_deduction(
    async_client: AsyncClient, db_session: AsyncSession
) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]

    first = await _review(async_client, request_id, "approved")
    assert first.status_code == 200
    second = await _review(async_client, request_id, "approved")
    assert second.status_code == 409

    balance = await _get_balance(db_session, policy["id"])
    assert balance.used == Decimal(3)
    assert len(await _request_transactions(db_session, request_id)) == 1


async def test_approve_without_balance_stays_pending(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _create_policy(async_client)
    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]

    resp = await _review(async_client, request_id, "approved")
    assert resp.status_code == 400
    assert "no leave balance record found for year 2025" in resp.json()["detail"].lower()

    get_resp = await async_client.get(f"{REQUESTS_URL}/{request_id}", headers=ADMIN_HEADERS)
    assert get_resp.json()["status"] == "pending"

    result = await db_session.execute(select(LeaveTransaction))
    assert result.scalars().all() == []
    result = await db_session.execute(select(Attendance))
    assert result.scalars().all() == []


async def test_approve_cross_year_auto_rejects(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    # Written directly: submission refuses cross-year dates.
    legacy = LeaveRequest(
        employee_id=EMPLOYEE_ID,
        organization_id=ORG_ID,
        policy_id=uuid.UUID(policy["id"]),
        leave_type="annual",
        start_date=date(2025, 12, 30),
        end_date=date(2026, 1, 2),
        total_days=Decimal(4),
    )
    db_session.add(legacy)
    await db_session.commit()

    resp = await _review(async_client, str(legacy.id), "approved")
    assert resp.status_code == 400
    assert "spans multiple years (2025 to 2026)" in resp.json()["detail"]

    get_resp = await async_client.get(f"{REQUESTS_URL}/{legacy.id}", headers=ADMIN_HEADERS)
    assert get_resp.json()["status"] == "rejected"
    assert get_resp.json()["reviewed_by"] == str(ADMIN_ID)

    balance = await _get_balance(db_session, policy["id"])
    assert balance.used == 0
    assert await _request_transactions(db_session, str(legacy.id)) == []

    result = await db_session.execute(select(AuditLog).where(col(AuditLog.entity_id) == legacy.id))
    assert [e.action for e in result.scalars().all()] == ["AUTO_REJECT"]


async def test_approve_without_policy_has_no_ledger_effect(
    async_client: AsyncClient, db_session: AsyncSession
) -> None:
    request_id = (await _submit(async_client, leave_type="unpaid")).json()["id"]

    resp = await _review(async_client, request_id, "approved")
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    result = await db_session.execute(select(LeaveTransaction))
    assert result.scalars().all() == []


async def test_approve_cross_year_without_policy_is_approved(
    async_client: AsyncClient, db_session: AsyncSession
) -> None:
    legacy = LeaveRequest(
        employee_id=EMPLOYEE_ID,
        organization_id=ORG_ID,
        leave_type="unpaid",
        start_date=date(2025, 12, 30),
        end_date=date(2026, 1, 2),
        total_days=Decimal(4),
    )
    db_session.add(legacy)
    await db_session.commit()

    resp = await _review(async_client, str(legacy.id), "approved")
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "approved"

    result = await db_session.execute(select(LeaveTransaction))
    assert result.scalars().all() == []
    result = await db_session.execute(select(AuditLog).where(col(AuditLog.entity_id) == legacy.id))
    assert [e.action for e in result.scalars().all()] == ["APPROVE"]


async def test_approve_failure_after_deduction_leaves_nothing_behind(
    async_client: AsyncClient, db_session: AsyncSession
) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]
    auth = AuthContext(organization_id=ORG_ID, user_id=ADMIN_ID, role=UserRole.ORG_ADMIN)

    with (
        patch(
            "leave_ledger.services.balance.upsert_leave_attendance",
            AsyncMock(side_effect=RuntimeError("attendance store down")),
        ),
        pytest.raises(RuntimeError),
    ):
        await approve_request(db_session, auth, uuid.UUID(request_id))
    await db_session.rollback()

    balance = await _get_balance(db_session, policy["id"])
    assert balance.used == 0
    assert balance.current_balance == Decimal(12)
    assert await _request_transactions(db_session, request_id) == []

    request = await db_session.get(LeaveRequest, uuid.UUID(request_id))
    assert request is not None
    assert request.status == "pending"

    result = await db_session.execute(select(Attendance))
    assert result.scalars().all() == []


async def test_review_requires_admin(async_client: AsyncClient) -> None:
    request_id = (await _submit(async_client)).json()["id"]
    resp = await async_client.patch(
        f"{REQUESTS_URL}/{request_id}", json={"status": "approved"}, headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 403


async def test_deduction_is_not_applied_twice(async_client: AsyncClient, db_session: AsyncSession) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]
    await _review(async_client, request_id, "approved")

    request = await db_session.get(LeaveRequest, uuid.UUID(request_id))
    assert request is not None
    balance = await get_balance_for_update(db_session, EMPLOYEE_ID, uuid.UUID(policy["id"]), 2025)
    assert balance is not None
    with pytest.raises(ConflictError):
        await apply_leave_deduction(db_session, request, balance, ADMIN_ID)
    assert balance.used == Decimal(3)


# ---------------------------------------------------------------------------
# Reject / cancel
# ---------------------------------------------------------------------------


async def test_reject_request(
    async_client: AsyncClient, db_session: AsyncSession, _sink: InMemoryNotificationService
) -> None:
    policy = await _create_policy(async_client)
    await _initialize(async_client)
    request_id = (await _submit(async_client, policy_id=policy["id"])).json()["id"]

    resp = await _review(async_client, request_id, "rejected", notes="Busy quarter")
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["review_notes"] == "Busy quarter"

    balance = await _get_balance(db_session, policy["id"])
    assert balance.current_balance == Decimal(12)
    assert any(n.type == NotificationType.LEAVE_REJECTED for n in _sink.sent)

    again = await _review(async_client, request_id, "approved")
    assert again.status_code == 409


async def test_owner_cancels_request(async_client: AsyncClient) -> None:
    request_id = (await _submit(async_client)).json()["id"]
    resp = await async_client.post(f"{REQUESTS_URL}/{request_id}/cancel", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


async def test_other_employee_cannot_cancel(async_client: AsyncClient) -> None:
    request_id = (await _submit(async_client)).json()["id"]
    resp = await async_client.post(f"{REQUESTS_URL}/{request_id}/cancel", headers=OTHER_EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_cancel_approved_request_conflicts(async_client: AsyncClient) -> None:
    request_id = (await _submit(async_client)).json()["id"]
    await _review(async_client, request_id, "approved")
    resp = await async_client.post(
        f"{REQUESTS_URL}/{request_id}/cancel", json={"review_notes": "changed plans"}, headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 409


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def test_employee_lists_only_own_requests(async_client: AsyncClient) -> None:
    await _submit(async_client)
    await async_client.post(
        REQUESTS_URL,
        json={"leave_type": "sick", "start_date": "2025-04-01", "end_date": "2025-04-01"},
        headers=OTHER_EMPLOYEE_HEADERS,
    )

    own = await async_client.get(REQUESTS_URL, headers=EMPLOYEE_HEADERS)
    assert own.json()["total"] == 1
    assert own.json()["items"][0]["employee_id"] == str(EMPLOYEE_ID)

    everything = await async_client.get(REQUESTS_URL, headers=ADMIN_HEADERS)
    assert everything.json()["total"] == 2


async def test_list_pending_requests(async_client: AsyncClient) -> None:
    first = (await _submit(async_client)).json()["id"]
    await _submit(async_client, start_date="2025-05-05", end_date="2025-05-05")
    await _review(async_client, first, "rejected")

    resp = await async_client.get(f"{REQUESTS_URL}/pending", headers=ADMIN_HEADERS)
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["status"] == "pending"

    filtered = await async_client.get(REQUESTS_URL, params={"status": "rejected"}, headers=ADMIN_HEADERS)
    assert [r["id"] for r in filtered.json()["items"]] == [first]


async def test_employee_cannot_read_others_request(async_client: AsyncClient) -> None:
    request_id = (await _submit(async_client)).json()["id"]
    resp = await async_client.get(f"{REQUESTS_URL}/{request_id}", headers=OTHER_EMPLOYEE_HEADERS)
    assert resp.status_code == 403
