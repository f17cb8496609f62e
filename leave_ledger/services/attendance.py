# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_ledger.models.attendance import Attendance
from leave_ledger.models.enums import AttendanceStatus
from leave_ledger.services.duration import iter_leave_dates

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def upsert_leave_attendance(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    notes: str | None,
) -> list[Attendance]:
    """Mark every date in the range as leave.

    Existing rows for those dates get the leave status and notes; punch times are kept.
    """
    result = await session.execute(
        select(Attendance).where(
            col(Attendance.employee_id) == employee_id,
            col(Attendance.date) >= start_date,
            col(Attendance.date) <= end_date,
        )
    )
    existing = {row.date: row for row in result.scalars().all()}

    rows: list[Attendance] = []
    for day in iter_leave_dates(start_date, end_date):
        row = existing.get(day)
        if row is None:
            row = Attendance(
                employee_id=employee_id,
                organization_id=organization_id,
                date=day,
                status=AttendanceStatus.LEAVE.value,
                notes=notes,
            )
            session.add(row)
        else:
            row.status = AttendanceStatus.LEAVE.value
            row.notes = notes
        rows.append(row)
    return rows
