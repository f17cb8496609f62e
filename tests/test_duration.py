"""Tests for leave day counting."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from leave_ledger.exceptions import ValidationError
from leave_ledger.services.duration import effective_leave_days, iter_leave_dates, leave_days


def test_single_day() -> None:
    assert leave_days(date(2025, 3, 3), date(2025, 3, 3)) == Decimal(1)


def test_range_is_inclusive_calendar_days() -> None:
    # Fri through Mon: weekends are not excluded.
    assert leave_days(date(2025, 3, 7), date(2025, 3, 10)) == Decimal(4)


def test_half_day() -> None:
    assert leave_days(date(2025, 3, 3), date(2025, 3, 3), is_half_day=True) == Decimal("0.5")


def test_half_day_must_be_single_date() -> None:
    with pytest.raises(ValidationError):
        leave_days(date(2025, 3, 3), date(2025, 3, 4), is_half_day=True)


def test_end_before_start_rejected() -> None:
    with pytest.raises(ValidationError, match="End date must be after start date"):
        leave_days(date(2025, 3, 5), date(2025, 3, 3))


def test_iter_leave_dates_covers_month_boundary() -> None:
    dates = list(iter_leave_dates(date(2025, 1, 30), date(2025, 2, 2)))
    assert dates == [date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 2)]


def test_iter_leave_dates_empty_when_reversed() -> None:
    assert list(iter_leave_dates(date(2025, 2, 2), date(2025, 2, 1))) == []


@pytest.mark.parametrize(
    ("stored", "expected"),
    [
        (None, Decimal(1)),
        (Decimal(0), Decimal(1)),
        (Decimal("0.5"), Decimal("0.5")),
        (Decimal(3), Decimal(3)),
    ],
)
def test_effective_leave_days(stored: Decimal | None, expected: Decimal) -> None:
    assert effective_leave_days(stored) == expected
