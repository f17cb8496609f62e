from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from leave_ledger.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterator

HALF_DAY = Decimal("0.5")
_ONE_DAY = timedelta(days=1)


def iter_leave_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar date from start to end, inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += _ONE_DAY


def leave_days(start_date: date, end_date: date, is_half_day: bool = False) -> Decimal:
    """Day count charged for a request.

    Calendar days inclusive of both ends; weekends and holidays are not
    excluded. A half-day request is 0.5 and must cover a single date.
    """
    if end_date < start_date:
        raise ValidationError("End date must be after start date")
    if is_half_day:
        if start_date != end_date:
            raise ValidationError("Half-day leave must start and end on the same date")
        return HALF_DAY
    return Decimal((end_date - start_date).days + 1)


def effective_leave_days(total_days: Decimal | None) -> Decimal:
    """Days to charge on approval; requests without a stored count are charged one day."""
    if not total_days:
        return Decimal(1)
    return Decimal(total_days)
