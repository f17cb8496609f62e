"""Worker process for scheduled accrual jobs.

Runs an asyncio loop that wakes once per interval and, on the first day of
a month, credits that month's accrual to every monthly-policy balance.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from leave_ledger.config import get_settings
from leave_ledger.db import get_session_factory

logger = logging.getLogger(__name__)


def is_accrual_day(today: date) -> bool:
    """Monthly accruals are posted at the start of the period."""
    return today.day == 1


async def run_accrual_loop() -> None:
    """Main worker loop that runs monthly accruals on the first of each month."""
    from leave_ledger.services.accrual import run_monthly_accruals

    settings = get_settings()
    logger.info("Accrual worker started")
    session_factory = get_session_factory()

    while True:
        today = date.today()
        if is_accrual_day(today):
            logger.info("Running monthly accruals for %d-%02d", today.year, today.month)
            try:
                async with session_factory() as session:
                    result = await run_monthly_accruals(session, today.year, today.month)
                logger.info(
                    "Accrual run complete for %d-%02d: processed=%d accrued=%d skipped=%d",
                    today.year,
                    today.month,
                    result.processed,
                    result.accrued,
                    result.skipped,
                )
            except Exception:
                logger.exception("Accrual run failed for %s", today)

        await asyncio.sleep(settings.accrual_interval_seconds)


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_accrual_loop())


if __name__ == "__main__":
    main()
