#!/usr/bin/env python3
"""
Run the daily distribution cycle by hand.

Manual trigger and backfill go through the same idempotent entry point
as the scheduler: completed cycles are left untouched, failed or partial
cycles are resumed.

Usage:
    python scripts/run_daily_cycle.py                      # today
    python scripts/run_daily_cycle.py --date 2025-01-15
    python scripts/run_daily_cycle.py --from 2025-01-01 --to 2025-01-07
    python scripts/run_daily_cycle.py --date 2025-01-15 --summary
"""

import argparse
import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from jobs.async_runner import create_local_session  # noqa: E402
from jobs.tasks.daily_cycle import run_daily_cycle  # noqa: E402
from profit_engine.config.logging import setup_logging  # noqa: E402
from profit_engine.config.settings import settings  # noqa: E402
from profit_engine.models.enums import RunStatus, RunTrigger  # noqa: E402
from profit_engine.services.reporting_service import (  # noqa: E402
    ReportingService,
)
from profit_engine.utils.datetime_utils import cycle_date_for  # noqa: E402
from profit_engine.utils.exceptions import RunConflict  # noqa: E402


def date_range(start: date, end: date) -> list[date]:
    """Inclusive list of dates from start to end."""
    if end < start:
        raise ValueError(f"--to {end} is before --from {start}")
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


async def print_summary(cycle_date: date) -> None:
    """Log cumulative summary of a cycle."""
    async with create_local_session() as session:
        summary = await ReportingService(session).get_cycle_summary(cycle_date)

    logger.info("=" * 60)
    logger.info(f"CYCLE {cycle_date}")
    logger.info("=" * 60)
    logger.info(f"Runs: {summary.run_count} (latest: {summary.latest_status})")
    logger.info(f"Processed: {summary.totals.processed_count}")
    logger.info(f"Skipped: {summary.totals.skipped_count}")
    logger.info(f"Errors: {summary.totals.error_count}")
    logger.info(f"Profit: {summary.totals.total_profit}")
    logger.info(f"Commission: {summary.totals.total_commission}")
    for kind, amount in summary.ledger_totals.items():
        logger.info(f"Ledger {kind}: {amount}")
    if summary.failed_items:
        logger.warning(f"Failed items to replay: {summary.failed_items}")


async def run_cycles(
    cycle_dates: list[date], trigger: RunTrigger, summary: bool
) -> int:
    """
    Run cycles in order.

    Returns:
        Process exit code (0 if every cycle completed)
    """
    exit_code = 0

    for cycle_date in cycle_dates:
        try:
            record = await run_daily_cycle(cycle_date, trigger)
        except RunConflict as e:
            logger.error(str(e))
            exit_code = 1
            continue

        if record is None:
            logger.warning(f"Cycle {cycle_date} is locked by another worker")
            exit_code = 1
            continue

        logger.info(
            f"Cycle {cycle_date}: run {record.id} {record.status} "
            f"(processed={record.processed_count}, "
            f"skipped={record.skipped_count}, errors={record.error_count})"
        )
        if record.status != RunStatus.COMPLETED.value:
            exit_code = 1

        if summary:
            await print_summary(cycle_date)

    return exit_code


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run daily profit and commission distribution"
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Cycle date (YYYY-MM-DD), defaults to today",
    )
    parser.add_argument(
        "--from",
        dest="date_from",
        type=date.fromisoformat,
        help="First cycle date of a backfill",
    )
    parser.add_argument(
        "--to",
        dest="date_to",
        type=date.fromisoformat,
        help="Last cycle date of a backfill (inclusive)",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Log cumulative cycle summary after each run",
    )
    args = parser.parse_args()

    if args.date and (args.date_from or args.date_to):
        parser.error("--date cannot be combined with --from/--to")
    if bool(args.date_from) != bool(args.date_to):
        parser.error("--from and --to must be given together")

    setup_logging("cli")

    if settings.emergency_stop_distribution:
        logger.error("Emergency stop is enabled, refusing to run")
        sys.exit(1)

    if args.date_from:
        try:
            cycle_dates = date_range(args.date_from, args.date_to)
        except ValueError as e:
            parser.error(str(e))
        trigger = RunTrigger.BACKFILL
    else:
        cycle_dates = [args.date or cycle_date_for()]
        trigger = RunTrigger.MANUAL

    sys.exit(asyncio.run(run_cycles(cycle_dates, trigger, args.summary)))


if __name__ == "__main__":
    main()
