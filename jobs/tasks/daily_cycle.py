"""
Daily cycle task.

Runs the profit and level commission distribution for one cycle.
Scheduler, manual triggers and backfills all end up in run_daily_cycle().
"""

import asyncio
from datetime import date

import dramatiq
from loguru import logger

from jobs.async_runner import create_local_session, run_async
from profit_engine.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_BATCH,
    LOCK_TIMEOUT_LONG,
)
from profit_engine.config.settings import settings
from profit_engine.models.enums import RunTrigger
from profit_engine.models.run_record import RunRecord
from profit_engine.services.distribution import DistributionOrchestrator
from profit_engine.utils.datetime_utils import cycle_date_for
from profit_engine.utils.distributed_lock import DistributedLock
from profit_engine.utils.exceptions import RunConflict
from profit_engine.utils.redis_utils import get_redis_client


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_BATCH)
def run_daily_cycle_task(
    cycle_date: str | None = None,
    trigger: str = RunTrigger.SCHEDULER.value,
) -> None:
    """
    Run daily distribution cycle.

    Args:
        cycle_date: ISO cycle date (defaults to today in the cycle timezone)
        trigger: RunTrigger value
    """
    if settings.emergency_stop_distribution:
        logger.warning("Daily cycle skipped: emergency stop is enabled")
        return

    target = date.fromisoformat(cycle_date) if cycle_date else cycle_date_for()
    logger.info(f"Starting daily cycle for {target}...")

    try:
        record = run_async(
            run_daily_cycle(target, RunTrigger.coerce(trigger))
        )
    except RunConflict as e:
        # Another worker owns the cycle; retrying would only conflict again
        logger.warning(f"Daily cycle not started: {e}")
        return

    if record is None:
        return

    logger.info(
        f"Daily cycle {target} finished: run {record.id} {record.status}, "
        f"processed={record.processed_count}, errors={record.error_count}"
    )


async def run_daily_cycle(
    cycle_date: date,
    trigger: RunTrigger = RunTrigger.SCHEDULER,
    abort_event: asyncio.Event | None = None,
) -> RunRecord | None:
    """
    Run one cycle under the distributed lock.

    Args:
        cycle_date: Cycle date
        trigger: What started the run
        abort_event: Set to stop between items

    Returns:
        Run record, or None if another worker holds the cycle lock

    Raises:
        RunConflict: If a non-stale run of the cycle is in flight
    """
    redis_client = await get_redis_client()

    try:
        async with create_local_session() as session:
            lock = DistributedLock(redis_client=redis_client, session=session)

            async with lock.lock(
                f"daily_cycle:{cycle_date.isoformat()}",
                timeout=LOCK_TIMEOUT_LONG,
                blocking=False,
            ) as acquired:
                if not acquired:
                    logger.info(
                        f"Daily cycle {cycle_date} is being processed "
                        f"by another worker"
                    )
                    return None

                orchestrator = DistributionOrchestrator(
                    session, abort_event=abort_event
                )
                return await orchestrator.run_daily_cycle(cycle_date, trigger)
    finally:
        await redis_client.aclose()
