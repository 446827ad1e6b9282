"""
Task scheduler.

APScheduler cron wiring in the cycle timezone. Jobs only enqueue dramatiq
messages; the work happens in the worker processes.

Usage:
    python -m jobs.scheduler
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from jobs import broker  # noqa: F401 - registers the Redis broker
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.active_member_rewards import process_active_member_rewards_task
from jobs.tasks.daily_cycle import run_daily_cycle_task
from jobs.tasks.team_rewards import process_team_rewards_task
from profit_engine.config.logging import setup_logging
from profit_engine.config.settings import settings
from profit_engine.models.enums import RunTrigger
from profit_engine.utils.datetime_utils import cycle_date_for


def enqueue_daily_cycle() -> None:
    """Enqueue today's cycle (date computed in the cycle timezone)."""
    cycle_date = cycle_date_for()
    run_daily_cycle_task.send(
        cycle_date=cycle_date.isoformat(),
        trigger=RunTrigger.SCHEDULER.value,
    )
    logger.info(f"Daily cycle {cycle_date} enqueued")


def enqueue_team_rewards() -> None:
    """Enqueue team rewards pass."""
    process_team_rewards_task.send()
    logger.info("Team rewards enqueued")


def enqueue_active_member_rewards() -> None:
    """Enqueue active member rewards pass."""
    process_active_member_rewards_task.send()
    logger.info("Active member rewards enqueued")


def create_scheduler() -> AsyncIOScheduler:
    """
    Create scheduler with all distribution jobs.

    Returns:
        Configured (not started) AsyncIOScheduler
    """
    tz = settings.cycle_tz
    scheduler = AsyncIOScheduler(timezone=tz)

    scheduler.add_job(
        enqueue_daily_cycle,
        CronTrigger(
            hour=settings.daily_cycle_hour,
            minute=settings.daily_cycle_minute,
            timezone=tz,
        ),
        id="daily_cycle",
        name="Daily profit and commission distribution",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        enqueue_team_rewards,
        CronTrigger(hour=settings.team_rewards_hour, minute=0, timezone=tz),
        id="team_rewards",
        name="Team rewards",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        enqueue_active_member_rewards,
        CronTrigger(hour=settings.team_rewards_hour, minute=30, timezone=tz),
        id="active_member_rewards",
        name="Active member rewards",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    return scheduler


async def main() -> None:
    """Run scheduler and health server until SIGINT/SIGTERM."""
    setup_logging("scheduler")

    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler)

    runner, _ = await start_health_server(port=settings.health_check_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(
        f"Scheduler started (timezone {settings.cycle_timezone}, "
        f"daily cycle at {settings.daily_cycle_hour:02d}:"
        f"{settings.daily_cycle_minute:02d})"
    )

    await stop_event.wait()

    logger.info("Shutting down scheduler...")
    scheduler.shutdown(wait=False)
    await stop_health_server(runner)


if __name__ == "__main__":
    asyncio.run(main())
