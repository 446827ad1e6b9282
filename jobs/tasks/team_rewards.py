"""Team rewards task."""

import dramatiq
from loguru import logger

from jobs.async_runner import create_local_session, run_async
from profit_engine.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_STANDARD,
    LOCK_TIMEOUT_MEDIUM,
)
from profit_engine.config.settings import settings
from profit_engine.services.team_reward_service import (
    TeamRewardResult,
    TeamRewardService,
)
from profit_engine.utils.distributed_lock import DistributedLock
from profit_engine.utils.redis_utils import get_redis_client


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_STANDARD)  # 5 min timeout
def process_team_rewards_task() -> None:
    """
    Process team rewards.

    - Creates pending rewards for newly reached tiers
    - Credits rewards whose period ended
    """
    if settings.emergency_stop_distribution:
        logger.warning("Team rewards skipped: emergency stop is enabled")
        return

    logger.info("Starting team rewards task...")

    result = run_async(_process_team_rewards_async())
    if result is None:
        return

    logger.info(
        f"Team rewards task complete: {result.created} created, "
        f"{result.credited} credited, {result.deferred} deferred, "
        f"{len(result.errors)} errors"
    )


async def _process_team_rewards_async() -> TeamRewardResult | None:
    """Async implementation of team rewards task."""
    redis_client = await get_redis_client()

    try:
        async with create_local_session() as session:
            lock = DistributedLock(redis_client=redis_client, session=session)

            async with lock.lock(
                "team_rewards", timeout=LOCK_TIMEOUT_MEDIUM, blocking=False
            ) as acquired:
                if not acquired:
                    logger.info("Team rewards already running elsewhere")
                    return None

                service = TeamRewardService(session)
                return await service.process_team_rewards()
    finally:
        await redis_client.aclose()
