"""Active member rewards task."""

import dramatiq
from loguru import logger

from jobs.async_runner import create_local_session, run_async
from profit_engine.config.operational_constants import (
    DRAMATIQ_TIME_LIMIT_STANDARD,
    LOCK_TIMEOUT_MEDIUM,
)
from profit_engine.config.settings import settings
from profit_engine.services.active_member_reward_service import (
    ActiveMemberRewardResult,
    ActiveMemberRewardService,
)
from profit_engine.utils.distributed_lock import DistributedLock
from profit_engine.utils.redis_utils import get_redis_client


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_STANDARD)
def process_active_member_rewards_task() -> None:
    """Pay active member tiers reached since the last pass."""
    if settings.emergency_stop_distribution:
        logger.warning("Active member rewards skipped: emergency stop is enabled")
        return

    result = run_async(_process_active_member_rewards_async())
    if result is None:
        return

    logger.info(
        f"Active member rewards task complete: {result.credited} credited, "
        f"{result.skipped_no_investment} without investment, "
        f"{len(result.errors)} errors"
    )


async def _process_active_member_rewards_async() -> ActiveMemberRewardResult | None:
    redis_client = await get_redis_client()

    try:
        async with create_local_session() as session:
            lock = DistributedLock(redis_client=redis_client, session=session)

            async with lock.lock(
                "active_member_rewards",
                timeout=LOCK_TIMEOUT_MEDIUM,
                blocking=False,
            ) as acquired:
                if not acquired:
                    logger.info("Active member rewards already running elsewhere")
                    return None

                service = ActiveMemberRewardService(session)
                return await service.process_active_member_rewards()
    finally:
        await redis_client.aclose()
