"""
Distributed lock.

Redis based mutual exclusion for background jobs. Falls back to a
PostgreSQL advisory lock when Redis is missing or unreachable and a
session is available; without either backend the caller proceeds
unlocked (the run record index still guards the daily cycle).
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import LockError, RedisError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from profit_engine.config.operational_constants import (
    BLOCKING_TIMEOUT_DEFAULT,
    LOCK_TIMEOUT_SHORT,
)


_KEY_PREFIX = "lock:"
_POLL_INTERVAL = 0.1


class DistributedLock:
    """
    Distributed lock.

    Example:
        lock = DistributedLock(redis_client=redis_client, session=session)
        async with lock.lock("daily_cycle:2025-01-01", timeout=1800) as acquired:
            if not acquired:
                return
            ...
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        session: AsyncSession | None = None,
    ) -> None:
        """
        Initialize lock.

        Args:
            redis_client: Redis client (preferred backend)
            session: Database session for advisory lock fallback
        """
        self.redis_client = redis_client
        self.session = session

    @asynccontextmanager
    async def lock(
        self,
        key: str,
        timeout: int = LOCK_TIMEOUT_SHORT,
        blocking: bool = True,
        blocking_timeout: float = BLOCKING_TIMEOUT_DEFAULT,
    ) -> AsyncIterator[bool]:
        """
        Hold lock for the duration of the block.

        Args:
            key: Lock name
            timeout: Lock expiry in seconds (Redis only)
            blocking: Wait for the lock instead of failing fast
            blocking_timeout: Max seconds to wait when blocking

        Yields:
            True if lock acquired, False otherwise
        """
        if self.redis_client is not None:
            redis_lock = self.redis_client.lock(
                f"{_KEY_PREFIX}{key}",
                timeout=timeout,
                sleep=_POLL_INTERVAL,
                blocking=blocking,
                blocking_timeout=blocking_timeout,
            )
            try:
                acquired = bool(await redis_lock.acquire())
            except RedisError as e:
                logger.warning(f"Redis lock unavailable for '{key}': {e}")
            else:
                if not acquired:
                    logger.info(f"Lock '{key}' is held by another worker")
                try:
                    yield acquired
                finally:
                    if acquired:
                        await self._release_redis(redis_lock)
                return

        if self.session is not None:
            # Advisory locks belong to a connection, so hold a dedicated one
            # instead of the session's (released on every commit)
            async with self.session.bind.connect() as conn:
                acquired = await self._poll(
                    lambda: self._try_advisory(conn, key),
                    blocking,
                    blocking_timeout,
                )
                if not acquired:
                    logger.info(f"Advisory lock '{key}' is held by another session")
                try:
                    yield acquired
                finally:
                    if acquired:
                        await conn.execute(
                            text("SELECT pg_advisory_unlock(hashtext(:key))"),
                            {"key": key},
                        )
            return

        logger.warning(
            f"No lock backend available for '{key}', proceeding unlocked"
        )
        yield True

    @staticmethod
    async def _release_redis(redis_lock) -> None:
        try:
            await redis_lock.release()
        except LockError as e:
            # Expired and possibly taken by another worker
            logger.warning(f"Lock '{redis_lock.name}' no longer owned: {e}")
        except RedisError as e:
            # Key still expires on its own
            logger.warning(f"Failed to release lock '{redis_lock.name}': {e}")

    @staticmethod
    async def _try_advisory(conn: AsyncConnection, key: str) -> bool:
        result = await conn.execute(
            text("SELECT pg_try_advisory_lock(hashtext(:key))"),
            {"key": key},
        )
        return bool(result.scalar())

    @staticmethod
    async def _poll(attempt, blocking: bool, blocking_timeout: float) -> bool:
        deadline = time.monotonic() + blocking_timeout
        while True:
            if await attempt():
                return True
            if not blocking or time.monotonic() >= deadline:
                return False
            await asyncio.sleep(_POLL_INTERVAL)
