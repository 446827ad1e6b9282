"""Unit tests for the distributed lock (Redis backend and fallbacks)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockNotOwnedError

from profit_engine.utils.distributed_lock import DistributedLock


class TestRedisLock:
    """Test locking through the Redis client's lock()."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, mock_redis_client):
        """Lock is created with expiry and released on exit."""
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock(
            "daily_cycle:2025-01-15", timeout=60, blocking=False
        ) as acquired:
            assert acquired is True
            mock_redis_client.lock.return_value.release.assert_not_called()

        args, kwargs = mock_redis_client.lock.call_args
        assert args[0] == "lock:daily_cycle:2025-01-15"
        assert kwargs["timeout"] == 60
        assert kwargs["blocking"] is False
        mock_redis_client.lock.return_value.acquire.assert_awaited_once()
        mock_redis_client.lock.return_value.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_held_elsewhere_non_blocking(self, mock_redis_client):
        """Failed acquire releases nothing."""
        redis_lock = mock_redis_client.lock.return_value
        redis_lock.acquire.return_value = False
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock("team_rewards", blocking=False) as acquired:
            assert acquired is False

        redis_lock.release.assert_not_called()

    @pytest.mark.asyncio
    async def test_blocking_timeout_passed_to_redis(self, mock_redis_client):
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock("k", blocking=True, blocking_timeout=5):
            pass

        kwargs = mock_redis_client.lock.call_args.kwargs
        assert kwargs["blocking"] is True
        assert kwargs["blocking_timeout"] == 5

    @pytest.mark.asyncio
    async def test_release_error_is_logged_not_raised(self, mock_redis_client):
        """Failed release leaves the key to expire."""
        redis_lock = mock_redis_client.lock.return_value
        redis_lock.release.side_effect = RedisConnectionError("gone")
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock("k") as acquired:
            assert acquired is True

    @pytest.mark.asyncio
    async def test_expired_lock_release_is_logged_not_raised(
        self, mock_redis_client
    ):
        """Lock that expired during the block is not an error for the job."""
        redis_lock = mock_redis_client.lock.return_value
        redis_lock.release.side_effect = LockNotOwnedError("expired")
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock("k") as acquired:
            assert acquired is True


class TestFallbacks:
    """Test behaviour without a working Redis."""

    @pytest.mark.asyncio
    async def test_no_backend_proceeds_unlocked(self):
        """Without Redis and database the caller proceeds."""
        lock = DistributedLock()

        async with lock.lock("k") as acquired:
            assert acquired is True

    @pytest.mark.asyncio
    async def test_redis_error_without_session_proceeds(self):
        """Unreachable Redis and no session: proceed unlocked."""
        redis_lock = AsyncMock()
        redis_lock.acquire.side_effect = RedisConnectionError("refused")
        client = AsyncMock()
        client.lock = MagicMock(return_value=redis_lock)
        lock = DistributedLock(redis_client=client)

        async with lock.lock("k") as acquired:
            assert acquired is True

        redis_lock.release.assert_not_called()
