"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings; tests never touch PostgreSQL or Redis
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CYCLE_TIMEZONE", "UTC")
os.environ.setdefault("ROOT_ACCOUNT_ID", "1")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from profit_engine.config.business_constants import (  # noqa: E402
    DEFAULT_LEVEL_RATES,
)


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_redis_client():
    """Mock Redis client whose lock() hands out a free lock."""
    redis_lock = AsyncMock()
    redis_lock.name = "lock:test"
    redis_lock.acquire = AsyncMock(return_value=True)
    redis_lock.release = AsyncMock(return_value=None)

    client = AsyncMock()
    client.lock = MagicMock(return_value=redis_lock)
    return client


@pytest.fixture
def mock_plan():
    """
    Plan with a 0.266% daily rate and the default level rates.

    Default values:
    - id: 7
    - daily_rate: 0.266
    - fallback_daily_rate: None
    - level rates: 25 / 10 / 5 / 4 / 3 / 2 / 1 / 0.5 / 0.5 / 0.5
    """
    plan = MagicMock()
    plan.id = 7
    plan.daily_rate = Decimal("0.266")
    plan.fallback_daily_rate = None
    plan.level_rates = DEFAULT_LEVEL_RATES
    return plan
