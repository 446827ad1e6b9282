"""Integration tests for investment eligibility."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from profit_engine.models.enums import (
    AccountStatus,
    ActivationPolicy,
    InvestmentStatus,
)
from profit_engine.services.distribution.eligibility_gate import (
    EligibilityGate,
)


class TestEligibility:
    """Test which investments earn profit for a cycle."""

    @pytest.mark.asyncio
    async def test_active_investment_of_activated_account(
        self, session, builder, cycle
    ):
        account = await builder.account()
        investment = await builder.investment(account)
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert result.ok
        assert [i.id for i in result.investments] == [investment.id]

    @pytest.mark.asyncio
    async def test_already_credited_for_cycle_excluded(
        self, session, builder, cycle
    ):
        """last_profit_date == cycle means the profit was already paid."""
        account = await builder.account()
        await builder.investment(account, last_profit_date=cycle)
        previous = await builder.investment(
            account, last_profit_date=cycle - timedelta(days=1)
        )
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert [i.id for i in result.investments] == [previous.id]

    @pytest.mark.asyncio
    async def test_inactive_investment_excluded(self, session, builder, cycle):
        account = await builder.account()
        await builder.investment(account, status=InvestmentStatus.COMPLETED)
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert result.investments == []

    @pytest.mark.asyncio
    async def test_suspended_account_excluded(self, session, builder, cycle):
        account = await builder.account(status=AccountStatus.SUSPENDED)
        await builder.investment(account)
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert result.investments == []

    @pytest.mark.asyncio
    async def test_not_activated_excluded(self, session, builder, cycle):
        account = await builder.account(activated=False)
        await builder.investment(account)
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert result.investments == []

    @pytest.mark.asyncio
    async def test_expired_activation_excluded(self, session, builder, cycle):
        """Activation that expired before the cycle started is invalid."""
        activated_at = datetime(2025, 1, 10, tzinfo=UTC)
        account = await builder.account(
            activated_at=activated_at,
            expires_at=datetime(2025, 1, 11, tzinfo=UTC),
        )
        await builder.investment(account)
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert result.investments == []

    @pytest.mark.asyncio
    async def test_activation_after_cycle_excluded(
        self, session, builder, cycle
    ):
        """Activation made after the cycle window does not count."""
        account = await builder.account(
            activated_at=datetime(2025, 1, 16, 8, 0, tzinfo=UTC)
        )
        await builder.investment(account)
        await builder.commit()

        result = await EligibilityGate(session).find_eligible(cycle)

        assert result.investments == []


class TestActivationPolicy:
    """Test activation window policies."""

    @pytest.mark.asyncio
    async def test_earlier_unexpired_activation(self, session, builder, cycle):
        """UNEXPIRED accepts an older activation, CURRENT_CYCLE does not."""
        account = await builder.account(
            activated_at=datetime(2025, 1, 14, 12, 0, tzinfo=UTC),
            expires_at=datetime(2025, 1, 20, tzinfo=UTC),
        )
        await builder.investment(account)
        await builder.commit()

        unexpired = await EligibilityGate(
            session, ActivationPolicy.UNEXPIRED
        ).find_eligible(cycle)
        current = await EligibilityGate(
            session, ActivationPolicy.CURRENT_CYCLE
        ).find_eligible(cycle)

        assert len(unexpired.investments) == 1
        assert current.investments == []


class TestStoreFailure:
    """Test unreachable store."""

    @pytest.mark.asyncio
    async def test_query_failure_returns_error(self, session, cycle):
        """Store errors become an error result instead of an exception."""
        gate = EligibilityGate(session)
        gate.investment_repo.find_eligible = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("down"))
        )

        result = await gate.find_eligible(cycle)

        assert not result.ok
        assert "Eligibility query failed" in result.error
        assert result.investments == []
