"""Integration tests for team rewards."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from profit_engine.models.enums import LedgerKind, TeamRewardStatus
from profit_engine.models.team_reward import TeamReward
from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.ledger_repository import LedgerRepository
from profit_engine.repositories.team_reward_repository import (
    TeamRewardRepository,
)
from profit_engine.services.team_reward_service import TeamRewardService


NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


async def build_team(builder, leader_invests: bool = True):
    """Leader with two direct referrals of 60000 each (tier 100000)."""
    if leader_invests:
        leader = await builder.investor(activated=False)
    else:
        leader = await builder.account(activated=False)
    for _ in range(2):
        await builder.account(
            upline=leader, activated=False, total_invested=Decimal("60000")
        )
    await builder.commit()
    return leader


class TestQualification:
    """Test reward creation."""

    @pytest.mark.asyncio
    async def test_tier_reached_creates_pending_reward(self, session, builder):
        leader = await build_team(builder)

        result = await TeamRewardService(session).process_team_rewards(NOW)

        rewards = await TeamRewardRepository(session).find_by(
            account_id=leader.id
        )
        assert result.created == 1
        assert result.credited == 0
        assert len(rewards) == 1
        assert rewards[0].status == TeamRewardStatus.PENDING.value
        assert rewards[0].reward_amount == Decimal("15000")

    @pytest.mark.asyncio
    async def test_second_level_counts(self, session, builder):
        """Deposits two levels down count towards the leader's team."""
        leader = await builder.investor(activated=False)
        direct = await builder.account(
            upline=leader, activated=False, total_invested=Decimal("50000")
        )
        await builder.account(
            upline=direct, activated=False, total_invested=Decimal("50000")
        )
        await builder.commit()

        service = TeamRewardService(session)

        assert await service.active_team_deposit(leader.id) == Decimal("100000")

    @pytest.mark.asyncio
    async def test_below_tier_creates_nothing(self, session, builder):
        leader = await builder.investor(activated=False)
        await builder.account(
            upline=leader, activated=False, total_invested=Decimal("99999")
        )
        await builder.commit()

        result = await TeamRewardService(session).process_team_rewards(NOW)

        assert result.created == 0

    @pytest.mark.asyncio
    async def test_tier_granted_once(self, session, builder):
        await build_team(builder)
        service = TeamRewardService(session)

        await service.process_team_rewards(NOW)
        again = await service.process_team_rewards(NOW + timedelta(days=1))

        assert again.created == 0
        assert await TeamRewardRepository(session).count() == 1


class TestCrediting:
    """Test crediting matured rewards."""

    @pytest.mark.asyncio
    async def test_matured_reward_credited_once(
        self, session, builder, balance
    ):
        leader = await build_team(builder)
        service = TeamRewardService(session)
        await service.process_team_rewards(NOW)

        later = NOW + timedelta(days=31)
        result = await service.process_team_rewards(later)
        rerun = await service.process_team_rewards(later)

        reward = (
            await TeamRewardRepository(session).find_by(account_id=leader.id)
        )[0]
        entries = await LedgerRepository(session).get_by_beneficiary(
            leader.id, kind=LedgerKind.TEAM_REWARD.value
        )
        assert result.credited == 1
        assert rerun.credited == 0
        assert reward.status == TeamRewardStatus.COMPLETED.value
        assert len(entries) == 1
        assert entries[0].source_ref_id == reward.id
        assert reward.ledger_entry_id == entries[0].id
        assert await balance(leader.id) == Decimal("15000")

    @pytest.mark.asyncio
    async def test_not_matured_stays_pending(self, session, builder, balance):
        leader = await build_team(builder)
        service = TeamRewardService(session)
        await service.process_team_rewards(NOW)

        result = await service.process_team_rewards(NOW + timedelta(days=29))

        assert result.credited == 0
        assert await balance(leader.id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_account_without_investment_deferred(
        self, session, builder, balance
    ):
        """Reward stays pending until the account invests."""
        leader_id = (await build_team(builder, leader_invests=False)).id
        service = TeamRewardService(session)
        await service.process_team_rewards(NOW)

        result = await service.process_team_rewards(NOW + timedelta(days=31))

        reward = await session.get(TeamReward, 1, populate_existing=True)
        assert result.deferred == 1
        assert result.credited == 0
        assert reward.status == TeamRewardStatus.PENDING.value
        assert await balance(leader_id) == Decimal("0")

        # The deferred pass rolled back, so reload the expired account
        leader = await AccountRepository(session).get_by_id(leader_id)
        await builder.investment(leader)
        await builder.commit()
        resumed = await service.process_team_rewards(NOW + timedelta(days=32))

        assert resumed.credited == 1
        assert await balance(leader_id) == Decimal("15000")
