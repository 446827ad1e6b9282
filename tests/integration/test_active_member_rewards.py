"""Integration tests for active member rewards."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from profit_engine.config.business_constants import ActiveMemberTier
from profit_engine.models.enums import LedgerKind
from profit_engine.repositories.ledger_repository import LedgerRepository
from profit_engine.services.active_member_reward_service import (
    ActiveMemberRewardService,
)


NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)

TIERS = (
    ActiveMemberTier(2, 3, Decimal("90")),
    ActiveMemberTier(3, 10, Decimal("150")),
)


async def build_team(builder, leader_invests: bool = True) -> int:
    """Leader with two direct referrals and one second-level referral."""
    if leader_invests:
        leader = await builder.investor(activated=False)
    else:
        leader = await builder.account(activated=False)
    first = await builder.account(upline=leader, activated=False)
    await builder.account(upline=leader, activated=False)
    await builder.account(upline=first, activated=False)
    await builder.commit()
    return leader.id


class TestTeamSize:
    """Test team counting."""

    @pytest.mark.asyncio
    async def test_counts_all_levels(self, session, builder):
        leader_id = await build_team(builder)

        service = ActiveMemberRewardService(session, tiers=TIERS)

        assert await service.team_size(leader_id) == 3

    @pytest.mark.asyncio
    async def test_referral_loop_counted_once(self, session, builder):
        a = await builder.account(activated=False)
        b = await builder.account(upline=a, activated=False)
        a.upline_id = b.id
        await builder.commit()

        service = ActiveMemberRewardService(session, tiers=TIERS)

        assert await service.team_size(a.id) == 1


class TestRewards:
    """Test tier crediting."""

    @pytest.mark.asyncio
    async def test_reached_tier_credited_once(self, session, builder, balance):
        leader_id = await build_team(builder)
        service = ActiveMemberRewardService(session, tiers=TIERS)

        result = await service.process_active_member_rewards(NOW)
        rerun = await service.process_active_member_rewards(
            NOW + timedelta(days=1)
        )

        entries = await LedgerRepository(session).get_by_beneficiary(
            leader_id, kind=LedgerKind.REFERRAL_BONUS.value
        )
        assert result.credited == 1
        assert rerun.credited == 0
        assert [e.source_ref_id for e in entries] == [1]
        assert await balance(leader_id) == Decimal("90")

    @pytest.mark.asyncio
    async def test_account_without_investment_not_paid(
        self, session, builder, balance
    ):
        leader_id = await build_team(builder, leader_invests=False)

        result = await ActiveMemberRewardService(
            session, tiers=TIERS
        ).process_active_member_rewards(NOW)

        assert result.credited == 0
        assert result.skipped_no_investment == 1
        assert await balance(leader_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_too_few_direct_referrals(self, session, builder):
        leader = await builder.investor(activated=False)
        await builder.account(upline=leader, activated=False)
        await builder.commit()

        result = await ActiveMemberRewardService(
            session, tiers=TIERS
        ).process_active_member_rewards(NOW)

        assert result.credited == 0
        assert result.skipped_no_investment == 0
