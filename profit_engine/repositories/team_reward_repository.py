"""
Team reward repository.

Data access layer for TeamReward model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.enums import TeamRewardStatus
from profit_engine.models.team_reward import TeamReward
from profit_engine.repositories.base import BaseRepository


class TeamRewardRepository(BaseRepository[TeamReward]):
    """Team reward repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize team reward repository."""
        super().__init__(TeamReward, session)

    async def get_open_for_tier(
        self, account_id: int, team_deposit: Decimal
    ) -> TeamReward | None:
        """
        Get pending or completed reward of a tier.

        Args:
            account_id: Account ID
            team_deposit: Tier threshold

        Returns:
            Reward or None
        """
        stmt = (
            select(TeamReward)
            .where(TeamReward.account_id == account_id)
            .where(TeamReward.team_deposit == team_deposit)
            .where(
                TeamReward.status.in_(
                    [
                        TeamRewardStatus.PENDING.value,
                        TeamRewardStatus.COMPLETED.value,
                    ]
                )
            )
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_matured(self, now: datetime) -> list[TeamReward]:
        """
        Get pending rewards whose period has ended.

        Args:
            now: Current time (UTC)

        Returns:
            Rewards ordered by id
        """
        stmt = (
            select(TeamReward)
            .where(TeamReward.status == TeamRewardStatus.PENDING.value)
            .where(TeamReward.end_date <= now)
            .order_by(TeamReward.id)
        )
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
