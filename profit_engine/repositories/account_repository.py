"""
Account repository.

Data access layer for Account model.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.account import Account
from profit_engine.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def apply_credit(self, account_id: int, amount: Decimal) -> bool:
        """
        Increment wallet balance and lifetime earnings atomically.

        Uses a single UPDATE so concurrent credits never lose an increment.

        Args:
            account_id: Beneficiary account ID
            amount: Credit amount (positive)

        Returns:
            True if account exists and was credited
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                balance=Account.balance + amount,
                total_earned=Account.total_earned + amount,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def count_direct_referrals(self, account_id: int) -> int:
        """
        Count accounts whose upline is the given account.

        Args:
            account_id: Upline account ID

        Returns:
            Number of direct referrals
        """
        return await self.count(upline_id=account_id)

    async def get_direct_referrals(
        self, account_ids: list[int]
    ) -> list[Account]:
        """
        Get accounts directly referred by any of the given accounts.

        Args:
            account_ids: Upline account IDs

        Returns:
            List of referred accounts
        """
        if not account_ids:
            return []

        stmt = (
            select(Account)
            .where(Account.upline_id.in_(account_ids))
            .order_by(Account.id)
        )
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_ids_with_referrals(self) -> list[int]:
        """
        Get IDs of accounts that referred at least one account.

        Returns:
            Sorted list of upline account IDs
        """
        stmt = (
            select(Account.upline_id)
            .where(Account.upline_id.is_not(None))
            .group_by(Account.upline_id)
            .order_by(Account.upline_id)
        )
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]

