"""
Investment repository.

Data access layer for Investment model.
"""

from datetime import date, datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.account import Account
from profit_engine.models.enums import AccountStatus, InvestmentStatus
from profit_engine.models.investment import Investment
from profit_engine.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Investment repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize investment repository."""
        super().__init__(Investment, session)

    async def get_by_account(
        self, account_id: int, status: str | None = None
    ) -> list[Investment]:
        """
        Get investments by account.

        Args:
            account_id: Account ID
            status: Optional status filter

        Returns:
            List of investments
        """
        filters: dict[str, int | str] = {"account_id": account_id}
        if status:
            filters["status"] = status

        return await self.find_by(**filters)

    async def has_active_investment(self, account_id: int) -> bool:
        """
        Check if account holds at least one active investment.

        Args:
            account_id: Account ID

        Returns:
            True if an active investment exists
        """
        return await self.exists(
            account_id=account_id, status=InvestmentStatus.ACTIVE.value
        )

    async def find_eligible(
        self,
        cycle_date: date,
        window_start: datetime,
        window_end: datetime,
        require_activation_in_window: bool = False,
    ) -> list[Investment]:
        """
        Find investments eligible for daily profit.

        Active investment, active account with a valid activation,
        not yet credited for the cycle.

        Args:
            cycle_date: Cycle date
            window_start: Cycle window start (UTC)
            window_end: Cycle window end (UTC)
            require_activation_in_window: Activation must be made in the window

        Returns:
            Investments ordered by id
        """
        stmt = (
            select(Investment)
            .join(Account, Account.id == Investment.account_id)
            .where(Investment.status == InvestmentStatus.ACTIVE.value)
            .where(Account.status == AccountStatus.ACTIVE.value)
            .where(Account.is_activated.is_(True))
            .where(Account.activated_at.is_not(None))
            .where(Account.activated_at < window_end)
            .where(
                or_(
                    Account.activation_expires_at.is_(None),
                    Account.activation_expires_at > window_start,
                )
            )
            .where(
                or_(
                    Investment.last_profit_date.is_(None),
                    Investment.last_profit_date < cycle_date,
                )
            )
            .order_by(Investment.id)
        )

        if require_activation_in_window:
            stmt = stmt.where(Account.activated_at >= window_start)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def advance_last_profit_date(
        self, investment_id: int, cycle_date: date
    ) -> bool:
        """
        Move last_profit_date forward to the cycle date.

        Never moves the date backwards.

        Args:
            investment_id: Investment ID
            cycle_date: Cycle date

        Returns:
            True if the date was advanced
        """
        stmt = (
            update(Investment)
            .where(Investment.id == investment_id)
            .where(
                or_(
                    Investment.last_profit_date.is_(None),
                    Investment.last_profit_date < cycle_date,
                )
            )
            .values(last_profit_date=cycle_date)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
