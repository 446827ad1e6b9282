"""
Cycle activation repository.

Data access layer for CycleActivation model.
"""

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.activation_record import CycleActivation
from profit_engine.models.enums import ActivationStatus
from profit_engine.repositories.base import BaseRepository


class ActivationRepository(BaseRepository[CycleActivation]):
    """Cycle activation repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize activation repository."""
        super().__init__(CycleActivation, session)

    async def get_for_investment(
        self, investment_id: int, cycle_date: date
    ) -> CycleActivation | None:
        """
        Get activation record of an investment for a cycle.

        Args:
            investment_id: Investment ID
            cycle_date: Cycle date

        Returns:
            Activation record or None
        """
        return await self.get_by(
            investment_id=investment_id, cycle_date=cycle_date
        )

    async def get_or_create(
        self,
        account_id: int,
        investment_id: int,
        cycle_date: date,
        run_id: int | None = None,
    ) -> CycleActivation:
        """
        Get activation record or create a pending one.

        Args:
            account_id: Owner account ID
            investment_id: Investment ID
            cycle_date: Cycle date
            run_id: Run creating the record

        Returns:
            Existing or new activation record
        """
        record = await self.get_for_investment(investment_id, cycle_date)
        if record:
            return record

        return await self.create(
            account_id=account_id,
            investment_id=investment_id,
            cycle_date=cycle_date,
            status=ActivationStatus.PENDING,
            run_id=run_id,
        )

    async def mark_failed(
        self,
        activation_id: int,
        reason: str,
        run_id: int | None = None,
    ) -> None:
        """
        Mark record failed with a single UPDATE (no ORM load).

        Used after a rolled back unit of work, when loaded
        instances can no longer be trusted.

        Args:
            activation_id: Activation record ID
            reason: Failure reason
            run_id: Run that failed the record
        """
        stmt = (
            update(CycleActivation)
            .where(CycleActivation.id == activation_id)
            .values(
                status=ActivationStatus.FAILED.value,
                failure_reason=reason[:1000],
                run_id=run_id,
                attempts=CycleActivation.attempts + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def get_by_cycle(
        self, cycle_date: date, status: str | None = None
    ) -> list[CycleActivation]:
        """
        Get activation records of a cycle.

        Args:
            cycle_date: Cycle date
            status: Optional status filter

        Returns:
            Records ordered by id
        """
        stmt = (
            select(CycleActivation)
            .where(CycleActivation.cycle_date == cycle_date)
            .order_by(CycleActivation.id)
        )
        if status:
            stmt = stmt.where(CycleActivation.status == status)

        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
