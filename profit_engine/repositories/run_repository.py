"""
Run record repository.

Data access layer for RunRecord model.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.enums import RunStatus
from profit_engine.models.run_record import RunRecord
from profit_engine.repositories.base import BaseRepository


class RunRepository(BaseRepository[RunRecord]):
    """Run record repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize run repository."""
        super().__init__(RunRecord, session)

    async def get_by_cycle(self, cycle_date: date) -> list[RunRecord]:
        """
        Get all runs of a cycle, oldest first.

        Args:
            cycle_date: Cycle date

        Returns:
            List of run records
        """
        stmt = (
            select(RunRecord)
            .where(RunRecord.cycle_date == cycle_date)
            .order_by(RunRecord.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_running(self, cycle_date: date) -> RunRecord | None:
        """Get the in-flight run of a cycle, if any."""
        return await self.get_by(
            cycle_date=cycle_date, status=RunStatus.RUNNING.value
        )

    async def get_completed(self, cycle_date: date) -> RunRecord | None:
        """Get the completed run of a cycle, if any."""
        return await self.get_by(
            cycle_date=cycle_date, status=RunStatus.COMPLETED.value
        )

    async def get_latest(self, cycle_date: date) -> RunRecord | None:
        """Get most recent run of a cycle."""
        runs = await self.get_by_cycle(cycle_date)
        return runs[-1] if runs else None

    async def get_recent(self, limit: int = 30) -> list[RunRecord]:
        """
        Get most recent runs across cycles.

        Args:
            limit: Max number of runs

        Returns:
            Runs, newest first
        """
        stmt = select(RunRecord).order_by(RunRecord.id.desc()).limit(limit)
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
