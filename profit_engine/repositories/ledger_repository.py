"""
Ledger repository.

Data access layer for LedgerEntry model.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.business_constants import MONEY_QUANTUM
from profit_engine.models.enums import LedgerStatus
from profit_engine.models.ledger_entry import LedgerEntry
from profit_engine.repositories.base import BaseRepository


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Ledger repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger repository."""
        super().__init__(LedgerEntry, session)

    async def find_active_by_key(
        self,
        beneficiary_id: int,
        source_account_id: int,
        kind: str,
        level: int,
        cycle_date: date,
        source_ref_id: int = 0,
    ) -> LedgerEntry | None:
        """
        Find the non-cancelled entry for an idempotency key.

        Args:
            beneficiary_id: Beneficiary account ID
            source_account_id: Source account ID
            kind: Ledger kind value
            level: Level (0 direct, 1-10 commission)
            cycle_date: Cycle date
            source_ref_id: Originating investment / reward ID

        Returns:
            Entry or None
        """
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.beneficiary_id == beneficiary_id)
            .where(LedgerEntry.source_account_id == source_account_id)
            .where(LedgerEntry.kind == kind)
            .where(LedgerEntry.level == level)
            .where(LedgerEntry.cycle_date == cycle_date)
            .where(LedgerEntry.source_ref_id == source_ref_id)
            .where(LedgerEntry.status != LedgerStatus.CANCELLED.value)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def mark_applied(self, entry_id: int, applied_at: datetime) -> bool:
        """
        Set applied_at if not set yet.

        Args:
            entry_id: Ledger entry ID
            applied_at: Application timestamp

        Returns:
            True if this call marked the entry applied
        """
        stmt = (
            update(LedgerEntry)
            .where(LedgerEntry.id == entry_id)
            .where(LedgerEntry.applied_at.is_(None))
            .values(applied_at=applied_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_by_beneficiary(
        self,
        beneficiary_id: int,
        cycle_date: date | None = None,
        kind: str | None = None,
    ) -> list[LedgerEntry]:
        """
        Get entries credited to an account.

        Args:
            beneficiary_id: Beneficiary account ID
            cycle_date: Optional cycle filter
            kind: Optional kind filter

        Returns:
            Entries ordered by id
        """
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.beneficiary_id == beneficiary_id)
            .order_by(LedgerEntry.id)
        )
        if cycle_date:
            stmt = stmt.where(LedgerEntry.cycle_date == cycle_date)
        if kind:
            stmt = stmt.where(LedgerEntry.kind == kind)

        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_by_source(
        self,
        source_account_id: int,
        cycle_date: date,
        kind: str | None = None,
    ) -> list[LedgerEntry]:
        """
        Get non-cancelled entries generated by an account's profit.

        Args:
            source_account_id: Source account ID
            cycle_date: Cycle date
            kind: Optional kind filter

        Returns:
            Entries ordered by level
        """
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.source_account_id == source_account_id)
            .where(LedgerEntry.cycle_date == cycle_date)
            .where(LedgerEntry.status != LedgerStatus.CANCELLED.value)
            .order_by(LedgerEntry.level, LedgerEntry.id)
        )
        if kind:
            stmt = stmt.where(LedgerEntry.kind == kind)

        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def sum_by_kind(self, cycle_date: date) -> dict[str, Decimal]:
        """
        Sum credited amounts of a cycle per kind.

        Args:
            cycle_date: Cycle date

        Returns:
            Dict of kind -> total amount
        """
        stmt = (
            select(LedgerEntry.kind, func.sum(LedgerEntry.amount))
            .where(LedgerEntry.cycle_date == cycle_date)
            .where(LedgerEntry.status != LedgerStatus.CANCELLED.value)
            .group_by(LedgerEntry.kind)
        )
        result = await self.session.execute(stmt)
        return {
            kind: Decimal(str(total or 0)).quantize(MONEY_QUANTUM)
            for kind, total in result.all()
        }
