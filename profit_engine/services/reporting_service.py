"""
Reporting service.

Read-only queries over run records, activation records and the ledger.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.activation_record import CycleActivation
from profit_engine.models.enums import ActivationStatus
from profit_engine.models.ledger_entry import LedgerEntry
from profit_engine.models.run_record import RunRecord
from profit_engine.repositories.activation_repository import (
    ActivationRepository,
)
from profit_engine.repositories.ledger_repository import LedgerRepository
from profit_engine.repositories.run_repository import RunRepository
from profit_engine.services.distribution.run_tracker import RunTotals


@dataclass
class CycleSummary:
    """Everything known about one cycle across all of its runs."""

    cycle_date: date
    run_count: int
    latest_status: str | None
    totals: RunTotals
    ledger_totals: dict[str, Decimal] = field(default_factory=dict)
    failed_items: int = 0


class ReportingService:
    """Reporting service (never writes)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize reporting service."""
        self.session = session
        self.run_repo = RunRepository(session)
        self.ledger_repo = LedgerRepository(session)
        self.activation_repo = ActivationRepository(session)

    async def get_runs(self, cycle_date: date) -> list[RunRecord]:
        """Get all runs of a cycle, oldest first."""
        return await self.run_repo.get_by_cycle(cycle_date)

    async def get_recent_runs(self, limit: int = 30) -> list[RunRecord]:
        """Get most recent runs across cycles, newest first."""
        return await self.run_repo.get_recent(limit)

    async def get_cycle_summary(self, cycle_date: date) -> CycleSummary:
        """
        Summarize a cycle.

        Args:
            cycle_date: Cycle date

        Returns:
            CycleSummary with cumulative run totals and ledger totals per kind
        """
        runs = await self.run_repo.get_by_cycle(cycle_date)

        totals = RunTotals()
        for run in runs:
            totals.add(RunTotals.from_record(run))

        failed = await self.activation_repo.get_by_cycle(
            cycle_date, status=ActivationStatus.FAILED.value
        )

        return CycleSummary(
            cycle_date=cycle_date,
            run_count=len(runs),
            latest_status=runs[-1].status if runs else None,
            totals=totals,
            ledger_totals=await self.ledger_repo.sum_by_kind(cycle_date),
            failed_items=len(failed),
        )

    async def get_account_ledger(
        self,
        account_id: int,
        cycle_date: date | None = None,
        kind: str | None = None,
    ) -> list[LedgerEntry]:
        """
        Get ledger entries credited to an account.

        Args:
            account_id: Beneficiary account ID
            cycle_date: Optional cycle filter
            kind: Optional LedgerKind value filter

        Returns:
            Entries ordered by id
        """
        return await self.ledger_repo.get_by_beneficiary(
            account_id, cycle_date=cycle_date, kind=kind
        )

    async def get_replayable_items(
        self, cycle_date: date
    ) -> list[CycleActivation]:
        """
        Get failed activation records a resumed run will pick up again.

        Args:
            cycle_date: Cycle date

        Returns:
            Failed records ordered by id
        """
        return await self.activation_repo.get_by_cycle(
            cycle_date, status=ActivationStatus.FAILED.value
        )
