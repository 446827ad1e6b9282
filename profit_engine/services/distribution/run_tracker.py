"""
Run tracker.

Opens, updates and closes the run record of one batch execution.
Counters are kept in memory and checkpointed with plain UPDATE statements,
so a rolled back item never leaves stale ORM state behind.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.settings import settings
from profit_engine.models.enums import RunStatus, RunTrigger
from profit_engine.models.run_record import RunRecord
from profit_engine.repositories.run_repository import RunRepository
from profit_engine.services.distribution.types import (
    ErrorStage,
    ItemError,
    ProfitOutcome,
)
from profit_engine.utils.datetime_utils import ensure_utc, utc_now
from profit_engine.utils.exceptions import RunConflict


@dataclass
class RunTotals:
    """Counters and amounts of one run (or of all runs of a cycle)."""

    processed_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    total_profit: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")

    @property
    def total_distributed(self) -> Decimal:
        return self.total_profit + self.total_commission

    def add(self, other: "RunTotals") -> None:
        self.processed_count += other.processed_count
        self.skipped_count += other.skipped_count
        self.error_count += other.error_count
        self.total_profit += other.total_profit
        self.total_commission += other.total_commission

    @classmethod
    def from_record(cls, record: RunRecord) -> "RunTotals":
        return cls(
            processed_count=record.processed_count,
            skipped_count=record.skipped_count,
            error_count=record.error_count,
            total_profit=Decimal(str(record.total_profit)),
            total_commission=Decimal(str(record.total_commission)),
        )


class RunTracker:
    """
    Run tracker.

    State machine: running -> completed | partial_success | failed.
    Every state change is committed immediately.
    """

    def __init__(
        self,
        session: AsyncSession,
        stale_after_seconds: int | None = None,
    ) -> None:
        """
        Initialize run tracker.

        Args:
            session: Database session
            stale_after_seconds: Override for settings.run_stale_after_seconds
        """
        self.session = session
        self.run_repo = RunRepository(session)
        self.stale_after_seconds = (
            stale_after_seconds or settings.run_stale_after_seconds
        )
        self.run_id: int | None = None
        self.cycle_date: date | None = None
        self.totals = RunTotals()
        self.errors: list[dict[str, Any]] = []

    async def open(
        self, cycle_date: date, trigger: RunTrigger = RunTrigger.SCHEDULER
    ) -> RunRecord:
        """
        Open a new running record for a cycle.

        A running record older than the stale threshold is treated as
        crashed: marked failed and superseded by the new run.

        Args:
            cycle_date: Cycle date
            trigger: What started the run

        Returns:
            New run record

        Raises:
            RunConflict: If a non-stale run of the cycle is in flight
        """
        previous_run_id = None

        running = await self.run_repo.get_running(cycle_date)
        if running:
            age = (utc_now() - ensure_utc(running.started_at)).total_seconds()
            if age < self.stale_after_seconds:
                raise RunConflict(cycle_date, running.id)

            logger.warning(
                f"Run {running.id} for {cycle_date} is stale "
                f"({int(age)}s old), superseding",
                extra={"run_id": running.id, "cycle_date": str(cycle_date)},
            )
            stale_errors = list(running.errors or [])
            stale_errors.append(
                ItemError(
                    account_id=None,
                    investment_id=None,
                    stage=ErrorStage.RUN,
                    message=f"Run abandoned after {int(age)}s",
                ).to_dict()
            )
            await self.run_repo.update_where_id(
                running.id,
                status=RunStatus.FAILED.value,
                ended_at=utc_now(),
                errors=stale_errors,
                error_count=running.error_count + 1,
            )
            previous_run_id = running.id
        else:
            latest = await self.run_repo.get_latest(cycle_date)
            previous_run_id = latest.id if latest else None

        try:
            record = await self.run_repo.create(
                cycle_date=cycle_date,
                trigger=trigger,
                status=RunStatus.RUNNING,
                started_at=utc_now(),
                previous_run_id=previous_run_id,
                errors=[],
            )
            await self.session.commit()
        except IntegrityError as e:
            # Another worker opened a run between our check and insert
            await self.session.rollback()
            winner = await self.run_repo.get_running(cycle_date)
            raise RunConflict(cycle_date, winner.id if winner else 0) from e

        self.run_id = record.id
        self.cycle_date = cycle_date
        self.totals = RunTotals()
        self.errors = []

        logger.info(
            f"Run {record.id} opened for cycle {cycle_date}",
            extra={
                "run_id": record.id,
                "cycle_date": str(cycle_date),
                "trigger": str(trigger),
                "previous_run_id": previous_run_id,
            },
        )
        return record

    def record_processed(self, outcome: ProfitOutcome) -> None:
        """Count a processed investment and its amounts."""
        self.totals.processed_count += 1
        self.totals.total_profit += outcome.profit
        self.totals.total_commission += outcome.total_commission

    def record_skipped(self, outcome: ProfitOutcome | None = None) -> None:
        """Count a skipped investment."""
        self.totals.skipped_count += 1

    def record_error(self, error: ItemError) -> None:
        """Count a failed item and keep its error entry."""
        self.totals.error_count += 1
        self.errors.append(error.to_dict())

    async def checkpoint(self) -> None:
        """Persist counters and errors and commit."""
        await self._persist()
        await self.session.commit()

    async def finalize(self, aborted: bool = False) -> RunRecord:
        """
        Close run after iterating all candidates.

        Args:
            aborted: Run was stopped before all candidates were handled

        Returns:
            Closed run record (completed or partial_success)
        """
        status = (
            RunStatus.PARTIAL_SUCCESS
            if aborted or self.totals.error_count
            else RunStatus.COMPLETED
        )
        return await self._close(status)

    async def fail(
        self, message: str, stage: ErrorStage = ErrorStage.RUN
    ) -> RunRecord:
        """
        Close run after a run-level error.

        Any uncommitted work of the current item is rolled back first.

        Args:
            message: Error message
            stage: Stage that failed

        Returns:
            Closed run record (failed, or partial_success if items were
            already processed)
        """
        await self.session.rollback()
        self.record_error(
            ItemError(
                account_id=None,
                investment_id=None,
                stage=stage,
                message=message,
            )
        )
        status = (
            RunStatus.PARTIAL_SUCCESS
            if self.totals.processed_count
            else RunStatus.FAILED
        )
        return await self._close(status)

    async def cumulative_totals(self, cycle_date: date) -> RunTotals:
        """
        Sum totals of all runs of a cycle.

        Args:
            cycle_date: Cycle date

        Returns:
            Combined totals
        """
        totals = RunTotals()
        for record in await self.run_repo.get_by_cycle(cycle_date):
            totals.add(RunTotals.from_record(record))
        return totals

    async def _close(self, status: RunStatus) -> RunRecord:
        await self._persist(status=status.value, ended_at=utc_now())
        await self.session.commit()

        record = await self.run_repo.get_by_id(self.run_id)

        logger.info(
            f"Run {self.run_id} finished with status {status}",
            extra={
                "run_id": self.run_id,
                "cycle_date": str(self.cycle_date),
                "status": status.value,
                "processed": self.totals.processed_count,
                "skipped": self.totals.skipped_count,
                "errors": self.totals.error_count,
                "total_profit": str(self.totals.total_profit),
                "total_commission": str(self.totals.total_commission),
            },
        )
        return record

    async def _persist(self, **extra: Any) -> None:
        if self.run_id is None:
            raise RuntimeError("Run tracker is not open")

        await self.run_repo.update_where_id(
            self.run_id,
            processed_count=self.totals.processed_count,
            skipped_count=self.totals.skipped_count,
            error_count=self.totals.error_count,
            total_profit=self.totals.total_profit,
            total_commission=self.totals.total_commission,
            total_distributed=self.totals.total_distributed,
            errors=list(self.errors),
            **extra,
        )
