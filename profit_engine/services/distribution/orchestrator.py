"""
Distribution orchestrator.

Single idempotent entry point of the daily cycle, shared by the scheduler,
manual triggers and backfills:

1. Open a run record (refusing while another run of the cycle is live)
2. Ask the eligibility gate for candidate investments
3. Process each candidate as one unit of work (profit + cascade)
4. Close the run record with counters, totals and per-item errors
"""

import asyncio
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.settings import settings
from profit_engine.models.enums import (
    ActivationPolicy,
    ActivationStatus,
    CommissionPolicy,
    RunTrigger,
)
from profit_engine.models.run_record import RunRecord
from profit_engine.repositories.activation_repository import (
    ActivationRepository,
)
from profit_engine.repositories.run_repository import RunRepository
from profit_engine.services.base_service import BaseService, log_operation
from profit_engine.services.distribution.eligibility_gate import (
    EligibilityGate,
)
from profit_engine.services.distribution.ledger_guard import LedgerGuard
from profit_engine.services.distribution.profit_calculator import (
    ProfitCalculator,
)
from profit_engine.services.distribution.run_tracker import RunTracker
from profit_engine.services.distribution.types import (
    ErrorStage,
    ItemError,
    ProfitOutcome,
)
from profit_engine.services.distribution.upline_cascader import UplineCascader
from profit_engine.utils.datetime_utils import cycle_date_for
from profit_engine.utils.exceptions import ItemTimeout, is_transient


class DistributionOrchestrator(BaseService):
    """
    Distribution orchestrator.

    Items are processed sequentially; each one commits or rolls back on
    its own, so a failing item never undoes another item's credits.
    """

    def __init__(
        self,
        session: AsyncSession,
        abort_event: asyncio.Event | None = None,
        item_timeout_seconds: float | None = None,
        item_max_retries: int | None = None,
        item_retry_backoff_seconds: float | None = None,
        stale_after_seconds: int | None = None,
        activation_policy: ActivationPolicy | None = None,
        commission_policy: CommissionPolicy | None = None,
        root_account_id: int | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args default to the matching settings fields.

        Args:
            session: Database session (owned by the orchestrator for the run)
            abort_event: Set to stop the run between items
        """
        super().__init__(session)
        self.abort_event = abort_event or asyncio.Event()
        self.item_timeout_seconds = (
            item_timeout_seconds or settings.item_timeout_seconds
        )
        self.item_max_retries = (
            settings.item_max_retries
            if item_max_retries is None
            else item_max_retries
        )
        self.item_retry_backoff_seconds = (
            settings.item_retry_backoff_seconds
            if item_retry_backoff_seconds is None
            else item_retry_backoff_seconds
        )
        self.stale_after_seconds = stale_after_seconds
        self.activation_policy = activation_policy
        self.commission_policy = commission_policy
        self.root_account_id = root_account_id

        self.run_repo = RunRepository(session)
        self.activation_repo = ActivationRepository(session)

    def abort(self) -> None:
        """Request the running cycle to stop before the next item."""
        self.abort_event.set()

    @log_operation
    async def run_daily_cycle(
        self,
        cycle_date: date | None = None,
        trigger: RunTrigger = RunTrigger.SCHEDULER,
    ) -> RunRecord:
        """
        Run profit distribution for one cycle.

        Idempotent per cycle date: a completed cycle is returned as-is,
        partial_success / failed cycles are resumed (processed items are
        not credited again).

        Args:
            cycle_date: Cycle date (defaults to today in the cycle timezone)
            trigger: What started the run

        Returns:
            Run record of this run (or the existing completed one)

        Raises:
            RunConflict: If another run of the cycle is in flight
        """
        cycle_date = cycle_date or cycle_date_for()

        completed = await self.run_repo.get_completed(cycle_date)
        if completed:
            self.logger.info(
                f"Cycle {cycle_date} already completed by run {completed.id}",
                extra={"cycle_date": str(cycle_date), "run_id": completed.id},
            )
            return completed

        tracker = RunTracker(self.session, self.stale_after_seconds)
        record = await tracker.open(cycle_date, trigger)
        run_logger = self.logger.bind(run_id=record.id, cycle_date=str(cycle_date))

        try:
            gate = EligibilityGate(self.session, self.activation_policy)
            eligibility = await gate.find_eligible(cycle_date)
            if not eligibility.ok:
                run_logger.error(f"Run aborted: {eligibility.error}")
                return await tracker.fail(
                    eligibility.error, stage=ErrorStage.ELIGIBILITY
                )

            # Snapshot: instances may expire as items commit and roll back
            candidates = [
                (investment.id, investment.account_id)
                for investment in eligibility.investments
            ]

            ledger_guard = LedgerGuard(self.session, run_id=record.id)
            cascader = UplineCascader(
                self.session,
                ledger_guard,
                commission_policy=self.commission_policy,
                root_account_id=self.root_account_id,
            )
            calculator = ProfitCalculator(
                self.session, ledger_guard, cascader, run_id=record.id
            )

            aborted = False
            for investment_id, account_id in candidates:
                if self.abort_event.is_set():
                    aborted = True
                    run_logger.warning(
                        "Abort requested, stopping before next item",
                        extra={"remaining_from": investment_id},
                    )
                    break

                await self._process_item(
                    tracker,
                    calculator,
                    investment_id=investment_id,
                    account_id=account_id,
                    cycle_date=cycle_date,
                )

            return await tracker.finalize(aborted=aborted)

        except Exception as e:
            run_logger.exception(f"Run crashed: {e}")
            return await tracker.fail(f"Run crashed: {e}")

    async def _process_item(
        self,
        tracker: RunTracker,
        calculator: ProfitCalculator,
        investment_id: int,
        account_id: int,
        cycle_date: date,
    ) -> None:
        """
        Process one investment as its own unit of work.

        Transient store errors are retried with exponential backoff, both
        while opening the activation record and while processing. Anything
        else marks the activation record failed and the run moves on.
        """
        activation_id: int | None = None
        attempt = 0

        while True:
            try:
                if activation_id is None:
                    activation = await self.activation_repo.get_or_create(
                        account_id=account_id,
                        investment_id=investment_id,
                        cycle_date=cycle_date,
                        run_id=tracker.run_id,
                    )
                    if activation.is_done:
                        await self.session.commit()
                        self.logger.debug(
                            f"Investment {investment_id} already "
                            f"{activation.status} for {cycle_date}",
                        )
                        return
                    activation_id = activation.id
                    await self.session.commit()

                outcome = await self._process_with_timeout(
                    calculator, investment_id, cycle_date, activation_id
                )
                await self.session.commit()
            except Exception as e:
                await self.session.rollback()

                if is_transient(e) and attempt < self.item_max_retries:
                    attempt += 1
                    delay = self.item_retry_backoff_seconds * 2 ** (attempt - 1)
                    self.logger.warning(
                        f"Transient error on investment {investment_id}, "
                        f"retry {attempt}/{self.item_max_retries} in {delay}s: {e}",
                        extra={
                            "investment_id": investment_id,
                            "attempt": attempt,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

                if activation_id is None:
                    stage = ErrorStage.ACTIVATION
                elif isinstance(e, ItemTimeout):
                    stage = ErrorStage.TIMEOUT
                else:
                    stage = calculator.stage
                await self._fail_item(
                    tracker,
                    ItemError(
                        account_id=account_id,
                        investment_id=investment_id,
                        stage=stage,
                        message=str(e) or e.__class__.__name__,
                    ),
                    activation_id,
                )
                return

            self._count(tracker, outcome)
            await tracker.checkpoint()
            return

    async def _process_with_timeout(
        self,
        calculator: ProfitCalculator,
        investment_id: int,
        cycle_date: date,
        activation_id: int,
    ) -> ProfitOutcome:
        try:
            return await asyncio.wait_for(
                calculator.process(investment_id, cycle_date, activation_id),
                timeout=self.item_timeout_seconds,
            )
        except TimeoutError as e:
            raise ItemTimeout(
                f"Investment {investment_id} timed out after "
                f"{self.item_timeout_seconds}s"
            ) from e

    async def _fail_item(
        self,
        tracker: RunTracker,
        error: ItemError,
        activation_id: int | None,
    ) -> None:
        self.logger.error(
            f"Investment {error.investment_id} failed at {error.stage}: "
            f"{error.message}",
            extra=error.to_dict(),
        )
        if activation_id is not None:
            await self.activation_repo.mark_failed(
                activation_id, error.message, run_id=tracker.run_id
            )
        tracker.record_error(error)
        await tracker.checkpoint()

    @staticmethod
    def _count(tracker: RunTracker, outcome: ProfitOutcome) -> None:
        if outcome.status == ActivationStatus.PROCESSED:
            tracker.record_processed(outcome)
        else:
            tracker.record_skipped(outcome)
