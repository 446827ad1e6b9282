"""
Profit calculator.

Computes and credits the daily profit of one investment for one cycle,
then hands the profit to the upline cascader.
"""

from datetime import date
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.business_constants import MAX_RATE_PERCENT
from profit_engine.config.settings import settings
from profit_engine.models.activation_record import CycleActivation
from profit_engine.models.enums import ActivationStatus, LedgerKind
from profit_engine.models.plan import Plan
from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.activation_repository import (
    ActivationRepository,
)
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.repositories.plan_repository import PlanRepository
from profit_engine.services.distribution.ledger_guard import LedgerGuard
from profit_engine.services.distribution.rate_table import RateTable, percent_of
from profit_engine.services.distribution.types import ErrorStage, ProfitOutcome
from profit_engine.services.distribution.upline_cascader import UplineCascader
from profit_engine.utils.exceptions import ConfigurationError, NotFoundError


def _valid_daily_rate(rate: Decimal | None) -> bool:
    return rate is not None and rate.is_finite() and 0 < rate <= MAX_RATE_PERCENT


class ProfitCalculator:
    """
    Profit calculator.

    One call to process() is one unit of work: ledger entry, wallet
    increment, last_profit_date, activation record and the cascade.
    The caller commits or rolls back.
    """

    def __init__(
        self,
        session: AsyncSession,
        ledger_guard: LedgerGuard,
        cascader: UplineCascader,
        run_id: int | None = None,
    ) -> None:
        """
        Initialize profit calculator.

        Args:
            session: Database session
            ledger_guard: Guard used for the daily profit credit
            cascader: Upline cascader run after a successful credit
            run_id: Run stamped on activation records
        """
        self.session = session
        self.ledger_guard = ledger_guard
        self.cascader = cascader
        self.run_id = run_id
        self.account_repo = AccountRepository(session)
        self.investment_repo = InvestmentRepository(session)
        self.activation_repo = ActivationRepository(session)
        self.plan_repo = PlanRepository(session)
        # Plans are read-only during a run
        self._plan_cache: dict[int | None, tuple[Decimal, RateTable]] = {}
        # Stage of the current process() call, read when it fails
        self.stage = ErrorStage.PROFIT

    @staticmethod
    def calculate_profit(principal: Decimal, daily_rate: Decimal) -> Decimal:
        """
        Calculate daily profit.

        Formula: principal * daily_rate / 100, rounded down to 8 places

        Example:
            >>> ProfitCalculator.calculate_profit(Decimal("1000"), Decimal("0.266"))
            Decimal('2.66000000')
        """
        return percent_of(principal, daily_rate)

    async def process(
        self,
        investment_id: int,
        cycle_date: date,
        activation_id: int,
    ) -> ProfitOutcome:
        """
        Process daily profit of one investment.

        Args:
            investment_id: Investment ID
            cycle_date: Cycle date
            activation_id: Activation record of (investment, cycle)

        Returns:
            ProfitOutcome (processed or skipped)

        Raises:
            NotFoundError: If investment, owner account or activation record
                does not exist
        """
        self.stage = ErrorStage.PROFIT

        activation = await self.activation_repo.get_by_id(activation_id)
        if activation is None:
            raise NotFoundError("CycleActivation", activation_id)

        investment = await self.investment_repo.get_by_id(
            investment_id, for_update=True
        )
        if investment is None:
            raise NotFoundError("Investment", investment_id)

        if not investment.is_active:
            return await self._skip(
                activation, f"Investment status is {investment.status}"
            )
        if (
            investment.last_profit_date is not None
            and investment.last_profit_date >= cycle_date
        ):
            return await self._skip(
                activation,
                f"Profit already credited up to {investment.last_profit_date}",
            )

        account = await self.account_repo.get_by_id(investment.account_id)
        if account is None:
            raise NotFoundError("Account", investment.account_id)

        daily_rate, rates = await self.resolve_rates(investment.plan_id)
        profit = self.calculate_profit(investment.principal, daily_rate)
        if profit <= 0:
            return await self._skip(activation, "Daily profit rounds to zero")

        credit = await self.ledger_guard.credit(
            beneficiary_id=account.id,
            source_account_id=account.id,
            kind=LedgerKind.DAILY_PROFIT,
            amount=profit,
            level=0,
            cycle_date=cycle_date,
            source_ref_id=investment.id,
        )
        # A reused entry fixes the amount the upline sees
        profit = credit.entry.amount

        await self.investment_repo.advance_last_profit_date(
            investment.id, cycle_date
        )

        self.stage = ErrorStage.CASCADE
        cascade = await self.cascader.cascade(
            origin=account,
            profit=profit,
            cycle_date=cycle_date,
            rates=rates,
            source_investment_id=investment.id,
        )

        activation.status = ActivationStatus.PROCESSED
        activation.amount = profit
        activation.ledger_entry_id = credit.entry.id
        activation.failure_reason = None
        activation.run_id = self.run_id
        activation.attempts += 1
        await self.session.flush()

        logger.info(
            f"Daily profit {profit} credited for investment {investment.id}",
            extra={
                "investment_id": investment.id,
                "account_id": account.id,
                "cycle_date": str(cycle_date),
                "profit": str(profit),
                "daily_rate": str(daily_rate),
                "ledger_entry_id": credit.entry.id,
                "reused_entry": not credit.created,
                "commission": str(cascade.total_commission),
                "levels_reached": cascade.levels_reached,
            },
        )

        return ProfitOutcome(
            investment_id=investment.id,
            account_id=account.id,
            status=ActivationStatus.PROCESSED,
            profit=profit,
            ledger_entry_id=credit.entry.id,
            cascade=cascade,
        )

    async def resolve_rates(
        self, plan_id: int | None
    ) -> tuple[Decimal, RateTable]:
        """
        Get daily rate and level rates of a plan.

        Missing plans and invalid rates fall back to safe defaults with a
        warning; the investment is still processed.

        Args:
            plan_id: Plan ID (None if the plan was deleted)

        Returns:
            Tuple of (daily_rate, rate_table)
        """
        if plan_id in self._plan_cache:
            return self._plan_cache[plan_id]

        plan = await self.plan_repo.get_by_id(plan_id) if plan_id else None
        if plan is None:
            logger.warning(
                f"Plan {plan_id} not found, using fallback rates",
                extra={"plan_id": plan_id},
            )
            resolved = (settings.fallback_daily_rate, RateTable.default())
        else:
            resolved = (self._daily_rate(plan), self._rate_table(plan))

        self._plan_cache[plan_id] = resolved
        return resolved

    @staticmethod
    def _daily_rate(plan: Plan) -> Decimal:
        if _valid_daily_rate(plan.daily_rate):
            return plan.daily_rate

        fallback = (
            plan.fallback_daily_rate
            if _valid_daily_rate(plan.fallback_daily_rate)
            else settings.fallback_daily_rate
        )
        logger.warning(
            f"Plan {plan.id} has invalid daily rate {plan.daily_rate}, "
            f"using fallback {fallback}",
            extra={
                "plan_id": plan.id,
                "daily_rate": str(plan.daily_rate),
                "fallback_daily_rate": str(fallback),
            },
        )
        return fallback

    @staticmethod
    def _rate_table(plan: Plan) -> RateTable:
        try:
            return RateTable.from_plan(plan)
        except ConfigurationError as e:
            logger.warning(
                f"Invalid level rates, using defaults: {e}",
                extra={"plan_id": plan.id},
            )
            return RateTable.default()

    async def _skip(
        self, activation: CycleActivation, reason: str
    ) -> ProfitOutcome:
        activation.status = ActivationStatus.SKIPPED
        activation.failure_reason = reason
        activation.run_id = self.run_id
        await self.session.flush()

        logger.info(
            f"Investment {activation.investment_id} skipped: {reason}",
            extra={
                "investment_id": activation.investment_id,
                "cycle_date": str(activation.cycle_date),
            },
        )

        return ProfitOutcome(
            investment_id=activation.investment_id,
            account_id=activation.account_id,
            status=ActivationStatus.SKIPPED,
            reason=reason,
        )
