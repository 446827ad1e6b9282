"""
Team reward service.

Accounts whose active team deposit (direct and second-level referrals
with investments) reaches a tier get a pending reward. After the tier
period the reward is credited once through the ledger guard, provided
the account still holds an active investment.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.business_constants import (
    TEAM_REWARD_TIERS,
    TeamRewardTier,
)
from profit_engine.models.enums import LedgerKind, TeamRewardStatus
from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.repositories.team_reward_repository import (
    TeamRewardRepository,
)
from profit_engine.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)
from profit_engine.services.distribution.ledger_guard import LedgerGuard
from profit_engine.utils.datetime_utils import cycle_date_for, ensure_utc, utc_now


@dataclass
class TeamRewardResult:
    """Outcome of one team reward pass."""

    created: int = 0
    credited: int = 0
    deferred: int = 0
    errors: list[str] = field(default_factory=list)


class TeamRewardService(BaseService):
    """Team reward qualification and crediting."""

    def __init__(
        self,
        session: AsyncSession,
        tiers: tuple[TeamRewardTier, ...] = TEAM_REWARD_TIERS,
    ) -> None:
        """
        Initialize team reward service.

        Args:
            session: Database session
            tiers: Reward tiers, lowest first
        """
        super().__init__(session)
        self.tiers = tiers
        self.account_repo = AccountRepository(session)
        self.investment_repo = InvestmentRepository(session)
        self.reward_repo = TeamRewardRepository(session)
        self.ledger_guard = LedgerGuard(session)

    @log_operation
    async def process_team_rewards(
        self, now: datetime | None = None
    ) -> TeamRewardResult:
        """
        Create rewards for newly qualified accounts, then credit matured ones.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            TeamRewardResult
        """
        now = ensure_utc(now) or utc_now()
        result = TeamRewardResult()

        result.created = await self.qualify_accounts(now)
        await self.credit_matured(now, result)

        self.logger.info(
            "Team rewards processed",
            extra={
                "created": result.created,
                "credited": result.credited,
                "deferred": result.deferred,
                "errors": len(result.errors),
            },
        )
        return result

    async def active_team_deposit(self, account_id: int) -> Decimal:
        """
        Sum invested amounts of direct and second-level referrals.

        Only referrals that have invested count.

        Args:
            account_id: Account ID

        Returns:
            Active team deposit
        """
        direct = await self.account_repo.get_direct_referrals([account_id])
        second = await self.account_repo.get_direct_referrals(
            [account.id for account in direct]
        )

        return sum(
            (
                account.total_invested
                for account in direct + second
                if account.total_invested > 0
            ),
            Decimal("0"),
        )

    @transaction
    async def qualify_accounts(self, now: datetime) -> int:
        """
        Create pending rewards for every tier an account reached.

        A tier is granted once per account (pending or completed).

        Args:
            now: Reward start time

        Returns:
            Number of created rewards
        """
        created = 0

        for account_id in await self.account_repo.get_ids_with_referrals():
            team_deposit = await self.active_team_deposit(account_id)

            for tier in self.tiers:
                if team_deposit < tier.team_deposit:
                    continue

                existing = await self.reward_repo.get_open_for_tier(
                    account_id, tier.team_deposit
                )
                if existing:
                    continue

                await self.reward_repo.create(
                    account_id=account_id,
                    team_deposit=tier.team_deposit,
                    time_period_days=tier.time_period_days,
                    reward_amount=tier.reward_amount,
                    start_date=now,
                    end_date=now + timedelta(days=tier.time_period_days),
                    status=TeamRewardStatus.PENDING,
                )
                created += 1

                self.logger.info(
                    f"Team reward tier {tier.team_deposit} reached by "
                    f"account {account_id}",
                    extra={
                        "account_id": account_id,
                        "team_deposit": str(team_deposit),
                        "reward_amount": str(tier.reward_amount),
                        "time_period_days": tier.time_period_days,
                    },
                )

        return created

    async def credit_matured(
        self, now: datetime, result: TeamRewardResult
    ) -> None:
        """
        Credit pending rewards whose period ended.

        Each reward is its own transaction. Rewards of accounts without an
        active investment stay pending and are checked again next pass.

        Args:
            now: Reference time
            result: Result to update
        """
        reward_ids = [r.id for r in await self.reward_repo.get_matured(now)]

        for reward_id in reward_ids:
            try:
                reward = await self.reward_repo.get_by_id(
                    reward_id, for_update=True
                )
                if reward is None or reward.status != TeamRewardStatus.PENDING.value:
                    await self.rollback()
                    continue

                if not await self.investment_repo.has_active_investment(
                    reward.account_id
                ):
                    result.deferred += 1
                    await self.rollback()
                    continue

                credit = await self.ledger_guard.credit(
                    beneficiary_id=reward.account_id,
                    source_account_id=reward.account_id,
                    kind=LedgerKind.TEAM_REWARD,
                    amount=reward.reward_amount,
                    level=0,
                    cycle_date=cycle_date_for(ensure_utc(reward.end_date)),
                    source_ref_id=reward.id,
                )

                reward.status = TeamRewardStatus.COMPLETED
                reward.ledger_entry_id = credit.entry.id
                await self.commit()
                result.credited += 1

            except Exception as e:
                await self.rollback()
                self.logger.error(
                    f"Failed to credit team reward {reward_id}: {e}",
                    extra={"reward_id": reward_id},
                )
                result.errors.append(f"reward {reward_id}: {e}")
