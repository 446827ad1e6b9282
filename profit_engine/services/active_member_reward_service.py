"""
Active member reward service.

Accounts with enough direct referrals and a large enough team (all levels
below them) earn a one-time reward per tier. Rewards are credited through
the ledger guard with the tier number as source reference, so a tier is
never paid twice to the same account.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.business_constants import (
    ACTIVE_MEMBER_TIERS,
    ActiveMemberTier,
)
from profit_engine.models.enums import LedgerKind, LedgerStatus
from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.repositories.ledger_repository import LedgerRepository
from profit_engine.services.base_service import BaseService, log_operation
from profit_engine.services.distribution.ledger_guard import LedgerGuard
from profit_engine.utils.datetime_utils import cycle_date_for, ensure_utc, utc_now


@dataclass
class ActiveMemberRewardResult:
    """Outcome of one active member reward pass."""

    credited: int = 0
    skipped_no_investment: int = 0
    errors: list[str] = field(default_factory=list)


class ActiveMemberRewardService(BaseService):
    """One-time rewards for direct referral and team size tiers."""

    def __init__(
        self,
        session: AsyncSession,
        tiers: tuple[ActiveMemberTier, ...] = ACTIVE_MEMBER_TIERS,
    ) -> None:
        """
        Initialize active member reward service.

        Args:
            session: Database session
            tiers: Reward tiers, lowest first
        """
        super().__init__(session)
        self.tiers = tiers
        self.account_repo = AccountRepository(session)
        self.investment_repo = InvestmentRepository(session)
        self.ledger_repo = LedgerRepository(session)
        self.ledger_guard = LedgerGuard(session)

    async def team_size(self, account_id: int) -> int:
        """
        Count every account below the given one, all levels deep.

        Referral loops are counted once.
        """
        seen = {account_id}
        frontier = [account_id]
        size = 0

        while frontier:
            referrals = await self.account_repo.get_direct_referrals(frontier)
            frontier = [a.id for a in referrals if a.id not in seen]
            seen.update(frontier)
            size += len(frontier)

        return size

    @log_operation
    async def process_active_member_rewards(
        self, now: datetime | None = None
    ) -> ActiveMemberRewardResult:
        """
        Credit every tier reached and not yet paid.

        Each account is its own transaction.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            ActiveMemberRewardResult
        """
        now = ensure_utc(now) or utc_now()
        cycle_date = cycle_date_for(now)
        result = ActiveMemberRewardResult()
        min_direct = min((t.direct_referrals for t in self.tiers), default=0)

        for account_id in await self.account_repo.get_ids_with_referrals():
            try:
                direct = await self.account_repo.count_direct_referrals(
                    account_id
                )
                if direct < min_direct:
                    continue

                if not await self.investment_repo.has_active_investment(
                    account_id
                ):
                    result.skipped_no_investment += 1
                    continue

                team = await self.team_size(account_id)

                for number, tier in enumerate(self.tiers, start=1):
                    if direct < tier.direct_referrals or team < tier.team_size:
                        continue
                    if await self.ledger_repo.exists(
                        beneficiary_id=account_id,
                        kind=LedgerKind.REFERRAL_BONUS.value,
                        source_ref_id=number,
                        status=LedgerStatus.CREDITED.value,
                    ):
                        continue

                    await self.ledger_guard.credit(
                        beneficiary_id=account_id,
                        source_account_id=account_id,
                        kind=LedgerKind.REFERRAL_BONUS,
                        amount=tier.reward_amount,
                        level=0,
                        cycle_date=cycle_date,
                        source_ref_id=number,
                    )
                    result.credited += 1

                    self.logger.info(
                        f"Active member tier {number} paid to account "
                        f"{account_id}",
                        extra={
                            "account_id": account_id,
                            "direct_referrals": direct,
                            "team_size": team,
                            "reward_amount": str(tier.reward_amount),
                        },
                    )

                await self.commit()

            except Exception as e:
                await self.rollback()
                self.logger.error(
                    f"Failed active member reward for account {account_id}: {e}",
                    extra={"account_id": account_id},
                )
                result.errors.append(f"account {account_id}: {e}")

        self.logger.info(
            "Active member rewards processed",
            extra={
                "credited": result.credited,
                "skipped_no_investment": result.skipped_no_investment,
                "errors": len(result.errors),
            },
        )
        return result
