"""
Upline commission cascader.

Walks up to REFERRAL_DEPTH levels of the referral chain and credits level
commission derived from the origin account's daily profit.
"""

from datetime import date
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.business_constants import REFERRAL_DEPTH
from profit_engine.config.settings import settings
from profit_engine.models.account import Account
from profit_engine.models.enums import AccountStatus, CommissionPolicy, LedgerKind
from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.services.distribution.ledger_guard import LedgerGuard
from profit_engine.services.distribution.rate_table import RateTable
from profit_engine.services.distribution.types import (
    CascadeResult,
    CommissionCredit,
    StopReason,
)


class UplineCascader:
    """
    Upline commission cascader.

    Walk rules per level:
    - upline NULL: continue at the root account, evaluate it, then stop
    - reference to the root account: evaluate it, then stop
    - referenced account missing: stop
    - account already visited (referral loop): stop
    - account not qualifying: no credit, keep walking
    """

    def __init__(
        self,
        session: AsyncSession,
        ledger_guard: LedgerGuard,
        commission_policy: CommissionPolicy | None = None,
        root_account_id: int | None = None,
    ) -> None:
        """
        Initialize cascader.

        Args:
            session: Database session
            ledger_guard: Guard used for every credit
            commission_policy: Override for settings.commission_policy
            root_account_id: Override for settings.root_account_id
        """
        self.session = session
        self.ledger_guard = ledger_guard
        self.account_repo = AccountRepository(session)
        self.investment_repo = InvestmentRepository(session)
        self.commission_policy = commission_policy or settings.commission_policy
        self.root_account_id = root_account_id or settings.root_account_id

    async def cascade(
        self,
        origin: Account,
        profit: Decimal,
        cycle_date: date,
        rates: RateTable,
        source_investment_id: int = 0,
    ) -> CascadeResult:
        """
        Credit level commission to the origin's upline.

        Args:
            origin: Account whose daily profit is distributed
            profit: Origin's daily profit
            cycle_date: Cycle date
            rates: Level rates
            source_investment_id: Investment that produced the profit

        Returns:
            CascadeResult with credits and the reason the walk ended
        """
        result = CascadeResult(origin_id=origin.id, stop_reason=StopReason.DEPTH)
        visited = {origin.id}
        next_id = origin.upline_id

        for level in range(1, REFERRAL_DEPTH + 1):
            at_root = next_id is None or next_id == self.root_account_id
            candidate_id = self.root_account_id if at_root else next_id

            if candidate_id in visited:
                if at_root:
                    # Origin is the root account itself
                    result.stop_reason = StopReason.ROOT
                else:
                    result.stop_reason = StopReason.LOOP
                    logger.warning(
                        f"Referral loop at account {candidate_id}",
                        extra={
                            "origin_id": origin.id,
                            "account_id": candidate_id,
                            "level": level,
                        },
                    )
                break
            visited.add(candidate_id)

            account = await self.account_repo.get_by_id(candidate_id)
            if account is None:
                result.stop_reason = StopReason.MISSING_ACCOUNT
                logger.warning(
                    f"Upline account {candidate_id} not found",
                    extra={
                        "origin_id": origin.id,
                        "account_id": candidate_id,
                        "level": level,
                    },
                )
                break

            result.levels_reached = level

            if await self._qualifies(account, level):
                amount = rates.commission(profit, level)
                if amount > 0:
                    credit = await self.ledger_guard.credit(
                        beneficiary_id=account.id,
                        source_account_id=origin.id,
                        kind=LedgerKind.LEVEL_COMMISSION,
                        amount=amount,
                        level=level,
                        cycle_date=cycle_date,
                        source_ref_id=source_investment_id,
                    )
                    result.credits.append(
                        CommissionCredit(
                            level=level,
                            beneficiary_id=account.id,
                            amount=amount,
                            ledger_entry_id=credit.entry.id,
                            created=credit.created,
                        )
                    )
            else:
                result.skipped_levels.append(level)

            if at_root:
                result.stop_reason = StopReason.ROOT
                break

            next_id = account.upline_id

        logger.debug(
            f"Cascade for account {origin.id} ended: {result.stop_reason}",
            extra={
                "origin_id": origin.id,
                "levels_reached": result.levels_reached,
                "credited_levels": [c.level for c in result.credits],
                "skipped_levels": result.skipped_levels,
                "total_commission": str(result.total_commission),
            },
        )
        return result

    async def _qualifies(self, account: Account, level: int) -> bool:
        """Check if upline account earns commission at this level."""
        if account.status != AccountStatus.ACTIVE.value:
            return False

        if not await self.investment_repo.has_active_investment(account.id):
            return False

        if self.commission_policy == CommissionPolicy.DIRECT_REFERRAL_COUNT:
            direct = await self.account_repo.count_direct_referrals(account.id)
            return direct >= level

        return True
