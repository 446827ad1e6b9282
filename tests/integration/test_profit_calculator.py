"""
Integration tests for per-investment profit processing.

Rows change between the eligibility scan and processing, so the
eligibility result is captured first and replayed to the orchestrator.
"""

from decimal import Decimal

import pytest
from sqlalchemy import delete, update

from profit_engine.models.account import Account
from profit_engine.models.enums import (
    ActivationStatus,
    InvestmentStatus,
    RunStatus,
)
from profit_engine.models.investment import Investment
from profit_engine.repositories.activation_repository import (
    ActivationRepository,
)
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.services.distribution.eligibility_gate import (
    EligibilityGate,
)
from profit_engine.services.distribution.orchestrator import (
    DistributionOrchestrator,
)


@pytest.fixture
def run_with_snapshot(session, root, monkeypatch):
    """Run a cycle against an eligibility result taken before a change."""
    root_id = root.id

    async def run(cycle, change):
        eligible = await EligibilityGate(session).find_eligible(cycle)
        await change()
        await session.commit()

        async def snapshot(self, cycle_date):
            return eligible

        monkeypatch.setattr(EligibilityGate, "find_eligible", snapshot)
        return await DistributionOrchestrator(
            session,
            root_account_id=root_id,
            item_retry_backoff_seconds=0,
        ).run_daily_cycle(cycle)

    return run


async def investment_of(session, account_id: int) -> int:
    return (await InvestmentRepository(session).get_by_account(account_id))[0].id


class TestMissingRows:
    """Test rows deleted after the eligibility scan."""

    @pytest.mark.asyncio
    async def test_missing_owner_account_fails_item(
        self, session, builder, root, plan, cycle, run_with_snapshot, balance
    ):
        """The item fails with a reason, other items are still paid."""
        orphan_id = (await builder.investor(upline=root, plan=plan)).id
        healthy_id = (await builder.investor(upline=root, plan=plan)).id
        await builder.commit()
        orphan_investment = await investment_of(session, orphan_id)

        async def drop_owner():
            await session.execute(delete(Account).where(Account.id == orphan_id))

        record = await run_with_snapshot(cycle, drop_owner)

        activation = await ActivationRepository(session).get_for_investment(
            orphan_investment, cycle
        )
        assert record.status == RunStatus.PARTIAL_SUCCESS.value
        assert record.processed_count == 1
        assert record.error_count == 1
        assert record.errors[0]["investment_id"] == orphan_investment
        assert activation.status == ActivationStatus.FAILED.value
        assert "Account" in activation.failure_reason
        assert await balance(healthy_id) == Decimal("2.66")

    @pytest.mark.asyncio
    async def test_missing_investment_fails_item(
        self, session, builder, root, plan, cycle, run_with_snapshot
    ):
        account_id = (await builder.investor(upline=root, plan=plan)).id
        await builder.commit()
        investment_id = await investment_of(session, account_id)

        async def drop_investment():
            await session.execute(
                delete(Investment).where(Investment.id == investment_id)
            )

        record = await run_with_snapshot(cycle, drop_investment)

        activation = await ActivationRepository(session).get_for_investment(
            investment_id, cycle
        )
        assert record.status == RunStatus.PARTIAL_SUCCESS.value
        assert record.error_count == 1
        assert activation.status == ActivationStatus.FAILED.value
        assert "Investment" in activation.failure_reason


class TestSkips:
    """Test items that are evaluated but earn nothing."""

    @pytest.mark.asyncio
    async def test_investment_no_longer_active_is_skipped(
        self, session, builder, root, plan, cycle, run_with_snapshot, balance
    ):
        account_id = (await builder.investor(upline=root, plan=plan)).id
        await builder.commit()
        investment_id = await investment_of(session, account_id)

        async def complete_investment():
            await session.execute(
                update(Investment)
                .where(Investment.id == investment_id)
                .values(status=InvestmentStatus.COMPLETED.value)
            )

        record = await run_with_snapshot(cycle, complete_investment)

        activation = await ActivationRepository(session).get_for_investment(
            investment_id, cycle
        )
        assert record.status == RunStatus.COMPLETED.value
        assert record.processed_count == 0
        assert record.skipped_count == 1
        assert activation.status == ActivationStatus.SKIPPED.value
        assert activation.failure_reason == "Investment status is completed"
        assert await balance(account_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_profit_rounding_to_zero_is_skipped(
        self, session, builder, root, plan, cycle, balance
    ):
        """0.000001 at 0.266% is below one unit of the 8th decimal."""
        account_id = (
            await builder.investor(
                upline=root, plan=plan, principal=Decimal("0.000001")
            )
        ).id
        await builder.commit()
        investment_id = await investment_of(session, account_id)

        record = await DistributionOrchestrator(
            session, root_account_id=root.id
        ).run_daily_cycle(cycle)

        activation = await ActivationRepository(session).get_for_investment(
            investment_id, cycle
        )
        assert record.status == RunStatus.COMPLETED.value
        assert record.skipped_count == 1
        assert record.total_profit == Decimal("0")
        assert activation.status == ActivationStatus.SKIPPED.value
        assert activation.failure_reason == "Daily profit rounds to zero"
        assert await balance(account_id) == Decimal("0")
        assert await balance(root.id) == Decimal("0")
