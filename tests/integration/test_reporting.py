"""Integration tests for reporting queries."""

from decimal import Decimal

import pytest

from profit_engine.models.enums import LedgerKind, RunStatus
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.services.distribution.orchestrator import (
    DistributionOrchestrator,
)
from profit_engine.services.distribution.profit_calculator import (
    ProfitCalculator,
)
from profit_engine.services.reporting_service import ReportingService


async def run_cycle(session, root, cycle):
    return await DistributionOrchestrator(
        session, root_account_id=root.id
    ).run_daily_cycle(cycle)


class TestCycleSummary:
    """Test cycle summaries."""

    @pytest.mark.asyncio
    async def test_summary_after_completed_run(
        self, session, builder, root, plan, cycle
    ):
        upline = await builder.investor(upline=root, plan=plan, activated=False)
        await builder.investor(upline=upline, plan=plan)
        await builder.commit()
        await run_cycle(session, root, cycle)

        reporting = ReportingService(session)
        summary = await reporting.get_cycle_summary(cycle)
        runs = await reporting.get_runs(cycle)

        assert [r.status for r in runs] == [RunStatus.COMPLETED.value]
        assert summary.run_count == 1
        assert summary.latest_status == RunStatus.COMPLETED.value
        assert summary.totals.processed_count == 1
        assert summary.totals.total_distributed == Decimal("3.591")
        assert summary.ledger_totals == {
            LedgerKind.DAILY_PROFIT.value: Decimal("2.66"),
            LedgerKind.LEVEL_COMMISSION.value: Decimal("0.931"),
        }
        assert summary.failed_items == 0

    @pytest.mark.asyncio
    async def test_empty_cycle(self, session, cycle):
        summary = await ReportingService(session).get_cycle_summary(cycle)

        assert summary.run_count == 0
        assert summary.latest_status is None
        assert summary.ledger_totals == {}


class TestAccountLedger:
    """Test per-account ledger history."""

    @pytest.mark.asyncio
    async def test_account_ledger_filters_by_kind(
        self, session, builder, root, plan, cycle
    ):
        origin = await builder.investor(upline=root, plan=plan)
        await builder.commit()
        await run_cycle(session, root, cycle)

        reporting = ReportingService(session)
        root_entries = await reporting.get_account_ledger(root.id)
        profit_entries = await reporting.get_account_ledger(
            origin.id, cycle_date=cycle, kind=LedgerKind.DAILY_PROFIT.value
        )

        assert [(e.kind, e.level) for e in root_entries] == [
            (LedgerKind.LEVEL_COMMISSION.value, 1)
        ]
        assert len(profit_entries) == 1
        assert profit_entries[0].amount == Decimal("2.66")


class TestReplayableItems:
    """Test failed items listing."""

    @pytest.mark.asyncio
    async def test_failed_item_is_replayable(
        self, session, builder, root, plan, cycle, monkeypatch
    ):
        origin = await builder.investor(upline=root, plan=plan)
        await builder.commit()
        investment_id = (
            await InvestmentRepository(session).get_by_account(origin.id)
        )[0].id

        async def broken(self, *args):
            raise RuntimeError("wallet locked")

        monkeypatch.setattr(ProfitCalculator, "process", broken)
        await run_cycle(session, root, cycle)

        reporting = ReportingService(session)
        items = await reporting.get_replayable_items(cycle)
        summary = await reporting.get_cycle_summary(cycle)

        assert [i.investment_id for i in items] == [investment_id]
        assert items[0].failure_reason == "wallet locked"
        assert summary.failed_items == 1
        assert summary.latest_status == RunStatus.PARTIAL_SUCCESS.value
