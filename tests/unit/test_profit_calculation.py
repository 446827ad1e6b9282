"""
Unit tests for daily profit calculation and rate resolution.

Tests cover:
- Profit formula and rounding
- Fallback daily rate for missing and invalid plans
- Default level rates for invalid plan tables
- Plan cache
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from profit_engine.config.business_constants import DEFAULT_LEVEL_RATES
from profit_engine.config.settings import settings
from profit_engine.services.distribution.profit_calculator import (
    ProfitCalculator,
)
from profit_engine.services.distribution.rate_table import RateTable


@pytest.fixture
def calculator(mock_session):
    """ProfitCalculator with mocked collaborators and plan repository."""
    calculator = ProfitCalculator(
        mock_session, ledger_guard=MagicMock(), cascader=MagicMock()
    )
    calculator.plan_repo = AsyncMock()
    return calculator


class TestProfitFormula:
    """Test principal * daily_rate / 100."""

    def test_reference_scenario(self):
        """1000 at 0.266% per day earns 2.66."""
        profit = ProfitCalculator.calculate_profit(
            Decimal("1000"), Decimal("0.266")
        )
        assert profit == Decimal("2.66")

    def test_rounds_down(self):
        """Sub-quantum remainders are dropped."""
        # 123.45678901 * 0.266 / 100 = 0.32839505876...
        profit = ProfitCalculator.calculate_profit(
            Decimal("123.45678901"), Decimal("0.266")
        )
        assert profit == Decimal("0.32839505")

    def test_tiny_principal_rounds_to_zero(self):
        """Profit below one quantum is zero (and the item is skipped)."""
        profit = ProfitCalculator.calculate_profit(
            Decimal("0.000001"), Decimal("0.266")
        )
        assert profit == Decimal("0")


class TestResolveRates:
    """Test plan rate resolution with fallbacks."""

    @pytest.mark.asyncio
    async def test_valid_plan(self, calculator, mock_plan):
        """Valid plan rates are used as-is."""
        calculator.plan_repo.get_by_id.return_value = mock_plan

        daily_rate, rates = await calculator.resolve_rates(mock_plan.id)

        assert daily_rate == Decimal("0.266")
        assert rates == RateTable(DEFAULT_LEVEL_RATES)

    @pytest.mark.asyncio
    async def test_missing_plan_uses_configured_fallback(self, calculator):
        """Deleted plan falls back to settings and default level rates."""
        calculator.plan_repo.get_by_id.return_value = None

        daily_rate, rates = await calculator.resolve_rates(99)

        assert daily_rate == settings.fallback_daily_rate
        assert rates == RateTable.default()

    @pytest.mark.asyncio
    async def test_no_plan_id(self, calculator):
        """Investments without a plan never query the repository."""
        daily_rate, _ = await calculator.resolve_rates(None)

        assert daily_rate == settings.fallback_daily_rate
        calculator.plan_repo.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad_rate", [None, Decimal("0"), Decimal("-0.1"), Decimal("150")]
    )
    async def test_invalid_daily_rate_uses_plan_fallback(
        self, calculator, mock_plan, bad_rate
    ):
        """Plan fallback rate replaces an invalid daily rate."""
        mock_plan.daily_rate = bad_rate
        mock_plan.fallback_daily_rate = Decimal("0.5")
        calculator.plan_repo.get_by_id.return_value = mock_plan

        daily_rate, _ = await calculator.resolve_rates(mock_plan.id)

        assert daily_rate == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_invalid_daily_rate_without_plan_fallback(
        self, calculator, mock_plan
    ):
        """Without a valid plan fallback the configured rate is used."""
        mock_plan.daily_rate = Decimal("0")
        mock_plan.fallback_daily_rate = Decimal("0")
        calculator.plan_repo.get_by_id.return_value = mock_plan

        daily_rate, _ = await calculator.resolve_rates(mock_plan.id)

        assert daily_rate == settings.fallback_daily_rate

    @pytest.mark.asyncio
    async def test_invalid_level_rates_use_defaults(
        self, calculator, mock_plan
    ):
        """Broken level table is replaced, daily rate is kept."""
        mock_plan.daily_rate = Decimal("1")
        mock_plan.level_rates = (Decimal("150"),) * 10
        calculator.plan_repo.get_by_id.return_value = mock_plan

        daily_rate, rates = await calculator.resolve_rates(mock_plan.id)

        assert daily_rate == Decimal("1")
        assert rates == RateTable.default()

    @pytest.mark.asyncio
    async def test_plans_are_cached(self, calculator, mock_plan):
        """A plan is loaded once per calculator."""
        calculator.plan_repo.get_by_id.return_value = mock_plan

        await calculator.resolve_rates(mock_plan.id)
        await calculator.resolve_rates(mock_plan.id)

        calculator.plan_repo.get_by_id.assert_awaited_once_with(mock_plan.id)
