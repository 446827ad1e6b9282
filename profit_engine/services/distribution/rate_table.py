"""
Level commission rate table.

Validated, immutable set of exactly ten level rates.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from profit_engine.config.business_constants import (
    DEFAULT_LEVEL_RATES,
    MAX_RATE_PERCENT,
    MONEY_QUANTUM,
    REFERRAL_DEPTH,
)
from profit_engine.models.plan import Plan
from profit_engine.utils.exceptions import ConfigurationError


def percent_of(amount: Decimal, rate: Decimal) -> Decimal:
    """
    Calculate rate percent of amount, rounded down to money precision.

    Formula: amount * rate / 100

    Example:
        >>> percent_of(Decimal("2.66"), Decimal("25"))
        Decimal('0.66500000')
    """
    return (amount * rate / 100).quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class RateTable:
    """
    Level commission rates, level 1 first.

    Raises:
        ConfigurationError: If there are not exactly ten rates or any
            rate is missing or outside 0..100
    """

    rates: tuple[Decimal, ...]

    def __post_init__(self) -> None:
        if len(self.rates) != REFERRAL_DEPTH:
            raise ConfigurationError(
                f"Expected {REFERRAL_DEPTH} level rates, got {len(self.rates)}"
            )

        normalized = []
        for level, raw in enumerate(self.rates, start=1):
            if raw is None:
                raise ConfigurationError(f"Level {level} rate is missing")
            try:
                rate = Decimal(str(raw))
            except InvalidOperation:
                raise ConfigurationError(
                    f"Level {level} rate is not a number: {raw!r}"
                ) from None
            if not rate.is_finite() or rate < 0 or rate > MAX_RATE_PERCENT:
                raise ConfigurationError(
                    f"Level {level} rate {rate} outside 0..{MAX_RATE_PERCENT}"
                )
            normalized.append(rate)

        object.__setattr__(self, "rates", tuple(normalized))

    @classmethod
    def default(cls) -> "RateTable":
        """Rate table of business_constants.DEFAULT_LEVEL_RATES."""
        return cls(DEFAULT_LEVEL_RATES)

    @classmethod
    def from_plan(cls, plan: Plan) -> "RateTable":
        """
        Load rate table from plan columns.

        Args:
            plan: Plan with level_1_rate .. level_10_rate

        Returns:
            Validated rate table

        Raises:
            ConfigurationError: If a plan rate is missing or out of range
        """
        try:
            return cls(plan.level_rates)
        except ConfigurationError as e:
            raise ConfigurationError(f"Plan {plan.id}: {e}") from e

    def rate_for(self, level: int) -> Decimal:
        """Get rate of a level (1-based)."""
        if level < 1 or level > REFERRAL_DEPTH:
            raise ValueError(f"Level must be 1..{REFERRAL_DEPTH}, got {level}")
        return self.rates[level - 1]

    def commission(self, profit: Decimal, level: int) -> Decimal:
        """Commission of a level for the given profit."""
        return percent_of(profit, self.rate_for(level))

    @property
    def total(self) -> Decimal:
        """Sum of all level rates."""
        return sum(self.rates, Decimal("0"))
