"""
Plan model.

Investment plan with daily profit rate and ten level commission rates.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from profit_engine.config.business_constants import REFERRAL_DEPTH
from profit_engine.models.base import Base
from profit_engine.models.types import RatePercentType


class Plan(Base):
    """Plan model - rates read by the distribution engine."""

    __tablename__ = "plans"
    __table_args__ = (
        CheckConstraint(
            'daily_rate IS NULL OR (daily_rate >= 0 AND daily_rate <= 100)',
            name='check_plan_daily_rate_range'
        ),
        CheckConstraint(
            'fallback_daily_rate IS NULL OR '
            '(fallback_daily_rate > 0 AND fallback_daily_rate <= 100)',
            name='check_plan_fallback_daily_rate_range'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Daily profit percentage of principal
    daily_rate: Mapped[Decimal | None] = mapped_column(
        RatePercentType, nullable=True
    )
    fallback_daily_rate: Mapped[Decimal | None] = mapped_column(
        RatePercentType, nullable=True
    )

    # Level commission percentages of the origin's daily profit.
    # Range is validated by RateTable at load time, not by the database,
    # so a misconfigured plan surfaces as ConfigurationError.
    level_1_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_2_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_3_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_4_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_5_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_6_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_7_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_8_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_9_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)
    level_10_rate: Mapped[Decimal | None] = mapped_column(RatePercentType)

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    @property
    def level_rates(self) -> tuple[Decimal | None, ...]:
        """Raw level rates in level order (1..10)."""
        return tuple(
            getattr(self, f"level_{level}_rate")
            for level in range(1, REFERRAL_DEPTH + 1)
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Plan(id={self.id}, name={self.name}, "
            f"daily_rate={self.daily_rate})>"
        )
