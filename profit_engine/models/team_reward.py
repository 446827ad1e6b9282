"""
Team reward model.

Delayed reward unlocked by reaching a team deposit tier.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from profit_engine.models.base import Base
from profit_engine.models.enums import TeamRewardStatus
from profit_engine.models.types import MoneyType


class TeamReward(Base):
    """Team reward model - pending until end_date, then credited once."""

    __tablename__ = "team_rewards"
    __table_args__ = (
        UniqueConstraint(
            'account_id', 'team_deposit',
            name='uq_team_reward_account_tier'
        ),
        CheckConstraint(
            'reward_amount > 0', name='check_team_reward_amount_positive'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Tier
    team_deposit: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    time_period_days: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    end_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=TeamRewardStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    ledger_entry_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    @validates("status")
    def _validate_status(self, key: str, value: object) -> str:
        return TeamRewardStatus.coerce(value).value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TeamReward(id={self.id}, account_id={self.account_id}, "
            f"team_deposit={self.team_deposit}, status={self.status})>"
        )
