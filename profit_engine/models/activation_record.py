"""
Cycle activation model.

Per-investment, per-cycle record of the daily profit evaluation.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from profit_engine.models.base import Base
from profit_engine.models.enums import ActivationStatus
from profit_engine.models.types import MoneyType


class CycleActivation(Base):
    """
    Activation record.

    Lifecycle: pending -> processed | skipped | failed.
    A failed record is picked up again by a later run of the same cycle.
    """

    __tablename__ = "cycle_activations"
    __table_args__ = (
        UniqueConstraint(
            'investment_id', 'cycle_date',
            name='uq_cycle_activation_investment_cycle'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    investment_id: Mapped[int] = mapped_column(
        ForeignKey("investments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    cycle_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=ActivationStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    # Outcome
    amount: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    ledger_entry_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Last run that touched this record
    run_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
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

    @validates("status")
    def _validate_status(self, key: str, value: object) -> str:
        return ActivationStatus.coerce(value).value

    @property
    def is_done(self) -> bool:
        """Check if record no longer needs processing (failed is retried)."""
        return self.status in (
            ActivationStatus.PROCESSED.value,
            ActivationStatus.SKIPPED.value,
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CycleActivation(id={self.id}, "
            f"investment_id={self.investment_id}, "
            f"cycle_date={self.cycle_date}, status={self.status})>"
        )
