"""
Ledger entry model.

Immutable, append-only record of a single credit. The unit of idempotency.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from profit_engine.models.base import Base
from profit_engine.models.enums import LedgerKind, LedgerStatus
from profit_engine.models.types import MoneyType


# At most one non-cancelled entry per idempotency key
_NOT_CANCELLED = text("status <> 'cancelled'")


class LedgerEntry(Base):
    """Ledger entry model - one credit to one beneficiary."""

    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint(
            'amount > 0', name='check_ledger_amount_positive'
        ),
        CheckConstraint(
            'level >= 0 AND level <= 10', name='check_ledger_level_range'
        ),
        Index(
            'uq_ledger_entry_idempotency_key',
            'beneficiary_id',
            'source_account_id',
            'kind',
            'level',
            'cycle_date',
            'source_ref_id',
            unique=True,
            postgresql_where=_NOT_CANCELLED,
            sqlite_where=_NOT_CANCELLED,
        ),
        Index('idx_ledger_cycle_kind', 'cycle_date', 'kind'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Who receives the credit
    beneficiary_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    # Whose profit generated the credit (beneficiary itself for level 0)
    source_account_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    # Originating investment (profit, commission) or team reward id, else 0
    source_ref_id: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cycle_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=LedgerStatus.CREDITED.value,
        nullable=False,
    )

    # Set when the wallet increment has been applied
    applied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    run_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @validates("kind")
    def _validate_kind(self, key: str, value: object) -> str:
        return LedgerKind.coerce(value).value

    @validates("status")
    def _validate_status(self, key: str, value: object) -> str:
        return LedgerStatus.coerce(value).value

    @property
    def is_applied(self) -> bool:
        """Check if wallet increment was applied."""
        return self.applied_at is not None

    @property
    def idempotency_key(self) -> tuple:
        """Key that may occur at most once among non-cancelled entries."""
        return (
            self.beneficiary_id,
            self.source_account_id,
            self.kind,
            self.level,
            self.cycle_date,
            self.source_ref_id,
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(id={self.id}, beneficiary_id={self.beneficiary_id}, "
            f"kind={self.kind}, level={self.level}, amount={self.amount}, "
            f"cycle_date={self.cycle_date})>"
        )
