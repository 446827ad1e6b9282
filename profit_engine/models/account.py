"""
Account model.

Represents a participant of the referral tree.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from profit_engine.models.base import Base
from profit_engine.models.enums import AccountStatus
from profit_engine.models.types import MoneyType


if TYPE_CHECKING:
    from profit_engine.models.investment import Investment


class Account(Base):
    """Account model - investor / referrer in the upline tree."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            'balance >= 0', name='check_account_balance_non_negative'
        ),
        CheckConstraint(
            'total_earned >= 0',
            name='check_account_total_earned_non_negative'
        ),
        CheckConstraint(
            'total_invested >= 0',
            name='check_account_total_invested_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )

    # Balances (changed only by LedgerGuard when applying ledger entries)
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_invested: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Cumulative invested amount",
    )

    # Upline reference. NULL means the chain continues at the root account.
    # Not a foreign key: referrers may be deleted and the cascade must notice.
    upline_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=AccountStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )

    # Daily activation (maintained by the activation service)
    is_activated: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    activation_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
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

    # Relationships
    investments: Mapped[list["Investment"]] = relationship(
        "Investment",
        back_populates="account",
        lazy="selectin",
    )

    @validates("status")
    def _validate_status(self, key: str, value: object) -> str:
        return AccountStatus.coerce(value).value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, upline_id={self.upline_id}, "
            f"balance={self.balance}, status={self.status})>"
        )
