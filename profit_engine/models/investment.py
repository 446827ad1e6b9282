"""
Investment model.

Represents principal placed by an account into a plan.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from profit_engine.models.base import Base
from profit_engine.models.enums import InvestmentStatus
from profit_engine.models.types import MoneyType


if TYPE_CHECKING:
    from profit_engine.models.account import Account
    from profit_engine.models.plan import Plan


class Investment(Base):
    """Investment model - principal earning daily profit."""

    __tablename__ = "investments"
    __table_args__ = (
        CheckConstraint(
            'principal > 0', name='check_investment_principal_positive'
        ),
        Index('idx_investment_account_status', 'account_id', 'status'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Owner
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Plan reference. Deleted plans fall back to the configured daily rate.
    plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("plans.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    principal: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=InvestmentStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )

    # Last cycle date credited with daily profit (only moves forward)
    last_profit_date: Mapped[date | None] = mapped_column(
        Date, nullable=True, index=True
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
    account: Mapped["Account"] = relationship(
        "Account", back_populates="investments", lazy="selectin"
    )
    plan: Mapped["Plan | None"] = relationship("Plan", lazy="selectin")

    @validates("status")
    def _validate_status(self, key: str, value: object) -> str:
        return InvestmentStatus.coerce(value).value

    @property
    def is_active(self) -> bool:
        """Check if investment earns profit."""
        return self.status == InvestmentStatus.ACTIVE.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Investment(id={self.id}, account_id={self.account_id}, "
            f"principal={self.principal}, status={self.status})>"
        )
