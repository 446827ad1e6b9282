"""
Run record model.

Audit trail of one execution of the distribution batch for one cycle.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Date,
    DateTime,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from profit_engine.models.base import Base
from profit_engine.models.enums import RunStatus, RunTrigger
from profit_engine.models.types import JSONType, MoneyType


_RUNNING = text("status = 'running'")


class RunRecord(Base):
    """
    Run record model.

    State machine: running -> completed | partial_success | failed.
    """

    __tablename__ = "run_records"
    __table_args__ = (
        # Only one in-flight run per cycle
        Index(
            'uq_run_record_running_cycle',
            'cycle_date',
            unique=True,
            postgresql_where=_RUNNING,
            sqlite_where=_RUNNING,
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    cycle_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True
    )
    trigger: Mapped[str] = mapped_column(
        String(20), default=RunTrigger.SCHEDULER.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=RunStatus.RUNNING.value, nullable=False
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Counters
    processed_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    skipped_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    error_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Totals
    total_profit: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_distributed: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # [{account_id, investment_id, stage, message}, ...]
    errors: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, default=list, nullable=False
    )

    # Earlier run of the same cycle this one resumes
    previous_run_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    @validates("status")
    def _validate_status(self, key: str, value: object) -> str:
        return RunStatus.coerce(value).value

    @validates("trigger")
    def _validate_trigger(self, key: str, value: object) -> str:
        return RunTrigger.coerce(value).value

    @property
    def is_running(self) -> bool:
        """Check if run is still in flight."""
        return self.status == RunStatus.RUNNING.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<RunRecord(id={self.id}, cycle_date={self.cycle_date}, "
            f"status={self.status}, processed={self.processed_count}, "
            f"errors={self.error_count})>"
        )
