"""
Distribution result types.

Plain dataclasses passed between the distribution components.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from profit_engine.models.enums import ActivationStatus
from profit_engine.models.investment import Investment
from profit_engine.models.ledger_entry import LedgerEntry


class StopReason(StrEnum):
    """Why the upline walk ended."""

    DEPTH = "depth"
    ROOT = "root"
    MISSING_ACCOUNT = "missing_account"
    LOOP = "loop"


class ErrorStage(StrEnum):
    """Where an item failed."""

    ELIGIBILITY = "eligibility"
    ACTIVATION = "activation"
    PROFIT = "profit"
    CASCADE = "cascade"
    TIMEOUT = "timeout"
    RUN = "run"


@dataclass
class EligibilityResult:
    """Candidate investments for a cycle, or the reason there are none."""

    investments: list[Investment] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CreditResult:
    """Outcome of LedgerGuard.credit."""

    entry: LedgerEntry
    created: bool
    # Wallet increment applied by this call (False if it was already applied)
    applied: bool


@dataclass
class CommissionCredit:
    """One level commission credited during a cascade."""

    level: int
    beneficiary_id: int
    amount: Decimal
    ledger_entry_id: int
    created: bool


@dataclass
class CascadeResult:
    """Outcome of one upline walk."""

    origin_id: int
    stop_reason: StopReason
    levels_reached: int = 0
    credits: list[CommissionCredit] = field(default_factory=list)
    skipped_levels: list[int] = field(default_factory=list)

    @property
    def total_commission(self) -> Decimal:
        return sum((c.amount for c in self.credits), Decimal("0"))


@dataclass
class ProfitOutcome:
    """Outcome of processing one investment for one cycle."""

    investment_id: int
    account_id: int
    status: ActivationStatus
    profit: Decimal = Decimal("0")
    ledger_entry_id: int | None = None
    cascade: CascadeResult | None = None
    reason: str | None = None

    @property
    def total_commission(self) -> Decimal:
        if self.cascade is None:
            return Decimal("0")
        return self.cascade.total_commission


@dataclass
class ItemError:
    """Per-item failure recorded in the run record."""

    account_id: int | None
    investment_id: int | None
    stage: ErrorStage
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "investment_id": self.investment_id,
            "stage": self.stage.value,
            "message": self.message,
        }
