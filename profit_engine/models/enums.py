"""
Enum definitions for database models.

Each entity has exactly one status enumeration. Legacy numeric encodings
found in imported data (1 / 2 / 0) are translated by ``coerce``.
"""

from enum import StrEnum
from typing import Any


class _CoercibleEnum(StrEnum):
    """StrEnum that accepts legacy numeric encodings."""

    @classmethod
    def _legacy_map(cls) -> dict[str, "_CoercibleEnum"]:
        return {}

    @classmethod
    def coerce(cls, value: Any) -> "_CoercibleEnum":
        """
        Convert raw value to enum member.

        Args:
            value: Enum member, its string value or a legacy numeric code

        Returns:
            Enum member

        Raises:
            ValueError: If value is not a known status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid {cls.__name__}: {value!r}")

        raw = str(value).strip().lower()
        legacy = cls._legacy_map()
        if raw in legacy:
            return legacy[raw]

        try:
            return cls(raw)
        except ValueError:
            raise ValueError(f"Invalid {cls.__name__}: {value!r}") from None


class AccountStatus(_CoercibleEnum):
    """Account lifecycle status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"

    @classmethod
    def _legacy_map(cls) -> dict[str, "AccountStatus"]:
        return {"1": cls.ACTIVE, "0": cls.SUSPENDED}


class InvestmentStatus(_CoercibleEnum):
    """Investment status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @classmethod
    def _legacy_map(cls) -> dict[str, "InvestmentStatus"]:
        return {"1": cls.ACTIVE, "2": cls.COMPLETED, "0": cls.CANCELLED}


class ActivationStatus(_CoercibleEnum):
    """Per-cycle evaluation state of an investment's daily profit."""

    PENDING = "pending"
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Pending is the only non-terminal state."""
        return self is not ActivationStatus.PENDING


class LedgerKind(_CoercibleEnum):
    """Kind of ledger credit."""

    DAILY_PROFIT = "daily_profit"
    LEVEL_COMMISSION = "level_commission"
    REFERRAL_BONUS = "referral_bonus"
    TEAM_REWARD = "team_reward"


class LedgerStatus(_CoercibleEnum):
    """Ledger entry status."""

    CREDITED = "credited"
    CANCELLED = "cancelled"

    @classmethod
    def _legacy_map(cls) -> dict[str, "LedgerStatus"]:
        return {"1": cls.CREDITED, "0": cls.CANCELLED}


class RunStatus(_CoercibleEnum):
    """Batch run status."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Running is the only non-terminal state."""
        return self is not RunStatus.RUNNING


class RunTrigger(_CoercibleEnum):
    """What started a run."""

    SCHEDULER = "scheduler"
    MANUAL = "manual"
    BACKFILL = "backfill"


class TeamRewardStatus(_CoercibleEnum):
    """Team reward status."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActivationPolicy(StrEnum):
    """Which account activations are valid for a cycle."""

    # Activation not expired at the cycle window
    UNEXPIRED = "unexpired"
    # Activation not expired and made within the cycle window
    CURRENT_CYCLE = "current_cycle"


class CommissionPolicy(StrEnum):
    """Which upline accounts qualify for level commission."""

    # Any upline account holding an active investment
    INVESTMENT_BASED = "investment_based"
    # Active investment and at least N direct referrals for level N
    DIRECT_REFERRAL_COUNT = "direct_referral_count"
