"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from profit_engine.models.account import Account
from profit_engine.models.activation_record import CycleActivation
from profit_engine.models.base import Base
from profit_engine.models.enums import (
    AccountStatus,
    ActivationPolicy,
    ActivationStatus,
    CommissionPolicy,
    InvestmentStatus,
    LedgerKind,
    LedgerStatus,
    RunStatus,
    RunTrigger,
    TeamRewardStatus,
)
from profit_engine.models.investment import Investment
from profit_engine.models.ledger_entry import LedgerEntry
from profit_engine.models.plan import Plan
from profit_engine.models.run_record import RunRecord
from profit_engine.models.team_reward import TeamReward


__all__ = [
    "Base",
    # Models
    "Account",
    "Investment",
    "Plan",
    "CycleActivation",
    "LedgerEntry",
    "RunRecord",
    "TeamReward",
    # Enums
    "AccountStatus",
    "ActivationPolicy",
    "ActivationStatus",
    "CommissionPolicy",
    "InvestmentStatus",
    "LedgerKind",
    "LedgerStatus",
    "RunStatus",
    "RunTrigger",
    "TeamRewardStatus",
]
