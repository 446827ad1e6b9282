"""
Distribution services package.

Daily profit and multi-level commission distribution:
- eligibility_gate: Candidate investments of a cycle
- profit_calculator: Daily profit of one investment
- upline_cascader: Level commission up to ten levels
- ledger_guard: Idempotent ledger writes and wallet increments
- run_tracker: Run record state machine
- orchestrator: Idempotent daily cycle entry point
"""

from profit_engine.services.distribution.eligibility_gate import (
    EligibilityGate,
)
from profit_engine.services.distribution.ledger_guard import LedgerGuard
from profit_engine.services.distribution.orchestrator import (
    DistributionOrchestrator,
)
from profit_engine.services.distribution.profit_calculator import (
    ProfitCalculator,
)
from profit_engine.services.distribution.rate_table import RateTable
from profit_engine.services.distribution.run_tracker import RunTotals, RunTracker
from profit_engine.services.distribution.types import (
    CascadeResult,
    CreditResult,
    EligibilityResult,
    ErrorStage,
    ItemError,
    ProfitOutcome,
    StopReason,
)
from profit_engine.services.distribution.upline_cascader import UplineCascader

__all__ = [
    "DistributionOrchestrator",
    "EligibilityGate",
    "LedgerGuard",
    "ProfitCalculator",
    "RateTable",
    "RunTotals",
    "RunTracker",
    "UplineCascader",
    "CascadeResult",
    "CreditResult",
    "EligibilityResult",
    "ErrorStage",
    "ItemError",
    "ProfitOutcome",
    "StopReason",
]
