"""
Repositories.

Data access layer, one repository per model.
"""

from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.activation_repository import (
    ActivationRepository,
)
from profit_engine.repositories.base import BaseRepository
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.repositories.ledger_repository import LedgerRepository
from profit_engine.repositories.plan_repository import PlanRepository
from profit_engine.repositories.run_repository import RunRepository
from profit_engine.repositories.team_reward_repository import (
    TeamRewardRepository,
)


__all__ = [
    "BaseRepository",
    "AccountRepository",
    "ActivationRepository",
    "InvestmentRepository",
    "LedgerRepository",
    "PlanRepository",
    "RunRepository",
    "TeamRewardRepository",
]
