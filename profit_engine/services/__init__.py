"""
Services.

Business logic layer.
"""

from profit_engine.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)
from profit_engine.services.distribution import DistributionOrchestrator
from profit_engine.services.reporting_service import (
    CycleSummary,
    ReportingService,
)
from profit_engine.services.team_reward_service import (
    TeamRewardResult,
    TeamRewardService,
)

__all__ = [
    "BaseService",
    "log_operation",
    "transaction",
    "DistributionOrchestrator",
    "CycleSummary",
    "ReportingService",
    "TeamRewardResult",
    "TeamRewardService",
]
