"""
Eligibility gate.

Selects the investments that earn daily profit for a cycle.
"""

from datetime import date

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.config.settings import settings
from profit_engine.models.enums import ActivationPolicy
from profit_engine.repositories.investment_repository import (
    InvestmentRepository,
)
from profit_engine.services.distribution.types import EligibilityResult
from profit_engine.utils.datetime_utils import cycle_window
from profit_engine.utils.exceptions import is_transient


class EligibilityGate:
    """
    Eligibility gate.

    Active investment owned by an active account with a valid activation
    for the cycle window, not yet credited for the cycle. Read-only.
    """

    def __init__(
        self,
        session: AsyncSession,
        activation_policy: ActivationPolicy | None = None,
    ) -> None:
        """
        Initialize eligibility gate.

        Args:
            session: Database session
            activation_policy: Override for settings.activation_policy
        """
        self.session = session
        self.investment_repo = InvestmentRepository(session)
        self.activation_policy = activation_policy or settings.activation_policy

    async def find_eligible(self, cycle_date: date) -> EligibilityResult:
        """
        Find eligible investments for a cycle.

        Args:
            cycle_date: Cycle date in the reference timezone

        Returns:
            EligibilityResult with investments ordered by id, or an error
            when the store could not be queried
        """
        window_start, window_end = cycle_window(cycle_date)

        try:
            investments = await self.investment_repo.find_eligible(
                cycle_date=cycle_date,
                window_start=window_start,
                window_end=window_end,
                require_activation_in_window=(
                    self.activation_policy == ActivationPolicy.CURRENT_CYCLE
                ),
            )
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Eligibility query failed for cycle {cycle_date}: {e}",
                extra={
                    "cycle_date": str(cycle_date),
                    "transient": is_transient(e),
                },
            )
            return EligibilityResult(
                investments=[], error=f"Eligibility query failed: {e}"
            )

        logger.info(
            f"Found {len(investments)} eligible investments for {cycle_date}",
            extra={
                "cycle_date": str(cycle_date),
                "eligible_count": len(investments),
                "activation_policy": self.activation_policy.value,
            },
        )
        return EligibilityResult(investments=investments)
