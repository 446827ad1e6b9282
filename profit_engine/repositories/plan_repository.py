"""
Plan repository.

Data access layer for Plan model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from profit_engine.models.plan import Plan
from profit_engine.repositories.base import BaseRepository


class PlanRepository(BaseRepository[Plan]):
    """Plan repository (read-only during a run)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize plan repository."""
        super().__init__(Plan, session)
