"""
Dramatiq tasks.

The broker is imported first so every actor binds to it.

Worker:
    dramatiq jobs.tasks
"""

from jobs import broker  # noqa: F401
from jobs.tasks.active_member_rewards import process_active_member_rewards_task
from jobs.tasks.daily_cycle import run_daily_cycle_task
from jobs.tasks.team_rewards import process_team_rewards_task

__all__ = [
    "process_active_member_rewards_task",
    "process_team_rewards_task",
    "run_daily_cycle_task",
]
