"""
Business logic constants for the distribution engine.

Central location for business rules used by the distribution services.
"""

from dataclasses import dataclass
from decimal import Decimal


# Upline depth that receives level commission
REFERRAL_DEPTH = 10

# Default level commission rates (percent of the origin's daily profit)
DEFAULT_LEVEL_RATES: tuple[Decimal, ...] = (
    Decimal("25"),   # Level 1 (direct referrer)
    Decimal("10"),   # Level 2
    Decimal("5"),    # Level 3
    Decimal("4"),    # Level 4
    Decimal("3"),    # Level 5
    Decimal("2"),    # Level 6
    Decimal("1"),    # Level 7
    Decimal("0.5"),  # Level 8
    Decimal("0.5"),  # Level 9
    Decimal("0.5"),  # Level 10
)

# Upper bound for any percentage rate
MAX_RATE_PERCENT = Decimal("100")

# Precision of stored money amounts (DECIMAL(18, 8))
MONEY_QUANTUM = Decimal("0.00000001")


@dataclass(frozen=True)
class TeamRewardTier:
    """Team deposit threshold that unlocks a delayed reward."""

    team_deposit: Decimal
    time_period_days: int
    reward_amount: Decimal


# Team reward tiers, lowest first
TEAM_REWARD_TIERS: tuple[TeamRewardTier, ...] = (
    TeamRewardTier(Decimal("100000"), 30, Decimal("15000")),
    TeamRewardTier(Decimal("300000"), 60, Decimal("50000")),
    TeamRewardTier(Decimal("1200000"), 90, Decimal("500000")),
)


@dataclass(frozen=True)
class ActiveMemberTier:
    """Referral and team size threshold that pays a one-time reward."""

    direct_referrals: int
    team_size: int
    reward_amount: Decimal


# Active member reward tiers, lowest first
ACTIVE_MEMBER_TIERS: tuple[ActiveMemberTier, ...] = (
    ActiveMemberTier(5, 20, Decimal("90")),
    ActiveMemberTier(7, 50, Decimal("150")),
    ActiveMemberTier(9, 100, Decimal("250")),
    ActiveMemberTier(11, 300, Decimal("400")),
    ActiveMemberTier(15, 600, Decimal("500")),
    ActiveMemberTier(20, 1000, Decimal("600")),
    ActiveMemberTier(30, 3000, Decimal("1500")),
    ActiveMemberTier(40, 6000, Decimal("3000")),
    ActiveMemberTier(50, 10000, Decimal("6000")),
    ActiveMemberTier(60, 30000, Decimal("12000")),
    ActiveMemberTier(70, 60000, Decimal("20000")),
    ActiveMemberTier(80, 100000, Decimal("30000")),
    ActiveMemberTier(90, 300000, Decimal("50000")),
    ActiveMemberTier(100, 600000, Decimal("110000")),
    ActiveMemberTier(110, 1000000, Decimal("200000")),
)
