"""
Standard type definitions for database models.

Provides consistent types for monetary, percentage and JSON fields across all models.
"""

from sqlalchemy import DECIMAL, JSON
from sqlalchemy.dialects.postgresql import JSONB

# Standard money type for amounts, balances, profits and commissions
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Precise rate percentage type for profit and commission rates
# Precision: 10 digits total, 4 after decimal point
# Suitable for: daily rates (e.g., 0.2660%) and level rates (e.g., 25.0000%)
# Range: 0.0000 to 999999.9999
RatePercentType = DECIMAL(10, 4)

# JSON payloads: JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")
