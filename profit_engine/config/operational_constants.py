"""
Operational constants for the distribution engine.

Technical/operational constants used across the application.
Includes timeouts, limits and retry configurations.
"""

# =============================================================================
# LOCK TIMEOUTS (seconds)
# =============================================================================
# Used by distributed_lock.py for Redis locks

# Short operations (single cycle lookups)
LOCK_TIMEOUT_SHORT = 30

# Medium operations (team rewards pass)
LOCK_TIMEOUT_MEDIUM = 300

# Long operations (batch processing of a whole cycle)
LOCK_TIMEOUT_LONG = 1800


# =============================================================================
# BLOCKING TIMEOUTS (seconds)
# =============================================================================
# How long to wait for lock acquisition

BLOCKING_TIMEOUT_DEFAULT = 5.0


# =============================================================================
# ITEM PROCESSING
# =============================================================================

# Per-investment processing timeout
DEFAULT_ITEM_TIMEOUT_SECONDS = 30.0

# Retries for transient store errors
DEFAULT_ITEM_MAX_RETRIES = 3

# Exponential backoff base: 0.5s, 1s, 2s
DEFAULT_ITEM_RETRY_BACKOFF_SECONDS = 0.5

# A run still 'running' after this many seconds is treated as crashed
DEFAULT_RUN_STALE_AFTER_SECONDS = 2 * 60 * 60


# =============================================================================
# DRAMATIQ TASK TIME LIMITS (milliseconds)
# =============================================================================

# Standard tasks (5 minutes)
DRAMATIQ_TIME_LIMIT_STANDARD = 300_000

# Batch tasks (30 minutes) - whole cycle distribution
DRAMATIQ_TIME_LIMIT_BATCH = 1_800_000
