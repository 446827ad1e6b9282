"""
Exception handling utilities.

Defines the distribution error taxonomy and categorizes third-party
exceptions by handling strategy.
"""

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError


class DistributionError(Exception):
    """Base class for distribution engine errors."""
    pass


class NotFoundError(DistributionError):
    """Referenced account, investment or record does not exist."""

    def __init__(self, entity: str, entity_id: int | None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DuplicateEntry(DistributionError):
    """
    A non-cancelled ledger entry already exists for the idempotency key.

    Carries the existing entry when it could be loaded. An entry of None
    means the key was taken by a concurrent writer and the caller should
    retry to pick it up.
    """

    def __init__(self, key: tuple, existing=None) -> None:
        self.key = key
        self.existing = existing
        super().__init__(f"Ledger entry already exists for key {key}")


class TransientStoreError(DistributionError):
    """Store unreachable or connection lost; safe to retry."""
    pass


class ConfigurationError(DistributionError):
    """Invalid plan or policy configuration."""
    pass


class RunConflict(DistributionError):
    """Another run of the same cycle is in flight."""

    def __init__(self, cycle_date, running_run_id: int) -> None:
        self.cycle_date = cycle_date
        self.running_run_id = running_run_id
        super().__init__(
            f"Run {running_run_id} is already running for cycle {cycle_date}"
        )


class ItemTimeout(DistributionError):
    """Processing a single investment exceeded the item timeout."""
    pass


# Exception categories based on handling strategy

# Retry with backoff - connection level failures
TRANSIENT = (
    TransientStoreError,
    OperationalError,   # Connection refused, server gone, deadlock
    InterfaceError,     # Driver lost its connection
    ConnectionError,
    OSError,
)


def is_transient(exc: BaseException) -> bool:
    """
    Check if exception is worth retrying.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a transient store failure
    """
    if isinstance(exc, DuplicateEntry):
        # Lost an insert race: retry re-reads the winner's entry
        return exc.existing is None
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, TRANSIENT)
