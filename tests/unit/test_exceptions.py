"""Unit tests for error classification."""

from datetime import date

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from profit_engine.utils.exceptions import (
    DuplicateEntry,
    ItemTimeout,
    NotFoundError,
    RunConflict,
    TransientStoreError,
    is_transient,
)


class TestIsTransient:
    """Test which errors are retried."""

    @pytest.mark.parametrize(
        "exc",
        [
            TransientStoreError("store down"),
            OperationalError("SELECT 1", {}, Exception("server closed")),
            ConnectionError("reset by peer"),
            OSError("network unreachable"),
            DuplicateEntry(("key",)),
        ],
    )
    def test_transient(self, exc):
        """Connection level failures and lost insert races are retried."""
        assert is_transient(exc)

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("bad amount"),
            NotFoundError("Account", 5),
            ItemTimeout("too slow"),
            IntegrityError("INSERT", {}, Exception("check failed")),
            DuplicateEntry(("key",), existing=object()),
        ],
    )
    def test_not_transient(self, exc):
        """Logic errors and known duplicates are not retried."""
        assert not is_transient(exc)

    def test_invalidated_connection(self):
        """Any DBAPI error on an invalidated connection is retried."""
        exc = DBAPIError(
            "SELECT 1", {}, Exception("gone"), connection_invalidated=True
        )

        assert is_transient(exc)


class TestMessages:
    """Test exception messages."""

    def test_not_found(self):
        """NotFoundError names entity and id."""
        exc = NotFoundError("Investment", 42)

        assert str(exc) == "Investment 42 not found"
        assert exc.entity_id == 42

    def test_run_conflict(self):
        """RunConflict names the running run."""
        exc = RunConflict(date(2025, 1, 15), 3)

        assert "Run 3" in str(exc)
        assert exc.running_run_id == 3
