"""Unit tests for cycle date and cycle window helpers."""

from datetime import UTC, date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from profit_engine.config.settings import Settings
from profit_engine.utils.datetime_utils import (
    cycle_date_for,
    cycle_window,
    ensure_utc,
)


MOSCOW = ZoneInfo("Europe/Moscow")  # UTC+3, no DST


class TestCycleDate:
    """Test cycle date of a moment."""

    def test_utc(self):
        """In UTC the cycle date is the UTC date."""
        moment = datetime(2025, 1, 15, 23, 59, tzinfo=UTC)

        assert cycle_date_for(moment, UTC) == date(2025, 1, 15)

    def test_reference_timezone_shifts_day(self):
        """22:00 UTC is already the next day in Moscow."""
        moment = datetime(2025, 1, 14, 22, 0, tzinfo=UTC)

        assert cycle_date_for(moment, MOSCOW) == date(2025, 1, 15)

    def test_naive_moment_is_utc(self):
        """Naive datetimes are read as UTC."""
        assert cycle_date_for(datetime(2025, 1, 14, 22, 0), MOSCOW) == date(
            2025, 1, 15
        )


class TestCycleWindow:
    """Test [start, end) of a cycle."""

    def test_utc_window(self):
        """UTC window spans the calendar day."""
        start, end = cycle_window(date(2025, 1, 15), UTC)

        assert start == datetime(2025, 1, 15, tzinfo=UTC)
        assert end == datetime(2025, 1, 16, tzinfo=UTC)

    def test_moscow_window_in_utc(self):
        """Window is returned in UTC."""
        start, end = cycle_window(date(2025, 1, 15), MOSCOW)

        assert start == datetime(2025, 1, 14, 21, 0, tzinfo=UTC)
        assert end - start == timedelta(days=1)
        assert start.tzinfo is UTC


class TestEnsureUtc:
    """Test datetime normalization."""

    def test_none(self):
        assert ensure_utc(None) is None

    def test_naive(self):
        assert ensure_utc(datetime(2025, 1, 1)).tzinfo is UTC

    def test_converts_offset(self):
        """Aware datetimes are converted, not relabelled."""
        value = datetime(2025, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=3)))

        assert ensure_utc(value) == datetime(2025, 1, 1, 0, 0, tzinfo=UTC)


class TestCycleTimezoneSetting:
    """Test settings validation of the reference timezone."""

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError, match="Unknown cycle timezone"):
            Settings(database_url="sqlite+aiosqlite://", cycle_timezone="Mars/Olympus")

    def test_cycle_tz(self):
        custom = Settings(
            database_url="sqlite+aiosqlite://", cycle_timezone="Europe/Moscow"
        )

        assert custom.cycle_tz == MOSCOW
