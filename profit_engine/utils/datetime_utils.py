"""
Datetime utilities.

Provides timezone-aware datetime functions and cycle window helpers.
"""

from datetime import UTC, date, datetime, time, timedelta, tzinfo

from profit_engine.config.settings import settings


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Normalize datetime to aware UTC.

    Naive values (as returned by backends without timezone support)
    are interpreted as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def cycle_date_for(
    moment: datetime | None = None, tz: tzinfo | None = None
) -> date:
    """
    Get cycle date of a moment in the reference timezone.

    Args:
        moment: Aware datetime (defaults to now)
        tz: Reference timezone (defaults to settings.cycle_tz)

    Returns:
        Calendar date of the moment in the reference timezone
    """
    moment = ensure_utc(moment) or utc_now()
    return moment.astimezone(tz or settings.cycle_tz).date()


def cycle_window(
    cycle_date: date, tz: tzinfo | None = None
) -> tuple[datetime, datetime]:
    """
    Get [start, end) of a cycle in UTC.

    Args:
        cycle_date: Cycle date in the reference timezone
        tz: Reference timezone (defaults to settings.cycle_tz)

    Returns:
        Tuple of (window_start, window_end) as aware UTC datetimes
    """
    tz = tz or settings.cycle_tz
    start = datetime.combine(cycle_date, time.min, tzinfo=tz)
    end = datetime.combine(cycle_date + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)
