"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime. Use this for every stored timestamp."""
    return datetime.now(timezone.utc)


def inclusive_day_range(start: date, end: date) -> tuple[datetime, datetime]:
    """Turn a ``[start, end]`` date pair into a half-open UTC datetime range.

    The end date is inclusive, so the upper bound is midnight of the next day.
    """
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper
