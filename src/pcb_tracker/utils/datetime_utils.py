"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from pcb_tracker.utils.datetime_utils import utc_now

    timestamp = utc_now()

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime.

    This is the replacement for the deprecated datetime.utcnow().

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return the current UTC calendar date."""
    return utc_now().date()
