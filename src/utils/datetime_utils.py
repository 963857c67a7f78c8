"""Datetime utilities.

Usage:
    from src.utils.datetime_utils import utc_now, local_now

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)

    # Wall-clock time used for batch numbers and recipe dates
    now = local_now()
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Return the current local wall-clock time (naive).

    Batch numbers embed the operator's local date and time, so this is the
    default clock for recipe sessions.
    """
    return datetime.now()
