"""
Clock helpers.

Timestamps are stored as naive UTC datetimes in the database.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
