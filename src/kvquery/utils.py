"""Utility functions for record bookkeeping."""

from datetime import UTC, datetime
from uuid import uuid4


def utc_now() -> datetime:
    """Get current UTC time with timezone."""
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """Get current UTC timestamp in ISO 8601 format.

    Returns:
        ISO 8601 timestamp string (e.g., "2025-10-26T14:30:00.123456+00:00")

    Example:
        >>> ts = utc_timestamp()
        >>> ts.endswith("+00:00")
        True
    """
    return utc_now().isoformat()


def new_id() -> str:
    """Generate a primary key value for records created without one."""
    return str(uuid4())
