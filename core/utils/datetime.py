"""Datetime utilities for common operations."""

from datetime import datetime, timezone


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)
