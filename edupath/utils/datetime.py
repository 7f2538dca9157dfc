# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for EduPath.

All timestamps are stored as timezone-aware UTC values. Some backends
(SQLite in tests) hand naive datetimes back, so every comparison against
a loaded value goes through ensure_utc().

Usage:
    from edupath.utils.datetime import utc_now

    now = utc_now()
    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

import math
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None. Naive values are assumed UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def days_ago(days: int) -> datetime:
    """Get a datetime N days ago from now."""
    return utc_now() - timedelta(days=days)


def days_from_now(days: int) -> datetime:
    """Get a datetime N days from now."""
    return utc_now() + timedelta(days=days)


def is_expired(expiry: datetime | None) -> bool:
    """Check if a datetime has passed.

    Args:
        expiry: The expiry datetime to check.

    Returns:
        True if expired or expiry is None, False otherwise.
    """
    if expiry is None:
        return True

    return utc_now() > ensure_utc(expiry)


def time_since(start: datetime) -> timedelta:
    """Calculate time elapsed since a start datetime."""
    return utc_now() - ensure_utc(start)


def days_late(submitted_at: datetime, due_date: datetime) -> int:
    """Count started days between a due date and a submission.

    A submission one minute past the deadline counts as one day late.

    Args:
        submitted_at: When the work was submitted.
        due_date: The deadline.

    Returns:
        Whole days late, rounded up. Zero when on time.
    """
    delta = ensure_utc(submitted_at) - ensure_utc(due_date)
    if delta.total_seconds() <= 0:
        return 0
    return math.ceil(delta.total_seconds() / 86400)


def current_academic_year() -> str:
    """Return the current calendar year as an academic year label."""
    return str(utc_now().year)
