# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for EduPath.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from edupath.utils.datetime import (
    current_academic_year,
    days_ago,
    days_from_now,
    days_late,
    ensure_utc,
    is_expired,
    time_since,
    utc_now,
)
from edupath.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "days_ago",
    "days_from_now",
    "is_expired",
    "time_since",
    "days_late",
    "current_academic_year",
]
