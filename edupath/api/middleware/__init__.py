# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware: authentication and rate limiting."""

from edupath.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from edupath.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
    "get_current_user",
    "limiter",
    "rate_limit_exceeded_handler",
]
