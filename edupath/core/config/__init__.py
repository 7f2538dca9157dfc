# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for EduPath.

Example:
    >>> from edupath.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from edupath.core.config.settings import (
    APISettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    PushSettings,
    RateLimitSettings,
    SchedulerSettings,
    SecuritySettings,
    Settings,
    SMTPSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "JWTSettings",
    "SecuritySettings",
    "RateLimitSettings",
    "CORSSettings",
    "APISettings",
    "SMTPSettings",
    "PushSettings",
    "SchedulerSettings",
]
