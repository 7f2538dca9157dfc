# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification domain: points, levels, badges and leaderboards."""

from edupath.domains.gamification.service import (
    BadgeAlreadyEarnedError,
    BadgeInactiveError,
    BadgeNameExistsError,
    BadgeNotFoundError,
    GamificationService,
    GamificationServiceError,
    StudentProfileNotFoundError,
)

__all__ = [
    "BadgeAlreadyEarnedError",
    "BadgeInactiveError",
    "BadgeNameExistsError",
    "BadgeNotFoundError",
    "GamificationService",
    "GamificationServiceError",
    "StudentProfileNotFoundError",
]
