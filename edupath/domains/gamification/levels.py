# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Level table and point-to-level arithmetic.

Levels are fixed point bands. A student's level is the highest band whose
minimum does not exceed their points, so negative totals stay at level 1.
"""

from edupath.models.gamification import LevelInfo

LEVEL_CONFIG: tuple[LevelInfo, ...] = (
    LevelInfo(level=1, title="Beginner", title_ar="مبتدئ", min_points=0, max_points=99,
              icon="🌱", color="#4CAF50"),
    LevelInfo(level=2, title="Explorer", title_ar="مستكشف", min_points=100, max_points=249,
              icon="🔍", color="#2196F3"),
    LevelInfo(level=3, title="Scholar", title_ar="طالب علم", min_points=250, max_points=499,
              icon="📚", color="#9C27B0"),
    LevelInfo(level=4, title="Expert", title_ar="خبير", min_points=500, max_points=999,
              icon="🎓", color="#FF9800"),
    LevelInfo(level=5, title="Master", title_ar="أستاذ", min_points=1000, max_points=1999,
              icon="👑", color="#F44336"),
    LevelInfo(level=6, title="Champion", title_ar="بطل", min_points=2000, max_points=4999,
              icon="🏆", color="#FFD700"),
    LevelInfo(level=7, title="Legend", title_ar="أسطورة", min_points=5000, max_points=9999,
              icon="⭐", color="#E91E63"),
    LevelInfo(level=8, title="Grandmaster", title_ar="أستاذ أعظم", min_points=10000,
              max_points=None, icon="💎", color="#9C27B0"),
)

MAX_LEVEL = LEVEL_CONFIG[-1].level


def calculate_level(points: int) -> int:
    """Return the level for a points total."""
    for info in reversed(LEVEL_CONFIG):
        if points >= info.min_points:
            return info.level
    return 1


def get_level_info(level: int) -> LevelInfo:
    """Return the table row for a level, falling back to level 1."""
    for info in LEVEL_CONFIG:
        if info.level == level:
            return info
    return LEVEL_CONFIG[0]


def get_next_level_info(level: int) -> LevelInfo | None:
    """Return the row after a level, or None at the top."""
    if level >= MAX_LEVEL:
        return None
    return get_level_info(level + 1)


def points_to_next_level(points: int) -> int:
    """Points still needed to reach the next level (0 at the top)."""
    next_info = get_next_level_info(calculate_level(points))
    if next_info is None:
        return 0
    return max(0, next_info.min_points - points)


def level_progress_percentage(points: int) -> float:
    """Percent of the way through the current level band, 0..100."""
    current = get_level_info(calculate_level(points))
    next_info = get_next_level_info(current.level)
    if next_info is None:
        return 100.0

    span = next_info.min_points - current.min_points
    progress = (points - current.min_points) / span * 100
    return min(100.0, max(0.0, progress))
