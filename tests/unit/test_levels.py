# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the level table."""

import pytest

from edupath.domains.gamification.levels import (
    LEVEL_CONFIG,
    MAX_LEVEL,
    calculate_level,
    get_level_info,
    get_next_level_info,
    level_progress_percentage,
    points_to_next_level,
)


class TestCalculateLevel:
    """Tests for calculate_level."""

    @pytest.mark.parametrize(
        ("points", "level"),
        [
            (0, 1),
            (99, 1),
            (100, 2),
            (249, 2),
            (250, 3),
            (999, 4),
            (1000, 5),
            (4999, 6),
            (5000, 7),
            (10000, 8),
            (250000, 8),
        ],
    )
    def test_band_boundaries(self, points: int, level: int) -> None:
        assert calculate_level(points) == level

    def test_negative_points_stay_at_level_one(self) -> None:
        assert calculate_level(-40) == 1

    def test_level_never_decreases_as_points_grow(self) -> None:
        levels = [calculate_level(p) for p in range(0, 12000, 50)]

        assert levels == sorted(levels)


class TestLevelInfo:
    """Tests for level lookups."""

    def test_table_is_contiguous(self) -> None:
        """Each band starts one point after the previous one ends."""
        for current, following in zip(LEVEL_CONFIG, LEVEL_CONFIG[1:]):
            assert current.max_points + 1 == following.min_points
        assert LEVEL_CONFIG[-1].max_points is None

    def test_unknown_level_falls_back_to_first(self) -> None:
        assert get_level_info(42).level == 1

    def test_next_level_info(self) -> None:
        assert get_next_level_info(1).title == "Explorer"
        assert get_next_level_info(MAX_LEVEL) is None


class TestProgress:
    """Tests for progress arithmetic."""

    def test_points_to_next_level(self) -> None:
        assert points_to_next_level(0) == 100
        assert points_to_next_level(180) == 70
        assert points_to_next_level(10000) == 0

    def test_progress_percentage(self) -> None:
        assert level_progress_percentage(0) == 0.0
        assert level_progress_percentage(50) == 50.0
        assert level_progress_percentage(175) == 50.0
        assert level_progress_percentage(20000) == 100.0
