# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for plan progress rules."""

from edupath.domains.plans.progress import (
    completion_rate_from_progress,
    effectiveness_recommendations,
    rate_effectiveness,
    resolve_progress_update,
)
from edupath.models.plans import EffectivenessLevel


class TestCompletionRate:
    """Tests for completion_rate_from_progress."""

    def test_from_counts(self) -> None:
        data = {"completed_activities": 3, "total_activities": 4}

        assert completion_rate_from_progress(data) == 75.0

    def test_from_activity_list(self) -> None:
        data = {
            "activities": [
                {"id": "a", "completed": True},
                {"id": "b", "completed": False},
                {"id": "c"},
                {"id": "d", "completed": True},
            ]
        }

        assert completion_rate_from_progress(data) == 50.0

    def test_no_activities(self) -> None:
        assert completion_rate_from_progress({}) == 0.0
        assert completion_rate_from_progress({"activities": []}) == 0.0

    def test_clamped_to_100(self) -> None:
        data = {"completed_activities": 9, "total_activities": 4}

        assert completion_rate_from_progress(data) == 100.0


class TestResolveProgressUpdate:
    """Tests for resolve_progress_update."""

    def test_full_completion_marks_completed(self) -> None:
        assert resolve_progress_update(100, None, None) == (100, "completed")

    def test_explicit_status_wins(self) -> None:
        assert resolve_progress_update(100, "paused", None) == (100, "paused")

    def test_rate_derived_from_progress_data(self) -> None:
        rate, status = resolve_progress_update(
            None, None, {"completed_activities": 2, "total_activities": 2}
        )

        assert rate == 100.0
        assert status == "completed"

    def test_explicit_rate_beats_progress_data(self) -> None:
        rate, status = resolve_progress_update(
            40, None, {"completed_activities": 2, "total_activities": 2}
        )

        assert rate == 40
        assert status is None

    def test_nothing_to_change(self) -> None:
        assert resolve_progress_update(None, None, None) == (None, None)


class TestEffectiveness:
    """Tests for effectiveness rating and recommendations."""

    def test_rating_thresholds(self) -> None:
        assert rate_effectiveness(80) == EffectivenessLevel.HIGH
        assert rate_effectiveness(79.9) == EffectivenessLevel.MEDIUM
        assert rate_effectiveness(60) == EffectivenessLevel.MEDIUM
        assert rate_effectiveness(59.9) == EffectivenessLevel.LOW

    def test_low_completion_recommendations(self) -> None:
        recommendations = effectiveness_recommendations(40, 30, 10, 20)

        assert "Make the plan content more interactive" in recommendations
        assert len(recommendations) == 2

    def test_overrun_and_small_sample_recommendations(self) -> None:
        recommendations = effectiveness_recommendations(
            average_completion_rate=90,
            average_time_spent=200,
            estimated_hours=2,
            total_assignments=3,
        )

        assert "Review the time estimate for the plan" in recommendations
        assert (
            "Assign the plan to more students for a more accurate assessment" in recommendations
        )

    def test_healthy_plan_has_no_recommendations(self) -> None:
        assert effectiveness_recommendations(95, 60, 2, 30) == []
