# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for badge criteria evaluation."""

import pytest
from pydantic import ValidationError

from edupath.domains.gamification.criteria import (
    StudentStats,
    evaluate_criteria,
    is_eligible,
    missing_requirements,
    parse_criteria,
)
from edupath.models.gamification import BadgeCriteria, CriteriaType


def _points(target: int) -> BadgeCriteria:
    return BadgeCriteria(type=CriteriaType.POINTS, conditions={"min_points": target})


def _streak(target: int) -> BadgeCriteria:
    return BadgeCriteria(type=CriteriaType.STREAK, conditions={"streak_days": target})


class TestSimpleCriteria:
    """Tests for single-statistic criteria."""

    def test_points_progress(self) -> None:
        progress = evaluate_criteria(_points(500), StudentStats(total_points=250))

        assert progress.current_value == 250
        assert progress.target_value == 500
        assert progress.percentage == 50.0

    def test_percentage_capped_at_100(self) -> None:
        progress = evaluate_criteria(_points(100), StudentStats(total_points=900))

        assert progress.percentage == 100.0

    def test_zero_target_is_never_met(self) -> None:
        """A criteria without a target reports no progress."""
        criteria = BadgeCriteria(type=CriteriaType.CONTENT, conditions={})

        assert evaluate_criteria(criteria, StudentStats(content_viewed=10)).percentage == 0.0

    @pytest.mark.parametrize(
        ("criteria_type", "key", "stats"),
        [
            (CriteriaType.ASSESSMENTS, "assessments_passed", StudentStats(assessments_passed=3)),
            (CriteriaType.ASSIGNMENTS, "assignments_completed", StudentStats(assignments_completed=3)),
            (CriteriaType.STREAK, "streak_days", StudentStats(current_streak=3)),
            (CriteriaType.CONTENT, "content_viewed", StudentStats(content_viewed=3)),
        ],
    )
    def test_each_type_reads_its_statistic(
        self,
        criteria_type: CriteriaType,
        key: str,
        stats: StudentStats,
    ) -> None:
        criteria = BadgeCriteria(type=criteria_type, conditions={key: 3})

        assert is_eligible(criteria, stats) is True
        assert is_eligible(criteria, StudentStats()) is False

    def test_missing_requirements_message(self) -> None:
        missing = missing_requirements(_points(500), StudentStats(total_points=320))

        assert missing == ["Need 180 more points"]

    def test_no_missing_requirements_when_met(self) -> None:
        assert missing_requirements(_streak(7), StudentStats(current_streak=9)) == []


class TestCompositeCriteria:
    """Tests for AND/OR composite criteria."""

    def test_and_requires_every_sub_criteria(self) -> None:
        criteria = BadgeCriteria(
            type=CriteriaType.COMPOSITE,
            operator="AND",
            sub_criteria=[_points(100), _streak(5)],
        )
        stats = StudentStats(total_points=150, current_streak=2)

        progress = evaluate_criteria(criteria, stats)

        assert progress.current_value == 1
        assert progress.target_value == 2
        assert progress.percentage == pytest.approx(40.0)
        assert is_eligible(criteria, stats) is False
        assert missing_requirements(criteria, stats) == ["Need 3 more consecutive days"]

    def test_or_requires_any_sub_criteria(self) -> None:
        criteria = BadgeCriteria(
            type=CriteriaType.COMPOSITE,
            operator="OR",
            sub_criteria=[_points(100), _streak(5)],
        )

        assert is_eligible(criteria, StudentStats(total_points=150)) is True
        assert is_eligible(criteria, StudentStats(total_points=10)) is False

    def test_empty_composite_is_never_met(self) -> None:
        criteria = BadgeCriteria(type=CriteriaType.COMPOSITE, sub_criteria=[])

        assert is_eligible(criteria, StudentStats(total_points=10**6)) is False


class TestParseCriteria:
    """Tests for parse_criteria."""

    def test_parses_stored_json(self) -> None:
        criteria = parse_criteria(
            {
                "type": "composite",
                "operator": "OR",
                "sub_criteria": [{"type": "points", "conditions": {"min_points": 10}}],
            }
        )

        assert criteria.type == CriteriaType.COMPOSITE
        assert criteria.sub_criteria[0].conditions == {"min_points": 10}

    def test_passes_models_through(self) -> None:
        criteria = _points(5)

        assert parse_criteria(criteria) is criteria

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            parse_criteria({"type": "telepathy"})
