# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for diagnostic scoring and analysis."""

from types import SimpleNamespace

from edupath.domains.diagnostic.analysis import (
    analyze_weaknesses,
    class_recommendations,
    find_common_weaknesses,
    generate_recommendations,
    pass_rate,
    performance_trend,
    score_distribution,
    score_percentage,
    score_test,
)
from edupath.models.diagnostic import (
    PerformanceTrend,
    Severity,
    WeaknessArea,
    WeaknessType,
)


def _questions(count: int, marks: int = 1) -> list[SimpleNamespace]:
    return [
        SimpleNamespace(id=f"q{i}", correct_answer=str(i), marks=marks) for i in range(count)
    ]


def _answers(correct: int, total: int) -> dict[str, str]:
    """Answer the first `correct` questions right and the rest wrong."""
    return {f"q{i}": str(i) if i < correct else "wrong" for i in range(total)}


class TestScoreTest:
    """Tests for score_test."""

    def test_trimmed_exact_match(self) -> None:
        questions = _questions(3, marks=2)
        answers = {"q0": " 0 ", "q1": "x"}

        result = score_test(questions, answers)

        assert result.score == 2
        assert [e.is_correct for e in result.evaluations] == [True, False, False]
        assert result.evaluations[2].answer is None
        assert result.incorrect_count == 2

    def test_score_percentage(self) -> None:
        assert score_percentage(15, 20) == 75.0
        assert score_percentage(5, 0) == 0.0


class TestWeaknesses:
    """Tests for analyze_weaknesses."""

    def test_conceptual_weakness_above_70_percent_wrong(self) -> None:
        weaknesses = analyze_weaknesses(_questions(10), _answers(2, 10))

        assert len(weaknesses) == 1
        assert weaknesses[0].type == WeaknessType.CONCEPTUAL
        assert weaknesses[0].severity == Severity.HIGH

    def test_procedural_weakness_above_40_percent_wrong(self) -> None:
        weaknesses = analyze_weaknesses(_questions(10), _answers(5, 10))

        assert weaknesses[0].type == WeaknessType.PROCEDURAL
        assert weaknesses[0].severity == Severity.MEDIUM

    def test_boundaries_are_exclusive(self) -> None:
        """Exactly 40% wrong is not a weakness; exactly 70% wrong is only procedural."""
        assert analyze_weaknesses(_questions(10), _answers(6, 10)) == []
        assert analyze_weaknesses(_questions(10), _answers(3, 10))[0].type == (
            WeaknessType.PROCEDURAL
        )

    def test_no_questions(self) -> None:
        assert analyze_weaknesses([], {}) == []


class TestRecommendations:
    """Tests for generate_recommendations."""

    def test_low_score_gets_recovery_and_high_priority(self) -> None:
        weakness = WeaknessArea(
            type=WeaknessType.CONCEPTUAL,
            description="Weak understanding of core concepts",
            severity=Severity.HIGH,
        )

        recommendations = generate_recommendations(30, [weakness])

        assert recommendations.priority == Severity.HIGH
        assert recommendations.recommended_plan_types == ["recovery"]
        assert recommendations.estimated_study_time == 10
        assert recommendations.focus_areas == ["Weak understanding of core concepts"]

    def test_middle_score(self) -> None:
        recommendations = generate_recommendations(65, [])

        assert recommendations.priority == Severity.MEDIUM
        assert recommendations.recommended_plan_types == []
        assert recommendations.estimated_study_time == 5

    def test_high_score_gets_enhancement(self) -> None:
        recommendations = generate_recommendations(90, [])

        assert recommendations.priority == Severity.LOW
        assert recommendations.recommended_plan_types == ["enhancement"]


class TestClassAnalysis:
    """Tests for distribution, common weaknesses and class recommendations."""

    def test_score_distribution(self) -> None:
        buckets = score_distribution([5, 25, 45, 59.9, 60, 100])

        assert [(b.range, b.count) for b in buckets] == [
            ("0-19", 1),
            ("20-39", 1),
            ("40-59", 2),
            ("60-79", 1),
            ("80-100", 1),
        ]

    def test_common_weaknesses_ranked_with_severity(self) -> None:
        conceptual = {"type": "conceptual", "description": "Weak concepts"}
        procedural = {"type": "procedural", "description": "Weak procedures"}
        stored = [[conceptual], [conceptual], [conceptual], [procedural], []]

        common = find_common_weaknesses(stored, total_students=5)

        assert common[0].description == "Weak concepts"
        assert common[0].count == 3
        assert common[0].severity == Severity.MEDIUM
        assert common[1].severity == Severity.LOW

    def test_class_recommendations(self) -> None:
        common = find_common_weaknesses(
            [[{"type": "conceptual", "description": "Weak concepts"}]], total_students=1
        )

        recommendations = class_recommendations(40, 20, common)

        assert len(recommendations) == 3
        assert recommendations[-1] == "Focus on the common weaknesses: Weak concepts"

    def test_pass_rate(self) -> None:
        assert pass_rate([59, 60, 90, 10]) == 50.0
        assert pass_rate([]) == 0.0


class TestPerformanceTrend:
    """Tests for performance_trend."""

    def test_improving(self) -> None:
        assert performance_trend([40, 45, 70, 80]) == PerformanceTrend.IMPROVING

    def test_declining(self) -> None:
        assert performance_trend([90, 85, 60, 50]) == PerformanceTrend.DECLINING

    def test_stable_within_threshold(self) -> None:
        assert performance_trend([70, 72, 74, 73]) == PerformanceTrend.STABLE

    def test_too_few_results(self) -> None:
        assert performance_trend([]) == PerformanceTrend.STABLE
        assert performance_trend([90]) == PerformanceTrend.STABLE

    def test_only_last_ten_count(self) -> None:
        """Old history outside the window does not affect the trend."""
        history = [0] * 20 + [70] * 10

        assert performance_trend(history) == PerformanceTrend.STABLE
