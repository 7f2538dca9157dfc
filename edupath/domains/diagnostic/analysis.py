# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic test scoring and analysis.

Pure functions over questions, answers and stored results. Nothing here
touches the database, so the thresholds can be tested directly.

Thresholds:
- A result passes at 60%.
- More than 70% incorrect answers is a conceptual weakness (high).
- More than 40% incorrect answers is a procedural weakness (medium).
- Recommendation priority is high below 40% and medium below 70%.
- Recovery plans are suggested below 60%, enhancement plans from 85%.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from edupath.models.diagnostic import (
    AnswerEvaluation,
    CommonWeakness,
    LearningRecommendations,
    PerformanceTrend,
    ScoreBucket,
    Severity,
    WeaknessArea,
    WeaknessType,
)
from edupath.models.plans import PlanKind

PASS_PERCENTAGE = 60
RECOVERY_BELOW_PERCENTAGE = 60
ENHANCEMENT_FROM_PERCENTAGE = 85
TREND_THRESHOLD = 5
TREND_WINDOW = 10

SCORE_RANGES = (
    ("0-19", 0, 20),
    ("20-39", 20, 40),
    ("40-59", 40, 60),
    ("60-79", 60, 80),
    ("80-100", 80, 101),
)


class ScorableQuestion(Protocol):
    """What scoring needs from a question."""

    id: str
    correct_answer: str
    marks: int


@dataclass
class ScoreResult:
    """Outcome of scoring a set of answers.

    Attributes:
        score: Marks earned.
        evaluations: Per-question evaluation in question order.
    """

    score: int = 0
    evaluations: list[AnswerEvaluation] = field(default_factory=list)

    @property
    def incorrect_count(self) -> int:
        return sum(1 for e in self.evaluations if not e.is_correct)


def is_answer_correct(correct_answer: str, answer: str | None) -> bool:
    """Exact match after trimming surrounding whitespace."""
    if answer is None:
        return False
    return str(answer).strip() == str(correct_answer).strip()


def score_test(
    questions: Sequence[ScorableQuestion],
    answers: Mapping[str, str],
) -> ScoreResult:
    """Score answers keyed by question ID. Unanswered questions earn nothing."""
    result = ScoreResult()
    for question in questions:
        answer = answers.get(question.id)
        correct = is_answer_correct(question.correct_answer, answer)
        marks = question.marks if correct else 0
        result.score += marks
        result.evaluations.append(
            AnswerEvaluation(
                question_id=question.id,
                answer=answer,
                is_correct=correct,
                marks_awarded=marks,
            )
        )
    return result


def score_percentage(score: float, total_marks: int) -> float:
    """Score as a percentage of total marks, 0 when total is 0."""
    if total_marks <= 0:
        return 0.0
    return score / total_marks * 100


def analyze_weaknesses(
    questions: Sequence[ScorableQuestion],
    answers: Mapping[str, str],
) -> list[WeaknessArea]:
    """Detect weaknesses from the share of incorrectly answered questions."""
    if not questions:
        return []

    incorrect = score_test(questions, answers).incorrect_count
    total = len(questions)

    if incorrect > total * 0.7:
        return [
            WeaknessArea(
                type=WeaknessType.CONCEPTUAL,
                description="Weak understanding of core concepts",
                severity=Severity.HIGH,
                suggested_actions=[
                    "Review the foundational lessons for this subject",
                    "Work through guided examples before practising alone",
                ],
            )
        ]
    if incorrect > total * 0.4:
        return [
            WeaknessArea(
                type=WeaknessType.PROCEDURAL,
                description="Difficulty applying procedures",
                severity=Severity.MEDIUM,
                suggested_actions=[
                    "Practise step-by-step exercises",
                    "Compare worked solutions with your own",
                ],
            )
        ]
    return []


def generate_recommendations(
    percentage: float,
    weaknesses: Sequence[WeaknessArea],
) -> LearningRecommendations:
    """Build study recommendations for one result."""
    if percentage < 40:
        priority = Severity.HIGH
    elif percentage < 70:
        priority = Severity.MEDIUM
    else:
        priority = Severity.LOW

    plan_types = []
    if percentage < RECOVERY_BELOW_PERCENTAGE:
        plan_types.append(PlanKind.RECOVERY.value)
    if percentage >= ENHANCEMENT_FROM_PERCENTAGE:
        plan_types.append(PlanKind.ENHANCEMENT.value)

    return LearningRecommendations(
        priority=priority,
        estimated_study_time=max(len(weaknesses) * 2, 10 if percentage < 50 else 5),
        focus_areas=[w.description for w in weaknesses],
        recommended_plan_types=plan_types,
    )


def score_distribution(percentages: Iterable[float]) -> list[ScoreBucket]:
    """Count percentages into fixed 20-point ranges."""
    counts = [0] * len(SCORE_RANGES)
    for value in percentages:
        for i, (_, low, high) in enumerate(SCORE_RANGES):
            if low <= value < high:
                counts[i] += 1
                break
    return [
        ScoreBucket(range=label, count=count)
        for (label, _, _), count in zip(SCORE_RANGES, counts)
    ]


def find_common_weaknesses(
    weakness_lists: Iterable[Iterable[Mapping[str, Any]]],
    total_students: int,
    top: int | None = 5,
) -> list[CommonWeakness]:
    """Rank stored weaknesses by how many results share them.

    Severity is high above 70% of students, medium above 40%.
    """
    counter: Counter[tuple[str, str]] = Counter()
    for weaknesses in weakness_lists:
        for weakness in weaknesses:
            counter[(weakness["type"], weakness["description"])] += 1

    common = []
    for (weakness_type, description), count in counter.most_common(top):
        if count > total_students * 0.7:
            severity = Severity.HIGH
        elif count > total_students * 0.4:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW
        common.append(
            CommonWeakness(
                type=WeaknessType(weakness_type),
                description=description,
                count=count,
                severity=severity,
            )
        )
    return common


def class_recommendations(
    average_score: float,
    passing_rate: float,
    common_weaknesses: Sequence[CommonWeakness],
) -> list[str]:
    """Teaching recommendations for a whole group of results."""
    recommendations = []
    if average_score < 50:
        recommendations.append("Students need a comprehensive review of the core concepts")
    if passing_rate < PASS_PERCENTAGE:
        recommendations.append("Reteach the fundamentals of the difficult topics")
    if common_weaknesses:
        focus = ", ".join(w.description for w in common_weaknesses)
        recommendations.append(f"Focus on the common weaknesses: {focus}")
    return recommendations


def pass_rate(percentages: Sequence[float]) -> float:
    """Share of percentages at or above the pass mark, as a percentage."""
    if not percentages:
        return 0.0
    return sum(1 for p in percentages if p >= PASS_PERCENTAGE) / len(percentages) * 100


def performance_trend(percentages: Sequence[float]) -> PerformanceTrend:
    """Compare the older and newer halves of a chronological score list.

    Args:
        percentages: Scores oldest first. Only the last ten are used.
    """
    recent = list(percentages)[-TREND_WINDOW:]
    if len(recent) < 2:
        return PerformanceTrend.STABLE

    middle = len(recent) // 2
    older = recent[:middle]
    newer = recent[middle:]
    difference = sum(newer) / len(newer) - sum(older) / len(older)

    if difference > TREND_THRESHOLD:
        return PerformanceTrend.IMPROVING
    if difference < -TREND_THRESHOLD:
        return PerformanceTrend.DECLINING
    return PerformanceTrend.STABLE
