# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Answer checking and attempt scoring.

Pure functions shared by interactive submission and the auto-submit job.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from edupath.models.assessment import QuestionResult, QuestionType

FILL_BLANK_SEPARATOR = "|"


def _normalize(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def check_answer(question_type: str, correct_answer: str, student_answer: Any) -> bool:
    """Check a student's answer against the answer key.

    Comparison ignores surrounding whitespace and case. Fill-in-the-blank
    questions accept any of the ``|``-separated alternatives. Essays are
    never auto-graded as correct.

    Args:
        question_type: One of the QuestionType values.
        correct_answer: Stored answer key.
        student_answer: Answer given by the student.

    Returns:
        True if the answer is correct.
    """
    answer = _normalize(student_answer)

    if question_type in (
        QuestionType.MULTIPLE_CHOICE.value,
        QuestionType.TRUE_FALSE.value,
        QuestionType.SHORT_ANSWER.value,
    ):
        return answer == _normalize(correct_answer)

    if question_type == QuestionType.FILL_BLANK.value:
        accepted = [_normalize(a) for a in str(correct_answer).split(FILL_BLANK_SEPARATOR)]
        return answer in accepted

    return False


@dataclass
class AttemptScore:
    """Totals for a scored attempt."""

    total_score: float = 0.0
    max_score: float = 0.0
    question_results: list[QuestionResult] = field(default_factory=list)

    @property
    def percentage(self) -> float:
        if self.max_score <= 0:
            return 0.0
        return self.total_score / self.max_score * 100


def score_attempt(questions: Iterable[Any], answers: dict[str, Any]) -> AttemptScore:
    """Score every question of an assessment against the recorded answers.

    Args:
        questions: AssessmentQuestion rows, in display order.
        answers: Mapping of question ID to the student's answer.

    Returns:
        AttemptScore with per-question results.
    """
    score = AttemptScore()
    for question in questions:
        student_answer = str(answers.get(question.id, "") or "")
        is_correct = check_answer(question.question_type, question.correct_answer, student_answer)
        earned = question.points if is_correct else 0

        score.total_score += earned
        score.max_score += question.points
        score.question_results.append(
            QuestionResult(
                question_id=question.id,
                question_text=question.question_text,
                question_type=question.question_type,
                student_answer=student_answer,
                correct_answer=question.correct_answer,
                is_correct=is_correct,
                points=question.points,
                earned_points=earned,
            )
        )
    return score
