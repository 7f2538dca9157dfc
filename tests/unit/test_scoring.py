# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for assessment answer checking and attempt scoring."""

from types import SimpleNamespace

import pytest

from edupath.domains.assessment.scoring import check_answer, score_attempt


def _question(qid: str, qtype: str, answer: str, points: int = 1) -> SimpleNamespace:
    return SimpleNamespace(
        id=qid,
        question_text=f"Question {qid}",
        question_type=qtype,
        correct_answer=answer,
        points=points,
    )


class TestCheckAnswer:
    """Tests for check_answer."""

    @pytest.mark.parametrize("qtype", ["multiple_choice", "true_false", "short_answer"])
    def test_exact_types_ignore_case_and_whitespace(self, qtype: str) -> None:
        assert check_answer(qtype, "Paris", "  paris ") is True
        assert check_answer(qtype, "Paris", "London") is False

    def test_fill_blank_accepts_alternatives(self) -> None:
        assert check_answer("fill_blank", "colour|color", "Color") is True
        assert check_answer("fill_blank", "colour|color", "colr") is False

    def test_essay_is_never_auto_correct(self) -> None:
        assert check_answer("essay", "anything", "anything") is False

    def test_missing_answer_is_incorrect(self) -> None:
        assert check_answer("short_answer", "42", None) is False


class TestScoreAttempt:
    """Tests for score_attempt."""

    def test_scores_each_question(self) -> None:
        questions = [
            _question("q1", "multiple_choice", "B", points=2),
            _question("q2", "true_false", "true", points=1),
            _question("q3", "short_answer", "7", points=3),
        ]
        answers = {"q1": "B", "q2": "false"}

        score = score_attempt(questions, answers)

        assert score.total_score == 2
        assert score.max_score == 6
        assert score.percentage == pytest.approx(33.333, rel=1e-3)
        assert [r.is_correct for r in score.question_results] == [True, False, False]
        assert score.question_results[2].student_answer == ""
        assert score.question_results[0].earned_points == 2

    def test_no_questions(self) -> None:
        score = score_attempt([], {})

        assert score.max_score == 0
        assert score.percentage == 0.0
