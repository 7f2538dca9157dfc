# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment domain: quizzes, questions, attempts and scoring."""

from edupath.domains.assessment.scoring import check_answer, score_attempt
from edupath.domains.assessment.service import (
    ActiveAttemptExistsError,
    AssessmentAccessDeniedError,
    AssessmentNotFoundError,
    AssessmentNotPublishedError,
    AssessmentService,
    AssessmentServiceError,
    AttemptNotActiveError,
    AttemptNotFoundError,
    InvalidQuestionError,
    MaxAttemptsExceededError,
    QuestionNotFoundError,
)

__all__ = [
    "ActiveAttemptExistsError",
    "AssessmentAccessDeniedError",
    "AssessmentNotFoundError",
    "AssessmentNotPublishedError",
    "AssessmentService",
    "AssessmentServiceError",
    "AttemptNotActiveError",
    "AttemptNotFoundError",
    "InvalidQuestionError",
    "MaxAttemptsExceededError",
    "QuestionNotFoundError",
    "check_answer",
    "score_attempt",
]
