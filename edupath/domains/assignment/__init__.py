# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment domain: homework, submissions and grading."""

from edupath.domains.assignment.grading import apply_late_penalty, final_score_for
from edupath.domains.assignment.service import (
    AlreadySubmittedError,
    AssignmentAccessDeniedError,
    AssignmentNotFoundError,
    AssignmentNotPublishedError,
    AssignmentService,
    AssignmentServiceError,
    InvalidScoreError,
    LateSubmissionNotAllowedError,
    SubmissionAlreadyGradedError,
    SubmissionNotFoundError,
)

__all__ = [
    "AlreadySubmittedError",
    "AssignmentAccessDeniedError",
    "AssignmentNotFoundError",
    "AssignmentNotPublishedError",
    "AssignmentService",
    "AssignmentServiceError",
    "InvalidScoreError",
    "LateSubmissionNotAllowedError",
    "SubmissionAlreadyGradedError",
    "SubmissionNotFoundError",
    "apply_late_penalty",
    "final_score_for",
]
