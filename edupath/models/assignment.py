# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment and submission request/response models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from edupath.models.common import ListResponse


class AssignmentType(str, Enum):
    """Kinds of assignments."""

    HOMEWORK = "homework"
    PROJECT = "project"
    QUIZ = "quiz"
    ESSAY = "essay"
    PRESENTATION = "presentation"
    LAB_WORK = "lab_work"


class SubmissionStatus(str, Enum):
    """Submission lifecycle states."""

    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"
    LATE = "late"
    MISSING = "missing"


COMPLETED_SUBMISSION_STATUSES = (
    SubmissionStatus.SUBMITTED.value,
    SubmissionStatus.LATE.value,
    SubmissionStatus.GRADED.value,
)


class AssignmentCreateRequest(BaseModel):
    """Create an assignment."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    instructions: str | None = None
    assignment_type: AssignmentType = AssignmentType.HOMEWORK
    subject_id: str | None = None
    grade_level: int = Field(ge=1, le=12)
    due_date: datetime
    max_score: float = Field(default=100.0, gt=0)
    allow_late_submission: bool = True
    late_penalty: float = Field(default=0.0, ge=0, le=100, description="Percent per day late")
    attachments: list[Any] = Field(default_factory=list)


class AssignmentUpdateRequest(BaseModel):
    """Update an assignment. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    instructions: str | None = None
    assignment_type: AssignmentType | None = None
    subject_id: str | None = None
    grade_level: int | None = Field(default=None, ge=1, le=12)
    due_date: datetime | None = None
    max_score: float | None = Field(default=None, gt=0)
    allow_late_submission: bool | None = None
    late_penalty: float | None = Field(default=None, ge=0, le=100)
    attachments: list[Any] | None = None


class AssignmentResponse(BaseModel):
    """An assignment with submission counters."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    instructions: str | None = None
    assignment_type: str
    subject_id: str | None = None
    grade_level: int
    due_date: datetime
    max_score: float
    allow_late_submission: bool
    late_penalty: float
    attachments: list[Any] = []
    is_published: bool
    published_at: datetime | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    submission_count: int = 0
    graded_count: int = 0


class AssignmentListResponse(ListResponse[AssignmentResponse]):
    """Paginated assignments."""

    pass


class AssignmentFilters(BaseModel):
    """Filters for the assignment listing."""

    subject_id: str | None = None
    grade_level: int | None = None
    assignment_type: AssignmentType | None = None
    created_by: str | None = None
    is_published: bool | None = None
    due_after: datetime | None = None
    due_before: datetime | None = None
    search: str | None = None


class SubmitAssignmentRequest(BaseModel):
    """Submit or resubmit work."""

    content: str | None = None
    attachments: list[Any] = Field(default_factory=list)


class GradeSubmissionRequest(BaseModel):
    """Grade a submission."""

    score: float = Field(ge=0)
    feedback: str | None = None


class SubmissionResponse(BaseModel):
    """An assignment submission."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    assignment_id: str
    student_id: str
    content: str | None = None
    attachments: list[Any] = []
    status: str
    is_late: bool
    submitted_at: datetime
    score: float | None = None
    final_score: float | None = None
    feedback: str | None = None
    graded_by: str | None = None
    graded_at: datetime | None = None


class SubmissionListResponse(ListResponse[SubmissionResponse]):
    """Paginated submissions."""

    pass


class AssignmentStats(BaseModel):
    """Aggregate assignment statistics."""

    total_assignments: int
    published_assignments: int
    draft_assignments: int
    overdue_assignments: int
    total_submissions: int
    graded_submissions: int
    pending_submissions: int
    late_submissions: int
    average_score: float


class StudentAssignmentSummary(BaseModel):
    """A student's assignment record."""

    student_id: str
    total_assignments: int
    submitted: int
    graded: int
    late: int
    pending: int
    average_score: float
