# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment, question and attempt request/response models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from edupath.models.common import Difficulty, ListResponse
from edupath.models.content import SubjectSummary


class QuestionType(str, Enum):
    """Supported question types."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    FILL_BLANK = "fill_blank"
    ESSAY = "essay"


class AttemptStatus(str, Enum):
    """Lifecycle states of an assessment attempt."""

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto_submitted"
    COMPLETED = "completed"


FINISHED_ATTEMPT_STATUSES = (
    AttemptStatus.SUBMITTED.value,
    AttemptStatus.AUTO_SUBMITTED.value,
    AttemptStatus.COMPLETED.value,
)


# =============================================================================
# Questions
# =============================================================================


class QuestionCreateRequest(BaseModel):
    """Add a question to an assessment."""

    question_text: str = Field(min_length=1)
    question_type: QuestionType
    options: list[Any] | None = None
    correct_answer: str = Field(
        description="Expected answer. fill_blank accepts alternatives separated by '|'."
    )
    explanation: str | None = None
    points: int = Field(default=1, ge=0)
    order_index: int | None = Field(default=None, ge=0)


class QuestionUpdateRequest(BaseModel):
    """Update a question. Only provided fields change."""

    question_text: str | None = Field(default=None, min_length=1)
    question_type: QuestionType | None = None
    options: list[Any] | None = None
    correct_answer: str | None = None
    explanation: str | None = None
    points: int | None = Field(default=None, ge=0)
    order_index: int | None = Field(default=None, ge=0)


class BulkQuestionCreateRequest(BaseModel):
    """Add several questions at once."""

    questions: list[QuestionCreateRequest] = Field(min_length=1)


class QuestionResponse(BaseModel):
    """Question including its answer key."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    assessment_id: str
    question_text: str
    question_type: str
    options: list[Any] | None = None
    correct_answer: str
    explanation: str | None = None
    points: int
    order_index: int


class StudentQuestionResponse(BaseModel):
    """Question as shown to a student taking the assessment."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    question_text: str
    question_type: str
    options: list[Any] | None = None
    points: int
    order_index: int


# =============================================================================
# Assessments
# =============================================================================


class AssessmentCreateRequest(BaseModel):
    """Create an assessment."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    subject_id: str
    grade_level: int = Field(ge=1, le=12)
    difficulty_level: Difficulty = Difficulty.MEDIUM
    duration_minutes: int = Field(default=30, ge=1, le=600)
    passing_score: float = Field(default=60.0, ge=0, le=100)
    max_attempts: int = Field(default=3, ge=1)
    is_published: bool = False
    questions: list[QuestionCreateRequest] = Field(default_factory=list)


class AssessmentUpdateRequest(BaseModel):
    """Update an assessment. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    subject_id: str | None = None
    grade_level: int | None = Field(default=None, ge=1, le=12)
    difficulty_level: Difficulty | None = None
    duration_minutes: int | None = Field(default=None, ge=1, le=600)
    passing_score: float | None = Field(default=None, ge=0, le=100)
    max_attempts: int | None = Field(default=None, ge=1)
    is_published: bool | None = None


class AssessmentResponse(BaseModel):
    """Assessment, optionally with its questions."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    uuid: str
    title: str
    description: str | None = None
    subject_id: str
    subject: SubjectSummary | None = None
    grade_level: int
    difficulty_level: str
    duration_minutes: int
    passing_score: float
    max_attempts: int
    total_questions: int
    is_published: bool
    published_at: datetime | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    questions: list[QuestionResponse] | None = None


class AssessmentListResponse(ListResponse[AssessmentResponse]):
    """Paginated assessment list."""

    pass


class AssessmentFilters(BaseModel):
    """Filters accepted by the assessment listing."""

    subject_id: str | None = None
    grade_level: int | None = None
    difficulty_level: Difficulty | None = None
    is_published: bool | None = None
    created_by: str | None = None
    search: str | None = None


# =============================================================================
# Attempts
# =============================================================================


class AttemptResponse(BaseModel):
    """An assessment attempt."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    uuid: str
    assessment_id: str
    student_id: str
    status: str
    answers: dict[str, Any] = {}
    started_at: datetime
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    total_score: float
    max_score: float
    percentage_score: float
    time_spent: int | None = None


class StudentAssessmentView(BaseModel):
    """Assessment prepared for a student: no answers, plus the open attempt."""

    assessment: AssessmentResponse
    questions: list[StudentQuestionResponse]
    attempt: AttemptResponse | None = None


class SubmitAnswerRequest(BaseModel):
    """Record an answer for one question."""

    question_id: str
    answer: str


class QuestionResult(BaseModel):
    """Scoring outcome for one question."""

    question_id: str
    question_text: str
    question_type: str
    student_answer: str
    correct_answer: str
    is_correct: bool
    points: int
    earned_points: int


class AssessmentResult(BaseModel):
    """Outcome of submitting an attempt."""

    attempt_id: str
    assessment_title: str
    student_name: str
    total_score: float
    max_score: float
    percentage_score: float
    passed: bool
    time_spent: int
    completed_at: datetime
    question_results: list[QuestionResult]
    points_awarded: int = 0


class RecentAttempt(BaseModel):
    """Recent attempt summary for statistics."""

    attempt_id: str
    assessment_title: str
    student_name: str
    percentage_score: float
    completed_at: datetime | None = None


class AssessmentStats(BaseModel):
    """Aggregate assessment statistics."""

    total: int
    published: int
    draft: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    pass_rate: float
    by_subject: dict[str, int]
    by_grade: dict[int, int]
    by_difficulty: dict[str, int]
    recent_attempts: list[RecentAttempt]
