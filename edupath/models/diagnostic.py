# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic test request/response models."""

from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from edupath.models.common import Difficulty, SortOrder

PageItemT = TypeVar("PageItemT")


class DiagnosticTestType(str, Enum):
    """How a diagnostic test is administered."""

    WRITTEN = "written"
    ORAL = "oral"
    PRACTICAL = "practical"


class ResultStatus(str, Enum):
    """Lifecycle of a test result."""

    PENDING = "pending"
    COMPLETED = "completed"
    REVIEWED = "reviewed"


class DiagnosticQuestionType(str, Enum):
    """Question formats used in diagnostic tests."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"


class WeaknessType(str, Enum):
    """Kinds of learning weakness a test can reveal."""

    CONCEPTUAL = "conceptual"
    PROCEDURAL = "procedural"
    COMPUTATIONAL = "computational"
    ANALYTICAL = "analytical"


class Severity(str, Enum):
    """Severity of a weakness or priority of a recommendation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PerformanceTrend(str, Enum):
    """Direction of a student's recent scores."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class DiagnosticSortField(str, Enum):
    """Sortable columns of the test listing."""

    CREATED_AT = "created_at"
    TITLE = "title"
    GRADE_LEVEL = "grade_level"
    TOTAL_MARKS = "total_marks"


class Page(BaseModel, Generic[PageItemT]):
    """Page-numbered list envelope.

    Attributes:
        items: Page of results.
        total: Total matching rows.
        page: One-based page number.
        limit: Page size.
        total_pages: Number of pages at this page size.
    """

    items: list[PageItemT]
    total: int
    page: int
    limit: int
    total_pages: int


# =============================================================================
# Tests and questions
# =============================================================================


class DiagnosticQuestionCreate(BaseModel):
    """A question created with its test."""

    question_text: str = Field(min_length=1)
    question_type: DiagnosticQuestionType = DiagnosticQuestionType.MULTIPLE_CHOICE
    options: list[Any] | None = None
    correct_answer: str
    marks: int = Field(default=1, ge=0)
    order: int = Field(default=0, ge=0)


class DiagnosticTestCreateRequest(BaseModel):
    """Create a diagnostic test with its questions."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    subject_id: str | None = None
    grade_level: int = Field(ge=1, le=12)
    test_type: DiagnosticTestType = DiagnosticTestType.WRITTEN
    difficulty: Difficulty = Difficulty.MEDIUM
    duration_minutes: int = Field(default=60, ge=1)
    total_marks: int = Field(ge=1)
    passing_marks: int = Field(ge=1)
    instructions: str | None = None
    questions: list[DiagnosticQuestionCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_passing_marks(self) -> "DiagnosticTestCreateRequest":
        """Passing marks cannot exceed total marks."""
        if self.passing_marks > self.total_marks:
            raise ValueError("passing_marks cannot exceed total_marks")
        return self


class DiagnosticTestUpdateRequest(BaseModel):
    """Update a diagnostic test. Only provided fields change."""

    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    subject_id: str | None = None
    grade_level: int | None = None
    test_type: DiagnosticTestType | None = None
    difficulty: Difficulty | None = None
    duration_minutes: int | None = Field(default=None, ge=1)
    total_marks: int | None = None
    passing_marks: int | None = None
    instructions: str | None = None
    is_active: bool | None = None


class DiagnosticQuestionResponse(BaseModel):
    """A diagnostic question. ``correct_answer`` is hidden from students."""

    id: str
    question_text: str
    question_type: str
    options: list[Any] | None = None
    correct_answer: str | None = None
    marks: int
    order: int


class DiagnosticTestResponse(BaseModel):
    """A diagnostic test."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    subject_id: str | None = None
    grade_level: int
    test_type: str
    difficulty: str
    duration_minutes: int
    total_marks: int
    passing_marks: int
    instructions: str | None = None
    is_active: bool
    created_by: str
    result_count: int = 0
    questions: list[DiagnosticQuestionResponse] | None = None
    created_at: datetime
    updated_at: datetime


class DiagnosticTestFilters(BaseModel):
    """Filters and ordering for the test listing."""

    subject_id: str | None = None
    grade_level: int | None = None
    test_type: DiagnosticTestType | None = None
    difficulty: Difficulty | None = None
    is_active: bool | None = None
    created_by: str | None = None
    search: str | None = None
    sort_by: DiagnosticSortField = DiagnosticSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


# =============================================================================
# Results
# =============================================================================


class ConductTestRequest(BaseModel):
    """Record a student's answers to a test.

    ``student_id`` defaults to the caller. Staff may record for a student.
    """

    student_id: str | None = None
    answers: dict[str, str] = Field(description="Answer text keyed by question ID")
    time_spent: int | None = Field(default=None, ge=0, description="Minutes")


class WeaknessArea(BaseModel):
    """A weakness detected in a student's answers."""

    type: WeaknessType
    description: str
    severity: Severity
    topics: list[str] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)


class LearningRecommendations(BaseModel):
    """Study recommendations derived from a test result."""

    priority: Severity
    estimated_study_time: int = Field(description="Hours")
    focus_areas: list[str]
    recommended_plan_types: list[str]
    test_result_id: str | None = None


class AnswerEvaluation(BaseModel):
    """How one question was answered."""

    question_id: str
    answer: str | None = None
    is_correct: bool
    marks_awarded: int


class DiagnosticResultResponse(BaseModel):
    """A student's result on a diagnostic test."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    test_id: str
    test_title: str | None = None
    student_id: str
    answers: dict[str, Any] = Field(default_factory=dict)
    score: float
    total_marks: int | None = None
    percentage: float
    passed: bool | None = None
    time_spent: int | None = None
    status: str
    weaknesses: list[WeaknessArea] = Field(default_factory=list)
    recommendations: LearningRecommendations | None = None
    completed_at: datetime | None = None
    created_at: datetime


class ScoreBucket(BaseModel):
    """Number of students whose percentage falls in a range."""

    range: str
    count: int


class CommonWeakness(BaseModel):
    """A weakness shared by several results."""

    type: WeaknessType
    description: str
    count: int
    severity: Severity


class ResultAnalysis(BaseModel):
    """Class-level analysis of a test's completed results."""

    test_id: str
    total_students: int
    average_score: float
    pass_rate: float
    score_distribution: list[ScoreBucket]
    common_weaknesses: list[CommonWeakness]
    recommendations: list[str]


class TrendPoint(BaseModel):
    """One result in a student's score history."""

    date: datetime | None = None
    score: float
    weakness_count: int
    test_title: str | None = None


class SubjectPerformance(BaseModel):
    """A student's diagnostic results within one subject."""

    subject_id: str | None = None
    subject_name: str
    tests_taken: int
    average_score: float
    weaknesses: list[WeaknessArea]


class WeaknessAnalysis(BaseModel):
    """A student's weaknesses across all completed tests."""

    student_id: str
    overall_weaknesses: list[CommonWeakness]
    subject_performance: list[SubjectPerformance]
    trend: PerformanceTrend
    recent_results: list[TrendPoint]


class DistributionEntry(BaseModel):
    """Test count for one grade level or difficulty."""

    key: str
    test_count: int


class DiagnosticStatistics(BaseModel):
    """Platform-wide diagnostic test statistics."""

    total_tests: int
    active_tests: int
    total_results: int
    average_score: float
    pass_rate: float
    grade_distribution: list[DistributionEntry]
    difficulty_distribution: list[DistributionEntry]


class StudentPerformanceReport(BaseModel):
    """A student's overall diagnostic performance."""

    student_id: str
    total_tests: int = Field(description="Active tests available")
    completed_tests: int
    average_score: float
    trend: PerformanceTrend
    improvement_trend: list[TrendPoint]
    weakness_areas: list[WeaknessArea]
    strong_subjects: list[str]
    weak_subjects: list[str]
    recommendations: LearningRecommendations | None = None
