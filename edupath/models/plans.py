# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recovery and enhancement plan request/response models.

Both plan kinds share the base request and response models. Recovery
plans add a week number, enhancement plans add a plan type and
prerequisites.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from edupath.models.common import Difficulty, ListResponse


class PlanKind(str, Enum):
    """The two kinds of learning plans."""

    RECOVERY = "recovery"
    ENHANCEMENT = "enhancement"


class EnhancementPlanType(str, Enum):
    """Focus of an enhancement plan."""

    ENRICHMENT = "enrichment"
    ACCELERATION = "acceleration"
    TALENT_DEVELOPMENT = "talent_development"
    ADVANCED_SKILLS = "advanced_skills"
    CREATIVE_THINKING = "creative_thinking"
    LEADERSHIP = "leadership"


class PlanProgressStatus(str, Enum):
    """Lifecycle of a student's progress through a plan."""

    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


ACTIVE_PROGRESS_STATUSES = (
    PlanProgressStatus.ASSIGNED.value,
    PlanProgressStatus.IN_PROGRESS.value,
    PlanProgressStatus.PAUSED.value,
)


class EffectivenessLevel(str, Enum):
    """Effectiveness rating of an enhancement plan."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# Plans
# =============================================================================


class PlanBaseRequest(BaseModel):
    """Fields shared by both plan kinds on creation."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    subject_id: str
    grade_level: int = Field(ge=1, le=12)
    difficulty: Difficulty = Difficulty.MEDIUM
    objectives: list[Any] = Field(default_factory=list)
    activities: list[Any] = Field(default_factory=list)
    resources: list[Any] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)


class RecoveryPlanCreateRequest(PlanBaseRequest):
    """Create a recovery plan."""

    week_number: int = Field(ge=1, le=52)


class EnhancementPlanCreateRequest(PlanBaseRequest):
    """Create an enhancement plan."""

    plan_type: EnhancementPlanType = EnhancementPlanType.ENRICHMENT
    prerequisites: list[Any] = Field(default_factory=list)


class PlanBaseUpdateRequest(BaseModel):
    """Update a plan. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    subject_id: str | None = None
    grade_level: int | None = Field(default=None, ge=1, le=12)
    difficulty: Difficulty | None = None
    objectives: list[Any] | None = None
    activities: list[Any] | None = None
    resources: list[Any] | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    is_active: bool | None = None


class RecoveryPlanUpdateRequest(PlanBaseUpdateRequest):
    """Update a recovery plan."""

    week_number: int | None = Field(default=None, ge=1, le=52)


class EnhancementPlanUpdateRequest(PlanBaseUpdateRequest):
    """Update an enhancement plan."""

    plan_type: EnhancementPlanType | None = None
    prerequisites: list[Any] | None = None


class PlanResponse(BaseModel):
    """A plan with its assignment count."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    subject_id: str
    grade_level: int
    difficulty: str
    objectives: list[Any] = Field(default_factory=list)
    activities: list[Any] = Field(default_factory=list)
    resources: list[Any] = Field(default_factory=list)
    estimated_hours: float | None = None
    is_active: bool
    created_by: str
    assignment_count: int = 0
    created_at: datetime
    updated_at: datetime


class RecoveryPlanResponse(PlanResponse):
    """A recovery plan."""

    week_number: int


class EnhancementPlanResponse(PlanResponse):
    """An enhancement plan."""

    plan_type: str
    prerequisites: list[Any] = Field(default_factory=list)


class RecoveryPlanListResponse(ListResponse[RecoveryPlanResponse]):
    """Paginated recovery plans."""

    pass


class EnhancementPlanListResponse(ListResponse[EnhancementPlanResponse]):
    """Paginated enhancement plans."""

    pass


class PlanFilters(BaseModel):
    """Filters for plan listings.

    ``week_number`` applies to recovery plans and ``plan_type`` to
    enhancement plans. The other kind ignores them.
    """

    subject_id: str | None = None
    grade_level: int | None = None
    difficulty: Difficulty | None = None
    week_number: int | None = None
    plan_type: EnhancementPlanType | None = None
    is_active: bool | None = None
    search: str | None = None


# =============================================================================
# Progress
# =============================================================================


class AssignPlanRequest(BaseModel):
    """Assign a plan to a student."""

    student_id: str
    academic_year: str = Field(min_length=4, max_length=20)
    notes: str | None = None


class UpdateProgressRequest(BaseModel):
    """Update a student's progress through a plan.

    When ``progress_data`` is given without ``completion_rate``, the rate
    is derived from the activities it records.
    """

    status: PlanProgressStatus | None = None
    completion_rate: float | None = Field(default=None, ge=0, le=100)
    time_spent: int | None = Field(default=None, ge=0, description="Minutes")
    progress_data: dict[str, Any] | None = None
    notes: str | None = None


class PlanProgressResponse(BaseModel):
    """A student's progress through a plan."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    plan_id: str
    plan_title: str | None = None
    assigned_by: str | None = None
    academic_year: str
    status: str
    completion_rate: float
    time_spent: int
    progress_data: dict[str, Any] | None = None
    notes: str | None = None
    assigned_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class PlanProgressListResponse(ListResponse[PlanProgressResponse]):
    """Paginated plan progress rows."""

    pass


class ProgressFilters(BaseModel):
    """Filters for progress listings."""

    student_id: str | None = None
    plan_id: str | None = None
    status: PlanProgressStatus | None = None
    academic_year: str | None = None
    assigned_by: str | None = None


# =============================================================================
# Reports
# =============================================================================


class PlanGradeDistributionEntry(BaseModel):
    """Plans and assignments at one grade level."""

    grade_level: int
    plan_count: int
    assignment_count: int


class PlanStatistics(BaseModel):
    """Aggregate statistics for one plan kind."""

    total_plans: int
    active_plans: int
    total_assignments: int
    completed_assignments: int
    average_completion_rate: float
    average_time_spent: float
    grade_distribution: list[PlanGradeDistributionEntry]


class StudentPlanSummary(BaseModel):
    """A student's standing across the plans of one kind."""

    student_id: str
    plan_kind: PlanKind
    total_plans: int
    completed_plans: int
    in_progress_plans: int
    average_completion_rate: float
    total_time_spent: int
    current_plans: list[PlanProgressResponse]


class PlanEffectivenessReport(BaseModel):
    """How well an enhancement plan works for the students it is assigned to."""

    plan_id: str
    plan_title: str
    plan_kind: PlanKind
    total_assignments: int
    completed_assignments: int
    average_completion_rate: float
    average_time_spent: float
    effectiveness: EffectivenessLevel
    recommendations: list[str]
