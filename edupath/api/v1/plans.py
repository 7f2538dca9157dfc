# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recovery and enhancement plan API endpoints.

Both plan kinds expose the same endpoints, built by build_plan_router():
- GET / - List plans
- POST / - Create plan (teacher/admin)
- GET /statistics - Plan and assignment statistics (teacher/admin)
- GET /progress - Progress records (students see their own)
- PUT /progress/{progress_id} - Update progress (students their own)
- GET /students/{student_id}/summary - A student's plan summary
- GET /{plan_id} - Get plan
- PUT /{plan_id} - Update plan (teacher/admin)
- DELETE /{plan_id} - Deactivate plan (teacher/admin)
- POST /{plan_id}/assign - Assign plan to a student (teacher/admin)

Enhancement plans also have:
- GET /{plan_id}/effectiveness - Effectiveness report (teacher/admin)
"""

import logging
from typing import Annotated, Callable

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from edupath.api.dependencies import (
    AuthenticatedUser,
    TeacherOrAdmin,
    get_enhancement_plan_service,
    get_recovery_plan_service,
)
from edupath.api.middleware.auth import CurrentUser
from edupath.domains.plans import (
    EnhancementPlanService,
    PlanAlreadyAssignedError,
    PlanNotFoundError,
    PlanService,
    PlanServiceError,
    PlanStudentNotFoundError,
    PlanSubjectNotFoundError,
    ProgressNotFoundError,
)
from edupath.models.common import Difficulty
from edupath.models.plans import (
    AssignPlanRequest,
    EnhancementPlanCreateRequest,
    EnhancementPlanListResponse,
    EnhancementPlanResponse,
    EnhancementPlanType,
    EnhancementPlanUpdateRequest,
    PlanEffectivenessReport,
    PlanFilters,
    PlanProgressListResponse,
    PlanProgressResponse,
    PlanProgressStatus,
    PlanStatistics,
    ProgressFilters,
    RecoveryPlanCreateRequest,
    RecoveryPlanListResponse,
    RecoveryPlanResponse,
    RecoveryPlanUpdateRequest,
    StudentPlanSummary,
    UpdateProgressRequest,
)

logger = logging.getLogger(__name__)


def _handle_error(error: PlanServiceError) -> HTTPException:
    """Map a plan service error to an HTTP error."""
    if isinstance(
        error,
        (
            PlanNotFoundError,
            PlanStudentNotFoundError,
            PlanSubjectNotFoundError,
            ProgressNotFoundError,
        ),
    ):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, PlanAlreadyAssignedError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


def _check_student_access(current_user: CurrentUser, student_id: str) -> None:
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


def build_plan_router(
    get_service: Callable[..., PlanService],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
    response_model: type[BaseModel],
    list_model: type[BaseModel],
) -> APIRouter:
    """Build the CRUD, assignment and progress endpoints for one plan kind.

    Args:
        get_service: Dependency returning the plan service.
        create_model: Request body for plan creation.
        update_model: Request body for plan updates.
        response_model: Response model of a single plan.
        list_model: Paginated response model.

    Returns:
        Router to mount under the plan kind's prefix.
    """
    router = APIRouter()
    Service = Annotated[PlanService, Depends(get_service)]

    @router.get("", response_model=list_model, summary="List plans")
    async def list_plans(
        current_user: AuthenticatedUser,
        service: Service,
        subject_id: str | None = Query(None),
        grade_level: int | None = Query(None, ge=1, le=12),
        difficulty: Difficulty | None = Query(None),
        week_number: int | None = Query(None, ge=1, le=52),
        plan_type: EnhancementPlanType | None = Query(None),
        is_active: bool | None = Query(None),
        search: str | None = Query(None, max_length=200),
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ):
        """List plans with filters."""
        filters = PlanFilters(
            subject_id=subject_id,
            grade_level=grade_level,
            difficulty=difficulty,
            week_number=week_number,
            plan_type=plan_type,
            is_active=is_active,
            search=search,
        )
        items, total = await service.list_plans(filters, limit=limit, offset=offset)
        return list_model(items=items, total=total, limit=limit, offset=offset)

    @router.post(
        "",
        response_model=response_model,
        status_code=status.HTTP_201_CREATED,
        summary="Create plan",
    )
    async def create_plan(
        data: create_model,  # type: ignore[valid-type]
        current_user: TeacherOrAdmin,
        service: Service,
    ):
        """Create a plan owned by the current user."""
        try:
            return await service.create_plan(data, created_by=current_user.id)
        except PlanServiceError as e:
            raise _handle_error(e)

    @router.get("/statistics", response_model=PlanStatistics, summary="Plan statistics")
    async def plan_statistics(
        current_user: TeacherOrAdmin,
        service: Service,
        academic_year: str | None = Query(None, max_length=20),
    ) -> PlanStatistics:
        """Plan counts, assignment outcomes and grade distribution."""
        return await service.get_statistics(academic_year=academic_year)

    @router.get("/progress", response_model=PlanProgressListResponse, summary="List progress")
    async def list_progress(
        current_user: AuthenticatedUser,
        service: Service,
        student_id: str | None = Query(None),
        plan_id: str | None = Query(None),
        progress_status: PlanProgressStatus | None = Query(None, alias="status"),
        academic_year: str | None = Query(None, max_length=20),
        assigned_by: str | None = Query(None),
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ) -> PlanProgressListResponse:
        """List progress records. Students only see their own."""
        if current_user.is_student:
            student_id = current_user.id
        filters = ProgressFilters(
            student_id=student_id,
            plan_id=plan_id,
            status=progress_status,
            academic_year=academic_year,
            assigned_by=assigned_by,
        )
        items, total = await service.get_progress(filters, limit=limit, offset=offset)
        return PlanProgressListResponse(items=items, total=total, limit=limit, offset=offset)

    @router.put(
        "/progress/{progress_id}",
        response_model=PlanProgressResponse,
        summary="Update progress",
    )
    async def update_progress(
        progress_id: str,
        data: UpdateProgressRequest,
        current_user: AuthenticatedUser,
        service: Service,
    ) -> PlanProgressResponse:
        """Update completion, time spent or status of a progress record."""
        owner = current_user.id if current_user.is_student else None
        try:
            return await service.update_progress(progress_id, data, student_id=owner)
        except PlanServiceError as e:
            raise _handle_error(e)

    @router.get(
        "/students/{student_id}/summary",
        response_model=StudentPlanSummary,
        summary="Student plan summary",
    )
    async def student_summary(
        student_id: str,
        current_user: AuthenticatedUser,
        service: Service,
        academic_year: str | None = Query(None, max_length=20),
    ) -> StudentPlanSummary:
        """Totals and current plans of one student."""
        _check_student_access(current_user, student_id)
        return await service.get_student_summary(student_id, academic_year=academic_year)

    @router.get("/{plan_id}", response_model=response_model, summary="Get plan")
    async def get_plan(
        plan_id: str,
        current_user: AuthenticatedUser,
        service: Service,
    ):
        """Get a plan with its assignment count."""
        try:
            return await service.get_plan(plan_id)
        except PlanServiceError as e:
            raise _handle_error(e)

    @router.put("/{plan_id}", response_model=response_model, summary="Update plan")
    async def update_plan(
        plan_id: str,
        data: update_model,  # type: ignore[valid-type]
        current_user: TeacherOrAdmin,
        service: Service,
    ):
        """Update a plan."""
        try:
            return await service.update_plan(plan_id, data)
        except PlanServiceError as e:
            raise _handle_error(e)

    @router.delete("/{plan_id}", response_model=response_model, summary="Deactivate plan")
    async def delete_plan(
        plan_id: str,
        current_user: TeacherOrAdmin,
        service: Service,
    ):
        """Soft-delete a plan."""
        try:
            return await service.delete_plan(plan_id)
        except PlanServiceError as e:
            raise _handle_error(e)

    @router.post(
        "/{plan_id}/assign",
        response_model=PlanProgressResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Assign plan",
    )
    async def assign_plan(
        plan_id: str,
        data: AssignPlanRequest,
        current_user: TeacherOrAdmin,
        service: Service,
    ) -> PlanProgressResponse:
        """Assign a plan to a student and notify them."""
        try:
            return await service.assign_plan(plan_id, data, assigned_by=current_user.id)
        except PlanServiceError as e:
            raise _handle_error(e)

    return router


recovery_router = build_plan_router(
    get_recovery_plan_service,
    RecoveryPlanCreateRequest,
    RecoveryPlanUpdateRequest,
    RecoveryPlanResponse,
    RecoveryPlanListResponse,
)

enhancement_router = build_plan_router(
    get_enhancement_plan_service,
    EnhancementPlanCreateRequest,
    EnhancementPlanUpdateRequest,
    EnhancementPlanResponse,
    EnhancementPlanListResponse,
)


@enhancement_router.get(
    "/{plan_id}/effectiveness",
    response_model=PlanEffectivenessReport,
    summary="Plan effectiveness",
)
async def plan_effectiveness(
    plan_id: str,
    current_user: TeacherOrAdmin,
    service: Annotated[EnhancementPlanService, Depends(get_enhancement_plan_service)],
) -> PlanEffectivenessReport:
    """Completion outcomes and recommendations for an enhancement plan."""
    try:
        return await service.get_plan_effectiveness_report(plan_id)
    except PlanServiceError as e:
        raise _handle_error(e)
