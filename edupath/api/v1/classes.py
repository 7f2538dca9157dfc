# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class management API endpoints.

This module provides endpoints for class/section management:
- GET / - List classes with filtering (teachers see their own)
- POST / - Create a new class (admin)
- GET /{class_id} - Get class details
- PUT /{class_id} - Update class (admin)
- DELETE /{class_id} - Deactivate class (admin)

Student enrollment endpoints:
- POST /{class_id}/enroll - Enroll a student (admin/teacher)
- POST /{class_id}/withdraw - Withdraw a student (admin/teacher)
- GET /{class_id}/students - List enrolled students
- GET /{class_id}/statistics - Capacity and utilization
- POST /students/{student_id}/transfer - Move a student between classes (admin)
- GET /students/{student_id}/enrollment-history - All enrollments of a student
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AdminUser,
    AuthenticatedUser,
    TeacherOrAdmin,
    get_class_service,
)
from edupath.domains.class_ import (
    AlreadyEnrolledError,
    ClassNotFoundError,
    ClassService,
    ClassServiceError,
    EnrollmentNotFoundError,
    StudentNotFoundError,
)
from edupath.models.school import (
    ClassCreateRequest,
    ClassFilters,
    ClassListResponse,
    ClassResponse,
    ClassStatistics,
    ClassUpdateRequest,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollStudentRequest,
    TransferResult,
    TransferStudentRequest,
    WithdrawStudentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[ClassService, Depends(get_class_service)]


def _handle_error(error: ClassServiceError) -> HTTPException:
    """Map a class service error to an HTTP error."""
    if isinstance(
        error,
        (ClassNotFoundError, StudentNotFoundError, EnrollmentNotFoundError),
    ):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, AlreadyEnrolledError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=ClassListResponse, summary="List classes")
async def list_classes(
    current_user: AuthenticatedUser,
    service: Service,
    school_id: str | None = Query(None),
    grade_level: int | None = Query(None, ge=1, le=12),
    academic_year: str | None = Query(None, max_length=20),
    teacher_id: str | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ClassListResponse:
    """List classes ordered by grade and section."""
    filters = ClassFilters(
        school_id=school_id,
        grade_level=grade_level,
        academic_year=academic_year,
        teacher_id=teacher_id,
        is_active=is_active,
        search=search,
    )
    items, total = await service.list_classes(
        filters,
        limit=limit,
        offset=offset,
        current_user_id=current_user.id,
        current_role=current_user.role,
    )
    return ClassListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
)
async def create_class(
    data: ClassCreateRequest,
    current_user: AdminUser,
    service: Service,
) -> ClassResponse:
    """Create a new class."""
    logger.info(
        "Creating class: %s%s in school %s by %s",
        data.grade_level,
        data.section,
        data.school_id,
        current_user.id,
    )
    try:
        return await service.create_class(data)
    except ClassServiceError as e:
        raise _handle_error(e)


@router.post(
    "/students/{student_id}/transfer",
    response_model=TransferResult,
    summary="Transfer student",
)
async def transfer_student(
    student_id: str,
    data: TransferStudentRequest,
    current_user: AdminUser,
    service: Service,
) -> TransferResult:
    """Withdraw from one class and enroll in another in one transaction."""
    try:
        return await service.transfer_student(
            student_id,
            data.from_class_id,
            data.to_class_id,
            academic_year=data.academic_year,
        )
    except ClassServiceError as e:
        raise _handle_error(e)


@router.get(
    "/students/{student_id}/enrollment-history",
    response_model=list[EnrollmentResponse],
    summary="Enrollment history",
)
async def enrollment_history(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> list[EnrollmentResponse]:
    """All enrollments of a student, newest first."""
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return await service.get_student_enrollment_history(student_id)


@router.get("/{class_id}", response_model=ClassResponse, summary="Get class")
async def get_class(
    class_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> ClassResponse:
    """Get class details."""
    try:
        return await service.get_class(class_id)
    except ClassServiceError as e:
        raise _handle_error(e)


@router.put("/{class_id}", response_model=ClassResponse, summary="Update class")
async def update_class(
    class_id: str,
    data: ClassUpdateRequest,
    current_user: AdminUser,
    service: Service,
) -> ClassResponse:
    """Update class details."""
    try:
        return await service.update_class(class_id, data)
    except ClassServiceError as e:
        raise _handle_error(e)


@router.delete("/{class_id}", response_model=ClassResponse, summary="Deactivate class")
async def delete_class(
    class_id: str,
    current_user: AdminUser,
    service: Service,
) -> ClassResponse:
    """Soft-delete a class."""
    try:
        return await service.delete_class(class_id)
    except ClassServiceError as e:
        raise _handle_error(e)


@router.post(
    "/{class_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll student",
)
async def enroll_student(
    class_id: str,
    data: EnrollStudentRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> EnrollmentResponse:
    """Enroll a student, respecting capacity and one class per year."""
    try:
        return await service.enroll_student(
            class_id,
            data.student_id,
            academic_year=data.academic_year,
        )
    except ClassServiceError as e:
        raise _handle_error(e)


@router.post(
    "/{class_id}/withdraw",
    response_model=EnrollmentResponse,
    summary="Withdraw student",
)
async def withdraw_student(
    class_id: str,
    data: WithdrawStudentRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> EnrollmentResponse:
    """Withdraw a student from a class."""
    try:
        return await service.withdraw_student(class_id, data.student_id)
    except ClassServiceError as e:
        raise _handle_error(e)


@router.get(
    "/{class_id}/students",
    response_model=EnrollmentListResponse,
    summary="List class students",
)
async def class_students(
    class_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    is_active: bool | None = Query(True),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> EnrollmentListResponse:
    """Students enrolled in a class."""
    try:
        items, total = await service.get_class_students(
            class_id,
            is_active=is_active,
            limit=limit,
            offset=offset,
        )
    except ClassServiceError as e:
        raise _handle_error(e)
    return EnrollmentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/{class_id}/statistics",
    response_model=ClassStatistics,
    summary="Class statistics",
)
async def class_statistics(
    class_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    academic_year: str | None = Query(None, max_length=20),
) -> ClassStatistics:
    """Capacity, enrolled students and utilization."""
    try:
        return await service.get_class_statistics(class_id, academic_year=academic_year)
    except ClassServiceError as e:
        raise _handle_error(e)
