# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School management API endpoints.

This module provides endpoints for school management:
- GET / - List schools with filtering
- POST / - Create a new school (admin)
- GET /{school_id} - Get school details
- PUT /{school_id} - Update school (admin)
- DELETE /{school_id} - Deactivate school (admin)
- GET /{school_id}/statistics - Enrollment statistics
- GET /{school_id}/teachers - Teachers at the school
- GET /{school_id}/classes - Classes at the school
- POST /{school_id}/teachers - Assign a teacher (admin)
- DELETE /{school_id}/teachers/{teacher_id} - Unassign a teacher (admin)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import AdminUser, AuthenticatedUser, get_school_service
from edupath.domains.school import (
    SchoolNotFoundError,
    SchoolService,
    SchoolServiceError,
    TeacherNotFoundError,
)
from edupath.models.common import MessageResponse
from edupath.models.school import (
    ClassResponse,
    SchoolCreateRequest,
    SchoolListResponse,
    SchoolResponse,
    SchoolStatistics,
    SchoolTeacherAssignRequest,
    SchoolTeacherResponse,
    SchoolUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[SchoolService, Depends(get_school_service)]


def _handle_error(error: SchoolServiceError) -> HTTPException:
    """Map a school service error to an HTTP error."""
    if isinstance(error, (SchoolNotFoundError, TeacherNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=SchoolListResponse, summary="List schools")
async def list_schools(
    current_user: AuthenticatedUser,
    service: Service,
    academic_year: str | None = Query(None, max_length=20),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> SchoolListResponse:
    """List schools ordered by name."""
    items, total = await service.list_schools(
        academic_year=academic_year,
        is_active=is_active,
        search=search,
        limit=limit,
        offset=offset,
    )
    return SchoolListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=SchoolResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create school",
)
async def create_school(
    data: SchoolCreateRequest,
    current_user: AdminUser,
    service: Service,
) -> SchoolResponse:
    """Create a new school."""
    logger.info("Creating school '%s' by %s", data.name, current_user.id)
    return await service.create_school(data)


@router.get("/{school_id}", response_model=SchoolResponse, summary="Get school")
async def get_school(
    school_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> SchoolResponse:
    """Get a school with its teacher and class counts."""
    try:
        return await service.get_school(school_id)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.put("/{school_id}", response_model=SchoolResponse, summary="Update school")
async def update_school(
    school_id: str,
    data: SchoolUpdateRequest,
    current_user: AdminUser,
    service: Service,
) -> SchoolResponse:
    """Update a school."""
    try:
        return await service.update_school(school_id, data)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.delete("/{school_id}", response_model=SchoolResponse, summary="Deactivate school")
async def delete_school(
    school_id: str,
    current_user: AdminUser,
    service: Service,
) -> SchoolResponse:
    """Soft-delete a school."""
    try:
        return await service.delete_school(school_id)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.get(
    "/{school_id}/statistics",
    response_model=SchoolStatistics,
    summary="School statistics",
)
async def school_statistics(
    school_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    academic_year: str | None = Query(None, max_length=20),
) -> SchoolStatistics:
    """Students, teachers, classes and grade distribution."""
    try:
        return await service.get_school_statistics(school_id, academic_year=academic_year)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.get(
    "/{school_id}/teachers",
    response_model=list[SchoolTeacherResponse],
    summary="School teachers",
)
async def school_teachers(
    school_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    academic_year: str | None = Query(None, max_length=20),
) -> list[SchoolTeacherResponse]:
    """Teachers assigned to a school."""
    try:
        return await service.get_school_teachers(school_id, academic_year=academic_year)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.get(
    "/{school_id}/classes",
    response_model=list[ClassResponse],
    summary="School classes",
)
async def school_classes(
    school_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    academic_year: str | None = Query(None, max_length=20),
) -> list[ClassResponse]:
    """Classes of a school."""
    try:
        return await service.get_school_classes(school_id, academic_year=academic_year)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.post(
    "/{school_id}/teachers",
    response_model=SchoolTeacherResponse,
    summary="Assign teacher",
)
async def assign_teacher(
    school_id: str,
    data: SchoolTeacherAssignRequest,
    current_user: AdminUser,
    service: Service,
) -> SchoolTeacherResponse:
    """Assign a teacher to a school for an academic year."""
    try:
        return await service.assign_teacher(school_id, data.teacher_id, data.academic_year)
    except SchoolServiceError as e:
        raise _handle_error(e)


@router.delete(
    "/{school_id}/teachers/{teacher_id}",
    response_model=MessageResponse,
    summary="Unassign teacher",
)
async def unassign_teacher(
    school_id: str,
    teacher_id: str,
    current_user: AdminUser,
    service: Service,
) -> MessageResponse:
    """Remove a teacher from a school."""
    try:
        await service.unassign_teacher(school_id, teacher_id)
    except SchoolServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Teacher unassigned successfully")
