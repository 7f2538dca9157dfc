# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment API endpoints.

Teacher endpoints:
- GET / - List assignments
- POST / - Create assignment
- GET /stats - Statistics for the current teacher (all for admins)
- GET /{assignment_id} - Get assignment with submission counts
- PUT /{assignment_id} - Update assignment (creator only)
- DELETE /{assignment_id} - Delete assignment (creator only)
- POST /{assignment_id}/publish - Publish and notify students
- GET /{assignment_id}/submissions - List submissions
- POST /submissions/{submission_id}/grade - Grade with late penalty

Student endpoints:
- POST /{assignment_id}/submit - Submit work
- PUT /submissions/{submission_id} - Update an ungraded submission
- GET /my-submissions - Own submissions
- GET /students/{student_id}/summary - Assignment summary
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AuthenticatedUser,
    StudentUser,
    TeacherOrAdmin,
    get_assignment_service,
)
from edupath.domains.assignment import (
    AlreadySubmittedError,
    AssignmentAccessDeniedError,
    AssignmentNotFoundError,
    AssignmentService,
    AssignmentServiceError,
    SubmissionNotFoundError,
)
from edupath.models.assignment import (
    AssignmentCreateRequest,
    AssignmentFilters,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentStats,
    AssignmentType,
    AssignmentUpdateRequest,
    GradeSubmissionRequest,
    StudentAssignmentSummary,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionStatus,
    SubmitAssignmentRequest,
)
from edupath.models.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[AssignmentService, Depends(get_assignment_service)]


def _handle_error(error: AssignmentServiceError) -> HTTPException:
    """Map an assignment service error to an HTTP error."""
    if isinstance(error, (AssignmentNotFoundError, SubmissionNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, AssignmentAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, AlreadySubmittedError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=AssignmentListResponse, summary="List assignments")
async def list_assignments(
    current_user: AuthenticatedUser,
    service: Service,
    subject_id: str | None = Query(None),
    grade_level: int | None = Query(None, ge=1, le=12),
    assignment_type: AssignmentType | None = Query(None),
    created_by: str | None = Query(None),
    is_published: bool | None = Query(None),
    due_after: datetime | None = Query(None),
    due_before: datetime | None = Query(None),
    search: str | None = Query(None, max_length=200),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> AssignmentListResponse:
    """List assignments. Students only see published ones."""
    filters = AssignmentFilters(
        subject_id=subject_id,
        grade_level=grade_level,
        assignment_type=assignment_type,
        created_by=created_by,
        is_published=is_published,
        due_after=due_after,
        due_before=due_before,
        search=search,
    )
    items, total = await service.list_assignments(
        filters,
        limit=limit,
        offset=offset,
        viewer_role=current_user.role,
    )
    return AssignmentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create assignment",
)
async def create_assignment(
    data: AssignmentCreateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssignmentResponse:
    """Create an assignment owned by the current user."""
    logger.info("Creating assignment '%s' by %s", data.title, current_user.id)
    return await service.create_assignment(data, created_by=current_user.id)


@router.get("/stats", response_model=AssignmentStats, summary="Assignment statistics")
async def assignment_stats(
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssignmentStats:
    """Statistics over the teacher's own assignments, or all for admins."""
    created_by = None if current_user.is_admin else current_user.id
    return await service.get_assignment_stats(created_by=created_by)


@router.get(
    "/my-submissions",
    response_model=SubmissionListResponse,
    summary="List own submissions",
)
async def my_submissions(
    current_user: StudentUser,
    service: Service,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> SubmissionListResponse:
    """List the current student's submissions."""
    items, total = await service.get_student_submissions(
        current_user.id,
        limit=limit,
        offset=offset,
    )
    return SubmissionListResponse(items=items, total=total, limit=limit, offset=offset)


@router.put(
    "/submissions/{submission_id}",
    response_model=SubmissionResponse,
    summary="Update submission",
)
async def update_submission(
    submission_id: str,
    data: SubmitAssignmentRequest,
    current_user: StudentUser,
    service: Service,
) -> SubmissionResponse:
    """Update an own submission that is not graded yet."""
    try:
        return await service.update_submission(submission_id, current_user.id, data)
    except AssignmentServiceError as e:
        raise _handle_error(e)


@router.post(
    "/submissions/{submission_id}/grade",
    response_model=SubmissionResponse,
    summary="Grade submission",
)
async def grade_submission(
    submission_id: str,
    data: GradeSubmissionRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> SubmissionResponse:
    """Grade a submission of an assignment the teacher created."""
    try:
        return await service.grade_submission(submission_id, current_user.id, data)
    except AssignmentServiceError as e:
        raise _handle_error(e)


@router.get(
    "/students/{student_id}/summary",
    response_model=StudentAssignmentSummary,
    summary="Student assignment summary",
)
async def student_summary(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> StudentAssignmentSummary:
    """Summarize a student's submissions. Students may only see their own."""
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return await service.get_student_assignment_summary(student_id)


@router.get("/{assignment_id}", response_model=AssignmentResponse, summary="Get assignment")
async def get_assignment(
    assignment_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> AssignmentResponse:
    """Get an assignment with its submission counts."""
    try:
        return await service.get_assignment(assignment_id)
    except AssignmentServiceError as e:
        raise _handle_error(e)


@router.put("/{assignment_id}", response_model=AssignmentResponse, summary="Update assignment")
async def update_assignment(
    assignment_id: str,
    data: AssignmentUpdateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssignmentResponse:
    """Update an assignment the current user created."""
    try:
        return await service.update_assignment(assignment_id, data, current_user.id)
    except AssignmentServiceError as e:
        raise _handle_error(e)


@router.delete(
    "/{assignment_id}",
    response_model=MessageResponse,
    summary="Delete assignment",
)
async def delete_assignment(
    assignment_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> MessageResponse:
    """Delete an assignment the current user created."""
    try:
        await service.delete_assignment(assignment_id, current_user.id)
    except AssignmentServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Assignment deleted successfully")


@router.post(
    "/{assignment_id}/publish",
    response_model=AssignmentResponse,
    summary="Publish assignment",
)
async def publish_assignment(
    assignment_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssignmentResponse:
    """Publish an assignment and notify students at its grade level."""
    try:
        return await service.publish_assignment(assignment_id, current_user.id)
    except AssignmentServiceError as e:
        raise _handle_error(e)


@router.post(
    "/{assignment_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit assignment",
)
async def submit_assignment(
    assignment_id: str,
    data: SubmitAssignmentRequest,
    current_user: StudentUser,
    service: Service,
) -> SubmissionResponse:
    """Submit work for a published assignment."""
    try:
        return await service.submit_assignment(assignment_id, current_user.id, data)
    except AssignmentServiceError as e:
        raise _handle_error(e)


@router.get(
    "/{assignment_id}/submissions",
    response_model=SubmissionListResponse,
    summary="List submissions",
)
async def list_submissions(
    assignment_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
    submission_status: SubmissionStatus | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> SubmissionListResponse:
    """List the submissions of an assignment."""
    try:
        items, total = await service.get_assignment_submissions(
            assignment_id,
            status=submission_status,
            limit=limit,
            offset=offset,
        )
    except AssignmentServiceError as e:
        raise _handle_error(e)
    return SubmissionListResponse(items=items, total=total, limit=limit, offset=offset)
