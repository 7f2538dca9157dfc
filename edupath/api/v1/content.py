# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Content and subject API endpoints.

Subject endpoints:
- GET /subjects - List subjects, optionally for one grade
- POST /subjects - Create subject (admin)
- GET /subjects/{subject_id} - Get subject
- PUT /subjects/{subject_id} - Update subject (admin)
- DELETE /subjects/{subject_id} - Delete unused subject (admin)

Content endpoints:
- GET / - List content with filters and sorting
- POST / - Create content (teacher/admin)
- GET /stats - Content statistics (teacher/admin)
- GET /uuid/{uuid} - Get content by public UUID
- GET /{content_id} - Get content
- PUT /{content_id} - Update content (creator or admin)
- DELETE /{content_id} - Delete content (creator or admin)
- POST /{content_id}/like - Toggle like
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AdminUser,
    AuthenticatedUser,
    TeacherOrAdmin,
    get_content_service,
)
from edupath.domains.content import (
    ContentAccessDeniedError,
    ContentNotFoundError,
    ContentService,
    ContentServiceError,
    SubjectInUseError,
    SubjectNameExistsError,
    SubjectNotFoundError,
)
from edupath.models.common import Difficulty, MessageResponse, SortOrder
from edupath.models.content import (
    ContentCreateRequest,
    ContentFilters,
    ContentListResponse,
    ContentResponse,
    ContentSortField,
    ContentStats,
    ContentType,
    ContentUpdateRequest,
    LikeToggleResponse,
    SubjectCreateRequest,
    SubjectResponse,
    SubjectUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[ContentService, Depends(get_content_service)]


def _handle_error(error: ContentServiceError) -> HTTPException:
    """Map a content service error to an HTTP error."""
    if isinstance(error, (ContentNotFoundError, SubjectNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (SubjectNameExistsError, SubjectInUseError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, ContentAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


# =========================================================================
# Subjects
# =========================================================================


@router.get("/subjects", response_model=list[SubjectResponse], summary="List subjects")
async def list_subjects(
    current_user: AuthenticatedUser,
    service: Service,
    grade_level: int | None = Query(None, ge=1, le=12),
) -> list[SubjectResponse]:
    """List active subjects with their content counts."""
    return await service.list_subjects(grade_level=grade_level)


@router.post(
    "/subjects",
    response_model=SubjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create subject",
)
async def create_subject(
    data: SubjectCreateRequest,
    current_user: AdminUser,
    service: Service,
) -> SubjectResponse:
    """Create a subject."""
    try:
        return await service.create_subject(data)
    except ContentServiceError as e:
        raise _handle_error(e)


@router.get("/subjects/{subject_id}", response_model=SubjectResponse, summary="Get subject")
async def get_subject(
    subject_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> SubjectResponse:
    """Get a subject by ID."""
    try:
        return await service.get_subject(subject_id)
    except ContentServiceError as e:
        raise _handle_error(e)


@router.put("/subjects/{subject_id}", response_model=SubjectResponse, summary="Update subject")
async def update_subject(
    subject_id: str,
    data: SubjectUpdateRequest,
    current_user: AdminUser,
    service: Service,
) -> SubjectResponse:
    """Update a subject."""
    try:
        return await service.update_subject(subject_id, data)
    except ContentServiceError as e:
        raise _handle_error(e)


@router.delete(
    "/subjects/{subject_id}",
    response_model=MessageResponse,
    summary="Delete subject",
)
async def delete_subject(
    subject_id: str,
    current_user: AdminUser,
    service: Service,
) -> MessageResponse:
    """Delete a subject that no content references."""
    try:
        await service.delete_subject(subject_id)
    except ContentServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Subject deleted successfully")


# =========================================================================
# Content
# =========================================================================


@router.get("", response_model=ContentListResponse, summary="List content")
async def list_content(
    current_user: AuthenticatedUser,
    service: Service,
    subject_id: str | None = Query(None),
    grade_level: int | None = Query(None, ge=1, le=12),
    content_type: ContentType | None = Query(None),
    difficulty: Difficulty | None = Query(None),
    is_published: bool | None = Query(None),
    created_by: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    sort_by: ContentSortField = Query(ContentSortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ContentListResponse:
    """List content. Students only see published items."""
    filters = ContentFilters(
        subject_id=subject_id,
        grade_level=grade_level,
        content_type=content_type,
        difficulty=difficulty,
        is_published=is_published,
        created_by=created_by,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, total = await service.list_content(
        filters,
        limit=limit,
        offset=offset,
        viewer_role=current_user.role,
    )
    return ContentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=ContentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create content",
)
async def create_content(
    data: ContentCreateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> ContentResponse:
    """Create a content item owned by the current user."""
    try:
        return await service.create_content(data, created_by=current_user.id)
    except ContentServiceError as e:
        raise _handle_error(e)


@router.get("/stats", response_model=ContentStats, summary="Content statistics")
async def content_stats(
    current_user: TeacherOrAdmin,
    service: Service,
) -> ContentStats:
    """Get content totals and breakdowns."""
    return await service.get_content_stats()


@router.get("/uuid/{uuid}", response_model=ContentResponse, summary="Get content by UUID")
async def get_content_by_uuid(
    uuid: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> ContentResponse:
    """Get content by its public UUID and record the view."""
    try:
        return await service.get_content_by_uuid(
            uuid,
            viewer_id=current_user.id,
            viewer_role=current_user.role,
        )
    except ContentServiceError as e:
        raise _handle_error(e)


@router.get("/{content_id}", response_model=ContentResponse, summary="Get content")
async def get_content(
    content_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> ContentResponse:
    """Get content by ID and record the view."""
    try:
        return await service.get_content(
            content_id,
            viewer_id=current_user.id,
            viewer_role=current_user.role,
        )
    except ContentServiceError as e:
        raise _handle_error(e)


@router.put("/{content_id}", response_model=ContentResponse, summary="Update content")
async def update_content(
    content_id: str,
    data: ContentUpdateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> ContentResponse:
    """Update content. Only the creator or an admin may do so."""
    try:
        return await service.update_content(
            content_id,
            data,
            user_id=current_user.id,
            role=current_user.role,
        )
    except ContentServiceError as e:
        raise _handle_error(e)


@router.delete("/{content_id}", response_model=MessageResponse, summary="Delete content")
async def delete_content(
    content_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> MessageResponse:
    """Delete content. Only the creator or an admin may do so."""
    try:
        await service.delete_content(content_id, user_id=current_user.id, role=current_user.role)
    except ContentServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Content deleted successfully")


@router.post("/{content_id}/like", response_model=LikeToggleResponse, summary="Toggle like")
async def toggle_like(
    content_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> LikeToggleResponse:
    """Like content, or remove an existing like."""
    try:
        return await service.toggle_like(content_id, current_user.id)
    except ContentServiceError as e:
        raise _handle_error(e)
