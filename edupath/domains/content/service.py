# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Content service for the learning library.

This module provides the ContentService that handles:
- Subject CRUD operations
- Content CRUD with creator/admin ownership checks
- View tracking and per-user likes
- Content statistics

Example:
    >>> service = ContentService(db)
    >>> content = await service.create_content(request, created_by=teacher_id)
    >>> page, total = await service.list_content(ContentFilters(grade_level=5))
"""

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.auth.permissions import UserRole
from edupath.infrastructure.database.models import (
    Content,
    ContentLike,
    ContentView,
    Subject,
)
from edupath.models.common import SortOrder
from edupath.models.content import (
    ContentCreateRequest,
    ContentFilters,
    ContentResponse,
    ContentStats,
    ContentUpdateRequest,
    LikeToggleResponse,
    SubjectCreateRequest,
    SubjectResponse,
    SubjectUpdateRequest,
)
from edupath.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ContentServiceError(Exception):
    """Base exception for content service errors."""

    pass


class ContentNotFoundError(ContentServiceError):
    """Raised when content is not found."""

    pass


class ContentAccessDeniedError(ContentServiceError):
    """Raised when a user may not modify content they did not create."""

    pass


class SubjectNotFoundError(ContentServiceError):
    """Raised when a subject is not found."""

    pass


class SubjectNameExistsError(ContentServiceError):
    """Raised when a subject name is already taken."""

    pass


class SubjectInUseError(ContentServiceError):
    """Raised when deleting a subject that still has content."""

    pass


class ContentService:
    """Service for subjects and learning content.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the content service.

        Args:
            db: Async database session.
        """
        self._db = db

    # =========================================================================
    # Subjects
    # =========================================================================

    async def create_subject(self, request: SubjectCreateRequest) -> SubjectResponse:
        """Create a subject.

        Raises:
            SubjectNameExistsError: If the name is already taken.
        """
        if await self._get_subject_by_name(request.name):
            raise SubjectNameExistsError(f"Subject '{request.name}' already exists")

        subject = Subject(
            name=request.name,
            name_ar=request.name_ar,
            description=request.description,
            icon=request.icon,
            color=request.color,
            grade_levels=list(request.grade_levels),
            is_active=True,
        )
        self._db.add(subject)
        await self._db.commit()

        logger.info("Subject created: %s (%s)", subject.id, subject.name)
        return self._subject_to_response(subject, 0)

    async def update_subject(
        self,
        subject_id: str,
        request: SubjectUpdateRequest,
    ) -> SubjectResponse:
        """Update a subject.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            SubjectNameExistsError: If renaming to a taken name.
        """
        subject = await self._get_subject(subject_id)
        if not subject:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")

        updates = request.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] != subject.name:
            if await self._get_subject_by_name(updates["name"]):
                raise SubjectNameExistsError(f"Subject '{updates['name']}' already exists")

        for field, value in updates.items():
            setattr(subject, field, list(value) if field == "grade_levels" else value)

        await self._db.commit()
        logger.info("Subject updated: %s", subject_id)
        return self._subject_to_response(subject, await self._count_subject_content(subject_id))

    async def delete_subject(self, subject_id: str) -> None:
        """Delete a subject that has no content.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            SubjectInUseError: If content still references the subject.
        """
        subject = await self._get_subject(subject_id)
        if not subject:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")

        if await self._count_subject_content(subject_id) > 0:
            raise SubjectInUseError("Cannot delete subject with existing content")

        await self._db.delete(subject)
        await self._db.commit()
        logger.info("Subject deleted: %s", subject_id)

    async def get_subject(self, subject_id: str) -> SubjectResponse:
        """Get a subject with its content count.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
        """
        subject = await self._get_subject(subject_id)
        if not subject:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")
        return self._subject_to_response(subject, await self._count_subject_content(subject_id))

    async def list_subjects(self, grade_level: int | None = None) -> list[SubjectResponse]:
        """List active subjects ordered by name.

        Args:
            grade_level: Only subjects taught at this grade.

        Returns:
            Subjects with their content counts.
        """
        result = await self._db.execute(
            select(Subject).where(Subject.is_active.is_(True)).order_by(Subject.name.asc())
        )
        subjects = list(result.scalars().all())
        if grade_level is not None:
            subjects = [s for s in subjects if grade_level in (s.grade_levels or [])]

        counts_result = await self._db.execute(
            select(Content.subject_id, func.count(Content.id)).group_by(Content.subject_id)
        )
        counts = dict(counts_result.all())

        return [self._subject_to_response(s, counts.get(s.id, 0)) for s in subjects]

    # =========================================================================
    # Content
    # =========================================================================

    async def create_content(
        self,
        request: ContentCreateRequest,
        created_by: str,
    ) -> ContentResponse:
        """Create a content item.

        Args:
            request: Content creation request.
            created_by: ID of the teacher or admin creating it.

        Returns:
            Created content.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
        """
        if not await self._get_subject(request.subject_id):
            raise SubjectNotFoundError(f"Subject {request.subject_id} not found")

        content = Content(
            title=request.title,
            description=request.description,
            content_type=request.content_type.value,
            subject_id=request.subject_id,
            grade_level=request.grade_level,
            difficulty=request.difficulty.value,
            tags=list(request.tags),
            file_url=request.file_url,
            thumbnail_url=request.thumbnail_url,
            duration=request.duration,
            view_count=0,
            like_count=0,
            is_published=request.is_published,
            published_at=utc_now() if request.is_published else None,
            created_by=created_by,
        )
        self._db.add(content)
        await self._db.commit()

        logger.info("Content created: %s by %s", content.id, created_by)
        return await self._reload_response(content.id)

    async def update_content(
        self,
        content_id: str,
        request: ContentUpdateRequest,
        user_id: str,
        role: str,
    ) -> ContentResponse:
        """Update content. Only the creator or an admin may do this.

        Raises:
            ContentNotFoundError: If the content does not exist.
            ContentAccessDeniedError: If the user is neither creator nor admin.
            SubjectNotFoundError: If moving to an unknown subject.
        """
        content = await self._get_owned_content(content_id, user_id, role)

        updates = request.model_dump(exclude_unset=True)
        if updates.get("subject_id") and not await self._get_subject(updates["subject_id"]):
            raise SubjectNotFoundError(f"Subject {updates['subject_id']} not found")

        if updates.get("is_published") and not content.is_published:
            content.published_at = utc_now()
        if "content_type" in updates and request.content_type is not None:
            updates["content_type"] = request.content_type.value
        if "difficulty" in updates and request.difficulty is not None:
            updates["difficulty"] = request.difficulty.value
        if "tags" in updates and updates["tags"] is not None:
            updates["tags"] = list(updates["tags"])

        for field, value in updates.items():
            setattr(content, field, value)

        await self._db.commit()
        logger.info("Content updated: %s by %s", content_id, user_id)
        return await self._reload_response(content_id)

    async def delete_content(self, content_id: str, user_id: str, role: str) -> None:
        """Delete content. Only the creator or an admin may do this.

        Raises:
            ContentNotFoundError: If the content does not exist.
            ContentAccessDeniedError: If the user is neither creator nor admin.
        """
        content = await self._get_owned_content(content_id, user_id, role)

        await self._db.execute(delete(ContentView).where(ContentView.content_id == content_id))
        await self._db.execute(delete(ContentLike).where(ContentLike.content_id == content_id))
        await self._db.delete(content)
        await self._db.commit()
        logger.info("Content deleted: %s by %s", content_id, user_id)

    async def get_content(
        self,
        content_id: str,
        viewer_id: str | None = None,
        viewer_role: str | None = None,
    ) -> ContentResponse:
        """Get content and record a view for the viewer.

        Raises:
            ContentNotFoundError: If the content does not exist or is
                unpublished and the viewer is a student.
        """
        result = await self._db.execute(select(Content).where(Content.id == content_id))
        return await self._view(result.scalar_one_or_none(), content_id, viewer_id, viewer_role)

    async def get_content_by_uuid(
        self,
        uuid: str,
        viewer_id: str | None = None,
        viewer_role: str | None = None,
    ) -> ContentResponse:
        """Get content by its public UUID and record a view."""
        result = await self._db.execute(select(Content).where(Content.uuid == uuid))
        return await self._view(result.scalar_one_or_none(), uuid, viewer_id, viewer_role)

    async def list_content(
        self,
        filters: ContentFilters,
        limit: int = 20,
        offset: int = 0,
        viewer_role: str | None = None,
    ) -> tuple[list[ContentResponse], int]:
        """List content with filtering, sorting and pagination.

        Students only ever see published content.

        Returns:
            Tuple of (content list, total count).
        """
        stmt = select(Content)

        if filters.subject_id:
            stmt = stmt.where(Content.subject_id == filters.subject_id)
        if filters.grade_level is not None:
            stmt = stmt.where(Content.grade_level == filters.grade_level)
        if filters.content_type:
            stmt = stmt.where(Content.content_type == filters.content_type.value)
        if filters.difficulty:
            stmt = stmt.where(Content.difficulty == filters.difficulty.value)
        if filters.created_by:
            stmt = stmt.where(Content.created_by == filters.created_by)

        if viewer_role == UserRole.STUDENT.value:
            stmt = stmt.where(Content.is_published.is_(True))
        elif filters.is_published is not None:
            stmt = stmt.where(Content.is_published.is_(filters.is_published))

        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Content.title.ilike(search_term),
                    Content.description.ilike(search_term),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        sort_column = getattr(Content, filters.sort_by.value)
        if filters.sort_order == SortOrder.ASC:
            stmt = stmt.order_by(sort_column.asc(), Content.id.asc())
        else:
            stmt = stmt.order_by(sort_column.desc(), Content.id.asc())

        result = await self._db.execute(stmt.limit(limit).offset(offset))
        items = [ContentResponse.model_validate(c) for c in result.scalars().all()]
        return items, total

    async def toggle_like(self, content_id: str, user_id: str) -> LikeToggleResponse:
        """Like content, or remove an existing like.

        Raises:
            ContentNotFoundError: If the content does not exist.
        """
        content = await self._get_content(content_id)
        if not content:
            raise ContentNotFoundError(f"Content {content_id} not found")

        result = await self._db.execute(
            select(ContentLike).where(
                ContentLike.content_id == content_id,
                ContentLike.user_id == user_id,
            )
        )
        existing = result.scalar_one_or_none()

        if existing:
            await self._db.delete(existing)
            content.like_count = max(0, (content.like_count or 0) - 1)
            liked = False
        else:
            self._db.add(ContentLike(content_id=content_id, user_id=user_id))
            content.like_count = (content.like_count or 0) + 1
            liked = True

        await self._db.commit()
        return LikeToggleResponse(liked=liked, like_count=content.like_count)

    async def get_content_stats(self) -> ContentStats:
        """Aggregate content statistics."""
        total = await self._db.scalar(select(func.count()).select_from(Content)) or 0
        published = await self._db.scalar(
            select(func.count()).select_from(Content).where(Content.is_published.is_(True))
        ) or 0
        total_views = await self._db.scalar(
            select(func.coalesce(func.sum(Content.view_count), 0))
        )
        total_likes = await self._db.scalar(
            select(func.coalesce(func.sum(Content.like_count), 0))
        )

        by_type = await self._db.execute(
            select(Content.content_type, func.count(Content.id)).group_by(Content.content_type)
        )
        by_grade = await self._db.execute(
            select(Content.grade_level, func.count(Content.id))
            .group_by(Content.grade_level)
            .order_by(Content.grade_level)
        )
        by_subject = await self._db.execute(
            select(Subject.name, func.count(Content.id))
            .select_from(Content)
            .join(Subject, Subject.id == Content.subject_id)
            .group_by(Subject.name)
        )

        return ContentStats(
            total=total,
            published=published,
            draft=total - published,
            total_views=int(total_views or 0),
            total_likes=int(total_likes or 0),
            by_type=dict(by_type.all()),
            by_grade=dict(by_grade.all()),
            by_subject=dict(by_subject.all()),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _view(
        self,
        content: Content | None,
        identifier: str,
        viewer_id: str | None,
        viewer_role: str | None,
    ) -> ContentResponse:
        if not content:
            raise ContentNotFoundError(f"Content {identifier} not found")
        if viewer_role == UserRole.STUDENT.value and not content.is_published:
            raise ContentNotFoundError(f"Content {identifier} not found")

        content.view_count = (content.view_count or 0) + 1
        if viewer_id:
            seen = await self._db.scalar(
                select(func.count())
                .select_from(ContentView)
                .where(
                    ContentView.content_id == content.id,
                    ContentView.user_id == viewer_id,
                )
            )
            if not seen:
                self._db.add(ContentView(content_id=content.id, user_id=viewer_id))

        content_id = content.id
        try:
            await self._db.commit()
        except IntegrityError:
            # Viewer row already written by a concurrent request.
            await self._db.rollback()
            content = await self._get_content(content_id)
            content.view_count = (content.view_count or 0) + 1
            await self._db.commit()

        return ContentResponse.model_validate(content)

    async def _get_owned_content(self, content_id: str, user_id: str, role: str) -> Content:
        content = await self._get_content(content_id)
        if not content:
            raise ContentNotFoundError(f"Content {content_id} not found")
        if content.created_by != user_id and role != UserRole.ADMIN.value:
            raise ContentAccessDeniedError("Only the creator or an admin can modify this content")
        return content

    async def _get_content(self, content_id: str) -> Content | None:
        result = await self._db.execute(select(Content).where(Content.id == content_id))
        return result.scalar_one_or_none()

    async def _reload_response(self, content_id: str) -> ContentResponse:
        result = await self._db.execute(
            select(Content)
            .where(Content.id == content_id)
            .execution_options(populate_existing=True)
        )
        return ContentResponse.model_validate(result.scalar_one())

    async def _get_subject(self, subject_id: str) -> Subject | None:
        result = await self._db.execute(select(Subject).where(Subject.id == subject_id))
        return result.scalar_one_or_none()

    async def _get_subject_by_name(self, name: str) -> Subject | None:
        result = await self._db.execute(select(Subject).where(Subject.name == name))
        return result.scalar_one_or_none()

    async def _count_subject_content(self, subject_id: str) -> int:
        count = await self._db.scalar(
            select(func.count()).select_from(Content).where(Content.subject_id == subject_id)
        )
        return count or 0

    @staticmethod
    def _subject_to_response(subject: Subject, content_count: int) -> SubjectResponse:
        response = SubjectResponse.model_validate(subject)
        response.content_count = content_count
        return response
