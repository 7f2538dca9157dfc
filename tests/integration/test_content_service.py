# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the content service against SQLite."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from edupath.domains.content.service import (
    ContentAccessDeniedError,
    ContentNotFoundError,
    ContentService,
    SubjectInUseError,
)
from edupath.infrastructure.database.models import ContentLike, ContentView
from edupath.models.common import SortOrder
from edupath.models.content import (
    ContentCreateRequest,
    ContentFilters,
    ContentSortField,
    ContentType,
    ContentUpdateRequest,
    SubjectCreateRequest,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return ContentService(db_session)


@pytest.fixture
def make_content(service, subject, teacher):
    """Factory creating content owned by the teacher fixture."""

    async def _make_content(title: str = "Adding Fractions", **overrides):
        data = {
            "title": title,
            "content_type": ContentType.LESSON,
            "subject_id": subject.id,
            "grade_level": 5,
            "is_published": True,
        }
        data.update(overrides)
        return await service.create_content(ContentCreateRequest(**data), teacher.id)

    return _make_content


async def _count(db_session, model, content_id: str) -> int:
    return await db_session.scalar(
        select(func.count()).select_from(model).where(model.content_id == content_id)
    )


class TestSubjects:
    """Tests for the subject guard."""

    @pytest.mark.asyncio
    async def test_subject_with_content_cannot_be_deleted(self, service, subject, make_content):
        await make_content()

        with pytest.raises(SubjectInUseError):
            await service.delete_subject(subject.id)

    @pytest.mark.asyncio
    async def test_empty_subject_is_deleted(self, service):
        created = await service.create_subject(SubjectCreateRequest(name="Science"))

        await service.delete_subject(created.id)

        assert [s.name for s in await service.list_subjects()] == []

    @pytest.mark.asyncio
    async def test_content_count(self, service, subject, make_content):
        await make_content()
        await make_content("Dividing Fractions")

        fetched = await service.get_subject(subject.id)

        assert fetched.content_count == 2


class TestLikesAndViews:
    """Tests for likes and view tracking."""

    @pytest.mark.asyncio
    async def test_toggle_like_on_and_off(self, service, db_session, make_content, student):
        content = await make_content()

        liked = await service.toggle_like(content.id, student.id)
        assert liked.liked is True
        assert liked.like_count == 1
        assert await _count(db_session, ContentLike, content.id) == 1

        unliked = await service.toggle_like(content.id, student.id)
        assert unliked.liked is False
        assert unliked.like_count == 0
        assert await _count(db_session, ContentLike, content.id) == 0

    @pytest.mark.asyncio
    async def test_likes_are_per_user(self, service, make_content, student, make_user):
        content = await make_content()
        other = await make_user("student")

        await service.toggle_like(content.id, student.id)
        result = await service.toggle_like(content.id, other.id)

        assert result.like_count == 2

    @pytest.mark.asyncio
    async def test_like_unknown_content(self, service, student):
        with pytest.raises(ContentNotFoundError):
            await service.toggle_like("missing-content", student.id)

    @pytest.mark.asyncio
    async def test_every_view_counts_one_row_per_viewer(
        self, service, db_session, make_content, student
    ):
        content = await make_content()

        for _ in range(3):
            viewed = await service.get_content(content.id, student.id, "student")

        assert viewed.view_count == 3
        assert await _count(db_session, ContentView, content.id) == 1

    @pytest.mark.asyncio
    async def test_view_by_uuid(self, service, db_session, make_content, student):
        content = await make_content()

        viewed = await service.get_content_by_uuid(content.uuid, student.id, "student")

        assert viewed.id == content.id
        assert viewed.view_count == 1
        assert await _count(db_session, ContentView, content.id) == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_view_is_still_counted(
        self, service, db_session, make_content, student, monkeypatch
    ):
        content = await make_content()
        await service.get_content(content.id, student.id, "student")
        # The viewer row lands between the existence check and the insert.
        monkeypatch.setattr(db_session, "scalar", AsyncMock(return_value=0))

        viewed = await service.get_content(content.id, student.id, "student")

        monkeypatch.undo()
        assert viewed.view_count == 2
        assert await _count(db_session, ContentView, content.id) == 1


class TestVisibility:
    """Tests for what students can see."""

    @pytest.mark.asyncio
    async def test_students_list_published_only(self, service, make_content):
        await make_content("Published")
        await make_content("Draft", is_published=False)

        student_items, student_total = await service.list_content(
            ContentFilters(is_published=False), viewer_role="student"
        )
        teacher_items, teacher_total = await service.list_content(
            ContentFilters(), viewer_role="teacher"
        )

        assert student_total == 1
        assert [c.title for c in student_items] == ["Published"]
        assert teacher_total == 2

    @pytest.mark.asyncio
    async def test_students_cannot_open_drafts(self, service, make_content, student, teacher):
        draft = await make_content("Draft", is_published=False)

        with pytest.raises(ContentNotFoundError):
            await service.get_content(draft.id, student.id, "student")

        opened = await service.get_content(draft.id, teacher.id, "teacher")
        assert opened.is_published is False

    @pytest.mark.asyncio
    async def test_publishing_sets_timestamp(self, service, make_content, teacher):
        draft = await make_content("Draft", is_published=False)
        assert draft.published_at is None

        updated = await service.update_content(
            draft.id, ContentUpdateRequest(is_published=True), teacher.id, "teacher"
        )

        assert updated.is_published is True
        assert updated.published_at is not None


class TestOwnership:
    """Tests for creator-or-admin modification rules."""

    @pytest.mark.asyncio
    async def test_other_teacher_cannot_update(self, service, make_content, make_user):
        content = await make_content()
        other = await make_user("teacher")

        with pytest.raises(ContentAccessDeniedError):
            await service.update_content(
                content.id, ContentUpdateRequest(title="Hijacked"), other.id, "teacher"
            )

    @pytest.mark.asyncio
    async def test_other_teacher_cannot_delete(self, service, make_content, make_user):
        content = await make_content()
        other = await make_user("teacher")

        with pytest.raises(ContentAccessDeniedError):
            await service.delete_content(content.id, other.id, "teacher")

    @pytest.mark.asyncio
    async def test_admin_can_update(self, service, make_content, admin):
        content = await make_content()

        updated = await service.update_content(
            content.id,
            ContentUpdateRequest(title="Fractions Revisited", content_type=ContentType.VIDEO),
            admin.id,
            "admin",
        )

        assert updated.title == "Fractions Revisited"
        assert updated.content_type == "video"

    @pytest.mark.asyncio
    async def test_creator_delete_removes_likes_and_views(
        self, service, db_session, make_content, teacher, student
    ):
        content = await make_content()
        await service.get_content(content.id, student.id, "student")
        await service.toggle_like(content.id, student.id)

        await service.delete_content(content.id, teacher.id, "teacher")

        with pytest.raises(ContentNotFoundError):
            await service.get_content(content.id, teacher.id, "teacher")
        assert await _count(db_session, ContentView, content.id) == 0
        assert await _count(db_session, ContentLike, content.id) == 0


class TestListingAndStats:
    """Tests for sorting, filtering and aggregate statistics."""

    @pytest.mark.asyncio
    async def test_sort_by_title(self, service, make_content):
        for title in ("Decimals", "Angles", "Ratios"):
            await make_content(title)

        ascending, _ = await service.list_content(
            ContentFilters(sort_by=ContentSortField.TITLE, sort_order=SortOrder.ASC)
        )
        descending, _ = await service.list_content(
            ContentFilters(sort_by=ContentSortField.TITLE, sort_order=SortOrder.DESC)
        )

        assert [c.title for c in ascending] == ["Angles", "Decimals", "Ratios"]
        assert [c.title for c in descending] == ["Ratios", "Decimals", "Angles"]

    @pytest.mark.asyncio
    async def test_sort_by_view_count(self, service, make_content, student):
        quiet = await make_content("Quiet")
        popular = await make_content("Popular")
        await service.get_content(popular.id, student.id, "student")
        await service.get_content(popular.id, student.id, "student")
        await service.get_content(quiet.id, student.id, "student")

        items, _ = await service.list_content(
            ContentFilters(sort_by=ContentSortField.VIEW_COUNT)
        )

        assert [c.title for c in items] == ["Popular", "Quiet"]

    @pytest.mark.asyncio
    async def test_search_and_pagination(self, service, make_content):
        await make_content("Adding Fractions")
        await make_content("Fraction Games", content_type=ContentType.INTERACTIVE)
        await make_content("Long Division")

        items, total = await service.list_content(
            ContentFilters(
                search="fraction", sort_by=ContentSortField.TITLE, sort_order=SortOrder.ASC
            ),
            limit=1,
            offset=1,
        )

        assert total == 2
        assert [c.title for c in items] == ["Fraction Games"]

    @pytest.mark.asyncio
    async def test_content_stats(self, service, make_content, student):
        lesson = await make_content("Adding Fractions")
        await make_content("Fraction Video", content_type=ContentType.VIDEO, grade_level=6)
        await make_content("Draft", is_published=False)
        await service.get_content(lesson.id, student.id, "student")
        await service.get_content(lesson.id, student.id, "student")
        await service.toggle_like(lesson.id, student.id)

        stats = await service.get_content_stats()

        assert stats.total == 3
        assert stats.published == 2
        assert stats.draft == 1
        assert stats.total_views == 2
        assert stats.total_likes == 1
        assert stats.by_type == {"lesson": 2, "video": 1}
        assert stats.by_grade == {5: 2, 6: 1}
        assert stats.by_subject == {"Mathematics": 3}
