# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Content and subject request/response models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from edupath.models.common import Difficulty, ListResponse, SortOrder


class ContentType(str, Enum):
    """Kinds of learning content."""

    LESSON = "lesson"
    VIDEO = "video"
    EXERCISE = "exercise"
    QUIZ = "quiz"
    DOCUMENT = "document"
    INTERACTIVE = "interactive"


class ContentSortField(str, Enum):
    """Columns content listings can be sorted by."""

    CREATED_AT = "created_at"
    TITLE = "title"
    VIEW_COUNT = "view_count"
    LIKE_COUNT = "like_count"


# =============================================================================
# Subjects
# =============================================================================


class SubjectCreateRequest(BaseModel):
    """Create a subject."""

    name: str = Field(min_length=1, max_length=100)
    name_ar: str | None = Field(default=None, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    grade_levels: list[int] = Field(default_factory=list)


class SubjectUpdateRequest(BaseModel):
    """Update a subject. Only provided fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    name_ar: str | None = Field(default=None, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    grade_levels: list[int] | None = None
    is_active: bool | None = None


class SubjectResponse(BaseModel):
    """Subject with its content count."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    name_ar: str | None = None
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    grade_levels: list[int] = []
    is_active: bool
    content_count: int = 0
    created_at: datetime


class SubjectSummary(BaseModel):
    """Minimal subject reference embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    name_ar: str | None = None
    color: str | None = None


# =============================================================================
# Content
# =============================================================================


class ContentCreateRequest(BaseModel):
    """Create a content item."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    content_type: ContentType
    subject_id: str
    grade_level: int = Field(ge=1, le=12)
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: list[str] = Field(default_factory=list)
    file_url: str | None = Field(default=None, max_length=500)
    thumbnail_url: str | None = Field(default=None, max_length=500)
    duration: int | None = Field(default=None, ge=0, description="Duration in minutes")
    is_published: bool = False


class ContentUpdateRequest(BaseModel):
    """Update a content item. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    content_type: ContentType | None = None
    subject_id: str | None = None
    grade_level: int | None = Field(default=None, ge=1, le=12)
    difficulty: Difficulty | None = None
    tags: list[str] | None = None
    file_url: str | None = Field(default=None, max_length=500)
    thumbnail_url: str | None = Field(default=None, max_length=500)
    duration: int | None = Field(default=None, ge=0)
    is_published: bool | None = None


class ContentResponse(BaseModel):
    """Content item."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    uuid: str
    title: str
    description: str | None = None
    content_type: str
    subject_id: str
    subject: SubjectSummary | None = None
    grade_level: int
    difficulty: str
    tags: list[str] = []
    file_url: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = None
    view_count: int
    like_count: int
    is_published: bool
    published_at: datetime | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class ContentListResponse(ListResponse[ContentResponse]):
    """Paginated content list."""

    pass


class ContentFilters(BaseModel):
    """Filters accepted by the content listing."""

    subject_id: str | None = None
    grade_level: int | None = None
    content_type: ContentType | None = None
    difficulty: Difficulty | None = None
    is_published: bool | None = None
    created_by: str | None = None
    search: str | None = None
    sort_by: ContentSortField = ContentSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class LikeToggleResponse(BaseModel):
    """Result of toggling a like."""

    liked: bool
    like_count: int


class ContentStats(BaseModel):
    """Aggregate content statistics."""

    total: int
    published: int
    draft: int
    total_views: int
    total_likes: int
    by_type: dict[str, int]
    by_grade: dict[int, int]
    by_subject: dict[str, int]
