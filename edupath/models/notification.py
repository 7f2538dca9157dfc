# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification request/response models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from edupath.models.common import ListResponse


class NotificationType(str, Enum):
    """Notification categories."""

    ASSIGNMENT = "assignment"
    GRADE = "grade"
    ACHIEVEMENT = "achievement"
    SYSTEM = "system"
    REMINDER = "reminder"
    ANNOUNCEMENT = "announcement"


class SendNotificationRequest(BaseModel):
    """Send a notification to one user."""

    user_id: str
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    notification_type: NotificationType
    reference_id: str | None = None
    reference_type: str | None = Field(default=None, max_length=30)


class BulkNotificationRequest(BaseModel):
    """Send the same notification to many users."""

    user_ids: list[str] = Field(min_length=1)
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    notification_type: NotificationType
    reference_id: str | None = None
    reference_type: str | None = Field(default=None, max_length=30)


class NotificationResponse(BaseModel):
    """A notification."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    message: str
    notification_type: str
    reference_id: str | None = None
    reference_type: str | None = None
    is_read: bool
    sent_at: datetime
    read_at: datetime | None = None
    delivery: dict[str, Any] | None = None


class NotificationListResponse(ListResponse[NotificationResponse]):
    """Paginated notifications."""

    pass


class NotificationFilters(BaseModel):
    """Filters for the notification listing."""

    notification_type: NotificationType | None = None
    is_read: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class BulkSendResult(BaseModel):
    """Outcome of a bulk send."""

    success: bool = True
    sent_count: int
    failed_user_ids: list[str] = []


class UnreadCountResponse(BaseModel):
    """Unread notification count."""

    unread_count: int


class NotificationPreferenceResponse(BaseModel):
    """Per-user delivery preferences."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email_notifications: bool
    push_notifications: bool
    assignment_reminders: bool
    grade_notifications: bool
    achievement_notifications: bool
    system_notifications: bool
    push_tokens: list[str] = []


class NotificationPreferenceUpdate(BaseModel):
    """Update preferences. Only provided fields change."""

    email_notifications: bool | None = None
    push_notifications: bool | None = None
    assignment_reminders: bool | None = None
    grade_notifications: bool | None = None
    achievement_notifications: bool | None = None
    system_notifications: bool | None = None
    push_tokens: list[str] | None = None
