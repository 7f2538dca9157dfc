# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the notification service."""

from datetime import timedelta

import pytest

from edupath.domains.notification.service import (
    NotificationAccessDeniedError,
    NotificationService,
    RecipientNotFoundError,
)
from edupath.infrastructure.database.models import Notification
from edupath.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from edupath.models.notification import (
    BulkNotificationRequest,
    NotificationPreferenceUpdate,
    NotificationType,
)
from edupath.utils.datetime import utc_now

pytestmark = pytest.mark.integration


class RecordingChannel(BaseChannel):
    """Channel that records payloads instead of delivering them."""

    def __init__(self, channel_type: ChannelType) -> None:
        super().__init__()
        self._type = channel_type
        self.sent: list[NotificationPayload] = []

    @property
    def channel_type(self) -> ChannelType:
        return self._type

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        self.sent.append(payload)
        return ChannelResult(
            channel=self._type,
            status=DeliveryStatus.SENT,
            message_id=f"{self._type.value}-{len(self.sent)}",
            sent_at=utc_now(),
        )


@pytest.fixture
def email_channel() -> RecordingChannel:
    return RecordingChannel(ChannelType.EMAIL)


@pytest.fixture
def push_channel() -> RecordingChannel:
    return RecordingChannel(ChannelType.PUSH)


@pytest.fixture
def service(db_session, email_channel, push_channel):
    return NotificationService(
        db_session,
        email_channel=email_channel,
        push_channel=push_channel,
    )


async def _send(service, user_id, notification_type=NotificationType.SYSTEM, title="Welcome"):
    return await service.send_notification(
        user_id=user_id,
        title=title,
        message="Welcome to EduPath",
        notification_type=notification_type,
    )


class TestSendNotification:
    """Tests for delivery through the channels."""

    @pytest.mark.asyncio
    async def test_default_preferences(self, service, student, email_channel, push_channel):
        """Test defaults store in-app, skip email and attempt push."""
        notification = await _send(service, student.id)

        assert notification.is_read is False
        assert notification.delivery["in_app"]["status"] == "sent"
        assert notification.delivery["email"]["status"] == "skipped"
        assert notification.delivery["push"]["status"] == "sent"
        assert email_channel.sent == []
        assert push_channel.sent[0].recipient_email == student.email

    @pytest.mark.asyncio
    async def test_email_when_enabled(self, service, student, email_channel):
        await service.update_preferences(
            student.id, NotificationPreferenceUpdate(email_notifications=True)
        )

        notification = await _send(service, student.id, NotificationType.GRADE)

        assert notification.delivery["email"]["status"] == "sent"
        assert email_channel.sent[0].title == "Welcome"

    @pytest.mark.asyncio
    async def test_type_preference_blocks_email(self, service, student, email_channel):
        await service.update_preferences(
            student.id,
            NotificationPreferenceUpdate(email_notifications=True, grade_notifications=False),
        )

        notification = await _send(service, student.id, NotificationType.GRADE)

        assert notification.delivery["email"]["status"] == "skipped"
        assert email_channel.sent == []

    @pytest.mark.asyncio
    async def test_push_disabled(self, service, student, push_channel):
        await service.update_preferences(
            student.id, NotificationPreferenceUpdate(push_notifications=False)
        )

        notification = await _send(service, student.id)

        assert notification.delivery["push"]["status"] == "skipped"
        assert push_channel.sent == []

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, service):
        with pytest.raises(RecipientNotFoundError):
            await _send(service, "missing-user")

    @pytest.mark.asyncio
    async def test_bulk_reports_unknown_users(self, service, student, teacher):
        result = await service.send_bulk_notifications(
            BulkNotificationRequest(
                user_ids=[student.id, "missing-user", teacher.id, student.id],
                title="School closed",
                message="School is closed tomorrow.",
                notification_type=NotificationType.ANNOUNCEMENT,
            )
        )

        assert result.success is False
        assert result.sent_count == 2
        assert result.failed_user_ids == ["missing-user"]


class TestReadState:
    """Tests for reading and counting notifications."""

    @pytest.mark.asyncio
    async def test_mark_as_read(self, service, student):
        notification = await _send(service, student.id)
        assert await service.get_unread_count(student.id) == 1

        read = await service.mark_as_read(notification.id, student.id)

        assert read.is_read is True
        assert read.read_at is not None
        assert await service.get_unread_count(student.id) == 0

    @pytest.mark.asyncio
    async def test_cannot_read_someone_elses(self, service, student, teacher):
        notification = await _send(service, student.id)

        with pytest.raises(NotificationAccessDeniedError):
            await service.mark_as_read(notification.id, teacher.id)

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, service, student, teacher):
        await _send(service, student.id, title="One")
        await _send(service, student.id, title="Two")
        await _send(service, teacher.id)

        assert await service.mark_all_as_read(student.id) == 2
        assert await service.get_unread_count(student.id) == 0
        assert await service.get_unread_count(teacher.id) == 1

    @pytest.mark.asyncio
    async def test_list_newest_first(self, service, student):
        await _send(service, student.id, title="Older")
        await _send(service, student.id, title="Newer")

        notifications, total = await service.get_user_notifications(student.id)

        assert total == 2
        assert [n.title for n in notifications] == ["Newer", "Older"]


class TestPreferencesAndCleanup:
    """Tests for preferences and retention."""

    @pytest.mark.asyncio
    async def test_defaults_created_on_first_read(self, service, student):
        preferences = await service.get_preferences(student.id)

        assert preferences.email_notifications is False
        assert preferences.push_notifications is True
        assert preferences.push_tokens == []

    @pytest.mark.asyncio
    async def test_push_tokens_reach_the_payload(self, service, student, push_channel):
        await service.update_preferences(
            student.id, NotificationPreferenceUpdate(push_tokens=["device-1"])
        )

        await _send(service, student.id)

        assert push_channel.sent[0].push_tokens == ["device-1"]

    @pytest.mark.asyncio
    async def test_cleanup_only_old_read_notifications(self, service, db_session, student):
        old_read = await _send(service, student.id, title="Old read")
        old_unread = await _send(service, student.id, title="Old unread")
        await service.mark_as_read(old_read.id, student.id)

        for notification_id in (old_read.id, old_unread.id):
            row = await db_session.get(Notification, notification_id)
            row.sent_at = utc_now() - timedelta(days=45)
        await db_session.commit()

        assert await service.cleanup_old_notifications(days_old=30) == 1

        _, total = await service.get_user_notifications(student.id)
        assert total == 1
