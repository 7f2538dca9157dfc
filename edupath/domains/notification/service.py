# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for in-app, email and push delivery.

This service handles the complete notification flow:
1. Loading the recipient and their delivery preferences
2. Persisting the in-app notification record
3. Sending through email and push when enabled
4. Recording per-channel results on the notification

It also owns reading state, preferences and retention cleanup.

Example:
    >>> service = NotificationService(db)
    >>> await service.send_notification(
    ...     user_id=student_id,
    ...     title="New assignment",
    ...     message="Essay due Friday",
    ...     notification_type=NotificationType.ASSIGNMENT,
    ... )
"""

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.core.config import Settings, get_settings
from edupath.infrastructure.database.models import (
    Notification,
    NotificationPreference,
    User,
)
from edupath.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    EmailChannel,
    InAppChannel,
    NotificationPayload,
    PushChannel,
)
from edupath.models.notification import (
    BulkNotificationRequest,
    BulkSendResult,
    NotificationFilters,
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
    NotificationResponse,
    NotificationType,
)
from edupath.utils.datetime import days_ago, utc_now

logger = logging.getLogger(__name__)

# Notification type to the preference flag that gates email delivery.
TYPE_PREFERENCE_FIELDS = {
    NotificationType.ASSIGNMENT.value: "assignment_reminders",
    NotificationType.GRADE.value: "grade_notifications",
    NotificationType.ACHIEVEMENT.value: "achievement_notifications",
    NotificationType.SYSTEM.value: "system_notifications",
}


class NotificationServiceError(Exception):
    """Base exception for notification service errors."""

    pass


class NotificationNotFoundError(NotificationServiceError):
    """Raised when a notification is not found."""

    pass


class NotificationAccessDeniedError(NotificationServiceError):
    """Raised when a user touches someone else's notification."""

    pass


class RecipientNotFoundError(NotificationServiceError):
    """Raised when the recipient user does not exist."""

    pass


class NotificationDeliveryError(NotificationServiceError):
    """Raised when the in-app record could not be created."""

    pass


def default_preference(user_id: str) -> NotificationPreference:
    """Build an unsaved preference row holding the defaults."""
    return NotificationPreference(
        user_id=user_id,
        email_notifications=False,
        push_notifications=True,
        assignment_reminders=True,
        grade_notifications=True,
        achievement_notifications=True,
        system_notifications=True,
        push_tokens=[],
    )


def is_type_enabled(preference: NotificationPreference, notification_type: str) -> bool:
    """Check the per-type preference. Types without a flag are always enabled."""
    field = TYPE_PREFERENCE_FIELDS.get(notification_type)
    if field is None:
        return True
    return bool(getattr(preference, field))


class NotificationService:
    """Service for sending and managing user notifications.

    Attributes:
        _db: Async database session.
        _in_app: In-app channel bound to the session.
        _email: Email channel.
        _push: Push channel.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        email_channel: BaseChannel | None = None,
        push_channel: BaseChannel | None = None,
    ) -> None:
        """Initialize the notification service.

        Args:
            db: Async database session.
            settings: Application settings for channel configuration.
            email_channel: Override for the email channel.
            push_channel: Override for the push channel.
        """
        self._db = db
        settings = settings or get_settings()
        self._in_app = InAppChannel(db)
        self._email = email_channel or EmailChannel(settings.smtp)
        self._push = push_channel or PushChannel(settings.push)

    async def send_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        notification_type: NotificationType | str,
        reference_id: str | None = None,
        reference_type: str | None = None,
    ) -> NotificationResponse:
        """Create a notification and deliver it through enabled channels.

        In-app delivery always happens. Email is sent when the user enabled
        email and the notification type. Push is sent when push is enabled.

        Args:
            user_id: Recipient user ID.
            title: Notification title.
            message: Notification body.
            notification_type: Notification category.
            reference_id: Optional related entity ID.
            reference_type: Optional related entity type.

        Returns:
            The stored notification with delivery results.

        Raises:
            RecipientNotFoundError: If the user does not exist.
            NotificationDeliveryError: If the in-app record failed.
        """
        user = await self._db.get(User, user_id)
        if not user:
            raise RecipientNotFoundError(f"User {user_id} not found")

        preference = await self._get_preference(user_id) or default_preference(user_id)
        ntype = NotificationType(notification_type).value

        payload = NotificationPayload(
            notification_type=ntype,
            title=title,
            message=message,
            recipient_id=user_id,
            recipient_email=user.email,
            recipient_name=user.full_name,
            reference_id=reference_id,
            reference_type=reference_type,
            push_tokens=list(preference.push_tokens or []),
        )

        in_app_result = await self._in_app.send(payload)
        if not in_app_result.succeeded:
            raise NotificationDeliveryError(in_app_result.error_message or "In-app delivery failed")

        results: list[ChannelResult] = [in_app_result]

        if preference.email_notifications and is_type_enabled(preference, ntype):
            results.append(await self._email.send(payload))
        else:
            results.append(self._email.create_skipped_result("Disabled by preferences"))

        if preference.push_notifications:
            results.append(await self._push.send(payload))
        else:
            results.append(self._push.create_skipped_result("Disabled by preferences"))

        notification = await self._db.get(Notification, in_app_result.message_id)
        notification.delivery = {r.channel.value: r.to_dict() for r in results}
        await self._db.commit()

        logger.info(
            "Notification %s (%s) sent to %s: %s",
            notification.id,
            ntype,
            user_id,
            ", ".join(f"{r.channel.value}={r.status.value}" for r in results),
        )
        return NotificationResponse.model_validate(notification)

    async def send_bulk_notifications(self, request: BulkNotificationRequest) -> BulkSendResult:
        """Send one notification to many users.

        Unknown users are reported back instead of aborting the batch.
        """
        sent = 0
        failed: list[str] = []
        for user_id in dict.fromkeys(request.user_ids):
            try:
                await self.send_notification(
                    user_id=user_id,
                    title=request.title,
                    message=request.message,
                    notification_type=request.notification_type,
                    reference_id=request.reference_id,
                    reference_type=request.reference_type,
                )
                sent += 1
            except (RecipientNotFoundError, NotificationDeliveryError) as e:
                logger.warning("Bulk notification to %s failed: %s", user_id, str(e))
                failed.append(user_id)

        return BulkSendResult(success=not failed, sent_count=sent, failed_user_ids=failed)

    async def mark_as_read(self, notification_id: str, user_id: str) -> NotificationResponse:
        """Mark one of the user's notifications as read.

        Raises:
            NotificationNotFoundError: If the notification does not exist.
            NotificationAccessDeniedError: If it belongs to another user.
        """
        notification = await self._db.get(Notification, notification_id)
        if not notification:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        if notification.user_id != user_id:
            raise NotificationAccessDeniedError("Cannot modify another user's notification")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            await self._db.commit()

        return NotificationResponse.model_validate(notification)

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification of the user as read.

        Returns:
            Number of notifications updated.
        """
        result = await self._db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await self._db.commit()
        return result.rowcount or 0

    async def get_user_notifications(
        self,
        user_id: str,
        filters: NotificationFilters | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[NotificationResponse], int]:
        """List a user's notifications, newest first.

        Returns:
            Tuple of (notifications, total count).
        """
        filters = filters or NotificationFilters()
        stmt = select(Notification).where(Notification.user_id == user_id)

        if filters.notification_type:
            stmt = stmt.where(Notification.notification_type == filters.notification_type.value)
        if filters.is_read is not None:
            stmt = stmt.where(Notification.is_read.is_(filters.is_read))
        if filters.start_date:
            stmt = stmt.where(Notification.sent_at >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(Notification.sent_at <= filters.end_date)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Notification.sent_at.desc()).limit(limit).offset(offset)
        result = await self._db.execute(stmt)
        return [NotificationResponse.model_validate(n) for n in result.scalars().all()], total

    async def get_unread_count(self, user_id: str) -> int:
        """Count the user's unread notifications."""
        count = await self._db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return count or 0

    async def get_preferences(self, user_id: str) -> NotificationPreferenceResponse:
        """Get the user's preferences, creating the default row on first access."""
        preference = await self._get_preference(user_id)
        if not preference:
            preference = default_preference(user_id)
            self._db.add(preference)
            await self._db.commit()
        return NotificationPreferenceResponse.model_validate(preference)

    async def update_preferences(
        self,
        user_id: str,
        request: NotificationPreferenceUpdate,
    ) -> NotificationPreferenceResponse:
        """Update the user's preferences."""
        preference = await self._get_preference(user_id)
        if not preference:
            preference = default_preference(user_id)
            self._db.add(preference)

        for field, value in request.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(preference, field, list(value) if field == "push_tokens" else value)

        await self._db.commit()
        logger.info("Notification preferences updated for %s", user_id)
        return NotificationPreferenceResponse.model_validate(preference)

    async def cleanup_old_notifications(self, days_old: int = 30) -> int:
        """Delete read notifications older than the cutoff.

        Returns:
            Number of notifications deleted.
        """
        cutoff = days_ago(days_old)
        result = await self._db.execute(
            delete(Notification).where(
                Notification.is_read.is_(True),
                Notification.sent_at < cutoff,
            )
        )
        await self._db.commit()

        deleted = result.rowcount or 0
        if deleted:
            logger.info("Cleaned up %d notifications older than %d days", deleted, days_old)
        return deleted

    async def _get_preference(self, user_id: str) -> NotificationPreference | None:
        result = await self._db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()
