# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification channel.

This channel creates notification records in the database
that are displayed within the application UI. It is always
used and is the record other channels report against.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.infrastructure.database.models import Notification
from edupath.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)
from edupath.utils.datetime import utc_now


class InAppChannel(BaseChannel):
    """In-app notification channel.

    Creates notification records in the notifications table.
    The record is flushed, not committed: the caller owns the
    transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the in-app channel.

        Args:
            session: Async database session.
        """
        super().__init__()
        self._session = session

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.IN_APP

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Create an in-app notification record.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult whose message_id is the notification ID.
        """
        try:
            notification = Notification(
                user_id=payload.recipient_id,
                title=payload.title,
                message=payload.message,
                notification_type=payload.notification_type,
                reference_id=payload.reference_id,
                reference_type=payload.reference_type,
                is_read=False,
                sent_at=utc_now(),
            )
            self._session.add(notification)
            await self._session.flush()

            self.logger.debug(
                "Created in-app notification %s for user %s",
                notification.id,
                payload.recipient_id,
            )
            return self.create_success_result(message_id=notification.id)

        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to create in-app notification for user %s: %s",
                payload.recipient_id,
                str(e),
                exc_info=True,
            )
            return self.create_failure_result(f"Database error: {str(e)}")
