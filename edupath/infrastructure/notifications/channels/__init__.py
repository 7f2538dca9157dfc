# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels for delivering notifications.

- InAppChannel: Creates notification records in the database
- EmailChannel: Sends email notifications via SMTP
- PushChannel: Sends push notifications via Firebase Cloud Messaging
"""

from edupath.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from edupath.infrastructure.notifications.channels.email import EmailChannel
from edupath.infrastructure.notifications.channels.in_app import InAppChannel
from edupath.infrastructure.notifications.channels.push import PushChannel

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
]
