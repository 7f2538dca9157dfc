# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification domain: delivery, reading state and preferences."""

from edupath.domains.notification.service import (
    NotificationAccessDeniedError,
    NotificationDeliveryError,
    NotificationNotFoundError,
    NotificationService,
    NotificationServiceError,
    RecipientNotFoundError,
)

__all__ = [
    "NotificationAccessDeniedError",
    "NotificationDeliveryError",
    "NotificationNotFoundError",
    "NotificationService",
    "NotificationServiceError",
    "RecipientNotFoundError",
]
