# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Push notification channel using Firebase Cloud Messaging.

Sends to the FCM legacy HTTP endpoint with a server key. The channel
is skipped when PUSH_SERVER_KEY is not set or the recipient has no
registered device tokens.
"""

from typing import Any

import httpx

from edupath.core.config.settings import PushSettings
from edupath.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class PushChannel(BaseChannel):
    """Push notification channel using Firebase Cloud Messaging."""

    PRIORITY_MAP = {
        "low": "normal",
        "normal": "high",
        "high": "high",
    }

    def __init__(
        self,
        settings: PushSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the push channel.

        Args:
            settings: Push settings.
            transport: Optional httpx transport, used by tests.
        """
        super().__init__()
        self._settings = settings
        self._transport = transport

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.PUSH

    @property
    def is_configured(self) -> bool:
        return self._settings.server_key is not None

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send push notification via FCM.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.is_configured:
            return self.create_skipped_result("Push channel not configured")

        if not payload.push_tokens:
            return self.create_skipped_result("No push tokens available")

        headers = {
            "Authorization": f"key={self._settings.server_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._settings.fcm_url,
                    headers=headers,
                    json=self._build_fcm_message(payload),
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            self.logger.error("FCM request failed: %s", str(e))
            return self.create_failure_result(f"FCM error: {str(e)}")

        success_count = int(body.get("success", 0))
        failure_count = int(body.get("failure", 0))

        if success_count == 0 and failure_count > 0:
            return self.create_failure_result(
                f"All {failure_count} push notifications failed",
                metadata={"results": body.get("results", [])},
            )

        return self.create_success_result(
            message_id=str(body.get("multicast_id")) if body.get("multicast_id") else None,
            metadata={"success_count": success_count, "failure_count": failure_count},
        )

    def _build_fcm_message(self, payload: NotificationPayload) -> dict[str, Any]:
        data = {
            "notification_type": payload.notification_type,
            **{key: str(value) for key, value in payload.data.items()},
        }
        if payload.reference_id:
            data["reference_id"] = payload.reference_id
        if payload.reference_type:
            data["reference_type"] = payload.reference_type

        return {
            "registration_ids": list(payload.push_tokens),
            "priority": self.PRIORITY_MAP.get(payload.priority, "high"),
            "notification": {
                "title": payload.title,
                "body": payload.message,
            },
            "data": data,
        }
