# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for notification channels."""

import json
from unittest.mock import AsyncMock, patch

import aiosmtplib
import httpx
import pytest
from pydantic import SecretStr

from edupath.core.config.settings import PushSettings, SMTPSettings
from edupath.infrastructure.notifications.channels import (
    ChannelType,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
    PushChannel,
)


@pytest.fixture
def payload() -> NotificationPayload:
    """A notification with an email address and one push token."""
    return NotificationPayload(
        notification_type="grade",
        title="Assignment graded",
        message="Your essay scored 18/20.",
        recipient_id="user-1",
        recipient_email="student@edupath.org",
        recipient_name="Sara Ali",
        reference_id="submission-1",
        reference_type="submission",
        push_tokens=["device-token-1"],
    )


@pytest.fixture
def smtp_settings() -> SMTPSettings:
    return SMTPSettings(
        host="smtp.edupath.org",
        port=587,
        username="mailer",
        password=SecretStr("secret"),
        from_email="noreply@edupath.org",
        from_name="EduPath",
    )


class TestPushChannel:
    """Tests for the FCM push channel."""

    @pytest.mark.asyncio
    async def test_skipped_without_server_key(self, payload: NotificationPayload) -> None:
        channel = PushChannel(PushSettings(server_key=None))

        result = await channel.send(payload)

        assert result.status == DeliveryStatus.SKIPPED
        assert result.channel == ChannelType.PUSH

    @pytest.mark.asyncio
    async def test_skipped_without_tokens(self, payload: NotificationPayload) -> None:
        channel = PushChannel(PushSettings(server_key=SecretStr("key")))
        payload.push_tokens = []

        result = await channel.send(payload)

        assert result.status == DeliveryStatus.SKIPPED
        assert result.error_message == "No push tokens available"

    @pytest.mark.asyncio
    async def test_sends_fcm_message(self, payload: NotificationPayload) -> None:
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"multicast_id": 123, "success": 1, "failure": 0})

        channel = PushChannel(
            PushSettings(server_key=SecretStr("server-key")),
            transport=httpx.MockTransport(handler),
        )

        result = await channel.send(payload)

        assert result.status == DeliveryStatus.SENT
        assert result.message_id == "123"
        assert captured["auth"] == "key=server-key"
        assert captured["body"]["registration_ids"] == ["device-token-1"]
        assert captured["body"]["notification"]["title"] == "Assignment graded"
        assert captured["body"]["data"]["reference_id"] == "submission-1"

    @pytest.mark.asyncio
    async def test_all_tokens_failed(self, payload: NotificationPayload) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": 0, "failure": 1})
        )
        channel = PushChannel(PushSettings(server_key=SecretStr("k")), transport=transport)

        result = await channel.send(payload)

        assert result.status == DeliveryStatus.FAILED

    @pytest.mark.asyncio
    async def test_http_error_is_reported_not_raised(self, payload: NotificationPayload) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        channel = PushChannel(PushSettings(server_key=SecretStr("k")), transport=transport)

        result = await channel.send(payload)

        assert result.status == DeliveryStatus.FAILED
        assert result.error_message.startswith("FCM error")


class TestEmailChannel:
    """Tests for the SMTP email channel."""

    @pytest.mark.asyncio
    async def test_skipped_when_not_configured(self, payload: NotificationPayload) -> None:
        channel = EmailChannel(SMTPSettings(host=None))

        result = await channel.send(payload)

        assert result.status == DeliveryStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_sends_multipart_message(
        self,
        payload: NotificationPayload,
        smtp_settings: SMTPSettings,
    ) -> None:
        channel = EmailChannel(smtp_settings)

        with patch.object(aiosmtplib, "send", new=AsyncMock()) as send:
            result = await channel.send(payload)

        assert result.status == DeliveryStatus.SENT
        message = send.await_args.args[0]
        assert message["To"] == "student@edupath.org"
        assert message["Subject"] == "Assignment graded"
        assert send.await_args.kwargs["hostname"] == "smtp.edupath.org"
        assert [part.get_content_type() for part in message.get_payload()] == [
            "text/plain",
            "text/html",
        ]

    @pytest.mark.asyncio
    async def test_smtp_failure_is_reported(
        self,
        payload: NotificationPayload,
        smtp_settings: SMTPSettings,
    ) -> None:
        channel = EmailChannel(smtp_settings)
        failing = AsyncMock(side_effect=aiosmtplib.SMTPException("connection refused"))

        with patch.object(aiosmtplib, "send", new=failing):
            result = await channel.send(payload)

        assert result.status == DeliveryStatus.FAILED
        assert "connection refused" in result.error_message

    def test_html_body_is_escaped(
        self,
        payload: NotificationPayload,
        smtp_settings: SMTPSettings,
    ) -> None:
        payload.message = "<script>alert(1)</script>"

        body = EmailChannel(smtp_settings)._build_html(payload)

        assert "<script>" not in body
        assert "&lt;script&gt;" in body
