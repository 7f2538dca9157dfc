# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

This channel sends email notifications using aiosmtplib. It is
skipped unless SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD and
SMTP_FROM_EMAIL are all configured.
"""

import html
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

import aiosmtplib

from edupath.core.config.settings import SMTPSettings
from edupath.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email notification channel using async SMTP.

    Generates both plain text and HTML versions of every email.
    """

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email channel.

        Args:
            settings: SMTP settings.
        """
        super().__init__()
        self._settings = settings

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send email notification via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.is_configured:
            return self.create_skipped_result("Email channel not configured")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        message = self._build_email_message(payload)
        password = self._settings.password.get_secret_value() if self._settings.password else None

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=password,
                start_tls=self._settings.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                payload.recipient_email,
                str(e),
            )
            return self.create_failure_result(
                f"SMTP error: {str(e)}",
                metadata={"recipient": payload.recipient_email},
            )

        self.logger.info("Email sent to %s: %s", payload.recipient_email, payload.title)
        return self.create_success_result(
            message_id=message["Message-ID"],
            metadata={"recipient": payload.recipient_email},
        )

    def _build_email_message(self, payload: NotificationPayload) -> MIMEMultipart:
        """Build the MIME message with text and HTML parts."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self._settings.from_name} <{self._settings.from_email}>"
        message["To"] = payload.recipient_email
        message["Subject"] = payload.title
        message["Message-ID"] = make_msgid()

        message.attach(MIMEText(self._build_plain_text(payload), "plain", "utf-8"))
        message.attach(MIMEText(self._build_html(payload), "html", "utf-8"))
        return message

    def _build_plain_text(self, payload: NotificationPayload) -> str:
        lines = [payload.title, "=" * len(payload.title), ""]
        if payload.recipient_name:
            lines.extend([f"Hello {payload.recipient_name},", ""])
        lines.extend(
            [
                payload.message,
                "",
                "---",
                f"This notification was sent by {self._settings.from_name}.",
                "To manage your notification preferences, visit your account settings.",
            ]
        )
        return "\n".join(lines)

    def _build_html(self, payload: NotificationPayload) -> str:
        title = html.escape(payload.title)
        body = html.escape(payload.message).replace("\n", "<br>")
        sender = html.escape(self._settings.from_name)
        greeting = ""
        if payload.recipient_name:
            greeting = f"<p>Hello {html.escape(payload.recipient_name)},</p>"

        return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1F2937;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h1 style="color: #4CAF50; font-size: 22px;">{title}</h1>
        {greeting}
        <p>{body}</p>
        <p style="font-size: 12px; color: #9CA3AF; border-top: 1px solid #E5E7EB;
                  padding-top: 12px;">
            This notification was sent by {sender}.<br>
            To manage your notification preferences, visit your account settings.
        </p>
    </div>
</body>
</html>"""
