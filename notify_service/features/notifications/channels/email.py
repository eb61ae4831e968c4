"""Email channel sender using aiosmtplib."""

from __future__ import annotations

from email.message import EmailMessage
import time
from typing import TYPE_CHECKING

import aiosmtplib

from notify_service.core.settings import get_email_channel_settings
from notify_service.features.notifications.enums import NotificationChannel
from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID

    from notify_service.core.settings import EmailChannelSettings


class EmailSender:
    """Sends notifications through an SMTP relay.

    Supports STARTTLS (port 587), implicit TLS (port 465) and optional
    LOGIN/PLAIN authentication. A new connection is opened per message.
    """

    channel = NotificationChannel.EMAIL

    def __init__(self, settings: EmailChannelSettings | None = None) -> None:
        self._settings = settings or get_email_channel_settings()
        self._logger = get_logger(__name__, channel=self.channel.value)

    def _build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.from_address
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body, subtype="html")
        return message

    async def send(
        self,
        notification_id: UUID,
        recipient: str,
        subject: str | None,
        body: str,
    ) -> bool:
        if not recipient or not subject or not body:
            self._logger.warning(
                f"Email for notification {notification_id} is missing recipient, subject or body",
                extra={"notification_id": str(notification_id)},
            )
            return False

        if not self._settings.is_configured:
            self._logger.error(
                f"SMTP is not configured; cannot send notification {notification_id}",
                extra={"notification_id": str(notification_id)},
            )
            return False

        start_time = time.time()
        settings = self._settings
        password = settings.smtp_password.get_secret_value() if settings.smtp_password else None

        try:
            await aiosmtplib.send(
                self._build_message(recipient, subject, body),
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=password,
                use_tls=settings.use_tls,
                start_tls=settings.start_tls and not settings.use_tls,
                timeout=settings.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            elapsed_ms = int((time.time() - start_time) * 1000)
            self._logger.warning(
                f"Email delivery failed for notification {notification_id}: {exc}",
                extra={"notification_id": str(notification_id), "elapsed_ms": elapsed_ms},
            )
            return False

        elapsed_ms = int((time.time() - start_time) * 1000)
        self._logger.info(
            f"Email sent for notification {notification_id} to {recipient}",
            extra={"notification_id": str(notification_id), "elapsed_ms": elapsed_ms},
        )
        return True
