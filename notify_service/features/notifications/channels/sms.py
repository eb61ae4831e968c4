"""SMS channel sender using the Twilio REST API over httpx."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import httpx

from notify_service.core.settings import get_sms_channel_settings
from notify_service.features.notifications.enums import NotificationChannel
from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID

    from notify_service.core.settings import SmsChannelSettings


class SmsSender:
    """Sends notifications as text messages through Twilio.

    Posts to ``/Accounts/{sid}/Messages.json`` with HTTP basic auth. Any
    2xx response counts as accepted.
    """

    channel = NotificationChannel.SMS

    def __init__(
        self,
        settings: SmsChannelSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_sms_channel_settings()
        self._client = client
        self._logger = get_logger(__name__, channel=self.channel.value)

    def _messages_url(self) -> str:
        base = self._settings.api_base_url.rstrip("/")
        return f"{base}/Accounts/{self._settings.account_sid}/Messages.json"

    async def _post(self, data: dict[str, str]) -> httpx.Response:
        settings = self._settings
        auth = (settings.account_sid or "", settings.auth_token.get_secret_value() if settings.auth_token else "")
        if self._client is not None:
            return await self._client.post(self._messages_url(), data=data, auth=auth)
        async with httpx.AsyncClient(timeout=settings.timeout) as client:
            return await client.post(self._messages_url(), data=data, auth=auth)

    async def send(
        self,
        notification_id: UUID,
        recipient: str,
        subject: str | None,
        body: str,
    ) -> bool:
        if not recipient or not body:
            self._logger.warning(
                f"SMS for notification {notification_id} is missing recipient or body",
                extra={"notification_id": str(notification_id)},
            )
            return False

        if not self._settings.is_configured:
            self._logger.error(
                f"Twilio is not configured; cannot send notification {notification_id}",
                extra={"notification_id": str(notification_id)},
            )
            return False

        start_time = time.time()
        data = {"To": recipient, "From": self._settings.from_number or "", "Body": body}

        try:
            response = await self._post(data)
        except httpx.HTTPError as exc:
            elapsed_ms = int((time.time() - start_time) * 1000)
            self._logger.warning(
                f"SMS delivery failed for notification {notification_id}: {exc}",
                extra={"notification_id": str(notification_id), "elapsed_ms": elapsed_ms},
            )
            return False

        elapsed_ms = int((time.time() - start_time) * 1000)
        if response.is_success:
            self._logger.info(
                f"SMS sent for notification {notification_id} to {recipient}",
                extra={
                    "notification_id": str(notification_id),
                    "elapsed_ms": elapsed_ms,
                    "status_code": response.status_code,
                },
            )
            return True

        self._logger.warning(
            f"SMS provider rejected notification {notification_id}: HTTP {response.status_code}",
            extra={
                "notification_id": str(notification_id),
                "elapsed_ms": elapsed_ms,
                "status_code": response.status_code,
                "response_body": response.text[:500],
            },
        )
        return False
