from __future__ import annotations

from typing import Protocol


class EmailPort(Protocol):
    async def send_email(
        self,
        *,
        to: str,
        subject: str,
        html_body: str,
        idempotency_key: str | None = None,
    ) -> None:
        """Send an email. Raises NotificationError on failure."""


class SmsPort(Protocol):
    async def send_sms(self, *, to: str, message: str) -> None:
        """Send a text message. Raises NotificationError on failure."""
