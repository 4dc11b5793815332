from __future__ import annotations

from typing import Dict, Optional

import httpx

from identity.domain.errors import NotificationError
from identity.domain.ports.notifier import EmailPort


class HttpEmailAdapter(EmailPort):
    """Posts HTML emails to an HTTP mail relay."""

    def __init__(
        self,
        base_url: str,
        *,
        sender: str | None = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/send",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._sender = sender
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send_email(
        self,
        *,
        to: str,
        subject: str,
        html_body: str,
        idempotency_key: str | None = None,
    ) -> None:
        headers: Dict[str, str] = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        url = f"{self._base_url}{self._send_path}"
        payload = {"to": to, "subject": subject, "html_body": html_body}
        if self._sender:
            payload["from"] = self._sender

        try:
            resp = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotificationError(f"email relay HTTP error: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise NotificationError(
                f"email relay responded {resp.status_code}: {resp.text[:200]}"
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
