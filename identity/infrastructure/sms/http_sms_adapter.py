from __future__ import annotations

from typing import Optional

import httpx

from identity.domain.errors import NotificationError
from identity.domain.ports.notifier import SmsPort


class HttpSmsAdapter(SmsPort):
    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/sms",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send_sms(self, *, to: str, message: str) -> None:
        url = f"{self._base_url}{self._send_path}"
        try:
            resp = await self._client.post(url, json={"to": to, "message": message})
        except httpx.HTTPError as e:
            raise NotificationError(f"sms relay HTTP error: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise NotificationError(
                f"sms relay responded {resp.status_code}: {resp.text[:200]}"
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
