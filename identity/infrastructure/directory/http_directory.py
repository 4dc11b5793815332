from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from identity.domain.entities import User
from identity.domain.errors import DirectoryError, DirectoryNotFoundError
from identity.domain.ports.user_directory import UserDirectoryPort

logger = logging.getLogger(__name__)


class HttpUserDirectory(UserDirectoryPort):
    """
    REST client for an external user-profile directory.

        POST   /users        {email, role}  -> user
        GET    /users/{id}                  -> user | 404
        PUT    /users/{id}   user           -> user
        DELETE /users/{id}                  -> 2xx | 404
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def _request(
        self, method: str, path: str, *, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            return await self._client.request(method, url, json=json, headers=self._headers)
        except httpx.HTTPError as e:
            logger.error("user directory unreachable", extra={"method": method, "path": path})
            raise DirectoryError(f"user directory HTTP error: {e}") from e

    @staticmethod
    def _fail(resp: httpx.Response, action: str) -> DirectoryError:
        logger.error(
            "user directory request failed",
            extra={"action": action, "status": resp.status_code},
        )
        return DirectoryError(
            f"user directory {action} responded {resp.status_code}: {resp.text[:200]}",
            upstream_status=resp.status_code,
        )

    async def create_user_with_email(self, email: str, role: str) -> User:
        resp = await self._request("POST", "/users", json={"email": email, "role": role})
        if not resp.is_success:
            raise self._fail(resp, "create")
        return User.from_dict(resp.json())

    async def get_user_by_id(self, user_id: str) -> User | None:
        resp = await self._request("GET", f"/users/{user_id}")
        if resp.status_code == 404:
            return None
        if not resp.is_success:
            raise self._fail(resp, "get")
        return User.from_dict(resp.json())

    async def update_user(self, user: User) -> User:
        resp = await self._request("PUT", f"/users/{user.id}", json=user.to_dict())
        if not resp.is_success:
            raise self._fail(resp, "update")
        return User.from_dict(resp.json())

    async def delete_user_by_id(self, user_id: str) -> None:
        resp = await self._request("DELETE", f"/users/{user_id}")
        if resp.status_code == 404:
            raise DirectoryNotFoundError(
                f"user {user_id} not found in directory", upstream_status=404
            )
        if not resp.is_success:
            raise self._fail(resp, "delete")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
