from __future__ import annotations

from typing import Any, Protocol


class ObjectStorePort(Protocol):
    """
    Key-value persistence scoped to one entity type.
    Values are JSON-serialisable dicts; writes are last-write-wins per key.
    """

    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the stored value, or None if absent."""

    async def put(self, key: str, value: dict[str, Any]) -> dict[str, Any]:
        """Insert or replace the value; return it."""

    async def delete(self, key: str) -> None:
        """Remove the key. Deleting a missing key is not an error."""


class ExpiringObjectStorePort(ObjectStorePort, Protocol):
    """
    Object store whose entries disappear after a deadline.

    Auto-expiry is a storage optimisation only; callers still check
    their own deadlines before trusting a value.
    """

    async def put_with_ttl(
        self, key: str, value: dict[str, Any], ttl_seconds: float
    ) -> dict[str, Any]:
        """Insert or replace the value and expire it after ttl_seconds."""
