from __future__ import annotations

from typing import Protocol


class TokenDenylistPort(Protocol):
    async def revoke(self, token_id: str, ttl_seconds: int | None) -> None:
        """Deny the token id until ttl_seconds from now (None: forever)."""

    async def is_revoked(self, token_id: str) -> bool:
        """True if the token id has been revoked."""
