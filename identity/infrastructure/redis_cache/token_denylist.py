from __future__ import annotations

from redis.asyncio import Redis

from identity.domain.ports.token_denylist import TokenDenylistPort


class RedisTokenDenylist(TokenDenylistPort):
    """Revoked session-token ids, kept until the token would have expired anyway."""

    def __init__(self, redis: Redis, *, key_prefix: str = "denied:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    def _key(self, token_id: str) -> str:
        return f"{self._prefix}{token_id}"

    async def revoke(self, token_id: str, ttl_seconds: int | None) -> None:
        if ttl_seconds:
            await self._redis.set(self._key(token_id), "1", ex=ttl_seconds)
        else:
            await self._redis.set(self._key(token_id), "1")

    async def is_revoked(self, token_id: str) -> bool:
        return bool(await self._redis.exists(self._key(token_id)))
