from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis

from identity.domain.ports.object_store import ExpiringObjectStorePort


class RedisObjectStore(ExpiringObjectStorePort):
    """
    JSON documents under `{namespace}:{key}`.

    `put` keeps no expiry; `put_with_ttl` sets one in milliseconds so
    sub-second ticket lifetimes survive the round trip.
    """

    def __init__(self, redis: Redis, *, namespace: str) -> None:
        self._redis = redis
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> dict[str, Any] | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def put(self, key: str, value: dict[str, Any]) -> dict[str, Any]:
        await self._redis.set(self._key(key), json.dumps(value))
        return value

    async def put_with_ttl(
        self, key: str, value: dict[str, Any], ttl_seconds: float
    ) -> dict[str, Any]:
        ttl_ms = max(int(ttl_seconds * 1000), 1)
        await self._redis.set(self._key(key), json.dumps(value), px=ttl_ms)
        return value

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))
