from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from identity.settings import get_settings

_client: Optional[Redis] = None


def get_redis() -> Redis:
    """
    Shared client for tickets, OAuth codes/tokens and the session denylist.
    Values are JSON text, so responses are decoded to str.
    """
    global _client
    if _client is None:
        settings = get_settings()
        _client = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    return _client


async def ping_redis() -> bool:
    return bool(await get_redis().ping())


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
