import pytest

from identity.infrastructure.db import pool as db_pool
from identity.infrastructure.redis_cache import pool as redis_pool
from identity.settings import get_settings


@pytest.mark.parametrize(
    "dsn,expected",
    [
        ("postgresql://a@db/app", "postgresql://a@db/app?connect_timeout=7"),
        ("postgresql://a@db/app?sslmode=off", "postgresql://a@db/app?sslmode=off&connect_timeout=7"),
        ("postgresql://a@db/app?connect_timeout=1", "postgresql://a@db/app?connect_timeout=1"),
    ],
)
def test_with_connect_timeout(dsn, expected):
    assert db_pool.with_connect_timeout(dsn, 7) == expected


@pytest.mark.asyncio
async def test_pools_are_lazy_singletons_sized_from_settings(monkeypatch):
    monkeypatch.setenv("DB_POOL_MAX_SIZE", "4")
    get_settings.cache_clear()
    monkeypatch.setattr(db_pool, "_pool", None)
    monkeypatch.setattr(redis_pool, "_client", None)
    try:
        pool = db_pool.get_pool()
        assert db_pool.get_pool() is pool
        assert pool.max_size == 4
        assert pool.closed

        client = redis_pool.get_redis()
        assert redis_pool.get_redis() is client
        await redis_pool.close_redis()
        assert redis_pool._client is None
    finally:
        get_settings.cache_clear()
