import os

import pytest_asyncio
from redis.asyncio import Redis

from tests.integration.db_fixtures import clean_object_store, pg_pool  # noqa: F401


@pytest_asyncio.fixture
async def redis_client():
    url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
    r = Redis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        yield r
    finally:
        await r.aclose()
