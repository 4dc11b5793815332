import logging

import psycopg
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from identity.infrastructure.db.pool import ping_pool
from identity.infrastructure.redis_cache.pool import ping_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz() -> JSONResponse:
    """Ready once Postgres and Redis both answer."""
    checks = {"postgres": False, "redis": False}
    try:
        checks["postgres"] = await ping_pool()
    except psycopg.Error as e:
        logger.warning("postgres not ready", extra={"error": str(e)})
    try:
        checks["redis"] = await ping_redis()
    except RedisError as e:
        logger.warning("redis not ready", extra={"error": str(e)})

    ready = all(checks.values())
    return JSONResponse(
        {"status": "ok" if ready else "unavailable", "checks": checks},
        status_code=200 if ready else 503,
    )
