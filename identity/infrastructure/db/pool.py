from __future__ import annotations

from typing import Optional

from psycopg_pool import AsyncConnectionPool

from identity.settings import get_settings

_pool: Optional[AsyncConnectionPool] = None


def with_connect_timeout(dsn: str, seconds: int) -> str:
    """Append libpq connect_timeout unless the DSN already sets one."""
    if "connect_timeout=" in dsn:
        return dsn
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={seconds}"


def get_pool() -> AsyncConnectionPool:
    """
    Process-wide pool behind every PgObjectStore. Built closed; the app
    lifespan (or a test fixture) opens it.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = AsyncConnectionPool(
            with_connect_timeout(settings.database_url, settings.db_connect_timeout_seconds),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            timeout=settings.db_pool_timeout_seconds,
            open=False,
        )
    return _pool


async def open_pool() -> AsyncConnectionPool:
    pool = get_pool()
    await pool.open()
    return pool


async def ping_pool() -> bool:
    async with get_pool().connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SELECT 1")
            return (await cur.fetchone()) == (1,)


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
