from __future__ import annotations

from typing import Any

from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from identity.domain.ports.object_store import ObjectStorePort


class PgObjectStore(ObjectStorePort):
    """
    Durable key-value store over the `object_store` table.

    Each instance is scoped to one namespace (credentials, users, clients,
    scopes). Every call runs in its own short transaction; writes are
    upserts, so the last writer wins.
    """

    def __init__(self, pool: AsyncConnectionPool, *, namespace: str) -> None:
        self._pool = pool
        self._namespace = namespace

    async def get(self, key: str) -> dict[str, Any] | None:
        sql = "SELECT value FROM object_store WHERE namespace = %s AND key = %s"
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, (self._namespace, key))
                row = await cur.fetchone()
        if not row:
            return None
        return row[0]

    async def put(self, key: str, value: dict[str, Any]) -> dict[str, Any]:
        sql = """
        INSERT INTO object_store (namespace, key, value, updated_at)
        VALUES (%s, %s, %s, now())
        ON CONFLICT (namespace, key) DO UPDATE
            SET value = EXCLUDED.value,
                updated_at = EXCLUDED.updated_at
        """
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, (self._namespace, key, Jsonb(value)))
        return value

    async def delete(self, key: str) -> None:
        sql = "DELETE FROM object_store WHERE namespace = %s AND key = %s"
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, (self._namespace, key))
