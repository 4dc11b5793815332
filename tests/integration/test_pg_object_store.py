import pytest

from identity.application.user_registry import LocalUserRegistry
from identity.infrastructure.db.object_store import PgObjectStore

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_put_get_upsert_delete(clean_object_store):
    store = PgObjectStore(clean_object_store, namespace="credentials")

    assert await store.get("a@example.com") is None

    await store.put("a@example.com", {"user_id": "u1", "password_hash": "h1"})
    assert await store.get("a@example.com") == {"user_id": "u1", "password_hash": "h1"}

    # last writer wins
    await store.put("a@example.com", {"user_id": "u1", "password_hash": "h2"})
    assert (await store.get("a@example.com"))["password_hash"] == "h2"

    await store.delete("a@example.com")
    assert await store.get("a@example.com") is None
    # deleting a missing key is a no-op
    await store.delete("a@example.com")


@pytest.mark.asyncio
async def test_namespaces_are_isolated(clean_object_store):
    users = PgObjectStore(clean_object_store, namespace="users")
    clients = PgObjectStore(clean_object_store, namespace="oauth_clients")

    await users.put("same-key", {"kind": "user"})
    await clients.put("same-key", {"kind": "client"})

    assert (await users.get("same-key"))["kind"] == "user"
    assert (await clients.get("same-key"))["kind"] == "client"

    await users.delete("same-key")
    assert await clients.get("same-key") is not None


@pytest.mark.asyncio
async def test_local_registry_over_postgres(clean_object_store):
    registry = LocalUserRegistry(PgObjectStore(clean_object_store, namespace="users"))

    user = await registry.create(" Jeremy@Example.COM ", "user")
    assert user.email == "jeremy@example.com"

    user.set_mobile("+15550001")
    await registry.update(user)

    fetched = await registry.get(user.id)
    assert fetched == user
