import pytest

from identity.application.user_registry import (
    DirectoryUserRegistry,
    LocalUserRegistry,
    build_user_registry,
)
from tests.fakes import FakeDirectory, InMemoryObjectStore


def test_build_picks_one_variant():
    store, directory = InMemoryObjectStore(), FakeDirectory()

    assert isinstance(build_user_registry("local", user_store=store), LocalUserRegistry)
    assert isinstance(
        build_user_registry("external", user_store=store, directory=directory),
        DirectoryUserRegistry,
    )

    with pytest.raises(ValueError):
        build_user_registry("external", user_store=store)
    with pytest.raises(ValueError):
        build_user_registry("local", directory=directory)


@pytest.mark.asyncio
async def test_local_registry_lifecycle(user_store):
    registry = LocalUserRegistry(user_store)

    user = await registry.create("Someone@Example.com", "editor")
    assert user.email == "someone@example.com"
    assert user.role == "editor"

    user.mark_email_verified()
    await registry.update(user)
    assert (await registry.get(user.id)).email_verified is True

    await registry.delete(user.id)
    assert await registry.get(user.id) is None


@pytest.mark.asyncio
async def test_directory_registry_delegates(directory):
    registry = DirectoryUserRegistry(directory)

    user = await registry.create("a@example.com", "user")
    assert user.id == "dir-1"
    assert (await registry.get("dir-1")).email == "a@example.com"

    await registry.delete("dir-1")
    assert directory.deleted == ["dir-1"]
