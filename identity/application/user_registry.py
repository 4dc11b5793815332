"""
Where user profiles live. A deployment masters users either locally or in
an external directory, never both; `build_user_registry` picks the variant
from settings.
"""

from __future__ import annotations

import uuid
from typing import Literal, Protocol

from identity.domain.entities import User
from identity.domain.ports.object_store import ObjectStorePort
from identity.domain.ports.user_directory import UserDirectoryPort


class UserRegistry(Protocol):
    kind: Literal["local", "external"]

    async def create(self, email: str, role: str) -> User: ...

    async def get(self, user_id: str) -> User | None: ...

    async def update(self, user: User) -> User: ...

    async def delete(self, user_id: str) -> None: ...


class LocalUserRegistry:
    kind: Literal["local"] = "local"

    def __init__(self, store: ObjectStorePort) -> None:
        self._store = store

    async def create(self, email: str, role: str) -> User:
        user = User(id=str(uuid.uuid4()), email=email, role=role)
        await self._store.put(user.id, user.to_dict())
        return user

    async def get(self, user_id: str) -> User | None:
        raw = await self._store.get(user_id)
        return User.from_dict(raw) if raw else None

    async def update(self, user: User) -> User:
        await self._store.put(user.id, user.to_dict())
        return user

    async def delete(self, user_id: str) -> None:
        await self._store.delete(user_id)


class DirectoryUserRegistry:
    kind: Literal["external"] = "external"

    def __init__(self, directory: UserDirectoryPort) -> None:
        self._directory = directory

    async def create(self, email: str, role: str) -> User:
        return await self._directory.create_user_with_email(email, role)

    async def get(self, user_id: str) -> User | None:
        return await self._directory.get_user_by_id(user_id)

    async def update(self, user: User) -> User:
        return await self._directory.update_user(user)

    async def delete(self, user_id: str) -> None:
        await self._directory.delete_user_by_id(user_id)


def build_user_registry(
    kind: Literal["local", "external"],
    *,
    user_store: ObjectStorePort | None = None,
    directory: UserDirectoryPort | None = None,
) -> UserRegistry:
    if kind == "external":
        if directory is None:
            raise ValueError("external user registry requires a directory client")
        return DirectoryUserRegistry(directory)
    if user_store is None:
        raise ValueError("local user registry requires a user store")
    return LocalUserRegistry(user_store)
