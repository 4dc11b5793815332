from __future__ import annotations

from typing import Protocol

from identity.domain.entities import User


class UserDirectoryPort(Protocol):
    """External user-profile directory (optional collaborator)."""

    async def create_user_with_email(self, email: str, role: str) -> User:
        """Create a user and return it with the directory-assigned id."""

    async def get_user_by_id(self, user_id: str) -> User | None:
        """Return the user, or None if the directory has no such id."""

    async def update_user(self, user: User) -> User:
        """Replace the directory's copy of the user."""

    async def delete_user_by_id(self, user_id: str) -> None:
        """
        Delete the user.
        Raises DirectoryNotFoundError on 404, DirectoryError on anything else.
        """
