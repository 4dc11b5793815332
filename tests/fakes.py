import copy
import time
from typing import Any

from identity.domain.entities import User
from identity.domain.errors import DirectoryError, DirectoryNotFoundError, NotificationError


class InMemoryObjectStore:
    """Dict-backed object store; entries written with a TTL vanish on read once due."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, Any]] = {}
        self.deadlines: dict[str, float] = {}
        self.puts: list[str] = []

    def _expired(self, key: str) -> bool:
        deadline = self.deadlines.get(key)
        return deadline is not None and time.monotonic() >= deadline

    async def get(self, key: str) -> dict[str, Any] | None:
        if key not in self.data:
            return None
        if self._expired(key):
            self.data.pop(key, None)
            self.deadlines.pop(key, None)
            return None
        return copy.deepcopy(self.data[key])

    async def put(self, key: str, value: dict[str, Any]) -> dict[str, Any]:
        self.data[key] = copy.deepcopy(value)
        self.deadlines.pop(key, None)
        self.puts.append(key)
        return value

    async def put_with_ttl(
        self, key: str, value: dict[str, Any], ttl_seconds: float
    ) -> dict[str, Any]:
        await self.put(key, value)
        self.deadlines[key] = time.monotonic() + ttl_seconds
        return value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)
        self.deadlines.pop(key, None)


class StaleObjectStore(InMemoryObjectStore):
    """Never auto-expires, like a storage layer that is late to evict."""

    async def put_with_ttl(
        self, key: str, value: dict[str, Any], ttl_seconds: float
    ) -> dict[str, Any]:
        return await self.put(key, value)


class FailingPutStore(InMemoryObjectStore):
    def __init__(self, fail_on_put: int = 1) -> None:
        super().__init__()
        self.fail_on_put = fail_on_put
        self._put_count = 0

    async def put(self, key: str, value: dict[str, Any]) -> dict[str, Any]:
        self._put_count += 1
        if self._put_count == self.fail_on_put:
            raise RuntimeError("store down")
        return await super().put(key, value)


class FakeEmailOK:
    def __init__(self):
        self.calls: list[dict[str, Any]] = []

    async def send_email(
        self, *, to: str, subject: str, html_body: str, idempotency_key=None
    ) -> None:
        self.calls.append(
            {
                "to": to,
                "subject": subject,
                "html_body": html_body,
                "idempotency_key": idempotency_key,
            }
        )


class FakeEmailDown:
    def __init__(self):
        self.calls: int = 0

    async def send_email(
        self, *, to: str, subject: str, html_body: str, idempotency_key=None
    ) -> None:
        self.calls += 1
        raise NotificationError("relay down")


class FakeSmsOK:
    def __init__(self):
        self.calls: list[dict[str, str]] = []

    async def send_sms(self, *, to: str, message: str) -> None:
        self.calls.append({"to": to, "message": message})


class FakeSmsDown:
    async def send_sms(self, *, to: str, message: str) -> None:
        raise NotificationError("sms relay down")


class FakeDenylist:
    def __init__(self) -> None:
        self.revoked: dict[str, int | None] = {}

    async def revoke(self, token_id: str, ttl_seconds: int | None) -> None:
        self.revoked[token_id] = ttl_seconds

    async def is_revoked(self, token_id: str) -> bool:
        return token_id in self.revoked


class FakeDirectory:
    """
    External directory double. `delete_error` is raised from
    delete_user_by_id when set; `create_error` from create_user_with_email.
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.deleted: list[str] = []
        self.delete_error: Exception | None = None
        self.create_error: Exception | None = None
        self._next = 0

    async def create_user_with_email(self, email: str, role: str) -> User:
        if self.create_error is not None:
            raise self.create_error
        self._next += 1
        user = User(id=f"dir-{self._next}", email=email, role=role)
        self.users[user.id] = user
        return copy.deepcopy(user)

    async def get_user_by_id(self, user_id: str) -> User | None:
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def update_user(self, user: User) -> User:
        if user.id not in self.users:
            raise DirectoryError("no such user", upstream_status=404)
        self.users[user.id] = copy.deepcopy(user)
        return user

    async def delete_user_by_id(self, user_id: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        if user_id not in self.users:
            raise DirectoryNotFoundError("gone", upstream_status=404)
        del self.users[user_id]
        self.deleted.append(user_id)
