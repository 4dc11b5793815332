"""
Session tokens: compact HMAC-signed JWTs (PyJWT).

Payload is {sub, iat, jti[, exp]} plus caller-supplied namespaced claims
used downstream for role propagation to the data layer. A ttl of None or 0
produces a token without `exp`; such tokens can only be invalidated through
the denylist or by rotating the secret.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt

from identity.domain.entities import User
from identity.domain.errors import InvalidTokenError

_UNSET: Any = object()

_REQUIRED_CLAIMS = ["sub", "iat", "jti"]


class SessionTokenIssuer:
    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int | None = None,
        claims_namespace: str = "https://hasura.io/jwt/claims",
        leeway_seconds: int = 0,
    ) -> None:
        if not secret:
            raise ValueError("secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl_seconds or None
        self._namespace = claims_namespace
        self._leeway = leeway_seconds

    @property
    def ttl_seconds(self) -> int | None:
        return self._ttl

    def sign(
        self,
        subject_id: str,
        claims: dict[str, Any] | None = None,
        ttl_seconds: int | None = _UNSET,
    ) -> str:
        ttl = self._ttl if ttl_seconds is _UNSET else (ttl_seconds or None)
        now = int(time.time())
        payload: dict[str, Any] = dict(claims or {})
        payload.update({"sub": subject_id, "iat": now, "jti": uuid.uuid4().hex})
        if ttl:
            payload["exp"] = now + int(ttl)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError("invalid or expired token") from e

    def role_claims(
        self,
        user: User,
        *,
        allowed_roles: list[str] | None = None,
        grant_id: str | None = None,
    ) -> dict[str, Any]:
        inner: dict[str, Any] = {
            "x-hasura-allowed-roles": allowed_roles or [user.role],
            "x-hasura-default-role": user.role,
            "x-hasura-user-id": user.id,
        }
        if grant_id:
            inner["x-hasura-grant-id"] = grant_id
        return {self._namespace: inner}

    @staticmethod
    def remaining_seconds(claims: dict[str, Any]) -> int | None:
        exp = claims.get("exp")
        if exp is None:
            return None
        return max(int(exp) - int(time.time()), 1)
