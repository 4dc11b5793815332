from __future__ import annotations

import logging
from datetime import timedelta

import identity.domain.services as domain_services
from identity.domain.entities import utcnow
from identity.domain.errors import OAuthInvalidScopeError
from identity.domain.oauth import AuthorizationCode, OAuth2Client, Scope, Token
from identity.domain.ports.object_store import (
    ExpiringObjectStorePort,
    ObjectStorePort,
)

logger = logging.getLogger(__name__)


class ClientRepository:
    def __init__(self, store: ObjectStorePort) -> None:
        self._store = store

    async def get_by_id(self, client_id: str) -> OAuth2Client | None:
        raw = await self._store.get(client_id)
        return OAuth2Client.from_dict(raw) if raw else None

    async def save(self, client: OAuth2Client) -> OAuth2Client:
        await self._store.put(client.id, client.to_dict())
        return client


class ScopeRepository:
    def __init__(self, store: ObjectStorePort) -> None:
        self._store = store

    async def get_all_by_names(self, names: list[str]) -> list[Scope]:
        found: list[Scope] = []
        for name in names:
            raw = await self._store.get(name)
            if raw:
                found.append(Scope.from_dict(raw))
        return found

    async def save(self, scope: Scope) -> Scope:
        await self._store.put(scope.name, scope.to_dict())
        return scope

    async def resolve(self, requested: str | None, client: OAuth2Client) -> list[str]:
        """
        Turn a space-delimited scope parameter into the granted scope list.
        No parameter means everything the client is registered for.
        """
        if requested is None or not requested.strip():
            return list(client.scopes)

        names = list(dict.fromkeys(requested.split()))
        known = {scope.name for scope in await self.get_all_by_names(names)}
        unknown = [name for name in names if name not in known]
        if unknown:
            raise OAuthInvalidScopeError(f"unknown scope: {' '.join(unknown)}")
        not_allowed = [name for name in names if name not in client.scopes]
        if not_allowed:
            raise OAuthInvalidScopeError(
                f"client may not request scope: {' '.join(not_allowed)}"
            )
        return names


class AuthCodeRepository:
    """
    Authorization codes live in an expiring store for `ttl_seconds` after
    their last write. Redeemed codes stay until then so replays are
    recognisable.
    """

    def __init__(self, store: ExpiringObjectStorePort, *, ttl_seconds: int = 15 * 60) -> None:
        self._store = store
        self._ttl = ttl_seconds

    def issue(
        self,
        client: OAuth2Client,
        user_id: str | None,
        scopes: list[str],
        *,
        redirect_uri: str | None = None,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
    ) -> AuthorizationCode:
        return AuthorizationCode(
            code=domain_services.generate_opaque_token(),
            expires_at=utcnow() + timedelta(seconds=self._ttl),
            client_id=client.id,
            user_id=user_id,
            scopes=list(scopes),
            redirect_uri=redirect_uri,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )

    async def persist(self, auth_code: AuthorizationCode) -> None:
        await self._store.put_with_ttl(auth_code.code, auth_code.to_dict(), self._ttl)

    async def get(self, code: str) -> AuthorizationCode | None:
        raw = await self._store.get(code)
        return AuthorizationCode.from_dict(raw) if raw else None

    async def is_revoked(self, code: str) -> bool:
        auth_code = await self.get(code)
        return auth_code is None or auth_code.is_expired()

    async def revoke(self, code: str) -> None:
        auth_code = await self.get(code)
        if auth_code is None:
            return
        auth_code.revoke()
        await self.persist(auth_code)

    async def mark_redeemed(self, auth_code: AuthorizationCode, access_token: str) -> None:
        auth_code.redeemed_access_token = access_token
        auth_code.revoke()
        await self.persist(auth_code)

    async def record_rotation(self, code: str, access_token: str) -> None:
        """Point a redeemed code at the live token of its lineage."""
        auth_code = await self.get(code)
        if auth_code is None or not auth_code.is_redeemed:
            return
        auth_code.redeemed_access_token = access_token
        await self.persist(auth_code)


class TokenRepository:
    """
    Tokens keyed by access token, plus a refresh-token -> access-token
    index so refresh requests can find their record.
    """

    def __init__(
        self,
        tokens: ExpiringObjectStorePort,
        refresh_index: ExpiringObjectStorePort,
        *,
        access_token_ttl_seconds: int = 2 * 60 * 60,
        refresh_token_ttl_seconds: int = 2 * 60 * 60,
        revoked_retention_seconds: int = 60,
    ) -> None:
        self._tokens = tokens
        self._refresh_index = refresh_index
        self.access_token_ttl = access_token_ttl_seconds
        self.refresh_token_ttl = refresh_token_ttl_seconds
        self._revoked_retention = revoked_retention_seconds

    def issue_token(
        self,
        client: OAuth2Client,
        user_id: str | None,
        scopes: list[str],
        *,
        grant_id: str | None = None,
    ) -> Token:
        return Token(
            access_token=domain_services.generate_opaque_token(),
            access_token_expires_at=utcnow() + timedelta(seconds=self.access_token_ttl),
            client_id=client.id,
            user_id=user_id,
            scopes=list(scopes),
            grant_id=grant_id,
        )

    def issue_refresh_token(self, token: Token) -> Token:
        token.refresh_token = domain_services.generate_opaque_token()
        token.refresh_token_expires_at = utcnow() + timedelta(
            seconds=self.refresh_token_ttl
        )
        return token

    async def persist(self, token: Token) -> None:
        now = utcnow()
        deadline = token.access_token_expires_at
        if token.refresh_token_expires_at and token.refresh_token_expires_at > deadline:
            deadline = token.refresh_token_expires_at
        ttl = max((deadline - now).total_seconds(), 1)
        await self._tokens.put_with_ttl(token.access_token, token.to_dict(), ttl)
        if token.refresh_token and token.refresh_token_expires_at:
            refresh_ttl = max((token.refresh_token_expires_at - now).total_seconds(), 1)
            await self._refresh_index.put_with_ttl(
                token.refresh_token, {"access_token": token.access_token}, refresh_ttl
            )

    async def get_by_access_token(self, access_token: str) -> Token | None:
        raw = await self._tokens.get(access_token)
        return Token.from_dict(raw) if raw else None

    async def get_by_refresh_token(self, refresh_token: str) -> Token | None:
        pointer = await self._refresh_index.get(refresh_token)
        if not pointer:
            return None
        token = await self.get_by_access_token(pointer["access_token"])
        if token is None or token.refresh_token != refresh_token:
            return None
        return token

    async def revoke(self, token: Token) -> None:
        token.revoke()
        await self._tokens.put_with_ttl(
            token.access_token, token.to_dict(), self._revoked_retention
        )
        if token.refresh_token:
            await self._refresh_index.delete(token.refresh_token)
        logger.info("oauth token revoked", extra={"client_id": token.client_id})
