from __future__ import annotations

import logging
from typing import Any

import identity.domain.services as domain_services
from identity.application.oauth2.grants import AuthorizationCodeGrant, RefreshTokenGrant
from identity.application.oauth2.repositories import (
    AuthCodeRepository,
    ClientRepository,
    ScopeRepository,
    TokenRepository,
)
from identity.application.oauth2.requests import (
    AuthorizationRequest,
    RevocationRequest,
    TokenRequest,
    ValidatedAuthorization,
)
from identity.domain.entities import utcnow
from identity.domain.errors import (
    OAuthInvalidClientError,
    OAuthInvalidRequestError,
    OAuthUnsupportedGrantTypeError,
)
from identity.domain.oauth import OAuth2Client, Token

logger = logging.getLogger(__name__)

TOKEN_RESPONSE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


class AuthorizationServer:
    """Entry point for /authorize, /token and /revoke."""

    def __init__(
        self,
        *,
        clients: ClientRepository,
        scopes: ScopeRepository,
        auth_codes: AuthCodeRepository,
        tokens: TokenRepository,
        pkce_required: bool = False,
    ) -> None:
        self._clients = clients
        self._tokens = tokens
        self.authorization_code = AuthorizationCodeGrant(
            scopes=scopes,
            auth_codes=auth_codes,
            tokens=tokens,
            pkce_required=pkce_required,
        )
        self.grants = {
            AuthorizationCodeGrant.grant_type: self.authorization_code,
            RefreshTokenGrant.grant_type: RefreshTokenGrant(tokens=tokens, auth_codes=auth_codes),
        }

    async def authenticate_client(
        self,
        client_id: str | None,
        client_secret: str | None,
        *,
        state: str | None = None,
    ) -> OAuth2Client:
        """
        Confidential clients must present their secret; public clients
        (no registered secret) are identified by client_id alone.
        """
        if not client_id:
            raise OAuthInvalidClientError("client_id not found in request", state=state)
        client = await self._clients.get_by_id(client_id)
        if client is None:
            raise OAuthInvalidClientError("Client authentication failed", state=state)
        if client.secret and not domain_services.secure_compare(
            client.secret, client_secret or ""
        ):
            raise OAuthInvalidClientError("Client authentication failed", state=state)
        return client

    async def validate_authorization_request(
        self, request: AuthorizationRequest
    ) -> ValidatedAuthorization:
        if not request.client_id:
            raise OAuthInvalidClientError("client_id not found in request", state=request.state)
        client = await self._clients.get_by_id(request.client_id)
        if client is None:
            raise OAuthInvalidClientError(
                f"Unable to find given client_id={request.client_id}", state=request.state
            )
        return await self.authorization_code.validate_authorization_request(request, client)

    async def complete_authorization_request(
        self, validated: ValidatedAuthorization, user_id: str
    ) -> str:
        return await self.authorization_code.create_authorization_response(validated, user_id)

    async def respond_to_token_request(self, request: TokenRequest) -> dict[str, Any]:
        if not request.grant_type:
            raise OAuthInvalidRequestError('Missing "grant_type"', state=request.state)
        grant = self.grants.get(request.grant_type)
        if grant is None:
            raise OAuthUnsupportedGrantTypeError(
                f"grant_type {request.grant_type} is not supported", state=request.state
            )
        client = await self.authenticate_client(
            request.client_id, request.client_secret, state=request.state
        )
        token = await grant.create_token_response(request, client)
        return self.token_response(token)

    async def revoke_token(self, request: RevocationRequest) -> None:
        """
        RFC 7009: unknown tokens and tokens of other clients are ignored so
        the response never reveals whether a token exists.
        """
        client = await self.authenticate_client(request.client_id, request.client_secret)
        if not request.token:
            raise OAuthInvalidRequestError('Missing "token"')

        lookups = [self._tokens.get_by_access_token, self._tokens.get_by_refresh_token]
        if request.token_type_hint == "refresh_token":
            lookups.reverse()
        for lookup in lookups:
            token = await lookup(request.token)
            if token is not None:
                if token.client_id == client.id:
                    await self._tokens.revoke(token)
                return

    @staticmethod
    def token_response(token: Token) -> dict[str, Any]:
        expires_in = int((token.access_token_expires_at - utcnow()).total_seconds())
        body: dict[str, Any] = {
            "access_token": token.access_token,
            "token_type": "Bearer",
            "expires_in": max(expires_in, 0),
            "scope": " ".join(token.scopes),
        }
        if token.refresh_token:
            body["refresh_token"] = token.refresh_token
        return body
