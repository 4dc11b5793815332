"""
Authorization Code Grant (RFC 6749 section 4.1) with optional PKCE
(RFC 7636), and the refresh-token grant with rotation.

Per authorization: Requested -> CodeIssued -> {Redeemed | Expired | Revoked}.
Per token: Issued -> Active -> {RefreshedAway | Expired | Revoked}.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import identity.domain.services as domain_services
from identity.application.oauth2.repositories import (
    AuthCodeRepository,
    ScopeRepository,
    TokenRepository,
)
from identity.application.oauth2.requests import (
    AuthorizationRequest,
    TokenRequest,
    ValidatedAuthorization,
)
from identity.domain.errors import (
    OAuth2Error,
    OAuthInvalidGrantError,
    OAuthInvalidRequestError,
    OAuthInvalidScopeError,
    OAuthUnauthorizedClientError,
)
from identity.domain.oauth import (
    GRANT_AUTHORIZATION_CODE,
    GRANT_REFRESH_TOKEN,
    AuthorizationCode,
    OAuth2Client,
    Token,
)

logger = logging.getLogger(__name__)


def add_query_params(uri: str, params: dict[str, str]) -> str:
    parts = urlsplit(uri)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


class AuthorizationCodeGrant:
    grant_type = GRANT_AUTHORIZATION_CODE

    def __init__(
        self,
        *,
        scopes: ScopeRepository,
        auth_codes: AuthCodeRepository,
        tokens: TokenRepository,
        pkce_required: bool = False,
        default_challenge_method: str = domain_services.PKCE_METHOD_S256,
    ) -> None:
        self._scopes = scopes
        self._auth_codes = auth_codes
        self._tokens = tokens
        self.pkce_required = pkce_required
        self.default_challenge_method = default_challenge_method

    # -- /authorize ----------------------------------------------------------

    def _validate_redirect_uri(
        self, request: AuthorizationRequest, client: OAuth2Client
    ) -> str:
        if request.redirect_uri:
            if not client.check_redirect_uri(request.redirect_uri):
                raise OAuthInvalidRequestError(
                    f"redirect_uri {request.redirect_uri} is not registered for the client",
                    state=request.state,
                )
            return request.redirect_uri
        default = client.default_redirect_uri()
        if not default:
            raise OAuthInvalidRequestError(
                'Missing "redirect_uri" query parameter', state=request.state
            )
        return default

    def _validate_code_challenge(
        self, request: AuthorizationRequest
    ) -> tuple[str | None, str | None]:
        challenge = request.code_challenge
        method = request.code_challenge_method

        if not challenge and not method:
            if self.pkce_required:
                raise OAuthInvalidRequestError('Missing "code_challenge"')
            return None, None
        if not challenge:
            raise OAuthInvalidRequestError('Missing "code_challenge"')

        method = method or self.default_challenge_method
        if method not in domain_services.SUPPORTED_PKCE_METHODS:
            raise OAuthInvalidRequestError('Unsupported "code_challenge_method"')
        if not domain_services.is_valid_pkce_value(challenge):
            raise OAuthInvalidRequestError('Invalid "code_challenge"')
        return challenge, method

    async def validate_authorization_request(
        self, request: AuthorizationRequest, client: OAuth2Client
    ) -> ValidatedAuthorization:
        # errors before the redirect URI is trusted must not redirect
        redirect_uri = self._validate_redirect_uri(request, client)

        try:
            if not client.check_response_type(request.response_type):
                raise OAuthUnauthorizedClientError(
                    f"The client is not authorized to use the response type {request.response_type}"
                )
            scopes = await self._scopes.resolve(request.scope, client)
            challenge, method = self._validate_code_challenge(request)
        except OAuth2Error as e:
            e.state = request.state
            e.redirect_uri = redirect_uri
            raise

        return ValidatedAuthorization(
            client=client,
            redirect_uri=redirect_uri,
            requested_redirect_uri=request.redirect_uri or None,
            scopes=scopes,
            state=request.state,
            code_challenge=challenge,
            code_challenge_method=method,
        )

    async def create_authorization_response(
        self, validated: ValidatedAuthorization, user_id: str
    ) -> str:
        """Issue a code for the approving user and return the redirect location."""
        auth_code = self._auth_codes.issue(
            validated.client,
            user_id,
            validated.scopes,
            redirect_uri=validated.requested_redirect_uri,
            code_challenge=validated.code_challenge,
            code_challenge_method=validated.code_challenge_method,
        )
        await self._auth_codes.persist(auth_code)
        logger.info(
            "authorization code issued",
            extra={"client_id": validated.client.id, "pkce": bool(auth_code.code_challenge)},
        )

        params = {"code": auth_code.code}
        if validated.state:
            params["state"] = validated.state
        return add_query_params(validated.redirect_uri, params)

    # -- /token --------------------------------------------------------------

    def _validate_code_verifier(
        self, request: TokenRequest, auth_code: AuthorizationCode
    ) -> None:
        verifier = request.code_verifier
        challenge = auth_code.code_challenge

        if not challenge:
            if self.pkce_required:
                raise OAuthInvalidRequestError('Missing "code_verifier"', state=request.state)
            # plain RFC 6749 flow
            return
        if not verifier:
            raise OAuthInvalidRequestError('Missing "code_verifier"', state=request.state)
        if not domain_services.is_valid_pkce_value(verifier):
            raise OAuthInvalidRequestError('Invalid "code_verifier"', state=request.state)

        method = auth_code.code_challenge_method or self.default_challenge_method
        if not domain_services.verify_code_challenge(verifier, challenge, method):
            raise OAuthInvalidGrantError("Code challenge failed", state=request.state)

    async def validate_token_request(
        self, request: TokenRequest, client: OAuth2Client
    ) -> AuthorizationCode:
        if not client.check_grant_type(self.grant_type):
            raise OAuthUnauthorizedClientError(
                f"client is not authorized to use the grant type {self.grant_type}",
                state=request.state,
            )
        if not request.code:
            raise OAuthInvalidRequestError(
                "The code is not present in the request", state=request.state
            )

        auth_code = await self._auth_codes.get(request.code)
        if auth_code is None or auth_code.client_id != client.id:
            raise OAuthInvalidGrantError(
                "The code from the request is invalid.", state=request.state
            )
        if auth_code.is_redeemed:
            await self._revoke_replayed(auth_code)
            raise OAuthInvalidGrantError(
                "The code has already been used.", state=request.state
            )
        if auth_code.is_expired():
            raise OAuthInvalidGrantError(
                "The code has expired or was revoked.", state=request.state
            )

        if auth_code.redirect_uri is not None:
            if request.redirect_uri != auth_code.redirect_uri:
                raise OAuthInvalidGrantError(
                    "Invalid redirect_uri parameter in request.", state=request.state
                )
        elif request.redirect_uri and not client.check_redirect_uri(request.redirect_uri):
            raise OAuthInvalidGrantError(
                "Invalid redirect_uri parameter in request.", state=request.state
            )

        self._validate_code_verifier(request, auth_code)
        return auth_code

    async def _revoke_replayed(self, auth_code: AuthorizationCode) -> None:
        logger.warning(
            "authorization code replay detected", extra={"client_id": auth_code.client_id}
        )
        token = await self._tokens.get_by_access_token(auth_code.redeemed_access_token)
        if token is not None:
            await self._tokens.revoke(token)

    async def create_token_response(
        self, request: TokenRequest, client: OAuth2Client
    ) -> Token:
        auth_code = await self.validate_token_request(request, client)

        token = self._tokens.issue_token(
            client, auth_code.user_id, auth_code.scopes, grant_id=auth_code.code
        )
        if client.check_grant_type(GRANT_REFRESH_TOKEN):
            self._tokens.issue_refresh_token(token)

        # burn the code before the token becomes usable
        await self._auth_codes.mark_redeemed(auth_code, token.access_token)
        await self._tokens.persist(token)
        logger.info("authorization code redeemed", extra={"client_id": client.id})
        return token


class RefreshTokenGrant:
    grant_type = GRANT_REFRESH_TOKEN

    def __init__(
        self, *, tokens: TokenRepository, auth_codes: AuthCodeRepository | None = None
    ) -> None:
        self._tokens = tokens
        self._auth_codes = auth_codes

    async def validate_token_request(
        self, request: TokenRequest, client: OAuth2Client
    ) -> Token:
        if not client.check_grant_type(self.grant_type):
            raise OAuthUnauthorizedClientError(
                f"client is not authorized to use the grant type {self.grant_type}",
                state=request.state,
            )
        if not request.refresh_token:
            raise OAuthInvalidRequestError('Missing "refresh_token"', state=request.state)

        token = await self._tokens.get_by_refresh_token(request.refresh_token)
        if token is None:
            raise OAuthInvalidGrantError("The refresh token is invalid.", state=request.state)
        if token.client_id != client.id:
            raise OAuthInvalidGrantError("The refresh token is invalid.", state=request.state)
        if token.is_refresh_token_expired():
            raise OAuthInvalidGrantError(
                "The refresh token has expired or was revoked.", state=request.state
            )
        return token

    def _resolve_scopes(self, request: TokenRequest, previous: Token) -> list[str]:
        if not request.scope or not request.scope.strip():
            return list(previous.scopes)
        requested = list(dict.fromkeys(request.scope.split()))
        extra = [name for name in requested if name not in previous.scopes]
        if extra:
            raise OAuthInvalidScopeError(
                f"scope exceeds the original grant: {' '.join(extra)}", state=request.state
            )
        return requested

    async def create_token_response(
        self, request: TokenRequest, client: OAuth2Client
    ) -> Token:
        previous = await self.validate_token_request(request, client)
        scopes = self._resolve_scopes(request, previous)

        token = self._tokens.issue_token(
            client, previous.user_id, scopes, grant_id=previous.grant_id
        )
        self._tokens.issue_refresh_token(token)

        # rotation: the old refresh token dies before the new one exists
        await self._tokens.revoke(previous)
        await self._tokens.persist(token)
        if self._auth_codes is not None and token.grant_id:
            # a later replay of the code must reach this token, not the dead one
            await self._auth_codes.record_rotation(token.grant_id, token.access_token)
        logger.info("oauth token refreshed", extra={"client_id": client.id})
        return token
