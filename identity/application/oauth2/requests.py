from __future__ import annotations

from dataclasses import dataclass, field

from identity.domain.oauth import OAuth2Client


@dataclass
class AuthorizationRequest:
    """Query parameters of GET /authorize."""

    client_id: str | None
    response_type: str | None
    redirect_uri: str | None = None
    scope: str | None = None
    state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


@dataclass
class ValidatedAuthorization:
    client: OAuth2Client
    redirect_uri: str
    # only set when the client sent redirect_uri explicitly
    requested_redirect_uri: str | None
    scopes: list[str] = field(default_factory=list)
    state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


@dataclass
class TokenRequest:
    """Form body of POST /token (client credentials merged in)."""

    grant_type: str | None
    client_id: str | None = None
    client_secret: str | None = None
    code: str | None = None
    redirect_uri: str | None = None
    code_verifier: str | None = None
    refresh_token: str | None = None
    scope: str | None = None
    state: str | None = None


@dataclass
class RevocationRequest:
    """Form body of POST /revoke (RFC 7009)."""

    token: str | None
    token_type_hint: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
