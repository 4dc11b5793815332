"""
OAuth2 reference and grant records.

Plain data with the few behaviours the grant engine needs (expiry,
revocation, redirect/grant checks). Timestamps are timezone-aware UTC;
revocation moves the deadline to the epoch so a revoked record is simply
a permanently expired one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from identity.domain.entities import _dt_in, _dt_out, utcnow

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"

# response_type -> grant it belongs to
RESPONSE_TYPE_GRANTS = {"code": GRANT_AUTHORIZATION_CODE}


@dataclass
class Scope:
    name: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scope":
        return cls(name=data["name"], description=data.get("description"))


@dataclass
class OAuth2Client:
    id: str
    name: str = ""
    secret: str | None = None
    redirect_uris: list[str] = field(default_factory=list)
    allowed_grants: list[str] = field(default_factory=list)
    scopes: list[str] = field(default_factory=list)

    @property
    def is_public(self) -> bool:
        return not self.secret

    def default_redirect_uri(self) -> str | None:
        # only unambiguous when exactly one URI is registered
        if len(self.redirect_uris) == 1:
            return self.redirect_uris[0]
        return None

    def check_redirect_uri(self, redirect_uri: str) -> bool:
        return redirect_uri in self.redirect_uris

    def check_grant_type(self, grant_type: str) -> bool:
        return grant_type in self.allowed_grants

    def check_response_type(self, response_type: str | None) -> bool:
        grant = RESPONSE_TYPE_GRANTS.get(response_type or "")
        return grant is not None and self.check_grant_type(grant)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "secret": self.secret,
            "redirect_uris": list(self.redirect_uris),
            "allowed_grants": list(self.allowed_grants),
            "scopes": list(self.scopes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OAuth2Client":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            secret=data.get("secret"),
            redirect_uris=list(data.get("redirect_uris", [])),
            allowed_grants=list(data.get("allowed_grants", [])),
            scopes=list(data.get("scopes", [])),
        )


@dataclass
class AuthorizationCode:
    code: str
    expires_at: datetime
    client_id: str
    user_id: str | None
    scopes: list[str] = field(default_factory=list)
    redirect_uri: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    redeemed_access_token: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    @property
    def is_redeemed(self) -> bool:
        return self.redeemed_access_token is not None

    def revoke(self) -> None:
        self.expires_at = EPOCH

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "expires_at": _dt_out(self.expires_at),
            "client_id": self.client_id,
            "user_id": self.user_id,
            "scopes": list(self.scopes),
            "redirect_uri": self.redirect_uri,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "redeemed_access_token": self.redeemed_access_token,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthorizationCode":
        return cls(
            code=data["code"],
            expires_at=_dt_in(data["expires_at"]),
            client_id=data["client_id"],
            user_id=data.get("user_id"),
            scopes=list(data.get("scopes", [])),
            redirect_uri=data.get("redirect_uri"),
            code_challenge=data.get("code_challenge"),
            code_challenge_method=data.get("code_challenge_method"),
            redeemed_access_token=data.get("redeemed_access_token"),
        )


@dataclass
class Token:
    access_token: str
    access_token_expires_at: datetime
    client_id: str
    user_id: str | None
    scopes: list[str] = field(default_factory=list)
    refresh_token: str | None = None
    refresh_token_expires_at: datetime | None = None
    # authorization code the lineage started from; rotations inherit it
    grant_id: str | None = None

    def is_access_token_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.access_token_expires_at

    def is_refresh_token_expired(self, now: datetime | None = None) -> bool:
        if not self.refresh_token or not self.refresh_token_expires_at:
            return True
        return (now or utcnow()) >= self.refresh_token_expires_at

    def revoke(self) -> None:
        self.access_token_expires_at = EPOCH
        if self.refresh_token_expires_at is not None:
            self.refresh_token_expires_at = EPOCH

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "access_token_expires_at": _dt_out(self.access_token_expires_at),
            "client_id": self.client_id,
            "user_id": self.user_id,
            "scopes": list(self.scopes),
            "refresh_token": self.refresh_token,
            "refresh_token_expires_at": _dt_out(self.refresh_token_expires_at),
            "grant_id": self.grant_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Token":
        return cls(
            access_token=data["access_token"],
            access_token_expires_at=_dt_in(data["access_token_expires_at"]),
            client_id=data["client_id"],
            user_id=data.get("user_id"),
            scopes=list(data.get("scopes", [])),
            refresh_token=data.get("refresh_token"),
            refresh_token_expires_at=_dt_in(data.get("refresh_token_expires_at")),
            grant_id=data.get("grant_id"),
        )
