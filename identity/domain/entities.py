from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from identity.domain.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt_out(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt_in(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def normalize_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValidationError("email is required")
    return normalized


class TicketPurpose(str, Enum):
    EMAIL_VERIFY = "email-verify"
    PASSWORD_RESET = "password-reset"
    MOBILE_VERIFY = "mobile-verify"


@dataclass
class VerificationTicket:
    subject_key: str
    purpose: TicketPurpose
    value: str
    expires_at: datetime
    verified: bool = False

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_key": self.subject_key,
            "purpose": self.purpose.value,
            "value": self.value,
            "expires_at": _dt_out(self.expires_at),
            "verified": self.verified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerificationTicket":
        return cls(
            subject_key=data["subject_key"],
            purpose=TicketPurpose(data["purpose"]),
            value=data["value"],
            expires_at=_dt_in(data["expires_at"]),
            verified=bool(data.get("verified", False)),
        )


@dataclass
class Credential:
    """Stored password hash for one subject (keyed by email)."""

    email: str
    user_id: str
    password_hash: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Credential":
        return cls(
            email=data["email"],
            user_id=data["user_id"],
            password_hash=data["password_hash"],
        )


@dataclass
class User:
    id: str
    email: str
    role: str = "user"
    mobile: str | None = None
    email_verified: bool = False
    mobile_verified: bool = False

    def __post_init__(self):
        self.email = normalize_email(self.email)

    def mark_email_verified(self) -> None:
        self.email_verified = True

    def set_mobile(self, mobile: str) -> None:
        mobile = mobile.strip()
        if not mobile:
            raise ValidationError("mobile is required")
        if mobile != self.mobile:
            self.mobile = mobile
            self.mobile_verified = False

    def mark_mobile_verified(self) -> None:
        if not self.mobile:
            raise ValidationError("no mobile number to verify")
        self.mobile_verified = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            role=data.get("role") or "user",
            mobile=data.get("mobile"),
            email_verified=bool(data.get("email_verified", data.get("emailVerified", False))),
            mobile_verified=bool(
                data.get("mobile_verified", data.get("mobileVerified", False))
            ),
        )
