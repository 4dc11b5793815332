# identity/domain/services.py
from __future__ import annotations

import base64
import hashlib
import hmac
import re
import secrets
import string

from identity.domain.errors import ValidationError

# nanoid's default alphabet: URL-safe without escaping
URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "_-"
NUMERIC_ALPHABET = string.digits

LINK_TICKET_SIZE = 21
SMS_CODE_SIZE = 6

# RFC 7636 section 4.1: unreserved characters, 43..128 long
_PKCE_VALUE_RE = re.compile(r"[A-Za-z0-9\-._~]{43,128}")

PKCE_METHOD_PLAIN = "plain"
PKCE_METHOD_S256 = "S256"
SUPPORTED_PKCE_METHODS = frozenset({PKCE_METHOD_PLAIN, PKCE_METHOD_S256})


def generate_ticket(size: int = LINK_TICKET_SIZE, alphabet: str = URL_SAFE_ALPHABET) -> str:
    """Cryptographically random string drawn uniformly from `alphabet`."""
    if size <= 0:
        raise ValueError("size must be positive")
    return "".join(secrets.choice(alphabet) for _ in range(size))


def generate_sms_code() -> str:
    """Zero-padded 6-digit numeric code."""
    return generate_ticket(SMS_CODE_SIZE, NUMERIC_ALPHABET)


def generate_opaque_token(nbytes: int = 40) -> str:
    """High-entropy opaque value for authorization codes and OAuth tokens."""
    return secrets.token_urlsafe(nbytes)


def secure_compare(a: str, b: str) -> bool:
    """
    Constant-time comparison for secrets.
    Accepts strings; falls back to bytes if needed.
    """
    try:
        return hmac.compare_digest(a, b)
    except TypeError:
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def check_password_policy(password: str | None, min_length: int) -> None:
    if password is None or len(password) < min_length:
        raise ValidationError(f"password must be {min_length} characters or longer")


def base64url_encode(raw: bytes) -> str:
    """base64url without padding, as used by PKCE."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def s256_code_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64url_encode(digest)


def is_valid_pkce_value(value: str | None) -> bool:
    return bool(value) and _PKCE_VALUE_RE.fullmatch(value) is not None


def verify_code_challenge(code_verifier: str, code_challenge: str, method: str) -> bool:
    if method == PKCE_METHOD_S256:
        computed = s256_code_challenge(code_verifier)
    elif method == PKCE_METHOD_PLAIN:
        computed = code_verifier
    else:
        return False
    return secure_compare(computed, code_challenge)
