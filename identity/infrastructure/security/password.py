from __future__ import annotations

import logging

from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from identity.settings import get_settings

logger = logging.getLogger(__name__)

# One global context; bcrypt is the only scheme we use.
_pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str, *, rounds: int | None = None) -> str:
    """
    Hash a password using bcrypt (per-hash random salt embedded in the
    result). If rounds is None, use settings.bcrypt_rounds.
    """
    if rounds is None:
        rounds = int(get_settings().bcrypt_rounds)
    return _pwd.hash(plain, rounds=rounds)


def verify_password(plain: str, password_hash: str) -> bool:
    """
    Verify a password against its bcrypt hash (safe timing).
    A malformed stored hash counts as a mismatch, never an exception.
    """
    try:
        return _pwd.verify(plain, password_hash)
    except (UnknownHashError, ValueError, TypeError):
        logger.warning("unverifiable password hash")
        return False


# Compared against when the account does not exist, so a miss costs as much
# as a wrong password.
_DUMMY_HASH: str | None = None


def dummy_verify(plain: str) -> bool:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password("dummy-password-for-timing")
    verify_password(plain, _DUMMY_HASH)
    return False
