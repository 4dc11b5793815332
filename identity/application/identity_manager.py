from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from identity.application.tickets import TicketCheck, TicketEngine
from identity.application.user_registry import UserRegistry
from identity.domain.entities import (
    Credential,
    TicketPurpose,
    User,
    normalize_email,
)
from identity.domain.errors import (
    AuthenticationError,
    ConflictError,
    DirectoryError,
    DirectoryNotFoundError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from identity.domain.ports.object_store import ObjectStorePort
from identity.domain.ports.token_denylist import TokenDenylistPort
from identity.domain.services import check_password_policy
from identity.infrastructure.security.tokens import SessionTokenIssuer

logger = logging.getLogger(__name__)

EMAIL_OR_PASSWORD_ERROR = "incorrect email or password"


@dataclass(frozen=True)
class Registration:
    user: User
    email_ticket: str


class IdentityManager:
    """
    Orchestrates the user lifecycle over the credential store, the ticket
    engine, the session token issuer and the user registry (local or
    external directory).

    Per user: Unregistered -> PendingVerification -> Verified, with email
    and mobile verification tracked independently.
    """

    def __init__(
        self,
        *,
        credentials: ObjectStorePort,
        users: UserRegistry,
        tickets: TicketEngine,
        tokens: SessionTokenIssuer,
        hash_password: Callable[[str], str],
        verify_password: Callable[[str, str], bool],
        dummy_verify: Callable[[str], bool] | None = None,
        denylist: TokenDenylistPort | None = None,
        min_password_length: int = 10,
        ticket_ttl_seconds: float = 60 * 60 * 24,
        mobile_ticket_ttl_seconds: float = 360,
        default_role: str = "user",
    ) -> None:
        self._credentials = credentials
        self._users = users
        self._tickets = tickets
        self._tokens = tokens
        self._hash_password = hash_password
        self._verify_password = verify_password
        self._dummy_verify = dummy_verify
        self._denylist = denylist
        self.min_password_length = min_password_length
        self.ticket_ttl_seconds = ticket_ttl_seconds
        self.mobile_ticket_ttl_seconds = mobile_ticket_ttl_seconds
        self.default_role = default_role

    # -- lookups -----------------------------------------------------------

    async def _get_credential(self, email: str) -> Credential | None:
        raw = await self._credentials.get(email)
        return Credential.from_dict(raw) if raw else None

    async def _require_credential(self, email: str) -> Credential:
        credential = await self._get_credential(email)
        if credential is None:
            raise NotFoundError("email does not exist")
        return credential

    async def user_exists(self, email: str) -> bool:
        return await self._get_credential(normalize_email(email)) is not None

    async def get_user(self, user_id: str) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def get_user_with_email(self, email: str) -> User:
        credential = await self._require_credential(normalize_email(email))
        return await self.get_user(credential.user_id)

    async def get_user_with_email_password(self, email: str, password: str) -> User:
        """Same error for unknown email and wrong password."""
        try:
            email = normalize_email(email)
        except ValidationError:
            raise AuthenticationError(EMAIL_OR_PASSWORD_ERROR)

        credential = await self._get_credential(email)
        if credential is None:
            if self._dummy_verify is not None:
                self._dummy_verify(password)
            raise AuthenticationError(EMAIL_OR_PASSWORD_ERROR)
        if not self._verify_password(password, credential.password_hash):
            raise AuthenticationError(EMAIL_OR_PASSWORD_ERROR)

        user = await self._users.get(credential.user_id)
        if user is None:
            raise AuthenticationError(EMAIL_OR_PASSWORD_ERROR)
        return user

    # -- registration --------------------------------------------------------

    async def _is_verified(self, credential: Credential) -> bool:
        user = await self._users.get(credential.user_id)
        if user is not None and user.email_verified:
            return True
        ticket = await self._tickets.get(credential.email, TicketPurpose.EMAIL_VERIFY)
        return ticket is not None and ticket.verified

    async def create_user(
        self, email: str, password: str, role: str | None = None
    ) -> Registration:
        email = normalize_email(email)
        check_password_policy(password, self.min_password_length)

        existing = await self._get_credential(email)
        if existing is not None:
            if await self._is_verified(existing):
                raise ConflictError("email already exists")
            # restart an abandoned registration from scratch
            logger.info("replacing pending registration", extra={"user_id": existing.user_id})
            await self.delete_user(email)

        user = await self._users.create(email, role or self.default_role)
        try:
            credential = Credential(
                email=email,
                user_id=user.id,
                password_hash=self._hash_password(password),
            )
            await self._credentials.put(email, credential.to_dict())
            ticket = await self.add_email_verify_ticket(email)
        except Exception:
            await self._discard_partial_registration(email, user.id)
            raise

        logger.info("user created", extra={"user_id": user.id, "registry": self._users.kind})
        return Registration(user=user, email_ticket=ticket)

    async def _discard_partial_registration(self, email: str, user_id: str) -> None:
        logger.warning("registration failed; cleaning up", extra={"user_id": user_id})
        await self._credentials.delete(email)
        try:
            await self._users.delete(user_id)
        except DirectoryError:
            logger.exception("cleanup of directory user failed", extra={"user_id": user_id})

    async def delete_user(self, email: str) -> None:
        email = normalize_email(email)
        credential = await self._get_credential(email)
        if credential is None:
            raise NotFoundError("user not found")

        # any directory failure other than 404 aborts before the local
        # pointer is lost
        try:
            await self._users.delete(credential.user_id)
        except DirectoryNotFoundError:
            logger.info(
                "user already absent from directory",
                extra={"user_id": credential.user_id},
            )

        await self._credentials.delete(email)
        await self._tickets.revoke_all(email)
        await self._tickets.revoke(credential.user_id, TicketPurpose.MOBILE_VERIFY)
        logger.info("user deleted", extra={"user_id": credential.user_id})

    # -- email verification --------------------------------------------------

    async def is_email_verified(self, email: str) -> bool:
        credential = await self._require_credential(normalize_email(email))
        return await self._is_verified(credential)

    async def add_email_verify_ticket(self, email: str) -> str:
        email = normalize_email(email)
        await self._require_credential(email)
        return await self._tickets.issue(
            email, TicketPurpose.EMAIL_VERIFY, self.ticket_ttl_seconds
        )

    async def verify_email(self, email: str, ticket: str) -> User:
        email = normalize_email(email)
        credential = await self._require_credential(email)
        await self._tickets.validate(email, TicketPurpose.EMAIL_VERIFY, ticket)

        user = await self.get_user(credential.user_id)
        user.mark_email_verified()
        await self._users.update(user)
        await self._tickets.consume(email, TicketPurpose.EMAIL_VERIFY)
        logger.info("email verified", extra={"user_id": user.id})
        return user

    # -- password reset ------------------------------------------------------

    async def add_password_reset_ticket(self, email: str) -> str:
        email = normalize_email(email)
        await self._require_credential(email)
        return await self._tickets.issue(
            email, TicketPurpose.PASSWORD_RESET, self.ticket_ttl_seconds
        )

    async def remove_password_reset_ticket(self, email: str) -> None:
        email = normalize_email(email)
        await self._require_credential(email)
        await self._tickets.revoke(email, TicketPurpose.PASSWORD_RESET)

    async def check_password_reset_ticket(self, email: str, ticket: str) -> TicketCheck:
        return await self._tickets.is_valid(
            normalize_email(email), TicketPurpose.PASSWORD_RESET, ticket
        )

    async def update_password(self, email: str, new_password: str, ticket: str) -> None:
        email = normalize_email(email)
        check_password_policy(new_password, self.min_password_length)
        previous = await self._require_credential(email)
        await self._tickets.validate(email, TicketPurpose.PASSWORD_RESET, ticket)

        updated = Credential(
            email=email,
            user_id=previous.user_id,
            password_hash=self._hash_password(new_password),
        )
        await self._credentials.put(email, updated.to_dict())
        try:
            await self._tickets.consume(email, TicketPurpose.PASSWORD_RESET)
        except Exception:
            # the new hash must not outlive a ticket that is still usable
            await self._credentials.put(email, previous.to_dict())
            raise
        logger.info("password updated", extra={"user_id": previous.user_id})

    # -- mobile verification -------------------------------------------------

    async def add_mobile(self, user_id: str, mobile: str) -> str:
        user = await self.get_user(user_id)
        user.set_mobile(mobile)
        await self._users.update(user)
        return await self._tickets.issue(
            user.id, TicketPurpose.MOBILE_VERIFY, self.mobile_ticket_ttl_seconds
        )

    async def verify_mobile(self, user_id: str, code: str) -> User:
        user = await self.get_user(user_id)
        await self._tickets.validate(user.id, TicketPurpose.MOBILE_VERIFY, code)
        user.mark_mobile_verified()
        await self._users.update(user)
        await self._tickets.consume(user.id, TicketPurpose.MOBILE_VERIFY)
        logger.info("mobile verified", extra={"user_id": user.id})
        return user

    # -- session tokens ------------------------------------------------------

    def create_session_token(self, user: User, *, grant_id: str | None = None) -> str:
        return self._tokens.sign(user.id, self._tokens.role_claims(user, grant_id=grant_id))

    async def _verify_session_token(self, token: str) -> dict:
        claims = self._tokens.verify(token)
        if self._denylist is not None and await self._denylist.is_revoked(claims["jti"]):
            raise InvalidTokenError("token has been revoked")
        return claims

    async def get_user_with_token(self, token: str) -> User:
        claims = await self._verify_session_token(token)
        user = await self._users.get(str(claims["sub"]))
        if user is None:
            raise InvalidTokenError("unknown user")
        return user

    async def revoke_session_token(self, token: str) -> None:
        if self._denylist is None:
            raise RuntimeError("session token revocation is not configured")
        claims = await self._verify_session_token(token)
        await self._denylist.revoke(
            claims["jti"], SessionTokenIssuer.remaining_seconds(claims)
        )
        logger.info("session token revoked", extra={"user_id": claims["sub"]})
