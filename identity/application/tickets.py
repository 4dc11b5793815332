from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

import identity.domain.services as domain_services
from identity.domain.entities import TicketPurpose, VerificationTicket, utcnow
from identity.domain.errors import TicketExpiredError, TicketInvalidError
from identity.domain.ports.object_store import ExpiringObjectStorePort

logger = logging.getLogger(__name__)

# Verified email/mobile tickets are kept (until their deadline) so a repeated
# click can be answered as "already verified"; reset tickets are single-shot.
_KEEP_AFTER_CONSUME = frozenset({TicketPurpose.EMAIL_VERIFY, TicketPurpose.MOBILE_VERIFY})


@dataclass(frozen=True)
class TicketCheck:
    valid: bool
    expired: bool


class TicketEngine:
    """
    Issues and validates single-use, expiring tickets keyed by (subject, purpose).

    At most one ticket is active per pair: issuing always overwrites the
    previous value and restarts its clock, so a stale link stops working as
    soon as a new one is requested.
    """

    def __init__(
        self,
        store: ExpiringObjectStorePort,
        *,
        key_prefix: str = "ticket:",
        expired_grace_seconds: float = 60 * 60,
    ) -> None:
        self._store = store
        self._prefix = key_prefix
        # storage keeps a ticket this long past its deadline so a late click
        # is reported as expired rather than unknown
        self._grace = expired_grace_seconds

    def _key(self, subject_key: str, purpose: TicketPurpose) -> str:
        return f"{self._prefix}{purpose.value}:{subject_key}"

    async def issue(
        self, subject_key: str, purpose: TicketPurpose, ttl_seconds: float
    ) -> str:
        if purpose is TicketPurpose.MOBILE_VERIFY:
            value = domain_services.generate_sms_code()
        else:
            value = domain_services.generate_ticket()
        ticket = VerificationTicket(
            subject_key=subject_key,
            purpose=purpose,
            value=value,
            expires_at=utcnow() + timedelta(seconds=ttl_seconds),
        )
        await self._store.put_with_ttl(
            self._key(subject_key, purpose), ticket.to_dict(), ttl_seconds + self._grace
        )
        logger.info(
            "ticket issued",
            extra={"purpose": purpose.value, "ttl_seconds": ttl_seconds},
        )
        return value

    async def get(
        self, subject_key: str, purpose: TicketPurpose
    ) -> VerificationTicket | None:
        raw = await self._store.get(self._key(subject_key, purpose))
        return VerificationTicket.from_dict(raw) if raw else None

    async def is_valid(
        self, subject_key: str, purpose: TicketPurpose, supplied_value: str
    ) -> TicketCheck:
        """Side-effect free check: matching, unused, and before its deadline."""
        ticket = await self.get(subject_key, purpose)
        if ticket is None or ticket.verified:
            return TicketCheck(valid=False, expired=False)
        if not domain_services.secure_compare(ticket.value, supplied_value or ""):
            return TicketCheck(valid=False, expired=False)
        if ticket.is_expired():
            return TicketCheck(valid=False, expired=True)
        return TicketCheck(valid=True, expired=False)

    async def validate(
        self, subject_key: str, purpose: TicketPurpose, supplied_value: str
    ) -> VerificationTicket:
        """
        Return the ticket if usable, else raise.

        TicketExpiredError means the value matched but is too old (the
        ticket is pruned); TicketInvalidError covers everything else.
        """
        ticket = await self.get(subject_key, purpose)
        if ticket is None:
            raise TicketInvalidError("ticket is invalid")
        if not domain_services.secure_compare(ticket.value, supplied_value or ""):
            raise TicketInvalidError("ticket is invalid")
        if ticket.verified:
            raise TicketInvalidError("ticket has already been used")
        if ticket.is_expired():
            await self._store.delete(self._key(subject_key, purpose))
            logger.info("expired ticket pruned", extra={"purpose": purpose.value})
            raise TicketExpiredError(
                "ticket has expired, please request a new one"
            )
        return ticket

    async def consume(self, subject_key: str, purpose: TicketPurpose) -> None:
        key = self._key(subject_key, purpose)
        if purpose not in _KEEP_AFTER_CONSUME:
            await self._store.delete(key)
            return
        ticket = await self.get(subject_key, purpose)
        if ticket is None:
            return
        ticket.verified = True
        remaining = (ticket.expires_at - utcnow()).total_seconds()
        await self._store.put_with_ttl(key, ticket.to_dict(), max(remaining, 0) + self._grace)

    async def revoke(self, subject_key: str, purpose: TicketPurpose) -> None:
        await self._store.delete(self._key(subject_key, purpose))

    async def revoke_all(self, subject_key: str) -> None:
        for purpose in TicketPurpose:
            await self.revoke(subject_key, purpose)
