from __future__ import annotations

import logging

from identity.application.email_templates import (
    build_verify_link,
    email_already_verified_template,
    email_verification_template,
    password_reset_template,
)
from identity.domain.errors import NotificationError
from identity.domain.ports.notifier import EmailPort, SmsPort

logger = logging.getLogger(__name__)


class Notifier:
    """
    Sends verification emails and SMS codes.

    Delivery is single-attempt and never fatal: a failure is logged and
    reported as False so the caller keeps the state it already persisted.
    """

    def __init__(
        self,
        *,
        email: EmailPort,
        sms: SmsPort,
        public_base_url: str,
        sender_name: str,
        ticket_ttl_seconds: float,
    ) -> None:
        self._email = email
        self._sms = sms
        self._base_url = public_base_url
        self._sender_name = sender_name
        self._ticket_ttl = ticket_ttl_seconds

    async def _send_email(self, to: str, subject: str, html_body: str, kind: str) -> bool:
        try:
            await self._email.send_email(to=to, subject=subject, html_body=html_body)
        except NotificationError as e:
            logger.warning("email delivery failed", extra={"kind": kind, "error": str(e)})
            return False
        return True

    async def send_email_verification(self, email: str, ticket: str) -> bool:
        link = build_verify_link(self._base_url, ticket, email, "email")
        data = email_verification_template(link, self._sender_name, self._ticket_ttl)
        return await self._send_email(email, data.subject, data.html_body, "email-verify")

    async def send_email_already_verified(self, email: str) -> bool:
        data = email_already_verified_template(self._sender_name)
        return await self._send_email(email, data.subject, data.html_body, "email-verified")

    async def send_password_reset(self, email: str, ticket: str) -> bool:
        link = build_verify_link(self._base_url, ticket, email, "password")
        data = password_reset_template(link, self._sender_name, self._ticket_ttl)
        return await self._send_email(email, data.subject, data.html_body, "password-reset")

    async def send_mobile_code(self, mobile: str, code: str) -> bool:
        message = f"{self._sender_name} mobile verification code: {code}"
        try:
            await self._sms.send_sms(to=mobile, message=message)
        except NotificationError as e:
            logger.warning("sms delivery failed", extra={"error": str(e)})
            return False
        return True
