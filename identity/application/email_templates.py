from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlencode


@dataclass(frozen=True)
class EmailData:
    subject: str
    html_body: str


_VERIFY_PATHS = {
    "email": "email-verify/verify",
    "password": "change-password",
}


def build_verify_link(
    base_url: str, ticket: str, email: str, kind: Literal["email", "password"]
) -> str:
    query = urlencode({"ticket": ticket, "email": email})
    return f"{base_url.rstrip('/')}/{_VERIFY_PATHS[kind]}?{query}"


def _hours(ttl_seconds: float) -> int:
    return max(int(round(ttl_seconds / 3600)), 1)


def password_reset_template(link: str, product_name: str, ttl_seconds: float) -> EmailData:
    subject = f"Password reset from {product_name}"
    html_body = f"""<html>
<body>
<p>Dear {product_name} User,</p>

<p>We have received a request to reset the password associated with this email address in the {product_name} systems. If you need to reset your password, please click on the link below to verify:</p>

<a href='{link}'>{link}</a>

<p>This link will expire in {_hours(ttl_seconds)} hours.</p>

<p>If you did not request this password reset, please do NOT click the link.</p>

<p>Sincerely,</p>

<p>The {product_name} Team.</p>
</body>
</html>"""
    return EmailData(subject=subject, html_body=html_body)


def email_verification_template(link: str, product_name: str, ttl_seconds: float) -> EmailData:
    subject = f"Please verify your email address for {product_name}"
    html_body = f"""<html>
<body>
<p>Dear {product_name} User,</p>

<p>We have received a request to authorize this email address for use with our systems. If you requested this please click on the link below to verify:</p>

<a href='{link}'>{link}</a>

<p>This link will expire in {_hours(ttl_seconds)} hours.</p>

<p>If you did not request this verification, please do NOT click the link.</p>

<p>Sincerely,</p>

<p>The {product_name} Team.</p>
</body>
</html>"""
    return EmailData(subject=subject, html_body=html_body)


def email_already_verified_template(product_name: str) -> EmailData:
    subject = f"Email confirmation for {product_name}"
    html_body = f"""<html>
<body>
<p>Dear {product_name} User,</p>

<p>We have received a request to authorize this email address for use with our systems. This email is already verified with our system. At this time, no further action is required.</p>

<p>If you did not request this verification, please disregard this email.</p>

<p>Sincerely,</p>

<p>The {product_name} Team.</p>
</body>
</html>"""
    return EmailData(subject=subject, html_body=html_body)
