import html
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import HTMLResponse

from identity.application.identity_manager import IdentityManager
from identity.application.notifications import Notifier
from identity.domain.entities import User
from identity.domain.errors import DomainError, TicketExpiredError
from identity.presentation.dependencies import (
    get_bearer_token,
    get_current_user,
    get_identity_manager,
    get_notifier,
)
from identity.schemas.requests import (
    ChangePasswordIn,
    EmailIn,
    LoginIn,
    MobileRequestIn,
    MobileVerifyIn,
    RegisterIn,
)
from identity.schemas.responses import (
    RegisterOut,
    SentOut,
    SessionOut,
    UserEnvelopeOut,
    UserOut,
)


router = APIRouter(tags=["Auth"])

Manager = Annotated[IdentityManager, Depends(get_identity_manager)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
CurrentUser = Annotated[User, Depends(get_current_user)]


def _page(title: str, message: str, status_code: int = 200, extra: str = "") -> HTMLResponse:
    body = f"""<!doctype html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
<h1>{html.escape(title)}</h1>
<p>{html.escape(message)}</p>
{extra}
</body>
</html>"""
    return HTMLResponse(body, status_code=status_code)


@router.post("/register", status_code=201, response_model=RegisterOut)
async def post_register(body: RegisterIn, manager: Manager, notifier: NotifierDep):
    registration = await manager.create_user(body.email, body.password)
    user = registration.user
    sent = await notifier.send_email_verification(user.email, registration.email_ticket)
    return RegisterOut(
        user=UserOut.from_user(user),
        token=manager.create_session_token(user),
        notification_sent=sent,
    )


@router.post("/login", response_model=SessionOut)
async def post_login(body: LoginIn, manager: Manager):
    user = await manager.get_user_with_email_password(body.email, body.password)
    return SessionOut(user=UserOut.from_user(user), token=manager.create_session_token(user))


@router.get("/user-info", response_model=UserEnvelopeOut)
async def get_user_info(user: CurrentUser):
    return UserEnvelopeOut(user=UserOut.from_user(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def post_logout(
    token: Annotated[str, Depends(get_bearer_token)], manager: Manager
) -> Response:
    await manager.revoke_session_token(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/email-verify/request", response_model=SentOut)
async def post_email_verify_request(body: EmailIn, manager: Manager, notifier: NotifierDep):
    if await manager.is_email_verified(body.email):
        sent = await notifier.send_email_already_verified(body.email)
    else:
        ticket = await manager.add_email_verify_ticket(body.email)
        sent = await notifier.send_email_verification(body.email, ticket)
    return SentOut(notification_sent=sent)


@router.get("/email-verify/verify", response_class=HTMLResponse)
async def get_email_verify(
    manager: Manager,
    email: Annotated[str, Query(max_length=255)],
    ticket: Annotated[str, Query(max_length=256)],
):
    try:
        await manager.verify_email(email, ticket)
    except TicketExpiredError as e:
        return _page("Link expired", e.message, e.status_code)
    except DomainError as e:
        return _page("Verification failed", e.message, e.status_code)
    return _page("Email verified", "Your email address has been verified.")


@router.post("/change-password/request", response_model=SentOut)
async def post_change_password_request(
    body: EmailIn, manager: Manager, notifier: NotifierDep
):
    ticket = await manager.add_password_reset_ticket(body.email)
    sent = await notifier.send_password_reset(body.email, ticket)
    return SentOut(notification_sent=sent)


_CHANGE_PASSWORD_FORM = """<form id="change-password">
<input type="hidden" name="email" value="{email}">
<input type="hidden" name="ticket" value="{ticket}">
<label>New password <input type="password" name="password" required></label>
<button type="submit">Change password</button>
</form>
<script>
document.getElementById("change-password").addEventListener("submit", async (e) => {{
  e.preventDefault();
  const data = Object.fromEntries(new FormData(e.target));
  const resp = await fetch("change-password/verify", {{
    method: "POST",
    headers: {{"Content-Type": "application/json"}},
    body: JSON.stringify(data),
  }});
  e.target.outerHTML = resp.ok ? "<p>Password changed.</p>" : "<p>Password change failed.</p>";
}});
</script>"""


@router.get("/change-password", response_class=HTMLResponse)
async def get_change_password(
    manager: Manager,
    email: Annotated[str, Query(max_length=255)],
    ticket: Annotated[str, Query(max_length=256)],
):
    check = await manager.check_password_reset_ticket(email, ticket)
    if check.expired:
        return _page("Link expired", "This link has expired, please request a new one.", 400)
    if not check.valid:
        return _page("Invalid link", "This password reset link is not valid.", 400)
    form = _CHANGE_PASSWORD_FORM.format(
        email=html.escape(email, quote=True), ticket=html.escape(ticket, quote=True)
    )
    return _page("Change password", "Choose a new password.", extra=form)


@router.post("/change-password/verify", status_code=status.HTTP_204_NO_CONTENT)
async def post_change_password_verify(body: ChangePasswordIn, manager: Manager) -> Response:
    await manager.update_password(body.email, body.password, body.ticket)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/mobile-verify/request", response_model=SentOut)
async def post_mobile_verify_request(
    body: MobileRequestIn, user: CurrentUser, manager: Manager, notifier: NotifierDep
):
    code = await manager.add_mobile(user.id, body.mobile)
    sent = await notifier.send_mobile_code(body.mobile.strip(), code)
    return SentOut(notification_sent=sent)


@router.post("/mobile-verify/verify", response_model=UserEnvelopeOut)
async def post_mobile_verify(body: MobileVerifyIn, user: CurrentUser, manager: Manager):
    verified = await manager.verify_mobile(user.id, body.ticket)
    return UserEnvelopeOut(user=UserOut.from_user(verified))
