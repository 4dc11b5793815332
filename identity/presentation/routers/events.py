import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header

from identity.application.identity_manager import IdentityManager
from identity.domain.errors import AuthenticationError, ValidationError
from identity.domain.services import secure_compare
from identity.presentation.dependencies import get_app_settings, get_identity_manager
from identity.schemas.requests import TriggerPayloadIn
from identity.schemas.responses import EventOut
from identity.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Events"])


@router.post("/event", response_model=EventOut)
async def post_event(
    payload: TriggerPayloadIn,
    manager: Annotated[IdentityManager, Depends(get_identity_manager)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    x_event_secret: Annotated[str | None, Header()] = None,
):
    """Database trigger webhook: a row deleted from public.users drops its credential."""
    if settings.event_webhook_secret and not secure_compare(
        settings.event_webhook_secret, x_event_secret or ""
    ):
        raise AuthenticationError("invalid event secret")

    op = payload.event.op.upper()
    table = f"{payload.table.schema_}.{payload.table.name}"
    if op != "DELETE" or table != "public.users":
        raise ValidationError(f"unsupported {op} {table}")

    old = payload.event.data.old or {}
    email = old.get("email")
    if not email:
        raise ValidationError("event is missing old.email")

    logger.info("deleting user from trigger", extra={"user_id": old.get("id"), "event_id": payload.id})
    await manager.delete_user(email)
    return EventOut(id=payload.id)
