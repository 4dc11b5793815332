import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from identity.infrastructure.db.pool import close_pool, open_pool
from identity.infrastructure.directory.http_directory import HttpUserDirectory
from identity.infrastructure.email.http_email_adapter import HttpEmailAdapter
from identity.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from identity.infrastructure.redis_cache.pool import close_redis, get_redis
from identity.infrastructure.sms.http_sms_adapter import HttpSmsAdapter
from identity.logging import setup_logging
from identity.presentation.api import api
from identity.presentation.errors import register_exception_handlers
from identity.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    await open_pool()

    await open_http_client(settings.http_timeout_seconds)
    get_redis()

    # adapters share the one HTTP client and never close it themselves
    client = get_http_client()
    app.state.email_adapter = HttpEmailAdapter(
        settings.smtp_base_url,
        sender=f"{settings.sender_name} <{settings.sender_email}>",
        client=client,
    )
    app.state.sms_adapter = HttpSmsAdapter(settings.sms_base_url, client=client)
    app.state.user_directory = None
    if settings.user_directory == "external":
        app.state.user_directory = HttpUserDirectory(
            settings.user_directory_url,
            token=settings.user_directory_token,
            client=client,
        )

    if not settings.jwt_ttl_seconds:
        logger.warning("session tokens are issued without expiry (jwt_ttl_seconds=0)")
    logger.info(
        "identity service started",
        extra={"env": settings.app_env, "user_directory": settings.user_directory},
    )

    try:
        yield
    finally:
        # shutdown
        await close_http_client()
        await close_redis()
        await close_pool()


def create_app() -> FastAPI:
    setup_logging(settings.log_level, service=settings.service_name)
    app = FastAPI(title="Identity API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api)
    return app


app = create_app()
