from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from identity.application.identity_manager import IdentityManager
from identity.application.notifications import Notifier
from identity.application.oauth2.repositories import (
    AuthCodeRepository,
    ClientRepository,
    ScopeRepository,
    TokenRepository,
)
from identity.application.oauth2.server import AuthorizationServer
from identity.application.tickets import TicketEngine
from identity.application.user_registry import build_user_registry
from identity.domain.entities import User
from identity.domain.errors import InvalidTokenError
from identity.infrastructure.db.object_store import PgObjectStore
from identity.infrastructure.db.pool import get_pool
from identity.infrastructure.redis_cache.object_store import RedisObjectStore
from identity.infrastructure.redis_cache.pool import get_redis
from identity.infrastructure.redis_cache.token_denylist import RedisTokenDenylist
from identity.infrastructure.security.password import (
    dummy_verify,
    hash_password,
    verify_password,
)
from identity.infrastructure.security.tokens import SessionTokenIssuer
from identity.settings import Settings, get_settings

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_tokens() -> SessionTokenIssuer:
    settings = get_settings()
    return SessionTokenIssuer(
        settings.effective_jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.jwt_ttl_seconds,
        claims_namespace=settings.jwt_claims_namespace,
    )


def get_identity_manager(request: Request) -> IdentityManager:
    settings = get_settings()
    pool = get_pool()
    redis = get_redis()
    users = build_user_registry(
        settings.user_directory,
        user_store=PgObjectStore(pool, namespace="users"),
        # set in identity.main lifespan() when the directory is external
        directory=getattr(request.app.state, "user_directory", None),
    )
    return IdentityManager(
        credentials=PgObjectStore(pool, namespace="credentials"),
        users=users,
        tickets=TicketEngine(RedisObjectStore(redis, namespace="identity")),
        tokens=get_session_tokens(),
        hash_password=hash_password,
        verify_password=verify_password,
        dummy_verify=dummy_verify,
        denylist=RedisTokenDenylist(redis),
        min_password_length=settings.min_password_length,
        ticket_ttl_seconds=settings.ticket_ttl_seconds,
        mobile_ticket_ttl_seconds=settings.mobile_ticket_ttl_seconds,
        default_role=settings.default_role,
    )


def get_notifier(request: Request) -> Notifier:
    settings = get_settings()
    # adapters are created once in identity.main lifespan()
    return Notifier(
        email=request.app.state.email_adapter,
        sms=request.app.state.sms_adapter,
        public_base_url=settings.public_base_url,
        sender_name=settings.sender_name,
        ticket_ttl_seconds=settings.ticket_ttl_seconds,
    )


def get_authorization_server() -> AuthorizationServer:
    settings = get_settings()
    pool = get_pool()
    redis = get_redis()
    return AuthorizationServer(
        clients=ClientRepository(PgObjectStore(pool, namespace="oauth_clients")),
        scopes=ScopeRepository(PgObjectStore(pool, namespace="oauth_scopes")),
        auth_codes=AuthCodeRepository(
            RedisObjectStore(redis, namespace="oauth_code"),
            ttl_seconds=settings.oauth_code_ttl_seconds,
        ),
        tokens=TokenRepository(
            RedisObjectStore(redis, namespace="oauth_token"),
            RedisObjectStore(redis, namespace="oauth_refresh"),
            access_token_ttl_seconds=settings.oauth_access_token_ttl_seconds,
            refresh_token_ttl_seconds=settings.oauth_refresh_token_ttl_seconds,
        ),
        pkce_required=settings.oauth_pkce_required,
    )


def get_app_settings() -> Settings:
    return get_settings()


def get_bearer_token(
    auth: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    if auth is None or not auth.credentials:
        raise InvalidTokenError("missing bearer token")
    return auth.credentials


async def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    manager: Annotated[IdentityManager, Depends(get_identity_manager)],
) -> User:
    return await manager.get_user_with_token(token)


async def get_optional_user(
    auth: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    manager: Annotated[IdentityManager, Depends(get_identity_manager)],
) -> User | None:
    if auth is None or not auth.credentials:
        return None
    try:
        return await manager.get_user_with_token(auth.credentials)
    except InvalidTokenError:
        return None
