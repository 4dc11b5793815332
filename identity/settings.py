from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"
    service_name: str = "identity"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    smtp_base_url: str = "http://notify-mock:8025"
    sms_base_url: str = "http://notify-mock:8025"
    http_timeout_seconds: float = 10.0
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_pool_timeout_seconds: float = 5.0
    db_connect_timeout_seconds: int = 3
    redis_socket_timeout_seconds: float = 5.0

    # Credentials
    bcrypt_rounds: int = 12
    min_password_length: int = 10

    # Tickets
    ticket_ttl_seconds: float = 60 * 60 * 24
    mobile_ticket_ttl_seconds: float = 360

    # Session tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_ttl_seconds: int = 60 * 60 * 24
    jwt_claims_namespace: str = "https://hasura.io/jwt/claims"

    # Users are mastered either here or in an external directory, never both
    user_directory: Literal["local", "external"] = "local"
    user_directory_url: str | None = None
    user_directory_token: str | None = None
    default_role: str = "user"

    # OAuth2
    oauth_code_ttl_seconds: int = 15 * 60
    oauth_access_token_ttl_seconds: int = 2 * 60 * 60
    oauth_refresh_token_ttl_seconds: int = 2 * 60 * 60
    oauth_pkce_required: bool = False

    # Links / notifications
    public_base_url: str = "http://localhost:8000"
    sender_name: str = "Identity"
    sender_email: str = "no-reply@localhost"
    allowed_origins: str = "*"

    # Directory trigger webhook; unset accepts unsigned events
    event_webhook_secret: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.user_directory == "external" and not self.user_directory_url:
            raise ValueError("user_directory=external requires user_directory_url")
        if not self.jwt_secret and self.app_env != "dev":
            raise ValueError("jwt_secret must be set outside dev")
        return self

    @property
    def effective_jwt_secret(self) -> str:
        # dev falls back to a fixed secret so the app boots without config
        return self.jwt_secret or "dev-only-insecure-secret-do-not-deploy"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
