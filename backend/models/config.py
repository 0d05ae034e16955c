import json
import os
import sys
from typing import Annotated, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development picks up `backend/.env` automatically. Under pytest or
    in CI the file is ignored so tests see only the variables they set.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'test', 'staging', or 'production'",
    )

    DATABASE_URL: str = "sqlite:///./data/feature_board.db"
    SECRET_KEY: str = Field(
        ...,  # Required, no default
        description="JWT secret key - must be set via SECRET_KEY environment variable",
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins (JSON list or comma-separated in env var)",
    )

    # Bootstrap admin account (used by init_db.py)
    ADMIN_EMAIL: str = Field(
        default="",
        description="Admin email created by init_db.py (skipped when empty)",
    )
    ADMIN_PASSWORD: str = Field(
        default="",
        description="Admin password created by init_db.py",
    )

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )
    TRUST_PROXY_HEADERS: bool = Field(
        default=False,
        description="Read client addresses from X-Real-IP / X-Forwarded-For",
    )

    # Login rate limiting (fixed window, in-process)
    LOGIN_RATE_LIMIT_MAX_ATTEMPTS: int = Field(
        default=5,
        description="Login attempts allowed per identifier within one window",
    )
    LOGIN_RATE_LIMIT_WINDOW_MINUTES: int = Field(
        default=15,
        description="Length of the login rate limit window in minutes",
    )

    # Account deletion popularity thresholds
    REQUEST_PRESERVE_THRESHOLD: int = Field(
        default=2,
        description="Votes at which a departing user's request is kept (reassigned)",
    )
    VOTE_PRESERVE_THRESHOLD: int = Field(
        default=3,
        description="Total votes on a request at which a departing user's vote is kept",
    )
    DELETED_AUTHOR_NOTE: str = Field(
        default="\n\n[Original author deleted their account]",
        description="Suffix appended to descriptions of reassigned requests",
    )

    # Sentinel account that absorbs preserved content
    SYSTEM_USER_EMAIL: str = Field(
        default="system@feature-board.local",
        description="Reserved email of the SYSTEM user",
    )
    SYSTEM_USER_NAME: str = Field(
        default="System (Deleted User Content)",
        description="Display name of the SYSTEM user",
    )

    # Account tokens
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = Field(
        default=24,
        description="Hours until an email verification link expires",
    )
    PASSWORD_RESET_EXPIRE_MINUTES: int = Field(
        default=60,
        description="Minutes until a password reset link expires",
    )

    # Email Provider Settings
    EMAIL_PROVIDER: str = Field(
        default="console",
        description="Email provider: 'smtp' or 'console'",
    )
    SMTP_HOST: str = Field(
        default="localhost",
        description="SMTP server hostname",
    )
    SMTP_PORT: int = Field(
        default=587,
        description="SMTP server port",
    )
    SMTP_USER: str = Field(
        default="",
        description="SMTP username",
    )
    SMTP_PASSWORD: str = Field(
        default="",
        description="SMTP password",
    )
    SMTP_FROM_EMAIL: str = Field(
        default="noreply@feature-board.local",
        description="From email address",
    )
    SMTP_FROM_NAME: str = Field(
        default="Feature Board",
        description="From display name",
    )
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Use STARTTLS for SMTP connection (port 587)",
    )
    SMTP_USE_SSL: bool = Field(
        default=False,
        description="Use implicit SSL for SMTP connection (port 465)",
    )
    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL used to build links in emails",
    )

    # Error monitoring
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN; Sentry stays disabled when empty",
    )
    SENTRY_RELEASE: str = Field(
        default="unknown",
        description="Release identifier reported to Sentry",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Accept a JSON list or a comma-separated string."""
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [origin.strip() for origin in v.split(",")]
        return v

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        """Refuse to run production with a short signing key."""
        if self.ENVIRONMENT == "production" and len(self.SECRET_KEY) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        return self

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Instantiating Settings() raises pydantic.ValidationError if SECRET_KEY isn't set.
settings = Settings()  # type: ignore[call-arg]
