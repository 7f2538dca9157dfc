# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for EduPath.
Settings are loaded from environment variables (and an optional .env file)
with sensible defaults for local development.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from edupath.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production"
DEFAULT_JWT_REFRESH_SECRET = "change-this-refresh-secret-in-production"


class DatabaseSettings(BaseSettings):
    """Relational database configuration.

    The URL is built from its components unless DB_URL is set, which is
    how tests point the application at an aiosqlite database.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        name: Database name.
        url_override: Full async connection URL overriding the components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        create_tables: Create missing tables at startup (development only).
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
        populate_by_name=True,
    )

    user: str = "edupath"
    password: SecretStr = SecretStr("edupath_password")
    host: str = "localhost"
    port: int = 5432
    name: str = "edupath"
    url_override: str | None = Field(default=None, validation_alias="DB_URL")
    pool_size: int = 10
    max_overflow: int = 20
    create_tables: bool = True

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        if self.url_override:
            return self.url_override.replace("+asyncpg", "").replace("+aiosqlite", "")
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured backend is SQLite."""
        return self.url.startswith("sqlite")


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Access and refresh tokens are signed with separate secrets so that a
    leaked refresh token can never be replayed as an access token.

    Attributes:
        secret_key: Secret key for signing access tokens.
        refresh_secret_key: Secret key for signing refresh tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token lifetime.
        refresh_token_expire_days: Refresh token lifetime.
        session_expire_days: Lifetime of a stored login session.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
        populate_by_name=True,
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    refresh_secret_key: SecretStr = SecretStr(DEFAULT_JWT_REFRESH_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=15,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    refresh_token_expire_days: int = Field(
        default=7,
        validation_alias="REFRESH_TOKEN_EXPIRE_DAYS",
    )
    session_expire_days: int = 30


class SecuritySettings(BaseSettings):
    """Password hashing configuration.

    Attributes:
        bcrypt_rounds: Cost factor for bcrypt hashing.
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        extra="ignore",
    )

    bcrypt_rounds: int = 12


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether rate limiting is applied at all.
        requests_per_minute: Default limit per client.
        login_per_minute: Limit for login attempts per IP.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    enabled: bool = True
    requests_per_minute: int = 100
    login_per_minute: int = 5


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 2
    reload: bool = False


class SMTPSettings(BaseSettings):
    """SMTP configuration for the email notification channel.

    The email channel is skipped unless host, username, password and
    from_email are all set.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        username: SMTP authentication username.
        password: SMTP authentication password.
        use_tls: Use STARTTLS.
        from_email: Sender email address.
        from_name: Sender display name.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore",
    )

    host: str | None = None
    port: int = 587
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = True
    from_email: str | None = None
    from_name: str = "EduPath"

    @property
    def is_configured(self) -> bool:
        """Check whether all required SMTP fields are present."""
        return all([self.host, self.username, self.password, self.from_email])


class PushSettings(BaseSettings):
    """Push notification configuration (Firebase Cloud Messaging).

    Attributes:
        fcm_url: FCM send endpoint.
        server_key: FCM server key. Push is skipped when unset.
        timeout: Request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        extra="ignore",
    )

    fcm_url: str = "https://fcm.googleapis.com/fcm/send"
    server_key: SecretStr | None = None
    timeout: float = 10.0


class SchedulerSettings(BaseSettings):
    """Maintenance scheduler configuration.

    Attributes:
        enabled: Whether periodic maintenance jobs run in the API process.
        session_cleanup_minutes: Interval for expired session cleanup.
        attempt_auto_submit_minutes: Interval for auto-submitting expired attempts.
        overdue_reminder_hours: Interval for overdue assignment reminders.
        notification_cleanup_hours: Interval for purging old read notifications.
        notification_retention_days: Age after which read notifications are purged.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        extra="ignore",
    )

    enabled: bool = True
    session_cleanup_minutes: int = 60
    attempt_auto_submit_minutes: int = 5
    overdue_reminder_hours: int = 24
    notification_cleanup_hours: int = 24
    notification_retention_days: int = 30


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment.
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        jwt: JWT authentication settings.
        security: Password hashing settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        api: API server settings.
        smtp: Email channel settings.
        push: Push channel settings.
        scheduler: Maintenance scheduler settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)
    push: PushSettings = Field(default_factory=PushSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
            if self.jwt.refresh_secret_key.get_secret_value() == DEFAULT_JWT_REFRESH_SECRET:
                raise ValueError(
                    "JWT refresh secret key must be changed from default in production. "
                    "Set JWT_REFRESH_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
