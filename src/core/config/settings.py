# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
Student Notifier service. Settings are loaded from environment variables
with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration for the school directory and notifications.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full connection URL. Takes precedence over components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
        create_tables: Create missing tables at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
    )

    user: str = "notifier"
    password: SecretStr = SecretStr("notifier_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "student_notifier"
    url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
    )
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False
    create_tables: bool = True

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured URL points to SQLite."""
        return self.url.startswith("sqlite")


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Secret key for signing tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token expiration time.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether rate limiting is applied.
        requests_per_minute: Maximum requests per minute per client.
        auth_requests_per_minute: Limit for login and registration.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    enabled: bool = True
    requests_per_minute: int = 100
    auth_requests_per_minute: int = 10


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
        host: Server bind address.
        port: Server port.
        workers: Number of worker processes.
        reload: Enable auto-reload for development.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 5000
    workers: int = 1
    reload: bool = False


class PushSettings(BaseSettings):
    """Firebase Cloud Messaging configuration.

    Either a service account JSON file (credentials_path) or the inline
    triple (project_id, client_email, private_key) may be supplied.
    Without either the push channel is a no-op.

    Attributes:
        credentials_path: Path to a service account JSON file.
        project_id: Firebase project identifier.
        client_email: Service account email.
        private_key: Service account private key (PEM).
        android_channel_id: Android notification channel.
        timeout: HTTP timeout for FCM requests in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore",
    )

    credentials_path: str | None = None
    project_id: str | None = None
    client_email: str | None = None
    private_key: SecretStr | None = None
    android_channel_id: str = "student_notifier_channel"
    timeout: float = 30.0

    @property
    def has_inline_credentials(self) -> bool:
        """Check if the inline service account triple is complete."""
        return bool(self.project_id and self.client_email and self.private_key)

    @property
    def is_configured(self) -> bool:
        """Check if any credential source is available."""
        return bool(self.credentials_path) or self.has_inline_credentials


class RetentionSettings(BaseSettings):
    """Notification retention job configuration.

    Attributes:
        enabled: Whether the daily job is scheduled.
        cron: Five-field cron expression for the job.
        timezone: Timezone the cron expression is evaluated in.
        max_age_days: When set, only notifications requested earlier
            than this many days ago are deleted. None deletes all.
    """

    model_config = SettingsConfigDict(
        env_prefix="RETENTION_",
        extra="ignore",
    )

    enabled: bool = True
    cron: str = "0 0 * * *"
    timezone: str = "UTC"
    max_age_days: int | None = Field(default=None, ge=1)


class RealtimeSettings(BaseSettings):
    """Real-time WebSocket channel configuration.

    Attributes:
        send_queue_size: Maximum buffered outbound messages per session.
        auth_timeout: Seconds to wait for the auth message.
    """

    model_config = SettingsConfigDict(
        env_prefix="REALTIME_",
        extra="ignore",
    )

    send_queue_size: int = 100
    auth_timeout: float = 10.0


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        service_name: Name reported by health checks and logs.
        database: Database settings.
        jwt: JWT authentication settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        api: API server settings.
        push: Firebase push settings.
        retention: Retention job settings.
        realtime: WebSocket settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    service_name: str = "student-notifier"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)
    push: PushSettings = Field(default_factory=PushSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            default_jwt_secret = "change-this-in-production"
            if self.jwt.secret_key.get_secret_value() == default_jwt_secret:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
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
