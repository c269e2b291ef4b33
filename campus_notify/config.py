"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./campus_notify.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key for signing JWT tokens",
        min_length=1,
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA timezone name (or UTC offset) used for timestamps",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    notification_page_size: int = Field(
        default=20,
        description="Default page size for notification listings and backfills",
        gt=0,
    )
    notification_max_page_size: int = Field(
        default=100,
        description="Upper bound accepted for a single notification page",
        gt=0,
    )

    push_channel_url: str = Field(
        default="ws://localhost:8000/notifications/ws",
        description="Websocket URL clients use to open the notification push channel",
    )
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the REST API used for durable read-state writes",
    )
    reconnect_base_delay: float = Field(
        default=1.0,
        description="Seconds to wait before the first reconnect attempt",
        gt=0,
    )
    reconnect_max_delay: float = Field(
        default=30.0,
        description="Upper bound in seconds for the reconnect backoff",
        gt=0,
    )
    reconnect_max_attempts: int = Field(
        default=5,
        description="Number of automatic reconnect attempts before giving up",
        ge=0,
    )
    keepalive_interval: float = Field(
        default=30.0,
        description="Seconds between keepalive pings while the push channel is open",
        gt=0,
    )

    @model_validator(mode="after")
    def _validate_bounds(self) -> "Settings":
        if self.notification_page_size > self.notification_max_page_size:
            raise ValueError(
                "NOTIFICATION_PAGE_SIZE cannot exceed NOTIFICATION_MAX_PAGE_SIZE"
            )
        if self.reconnect_base_delay > self.reconnect_max_delay:
            raise ValueError("RECONNECT_BASE_DELAY cannot exceed RECONNECT_MAX_DELAY")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
