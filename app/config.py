"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Server configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to reach the notification store",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key used to verify identity tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before issued identity tokens expire",
        gt=0,
    )
    websocket_path: str = Field(
        default="/ws",
        description="Path where clients open the realtime notification channel",
        pattern=r"^/",
    )
    auth_timeout_seconds: float = Field(
        default=10.0,
        description="Seconds a new connection may stay unauthenticated before it is closed",
        gt=0,
    )
    send_timeout_seconds: float = Field(
        default=5.0,
        description="Seconds a single frame send may take before the session is considered dead",
        gt=0,
    )
    session_idle_timeout_seconds: float = Field(
        default=90.0,
        description="Seconds without inbound traffic after which a session is evicted",
        gt=0,
    )
    idle_sweep_interval_seconds: float = Field(
        default=30.0,
        description="Seconds between idle-session sweeps",
        gt=0,
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Origins allowed to call the REST API from a browser",
    )
    log_level: str = Field(default="INFO", description="Root logging level")


class ClientSettings(BaseSettings):
    """Configuration for the realtime notification client."""

    model_config = SettingsConfigDict(
        env_prefix="CLIENT_",
        env_file=ENV_FILE,
        env_file_encoding=ENV_FILE_ENCODING,
        extra="ignore",
    )

    base_url: str = Field(
        default="http://localhost:8000",
        description="Origin of the notification service; its scheme decides ws or wss",
        min_length=1,
    )
    token: str | None = Field(
        default=None, description="Bearer token identifying the recipient"
    )
    websocket_path: str = Field(default="/ws", pattern=r"^/")
    keepalive_interval_seconds: float = Field(default=30.0, gt=0)
    resync_interval_seconds: float = Field(default=30.0, gt=0)
    max_reconnect_attempts: int = Field(default=5, ge=0)
    reconnect_base_delay_seconds: float = Field(default=1.0, gt=0)
    reconnect_max_delay_seconds: float = Field(default=30.0, gt=0)
    request_timeout_seconds: float = Field(default=10.0, gt=0)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


@lru_cache
def get_client_settings() -> ClientSettings:
    """Return cached client settings instance."""

    return ClientSettings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()
    get_client_settings.cache_clear()


__all__ = [
    "Settings",
    "ClientSettings",
    "get_settings",
    "get_client_settings",
    "reset_settings_cache",
]
