"""Configuration management for the relay service."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from app.core.errors import ConfigurationError

load_dotenv()

REQUIRED_SETTINGS: dict[str, str] = {
    "telegram_bot_token": "TELEGRAM_BOT_TOKEN",
    "gcp_project_id": "GCP_PROJECT_ID",
    "google_client_id": "GOOGLE_CLIENT_ID",
    "google_client_secret": "GOOGLE_CLIENT_SECRET",
    "google_redirect_url": "GOOGLE_REDIRECT_URL",
}


class Settings(BaseModel):
    """Application configuration loaded from environment variables."""

    app_env: str = "dev"
    version: str = "0.1.0"
    port: int = 8080
    database_url: str = "sqlite:///./relay.db"
    telegram_bot_token: str = ""
    telegram_api_base_url: str = "https://api.telegram.org"
    gcp_project_id: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_url: str = ""
    oauth_state_ttl_seconds: int = Field(default=600, gt=0)
    http_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("telegram_api_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.rstrip("/")
        return value

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("sqlite+aiosqlite://"):
            return self.database_url
        if self.database_url.startswith("sqlite:///"):
            return self.database_url.replace("sqlite:///", "sqlite+aiosqlite:///")
        if self.database_url.startswith("sqlite://"):
            return self.database_url.replace("sqlite://", "sqlite+aiosqlite://")
        return self.database_url

    def require_complete(self) -> None:
        """Raise ``ConfigurationError`` when a required setting is empty."""

        missing = [env for field, env in REQUIRED_SETTINGS.items() if not getattr(self, field)]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )


def _build_settings() -> Settings:
    raw_values: dict[str, Any] = {
        "app_env": os.getenv("APP_ENV"),
        "version": os.getenv("APP_VERSION"),
        "port": os.getenv("PORT") or None,
        "database_url": os.getenv("DATABASE_URL"),
        "telegram_bot_token": os.getenv("TELEGRAM_BOT_TOKEN"),
        "telegram_api_base_url": os.getenv("TELEGRAM_API_BASE_URL"),
        "gcp_project_id": os.getenv("GCP_PROJECT_ID"),
        "google_client_id": os.getenv("GOOGLE_CLIENT_ID"),
        "google_client_secret": os.getenv("GOOGLE_CLIENT_SECRET"),
        "google_redirect_url": os.getenv("GOOGLE_REDIRECT_URL"),
        "oauth_state_ttl_seconds": os.getenv("OAUTH_STATE_TTL_SECONDS"),
        "http_timeout_seconds": os.getenv("HTTP_TIMEOUT_SECONDS"),
    }
    filtered_values = {key: value for key, value in raw_values.items() if value is not None}
    return Settings(**filtered_values)


@lru_cache()
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return _build_settings()
