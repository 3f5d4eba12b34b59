from __future__ import annotations

import pytest

from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError
from app.main import create_app


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("OAUTH_STATE_TTL_SECONDS", "120")
    monkeypatch.setenv("TELEGRAM_API_BASE_URL", "https://telegram.example/")
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.port == 9090
    assert settings.oauth_state_ttl_seconds == 120
    assert settings.telegram_api_base_url == "https://telegram.example"
    assert settings.google_redirect_url == "http://localhost/oauth/callback"


def test_port_defaults_when_unset(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    get_settings.cache_clear()
    try:
        assert get_settings().port == 8080
    finally:
        get_settings.cache_clear()


def test_async_database_url_uses_aiosqlite():
    settings = Settings(database_url="sqlite:///./relay.db")
    assert settings.async_database_url == "sqlite+aiosqlite:///./relay.db"

    postgres = Settings(database_url="postgresql+asyncpg://user@db/relay")
    assert postgres.async_database_url == "postgresql+asyncpg://user@db/relay"


def test_require_complete_names_missing_variables():
    settings = Settings(telegram_bot_token="token", gcp_project_id="project")

    with pytest.raises(ConfigurationError) as excinfo:
        settings.require_complete()

    message = str(excinfo.value)
    assert "GOOGLE_CLIENT_ID" in message
    assert "GOOGLE_CLIENT_SECRET" in message
    assert "GOOGLE_REDIRECT_URL" in message
    assert "TELEGRAM_BOT_TOKEN" not in message


def test_create_app_refuses_incomplete_configuration(settings):
    incomplete = settings.model_copy(update={"telegram_bot_token": ""})

    with pytest.raises(ConfigurationError):
        create_app(incomplete)
