"""
Unit tests for settings, service context and logging setup.

Run: pytest tests/unit/test_config.py -v
"""

import pytest
from unittest.mock import patch

import structlog

from config import (
    ServiceContext,
    Settings,
    configure_logging,
    get_supabase_client,
    reset_connection,
)
from config.database import ConnectionError as DatabaseConnectionError


class TestSettings:
    """Tests for Settings defaults and environment overrides"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MAX_IMPORT_ROWS", raising=False)
        settings = Settings(_env_file=None)

        assert settings.max_import_rows == 500
        assert settings.max_file_size_bytes == 10 * 1024 * 1024
        assert settings.submit_max_attempts == 3

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SUBMIT_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert settings.submit_max_attempts == 5
        assert settings.is_production is True

    def test_supabase_configured(self):
        settings = Settings(_env_file=None, supabase_url="https://x.supabase.co", supabase_key="k")

        assert settings.supabase_configured is True


class TestServiceContext:
    """Tests for ServiceContext and client creation"""

    def test_from_settings_requires_credentials(self):
        unconfigured = Settings(_env_file=None, supabase_url=None, supabase_key=None)

        with patch("config.database.settings", unconfigured):
            with pytest.raises(DatabaseConnectionError):
                ServiceContext.from_settings()

    def test_from_settings_carries_token(self):
        configured = Settings(_env_file=None, supabase_url="https://x.supabase.co", supabase_key="k")

        with patch("config.database.settings", configured):
            context = ServiceContext.from_settings(access_token="jwt")

        assert context.url == "https://x.supabase.co"
        assert context.access_token == "jwt"

    def test_user_token_is_forwarded(self, service_context):
        context = ServiceContext(url=service_context.url, key=service_context.key, access_token="jwt")

        with patch("config.database.create_client") as create_client:
            client = get_supabase_client(context)

        create_client.assert_called_once_with(context.url, context.key)
        client.postgrest.auth.assert_called_once_with("jwt")

    def test_client_errors_are_wrapped(self, service_context):
        context = ServiceContext(url=service_context.url, key=service_context.key, access_token="jwt")

        with patch("config.database.create_client", side_effect=ValueError("bad url")):
            with pytest.raises(DatabaseConnectionError):
                get_supabase_client(context)

    def test_project_client_is_cached_until_reset(self, service_context):
        context = ServiceContext(url="https://cache.supabase.co", key="k")

        with patch("config.database.create_client") as create_client:
            reset_connection()
            first = get_supabase_client(context)
            second = get_supabase_client(context)
            reset_connection()
            get_supabase_client(context)

        assert first is second
        assert create_client.call_count == 2


class TestConfigureLogging:
    def test_configures_structlog(self):
        configure_logging()

        assert structlog.is_configured()
