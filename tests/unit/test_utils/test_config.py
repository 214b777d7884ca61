"""Unit tests for buildloop.utils.config module."""

import pytest
from pydantic import ValidationError

from buildloop.utils.config import DEFAULT_DATABASE_URL, Settings, load_settings

_ENV_VARS = [
    "BUILDLOOP_DATABASE_URL",
    "E2B_API_KEY",
    "BUILDLOOP_SANDBOX_TEMPLATE",
    "BUILDLOOP_SANDBOX_TIMEOUT",
    "BUILDLOOP_PREVIEW_PORT",
    "BUILDLOOP_AGENT_MAX_ITER",
    "BUILDLOOP_HISTORY_LIMIT",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "BUILDLOOP_MODEL",
    "BUILDLOOP_TEMPERATURE",
    "BUILDLOOP_CLEANUP_INTERVAL",
    "BUILDLOOP_MAX_CONCURRENT_RUNS",
    "BUILDLOOP_PORT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path / ".env"


class TestSettingsDefaults:
    """Tests for Settings default values."""

    def test_defaults(self):
        """Test the documented defaults."""
        settings = Settings()
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.preview_port == 3000
        assert settings.agent_max_iter == 15
        assert settings.history_limit == 20
        assert settings.model == "gpt-4.1"
        assert settings.temperature == 0.1
        assert settings.max_concurrent_runs == 10

    def test_duration_properties(self):
        """Test that duration strings are exposed in seconds."""
        settings = Settings(sandbox_timeout="5m", cleanup_interval="1h")
        assert settings.sandbox_timeout_s == 300
        assert settings.cleanup_interval_s == 3600

    def test_invalid_duration_raises(self):
        """Test that a malformed duration fails when read."""
        settings = Settings(sandbox_timeout="soon")
        with pytest.raises(ValueError, match="Invalid duration"):
            _ = settings.sandbox_timeout_s


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_unset_variables_use_defaults(self, clean_env):
        """Test that missing variables fall back to defaults."""
        settings = load_settings(str(clean_env))
        assert settings == Settings()

    def test_reads_environment(self, clean_env, monkeypatch):
        """Test that variables are read and coerced."""
        monkeypatch.setenv("BUILDLOOP_DATABASE_URL", "sqlite+aiosqlite:///other.db")
        monkeypatch.setenv("BUILDLOOP_PREVIEW_PORT", "4000")
        monkeypatch.setenv("BUILDLOOP_TEMPERATURE", "0.5")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        settings = load_settings(str(clean_env))
        assert settings.database_url == "sqlite+aiosqlite:///other.db"
        assert settings.preview_port == 4000
        assert settings.temperature == 0.5
        assert settings.openai_api_key == "sk-test"

    def test_reads_dotenv_file(self, clean_env):
        """Test that a .env file is loaded."""
        clean_env.write_text("BUILDLOOP_AGENT_MAX_ITER=7\n")
        settings = load_settings(str(clean_env))
        assert settings.agent_max_iter == 7

    def test_invalid_value_raises(self, clean_env, monkeypatch):
        """Test that an uncoercible value is rejected."""
        monkeypatch.setenv("BUILDLOOP_PREVIEW_PORT", "not-a-port")
        with pytest.raises(ValidationError):
            load_settings(str(clean_env))
