"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from incidentfeed.config import Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test without a real .env file or INCIDENTFEED_ variables."""
    for name in [
        "API_BASE_URL", "API_KEY", "RATE_LIMIT", "REQUEST_TIMEOUT", "LOG_LEVEL",
        "FAN_OUT", "FETCH_CONCURRENCY", "RUN_TIMEOUT", "SKIP_FAILED_LOCATIONS",
    ]:
        monkeypatch.delenv(f"INCIDENTFEED_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


def test_settings_has_defaults():
    """Settings should work with no configuration at all."""
    settings = Settings()

    assert settings.api_base_url == "http://localhost:8000"
    assert settings.api_key is None
    assert settings.log_level == "INFO"
    assert settings.fan_out == "sequential"
    assert settings.fetch_concurrency == 8
    assert settings.run_timeout is None
    assert settings.skip_failed_locations is False


def test_settings_loads_from_env(monkeypatch):
    """Settings should load prefixed environment variables."""
    monkeypatch.setenv("INCIDENTFEED_API_BASE_URL", "https://incidents.example.com/")
    monkeypatch.setenv("INCIDENTFEED_API_KEY", "test_key_1234567890")
    monkeypatch.setenv("INCIDENTFEED_FAN_OUT", "CONCURRENT")
    monkeypatch.setenv("INCIDENTFEED_RUN_TIMEOUT", "2.5")
    monkeypatch.setenv("INCIDENTFEED_SKIP_FAILED_LOCATIONS", "true")

    settings = Settings()

    assert settings.api_base_url == "https://incidents.example.com"
    assert settings.api_key == "test_key_1234567890"
    assert settings.fan_out == "concurrent"
    assert settings.run_timeout == 2.5
    assert settings.skip_failed_locations is True


def test_settings_loads_from_env_file(tmp_path):
    """Settings should read a .env file in the working directory."""
    (tmp_path / ".env").write_text("INCIDENTFEED_LOG_LEVEL=debug\n")

    settings = Settings()

    assert settings.log_level == "DEBUG"


def test_settings_validates_log_level(monkeypatch):
    """Settings should validate log level."""
    monkeypatch.setenv("INCIDENTFEED_LOG_LEVEL", "INVALID")

    with pytest.raises(ValidationError) as exc_info:
        Settings()

    assert "log_level must be one of" in str(exc_info.value)


def test_settings_validates_fan_out(monkeypatch):
    """Settings should reject unknown fan-out modes."""
    monkeypatch.setenv("INCIDENTFEED_FAN_OUT", "parallel")

    with pytest.raises(ValidationError) as exc_info:
        Settings()

    assert "fan_out must be" in str(exc_info.value)


def test_settings_validates_base_url(monkeypatch):
    """Settings should require an http(s) base URL."""
    monkeypatch.setenv("INCIDENTFEED_API_BASE_URL", "ftp://example.com")

    with pytest.raises(ValidationError):
        Settings()


def test_settings_validates_api_key_length(monkeypatch):
    """Settings should reject API keys that are too short."""
    monkeypatch.setenv("INCIDENTFEED_API_KEY", "short")

    with pytest.raises(ValidationError) as exc_info:
        Settings()

    assert "api_key" in str(exc_info.value).lower()


@pytest.mark.parametrize("value", ["0", "101"])
def test_settings_validates_fetch_concurrency(monkeypatch, value):
    """fetch_concurrency must be between 1 and 100."""
    monkeypatch.setenv("INCIDENTFEED_FETCH_CONCURRENCY", value)

    with pytest.raises(ValidationError):
        Settings()


def test_settings_rejects_non_positive_run_timeout(monkeypatch):
    """run_timeout must be positive when set."""
    monkeypatch.setenv("INCIDENTFEED_RUN_TIMEOUT", "0")

    with pytest.raises(ValidationError):
        Settings()
