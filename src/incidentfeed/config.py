"""Configuration management for incidentfeed.

Loads settings from environment variables (or a .env file) using Pydantic.
Every field has a default, so the in-memory demo source works without any
configuration at all.

Usage:
    from incidentfeed.config import settings

    print(settings.api_base_url)
    print(settings.fan_out)
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """incidentfeed configuration from environment variables.

    Attributes:
        api_base_url: Base URL of the incident HTTP API
        api_key: Bearer token for the incident API (optional)
        rate_limit: Maximum API requests per second
        request_timeout: Per-request timeout in seconds
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fan_out: How per-location retrievals are issued ("sequential" or "concurrent")
        fetch_concurrency: Max in-flight location retrievals in concurrent mode
        run_timeout: Timeout for a whole pipeline run in seconds (None = no timeout)
        skip_failed_locations: Skip locations whose retrieval fails instead of
            failing the whole run
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INCIDENTFEED_",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    # Incident API
    api_base_url: str = Field(default="http://localhost:8000", description="Incident API base URL")
    api_key: str | None = Field(default=None, min_length=10, description="Incident API key")
    rate_limit: int = Field(default=10, ge=1, description="API requests/second")
    request_timeout: float = Field(default=10.0, gt=0, description="Per-request timeout (s)")

    # System Settings
    log_level: str = Field(default="INFO", description="Logging level")

    # Pipeline
    fan_out: str = Field(default="sequential", description="'sequential' or 'concurrent'")
    fetch_concurrency: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Max concurrent location fetches (concurrent fan-out only)",
    )
    run_timeout: float | None = Field(default=None, gt=0, description="Whole-run timeout (s)")
    skip_failed_locations: bool = Field(
        default=False,
        description="Skip failing locations instead of failing the run",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"log_level must be one of {valid}, got {v}")
        return v_upper

    @field_validator("fan_out")
    @classmethod
    def validate_fan_out(cls, v: str) -> str:
        """Ensure fan-out mode is valid."""
        v_lower = v.lower()
        if v_lower not in {"sequential", "concurrent"}:
            raise ValueError(f"fan_out must be 'sequential' or 'concurrent', got '{v}'")
        return v_lower

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must start with http:// or https://, got '{v}'")
        return v.rstrip("/")


# Global settings instance, loaded once at import
settings = Settings()
