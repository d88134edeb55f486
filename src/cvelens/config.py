"""Configuration management for CVELens using Pydantic Settings.

Configuration is loaded from environment variables and/or .env files.
Environment variables take precedence over .env file values.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class NVDSettings(BaseSettings):
    """NVD API settings."""

    model_config = SettingsConfigDict(env_prefix="NVD_")

    api_key: SecretStr | None = Field(
        default=None,
        description="NVD API key for higher rate limits",
    )
    base_url: str = Field(
        default="https://services.nvd.nist.gov/rest/json/cves/2.0",
        description="NVD API base URL",
    )
    min_interval: float = Field(
        default=6.0,
        ge=0,
        le=60,
        description="Minimum spacing between NVD requests in seconds",
    )
    lookup_timeout: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Timeout for single CVE lookups in seconds",
    )
    search_timeout: int = Field(
        default=15,
        ge=1,
        le=120,
        description="Timeout for keyword searches in seconds",
    )
    date_range_timeout: int = Field(
        default=20,
        ge=1,
        le=120,
        description="Timeout for each date-range search request in seconds",
    )
    max_range_days: int = Field(
        default=119,
        ge=1,
        le=119,
        description="Largest publication window sent in one request (NVD caps it at 120)",
    )


class EPSSSettings(BaseSettings):
    """EPSS API settings."""

    model_config = SettingsConfigDict(env_prefix="EPSS_")

    url: str = Field(
        default="https://api.first.org/data/v1/epss",
        description="FIRST.org EPSS API endpoint",
    )
    timeout: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Request timeout in seconds",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Number of CVE IDs sent per EPSS request",
    )


class KEVSettings(BaseSettings):
    """CISA KEV catalog settings."""

    model_config = SettingsConfigDict(env_prefix="KEV_")

    url: str = Field(
        default="https://www.cisa.gov/sites/default/files/feeds/known_exploited_vulnerabilities.json",
        description="URL for CISA KEV catalog JSON",
    )
    timeout: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Download timeout in seconds",
    )


class CacheSettings(BaseSettings):
    """In-memory response cache settings."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    ttl_seconds: float = Field(
        default=24 * 60 * 60,
        gt=0,
        description="How long a cached upstream response stays valid",
    )
    max_entries: int | None = Field(
        default=None,
        ge=1,
        description="Optional capacity; least recently used entries are evicted first",
    )


class HTTPSettings(BaseSettings):
    """Shared HTTP client settings."""

    model_config = SettingsConfigDict(env_prefix="HTTP_")

    retry_attempts: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Attempts per request for retryable failures (429, 5xx, timeouts)",
    )
    retry_min_wait: int = Field(
        default=1,
        ge=0,
        description="Minimum wait between retries in seconds",
    )
    retry_max_wait: int = Field(
        default=10,
        ge=0,
        description="Maximum wait between retries in seconds",
    )
    user_agent: str = Field(
        default="CVELens/1.0",
        description="User-Agent header sent upstream",
    )


class Settings(BaseSettings):
    """Main application settings.

    All settings can be configured via environment variables.
    Nested settings use double underscores, e.g., NVD__API_KEY.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Nested settings
    nvd: NVDSettings = Field(default_factory=NVDSettings)
    epss: EPSSSettings = Field(default_factory=EPSSSettings)
    kev: KEVSettings = Field(default_factory=KEVSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Application settings instance, cached for reuse.
    """
    return Settings()
