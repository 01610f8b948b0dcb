"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from logbridge.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.client.max_retries
    3
    >>> settings.cache.default_ttl
    300.0

    # Or with environment variables:
    # LOGS_SERVICE_URL=https://<instance>.api.us-south.logs.cloud.ibm.com
    # LOGS_MAX_RETRIES=5
    # LOGS_CACHE_ENABLED=false
    # LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import re
from functools import lru_cache
from types import MappingProxyType
from typing import Annotated, Literal
from urllib.parse import urlparse

from pydantic import (
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from logbridge.foundation.errors import ConfigurationError

# Per-tool cache TTLs in seconds. Listings change rarely, single fetches
# a little more often, query results and health go stale fastest.
DEFAULT_TOOL_TTLS: MappingProxyType[str, float] = MappingProxyType({
    "list_alerts": 300.0,
    "list_dashboards": 300.0,
    "list_policies": 300.0,
    "list_outgoing_webhooks": 300.0,
    "list_views": 300.0,
    "list_e2m": 300.0,
    "list_streams": 300.0,
    "list_data_access_rules": 300.0,
    "get_alert": 120.0,
    "get_dashboard": 120.0,
    "query_logs": 30.0,
    "health_check": 60.0,
    "suggest_alert": 180.0,
})

_PROD_HOST = re.compile(r"\.api\.(?:private\.)?([a-z]{2}-[a-z]+)\.logs\.cloud\.ibm\.com$")
_DEV_HOST = re.compile(r"\.api\.([a-z0-9-]+)\.([a-z]{2}-[a-z]+)\.logs\.dev\.cloud\.ibm\.com$")
_STAGE_HOST = re.compile(r"\.api\.([a-z]{2}-[a-z]+)\.logs\.test\.cloud\.ibm\.com$")


def region_from_url(service_url: str) -> str:
    """Extract the region from a service URL, or "" when it has no known shape."""
    host = urlparse(service_url).hostname or "" if service_url else ""
    if not host:
        return ""
    if m := _PROD_HOST.search(host):
        return m.group(1)
    if m := _DEV_HOST.search(host):
        return f"{m.group(1)}.{m.group(2)}"
    if m := _STAGE_HOST.search(host):
        return m.group(1)
    return ""


def instance_id_from_url(service_url: str) -> str:
    """The instance ID is the host label in front of ".api."."""
    host = urlparse(service_url).hostname or "" if service_url else ""
    idx = host.find(".api.")
    return host[:idx] if idx > 0 else ""


def build_service_url(instance_id: str, region: str) -> str:
    if not instance_id or not region:
        return ""
    return f"https://{instance_id}.api.{region}.logs.cloud.ibm.com"


def to_ingress_url(api_url: str) -> str:
    """Swap the API subdomain for the ingestion one (first occurrence only)."""
    return api_url.replace(".api.", ".ingress.", 1)


def mask_secret(value: str) -> str:
    if not value:
        return ""
    return f"{value[:4]}...{value[-4:]}" if len(value) > 8 else "***"


class ClientSettings(BaseSettings):
    """HTTP client, retry and rate limit configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOGS_",
        extra="ignore",
        validate_default=True,
    )

    service_url: str = Field(default="", description="Base API URL of the service instance")
    api_key: SecretStr | None = Field(default=None, description="API key (environment only)")
    region: str = ""
    instance_id: str = ""
    instance_name: str = ""

    timeout: PositiveFloat = Field(default=30.0, description="Default per-attempt HTTP timeout")
    max_retries: NonNegativeInt = Field(default=3, description="Retries after the initial attempt")
    retry_wait_min: PositiveFloat = Field(default=1.0, description="Base backoff in seconds")
    retry_wait_max: PositiveFloat = Field(default=30.0, description="Backoff cap in seconds")
    max_idle_conns: PositiveInt = 10
    idle_conn_timeout: PositiveFloat = 90.0

    rate_limit: PositiveFloat = Field(default=100.0, description="Requests per second")
    rate_limit_burst: PositiveInt = 20
    enable_rate_limit: bool = True

    tls_verify: bool = True
    enable_tracing: bool = True

    @field_validator("service_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/") if isinstance(v, str) else v

    @model_validator(mode="after")
    def _derive_and_check(self) -> ClientSettings:
        if self.retry_wait_min > self.retry_wait_max:
            raise ValueError(
                f"retry_wait_min ({self.retry_wait_min}) must not exceed retry_wait_max ({self.retry_wait_max})"
            )
        if self.service_url:
            self.region = self.region or region_from_url(self.service_url)
            self.instance_id = self.instance_id or instance_id_from_url(self.service_url)
        elif self.instance_id and self.region:
            self.service_url = build_service_url(self.instance_id, self.region)
        return self

    @computed_field
    @property
    def ingress_url(self) -> str:
        return to_ingress_url(self.service_url)

    def require_credentials(self) -> None:
        """Raise ConfigurationError unless a live client can be built."""
        if not self.service_url:
            raise ConfigurationError("LOGS_SERVICE_URL is required")
        if self.api_key is None or not self.api_key.get_secret_value():
            raise ConfigurationError("LOGS_API_KEY is required")

    def redacted(self) -> dict[str, object]:
        """Dump safe for logging."""
        data = self.model_dump(mode="json", exclude={"api_key"})
        data["api_key"] = mask_secret(self.api_key.get_secret_value()) if self.api_key else ""
        return data


class CacheSettings(BaseSettings):
    """Per-user response cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOGS_CACHE_",
        extra="ignore",
    )

    enabled: bool = True
    max_entries_per_user: PositiveInt = Field(default=100, description="Max cache entries per user+instance")
    default_ttl: PositiveFloat = Field(default=300.0, description="Default cache TTL in seconds")
    ttl_by_tool: dict[str, PositiveFloat] = Field(default_factory=lambda: dict(DEFAULT_TOOL_TTLS))


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        if not isinstance(v, str):
            return v
        v = v.upper()
        return "WARNING" if v == "WARN" else v


class Settings(BaseSettings):
    """Root settings for the gateway.

    Nested sections load with their own prefixes (LOGS_, LOGS_CACHE_, LOG_),
    so the flat variable names used in deployment manifests keep working.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    client: ClientSettings = Field(default_factory=ClientSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    version: Annotated[str, Field(min_length=1)] = "dev"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the global settings instance (cached)."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
