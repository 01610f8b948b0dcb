"""Configuration management via pydantic-settings."""

from .settings import (
    DEFAULT_TOOL_TTLS,
    CacheSettings,
    ClientSettings,
    LoggingSettings,
    Settings,
    build_service_url,
    clear_settings_cache,
    get_settings,
    instance_id_from_url,
    mask_secret,
    region_from_url,
    to_ingress_url,
)

__all__ = [
    "Settings",
    "ClientSettings",
    "CacheSettings",
    "LoggingSettings",
    "DEFAULT_TOOL_TTLS",
    "get_settings",
    "clear_settings_cache",
    "region_from_url",
    "instance_id_from_url",
    "build_service_url",
    "to_ingress_url",
    "mask_secret",
]
