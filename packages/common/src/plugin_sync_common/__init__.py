"""Shared configuration, logging and errors for plugin-sync."""

from plugin_sync_common.config import Settings, get_settings
from plugin_sync_common.errors import (
    ClientError,
    ConfigError,
    EnrichmentError,
    ManifestError,
    PluginSyncError,
    ReadmeError,
    StoreError,
)
from plugin_sync_common.logging_config import configure_logging, get_logger

__all__ = [
    "ClientError",
    "ConfigError",
    "EnrichmentError",
    "ManifestError",
    "PluginSyncError",
    "ReadmeError",
    "Settings",
    "StoreError",
    "configure_logging",
    "get_logger",
    "get_settings",
]
