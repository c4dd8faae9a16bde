"""Configuration package for the destination connector."""

from .settings import (
    ServerSettings,
    DestinationSettings,
    DatabaseSettings,
    CannySettings,
    SyncSettings,
    LoggingSettings,
    AppSettings,
    get_settings,
    reload_settings
)

__all__ = [
    "ServerSettings",
    "DestinationSettings",
    "DatabaseSettings",
    "CannySettings",
    "SyncSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
    "reload_settings"
]
