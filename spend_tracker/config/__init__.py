"""Configuration package."""

from spend_tracker.config.settings import (
    AppSettings,
    DatabaseSettings,
    GoogleSheetsSettings,
    RabbitMQSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "GoogleSheetsSettings",
    "RabbitMQSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
