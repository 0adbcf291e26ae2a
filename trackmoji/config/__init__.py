"""Configuration package."""

from trackmoji.config.settings import (
    AppSettings,
    DatabaseSettings,
    GeminiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "GeminiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
