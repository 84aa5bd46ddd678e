"""Configuration package."""

from household_ledger.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
