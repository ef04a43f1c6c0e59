"""Configuration package."""

from trip_ledger.config.settings import (
    GoogleSheetsSettings,
    LedgerSettings,
    RateSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GoogleSheetsSettings",
    "LedgerSettings",
    "RateSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
