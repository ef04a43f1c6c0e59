"""Services package."""

from trip_ledger.services.rates import (
    RateSourceInterface,
    SettingsRateSource,
    StaticRateSource,
)
from trip_ledger.services.storage import (
    ExpenseStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsUserDirectory,
    InMemoryExpenseStore,
    InMemoryUserDirectory,
    StorageError,
    StoreConnectionError,
    UserDirectoryInterface,
)

__all__ = [
    # Rate sources
    "RateSourceInterface",
    "SettingsRateSource",
    "StaticRateSource",
    # Storage services
    "ExpenseStoreInterface",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStore",
    "GoogleSheetsUserDirectory",
    "InMemoryExpenseStore",
    "InMemoryUserDirectory",
    "StorageError",
    "StoreConnectionError",
    "UserDirectoryInterface",
]
