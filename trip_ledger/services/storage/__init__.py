"""
Storage Services Package

Abstract interfaces for the expense store and user directory, with
in-memory and Google Sheets implementations.
"""

from trip_ledger.services.storage.interface import (
    ExpenseStoreInterface,
    StorageError,
    StoreConnectionError,
    UserDirectoryInterface,
)
from trip_ledger.services.storage.memory import (
    InMemoryExpenseStore,
    InMemoryUserDirectory,
)
from trip_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsUserDirectory,
)

__all__ = [
    # Interfaces
    "ExpenseStoreInterface",
    "UserDirectoryInterface",
    # Exceptions
    "StorageError",
    "StoreConnectionError",
    # In-memory implementation
    "InMemoryExpenseStore",
    "InMemoryUserDirectory",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStore",
    "GoogleSheetsUserDirectory",
]
