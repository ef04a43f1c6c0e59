"""
Abstract Storage Interfaces

The ledger core never talks to a database directly. It consumes two
collaborators through these interfaces:

1. ExpenseStoreInterface - backing data for the Ledger (get/put/delete/list)
2. UserDirectoryInterface - display metadata for participants

Implementations: in-memory (tests, single session) and Google Sheets.
Calls are synchronous; implementations own their own retry and timeout
policies.
"""

from abc import ABC, abstractmethod
from typing import Optional

from trip_ledger.models.expense import ExpenseRecord, UserProfile


class ExpenseStoreInterface(ABC):
    """
    Abstract interface for expense record storage.

    Records are stored and replaced whole. There is no partial update.
    """

    @abstractmethod
    def get_expense(self, expense_id: str) -> Optional[ExpenseRecord]:
        """
        Retrieve an expense by id.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    def put_expense(self, record: ExpenseRecord) -> None:
        """
        Insert or fully replace an expense record.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete_expense(self, expense_id: str) -> bool:
        """
        Delete an expense by id.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    def list_expenses(self) -> list[ExpenseRecord]:
        """
        List every stored expense.

        Returns:
            All records, oldest first
        """
        pass


class UserDirectoryInterface(ABC):
    """Abstract interface for participant display metadata."""

    @abstractmethod
    def lookup(self, participant_id: str) -> UserProfile:
        """
        Get a participant's profile.

        Raises:
            NotFoundError: If the participant is unknown
        """
        pass

    @abstractmethod
    def list_users(self) -> list[UserProfile]:
        """List every known participant."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
