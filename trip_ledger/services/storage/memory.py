"""
In-memory storage.

Used by tests and for a single session with no backend configured.
"""

import threading
from typing import Iterable, Optional

from trip_ledger.errors import NotFoundError
from trip_ledger.models.expense import ExpenseRecord, UserProfile
from trip_ledger.services.storage.interface import (
    ExpenseStoreInterface,
    UserDirectoryInterface,
)


class InMemoryExpenseStore(ExpenseStoreInterface):
    """Dict-backed expense store."""

    def __init__(self, records: Iterable[ExpenseRecord] = ()):
        self._lock = threading.Lock()
        self._records: dict[str, ExpenseRecord] = {r.id: r for r in records}

    def get_expense(self, expense_id: str) -> Optional[ExpenseRecord]:
        with self._lock:
            return self._records.get(expense_id)

    def put_expense(self, record: ExpenseRecord) -> None:
        with self._lock:
            self._records[record.id] = record

    def delete_expense(self, expense_id: str) -> bool:
        with self._lock:
            return self._records.pop(expense_id, None) is not None

    def list_expenses(self) -> list[ExpenseRecord]:
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: (r.created_at, r.id))


class InMemoryUserDirectory(UserDirectoryInterface):
    """Dict-backed user directory."""

    def __init__(self, profiles: Iterable[UserProfile] = ()):
        self._profiles: dict[str, UserProfile] = {p.id: p for p in profiles}

    def add(self, profile: UserProfile) -> None:
        self._profiles[profile.id] = profile

    def lookup(self, participant_id: str) -> UserProfile:
        try:
            return self._profiles[participant_id]
        except KeyError:
            raise NotFoundError(participant_id, entity_type="participant")

    def list_users(self) -> list[UserProfile]:
        return sorted(self._profiles.values(), key=lambda p: p.display_name.lower())
