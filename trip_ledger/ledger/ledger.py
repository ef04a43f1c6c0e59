"""
Ledger - the ordered collection of expense records.

The ledger is the single source of truth for settlement. It holds frozen
ExpenseRecords keyed by id and supports whole-record insert, remove and
replace.

CONCURRENCY:
- All mutations go through one writer lock, so a replace is atomic: a
  reader sees either the old record or the new one, never a mix.
- Reads work on snapshots. A snapshot copies the record references under
  the lock; records are immutable, so the copy is consistent for as long
  as the caller holds it.
"""

import threading
from datetime import date, datetime, time, timezone
from typing import Iterable, Iterator, Optional, Union

from trip_ledger.activity.logger import ActivityLogger
from trip_ledger.errors import DuplicateIdError, NotFoundError
from trip_ledger.models.expense import ExpenseRecord


DateBound = Union[date, datetime]


def _as_bound(value: DateBound, end: bool = False) -> datetime:
    """
    Normalise a query bound to an aware datetime.

    A plain date covers the whole day: as a start bound it means midnight,
    as an end bound the last microsecond of the day.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end else time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class LedgerSnapshot:
    """
    An immutable, point-in-time view of the ledger.

    Iteration is oldest first. Queries return newest first, ties broken
    by expense id so the order is fully deterministic.
    """

    def __init__(self, records: Iterable[ExpenseRecord], version: int = 0):
        by_id_then_newest = sorted(
            sorted(records, key=lambda r: r.id),
            key=lambda r: r.created_at,
            reverse=True,
        )
        self._newest_first: tuple[ExpenseRecord, ...] = tuple(by_id_then_newest)
        self._by_id = {record.id: record for record in self._newest_first}
        self.version = version

    def snapshot(self) -> "LedgerSnapshot":
        return self

    def __len__(self) -> int:
        return len(self._newest_first)

    def __iter__(self) -> Iterator[ExpenseRecord]:
        return reversed(self._newest_first)

    def __contains__(self, expense_id: object) -> bool:
        return expense_id in self._by_id

    def newest_first(self) -> tuple[ExpenseRecord, ...]:
        return self._newest_first

    def get(self, expense_id: str) -> ExpenseRecord:
        try:
            return self._by_id[expense_id]
        except KeyError:
            raise NotFoundError(expense_id)

    def query_by_participant(self, participant: str) -> Iterator[ExpenseRecord]:
        """Records the participant paid for or shares, newest first."""
        return (r for r in self._newest_first if r.involves(participant))

    def query_by_date_range(self, start: DateBound, end: DateBound) -> Iterator[ExpenseRecord]:
        """Records created within [start, end] inclusive, newest first."""
        lower = _as_bound(start)
        upper = _as_bound(end, end=True)
        if lower > upper:
            raise ValueError(f"Range start {start} is after range end {end}")
        return (r for r in self._newest_first if lower <= r.created_at <= upper)


class Ledger:
    """
    Mutable, thread-safe ledger of expense records.

    Usage:
        ledger = Ledger()
        ledger.insert(record)
        for expense in ledger.query_by_participant("alice"):
            ...
    """

    def __init__(self, activity_logger: Optional[ActivityLogger] = None):
        self._lock = threading.RLock()
        self._records: dict[str, ExpenseRecord] = {}
        self._version = 0
        self._activity = activity_logger or ActivityLogger()

    @classmethod
    def from_records(
        cls,
        records: Iterable[ExpenseRecord],
        activity_logger: Optional[ActivityLogger] = None,
    ) -> "Ledger":
        """Build a ledger from stored records. Duplicate ids are rejected."""
        ledger = cls(activity_logger)
        for record in records:
            if record.id in ledger._records:
                raise DuplicateIdError(record.id)
            ledger._records[record.id] = record
        return ledger

    @property
    def version(self) -> int:
        """Increases by one on every successful mutation."""
        with self._lock:
            return self._version

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def insert(self, record: ExpenseRecord) -> None:
        """
        Add a record.

        Raises:
            DuplicateIdError: a record with the same id exists
        """
        with self._lock:
            if record.id in self._records:
                error = DuplicateIdError(record.id)
                self._activity.ledger_conflict("insert", record.id, error)
                raise error
            self._records[record.id] = record
            self._version += 1

        self._activity.expense_added(record)

    def remove(self, expense_id: str) -> ExpenseRecord:
        """
        Delete a record and return it. There is no soft delete.

        Raises:
            NotFoundError: no record with this id
        """
        with self._lock:
            record = self._records.pop(expense_id, None)
            if record is None:
                error = NotFoundError(expense_id)
                self._activity.ledger_conflict("remove", expense_id, error)
                raise error
            self._version += 1

        self._activity.expense_removed(record)
        return record

    def replace(self, expense_id: str, record: ExpenseRecord) -> ExpenseRecord:
        """
        Atomically swap the record under expense_id for a new one.

        The new record normally keeps the same id. If it carries a different
        id, that id must not already belong to another record.

        Returns:
            The record that was replaced

        Raises:
            NotFoundError: no record with expense_id
            DuplicateIdError: the new id belongs to another record
        """
        with self._lock:
            previous = self._records.get(expense_id)
            if previous is None:
                error = NotFoundError(expense_id)
                self._activity.ledger_conflict("replace", expense_id, error)
                raise error
            if record.id != expense_id and record.id in self._records:
                error = DuplicateIdError(record.id)
                self._activity.ledger_conflict("replace", record.id, error)
                raise error

            del self._records[expense_id]
            self._records[record.id] = record
            self._version += 1

        self._activity.expense_replaced(previous, record)
        return previous

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, expense_id: str) -> ExpenseRecord:
        with self._lock:
            record = self._records.get(expense_id)
        if record is None:
            raise NotFoundError(expense_id)
        return record

    def snapshot(self) -> LedgerSnapshot:
        """A consistent point-in-time copy for reads that span many records."""
        with self._lock:
            return LedgerSnapshot(list(self._records.values()), self._version)

    def query_by_participant(self, participant: str) -> Iterator[ExpenseRecord]:
        """
        Records the participant paid for or shares, newest first.

        The result is lazy but reads from a snapshot taken when this method
        is called, so later mutations do not leak into it.
        """
        return self.snapshot().query_by_participant(participant)

    def query_by_date_range(self, start: DateBound, end: DateBound) -> Iterator[ExpenseRecord]:
        """Records created within [start, end] inclusive, newest first."""
        return self.snapshot().query_by_date_range(start, end)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, expense_id: object) -> bool:
        with self._lock:
            return expense_id in self._records

    def __iter__(self) -> Iterator[ExpenseRecord]:
        """Oldest first, from a snapshot."""
        return iter(self.snapshot())
