"""Integration tests for the ExpenseBook with in-memory storage."""

import threading
import time
from datetime import datetime, timezone

import pytest

from trip_ledger.config import Settings, get_settings
from trip_ledger.errors import NotFoundError, SplitMismatchError
from trip_ledger.models.expense import ExpenseDraft, SplitMode
from trip_ledger.models.money import Currency, Money
from trip_ledger.orchestrator import ExpenseBook
from trip_ledger.services.storage import (
    InMemoryExpenseStore,
    InMemoryUserDirectory,
    StorageError,
)


def usd(amount):
    return Money.of(amount, "USD")


def twd(amount):
    return Money.of(amount, "TWD")


class FailingStore(InMemoryExpenseStore):
    """In-memory store whose writes can be made to fail."""

    def __init__(self, records=()):
        super().__init__(records)
        self.fail = False

    def put_expense(self, record):
        if self.fail:
            raise StorageError("sheet unavailable")
        super().put_expense(record)

    def delete_expense(self, expense_id):
        if self.fail:
            raise StorageError("sheet unavailable")
        return super().delete_expense(expense_id)


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def book(store, profiles, converter, activity):
    return ExpenseBook(
        store=store,
        directory=InMemoryUserDirectory(profiles),
        converter=converter,
        activity_logger=activity,
    )


def dinner(**overrides):
    fields = {
        "label": "Dinner",
        "total_amount": usd("30.00"),
        "payer": "alice",
        "participants": ["alice", "bob"],
        "payer_participates": True,
        "created_at": datetime(2024, 3, 1, 19, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return ExpenseDraft(**fields)


class TestExpenseBookWrites:
    """Tests for add, edit and delete."""

    def test_add_expense(self, book, store):
        """Test that a new expense reaches the ledger and the store."""
        record = book.add_expense(dinner())

        assert book.ledger.get(record.id) == record
        assert store.get_expense(record.id) == record
        assert record.share_for("bob") == usd("15.00")

    def test_add_rejects_bad_split(self, book, store):
        """Test that nothing is saved for an invalid draft."""
        with pytest.raises(SplitMismatchError):
            book.add_expense(dinner(
                mode=SplitMode.CUSTOM,
                custom_amounts={"alice": usd("20.00"), "bob": usd("8.00")},
            ))
        assert len(book.ledger) == 0
        assert store.list_expenses() == []

    def test_add_rolls_back_on_storage_error(self, book, store, activity):
        """Test that a failed store write leaves the ledger unchanged."""
        store.fail = True

        with pytest.raises(StorageError):
            book.add_expense(dinner())

        assert len(book.ledger) == 0
        activity._logger.error.assert_called_once()
        assert activity._logger.error.call_args.args[0] == "storage_failed"

    def test_edit_keeps_id_and_created_at(self, book, store):
        """Test that an edit replaces the whole record under the same id."""
        original = book.add_expense(dinner())

        edited = book.edit_expense(original.id, dinner(
            label="Dinner and drinks",
            total_amount=usd("45.00"),
            participants=["alice", "bob", "carol"],
            created_at=None,
        ))

        assert edited.id == original.id
        assert edited.created_at == original.created_at
        assert edited.participants == ["alice", "bob", "carol"]
        assert book.ledger.get(original.id) == edited
        assert store.get_expense(original.id) == edited
        assert len(book.ledger) == 1

    def test_edit_missing(self, book):
        """Test editing an unknown expense."""
        with pytest.raises(NotFoundError):
            book.edit_expense("nope", dinner())

    def test_edit_rolls_back_on_storage_error(self, book, store):
        """Test that a failed store write restores the previous record."""
        original = book.add_expense(dinner())
        store.fail = True

        with pytest.raises(StorageError):
            book.edit_expense(original.id, dinner(total_amount=usd("99.00")))

        assert book.ledger.get(original.id) == original

    def test_delete_expense(self, book, store):
        """Test deleting from both ledger and store."""
        record = book.add_expense(dinner())

        assert book.delete_expense(record.id) == record
        assert record.id not in book.ledger
        assert store.get_expense(record.id) is None

    def test_delete_rolls_back_on_storage_error(self, book, store):
        """Test that a failed store delete restores the record."""
        record = book.add_expense(dinner())
        store.fail = True

        with pytest.raises(StorageError):
            book.delete_expense(record.id)

        assert book.ledger.get(record.id) == record

    def test_delete_missing_from_store_is_logged(self, book, store, activity):
        """Test that a store without the record logs a conflict."""
        record = book.add_expense(dinner())
        store.delete_expense(record.id)

        book.delete_expense(record.id)

        events = [c.args[0] for c in activity._logger.warning.call_args_list]
        assert "ledger_conflict" in events

    def test_loads_existing_records(self, profiles, converter, activity, make_record):
        """Test that the ledger is loaded from the store at startup."""
        store = InMemoryExpenseStore([make_record("e1", "alice", {"bob": "5.00"})])
        book = ExpenseBook(store, InMemoryUserDirectory(profiles), converter, activity_logger=activity)
        assert "e1" in book.ledger

    def test_validate_draft(self, book):
        """Test draft validation through the book."""
        result = book.validate_draft(dinner(participants=["alice", "bob", "zed"]))
        assert result.is_valid
        assert [i.issue_type for i in result.issues] == ["unknown_participant"]


class StallingStore(InMemoryExpenseStore):
    """Store whose next write waits for a signal and then fails."""

    def __init__(self, records=()):
        super().__init__(records)
        self.stall_next = False
        self.entered = threading.Event()
        self.release = threading.Event()

    def put_expense(self, record):
        if self.stall_next:
            self.stall_next = False
            self.entered.set()
            self.release.wait(timeout=5)
            raise StorageError("sheet timed out")
        super().put_expense(record)


class TestExpenseBookConcurrentWrites:
    """Tests for rollback when writers race on the same expense."""

    def test_rollback_does_not_overwrite_concurrent_edit(self, profiles, converter, activity):
        """Test that a failed edit cannot undo an edit that was saved meanwhile."""
        store = StallingStore()
        book = ExpenseBook(store, InMemoryUserDirectory(profiles), converter, activity_logger=activity)
        original = book.add_expense(dinner(label="Original"))
        store.stall_next = True
        errors = []

        def failing_edit():
            try:
                book.edit_expense(original.id, dinner(label="First edit"))
            except StorageError as e:
                errors.append(e)

        def second_edit():
            book.edit_expense(original.id, dinner(label="Second edit"))

        first = threading.Thread(target=failing_edit)
        first.start()
        assert store.entered.wait(timeout=5)

        second = threading.Thread(target=second_edit)
        second.start()
        time.sleep(0.1)
        store.release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert len(errors) == 1
        assert book.ledger.get(original.id).label == "Second edit"
        assert store.get_expense(original.id).label == "Second edit"

    def test_failed_add_reports_storage_error(self, profiles, converter, activity):
        """Test that a failed add rolls back while other writes proceed."""
        store = StallingStore()
        book = ExpenseBook(store, InMemoryUserDirectory(profiles), converter, activity_logger=activity)
        store.stall_next = True
        errors = []
        added = []

        def failing_add():
            try:
                book.add_expense(dinner(label="Lost"))
            except StorageError as e:
                errors.append(e)

        first = threading.Thread(target=failing_add)
        first.start()
        assert store.entered.wait(timeout=5)

        second = threading.Thread(target=lambda: added.append(book.add_expense(dinner(label="Kept"))))
        second.start()
        time.sleep(0.1)
        store.release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert len(errors) == 1
        assert [r.label for r in book.ledger] == ["Kept"]
        assert [r.label for r in store.list_expenses()] == ["Kept"]


class TestExpenseBookReads:
    """Tests for the list, detail and settlement views."""

    def test_expense_detail(self, book):
        """Test payer and split rows resolved for display."""
        record = book.add_expense(dinner())

        detail = book.get_expense_detail(record.id)

        assert detail.payer.display_name == "Alice"
        assert detail.payer.avatar_ref == "avatars/alice.png"
        assert [(s.participant.display_name, s.status) for s in detail.splits] == [
            ("Alice", "paid"),
            ("Bob", "owed"),
        ]

    def test_unknown_participant_falls_back_to_id(self, book, activity):
        """Test display of a participant the directory does not know."""
        record = book.add_expense(dinner(participants=["alice", "zoe"]))

        detail = book.get_expense_detail(record.id)
        zoe = detail.splits[1].participant

        assert zoe.display_name == "zoe"
        assert zoe.initial == "Z"
        assert not zoe.resolved
        events = [c.args[0] for c in activity._logger.info.call_args_list]
        assert "participant_unresolved" in events

    def test_list_expenses_converted_newest_first(self, book):
        """Test the expense list in a display currency."""
        book.add_expense(dinner(label="First"))
        book.add_expense(dinner(
            label="Second",
            total_amount=twd("640.00"),
            payer="bob",
            participants=["alice", "carol"],
            payer_participates=False,
            created_at=datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc),
        ))

        items = book.list_expenses(display_currency=Currency.USD)

        assert [i.label for i in items] == ["Second", "First"]
        assert items[0].original_amount == twd("640.00")
        assert items[0].display_amount == usd("20.00")
        assert [p.id for p in items[0].split_with] == ["alice", "carol"]
        assert [p.id for p in items[1].split_with] == ["bob"]

    def test_list_expenses_for_participant(self, book):
        """Test filtering the list to one participant."""
        book.add_expense(dinner(label="Shared"))
        book.add_expense(dinner(label="Other", payer="carol", participants=["carol"]))

        items = book.list_expenses(participant="bob")

        assert [i.label for i in items] == ["Shared"]
        assert items[0].display_amount == items[0].original_amount

    def test_settlement_summary(self, book):
        """Test balances with names and the alternate-currency total."""
        book.add_expense(dinner())

        summary = book.settlement_summary("alice")

        assert summary.report.currency == Currency.TWD
        assert len(summary.balances) == 1
        balance = summary.balances[0]
        assert balance.counterparty.display_name == "Bob"
        assert balance.owes_you
        assert balance.entry.net_balance == twd("480.00")
        assert summary.alternate_total == usd("15.00")

    def test_settlement_summary_currency_override(self, book):
        """Test settling in a different currency without an alternate."""
        book.add_expense(dinner())

        summary = book.settlement_summary("bob", settlement_currency="USD", alternate_currency="TWD")

        assert summary.report.total_net == usd("-15.00")
        assert summary.alternate_total == twd("-480.00")


class TestExpenseBookFromSettings:
    """Tests for building an expense book from configuration."""

    def test_from_settings(self, monkeypatch, tmp_path, profiles):
        """Test that rates and currencies come from the environment."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TRIP_LEDGER_SETTLEMENT_CURRENCY", "USD")
        monkeypatch.setenv("TRIP_LEDGER_DISPLAY_CURRENCY", "EUR")
        monkeypatch.setenv("RATES_PAIRS", '{"EUR/USD": "1.25"}')
        get_settings.cache_clear()

        book = ExpenseBook.from_settings(
            InMemoryExpenseStore(),
            InMemoryUserDirectory(profiles),
            settings=Settings(),
        )
        book.add_expense(dinner(total_amount=Money.of("20.00", "EUR")))

        summary = book.settlement_summary("alice")

        assert summary.report.total_net == usd("12.50")
        assert summary.alternate_total == Money.of("10.00", "EUR")
        get_settings.cache_clear()
