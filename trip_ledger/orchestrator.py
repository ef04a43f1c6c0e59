"""
Expense Book - the entry point for the presentation layer.

Ties the pieces together and defines the end-to-end flows:
1. Add / edit / delete an expense (draft -> split -> ledger -> store)
2. Expense list and detail views
3. Settlement summary for a viewing user

Every collaborator is passed in: store, user directory and converter are
constructor arguments, never module globals.

Writes go to the ledger first and then to the store. If the store write
fails, the ledger change is undone and the storage error is raised to the
caller. Each ledger change and its store write happen under one write lock,
so a rollback can never overwrite another caller's committed change.
"""

import threading
from typing import Optional, Union

from trip_ledger.activity.logger import ActivityLogger
from trip_ledger.config import Settings, get_settings
from trip_ledger.currency.converter import CurrencyConverter
from trip_ledger.errors import NotFoundError
from trip_ledger.ledger.ledger import Ledger
from trip_ledger.models.expense import (
    DraftValidationResult,
    ExpenseDraft,
    ExpenseRecord,
)
from trip_ledger.models.money import Currency
from trip_ledger.models.views import (
    CounterpartyBalance,
    ExpenseDetail,
    ExpenseListItem,
    ParticipantView,
    SettlementSummary,
    SplitLine,
)
from trip_ledger.services.rates import SettingsRateSource
from trip_ledger.services.storage import (
    ExpenseStoreInterface,
    StorageError,
    UserDirectoryInterface,
)
from trip_ledger.settlement.calculator import SettlementCalculator
from trip_ledger.splits.builder import SplitBuilder
from trip_ledger.validation.validator import ExpenseDraftValidator


class ExpenseBook:
    """
    Shared expenses for one trip.

    Loads the ledger from the store once at construction; after that the
    ledger is authoritative for reads and every write is passed through
    to the store.
    """

    def __init__(
        self,
        store: ExpenseStoreInterface,
        directory: UserDirectoryInterface,
        converter: CurrencyConverter,
        builder: Optional[SplitBuilder] = None,
        settlement_currency: Union[Currency, str] = Currency.TWD,
        alternate_currency: Optional[Union[Currency, str]] = Currency.USD,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._store = store
        self._directory = directory
        self._write_lock = threading.RLock()
        self._converter = converter
        self._activity = activity_logger or ActivityLogger()
        self._builder = builder or SplitBuilder()
        self._validator = ExpenseDraftValidator(directory, self._builder.epsilon)
        self._calculator = SettlementCalculator(converter, self._activity)
        self._settlement_currency = Currency(settlement_currency)
        self._alternate_currency = Currency(alternate_currency) if alternate_currency else None

        self._ledger = Ledger.from_records(store.list_expenses(), self._activity)

    @classmethod
    def from_settings(
        cls,
        store: ExpenseStoreInterface,
        directory: UserDirectoryInterface,
        settings: Optional[Settings] = None,
    ) -> "ExpenseBook":
        """Build an expense book with rates and currencies from configuration."""
        settings = settings or get_settings()
        ledger_settings = settings.ledger
        rate_source = SettingsRateSource(settings.rates)

        return cls(
            store=store,
            directory=directory,
            converter=CurrencyConverter.from_rate_source(
                rate_source,
                allow_reciprocal=rate_source.allow_reciprocal,
            ),
            builder=SplitBuilder(ledger_settings.split_epsilon),
            settlement_currency=ledger_settings.settlement_currency,
            alternate_currency=ledger_settings.display_currency,
        )

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # =========================================================================
    # WRITES
    # =========================================================================

    def validate_draft(self, draft: ExpenseDraft) -> DraftValidationResult:
        """Report every problem with a draft without saving anything."""
        return self._validator.validate(draft)

    def add_expense(self, draft: ExpenseDraft) -> ExpenseRecord:
        """
        Create an expense from a draft.

        Raises:
            SplitMismatchError, EmptyParticipantSetError,
            DuplicateParticipantError, PayerConventionError: bad draft
            StorageError: the store write failed (the ledger is unchanged)
        """
        record = self._builder.build_record(draft)

        with self._write_lock:
            self._ledger.insert(record)
            try:
                self._store.put_expense(record)
            except StorageError as e:
                self._activity.storage_failed("put_expense", record.id, e)
                self._ledger.remove(record.id)
                raise

        return record

    def edit_expense(self, expense_id: str, draft: ExpenseDraft) -> ExpenseRecord:
        """
        Replace an expense with one built from a new draft.

        The expense keeps its id, and its creation time unless the draft
        sets one.

        Raises:
            NotFoundError: no expense with this id
            StorageError: the store write failed (the old record is restored)
        """
        with self._write_lock:
            current = self._ledger.get(expense_id)
            if draft.created_at is None:
                draft = draft.model_copy(update={"created_at": current.created_at})

            record = self._builder.build_record(draft, expense_id=expense_id)
            previous = self._ledger.replace(expense_id, record)
            try:
                self._store.put_expense(record)
            except StorageError as e:
                self._activity.storage_failed("put_expense", expense_id, e)
                self._ledger.replace(expense_id, previous)
                raise

        return record

    def delete_expense(self, expense_id: str) -> ExpenseRecord:
        """
        Delete an expense.

        Raises:
            NotFoundError: no expense with this id
            StorageError: the store delete failed (the record is restored)
        """
        with self._write_lock:
            removed = self._ledger.remove(expense_id)
            try:
                deleted = self._store.delete_expense(expense_id)
            except StorageError as e:
                self._activity.storage_failed("delete_expense", expense_id, e)
                self._ledger.insert(removed)
                raise

        if not deleted:
            # Ledger and store disagreed; the record is gone from both now
            self._activity.ledger_conflict(
                "delete_expense",
                expense_id,
                NotFoundError(expense_id),
            )

        return removed

    # =========================================================================
    # READS
    # =========================================================================

    def get_expense_detail(self, expense_id: str) -> ExpenseDetail:
        """An expense with payer and split participants resolved for display."""
        record = self._ledger.get(expense_id)
        cache: dict[str, ParticipantView] = {}

        return ExpenseDetail(
            record=record,
            payer=self._resolve(record.payer, cache),
            splits=tuple(
                SplitLine(
                    participant=self._resolve(entry.participant, cache),
                    share=entry.share,
                    is_payer=entry.participant == record.payer,
                )
                for entry in record.splits
            ),
        )

    def list_expenses(
        self,
        display_currency: Optional[Union[Currency, str]] = None,
        participant: Optional[str] = None,
    ) -> list[ExpenseListItem]:
        """
        Expenses newest first, optionally only those involving participant.

        With display_currency set, every amount is converted into it.

        Raises:
            UnsupportedCurrencyError: an expense cannot be converted
        """
        snapshot = self._ledger.snapshot()
        if participant is None:
            records = snapshot.newest_first()
        else:
            records = tuple(snapshot.query_by_participant(participant))

        cache: dict[str, ParticipantView] = {}
        items = []
        for record in records:
            display_amount = record.total_amount
            if display_currency is not None:
                display_amount = self._converter.convert(record.total_amount, display_currency)

            items.append(ExpenseListItem(
                expense_id=record.id,
                label=record.label,
                created_at=record.created_at,
                payer=self._resolve(record.payer, cache),
                original_amount=record.total_amount,
                display_amount=display_amount,
                split_with=tuple(
                    self._resolve(p, cache)
                    for p in record.participants
                    if p != record.payer
                ),
            ))

        return items

    def settlement_summary(
        self,
        viewing_user: str,
        settlement_currency: Optional[Union[Currency, str]] = None,
        alternate_currency: Optional[Union[Currency, str]] = None,
    ) -> SettlementSummary:
        """
        Who owes the viewing user and whom they owe, with display names.

        Balances are in settlement_currency (default: the book's). The
        overall net is also converted into alternate_currency when one is
        set here or on the book.
        """
        currency = Currency(settlement_currency or self._settlement_currency)
        alternate = alternate_currency or self._alternate_currency

        report = self._calculator.report(self._ledger, viewing_user, currency)

        cache: dict[str, ParticipantView] = {}
        balances = tuple(
            CounterpartyBalance(
                counterparty=self._resolve(entry.counterparty, cache),
                entry=entry,
            )
            for entry in report.entries
        )

        alternate_total = None
        if alternate is not None:
            alternate_total = self._converter.convert(report.total_net, alternate)

        return SettlementSummary(
            report=report,
            balances=balances,
            alternate_total=alternate_total,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _resolve(self, participant_id: str, cache: dict[str, ParticipantView]) -> ParticipantView:
        """Look a participant up in the directory, falling back to the bare id."""
        if participant_id in cache:
            return cache[participant_id]

        try:
            profile = self._directory.lookup(participant_id)
            view = ParticipantView(
                id=participant_id,
                display_name=profile.display_name,
                initial=profile.initial,
                avatar_ref=profile.avatar_ref,
            )
        except NotFoundError:
            self._activity.participant_unresolved(participant_id)
            view = ParticipantView(
                id=participant_id,
                display_name=participant_id,
                initial=participant_id[0].upper(),
                resolved=False,
            )

        cache[participant_id] = view
        return view
