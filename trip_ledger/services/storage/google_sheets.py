"""
Google Sheets Storage Implementation

Expense records and participant profiles kept in a Google Sheets
spreadsheet, one row per record. Splits are JSON-encoded in a single cell
so a record is always written with one range update: a reader never sees
a row with the new total and the old splits.

TRADEOFFS:
- No transactions (each record is one row, written in one call)
- Lookups scan the sheet (fine for a trip's worth of expenses)
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from trip_ledger.config import GoogleSheetsSettings, get_settings
from trip_ledger.errors import NotFoundError
from trip_ledger.models.expense import ExpenseRecord, SplitEntry, UserProfile
from trip_ledger.models.money import Currency, Money
from trip_ledger.services.storage.interface import (
    ExpenseStoreInterface,
    StorageError,
    StoreConnectionError,
    UserDirectoryInterface,
)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "label",
    "total_amount",
    "currency",
    "payer",
    "splits_json",
    "created_at",
]

# Column mappings for Users sheet
USER_COLUMNS = [
    "id",
    "display_name",
    "avatar_ref",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except (ValueError, gspread.exceptions.GSpreadException) as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create_sheet(self._settings.users_sheet_name, USER_COLUMNS)


class GoogleSheetsExpenseStore(ExpenseStoreInterface):
    """
    Google Sheets implementation of expense storage.

    Rows follow EXPENSE_COLUMNS. Amounts are stored as decimal strings,
    never as sheet numbers, so they round-trip exactly.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: ExpenseRecord) -> list:
        """Convert an ExpenseRecord to a spreadsheet row."""
        splits = [
            {"participant": entry.participant, "amount": str(entry.share.amount)}
            for entry in record.splits
        ]
        return [
            record.id,
            record.label,
            str(record.total_amount.amount),
            record.total_amount.currency.value,
            record.payer,
            json.dumps(splits),
            record.created_at.isoformat(),
        ]

    def _row_to_record(self, row: list) -> ExpenseRecord:
        """Convert a spreadsheet row to an ExpenseRecord."""
        currency = Currency(row[3])
        splits = [
            SplitEntry(
                participant=item["participant"],
                share=Money(amount=Decimal(item["amount"]), currency=currency),
            )
            for item in json.loads(row[5])
        ]
        return ExpenseRecord(
            id=row[0],
            label=row[1],
            total_amount=Money(amount=Decimal(row[2]), currency=currency),
            payer=row[4],
            splits=splits,
            created_at=datetime.fromisoformat(row[6]),
        )

    def _find_row(self, rows: list[list], expense_id: str) -> Optional[int]:
        """1-based sheet row number for an expense id, skipping the header."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == expense_id:
                return idx
        return None

    def _parse_row(self, row: list, row_number: int) -> ExpenseRecord:
        try:
            return self._row_to_record(row)
        except (ValueError, KeyError, IndexError, TypeError, InvalidOperation) as e:
            raise StorageError(f"Malformed expense in sheet row {row_number}: {e}") from e

    def _parse_rows(self, rows: list[list]) -> list[ExpenseRecord]:
        return [
            self._parse_row(row, idx)
            for idx, row in enumerate(rows[1:], start=2)
            if row and row[0]  # Skip empty rows
        ]

    def get_expense(self, expense_id: str) -> Optional[ExpenseRecord]:
        """Retrieve an expense by its id."""
        try:
            rows = self._client.get_expenses_sheet().get_all_values()
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Failed to get expense: {e}") from e

        idx = self._find_row(rows, expense_id)
        if idx is None:
            return None
        return self._parse_row(rows[idx - 1], idx)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def put_expense(self, record: ExpenseRecord) -> None:
        """Append a new row or overwrite the existing row in one update."""
        new_row = self._record_to_row(record)
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet.get_all_values(), record.id)
            if idx is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}:{rowcol_to_a1(idx, len(EXPENSE_COLUMNS))}",
                    values=[new_row],
                    value_input_option="RAW",
                )
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Failed to save expense {record.id}: {e}") from e

    def delete_expense(self, expense_id: str) -> bool:
        """Delete an expense row by id."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet.get_all_values(), expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Failed to delete expense {expense_id}: {e}") from e

    def list_expenses(self) -> list[ExpenseRecord]:
        """List all expenses, oldest first."""
        try:
            rows = self._client.get_expenses_sheet().get_all_values()
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Failed to list expenses: {e}") from e

        records = self._parse_rows(rows)
        records.sort(key=lambda r: (r.created_at, r.id))
        return records


class GoogleSheetsUserDirectory(UserDirectoryInterface):
    """Participant profiles read from the Users worksheet."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_profile(self, row: list) -> UserProfile:
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return UserProfile(
            id=safe_get(0),
            display_name=safe_get(1) or safe_get(0),
            avatar_ref=safe_get(2) or None,
        )

    def _load_profiles(self) -> list[UserProfile]:
        try:
            rows = self._client.get_users_sheet().get_all_values()[1:]  # Skip header
        except gspread.exceptions.GSpreadException as e:
            raise StorageError(f"Failed to read users: {e}") from e
        return [self._row_to_profile(row) for row in rows if row and row[0]]

    def lookup(self, participant_id: str) -> UserProfile:
        for profile in self._load_profiles():
            if profile.id == participant_id:
                return profile
        raise NotFoundError(participant_id, entity_type="participant")

    def list_users(self) -> list[UserProfile]:
        return sorted(self._load_profiles(), key=lambda p: p.display_name.lower())
