"""
Tests for Trip Ledger

Test strategy:
1. Unit tests for individual components (models, builder, converter, ledger)
2. Integration tests for flows (expense book with in-memory storage)
3. No real API calls in tests (Google Sheets is mocked)
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from trip_ledger.models import (
    CounterpartyBalance,
    Currency,
    DraftValidationResult,
    ExpenseRecord,
    Money,
    ParticipantView,
    SettlementEntry,
    SettlementReport,
    SplitEntry,
    SplitLine,
    UserProfile,
    ValidationIssue,
)


def usd(amount):
    return Money.of(amount, "USD")


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_user_profile_creation(self):
        """Test UserProfile model creation."""
        profile = UserProfile(id="alice", display_name="alice liddell")
        assert profile.display_name == "alice liddell"
        assert profile.initial == "A"
        assert profile.avatar_ref is None

    def test_user_profile_strips_whitespace(self):
        """Test that whitespace is stripped from display names."""
        profile = UserProfile(id="bob", display_name="  Bob  ")
        assert profile.display_name == "Bob"

    def test_expense_record_creation(self):
        """Test ExpenseRecord model creation with defaults."""
        record = ExpenseRecord(
            label="Night market",
            total_amount=usd("10.00"),
            payer="alice",
            splits=[
                SplitEntry(participant="alice", share=usd("5.00")),
                SplitEntry(participant="bob", share=usd("5.00")),
            ],
        )
        assert record.id
        assert record.created_at.tzinfo is not None
        assert record.participants == ["alice", "bob"]
        assert record.share_for("bob") == usd("5.00")
        assert record.share_for("carol") is None

    def test_expense_record_rejects_split_mismatch(self):
        """Test that shares must add up to the total."""
        with pytest.raises(ValidationError):
            ExpenseRecord(
                label="Taxi",
                total_amount=usd("10.00"),
                payer="alice",
                splits=[SplitEntry(participant="bob", share=usd("9.00"))],
            )

    def test_expense_record_rejects_duplicate_participant(self):
        """Test that a participant appears at most once."""
        with pytest.raises(ValidationError):
            ExpenseRecord(
                label="Taxi",
                total_amount=usd("10.00"),
                payer="alice",
                splits=[
                    SplitEntry(participant="bob", share=usd("5.00")),
                    SplitEntry(participant="bob", share=usd("5.00")),
                ],
            )

    def test_expense_record_rejects_mixed_currency(self):
        """Test that shares must be in the expense currency."""
        with pytest.raises(ValidationError):
            ExpenseRecord(
                label="Taxi",
                total_amount=usd("10.00"),
                payer="alice",
                splits=[SplitEntry(participant="bob", share=Money.of("10.00", "TWD"))],
            )

    def test_expense_record_requires_splits(self):
        """Test that an expense needs at least one share."""
        with pytest.raises(ValidationError):
            ExpenseRecord(label="Taxi", total_amount=usd("10.00"), payer="alice", splits=[])

    def test_naive_created_at_is_utc(self):
        """Test that naive timestamps are taken as UTC."""
        record = ExpenseRecord(
            label="Taxi",
            total_amount=usd("1.00"),
            payer="alice",
            splits=[SplitEntry(participant="bob", share=usd("1.00"))],
            created_at=datetime(2024, 5, 1, 9, 30),
        )
        assert record.created_at == datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

    def test_expense_record_is_frozen(self):
        """Test that records cannot be patched in place."""
        record = ExpenseRecord(
            label="Taxi",
            total_amount=usd("1.00"),
            payer="alice",
            splits=[SplitEntry(participant="bob", share=usd("1.00"))],
        )
        with pytest.raises(ValidationError):
            record.label = "Bus"


class TestSettlementModels:
    """Tests for settlement and view models."""

    def test_settlement_report_is_debt(self):
        """Test the debt flag follows the sign of the total."""
        report = SettlementReport(
            viewing_user="alice",
            currency=Currency.USD,
            entries=(SettlementEntry(counterparty="bob", net_balance=usd("-4.00")),),
            total_net=usd("-4.00"),
        )
        assert report.is_debt
        assert not report.entries[0].counterparty_owes

    def test_split_line_status(self):
        """Test paid/owed status for split rows."""
        view = ParticipantView(id="alice", display_name="Alice", initial="A")
        assert SplitLine(participant=view, share=usd("1.00"), is_payer=True).status == "paid"
        assert SplitLine(participant=view, share=usd("1.00"), is_payer=False).status == "owed"

    def test_counterparty_balance_owes_you(self):
        """Test the direction flag on display balances."""
        view = ParticipantView(id="bob", display_name="Bob", initial="B")
        balance = CounterpartyBalance(
            counterparty=view,
            entry=SettlementEntry(counterparty="bob", net_balance=usd("2.50")),
        )
        assert balance.owes_you


class TestValidationResult:
    """Tests for DraftValidationResult."""

    def test_validation_result_has_errors(self):
        """Test error detection in validation result."""
        result = DraftValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="label",
                    issue_type="missing",
                    message="Expense name is required",
                    severity="error",
                ),
                ValidationIssue(
                    field="participants",
                    issue_type="unknown_participant",
                    message="zed is not in the user directory",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test validation result with only warnings."""
        result = DraftValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="custom_amounts",
                    issue_type="rounding",
                    message="Split is off by $0.01, within tolerance",
                    severity="warning",
                ),
            ],
        )
        assert not result.has_errors
        assert result.error_count == 0

    def test_validation_issue_severity(self):
        """Test that severity is restricted."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestCurrencies:
    """Tests for the supported currencies."""

    def test_all_currencies_exist(self):
        """Test that all expected currencies are defined."""
        assert {c.value for c in Currency} == {"USD", "TWD", "EUR", "JPY"}

    def test_minor_units(self):
        """Test decimal places per currency."""
        assert Currency.USD.minor_units == 2
        assert Currency.TWD.quantum == Decimal("0.01")
        assert Currency.JPY.minor_units == 0
        assert Currency.JPY.quantum == Decimal("1")
