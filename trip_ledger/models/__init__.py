"""
Data Models Package

Pydantic models for money, expenses, settlements and display views.
"""

from trip_ledger.models.money import Currency, Money
from trip_ledger.models.expense import (
    SPLIT_TOLERANCE,
    DraftValidationResult,
    ExpenseDraft,
    ExpenseRecord,
    SplitEntry,
    SplitMode,
    UserProfile,
    ValidationIssue,
)
from trip_ledger.models.settlement import (
    ContributingItem,
    Direction,
    SettlementEntry,
    SettlementReport,
)
from trip_ledger.models.views import (
    CounterpartyBalance,
    ExpenseDetail,
    ExpenseListItem,
    ParticipantView,
    SettlementSummary,
    SplitLine,
)

__all__ = [
    # Money
    "Currency",
    "Money",
    # Expense models
    "SPLIT_TOLERANCE",
    "DraftValidationResult",
    "ExpenseDraft",
    "ExpenseRecord",
    "SplitEntry",
    "SplitMode",
    "UserProfile",
    "ValidationIssue",
    # Settlement models
    "ContributingItem",
    "Direction",
    "SettlementEntry",
    "SettlementReport",
    # Views
    "CounterpartyBalance",
    "ExpenseDetail",
    "ExpenseListItem",
    "ParticipantView",
    "SettlementSummary",
    "SplitLine",
]
