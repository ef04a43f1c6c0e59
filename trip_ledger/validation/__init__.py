"""Expense draft validation package."""

from trip_ledger.validation.validator import ExpenseDraftValidator

__all__ = ["ExpenseDraftValidator"]
