"""Expense ledger package."""

from trip_ledger.ledger.ledger import Ledger, LedgerSnapshot

__all__ = ["Ledger", "LedgerSnapshot"]
