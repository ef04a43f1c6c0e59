"""Settlement calculation package."""

from trip_ledger.settlement.calculator import SettlementCalculator

__all__ = ["SettlementCalculator"]
