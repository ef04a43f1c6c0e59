"""Split construction package."""

from trip_ledger.splits.builder import SplitBuilder

__all__ = ["SplitBuilder"]
