"""
Trip Ledger - Core Package

A shared-expense ledger for a small group travelling together: record
who paid for what, split it, and see who owes whom.

DESIGN PRINCIPLES:
1. Money is exact (Decimal minor units, never floats)
2. Splits always add back to the total
3. Fail early, fail visibly: no silent corrections
4. Settlement is derived from the ledger, never stored
5. Storage and rate sources are swappable
"""

__version__ = "1.0.0"
__author__ = "Trip Ledger Team"
