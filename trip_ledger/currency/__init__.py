"""Currency conversion package."""

from trip_ledger.currency.converter import CurrencyConverter, RateTable

__all__ = ["CurrencyConverter", "RateTable"]
