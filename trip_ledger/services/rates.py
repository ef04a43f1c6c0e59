"""
Rate sources for the currency converter.

A rate source supplies the fixed rate table for a session. Rates are
static per session; refreshing them means building a new converter.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping, Optional

from trip_ledger.config import RateSettings, get_settings
from trip_ledger.models.money import Currency


class RateSourceInterface(ABC):
    """Supplies currency rates keyed by (source, target)."""

    @abstractmethod
    def get_rates(self) -> dict[tuple[Currency, Currency], Decimal]:
        """1 source = rate target, for every configured pair."""
        pass


class SettingsRateSource(RateSourceInterface):
    """Rates read from RATES_* configuration."""

    def __init__(self, settings: Optional[RateSettings] = None):
        self._settings = settings or get_settings().rates

    @property
    def allow_reciprocal(self) -> bool:
        return self._settings.allow_reciprocal

    def get_rates(self) -> dict[tuple[Currency, Currency], Decimal]:
        return self._settings.as_table()


class StaticRateSource(RateSourceInterface):
    """A fixed table passed in by the caller."""

    def __init__(self, rates: Mapping[tuple[Currency, Currency], Decimal]):
        self._rates = dict(rates)

    def get_rates(self) -> dict[tuple[Currency, Currency], Decimal]:
        return dict(self._rates)
