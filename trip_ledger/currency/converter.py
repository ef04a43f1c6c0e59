"""
Currency Converter

Converts Money between currencies with a fixed rate table supplied at
construction. Rates are never hard-coded in calculation logic; they come
from configuration through a rate source.

A rate for (A, B) means 1 A = rate B, so converting A to B multiplies.
When only the opposite pair is configured the converter divides by that
rate instead, unless reciprocal lookups are switched off.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Mapping, Union

from trip_ledger.errors import UnsupportedCurrencyError
from trip_ledger.models.money import Currency, Money

if TYPE_CHECKING:
    from trip_ledger.services.rates import RateSourceInterface


RateTable = Mapping[tuple[Currency, Currency], Decimal]


class CurrencyConverter:
    """
    Converts Money using a configured rate table.

    Usage:
        converter = CurrencyConverter({(Currency.USD, Currency.TWD): Decimal("32")})
        converter.convert(Money.of("1.00", "USD"), Currency.TWD)  # NT$32.00
    """

    def __init__(self, rates: RateTable, allow_reciprocal: bool = True):
        self._rates: dict[tuple[Currency, Currency], Decimal] = {}
        for (source, target), rate in rates.items():
            rate = rate if isinstance(rate, Decimal) else Decimal(str(rate))
            if not rate.is_finite() or rate <= 0:
                raise ValueError(f"Rate for {source}->{target} must be positive, got {rate}")
            self._rates[(Currency(source), Currency(target))] = rate
        self._allow_reciprocal = allow_reciprocal

    @classmethod
    def from_rate_source(
        cls,
        source: "RateSourceInterface",
        allow_reciprocal: bool = True,
    ) -> "CurrencyConverter":
        return cls(source.get_rates(), allow_reciprocal=allow_reciprocal)

    @property
    def rates(self) -> dict[tuple[Currency, Currency], Decimal]:
        return dict(self._rates)

    def supports(self, source: Union[Currency, str], target: Union[Currency, str]) -> bool:
        try:
            source, target = Currency(source), Currency(target)
        except ValueError:
            return False
        if source == target or (source, target) in self._rates:
            return True
        return self._allow_reciprocal and (target, source) in self._rates

    def convert(self, money: Money, target: Union[Currency, str]) -> Money:
        """
        Convert money into the target currency.

        Identity when the currencies already match. The result is rounded
        half-up to the target's minor unit.

        Raises:
            UnsupportedCurrencyError: no rate configured for the pair
        """
        source = money.currency
        try:
            target = Currency(target)
        except ValueError:
            raise UnsupportedCurrencyError(source, target)

        if source == target:
            return money

        direct = self._rates.get((source, target))
        if direct is not None:
            converted = money.amount * direct
        else:
            inverse = self._rates.get((target, source))
            if inverse is None or not self._allow_reciprocal:
                raise UnsupportedCurrencyError(source, target)
            converted = money.amount / inverse

        return Money(
            amount=converted.quantize(target.quantum, rounding=ROUND_HALF_UP),
            currency=target,
        )
