"""
Money - fixed-point amounts tagged with a currency.

Amounts are exact Decimals held at the currency's minor-unit precision
(cents for USD). Binary floats are rejected outright, and so is any amount
with more precision than the currency allows: nothing is silently rounded
on the way in.

Arithmetic between two Money values only happens in the same currency.
Crossing currencies goes through the CurrencyConverter.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Union

from pydantic import BaseModel, ConfigDict, model_validator

from trip_ledger.errors import CurrencyMismatchError


Scalar = Union[int, Decimal, str]


class Currency(str, Enum):
    """Supported currencies."""
    USD = "USD"
    TWD = "TWD"
    EUR = "EUR"
    JPY = "JPY"

    @property
    def minor_units(self) -> int:
        """Number of decimal places in the smallest unit (2 for cents)."""
        return _MINOR_UNITS[self]

    @property
    def quantum(self) -> Decimal:
        """The smallest representable amount, e.g. Decimal('0.01')."""
        return Decimal(1).scaleb(-self.minor_units)

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_MINOR_UNITS = {
    Currency.USD: 2,
    Currency.TWD: 2,
    Currency.EUR: 2,
    Currency.JPY: 0,
}

_SYMBOLS = {
    Currency.USD: "$",
    Currency.TWD: "NT$",
    Currency.EUR: "€",
    Currency.JPY: "¥",
}


def _to_decimal(value: Scalar) -> Decimal:
    """Convert an int/str/Decimal to Decimal, refusing floats."""
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"Money arithmetic needs int, str or Decimal, got {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a valid decimal value: {value!r}")


class Money(BaseModel):
    """
    An exact amount in one currency.

    Immutable. All operations return new Money values.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: Currency

    @model_validator(mode="before")
    @classmethod
    def normalise_amount(cls, data):
        """Reject floats and over-precise amounts; pad to the minor unit."""
        if not isinstance(data, dict):
            return data

        amount = data.get("amount")
        if amount is None:
            return data
        if isinstance(amount, (float, bool)):
            raise ValueError(
                "Money amounts must be given as Decimal, int or str, never float"
            )

        try:
            currency = Currency(data.get("currency"))
        except ValueError:
            # Let field validation report the bad currency
            return data

        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {amount!r}")

        if not value.is_finite():
            raise ValueError(f"Amount must be finite, got {value}")

        try:
            quantized = value.quantize(currency.quantum)
        except InvalidOperation:
            raise ValueError(f"Amount out of range: {value}")

        if quantized != value:
            raise ValueError(
                f"{value} has more precision than {currency.value} allows "
                f"({currency.minor_units} decimal places)"
            )

        return {**data, "amount": quantized, "currency": currency}

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def of(cls, amount: Scalar, currency: Union[Currency, str]) -> "Money":
        """Shorthand constructor: Money.of("10.00", "USD")."""
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: Union[Currency, str]) -> "Money":
        return cls(amount=Decimal(0), currency=currency)

    @classmethod
    def from_minor_units(cls, units: int, currency: Union[Currency, str]) -> "Money":
        """Build Money from an integer count of minor units (cents)."""
        currency = Currency(currency)
        return cls(amount=Decimal(units).scaleb(-currency.minor_units), currency=currency)

    @classmethod
    def sum(cls, values: Iterable["Money"], currency: Union[Currency, str]) -> "Money":
        """Add up Money values, starting from zero in `currency`."""
        total = cls.zero(currency)
        for value in values:
            total = total.add(value)
        return total

    # =========================================================================
    # ARITHMETIC
    # =========================================================================

    def _require_same_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatchError(self, other)

    def add(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._require_same_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def multiply(self, scalar: Scalar) -> "Money":
        """
        Multiply by a scalar, rounding half-up to the minor unit.

        Floats are refused; pass rates and factors as Decimal or str.
        """
        product = self.amount * _to_decimal(scalar)
        return Money(
            amount=product.quantize(self.currency.quantum, rounding=ROUND_HALF_UP),
            currency=self.currency,
        )

    def divide(self, parts: int) -> list["Money"]:
        """
        Divide into `parts` shares that add up to exactly this amount.

        Works in minor units: every share gets the integer quotient and the
        first `remainder` shares get one extra unit each. $10.00 / 3 gives
        [$3.34, $3.33, $3.33]. Negative amounts are divided symmetrically.
        """
        if isinstance(parts, bool) or not isinstance(parts, int):
            raise TypeError(f"parts must be an int, got {type(parts).__name__}")
        if parts < 1:
            raise ValueError(f"Cannot divide into {parts} parts")

        units = self.to_minor_units()
        sign = -1 if units < 0 else 1
        base, remainder = divmod(abs(units), parts)

        return [
            Money.from_minor_units(sign * (base + (1 if i < remainder else 0)), self.currency)
            for i in range(parts)
        ]

    def compare(self, other: "Money") -> int:
        """Return -1, 0 or 1 as this amount is less than, equal to or greater than other."""
        self._require_same_currency(other)
        return (self.amount > other.amount) - (self.amount < other.amount)

    def negate(self) -> "Money":
        return Money(amount=-self.amount, currency=self.currency)

    def is_close_to(self, other: "Money", epsilon: Scalar = Decimal("0.01")) -> bool:
        """True when both amounts differ by at most `epsilon` currency units."""
        self._require_same_currency(other)
        return abs(self.amount - other.amount) <= _to_decimal(epsilon)

    # =========================================================================
    # INSPECTION
    # =========================================================================

    def to_minor_units(self) -> int:
        return int(self.amount.scaleb(self.currency.minor_units))

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def format(self) -> str:
        """Human-readable amount, e.g. 'NT$1,024.00' or '-$5.00'."""
        sign = "-" if self.amount < 0 else ""
        digits = self.currency.minor_units
        return f"{sign}{self.currency.symbol}{abs(self.amount):,.{digits}f}"

    def __str__(self) -> str:
        return self.format()

    # Operators delegate to the named operations above

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return self.negate()

    def __abs__(self) -> "Money":
        return self.negate() if self.is_negative else self

    def __lt__(self, other: "Money") -> bool:
        return self.compare(other) < 0

    def __le__(self, other: "Money") -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: "Money") -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: "Money") -> bool:
        return self.compare(other) >= 0
