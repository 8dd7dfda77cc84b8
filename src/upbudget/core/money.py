#!/usr/bin/env python3
"""
Money Primitive Type

Immutable currency value mirroring the Up API money object. The integer
`value_in_base_units` is authoritative for arithmetic; `value` is the API's
decimal string and is only used for display.
"""

from dataclasses import dataclass
from decimal import Decimal

from .currency import cents_to_amount_str, cents_to_decimal, decimal_to_cents

DEFAULT_CURRENCY = "AUD"


@dataclass(frozen=True)
class Money:
    """
    Immutable money value in base units (cents).

    Supports both positive (income/inflows) and negative (expense/outflows) amounts.

    Examples:
        >>> expense = Money.from_base_units(-4599)
        >>> str(expense)
        '$-45.99'
        >>> expense.major_units
        Decimal('-45.99')
        >>> expense.abs().value_in_base_units
        4599
    """

    currency_code: str
    value: str
    value_in_base_units: int

    def __post_init__(self) -> None:
        if round(self.value_in_base_units) != self.value_in_base_units:
            raise ValueError(f"Base units must be a whole number: {self.value_in_base_units!r}")

    @classmethod
    def from_base_units(cls, base_units: int, currency_code: str = DEFAULT_CURRENCY) -> "Money":
        """Create Money from base units, deriving the display string."""
        return cls(
            currency_code=currency_code,
            value=cents_to_amount_str(base_units),
            value_in_base_units=int(base_units),
        )

    @classmethod
    def from_major_units(cls, amount: Decimal, currency_code: str = DEFAULT_CURRENCY) -> "Money":
        """Create Money from a Decimal amount in major units."""
        return cls.from_base_units(decimal_to_cents(amount), currency_code)

    @property
    def major_units(self) -> Decimal:
        """Amount in major units, computed from base units divided by 100."""
        return cents_to_decimal(self.value_in_base_units)

    @property
    def is_expense(self) -> bool:
        """Check if this is an outflow (negative amount)."""
        return self.value_in_base_units < 0

    def abs(self) -> "Money":
        """Return the absolute value, keeping the currency."""
        return Money.from_base_units(abs(self.value_in_base_units), self.currency_code)

    def __add__(self, other: "Money") -> "Money":
        """Add two Money objects of the same currency."""
        if other.currency_code != self.currency_code:
            raise ValueError(f"Cannot add {other.currency_code} to {self.currency_code}")
        return Money.from_base_units(self.value_in_base_units + other.value_in_base_units, self.currency_code)

    def __lt__(self, other: "Money") -> bool:
        return self.value_in_base_units < other.value_in_base_units

    def __le__(self, other: "Money") -> bool:
        return self.value_in_base_units <= other.value_in_base_units

    def __gt__(self, other: "Money") -> bool:
        return self.value_in_base_units > other.value_in_base_units

    def __ge__(self, other: "Money") -> bool:
        return self.value_in_base_units >= other.value_in_base_units

    def __str__(self) -> str:
        """Format as dollar string."""
        return f"${cents_to_amount_str(self.value_in_base_units)}"
