#!/usr/bin/env python3
"""
Currency Conversion and Handling Utilities

Currency handling for the upbudget system. Arithmetic on money always happens
on integer minor units (cents); Decimal is only used at the edges, for budget
amounts typed by the user and for display.

Currency Systems:
- Up API money objects carry `valueInBaseUnits`: 100 base units = $1.00
- Budget targets and spent totals are Decimal major units: Decimal("12.50")
- Display uses dollar strings: "$12.50"

Key Principles:
- Never use floating-point arithmetic for currency calculations
- Convert base units to major units by dividing by 100 (AUD assumption, see
  MINOR_UNITS_PER_MAJOR)
- Round only once, when converting a user-entered Decimal back to cents
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# AUD has two decimal places. Currencies with a different exponent are not
# handled; the Up API only reports AUD balances.
MINOR_UNITS_PER_MAJOR = 100

_CENT = Decimal("0.01")


def cents_to_amount_str(cents: int) -> str:
    """
    Convert cents to a plain decimal string using pure integer arithmetic.

    Args:
        cents: Amount in cents

    Returns:
        Decimal string with exactly two fraction digits

    Example:
        cents_to_amount_str(4599) -> "45.99"
        cents_to_amount_str(-5) -> "-0.05"
    """
    is_negative = cents < 0
    abs_cents = abs(int(cents))

    major = abs_cents // MINOR_UNITS_PER_MAJOR
    remainder = abs_cents % MINOR_UNITS_PER_MAJOR

    if is_negative:
        return f"-{major}.{remainder:02d}"
    return f"{major}.{remainder:02d}"


def cents_to_decimal(cents: int) -> Decimal:
    """
    Convert cents to a Decimal amount in major units.

    Example:
        cents_to_decimal(-32000) -> Decimal("-320.00")
    """
    return (Decimal(int(cents)) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)


def decimal_to_cents(amount: Decimal) -> int:
    """
    Convert a Decimal major-unit amount to integer cents.

    Sub-cent fractions are rounded half-up.

    Example:
        decimal_to_cents(Decimal("12.505")) -> 1251
    """
    return int((amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quantize_amount(amount: Decimal) -> Decimal:
    """Round a Decimal amount to whole cents."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_amount(text: str) -> Decimal:
    """
    Parse a user-entered amount into a Decimal.

    A comma is treated as the decimal separator ("12,50" -> 12.50), matching
    locales that write amounts that way. A leading "$" and surrounding
    whitespace are ignored.

    Args:
        text: Amount as typed by the user

    Returns:
        Decimal amount rounded to whole cents

    Raises:
        ValueError: If the text is not a finite number
    """
    clean = text.strip().replace("$", "").replace(",", ".").strip()
    if not clean:
        raise ValueError("Amount is empty")

    try:
        amount = Decimal(clean)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {text!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {text!r}")

    return quantize_amount(amount)


def format_cents(cents: int) -> str:
    """Format cents as dollar string with $ prefix."""
    return f"${cents_to_amount_str(cents)}"


def format_amount(amount: Decimal) -> str:
    """Format a Decimal major-unit amount as dollar string with $ prefix."""
    return format_cents(decimal_to_cents(amount))
