# Overview: Conversions between API decimal amounts and stored integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import InvalidRequest


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999
MAX_PRICE = Decimal(MAX_PRICE_CENTS) / 100
CENT = Decimal("0.01")

# Line and transaction totals must fit a signed 64-bit INTEGER column
MAX_AMOUNT_CENTS = 2**63 - 1


def to_cents(value, field: str = "amount") -> int:
    """
    Convert a JSON number (or numeric string) to integer cents.

    Amounts must be non-negative, finite, and carry at most two fractional
    digits; anything that would need rounding is rejected so stored totals are
    exact sums of their lines.
    """
    if value is None or isinstance(value, bool):
        raise InvalidRequest(f"{field} must be a number")

    if isinstance(value, str):
        value = value.strip()
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidRequest(f"{field} must be a number")

    if not amount.is_finite():
        raise InvalidRequest(f"{field} must be a finite number")
    if amount < 0:
        raise InvalidRequest(f"{field} cannot be negative")
    # Bound before scaling; a huge exponent overflows the decimal context
    if amount > MAX_PRICE:
        raise InvalidRequest(f"{field} exceeds maximum allowed value")

    # quantize() instead of scaling, so tiny exponents cannot underflow to 0
    try:
        quantized = amount.quantize(CENT)
    except ArithmeticError:
        raise InvalidRequest(f"{field} cannot have more than two decimal places")
    if quantized != amount:
        raise InvalidRequest(f"{field} cannot have more than two decimal places")

    return int(quantized * 100)


def from_cents(cents: int | None) -> float | None:
    """Render stored cents as a JSON number."""
    if cents is None:
        return None
    return cents / 100
