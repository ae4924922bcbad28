"""Fixed-point LZAR amounts.

Amounts travel as ``Decimal`` with two places and are stored as integer
cents so balance arithmetic is exact.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from lzar_wallet.errors.definitions import ErrInvalidAmount

CENT = Decimal("0.01")


def to_cents(amount: Decimal | int | str) -> int:
    """Convert a positive amount with at most two decimals into cents.

    Raises:
        WalletError: ``ErrInvalidAmount`` for zero, negative, non-finite or
            over-precise values.
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ErrInvalidAmount from None
    if not value.is_finite() or value <= 0:
        raise ErrInvalidAmount
    try:
        exact = value == value.quantize(CENT)
    except InvalidOperation:
        raise ErrInvalidAmount from None
    if not exact:
        raise ErrInvalidAmount
    return int(value * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back into a two-place ``Decimal``."""
    return (Decimal(cents) / 100).quantize(CENT)
