"""Token unit helpers.

Amounts are carried as integers in attoFIL everywhere in the package and are
only converted to FIL for display.
"""

from __future__ import annotations

from decimal import Decimal

ATTO_PER_FIL: int = 10**18


def atto_to_fil(amount: int) -> Decimal:
    # String construction is exact; arithmetic would round to context precision.
    return Decimal(f"{amount}e-18")


def fil_amount(amount: int) -> str:
    """Render an attoFIL amount in FIL without trailing zeros or unit."""
    value = atto_to_fil(amount)
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_fil(amount: int) -> str:
    return f"{fil_amount(amount)} FIL"
