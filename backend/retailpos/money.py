# Overview: Fixed-point money helpers shared by models and services.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """
    Convert an int/float/str/Decimal amount to a 2-place Decimal.

    Floats go through str() so 99.99 stays 99.99 instead of its binary expansion.
    Raises ValueError for booleans and unparseable input.
    """
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError("amount must be a number")
    else:
        raise ValueError("amount must be a number")

    if not amount.is_finite():
        raise ValueError("amount must be a finite number")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_json(value: Decimal | None) -> float | None:
    """Render a stored amount as a JSON number."""
    if value is None:
        return None
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
