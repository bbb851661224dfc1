"""
schemas/common.py
-----------------
Shared field types.

Money values are Decimal internally (no float drift in profit sums) and
rendered as plain JSON numbers.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import Field, PlainSerializer

Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

MONEY_MAX_DIGITS = 12
MONEY_DECIMAL_PLACES = 2

PositiveMoney = Annotated[
    Decimal,
    Field(gt=0, max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES),
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

IDENTITY_NUMBER_PATTERN = r"^\d{12}$"


def fits_money_column(value: Decimal) -> bool:
    """True when value is storable as NUMERIC(12, 2) without rounding."""
    if not value.is_finite():
        return False
    _, digits, exponent = value.normalize().as_tuple()
    decimals = max(-exponent, 0)
    whole = max(len(digits) + exponent, 0)
    return (
        decimals <= MONEY_DECIMAL_PLACES
        and whole <= MONEY_MAX_DIGITS - MONEY_DECIMAL_PLACES
    )


def mask_identity_number(value: str | None) -> str | None:
    """'123456789012' → '********9012'."""
    if not value:
        return value
    return "*" * (len(value) - 4) + value[-4:]
