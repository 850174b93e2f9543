"""
Shared column helpers for monetary values
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from sqlalchemy import Column, Numeric
from sqlmodel import Field

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce to a two-decimal Decimal (None counts as zero)"""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_field(default: Optional[Decimal] = ZERO, nullable: bool = False, description: str = "") -> Any:
    """Numeric(12, 2) column; each call builds its own Column"""
    return Field(
        default=default,
        description=description,
        sa_column=Column(Numeric(12, 2), nullable=nullable),
    )


def rate_field(description: str = "") -> Any:
    """Nullable Numeric(12, 6) column for percentages and exchange rates"""
    return Field(
        default=None,
        description=description,
        sa_column=Column(Numeric(12, 6), nullable=True),
    )
