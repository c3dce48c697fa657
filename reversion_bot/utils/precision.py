"""Decimal conversion and lot-step rounding."""

from __future__ import annotations
from decimal import Decimal
from typing import Union

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert to Decimal through the string form, so 0.1 becomes Decimal("0.1")
    rather than the binary float expansion.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value).strip())


def round_quantity(qty: Decimal, step: Decimal) -> Decimal:
    """Round down to a multiple of step; never rounds up. Non-positive qty -> 0."""
    if qty <= 0:
        return Decimal(0)
    return qty - qty % step


def bps(value: Number) -> Decimal:
    """Basis points as a fraction (25 -> 0.0025)."""
    return to_decimal(value) / Decimal(10000)
