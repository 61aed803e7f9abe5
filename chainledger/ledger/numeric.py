"""Decimal helpers shared by both ledgers."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

ZERO = Decimal("0")
WEI_DECIMALS = 18


def to_decimal(value: Any) -> Decimal:
    """Convert ints, strings and floats to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def from_base_units(raw: Any, decimals: int = WEI_DECIMALS) -> Decimal:
    """Scale an integer base-unit amount (e.g. wei) down to whole token units."""
    return Decimal(int(raw)).scaleb(-decimals)


def clamp_non_negative(value: Decimal) -> Decimal:
    """Absorb rounding underflow: anything below zero becomes zero."""
    return value if value > ZERO else ZERO


def format_decimal(value: Decimal) -> str:
    """Plain (non-exponent) string form used for serialization and logs."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
