"""
Common utilities for the referral platform
Shared helper functions for money handling.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS, ZERO_AMOUNT
from apps.common.types import MoneyInput

MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)

# ===============================================================================
# MONEY UTILITIES
# ===============================================================================


def to_decimal(value: MoneyInput | None) -> Decimal | None:
    """
    Convert an amount from an integration seam to Decimal.

    Floats go through str() first so 0.1 becomes Decimal("0.1") rather
    than its binary expansion. Returns None for missing or unparsable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None



def quantize_money(value: Decimal) -> Decimal:
    """Truncate an amount to the stored money precision (8 decimal places)."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)


def money_fits(value: Decimal) -> bool:
    """True when the integer part fits the stored money column."""
    return value == ZERO_AMOUNT or value.adjusted() < MONEY_MAX_DIGITS - MONEY_DECIMAL_PLACES
