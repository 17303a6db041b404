"""
Platform Constants

Centralized constants for money handling and referral program limits.
This file serves as the single source of truth for business rules that span multiple apps.
"""

from decimal import Decimal
from typing import Final

# ===============================================================================
# MONEY 💰
# ===============================================================================

# Storage precision for monetary amounts (balances, rewards, ledger lines)
MONEY_MAX_DIGITS: Final[int] = 20
MONEY_DECIMAL_PLACES: Final[int] = 8

# Storage precision for percentages (tier cascade rates)
PERCENT_MAX_DIGITS: Final[int] = 5
PERCENT_DECIMAL_PLACES: Final[int] = 2

ZERO_AMOUNT: Final[Decimal] = Decimal("0")
MAX_PERCENTAGE: Final[Decimal] = Decimal("100")

CURRENCY_CODE_MAX_LENGTH: Final[int] = 10

# ===============================================================================
# REFERRAL PROGRAM 🎁
# ===============================================================================

REFERRAL_CODE_RANDOM_BYTES: Final[int] = 4  # 4 bytes -> 8 hex characters
REFERRAL_CODE_MAX_ATTEMPTS: Final[int] = 10  # Collision retries before giving up
REFERRAL_DEFAULT_CURRENCY: Final[str] = "USD"
