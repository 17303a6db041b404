"""
Billing models for the referral platform
Per-currency user accounts and the append-only ledger that records every balance change.
"""

import uuid
from decimal import Decimal
from typing import Any, ClassVar

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.common.constants import (
    CURRENCY_CODE_MAX_LENGTH,
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
)

# ===============================================================================
# ACCOUNTS
# ===============================================================================


class Account(models.Model):
    """Balance holder for one user in one currency"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='accounts')
    currency = models.CharField(max_length=CURRENCY_CODE_MAX_LENGTH)
    balance = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        default=Decimal('0'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_accounts'
        verbose_name = _('Account')
        verbose_name_plural = _('Accounts')
        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(fields=['user', 'currency'], name='unique_account_user_currency'),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} {self.currency} {self.balance}"


# ===============================================================================
# LEDGER
# ===============================================================================


class LedgerEntry(models.Model):
    """
    Append-only record of a balance change.
    Rows are written once by LedgerService and never updated or deleted.
    """

    ENTRY_TYPE_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ('CREDIT', _('Credit')),
        ('DEBIT', _('Debit')),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='ledger_entries')

    # Signed amount (positive = credit, negative = debit)
    amount = models.DecimalField(max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    balance_after = models.DecimalField(max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    entry_type = models.CharField(max_length=10, choices=ENTRY_TYPE_CHOICES)
    description = models.CharField(max_length=255)
    reference_id = models.CharField(max_length=64, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_ledger_entries'
        verbose_name = _('Ledger Entry')
        verbose_name_plural = _('Ledger Entries')
        ordering: ClassVar[tuple[str, ...]] = ('-created_at',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['account', '-created_at']),
        )

    def __str__(self) -> str:
        return f"{self.entry_type} {self.amount} -> {self.balance_after} ({self.description})"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ValidationError(_('Ledger entries cannot be modified'))
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> tuple[int, dict[str, int]]:
        raise ValidationError(_('Ledger entries cannot be deleted'))
