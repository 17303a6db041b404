"""
Billing services for the referral platform.
Account resolution and the ledger credit primitive used by reward payouts.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction

from apps.common.constants import ZERO_AMOUNT

from .models import Account, LedgerEntry

if TYPE_CHECKING:
    from apps.users.models import User

logger = logging.getLogger(__name__)


class LedgerService:
    """Balance changes always go through here so every change leaves a ledger line."""

    @staticmethod
    def get_or_create_account(user: User | int, currency: str, using: str = DEFAULT_DB_ALIAS) -> Account:
        """Resolve the user's account in ``currency``, creating it with a zero balance."""
        user_id = user if isinstance(user, int) else user.pk
        manager = Account.objects.using(using)

        account = manager.filter(user_id=user_id, currency=currency).first()
        if account is not None:
            return account

        try:
            with transaction.atomic(using=using):
                account = manager.create(user_id=user_id, currency=currency, balance=ZERO_AMOUNT)
        except IntegrityError:
            # Another request opened the same (user, currency) account first
            return manager.get(user_id=user_id, currency=currency)

        logger.info(f"🏦 [Ledger] Opened {currency} account {account.id} for user {user_id}")
        return account

    @staticmethod
    def credit(
        account: Account,
        amount: Decimal,
        description: str,
        reference_id: str = "",
        using: str = DEFAULT_DB_ALIAS,
    ) -> LedgerEntry:
        """
        Add ``amount`` to the account balance and append the matching ledger line.

        Must run inside the caller's atomic block; the account row stays locked
        until that block commits.
        """
        if amount <= ZERO_AMOUNT:
            raise ValueError(f"Credit amount must be positive, got {amount}")

        locked = Account.objects.using(using).select_for_update().get(pk=account.pk)
        new_balance = locked.balance + amount
        locked.balance = new_balance
        locked.save(using=using, update_fields=['balance', 'updated_at'])

        entry = LedgerEntry.objects.using(using).create(
            account=locked,
            amount=amount,
            balance_after=new_balance,
            entry_type='CREDIT',
            description=description,
            reference_id=reference_id,
        )

        account.balance = new_balance
        logger.info(
            f"💰 [Ledger] Credited {amount} {locked.currency} to account {locked.id}, balance {new_balance}"
        )
        return entry
