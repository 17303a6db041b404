"""
Referral background tasks.
Transaction-completed hook run through django-q so payments never wait on referral processing.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django_q.tasks import async_task

from apps.common.types import CurrencyCode, MoneyInput

from .services import ReferralService

logger = logging.getLogger(__name__)


def on_transaction_completed(user_id: Any, amount: MoneyInput, currency: CurrencyCode) -> None:
    """
    Grant the first-transaction referral bonus if the user qualifies.

    Errors are logged and never propagated to the payment flow.
    """
    logger.info(f"[Task:transaction_completed] Checking first transaction for user {user_id}")

    try:
        rewarded = ReferralService().process_first_transaction(user_id, amount, currency)
    except Exception:
        logger.exception(f"🔥 [Task:transaction_completed] Referral processing failed for user {user_id}")
        return

    if rewarded:
        logger.info(f"✅ [Task:transaction_completed] First transaction bonus created for user {user_id}")


def queue_transaction_completed(user_id: Any, amount: MoneyInput, currency: CurrencyCode) -> str | None:
    """
    Hand the transaction-completed hook to the task queue.

    Returns the django-q task id, or None when the hook ran inline or could not be queued.
    """
    if not getattr(settings, "REFERRAL_ASYNC_HOOKS", True):
        on_transaction_completed(user_id, amount, currency)
        return None

    try:
        task_id = async_task(
            "apps.referrals.tasks.on_transaction_completed",
            user_id,
            str(amount),
            currency,
            task_name=f"referral_first_tx_{user_id}",
        )
    except Exception:
        logger.exception(f"🔥 [Queue] Could not queue transaction hook for user {user_id}")
        return None

    logger.info(f"[Queue] Transaction hook queued: user_id={user_id}, task_id={task_id}")
    return task_id
