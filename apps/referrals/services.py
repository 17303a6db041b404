"""
Referral services for the referral platform.
Attribution, the tier cascade, first-transaction bonuses and reward payout.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.db.models import F, Sum
from django.utils import timezone

from apps.billing.services import LedgerService
from apps.common.constants import (
    MAX_PERCENTAGE,
    REFERRAL_CODE_MAX_ATTEMPTS,
    REFERRAL_CODE_RANDOM_BYTES,
    REFERRAL_DEFAULT_CURRENCY,
    ZERO_AMOUNT,
)
from apps.common.types import CurrencyCode, MoneyInput, ReferralCodeString
from apps.common.utils import quantize_money, to_decimal

from .exceptions import ExhaustedRetries
from .models import (
    CASCADE_TIERS,
    TIER_1,
    Referral,
    ReferralCampaign,
    ReferralCode,
    ReferralReward,
)

if TYPE_CHECKING:
    from apps.users.models import User

logger = logging.getLogger(__name__)


# ===============================================================================
# Data Classes for Results
# ===============================================================================


@dataclass
class ReferralResult:
    """Outcome of attaching a new user to a referrer."""

    success: bool
    referrer_id: Any = None
    error: str | None = None


@dataclass
class PayoutResult:
    success: bool
    error: str | None = None


@dataclass
class CodeValidationResult:
    valid: bool
    error: str | None = None


def generate_code() -> ReferralCodeString:
    """8 uppercase hex characters from 4 cryptographically random bytes."""
    return secrets.token_hex(REFERRAL_CODE_RANDOM_BYTES).upper()


def default_currency() -> CurrencyCode:
    return getattr(settings, "REFERRAL_DEFAULT_CURRENCY", REFERRAL_DEFAULT_CURRENCY)


# ===============================================================================
# Referral Service
# ===============================================================================


class ReferralService:
    """
    The referral reward engine.

    Constructed per use with the database alias, clock and code generator it
    should rely on; tests substitute any of them.
    """

    def __init__(
        self,
        using: str = DEFAULT_DB_ALIAS,
        clock: Callable[[], datetime] = timezone.now,
        code_factory: Callable[[], str] = generate_code,
        max_code_attempts: int = REFERRAL_CODE_MAX_ATTEMPTS,
    ) -> None:
        self.using = using
        self.clock = clock
        self.code_factory = code_factory
        self.max_code_attempts = max_code_attempts

    # ---------------------------------------------------------------------------
    # Codes
    # ---------------------------------------------------------------------------

    def generate_referral_code(self, user_id: Any) -> ReferralCodeString:
        """
        Return the user's referral code, issuing one on first request.

        Raises:
            ExhaustedRetries: no unused code was found within the attempt limit.
        """
        codes = ReferralCode.objects.using(self.using)

        existing = codes.filter(user_id=user_id).values_list("code", flat=True).first()
        if existing:
            return existing

        for attempt in range(1, self.max_code_attempts + 1):
            code = self.code_factory()
            if codes.filter(code=code).exists():
                logger.debug(f"🔁 [Referral] Code collision on attempt {attempt}")
                continue

            try:
                with transaction.atomic(using=self.using):
                    codes.create(user_id=user_id, code=code)
            except IntegrityError:
                # Either the code was taken meanwhile or a concurrent request issued the user's code
                stored = codes.filter(user_id=user_id).values_list("code", flat=True).first()
                if stored:
                    return stored
                logger.debug(f"🔁 [Referral] Code taken during insert on attempt {attempt}")
                continue

            logger.info(f"🎟️ [Referral] Issued code {code} to user {user_id}")
            return code

        logger.error(f"🔥 [Referral] Could not issue a code to user {user_id} after {self.max_code_attempts} attempts")
        raise ExhaustedRetries(self.max_code_attempts)

    def validate_referral_code(self, code: ReferralCodeString) -> CodeValidationResult:
        record = ReferralCode.objects.using(self.using).filter(code=code).first()

        if record is None:
            return CodeValidationResult(valid=False, error="Referral code not found")
        if not record.is_active:
            return CodeValidationResult(valid=False, error="Referral code is inactive")
        if record.is_expired(self.clock()):
            return CodeValidationResult(valid=False, error="Referral code has expired")

        return CodeValidationResult(valid=True)

    # ---------------------------------------------------------------------------
    # Attribution
    # ---------------------------------------------------------------------------

    def get_active_campaign(self) -> ReferralCampaign | None:
        return ReferralCampaign.objects.using(self.using).active_at(self.clock()).first()

    def process_referral(self, referred_user_id: Any, referral_code: ReferralCodeString) -> ReferralResult:
        """
        Attach a newly registered user to the owner of ``referral_code``.

        Never raises; failures come back as ``ReferralResult.error``.
        """
        try:
            code = ReferralCode.objects.using(self.using).filter(code=referral_code).first()
            if code is None or not code.is_active:
                return ReferralResult(success=False, error="Invalid referral code")

            referrer_id = code.user_id
            if str(referrer_id) == str(referred_user_id):
                return ReferralResult(success=False, error="Cannot refer yourself")

            if Referral.objects.using(self.using).filter(referred_id=referred_user_id).exists():
                return ReferralResult(success=False, error="User already has a referrer")

            with transaction.atomic(using=self.using):
                referral = Referral.objects.using(self.using).create(
                    referrer_id=referrer_id,
                    referred_id=referred_user_id,
                    referral_code=code,
                    tier=TIER_1,
                )
                ReferralCode.objects.using(self.using).filter(pk=code.pk).update(
                    usage_count=F("usage_count") + 1
                )

                campaign = self.get_active_campaign()
                if campaign is not None and campaign.signup_bonus:
                    self.create_reward(
                        referral=referral,
                        user_id=referrer_id,
                        reward_type="SIGNUP_BONUS",
                        amount=campaign.signup_bonus,
                        currency=campaign.signup_currency or default_currency(),
                        tier=TIER_1,
                        description=f"Signup bonus for referring {referred_user_id}",
                    )

                self.process_multi_tier_referral(referral, campaign)

        except IntegrityError:
            if Referral.objects.using(self.using).filter(referred_id=referred_user_id).exists():
                logger.warning(f"⚠️ [Referral] User {referred_user_id} was attributed concurrently")
                return ReferralResult(success=False, error="User already has a referrer")
            logger.exception(f"🔥 [Referral] Integrity error attributing user {referred_user_id}")
            return ReferralResult(success=False, error="Failed to process referral")
        except Exception:
            logger.exception(f"🔥 [Referral] Failed to process referral for user {referred_user_id}")
            return ReferralResult(success=False, error="Failed to process referral")

        logger.info(f"✅ [Referral] User {referred_user_id} referred by {referrer_id}")
        return ReferralResult(success=True, referrer_id=referrer_id)

    def process_multi_tier_referral(
        self, referral: Referral, campaign: ReferralCampaign | None = None
    ) -> list[ReferralReward]:
        """
        Share the signup bonus with the referrer's own referrers, two levels up.

        Each tier earns its percentage of the campaign's signup bonus. The walk
        stops at the first level without a parent, without a percentage or
        without a positive reward.
        """
        if campaign is None:
            campaign = self.get_active_campaign()

        created: list[ReferralReward] = []
        beneficiary_id = referral.referrer_id

        for tier in CASCADE_TIERS:
            parent = (
                Referral.objects.using(self.using)
                .filter(referred_id=beneficiary_id, is_active=True)
                .first()
            )
            if parent is None or campaign is None:
                break

            percentage = campaign.tier_percentage(tier)
            if not percentage:
                break

            base = campaign.signup_bonus or ZERO_AMOUNT
            tier_reward = quantize_money(base * percentage / MAX_PERCENTAGE)
            if tier_reward <= ZERO_AMOUNT:
                break

            created.append(
                self.create_reward(
                    referral=parent,
                    user_id=parent.referrer_id,
                    reward_type="SIGNUP_BONUS",
                    amount=tier_reward,
                    currency=campaign.signup_currency or default_currency(),
                    tier=tier,
                    description=f"{tier} bonus for indirect referral",
                )
            )
            beneficiary_id = parent.referrer_id

        return created

    def process_first_transaction(self, user_id: Any, amount: MoneyInput, currency: CurrencyCode) -> bool:
        """
        Reward the referrer the first time the referred user transacts.

        Returns True when a reward was created.
        """
        transaction_amount = to_decimal(amount)
        if transaction_amount is None:
            logger.warning(f"⚠️ [Referral] Ignoring first transaction of user {user_id}: bad amount {amount!r}")
            return False

        with transaction.atomic(using=self.using):
            referral = (
                Referral.objects.using(self.using)
                .select_for_update()
                .filter(referred_id=user_id)
                .first()
            )
            if referral is None or referral.first_transaction_at is not None:
                return False

            campaign = self.get_active_campaign()
            if campaign is None or not campaign.first_tx_bonus:
                return False

            if campaign.first_tx_min_amount and transaction_amount < campaign.first_tx_min_amount:
                logger.debug(
                    f"[Referral] Transaction {transaction_amount} below minimum {campaign.first_tx_min_amount}"
                )
                return False

            referral.first_transaction_at = self.clock()
            referral.save(using=self.using, update_fields=["first_transaction_at"])

            self.create_reward(
                referral=referral,
                user_id=referral.referrer_id,
                reward_type="FIRST_TRANSACTION",
                amount=campaign.first_tx_bonus,
                currency=campaign.first_tx_currency or currency,
                tier=TIER_1,
                description="First transaction bonus for referral",
            )

        logger.info(f"✅ [Referral] First transaction bonus granted for user {user_id}")
        return True

    def create_reward(
        self,
        referral: Referral,
        user_id: Any,
        reward_type: str,
        amount: Decimal,
        currency: str,
        tier: str,
        description: str = "",
    ) -> ReferralReward:
        reward = ReferralReward.objects.using(self.using).create(
            referral=referral,
            user_id=user_id,
            reward_type=reward_type,
            amount=amount,
            currency=currency,
            tier=tier,
            status="PENDING",
            description=description,
        )
        logger.info(f"🎁 [Referral] {tier} {reward_type} of {amount} {currency} pending for user {user_id}")
        return reward

    # ---------------------------------------------------------------------------
    # Payout
    # ---------------------------------------------------------------------------

    def approve_and_pay_reward(self, reward_id: Any, approved_by: User | Any) -> PayoutResult:
        """
        Approve a pending reward and credit it to the beneficiary's account.

        Status changes, balance update and ledger line commit together or not at all.
        """
        try:
            reward_pk = uuid.UUID(str(reward_id))
        except ValueError:
            return PayoutResult(success=False, error="Invalid reward")

        approver_id = getattr(approved_by, "pk", approved_by)

        try:
            reward = ReferralReward.objects.using(self.using).filter(pk=reward_pk).first()
            if reward is None or reward.status != "PENDING":
                return PayoutResult(success=False, error="Invalid reward")

            account = LedgerService.get_or_create_account(reward.user_id, reward.currency, using=self.using)

            with transaction.atomic(using=self.using):
                locked = ReferralReward.objects.using(self.using).select_for_update().get(pk=reward_pk)
                if locked.status != "PENDING":
                    return PayoutResult(success=False, error="Invalid reward")

                locked.status = "APPROVED"
                locked.approved_by_id = approver_id
                locked.approved_at = self.clock()
                locked.account = account
                locked.save(using=self.using, update_fields=["status", "approved_by", "approved_at", "account"])

                LedgerService.credit(
                    account,
                    locked.amount,
                    description=locked.description or "Referral reward",
                    reference_id=str(locked.pk),
                    using=self.using,
                )

                locked.status = "PAID"
                locked.paid_at = self.clock()
                locked.save(using=self.using, update_fields=["status", "paid_at"])

        except Exception:
            logger.exception(f"🔥 [Referral] Failed to approve reward {reward_id}")
            return PayoutResult(success=False, error="Failed to approve reward")

        logger.info(f"💸 [Referral] Reward {reward_id} paid to user {locked.user_id} by {approver_id}")
        return PayoutResult(success=True)

    # ---------------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------------

    def get_user_referral_stats(self, user_id: Any) -> dict[str, Any]:
        code = ReferralCode.objects.using(self.using).filter(user_id=user_id).values_list("code", flat=True).first()

        referrals_made = Referral.objects.using(self.using).filter(referrer_id=user_id)
        active = list(referrals_made.filter(is_active=True).select_related("referred").order_by("-created_at"))

        rewards = ReferralReward.objects.using(self.using).filter(user_id=user_id)
        total_earned = rewards.filter(status="PAID").aggregate(total=Sum("amount"))["total"]

        return {
            "referral_code": code,
            "total_referrals": referrals_made.count(),
            "active_referrals": len(active),
            "total_rewards": rewards.count(),
            "pending_rewards": rewards.filter(status="PENDING").count(),
            "total_earned": total_earned if total_earned is not None else Decimal("0"),
            "referrals": [
                {
                    "id": referral.id,
                    "referred_user": referral.referred.public_profile(),
                    "joined_at": referral.created_at,
                    "kyc_status": referral.referred.kyc_status,
                    "first_transaction_at": referral.first_transaction_at,
                }
                for referral in active
            ],
        }
