"""
Referral program models for the referral platform.
Codes, referral relationships, campaigns and the rewards they produce.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, ClassVar

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.constants import (
    CURRENCY_CODE_MAX_LENGTH,
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    PERCENT_DECIMAL_PLACES,
    PERCENT_MAX_DIGITS,
)

# ===============================================================================
# REFERRAL TIERS
# ===============================================================================

TIER_1 = "TIER_1"
TIER_2 = "TIER_2"
TIER_3 = "TIER_3"

TIER_CHOICES: tuple[tuple[str, Any], ...] = (
    (TIER_1, _("Tier 1 (direct)")),
    (TIER_2, _("Tier 2")),
    (TIER_3, _("Tier 3")),
)

# Ancestors above the direct referrer that can earn a share of the signup bonus
CASCADE_TIERS: tuple[str, ...] = (TIER_2, TIER_3)


# ===============================================================================
# REFERRAL CODES & RELATIONSHIPS
# ===============================================================================


class ReferralCode(models.Model):
    """
    Personal referral code. Each user owns at most one, created on first request.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral_code",
    )
    code = models.CharField(
        max_length=20,
        unique=True,
        help_text=_("Uppercase hex referral code"),
    )

    is_active = models.BooleanField(default=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    # Statistics
    usage_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "referral_codes"
        verbose_name = _("Referral Code")
        verbose_name_plural = _("Referral Codes")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["is_active"]),
        )

    def __str__(self) -> str:
        return f"{self.code} ({self.user_id})"

    def is_expired(self, now: Any = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or timezone.now())


class Referral(models.Model):
    """
    A referred user's link to the user whose code they registered with.
    The one-to-one on ``referred`` guarantees a single referrer per user.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referrals_made",
    )
    referred = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referred_by",
    )
    referral_code = models.ForeignKey(
        ReferralCode,
        on_delete=models.PROTECT,
        related_name="referrals",
    )

    tier = models.CharField(max_length=10, choices=TIER_CHOICES, default=TIER_1)
    is_active = models.BooleanField(default=True)
    first_transaction_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "referrals"
        verbose_name = _("Referral")
        verbose_name_plural = _("Referrals")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["referrer", "is_active"]),
            models.Index(fields=["created_at"]),
        )

    def __str__(self) -> str:
        return f"{self.referrer_id} -> {self.referred_id} ({self.tier})"


# ===============================================================================
# CAMPAIGNS
# ===============================================================================


class ReferralCampaignQuerySet(models.QuerySet["ReferralCampaign"]):
    def active_at(self, at: Any) -> ReferralCampaignQuerySet:
        """Campaigns switched on whose window contains ``at``, newest first."""
        return self.filter(
            Q(end_date__isnull=True) | Q(end_date__gte=at),
            is_active=True,
            start_date__lte=at,
        ).order_by("-created_at")


class ReferralCampaign(models.Model):
    """
    Reward terms for a time window. The newest active campaign covering
    the current instant decides bonuses for new referrals and first transactions.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    # Signup rewards (direct referrer, cascaded to tiers 2 and 3)
    signup_bonus = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, null=True, blank=True
    )
    signup_currency = models.CharField(max_length=CURRENCY_CODE_MAX_LENGTH, blank=True)

    # First transaction reward
    first_tx_bonus = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, null=True, blank=True
    )
    first_tx_currency = models.CharField(max_length=CURRENCY_CODE_MAX_LENGTH, blank=True)
    first_tx_min_amount = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, null=True, blank=True
    )

    # Cascade shares, as percentages of the signup bonus
    tier2_percentage = models.DecimalField(
        max_digits=PERCENT_MAX_DIGITS, decimal_places=PERCENT_DECIMAL_PLACES, null=True, blank=True
    )
    tier3_percentage = models.DecimalField(
        max_digits=PERCENT_MAX_DIGITS, decimal_places=PERCENT_DECIMAL_PLACES, null=True, blank=True
    )

    # Eligibility and limits (stored for reporting, not enforced by the engine)
    min_kyc_level = models.CharField(max_length=20, blank=True)
    eligible_countries = models.JSONField(default=list, blank=True)
    excluded_countries = models.JSONField(default=list, blank=True)
    max_referrals_per_user = models.PositiveIntegerField(null=True, blank=True)
    max_reward_per_user = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, null=True, blank=True
    )
    max_reward_per_campaign = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, null=True, blank=True
    )

    start_date = models.DateTimeField()
    end_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReferralCampaignQuerySet.as_manager()

    class Meta:
        db_table = "referral_campaigns"
        verbose_name = _("Referral Campaign")
        verbose_name_plural = _("Referral Campaigns")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["is_active", "start_date", "end_date"]),
        )

    def __str__(self) -> str:
        return self.name

    def tier_percentage(self, tier: str) -> Decimal | None:
        if tier == TIER_2:
            return self.tier2_percentage
        if tier == TIER_3:
            return self.tier3_percentage
        return None


# ===============================================================================
# REWARDS
# ===============================================================================


class ReferralReward(models.Model):
    """
    A bonus owed to a user. Moves forward only: PENDING -> APPROVED -> PAID.
    """

    REWARD_TYPE_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("SIGNUP_BONUS", _("Signup Bonus")),
        ("FIRST_TRANSACTION", _("First Transaction")),
    )

    STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("PENDING", _("Pending")),
        ("APPROVED", _("Approved")),
        ("PAID", _("Paid")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    referral = models.ForeignKey(Referral, on_delete=models.PROTECT, related_name="rewards")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral_rewards",
        help_text=_("Beneficiary of the reward"),
    )

    reward_type = models.CharField(max_length=30, choices=REWARD_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    currency = models.CharField(max_length=CURRENCY_CODE_MAX_LENGTH)
    tier = models.CharField(max_length=10, choices=TIER_CHOICES, default=TIER_1)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="PENDING")
    description = models.CharField(max_length=255, blank=True)

    # Payout
    account = models.ForeignKey(
        "billing.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="referral_rewards",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_referral_rewards",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "referral_rewards"
        verbose_name = _("Referral Reward")
        verbose_name_plural = _("Referral Rewards")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["user", "status"]),
            models.Index(fields=["status", "-created_at"]),
        )

    def __str__(self) -> str:
        return f"{self.reward_type} {self.amount} {self.currency} -> {self.user_id} ({self.status})"
