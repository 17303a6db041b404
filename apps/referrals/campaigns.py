"""
Referral campaign management.
Admin-side creation, editing and reporting of the campaigns that fund referral rewards.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.common.constants import MAX_PERCENTAGE, ZERO_AMOUNT
from apps.common.types import Err, Ok, Result
from apps.common.utils import money_fits, quantize_money, to_decimal

from .models import Referral, ReferralCampaign, ReferralReward

logger = logging.getLogger(__name__)

DECIMAL_FIELDS = (
    "signup_bonus",
    "first_tx_bonus",
    "first_tx_min_amount",
    "tier2_percentage",
    "tier3_percentage",
    "max_reward_per_user",
    "max_reward_per_campaign",
)
TEXT_FIELDS = ("description", "signup_currency", "first_tx_currency", "min_kyc_level")
LIST_FIELDS = ("eligible_countries", "excluded_countries")

PERCENTAGE_LABELS = {"tier2_percentage": "Tier 2", "tier3_percentage": "Tier 3"}
POSITIVE_BONUS_LABELS = {"signup_bonus": "Signup bonus", "first_tx_bonus": "First transaction bonus"}


def parse_campaign_datetime(value: Any) -> datetime | None:
    """Accept datetimes, dates and ISO strings; naive values use the current timezone."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            return None
        if parsed is None:
            return None
    else:
        return None

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _parse_limit(value: Any) -> Result[int | None, str]:
    """Blank means unlimited; otherwise a non-negative whole number."""
    if value is None or value == "":
        return Ok(None)
    if isinstance(value, bool):
        return Err("Invalid max referrals per user")
    try:
        limit = int(str(value).strip())
    except ValueError:
        return Err("Invalid max referrals per user")
    if limit < 0:
        return Err("Invalid max referrals per user")
    return Ok(limit)


class CampaignService:
    """Campaign CRUD and reporting. Expected failures come back as ``Err(message)``."""

    def __init__(self, using: str = DEFAULT_DB_ALIAS, clock: Callable[[], datetime] = timezone.now) -> None:
        self.using = using
        self.clock = clock

    @property
    def campaigns(self) -> Any:
        return ReferralCampaign.objects.using(self.using)

    def _find(self, campaign_id: Any) -> ReferralCampaign | None:
        try:
            pk = uuid.UUID(str(campaign_id))
        except ValueError:
            return None
        return self.campaigns.filter(pk=pk).first()

    # ---------------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------------

    def _clean_values(self, data: Mapping[str, Any]) -> Result[dict[str, Any], str]:
        """Parse and check the optional fields shared by create and update."""
        cleaned: dict[str, Any] = {}

        for field in DECIMAL_FIELDS:
            if field not in data:
                continue
            raw = data[field]
            if raw is None or raw == "":
                cleaned[field] = None
                continue
            value = to_decimal(raw)
            if value is None:
                return Err(f"Invalid {field.replace('_', ' ')}")
            if field not in PERCENTAGE_LABELS:
                if not money_fits(value):
                    return Err(f"{field.replace('_', ' ').capitalize()} is too large")
                value = quantize_money(value)
            cleaned[field] = value

        for field, label in PERCENTAGE_LABELS.items():
            value = cleaned.get(field)
            if value is not None and not (ZERO_AMOUNT <= value <= MAX_PERCENTAGE):
                return Err(f"{label} percentage must be between 0 and 100")

        for field, label in POSITIVE_BONUS_LABELS.items():
            value = cleaned.get(field)
            if value is not None and value <= ZERO_AMOUNT:
                return Err(f"{label} must be greater than 0")

        for field in TEXT_FIELDS:
            if field in data:
                cleaned[field] = (data[field] or "").strip()

        for field in LIST_FIELDS:
            if field in data:
                cleaned[field] = list(data[field] or [])

        if "max_referrals_per_user" in data:
            limit = _parse_limit(data["max_referrals_per_user"])
            if limit.is_err():
                return limit
            cleaned["max_referrals_per_user"] = limit.unwrap()

        if "is_active" in data:
            cleaned["is_active"] = bool(data["is_active"])

        return Ok(cleaned)

    # ---------------------------------------------------------------------------
    # CRUD
    # ---------------------------------------------------------------------------

    def create_campaign(self, data: Mapping[str, Any]) -> Result[ReferralCampaign, str]:
        name = data.get("name")
        if not name or not str(name).strip():
            return Err("Campaign name is required")

        if not data.get("start_date"):
            return Err("Start date is required")

        start_date = parse_campaign_datetime(data["start_date"])
        if start_date is None:
            return Err("Invalid start date")

        end_date = None
        if data.get("end_date"):
            end_date = parse_campaign_datetime(data["end_date"])
            if end_date is None:
                return Err("Invalid end date")
            if end_date <= start_date:
                return Err("End date must be after start date")

        cleaned = self._clean_values(data)
        if cleaned.is_err():
            return cleaned

        values = cleaned.unwrap()
        values.setdefault("is_active", True)
        campaign = self.campaigns.create(
            name=str(name).strip(),
            start_date=start_date,
            end_date=end_date,
            **values,
        )
        logger.info(f"📣 [Referral] Created campaign {campaign.id} '{campaign.name}'")
        return Ok(campaign)

    def update_campaign(self, campaign_id: Any, data: Mapping[str, Any]) -> Result[ReferralCampaign, str]:
        campaign = self._find(campaign_id)
        if campaign is None:
            return Err("Campaign not found")

        if "name" in data and not str(data["name"] or "").strip():
            return Err("Campaign name cannot be empty")

        start_date = campaign.start_date
        if data.get("start_date"):
            start_date = parse_campaign_datetime(data["start_date"])
            if start_date is None:
                return Err("Invalid start date")

        end_date = campaign.end_date
        if "end_date" in data:
            end_date = None
            if data["end_date"]:
                end_date = parse_campaign_datetime(data["end_date"])
                if end_date is None:
                    return Err("Invalid end date")

        if end_date is not None and end_date <= start_date:
            return Err("End date must be after start date")

        cleaned = self._clean_values(data)
        if cleaned.is_err():
            return cleaned

        values = cleaned.unwrap()
        if "name" in data:
            values["name"] = str(data["name"]).strip()
        values["start_date"] = start_date
        values["end_date"] = end_date

        for field, value in values.items():
            setattr(campaign, field, value)
        campaign.save(using=self.using)

        logger.info(f"📝 [Referral] Updated campaign {campaign.id}: {sorted(values)}")
        return Ok(campaign)

    def get_campaign(self, campaign_id: Any) -> Result[ReferralCampaign, str]:
        campaign = self._find(campaign_id)
        if campaign is None:
            return Err("Campaign not found")
        return Ok(campaign)

    def list_campaigns(
        self,
        is_active: bool | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[ReferralCampaign]:
        """
        Campaigns newest first.

        ``start_date`` keeps campaigns that started at or before it; ``end_date``
        keeps campaigns that are still running at it.
        """
        queryset = self.campaigns.all()
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        if start_date is not None:
            queryset = queryset.filter(start_date__lte=start_date)
        if end_date is not None:
            queryset = queryset.exclude(end_date__lt=end_date)
        return list(queryset.order_by("-created_at"))

    def _window_referrals(self, campaign: ReferralCampaign) -> Any:
        referrals = Referral.objects.using(self.using).filter(created_at__gte=campaign.start_date)
        if campaign.end_date is not None:
            referrals = referrals.filter(created_at__lte=campaign.end_date)
        return referrals

    def delete_campaign(self, campaign_id: Any, hard_delete: bool = False) -> Result[bool, str]:
        campaign = self._find(campaign_id)
        if campaign is None:
            return Err("Campaign not found")

        if campaign.is_active and self._window_referrals(campaign).exists():
            return Err("Cannot delete active campaign with existing referrals. Deactivate it first.")

        with transaction.atomic(using=self.using):
            if hard_delete:
                campaign.delete(using=self.using)
            else:
                campaign.is_active = False
                campaign.save(using=self.using, update_fields=["is_active", "updated_at"])

        if hard_delete:
            logger.warning(f"🗑️ [Referral] Deleted campaign {campaign_id}")
        else:
            logger.info(f"⏸️ [Referral] Deactivated campaign {campaign_id}")

        return Ok(True)

    # ---------------------------------------------------------------------------
    # Reporting
    # ---------------------------------------------------------------------------

    def get_campaign_stats(self, campaign_id: Any) -> Result[dict[str, Any], str]:
        campaign = self._find(campaign_id)
        if campaign is None:
            return Err("Campaign not found")

        referrals = self._window_referrals(campaign)
        rewards = ReferralReward.objects.using(self.using).filter(referral__in=referrals)
        paid_total = rewards.filter(status="PAID").aggregate(total=Sum("amount"))["total"]

        return Ok(
            {
                "campaign_id": campaign.id,
                "total_referrals": referrals.count(),
                "active_referrals": referrals.filter(is_active=True).count(),
                "first_tx_completed": referrals.filter(first_transaction_at__isnull=False).count(),
                "total_rewards": rewards.count(),
                "total_rewards_value": paid_total if paid_total is not None else Decimal("0"),
                "campaign": campaign,
            }
        )

    def get_active_campaign(self, at: datetime | None = None) -> ReferralCampaign | None:
        return self.campaigns.active_at(at or self.clock()).first()
