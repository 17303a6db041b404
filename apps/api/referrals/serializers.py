# ===============================================================================
# REFERRAL API SERIALIZERS 🎁
# ===============================================================================

from typing import Any, ClassVar

from rest_framework import serializers

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS
from apps.referrals.models import ReferralCampaign, ReferralReward

# ===============================================================================
# USER STATS SERIALIZERS 📊
# ===============================================================================


class ReferredUserSerializer(serializers.Serializer):
    """Public profile of a referred user, as shown to their referrer"""

    id = serializers.IntegerField()
    email = serializers.EmailField()
    name = serializers.CharField()
    kyc_status = serializers.CharField()
    created_at = serializers.DateTimeField()


class ReferralEntrySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    referred_user = ReferredUserSerializer()
    joined_at = serializers.DateTimeField()
    kyc_status = serializers.CharField()
    first_transaction_at = serializers.DateTimeField(allow_null=True)


class ReferralStatsSerializer(serializers.Serializer):
    referral_code = serializers.CharField(allow_null=True)
    total_referrals = serializers.IntegerField()
    active_referrals = serializers.IntegerField()
    total_rewards = serializers.IntegerField()
    pending_rewards = serializers.IntegerField()
    total_earned = serializers.DecimalField(max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    referrals = ReferralEntrySerializer(many=True)


# ===============================================================================
# CAMPAIGN SERIALIZERS 📣
# ===============================================================================


class ReferralCampaignSerializer(serializers.ModelSerializer):
    """Read-only campaign representation; writes go through CampaignService"""

    class Meta:
        model = ReferralCampaign
        fields: ClassVar = [
            "id",
            "name",
            "description",
            "is_active",
            "signup_bonus",
            "signup_currency",
            "first_tx_bonus",
            "first_tx_currency",
            "first_tx_min_amount",
            "tier2_percentage",
            "tier3_percentage",
            "min_kyc_level",
            "eligible_countries",
            "excluded_countries",
            "max_referrals_per_user",
            "max_reward_per_user",
            "max_reward_per_campaign",
            "start_date",
            "end_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CampaignStatsSerializer(serializers.Serializer):
    campaign_id = serializers.UUIDField()
    total_referrals = serializers.IntegerField()
    active_referrals = serializers.IntegerField()
    first_tx_completed = serializers.IntegerField()
    total_rewards = serializers.IntegerField()
    total_rewards_value = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES
    )
    campaign = ReferralCampaignSerializer()


# ===============================================================================
# REWARD SERIALIZERS 💸
# ===============================================================================


class ReferralRewardSerializer(serializers.ModelSerializer):
    referral_id = serializers.UUIDField(read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    account_id = serializers.UUIDField(read_only=True, allow_null=True)
    approved_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ReferralReward
        fields: ClassVar = [
            "id",
            "referral_id",
            "user_id",
            "reward_type",
            "amount",
            "currency",
            "tier",
            "status",
            "description",
            "account_id",
            "approved_by_id",
            "approved_at",
            "paid_at",
            "created_at",
        ]


def serialize_validation(valid: bool, error: Any = None) -> dict[str, Any]:
    """``{valid}`` plus ``error`` only when the code is not usable"""
    payload: dict[str, Any] = {"valid": valid}
    if not valid:
        payload["error"] = error
    return payload
