# ===============================================================================
# REFERRAL ATTRIBUTION & MULTI-TIER CASCADE TESTS
# ===============================================================================

from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import IntegrityError
from django.test import override_settings

from apps.referrals.models import TIER_1, TIER_2, TIER_3, Referral, ReferralCode, ReferralReward
from apps.referrals.services import ReferralService
from tests.factories.core_factories import (
    create_campaign,
    create_referral,
    create_referral_code,
    create_user,
)


def register_with_code(referrer, referred, service=None):
    """Issue the referrer's code and run attribution for ``referred``."""
    service = service or ReferralService()
    code = service.generate_referral_code(referrer.pk)
    return service.process_referral(referred.pk, code)


@pytest.mark.django_db
class TestProcessReferral:
    """Attribution of a newly registered user to a referrer"""

    def test_successful_referral_links_users(self, campaign):
        referrer, referred = create_user(), create_user()

        result = register_with_code(referrer, referred)

        assert result.success is True
        assert result.referrer_id == referrer.pk
        assert result.error is None
        referral = Referral.objects.get(referred=referred)
        assert referral.referrer == referrer
        assert referral.tier == TIER_1
        assert referral.is_active is True
        assert referral.first_transaction_at is None

    def test_usage_count_incremented(self, campaign):
        referrer = create_user()
        code = ReferralService().generate_referral_code(referrer.pk)

        ReferralService().process_referral(create_user().pk, code)
        ReferralService().process_referral(create_user().pk, code)

        assert ReferralCode.objects.get(code=code).usage_count == 2

    def test_signup_bonus_created_for_direct_referrer(self, campaign):
        referrer, referred = create_user(), create_user()

        register_with_code(referrer, referred)

        reward = ReferralReward.objects.get(user=referrer)
        assert reward.reward_type == 'SIGNUP_BONUS'
        assert reward.amount == Decimal('10.00')
        assert reward.currency == 'USD'
        assert reward.tier == TIER_1
        assert reward.status == 'PENDING'

    def test_signup_currency_falls_back_to_default(self):
        create_campaign(signup_currency='')
        referrer, referred = create_user(), create_user()

        with override_settings(REFERRAL_DEFAULT_CURRENCY='USD'):
            register_with_code(referrer, referred)

        assert ReferralReward.objects.get(user=referrer).currency == 'USD'

    def test_no_campaign_means_no_reward_but_referral_succeeds(self):
        referrer, referred = create_user(), create_user()

        result = register_with_code(referrer, referred)

        assert result.success is True
        assert Referral.objects.filter(referred=referred).exists()
        assert ReferralReward.objects.count() == 0

    def test_campaign_without_signup_bonus_creates_no_reward(self):
        create_campaign(signup_bonus=None)
        referrer, referred = create_user(), create_user()

        assert register_with_code(referrer, referred).success is True
        assert ReferralReward.objects.count() == 0

    def test_unknown_code_rejected(self):
        result = ReferralService().process_referral(create_user().pk, 'ZZZZZZZZ')

        assert result.success is False
        assert result.error == 'Invalid referral code'

    def test_inactive_code_rejected(self):
        owner = create_user()
        create_referral_code(owner, code='0000DEAD', is_active=False)

        result = ReferralService().process_referral(create_user().pk, '0000DEAD')

        assert result.error == 'Invalid referral code'
        assert Referral.objects.count() == 0

    def test_self_referral_rejected(self, campaign):
        user = create_user()
        code = ReferralService().generate_referral_code(user.pk)

        result = ReferralService().process_referral(user.pk, code)

        assert result.success is False
        assert result.error == 'Cannot refer yourself'
        assert Referral.objects.count() == 0
        assert ReferralReward.objects.count() == 0

    def test_second_referrer_rejected(self, campaign):
        first, second, referred = create_user(), create_user(), create_user()
        register_with_code(first, referred)

        result = register_with_code(second, referred)

        assert result.success is False
        assert result.error == 'User already has a referrer'
        assert Referral.objects.get(referred=referred).referrer == first
        assert not ReferralReward.objects.filter(user=second).exists()

    def test_concurrent_insert_reported_as_existing_referrer(self, campaign):
        first, second, referred = create_user(), create_user(), create_user()
        code = ReferralService().generate_referral_code(second.pk)
        original_exists = Referral.objects.filter(referred_id=referred.pk).exists
        calls = []

        # The pre-check passes, then a concurrent request attributes the user first
        def exists_then_race():
            calls.append(1)
            if len(calls) == 1:
                create_referral(first, referred)
                return False
            return original_exists()

        with patch('django.db.models.query.QuerySet.exists', side_effect=exists_then_race):
            result = ReferralService().process_referral(referred.pk, code)

        assert result.success is False
        assert result.error == 'User already has a referrer'
        assert Referral.objects.get(referred=referred).referrer == first
        assert ReferralCode.objects.get(code=code).usage_count == 0

    def test_unexpected_error_mapped_to_generic_failure(self, campaign):
        referrer, referred = create_user(), create_user()
        code = ReferralService().generate_referral_code(referrer.pk)

        with patch.object(ReferralService, 'create_reward', side_effect=RuntimeError('db down')):
            result = ReferralService().process_referral(referred.pk, code)

        assert result.success is False
        assert result.error == 'Failed to process referral'
        # The referral insert rolled back with the failed reward
        assert not Referral.objects.filter(referred=referred).exists()
        assert ReferralCode.objects.get(code=code).usage_count == 0

    def test_unexpected_integrity_error_not_reported_as_duplicate(self, campaign):
        referrer, referred = create_user(), create_user()
        code = ReferralService().generate_referral_code(referrer.pk)

        with patch.object(ReferralService, 'create_reward', side_effect=IntegrityError('fk violation')):
            result = ReferralService().process_referral(referred.pk, code)

        assert result.error == 'Failed to process referral'


@pytest.mark.django_db
class TestMultiTierCascade:
    """Signup bonus shares for the referrer's own referrers"""

    def build_chain(self):
        """A refers B, B refers C; returns (A, B, C)"""
        a, b, c = create_user(), create_user(), create_user()
        register_with_code(a, b)
        register_with_code(b, c)
        ReferralReward.objects.all().delete()
        return a, b, c

    def test_four_level_chain_pays_three_tiers(self, campaign):
        a, b, c = self.build_chain()
        d = create_user()

        register_with_code(c, d)

        rewards = {r.user_id: r for r in ReferralReward.objects.all()}
        assert set(rewards) == {a.pk, b.pk, c.pk}
        assert rewards[c.pk].amount == Decimal('10.00')
        assert rewards[c.pk].tier == TIER_1
        assert rewards[b.pk].amount == Decimal('5.00')
        assert rewards[b.pk].tier == TIER_2
        assert rewards[a.pk].amount == Decimal('2.50')
        assert rewards[a.pk].tier == TIER_3
        assert all(r.reward_type == 'SIGNUP_BONUS' for r in rewards.values())

    def test_tier_rewards_attached_to_parent_referrals(self, campaign):
        a, b, c = self.build_chain()
        d = create_user()

        register_with_code(c, d)

        tier2 = ReferralReward.objects.get(tier=TIER_2)
        tier3 = ReferralReward.objects.get(tier=TIER_3)
        assert tier2.referral == Referral.objects.get(referred=c)
        assert tier3.referral == Referral.objects.get(referred=b)

    def test_fifth_level_ancestor_never_rewarded(self, campaign):
        a, b, c = self.build_chain()
        d, e = create_user(), create_user()
        register_with_code(c, d)
        ReferralReward.objects.all().delete()

        register_with_code(d, e)

        assert {r.user_id for r in ReferralReward.objects.all()} == {d.pk, c.pk, b.pk}
        assert not ReferralReward.objects.filter(user=a).exists()

    def test_tier_amounts_use_original_bonus_not_compounded(self):
        create_campaign(signup_bonus=Decimal('20.00'), tier2_percentage=Decimal('10'), tier3_percentage=Decimal('10'))
        a, b, c = self.build_chain()

        register_with_code(c, create_user())

        assert ReferralReward.objects.get(tier=TIER_2).amount == Decimal('2.00')
        assert ReferralReward.objects.get(tier=TIER_3).amount == Decimal('2.00')

    def test_missing_tier2_percentage_stops_cascade(self):
        create_campaign(tier2_percentage=None)
        a, b, c = self.build_chain()

        register_with_code(c, create_user())

        assert list(ReferralReward.objects.values_list('tier', flat=True)) == [TIER_1]

    def test_zero_tier2_percentage_stops_before_tier3(self):
        create_campaign(tier2_percentage=Decimal('0'))
        a, b, c = self.build_chain()

        register_with_code(c, create_user())

        assert not ReferralReward.objects.filter(tier__in=[TIER_2, TIER_3]).exists()

    def test_missing_tier3_percentage_pays_only_tier2(self):
        create_campaign(tier3_percentage=None)
        a, b, c = self.build_chain()

        register_with_code(c, create_user())

        assert sorted(ReferralReward.objects.values_list('tier', flat=True)) == [TIER_1, TIER_2]

    def test_inactive_parent_referral_stops_cascade(self, campaign):
        a, b, c = self.build_chain()
        Referral.objects.filter(referred=c).update(is_active=False)

        register_with_code(c, create_user())

        assert list(ReferralReward.objects.values_list('tier', flat=True)) == [TIER_1]

    def test_cascade_runs_without_direct_bonus_but_pays_nothing(self):
        create_campaign(signup_bonus=None)
        a, b, c = self.build_chain()

        register_with_code(c, create_user())

        assert ReferralReward.objects.count() == 0

    def test_share_below_stored_precision_creates_no_reward(self):
        create_campaign(signup_bonus=Decimal('0.00000001'), tier2_percentage=Decimal('10'))
        a, b, c = self.build_chain()

        register_with_code(c, create_user())

        assert list(ReferralReward.objects.values_list('tier', flat=True)) == [TIER_1]

    def test_tier_share_truncated_to_stored_precision_stays_payable(self):
        create_campaign(signup_bonus=Decimal('0.00000003'), tier2_percentage=Decimal('50'))
        a, b, c = self.build_chain()
        admin = create_user(is_staff=True)

        register_with_code(c, create_user())

        tier2 = ReferralReward.objects.get(tier=TIER_2)
        assert tier2.amount == Decimal('0.00000001')
        result = ReferralService().approve_and_pay_reward(tier2.pk, admin)
        assert result.success is True

    def test_direct_call_returns_created_rewards(self, campaign):
        a, b, c = self.build_chain()
        referral = Referral.objects.get(referred=c)

        created = ReferralService().process_multi_tier_referral(referral, campaign)

        assert [r.tier for r in created] == [TIER_2]
        assert created[0].user_id == a.pk
