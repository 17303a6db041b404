# ===============================================================================
# CAMPAIGN MANAGEMENT TESTS
# ===============================================================================

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.referrals.campaigns import CampaignService, parse_campaign_datetime
from apps.referrals.models import ReferralCampaign
from apps.referrals.services import ReferralService
from tests.factories.core_factories import (
    create_campaign,
    create_referral,
    create_reward,
    create_user,
)


def campaign_payload(**overrides):
    payload = {
        'name': 'Spring Promo',
        'start_date': '2026-03-01T00:00:00Z',
        'end_date': '2026-06-01T00:00:00Z',
        'signup_bonus': '10',
        'tier2_percentage': 50,
        'tier3_percentage': '25.5',
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestCreateCampaign:

    def test_creates_active_campaign_with_decimals(self):
        result = CampaignService().create_campaign(campaign_payload(first_tx_bonus=5.1))

        assert result.is_ok()
        campaign = ReferralCampaign.objects.get(pk=result.unwrap().pk)
        assert campaign.is_active is True
        assert campaign.signup_bonus == Decimal('10')
        assert campaign.first_tx_bonus == Decimal('5.1')
        assert campaign.tier3_percentage == Decimal('25.5')
        assert campaign.end_date > campaign.start_date

    def test_name_is_trimmed(self):
        campaign = CampaignService().create_campaign(campaign_payload(name='  Summer  ')).unwrap()

        assert campaign.name == 'Summer'

    @pytest.mark.parametrize(('overrides', 'error'), [
        ({'name': '   '}, 'Campaign name is required'),
        ({'start_date': None}, 'Start date is required'),
        ({'start_date': 'next tuesday'}, 'Invalid start date'),
        ({'end_date': 'soon'}, 'Invalid end date'),
        ({'end_date': '2026-03-01T00:00:00Z'}, 'End date must be after start date'),
        ({'tier2_percentage': '100.01'}, 'Tier 2 percentage must be between 0 and 100'),
        ({'tier3_percentage': -1}, 'Tier 3 percentage must be between 0 and 100'),
        ({'signup_bonus': '0'}, 'Signup bonus must be greater than 0'),
        ({'first_tx_bonus': '-5'}, 'First transaction bonus must be greater than 0'),
        ({'signup_bonus': '0.000000001'}, 'Signup bonus must be greater than 0'),
        ({'signup_bonus': '1e30'}, 'Signup bonus is too large'),
        ({'first_tx_min_amount': '1000000000000'}, 'First tx min amount is too large'),
        ({'max_referrals_per_user': -1}, 'Invalid max referrals per user'),
        ({'max_referrals_per_user': 'many'}, 'Invalid max referrals per user'),
        ({'max_referrals_per_user': 2.5}, 'Invalid max referrals per user'),
    ])
    def test_validation_errors(self, overrides, error):
        result = CampaignService().create_campaign(campaign_payload(**overrides))

        assert result.is_err()
        assert result.unwrap_err() == error
        assert ReferralCampaign.objects.count() == 0

    def test_boundary_percentages_accepted(self):
        result = CampaignService().create_campaign(campaign_payload(tier2_percentage=0, tier3_percentage=100))

        assert result.is_ok()

    def test_amounts_at_storage_limits_accepted(self):
        result = CampaignService().create_campaign(
            campaign_payload(signup_bonus='999999999999.5', first_tx_bonus='0.123456789', max_referrals_per_user='25')
        )

        campaign = ReferralCampaign.objects.get(pk=result.unwrap().pk)
        assert campaign.signup_bonus == Decimal('999999999999.5')
        assert campaign.first_tx_bonus == Decimal('0.12345678')
        assert campaign.max_referrals_per_user == 25

    def test_open_ended_campaign(self):
        campaign = CampaignService().create_campaign(campaign_payload(end_date=None)).unwrap()

        assert campaign.end_date is None


@pytest.mark.django_db
class TestUpdateCampaign:

    def test_partial_update_keeps_other_fields(self):
        campaign = create_campaign()

        updated = CampaignService().update_campaign(campaign.pk, {'signup_bonus': '12.5'}).unwrap()

        assert updated.signup_bonus == Decimal('12.5')
        assert updated.tier2_percentage == campaign.tier2_percentage
        assert updated.name == campaign.name

    def test_unknown_campaign(self):
        assert CampaignService().update_campaign(uuid.uuid4(), {}).unwrap_err() == 'Campaign not found'

    def test_empty_name_rejected(self):
        campaign = create_campaign()

        assert CampaignService().update_campaign(campaign.pk, {'name': ''}).unwrap_err() == 'Campaign name cannot be empty'

    def test_end_date_checked_against_stored_start(self):
        campaign = create_campaign()
        before_start = (campaign.start_date - timedelta(days=1)).isoformat()

        result = CampaignService().update_campaign(campaign.pk, {'end_date': before_start})

        assert result.unwrap_err() == 'End date must be after start date'

    def test_clearing_end_date(self):
        campaign = create_campaign(end_date=timezone.now() + timedelta(days=30))

        updated = CampaignService().update_campaign(campaign.pk, {'end_date': None}).unwrap()

        assert updated.end_date is None

    def test_percentage_validated(self):
        campaign = create_campaign()

        result = CampaignService().update_campaign(campaign.pk, {'tier2_percentage': '150'})

        assert result.unwrap_err() == 'Tier 2 percentage must be between 0 and 100'

    def test_oversized_amount_rejected(self):
        campaign = create_campaign()

        result = CampaignService().update_campaign(campaign.pk, {'max_reward_per_user': '1e15'})

        assert result.unwrap_err() == 'Max reward per user is too large'
        campaign.refresh_from_db()
        assert campaign.max_reward_per_user is None


@pytest.mark.django_db
class TestListAndGetCampaigns:

    def test_get_campaign(self):
        campaign = create_campaign()

        assert CampaignService().get_campaign(campaign.pk).unwrap() == campaign
        assert CampaignService().get_campaign('garbage').unwrap_err() == 'Campaign not found'

    def test_filters(self):
        now = timezone.now()
        running = create_campaign(name='running')
        future = create_campaign(name='future', start_date=now + timedelta(days=10))
        ended = create_campaign(name='ended', start_date=now - timedelta(days=30), end_date=now - timedelta(days=5))
        paused = create_campaign(name='paused', is_active=False)
        service = CampaignService()

        assert {c.name for c in service.list_campaigns()} == {'running', 'future', 'ended', 'paused'}
        assert {c.name for c in service.list_campaigns(is_active=False)} == {paused.name}
        assert future not in service.list_campaigns(start_date=now)
        assert ended not in service.list_campaigns(end_date=now)
        assert running in service.list_campaigns(is_active=True, start_date=now, end_date=now)

    def test_newest_first(self):
        first = create_campaign(name='first')
        second = create_campaign(name='second')
        ReferralCampaign.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(hours=1))

        assert [c.name for c in CampaignService().list_campaigns()][:2] == [second.name, first.name]


@pytest.mark.django_db
class TestActiveCampaignSelection:

    def test_newest_active_campaign_wins(self):
        older = create_campaign(name='older')
        newer = create_campaign(name='newer')
        ReferralCampaign.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(days=1))

        assert CampaignService().get_active_campaign() == newer
        assert ReferralService().get_active_campaign() == newer

    def test_window_boundaries(self):
        now = timezone.now()
        campaign = create_campaign(start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))
        service = CampaignService()

        assert service.get_active_campaign(at=now) == campaign
        assert service.get_active_campaign(at=now + timedelta(days=1)) == campaign
        assert service.get_active_campaign(at=now + timedelta(days=2)) is None
        assert service.get_active_campaign(at=now - timedelta(days=2)) is None

    def test_inactive_campaign_never_selected(self):
        create_campaign(is_active=False)

        assert CampaignService().get_active_campaign() is None


@pytest.mark.django_db
class TestDeleteCampaign:

    def test_soft_delete_deactivates(self):
        campaign = create_campaign(start_date=timezone.now() + timedelta(days=1))

        assert CampaignService().delete_campaign(campaign.pk).unwrap() is True

        campaign.refresh_from_db()
        assert campaign.is_active is False

    def test_hard_delete_removes_row(self):
        campaign = create_campaign(start_date=timezone.now() + timedelta(days=1))

        CampaignService().delete_campaign(campaign.pk, hard_delete=True)

        assert not ReferralCampaign.objects.filter(pk=campaign.pk).exists()

    def test_active_campaign_with_referrals_is_protected(self):
        campaign = create_campaign()
        create_referral(create_user(), create_user())

        result = CampaignService().delete_campaign(campaign.pk, hard_delete=True)

        assert result.unwrap_err() == 'Cannot delete active campaign with existing referrals. Deactivate it first.'
        assert ReferralCampaign.objects.filter(pk=campaign.pk, is_active=True).exists()

    def test_inactive_campaign_with_referrals_can_be_deleted(self):
        campaign = create_campaign(is_active=False)
        create_referral(create_user(), create_user())

        assert CampaignService().delete_campaign(campaign.pk, hard_delete=True).is_ok()

    def test_unknown_campaign(self):
        assert CampaignService().delete_campaign(uuid.uuid4()).unwrap_err() == 'Campaign not found'


@pytest.mark.django_db
class TestCampaignStats:

    def test_counts_referrals_in_window(self):
        campaign = create_campaign()
        referrer = create_user()
        done = create_referral(referrer, create_user(), first_transaction_at=timezone.now())
        create_referral(referrer, create_user(), is_active=False)
        create_reward(done, amount=Decimal('10'), status='PAID')
        create_reward(done, amount=Decimal('2.5'), status='PAID')
        create_reward(done, amount=Decimal('99'), status='PENDING')

        stats = CampaignService().get_campaign_stats(campaign.pk).unwrap()

        assert stats['campaign_id'] == campaign.pk
        assert stats['total_referrals'] == 2
        assert stats['active_referrals'] == 1
        assert stats['first_tx_completed'] == 1
        assert stats['total_rewards'] == 3
        assert stats['total_rewards_value'] == Decimal('12.5')
        assert stats['campaign'] == campaign

    def test_referrals_outside_window_excluded(self):
        future = create_campaign(start_date=timezone.now() + timedelta(days=1))
        create_referral(create_user(), create_user())

        stats = CampaignService().get_campaign_stats(future.pk).unwrap()

        assert stats['total_referrals'] == 0
        assert stats['total_rewards_value'] == Decimal('0')


class TestParseCampaignDatetime:

    def test_accepts_dates_and_iso_strings(self):
        assert parse_campaign_datetime('2026-03-01').day == 1
        assert parse_campaign_datetime('2026-03-01T10:30:00+02:00').hour == 10
        assert timezone.is_aware(parse_campaign_datetime('2026-03-01T10:30:00'))

    def test_rejects_garbage(self):
        assert parse_campaign_datetime('yesterday') is None
        assert parse_campaign_datetime('2026-13-45') is None
        assert parse_campaign_datetime(None) is None
