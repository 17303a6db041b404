# Initial schema for the referral program

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

TIER_CHOICES = [('TIER_1', 'Tier 1 (direct)'), ('TIER_2', 'Tier 2'), ('TIER_3', 'Tier 3')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('billing', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ReferralCampaign',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('signup_bonus', models.DecimalField(blank=True, decimal_places=8, max_digits=20, null=True)),
                ('signup_currency', models.CharField(blank=True, max_length=10)),
                ('first_tx_bonus', models.DecimalField(blank=True, decimal_places=8, max_digits=20, null=True)),
                ('first_tx_currency', models.CharField(blank=True, max_length=10)),
                ('first_tx_min_amount', models.DecimalField(blank=True, decimal_places=8, max_digits=20, null=True)),
                ('tier2_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('tier3_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('min_kyc_level', models.CharField(blank=True, max_length=20)),
                ('eligible_countries', models.JSONField(blank=True, default=list)),
                ('excluded_countries', models.JSONField(blank=True, default=list)),
                ('max_referrals_per_user', models.PositiveIntegerField(blank=True, null=True)),
                ('max_reward_per_user', models.DecimalField(blank=True, decimal_places=8, max_digits=20, null=True)),
                ('max_reward_per_campaign', models.DecimalField(blank=True, decimal_places=8, max_digits=20, null=True)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Referral Campaign',
                'verbose_name_plural': 'Referral Campaigns',
                'db_table': 'referral_campaigns',
                'ordering': ('-created_at',),
                'indexes': [
                    models.Index(fields=['is_active', 'start_date', 'end_date'], name='referral_ca_is_acti_5e2b7d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReferralCode',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(help_text='Uppercase hex referral code', max_length=20, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('usage_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='referral_code', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Referral Code',
                'verbose_name_plural': 'Referral Codes',
                'db_table': 'referral_codes',
                'ordering': ('-created_at',),
                'indexes': [
                    models.Index(fields=['is_active'], name='referral_co_is_acti_9a41c0_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Referral',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tier', models.CharField(choices=TIER_CHOICES, default='TIER_1', max_length=10)),
                ('is_active', models.BooleanField(default=True)),
                ('first_transaction_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('referrer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='referrals_made', to=settings.AUTH_USER_MODEL)),
                ('referred', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='referred_by', to=settings.AUTH_USER_MODEL)),
                ('referral_code', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='referrals', to='referrals.referralcode')),
            ],
            options={
                'verbose_name': 'Referral',
                'verbose_name_plural': 'Referrals',
                'db_table': 'referrals',
                'ordering': ('-created_at',),
                'indexes': [
                    models.Index(fields=['referrer', 'is_active'], name='referrals_referre_3c9d12_idx'),
                    models.Index(fields=['created_at'], name='referrals_created_7b0e44_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReferralReward',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('reward_type', models.CharField(choices=[('SIGNUP_BONUS', 'Signup Bonus'), ('FIRST_TRANSACTION', 'First Transaction')], max_length=30)),
                ('amount', models.DecimalField(decimal_places=8, max_digits=20)),
                ('currency', models.CharField(max_length=10)),
                ('tier', models.CharField(choices=TIER_CHOICES, default='TIER_1', max_length=10)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('PAID', 'Paid')], default='PENDING', max_length=20)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='referral_rewards', to='billing.account')),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_referral_rewards', to=settings.AUTH_USER_MODEL)),
                ('referral', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rewards', to='referrals.referral')),
                ('user', models.ForeignKey(help_text='Beneficiary of the reward', on_delete=django.db.models.deletion.CASCADE, related_name='referral_rewards', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Referral Reward',
                'verbose_name_plural': 'Referral Rewards',
                'db_table': 'referral_rewards',
                'ordering': ('-created_at',),
                'indexes': [
                    models.Index(fields=['user', 'status'], name='referral_re_user_id_2d8f61_idx'),
                    models.Index(fields=['status', '-created_at'], name='referral_re_status_b41a7e_idx'),
                ],
            },
        ),
    ]
