# ===============================================================================
# REFERRAL API URLS 🎁
# ===============================================================================

from django.urls import path

from . import views

app_name = 'referrals'

urlpatterns = [
    # User endpoints
    path('code/', views.referral_code_api, name='code'),
    path('stats/', views.referral_stats_api, name='stats'),

    # Registration flow & public validation
    path('process/', views.process_referral_api, name='process'),
    path('validate/<str:code>/', views.validate_referral_code_api, name='validate'),

    # Admin: campaigns
    path('admin/campaigns/', views.campaign_list_api, name='campaign_list'),
    path('admin/campaigns/<uuid:campaign_id>/', views.campaign_detail_api, name='campaign_detail'),
    path('admin/campaigns/<uuid:campaign_id>/stats/', views.campaign_stats_api, name='campaign_stats'),

    # Admin: rewards
    path('admin/rewards/', views.reward_list_api, name='reward_list'),
    path('admin/rewards/<uuid:reward_id>/approve/', views.approve_reward_api, name='reward_approve'),
]
