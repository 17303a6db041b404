# ===============================================================================
# API MAIN URLS 🚀
# ===============================================================================
#
# Central API routing for all platform domains.
#
# URL Structure:
#   /api/referrals/  → Referral codes, stats, attribution and campaign admin
#

from django.urls import include, path

from .referrals import urls as referral_urls

app_name = 'api'

urlpatterns = [
    # Referral program APIs
    path('referrals/', include((referral_urls, 'referrals'))),
]
