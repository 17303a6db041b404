"""
URL configuration for the referral platform
All functionality is exposed through the JSON API.
"""

from django.urls import include, path

# ===============================================================================
# MAIN URL PATTERNS
# ===============================================================================

urlpatterns = [
    # API endpoints (referrals, campaign administration)
    path("api/", include("apps.api.urls")),
]
