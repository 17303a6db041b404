# ===============================================================================
# API APP CONFIGURATION 🛠️
# ===============================================================================

from django.apps import AppConfig


class ApiConfig(AppConfig):
    """
    Centralized REST API for the platform.

    Domain packages (currently ``referrals``) each bring their own
    serializers, views and URL patterns, mounted from ``apps.api.urls``.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.api"
    label = "platform_api"  # Unique label to avoid conflicts
    verbose_name = "Platform API"
