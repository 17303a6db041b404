# ===============================================================================
# PYTEST CONFIGURATION FOR THE REFERRAL PLATFORM
# ===============================================================================
"""
Global test configuration.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- tests/api/ covers the HTTP surface end to end
- Factories live in tests/factories/

Run specific app tests: pytest tests/referrals/
"""

import os

import django


def pytest_configure():
    """Configure Django settings for pytest"""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.test')

    django.setup()

# ===============================================================================
# PYTEST FIXTURES
# ===============================================================================

import pytest  # noqa: E402
from rest_framework.test import APIClient  # noqa: E402

from tests.factories.core_factories import create_campaign, create_user  # noqa: E402


@pytest.fixture
def user():
    """Create test user"""
    return create_user(email='test@example.com')


@pytest.fixture
def admin_user():
    """Create staff user for admin endpoints"""
    return create_user(email='admin@example.com', is_staff=True, is_superuser=True)


@pytest.fixture
def campaign():
    """Active campaign with a 10 USD signup bonus cascading 50% / 25%"""
    return create_campaign()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user):
    """API client logged in with test user"""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client
