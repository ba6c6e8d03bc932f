"""
Pytest configuration for Django tests with SQLite.

Uses SQLite in-memory database for fast testing - no Docker required.
"""

import os

# Set test settings module before importing Django
os.environ["DJANGO_SETTINGS_MODULE"] = "threadline.settings_test"

import pytest  # noqa: E402


@pytest.fixture
def organization(db):
    """Create a test team."""
    from organizations.models import Organization

    return Organization.objects.create(name="Test Organization", slug="test-org")


@pytest.fixture
def user(db, organization):
    """Create a test user who is a member of the test team."""
    from django.contrib.auth import get_user_model

    user = get_user_model().objects.create_user(
        username="testuser",
        email="testuser@example.com",
        password="testpass123",
    )
    organization.add_user(user)
    return user


@pytest.fixture
def outsider(db):
    """Create a user who belongs to no team."""
    from django.contrib.auth import get_user_model

    return get_user_model().objects.create_user(
        username="outsider",
        email="outsider@example.com",
        password="testpass123",
    )


@pytest.fixture
def project(db, organization, user):
    """Create a test project with Telegram and WhatsApp configured."""
    from projects.models import Project

    return Project.objects.create(
        organization=organization,
        name="Test Project",
        created_by=user,
        telegram_bot_username="test_bot",
        telegram_bot_token="123456:TEST-TOKEN",
        telegram_webhook_secret="tg-secret-abc",
        whatsapp_phone_number_id="1098765",
        whatsapp_access_token="wa-access-token",
        whatsapp_app_secret="wa-app-secret",
        whatsapp_verify_token="wa-verify-token",
        whatsapp_number="+15550001111",
    )
