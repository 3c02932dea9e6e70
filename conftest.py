"""
Pytest configuration and shared fixtures for the Bastion project.

This module provides reusable fixtures for testing the shift models, the
workflow engine and the API endpoints. Fixtures are designed to work with
pytest-django.
"""

import pytest
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from rest_framework.test import APIClient


User = get_user_model()


# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture
def user(db):
    """Create and return a standard test user (the dispatcher)."""
    return User.objects.create_user(
        username="dispatcher",
        password="testpass123",
        email="dispatcher@example.com",
    )


@pytest.fixture
def admin_user(db):
    """Create and return an admin/superuser."""
    return User.objects.create_superuser(
        username="admin",
        password="adminpass123",
        email="admin@example.com",
    )


# =============================================================================
# CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def api_client():
    """Provide a DRF API test client."""
    return APIClient()


@pytest.fixture
def authenticated_api_client(api_client, user):
    """Provide an API client authenticated with a bearer token."""
    from apps.api.models import ApiToken

    token_obj, raw_token = ApiToken.issue(user=user, label="Test Token")
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_token}")
    return api_client


# =============================================================================
# MODEL FIXTURES
# =============================================================================


@pytest.fixture
def shift(db):
    """An unassigned shift starting tomorrow."""
    from apps.shifts.models import Shift

    starts_at = timezone.now() + timedelta(days=1)
    return Shift.objects.create(
        title="Night patrol",
        client_name="Harbour Logistics",
        site_name="Gate 4",
        starts_at=starts_at,
        ends_at=starts_at + timedelta(hours=8),
    )


@pytest.fixture
def assigned_shift(db):
    """A shift with a guard that has already started."""
    from apps.shifts.models import Shift

    starts_at = timezone.now() - timedelta(hours=1)
    return Shift.objects.create(
        title="Lobby watch",
        status=Shift.Status.ASSIGNED,
        assigned_guard_id="guard-7",
        starts_at=starts_at,
        ends_at=starts_at + timedelta(hours=8),
    )


@pytest.fixture
def unassigned_alert(db, shift):
    """An open ``unassigned_24h`` alert on ``shift``."""
    from apps.shifts.models import UrgencyAlert

    return UrgencyAlert.objects.create(
        shift=shift,
        alert_type="unassigned_24h",
        priority="high",
        message="Shift starts within 24 hours without a guard",
    )


@pytest.fixture
def shift_template(db):
    from apps.shifts.models import ShiftTemplate

    return ShiftTemplate.objects.create(
        name="night-gate",
        title="Night gate cover",
        client_name="Harbour Logistics",
        site_name="Gate 4",
        priority=2,
    )


# =============================================================================
# TOKEN FIXTURES
# =============================================================================


@pytest.fixture
def access_token(db, user):
    """Create and return an ApiToken and its raw value as a tuple."""
    from apps.api.models import ApiToken

    return ApiToken.issue(user=user, label="Test Token")


@pytest.fixture
def expired_token(db, user):
    """Create and return an already-expired token."""
    from apps.api.models import ApiToken

    token_obj, raw_token = ApiToken.issue(user=user, label="Expired Token", ttl_hours=1)
    token_obj.expires_at = timezone.now() - timedelta(hours=1)
    token_obj.save()
    return token_obj, raw_token


@pytest.fixture
def revoked_token(db, user):
    """Create and return a revoked token."""
    from apps.api.models import ApiToken

    token_obj, raw_token = ApiToken.issue(user=user, label="Revoked Token")
    token_obj.revoke()
    return token_obj, raw_token


# =============================================================================
# UTILITY FIXTURES
# =============================================================================


@pytest.fixture
def fixed_clock():
    """
    A clock for the workflow engine that always returns the same instant.

    Usage:
        def test_something(fixed_clock):
            engine = build_workflow_engine(clock=fixed_clock)
    """
    instant = timezone.now().replace(microsecond=0)
    return lambda: instant
