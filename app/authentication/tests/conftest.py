"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(user, profile):
        assert profile.user == user
"""

import pytest

from authentication.models import User
from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """Create a basic active user with auto-created profile."""
    return UserFactory()


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    return User.objects.create_superuser(
        email="admin@example.com", password="AdminPass123!"
    )


@pytest.fixture
def profile(user):
    """Get the profile for the default user fixture."""
    return user.profile

