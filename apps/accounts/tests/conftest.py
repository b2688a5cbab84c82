import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """A user with a display name."""
    return User.objects.create_user(
        email='dewi@example.com',
        password='Rupiah-2024!',
        username='dewi',
        display_name='Dewi Lestari',
    )


@pytest.fixture
def friend(db):
    """A user without a display name."""
    return User.objects.create_user(
        email='rudi@example.com',
        password='Rupiah-2024!',
        username='rudi',
    )


@pytest.fixture
def user_inactive(db):
    return User.objects.create_user(
        email='ghost@example.com',
        password='Rupiah-2024!',
        username='ghost',
        is_active=False,
    )


@pytest.fixture
def authenticated_client(api_client, user):
    """Return an API client carrying a JWT for `user`."""
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client
