import pytest
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.groups.models import Currency, Group, GroupMembership, GroupRole


def add_membership(group, user, role=GroupRole.MEMBER):
    """Attach a user to a group directly, bypassing the services."""
    return GroupMembership.objects.create(
        user=user,
        group=group,
        username=user.get_display_name(),
        role=role,
        joined_at=timezone.now(),
    )


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def client_for():
    """Factory returning an API client authenticated as the given user."""
    def make(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return client
    return make


@pytest.fixture
def alice(db):
    """Group owner and admin."""
    return User.objects.create_user(
        email='alice@example.com',
        password='TestPass123!',
        username='alice',
        display_name='Alice',
    )


@pytest.fixture
def bob(db):
    return User.objects.create_user(
        email='bob@example.com',
        password='TestPass123!',
        username='bob',
        display_name='Bob',
    )


@pytest.fixture
def carol(db):
    return User.objects.create_user(
        email='carol@example.com',
        password='TestPass123!',
        username='carol',
    )


@pytest.fixture
def outsider(db):
    """A user not in any group."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        username='outsider',
        display_name='Outsider',
    )


@pytest.fixture
def group(db, alice):
    """IDR group owned by alice, with her admin membership."""
    group = Group.objects.create(
        group_code='TRIP01',
        owner=alice,
        title='Bali Trip',
        description='Shared costs for the Bali trip',
        default_currency=Currency.IDR,
    )
    add_membership(group, alice, role=GroupRole.ADMIN)
    return group


@pytest.fixture
def trio_group(group, bob, carol):
    """Group with alice (admin), bob and carol, joined in that order."""
    add_membership(group, bob)
    add_membership(group, carol)
    return group


@pytest.fixture
def alice_client(client_for, alice):
    return client_for(alice)


@pytest.fixture
def bob_client(client_for, bob):
    return client_for(bob)


@pytest.fixture
def outsider_client(client_for, outsider):
    return client_for(outsider)
