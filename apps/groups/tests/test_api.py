import pytest
from django.urls import reverse
from rest_framework import status

from apps.accounts.models import User
from apps.groups.models import Debt, DebtStatus, Group, GroupMembership, GroupRole
from apps.groups.services import add_comment, add_expense, generate_invite_code
from apps.groups.tests.conftest import add_membership


def detail_url(name, group, **kwargs):
    return reverse(f'groups:{name}', kwargs={'pk': group.id, **kwargs})


def three_way_payload(payer, users, amount='300.00', share='100.00', **extra):
    payload = {
        'description': 'Villa',
        'amount': amount,
        'paid_by': str(payer.id),
        'split_between': [{'user_id': str(user.id), 'amount': share} for user in users],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def funded_group(trio_group, alice, bob, carol):
    """Trio group where alice paid 300 split evenly: bob and carol each owe 100."""
    add_expense(
        group_id=trio_group.id,
        description='Villa',
        amount='300',
        paid_by_id=alice.id,
        split_between=[
            {'user_id': alice.id, 'amount': '100'},
            {'user_id': bob.id, 'amount': '100'},
            {'user_id': carol.id, 'amount': '100'},
        ],
    )
    return trio_group


# =============================================================================
# Group CRUD Tests
# =============================================================================

@pytest.mark.django_db
class TestGroupList:
    """Tests for GET /api/groups/"""

    def test_list_groups_returns_user_groups(self, alice_client, group):
        """List returns only groups where user is a member."""
        response = alice_client.get(reverse('groups:group-list'))

        assert response.status_code == status.HTTP_200_OK
        assert 'results' in response.data
        assert len(response.data['results']) == 1
        assert response.data['results'][0]['title'] == group.title
        assert response.data['results'][0]['member_count'] == 1

    def test_list_groups_excludes_non_member_groups(self, outsider_client, group):
        response = outsider_client.get(reverse('groups:group-list'))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['results']) == 0

    def test_list_groups_unauthenticated(self, api_client):
        response = api_client.get(reverse('groups:group-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_my_groups(self, bob_client, trio_group):
        response = bob_client.get(reverse('groups:my-groups'))

        assert response.status_code == status.HTTP_200_OK
        assert [g['id'] for g in response.data] == [str(trio_group.id)]


@pytest.mark.django_db
class TestGroupCreate:
    """Tests for POST /api/groups/"""

    def test_create_group(self, alice_client, alice):
        response = alice_client.post(reverse('groups:group-list'), {
            'title': 'Ski Week',
            'description': 'Chalet and lift passes',
            'default_currency': 'EUR',
            'max_members': 8,
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['title'] == 'Ski Week'
        assert response.data['default_currency'] == 'EUR'
        assert response.data['user_role'] == GroupRole.ADMIN
        assert len(response.data['group_code']) == 6

        group = Group.objects.get(title='Ski Week')
        assert group.owner == alice
        assert group.max_members == 8
        assert group.is_admin(alice)

    def test_create_group_defaults(self, alice_client):
        response = alice_client.post(reverse('groups:group-list'), {'title': 'Defaults'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['default_currency'] == 'IDR'
        assert response.data['max_members'] == 50
        assert response.data['auto_simplify_debts'] is True

    @pytest.mark.parametrize('data', [
        {'title': ''},
        {'title': 'Crowd', 'max_members': 1},
        {'title': 'Moon', 'default_currency': 'XYZ'},
    ])
    def test_create_group_invalid(self, alice_client, data):
        response = alice_client.post(reverse('groups:group-list'), data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_group_unauthenticated(self, api_client):
        response = api_client.post(reverse('groups:group-list'), {'title': 'Nope'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestGroupRetrieve:
    """Tests for GET /api/groups/{id}/"""

    def test_retrieve_group(self, bob_client, funded_group, alice, bob, carol):
        response = bob_client.get(detail_url('group-detail', funded_group))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user_role'] == GroupRole.MEMBER
        assert [m['username'] for m in response.data['members']] == ['Alice', 'Bob', 'carol']
        assert len(response.data['debts']) == 2
        assert response.data['debts'][0]['from_user'] == {'user_id': str(bob.id), 'username': 'Bob'}
        assert response.data['debts'][0]['to_user'] == {'user_id': str(alice.id), 'username': 'Alice'}
        assert response.data['total_expenses_by_currency'] == {'IDR': '300.00'}
        assert response.data['outstanding_debts_by_currency'] == {'IDR': '200.00'}

    def test_retrieve_group_non_member(self, outsider_client, group):
        """Non-members get 404 (group existence is not leaked)."""
        response = outsider_client.get(detail_url('group-detail', group))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_retrieve_group_removed_member(self, client_for, trio_group, carol):
        GroupMembership.objects.filter(group=trio_group, user=carol).update(is_active=False)

        response = client_for(carol).get(detail_url('group-detail', trio_group))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestGroupUpdate:
    """Tests for PATCH /api/groups/{id}/"""

    def test_update_group(self, alice_client, group):
        response = alice_client.patch(detail_url('group-detail', group), {
            'title': 'Bali & Lombok',
            'allow_multiple_currencies': False,
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.data['title'] == 'Bali & Lombok'
        assert response.data['allow_multiple_currencies'] is False

    def test_update_group_non_admin(self, bob_client, trio_group):
        response = bob_client.patch(detail_url('group-detail', trio_group), {'title': 'Hacked'})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        trio_group.refresh_from_db()
        assert trio_group.title == 'Bali Trip'

    def test_update_group_max_members_below_count(self, alice_client, trio_group):
        response = alice_client.patch(detail_url('group-detail', trio_group), {'max_members': 2})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_group_setting'
        assert response.data['details']['field'] == 'max_members'


@pytest.mark.django_db
class TestGroupDelete:
    """Tests for DELETE /api/groups/{id}/"""

    def test_delete_group(self, alice_client, trio_group):
        response = alice_client.delete(detail_url('group-detail', trio_group))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Group.objects.filter(id=trio_group.id).exists()

    def test_delete_group_with_pending_debts(self, alice_client, funded_group):
        response = alice_client.delete(detail_url('group-detail', funded_group))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'outstanding_debts'
        assert Group.objects.filter(id=funded_group.id).exists()

    def test_delete_group_non_admin(self, bob_client, trio_group):
        response = bob_client.delete(detail_url('group-detail', trio_group))

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestArchive:
    """Tests for POST /api/groups/{id}/archive/"""

    def test_archive_group(self, alice_client, group):
        response = alice_client.post(detail_url('group-archive', group))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_archived'] is True

    def test_archived_group_still_reachable(self, alice_client, group):
        alice_client.post(detail_url('group-archive', group))

        assert alice_client.get(detail_url('group-detail', group)).status_code == status.HTTP_200_OK
        assert alice_client.get(reverse('groups:group-list')).data['results'] == []

    def test_archive_group_non_admin(self, bob_client, trio_group):
        response = bob_client.post(detail_url('group-archive', trio_group))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Membership Tests
# =============================================================================

@pytest.mark.django_db
class TestJoin:
    """Tests for POST /api/groups/join/ and /api/groups/join-invite/"""

    def test_join_with_group_code(self, bob_client, group, bob):
        response = bob_client.post(reverse('groups:group-join'), {'group_code': 'trip01'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == str(group.id)
        assert group.has_member(bob)

    def test_join_unknown_code(self, bob_client, group):
        response = bob_client.post(reverse('groups:group-join'), {'group_code': 'XXXXXX'})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'group_not_found'

    def test_join_already_member(self, alice_client, group):
        response = alice_client.post(reverse('groups:group-join'), {'group_code': group.group_code})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'already_member'

    def test_join_full_group(self, bob_client, group):
        Group.objects.filter(id=group.id).update(max_members=2)
        filler = User.objects.create_user(email='filler@example.com', password='TestPass123!', username='filler')
        add_membership(group, filler)

        response = bob_client.post(reverse('groups:group-join'), {'group_code': group.group_code})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'capacity_exceeded'

    def test_join_with_invite_code(self, bob_client, group, bob):
        group = generate_invite_code(group_id=group.id)

        response = bob_client.post(reverse('groups:group-join-invite'), {'invite_code': group.invite_code})

        assert response.status_code == status.HTTP_200_OK
        assert group.has_member(bob)

    def test_join_with_invalid_invite_code(self, bob_client, group):
        response = bob_client.post(reverse('groups:group-join-invite'), {'invite_code': 'WRONGCODE1'})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'invalid_invite_code'


@pytest.mark.django_db
class TestMembers:
    """Tests for member listing, removal and friends."""

    def test_list_members(self, bob_client, trio_group, alice, bob, carol):
        response = bob_client.get(detail_url('group-members', trio_group))

        assert response.status_code == status.HTTP_200_OK
        assert [m['user_id'] for m in response.data] == [str(alice.id), str(bob.id), str(carol.id)]
        assert response.data[0]['role'] == GroupRole.ADMIN

    def test_admin_removes_member(self, alice_client, trio_group, carol):
        response = alice_client.post(
            detail_url('group-remove-member', trio_group),
            {'user_id': str(carol.id)},
        )

        assert response.status_code == status.HTTP_200_OK
        assert not trio_group.has_member(carol)
        assert str(carol.id) not in [m['user_id'] for m in response.data['members']]

    def test_member_leaves(self, bob_client, trio_group, bob):
        response = bob_client.post(
            detail_url('group-remove-member', trio_group),
            {'user_id': str(bob.id)},
        )

        assert response.status_code == status.HTTP_200_OK
        assert not trio_group.has_member(bob)

    def test_member_cannot_remove_others(self, bob_client, trio_group, carol):
        response = bob_client.post(
            detail_url('group-remove-member', trio_group),
            {'user_id': str(carol.id)},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert trio_group.has_member(carol)

    def test_remove_member_with_pending_debt(self, alice_client, funded_group, carol):
        response = alice_client.post(
            detail_url('group-remove-member', funded_group),
            {'user_id': str(carol.id)},
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'outstanding_debt'

    def test_remove_non_member(self, alice_client, group, outsider):
        response = alice_client.post(
            detail_url('group-remove-member', group),
            {'user_id': str(outsider.id)},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'not_a_member'

    def test_add_friends(self, alice_client, group, alice, bob):
        alice.friends.add(bob)

        response = alice_client.post(
            detail_url('group-add-friends', group),
            {'usernames': ['bob', 'stranger']},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['added_friends'] == ['bob']
        assert response.data['errors'] == ['User stranger not found in your friends list']
        assert response.data['message'] == 'Added 1 friends to group'
        assert group.has_member(bob)

    def test_generate_invite(self, alice_client, group):
        response = alice_client.post(detail_url('group-generate-invite', group), {'expiration_hours': 48})

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['invite_code']) == 10
        assert response.data['expires_at'] is not None
        group.refresh_from_db()
        assert group.invite_code == response.data['invite_code']

    def test_generate_invite_non_admin(self, bob_client, trio_group):
        response = bob_client.post(detail_url('group-generate-invite', trio_group))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Ledger Tests
# =============================================================================

@pytest.mark.django_db
class TestExpenses:
    """Tests for /api/groups/{id}/expenses/"""

    def test_add_expense(self, alice_client, trio_group, alice, bob, carol):
        response = alice_client.post(
            detail_url('group-expenses', trio_group),
            three_way_payload(alice, [alice, bob, carol], category='accommodation'),
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert [(d['from_user']['username'], d['amount']) for d in response.data['debts']] == [
            ('Bob', '100.00'),
            ('carol', '100.00'),
        ]

    def test_add_expense_payer_defaults_to_caller(self, bob_client, trio_group, alice, bob, carol):
        payload = three_way_payload(bob, [alice, bob, carol], amount='90.00', share='30.00')
        del payload['paid_by']

        response = bob_client.post(detail_url('group-expenses', trio_group), payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert {d['to_user']['user_id'] for d in response.data['debts']} == {str(bob.id)}

    def test_add_expense_split_mismatch(self, alice_client, trio_group, alice, bob, carol):
        payload = three_way_payload(alice, [alice, bob, carol], share='98.33')

        response = alice_client.post(detail_url('group-expenses', trio_group), payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'split_mismatch'
        assert not Debt.objects.exists()

    def test_add_expense_outsider_in_split(self, alice_client, trio_group, alice, outsider):
        payload = three_way_payload(alice, [alice, outsider], amount='200.00')

        response = alice_client.post(detail_url('group-expenses', trio_group), payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_split_participant'

    def test_add_expense_non_member(self, outsider_client, trio_group, alice, bob):
        payload = three_way_payload(alice, [alice, bob], amount='200.00')

        response = outsider_client.post(detail_url('group-expenses', trio_group), payload, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_add_expense_missing_split(self, alice_client, trio_group, alice):
        payload = three_way_payload(alice, [], amount='10.00')

        response = alice_client.post(detail_url('group-expenses', trio_group), payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_expenses(self, bob_client, funded_group, alice):
        response = bob_client.get(detail_url('group-expenses', funded_group))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        expense = response.data[0]
        assert expense['amount'] == '300.00'
        assert expense['paid_by'] == str(alice.id)
        assert expense['paid_by_username'] == 'Alice'
        assert [s['amount'] for s in expense['split_between']] == ['100.00', '100.00', '100.00']


@pytest.mark.django_db
class TestDebts:
    """Tests for debts, balances and settlement endpoints."""

    def test_list_debts(self, bob_client, funded_group):
        response = bob_client.get(detail_url('group-debts', funded_group))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 2
        assert all(d['status'] == DebtStatus.PENDING for d in response.data)

    def test_list_debts_by_currency(self, bob_client, funded_group):
        response = bob_client.get(detail_url('group-debts', funded_group), {'currency': 'USD'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []

    def test_balances(self, bob_client, funded_group, alice, bob, carol):
        response = bob_client.get(detail_url('group-balances', funded_group))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'IDR': [
                {'user_id': str(alice.id), 'username': 'Alice', 'balance': '200.00'},
                {'user_id': str(bob.id), 'username': 'Bob', 'balance': '-100.00'},
                {'user_id': str(carol.id), 'username': 'carol', 'balance': '-100.00'},
            ]
        }

    def test_calculate_debts(self, alice_client, funded_group):
        response = alice_client.post(detail_url('group-calculate-debts', funded_group))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Debts calculated successfully'
        assert len(response.data['debts']) == 2

    def test_settle_debt(self, bob_client, funded_group, bob):
        debt = Debt.objects.get(group=funded_group, from_user=bob)

        response = bob_client.post(detail_url('group-settle-debt', funded_group), {'debt_id': str(debt.id)})

        assert response.status_code == status.HTTP_200_OK
        debt.refresh_from_db()
        assert debt.status == DebtStatus.SETTLED
        assert debt.settled_by == bob
        assert response.data['outstanding_debts_by_currency'] == {'IDR': '100.00'}

    def test_settle_debt_twice(self, bob_client, funded_group, bob):
        debt = Debt.objects.get(group=funded_group, from_user=bob)
        url = detail_url('group-settle-debt', funded_group)
        bob_client.post(url, {'debt_id': str(debt.id)})

        response = bob_client.post(url, {'debt_id': str(debt.id)})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'already_settled'

    def test_settle_unknown_debt(self, bob_client, funded_group):
        response = bob_client.post(
            detail_url('group-settle-debt', funded_group),
            {'debt_id': '00000000-0000-0000-0000-000000000000'},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'debt_not_found'


# =============================================================================
# Comment Tests
# =============================================================================

@pytest.mark.django_db
class TestComments:
    """Tests for /api/groups/{id}/comments/"""

    def test_post_and_list_comments(self, bob_client, trio_group):
        url = detail_url('group-comments', trio_group)

        response = bob_client.post(url, {'message': 'Who booked the ferry?'})
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['username'] == 'Bob'

        response = bob_client.get(url)
        assert response.status_code == status.HTTP_200_OK
        assert [c['message'] for c in response.data] == ['Who booked the ferry?']

    def test_edit_own_comment(self, bob_client, trio_group, bob):
        comment = add_comment(group_id=trio_group.id, user=bob, message='typo')

        response = bob_client.patch(
            detail_url('group-edit-comment', trio_group, comment_id=comment.id),
            {'message': 'fixed'},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'fixed'
        assert response.data['edited'] is True

    def test_edit_someone_elses_comment(self, alice_client, trio_group, bob):
        comment = add_comment(group_id=trio_group.id, user=bob, message='mine')

        response = alice_client.patch(
            detail_url('group-edit-comment', trio_group, comment_id=comment.id),
            {'message': 'not yours'},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'insufficient_permissions'

    def test_comments_non_member(self, outsider_client, trio_group):
        response = outsider_client.get(detail_url('group-comments', trio_group))

        assert response.status_code == status.HTTP_404_NOT_FOUND
