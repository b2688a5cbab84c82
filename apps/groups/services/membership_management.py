"""
Membership management service.

Handles group membership operations with concurrency protection.
Memberships are soft-deleted so that historical expenses and debts keep
pointing at a valid member record.
"""

import logging
from typing import Iterable, List, Tuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole

from .exceptions import (
    AlreadyMemberError,
    CapacityExceededError,
    GroupNotFoundError,
    GroupsServiceError,
    InvalidInviteCodeError,
    NotMemberError,
    OutstandingDebtError,
)
from .group_management import lock_group

logger = logging.getLogger(__name__)


def add_member(*, group: Group, user: User, role: str = GroupRole.MEMBER) -> GroupMembership:
    """
    Add a user to a group whose row is already locked by the caller.

    A previously removed member is reactivated rather than duplicated: the
    joined timestamp and display name are refreshed and the old role is kept.

    Raises:
        AlreadyMemberError: If the user already has an active membership
        CapacityExceededError: If the group is at max_members
    """
    existing = group.get_membership(user.id)

    if existing is not None and existing.is_active:
        raise AlreadyMemberError(
            f"User is already a member of {group.title}",
            group_id=group.id,
            user_id=user.id,
        )

    if group.member_count >= group.max_members:
        raise CapacityExceededError(
            group_id=group.id,
            max_members=group.max_members,
        )

    now = timezone.now()

    if existing is not None:
        existing.is_active = True
        existing.joined_at = now
        existing.username = user.get_display_name()
        existing.save(update_fields=['is_active', 'joined_at', 'username'])
        logger.info("User %s rejoined group %s", user.id, group.id)
        return existing

    try:
        with transaction.atomic():
            membership = GroupMembership.objects.create(
                user=user,
                group=group,
                username=user.get_display_name(),
                role=role,
                joined_at=now,
            )
    except IntegrityError:
        # Database constraint caught duplicate membership
        raise AlreadyMemberError(
            f"User is already a member of {group.title}",
            group_id=group.id,
            user_id=user.id,
        )

    logger.info("User %s joined group %s as %s", user.id, group.id, role)
    return membership


def _touch(group: Group) -> None:
    group.save(update_fields=['updated_at'])


@transaction.atomic
def join_group(*, group_code: str, user: User) -> Group:
    """
    Join an active, non-archived group by its group code.

    The code is matched case-insensitively.

    Raises:
        GroupNotFoundError: If no joinable group has that code
        AlreadyMemberError: If user is already a member
        CapacityExceededError: If the group is full
    """
    code = (group_code or '').strip().upper()

    # Lock the group to prevent concurrent joins
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(group_code=code, is_active=True, is_archived=False)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with code {code} not found", group_code=code)

    add_member(group=group, user=user)
    _touch(group)
    return group


@transaction.atomic
def join_by_invite(*, invite_code: str, user: User) -> Group:
    """
    Join a group with an invite code that has not yet expired.

    Raises:
        InvalidInviteCodeError: If the code is unknown, expired, or the group
            is archived or inactive
        AlreadyMemberError: If user is already a member
        CapacityExceededError: If the group is full
    """
    code = (invite_code or '').strip().upper()

    try:
        group = (
            Group.objects
            .select_for_update()
            .get(
                invite_code=code,
                invite_code_expires_at__gt=timezone.now(),
                is_active=True,
                is_archived=False,
            )
        )
    except Group.DoesNotExist:
        raise InvalidInviteCodeError(invite_code=code)

    add_member(group=group, user=user)
    _touch(group)
    return group


@transaction.atomic
def add_friends_to_group(
    *,
    group_id: UUID,
    added_by: User,
    usernames: Iterable[str]
) -> Tuple[Group, List[str], List[str]]:
    """
    Add several of added_by's friends to a group.

    Failures are collected per username rather than raised, so one bad
    entry does not prevent the others from being added.

    Returns:
        Tuple of (group, added usernames, error messages)

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = lock_group(group_id=group_id)

    added = []
    errors = []

    for username in usernames:
        friend = added_by.friends.filter(username=username).first()
        if friend is None:
            errors.append(f"User {username} not found in your friends list")
            continue

        try:
            add_member(group=group, user=friend)
        except GroupsServiceError as e:
            errors.append(f"Error adding {username}: {e.message}")
            continue

        added.append(username)

    if added:
        _touch(group)

    return group, added, errors


@transaction.atomic
def remove_member(*, group_id: UUID, user_id: UUID) -> Group:
    """
    Remove a member from a group (soft delete).

    Blocked while the member is either party to a pending debt in any
    currency.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If the user has no active membership
        OutstandingDebtError: If the user has pending debts
    """
    group = lock_group(group_id=group_id)

    membership = group.get_membership(user_id)
    if membership is None or not membership.is_active:
        raise NotMemberError(group_id=group.id, user_id=user_id)

    if group.has_pending_debts(user_id=user_id):
        logger.warning("Refused to remove user %s from group %s: pending debts", user_id, group.id)
        raise OutstandingDebtError(group_id=group.id, user_id=user_id)

    membership.is_active = False
    membership.save(update_fields=['is_active'])
    _touch(group)

    logger.info("User %s removed from group %s", user_id, group.id)
    return group


def get_group_members(*, group_id: UUID) -> QuerySet[GroupMembership]:
    """
    Get active members of a group in join order.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    # Verify group exists
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found", group_id=group_id)

    return (
        GroupMembership.objects
        .filter(group_id=group_id, is_active=True)
        .select_related('user')
        .order_by('created_at', 'id')
    )
