"""
Group management service.

Handles group CRUD operations with proper transaction safety.
"""

import logging
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import Prefetch, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import (
    Currency,
    Group,
    GroupMembership,
    GroupRole,
    generate_group_code,
)

from .exceptions import (
    GroupNotFoundError,
    InvalidGroupSettingError,
    OutstandingDebtsError,
    UnsupportedCurrencyError,
)

logger = logging.getLogger(__name__)

MIN_MEMBERS = 2
MAX_MEMBERS = 100


def _validate_currency(currency: str) -> str:
    currency = (currency or '').upper()
    if currency not in Currency.values:
        raise UnsupportedCurrencyError(
            f"Unsupported currency: {currency or '(empty)'}",
            field='currency',
            value=currency,
        )
    return currency


def _validate_max_members(max_members: int) -> int:
    if not MIN_MEMBERS <= max_members <= MAX_MEMBERS:
        raise InvalidGroupSettingError(
            f"max_members must be between {MIN_MEMBERS} and {MAX_MEMBERS}",
            field='max_members',
            value=max_members,
        )
    return max_members


def create_group(
    *,
    owner: User,
    title: str,
    description: str = '',
    default_currency: Optional[str] = None,
    max_members: Optional[int] = None,
    allow_multiple_currencies: bool = True,
    auto_simplify_debts: bool = True,
    require_receipt_for_expenses: bool = False,
    max_retries: Optional[int] = None
) -> Group:
    """
    Create a new group and add the creator as an admin member.

    This is a multi-step operation wrapped in a transaction:
    1. Generate unique group code
    2. Create the group
    3. Create the owner's admin membership

    Args:
        owner: User who creates the group
        title: Group title
        description: Optional description
        default_currency: Ledger currency (defaults to GROUP_DEFAULT_CURRENCY)
        max_members: Member capacity, 2-100 (defaults to GROUP_DEFAULT_MAX_MEMBERS)
        allow_multiple_currencies: Whether expenses may use other currencies
        auto_simplify_debts: Whether debts are recalculated on every expense
        require_receipt_for_expenses: Whether every expense needs a receipt URL
        max_retries: Maximum attempts to generate a unique group code

    Returns:
        Created Group instance

    Raises:
        UnsupportedCurrencyError: If default_currency is not supported
        InvalidGroupSettingError: If max_members is out of range
        RuntimeError: If cannot generate unique group code after retries
    """
    default_currency = _validate_currency(
        default_currency or getattr(settings, 'GROUP_DEFAULT_CURRENCY', Currency.IDR)
    )
    max_members = _validate_max_members(
        max_members if max_members is not None else getattr(settings, 'GROUP_DEFAULT_MAX_MEMBERS', 50)
    )
    if max_retries is None:
        max_retries = getattr(settings, 'GROUP_CODE_MAX_RETRIES', 5)

    # Retry logic outside transaction to handle group code collisions
    for attempt in range(max_retries):
        group_code = generate_group_code()

        try:
            # Each attempt is a separate transaction
            with transaction.atomic():
                group = Group.objects.create(
                    group_code=group_code,
                    owner=owner,
                    title=title,
                    description=description,
                    default_currency=default_currency,
                    max_members=max_members,
                    allow_multiple_currencies=allow_multiple_currencies,
                    auto_simplify_debts=auto_simplify_debts,
                    require_receipt_for_expenses=require_receipt_for_expenses,
                )

                GroupMembership.objects.create(
                    user=owner,
                    group=group,
                    username=owner.get_display_name(),
                    role=GroupRole.ADMIN,
                    joined_at=timezone.now(),
                )

        except IntegrityError:
            # Group code collision (very rare)
            logger.warning("Group code collision on attempt %d", attempt + 1)
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique group code after {max_retries} attempts"
                )
            continue

        logger.info("Group %s (%s) created by %s", group.id, group.group_code, owner.id)
        return group

    # Should never reach here
    raise RuntimeError("Unexpected error in group creation")


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with its owner and memberships prefetched.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    if parse_uuid(group_id) is None:
        raise GroupNotFoundError(f"Group with ID {group_id} not found", group_id=group_id)

    try:
        return (
            Group.objects
            .select_related('owner')
            .prefetch_related(
                Prefetch(
                    'memberships',
                    queryset=GroupMembership.objects.select_related('user')
                )
            )
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found", group_id=group_id)


def lock_group(*, group_id: UUID) -> Group:
    """
    Fetch a group with a row lock held until the surrounding transaction ends.

    The lock serializes every read-modify-write on the same group. Must be
    called inside transaction.atomic.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    if parse_uuid(group_id) is None:
        raise GroupNotFoundError(f"Group with ID {group_id} not found", group_id=group_id)

    try:
        return (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found", group_id=group_id)


def get_user_groups(*, user: User) -> QuerySet[Group]:
    """Active, non-archived groups where the user is an active member."""
    return (
        Group.objects
        .filter(
            memberships__user=user,
            memberships__is_active=True,
            is_active=True,
            is_archived=False,
        )
        .select_related('owner')
        .distinct()
        .order_by('-updated_at')
    )


@transaction.atomic
def update_group(
    *,
    group_id: UUID,
    title: Optional[str] = None,
    description: Optional[str] = None,
    default_currency: Optional[str] = None,
    max_members: Optional[int] = None,
    allow_multiple_currencies: Optional[bool] = None,
    auto_simplify_debts: Optional[bool] = None,
    require_receipt_for_expenses: Optional[bool] = None
) -> Group:
    """
    Update group details and settings.

    Only fields that are not None are changed.

    Raises:
        GroupNotFoundError: If group doesn't exist
        UnsupportedCurrencyError: If default_currency is not supported
        InvalidGroupSettingError: If max_members is out of range or below
            the current active member count
    """
    group = lock_group(group_id=group_id)

    update_fields = ['updated_at']

    if title is not None:
        group.title = title
        update_fields.append('title')

    if description is not None:
        group.description = description
        update_fields.append('description')

    if default_currency is not None:
        group.default_currency = _validate_currency(default_currency)
        update_fields.append('default_currency')

    if max_members is not None:
        _validate_max_members(max_members)
        active = group.member_count
        if max_members < active:
            raise InvalidGroupSettingError(
                f"max_members cannot be lower than the current member count ({active})",
                field='max_members',
                value=max_members,
            )
        group.max_members = max_members
        update_fields.append('max_members')

    if allow_multiple_currencies is not None:
        group.allow_multiple_currencies = allow_multiple_currencies
        update_fields.append('allow_multiple_currencies')

    if auto_simplify_debts is not None:
        group.auto_simplify_debts = auto_simplify_debts
        update_fields.append('auto_simplify_debts')

    if require_receipt_for_expenses is not None:
        group.require_receipt_for_expenses = require_receipt_for_expenses
        update_fields.append('require_receipt_for_expenses')

    group.save(update_fields=update_fields)

    return group


@transaction.atomic
def archive_group(*, group_id: UUID) -> Group:
    """
    Archive a group. Archived groups can no longer be joined.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = lock_group(group_id=group_id)

    if not group.is_archived:
        group.is_archived = True
        group.archived_at = timezone.now()
        group.save(update_fields=['is_archived', 'archived_at', 'updated_at'])
        logger.info("Group %s archived", group.id)

    return group


@transaction.atomic
def delete_group(*, group_id: UUID) -> None:
    """
    Delete a group.

    Blocked while any debt in the group is still pending. Cascading deletes
    remove memberships, expenses, debts and comments.

    Raises:
        GroupNotFoundError: If group doesn't exist
        OutstandingDebtsError: If any debt is pending
    """
    group = lock_group(group_id=group_id)

    if group.has_pending_debts():
        raise OutstandingDebtsError(group_id=group.id)

    group.delete()
    logger.info("Group %s deleted", group_id)


def parse_uuid(value) -> Optional[UUID]:
    """Coerce a UUID or its string form; None if it is neither."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
