"""
Invite management service.

Handles group invite code operations with uniqueness guarantees.
"""

import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.groups.models import Group, generate_invite_code as make_invite_code

from .exceptions import InvalidGroupSettingError
from .group_management import lock_group

logger = logging.getLogger(__name__)


@transaction.atomic
def generate_invite_code(
    *,
    group_id: UUID,
    expiration_hours: Optional[float] = None,
    max_retries: Optional[int] = None
) -> Group:
    """
    Issue a new invite code for a group, replacing any previous one.

    Uses row-level locking and retry logic to ensure uniqueness across all
    groups: a candidate already held by another group is skipped, and the
    unique constraint is the final arbiter inside a savepoint.

    Args:
        group_id: UUID of the group
        expiration_hours: Lifetime of the code (defaults to
            GROUP_INVITE_EXPIRATION_HOURS)
        max_retries: Maximum attempts to generate a unique code

    Returns:
        The group, with invite_code and invite_code_expires_at set

    Raises:
        GroupNotFoundError: If group doesn't exist
        InvalidGroupSettingError: If expiration_hours is not positive
        RuntimeError: If cannot generate unique code after retries
    """
    if expiration_hours is None:
        expiration_hours = getattr(settings, 'GROUP_INVITE_EXPIRATION_HOURS', 24)
    if expiration_hours <= 0:
        raise InvalidGroupSettingError(
            "expiration_hours must be positive",
            field='expiration_hours',
            value=expiration_hours,
        )
    if max_retries is None:
        max_retries = getattr(settings, 'GROUP_CODE_MAX_RETRIES', 5)

    group = lock_group(group_id=group_id)

    for attempt in range(max_retries):
        new_code = make_invite_code()

        if Group.objects.filter(invite_code=new_code).exclude(id=group.id).exists():
            logger.warning("Invite code collision on attempt %d", attempt + 1)
            continue

        group.invite_code = new_code
        group.invite_code_expires_at = timezone.now() + timedelta(hours=expiration_hours)

        try:
            with transaction.atomic():
                group.save(update_fields=['invite_code', 'invite_code_expires_at', 'updated_at'])
        except IntegrityError:
            # Lost a race for the same code, retry
            logger.warning("Invite code collision on attempt %d", attempt + 1)
            continue

        logger.info("Invite code issued for group %s, expires %s", group.id, group.invite_code_expires_at)
        return group

    raise RuntimeError(
        f"Failed to generate unique invite code after {max_retries} attempts"
    )

