"""
Comment management service.

Handles the group discussion thread.
"""

from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import GroupComment

from .exceptions import (
    CommentNotFoundError,
    InsufficientPermissionsError,
    NotMemberError,
)
from .group_management import get_group_by_id, lock_group, parse_uuid


@transaction.atomic
def add_comment(*, group_id: UUID, user: User, message: str) -> GroupComment:
    """
    Post a comment to a group (active members only).

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If user is not an active member
    """
    group = lock_group(group_id=group_id)

    if not group.has_member(user):
        raise NotMemberError("You must be a member to comment", group_id=group.id, user_id=user.id)

    return GroupComment.objects.create(
        group=group,
        user=user,
        username=user.get_display_name(),
        message=message.strip(),
    )


@transaction.atomic
def edit_comment(
    *,
    group_id: UUID,
    comment_id: UUID,
    user: User,
    message: str
) -> GroupComment:
    """
    Edit a comment (author only).

    Raises:
        CommentNotFoundError: If the comment is not part of this group
        InsufficientPermissionsError: If user is not the author
    """
    comment = None
    if parse_uuid(comment_id) is not None:
        comment = (
            GroupComment.objects
            .select_for_update()
            .filter(id=comment_id, group_id=group_id)
            .first()
        )
    if comment is None:
        raise CommentNotFoundError(group_id=group_id, comment_id=comment_id)

    if comment.user_id != user.id:
        raise InsufficientPermissionsError("Only the author can edit a comment", comment_id=comment.id)

    comment.message = message.strip()
    comment.edited = True
    comment.edited_at = timezone.now()
    comment.save(update_fields=['message', 'edited', 'edited_at'])

    return comment


def get_comments(*, group_id: UUID) -> QuerySet[GroupComment]:
    """
    Comments of a group, oldest first.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = get_group_by_id(group_id=group_id)
    return group.comments.select_related('user').order_by('timestamp')
