"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and lock the group row, so
each group is one unit of concurrency.
"""

from .exceptions import (
    GroupsServiceError,
    NotFoundError,
    ConflictError,
    GroupValidationError,
    PreconditionFailedError,
    GroupNotFoundError,
    NotMemberError,
    DebtNotFoundError,
    InvalidInviteCodeError,
    CommentNotFoundError,
    AlreadyMemberError,
    CapacityExceededError,
    AlreadySettledError,
    SplitMismatchError,
    CurrencyNotAllowedError,
    UnsupportedCurrencyError,
    InvalidSplitParticipantError,
    PayerNotMemberError,
    InvalidAmountError,
    ReceiptRequiredError,
    InvalidGroupSettingError,
    OutstandingDebtError,
    OutstandingDebtsError,
    InsufficientPermissionsError,
)

from .group_management import (
    create_group,
    update_group,
    archive_group,
    delete_group,
    get_group_by_id,
    get_user_groups,
)

from .membership_management import (
    add_member,
    join_group,
    join_by_invite,
    add_friends_to_group,
    remove_member,
    get_group_members,
)

from .invite_management import (
    generate_invite_code,
)

from .expense_management import (
    add_expense,
    get_expenses,
)

from .debt_management import (
    recalculate_debts,
    get_debts,
    get_balances,
    settle_debt,
)

from .comment_management import (
    add_comment,
    edit_comment,
    get_comments,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'NotFoundError',
    'ConflictError',
    'GroupValidationError',
    'PreconditionFailedError',
    'GroupNotFoundError',
    'NotMemberError',
    'DebtNotFoundError',
    'InvalidInviteCodeError',
    'CommentNotFoundError',
    'AlreadyMemberError',
    'CapacityExceededError',
    'AlreadySettledError',
    'SplitMismatchError',
    'CurrencyNotAllowedError',
    'UnsupportedCurrencyError',
    'InvalidSplitParticipantError',
    'PayerNotMemberError',
    'InvalidAmountError',
    'ReceiptRequiredError',
    'InvalidGroupSettingError',
    'OutstandingDebtError',
    'OutstandingDebtsError',
    'InsufficientPermissionsError',

    # Group Management
    'create_group',
    'update_group',
    'archive_group',
    'delete_group',
    'get_group_by_id',
    'get_user_groups',

    # Membership Management
    'add_member',
    'join_group',
    'join_by_invite',
    'add_friends_to_group',
    'remove_member',
    'get_group_members',

    # Invite Management
    'generate_invite_code',

    # Expense Ledger
    'add_expense',
    'get_expenses',

    # Debts
    'recalculate_debts',
    'get_debts',
    'get_balances',
    'settle_debt',

    # Comments
    'add_comment',
    'edit_comment',
    'get_comments',
]
