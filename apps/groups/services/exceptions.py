"""
Domain-specific exceptions for groups app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.

Every exception carries a ``kind`` (not_found, conflict, validation,
precondition_failed, forbidden), a stable ``code`` and a ``details`` dict
naming the offending field or id.
"""


class GroupsServiceError(Exception):
    """Base exception for all groups service errors."""
    kind = 'error'
    code = 'groups_error'
    default_message = 'Group operation failed'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        return {
            'error': self.message,
            'code': self.code,
            'details': self.details,
        }


# =============================================================================
# Kinds
# =============================================================================

class NotFoundError(GroupsServiceError):
    kind = 'not_found'
    code = 'not_found'
    default_message = 'Resource not found'


class ConflictError(GroupsServiceError):
    kind = 'conflict'
    code = 'conflict'
    default_message = 'Request conflicts with the current group state'


class GroupValidationError(GroupsServiceError):
    kind = 'validation'
    code = 'invalid'
    default_message = 'Invalid request'


class PreconditionFailedError(GroupsServiceError):
    kind = 'precondition_failed'
    code = 'precondition_failed'
    default_message = 'Operation is blocked by the current group state'


# =============================================================================
# Not found
# =============================================================================

class GroupNotFoundError(NotFoundError):
    """Raised when a group does not exist or is inaccessible."""
    code = 'group_not_found'
    default_message = 'Group not found'


class NotMemberError(NotFoundError):
    """Raised when a user has no active membership in the group."""
    code = 'not_a_member'
    default_message = 'User is not a member of this group'


class DebtNotFoundError(NotFoundError):
    """Raised when a debt id does not belong to the group."""
    code = 'debt_not_found'
    default_message = 'Debt not found'


class InvalidInviteCodeError(NotFoundError):
    """Raised when an invite code is unknown or expired."""
    code = 'invalid_invite_code'
    default_message = 'Invalid or expired invite code'


class CommentNotFoundError(NotFoundError):
    code = 'comment_not_found'
    default_message = 'Comment not found'


# =============================================================================
# Conflicts
# =============================================================================

class AlreadyMemberError(ConflictError):
    """Raised when a user tries to join a group they're already in."""
    code = 'already_member'
    default_message = 'User is already a member'


class CapacityExceededError(ConflictError):
    """Raised when the group has reached max_members."""
    code = 'capacity_exceeded'
    default_message = 'Group has reached maximum member limit'


class AlreadySettledError(ConflictError):
    """Raised when settling a debt that is not pending."""
    code = 'already_settled'
    default_message = 'Debt is already settled'


# =============================================================================
# Validation
# =============================================================================

class SplitMismatchError(GroupValidationError):
    """Raised when split amounts do not add up to the expense amount."""
    code = 'split_mismatch'
    default_message = 'Split amounts must add up to total amount'


class CurrencyNotAllowedError(GroupValidationError):
    """Raised when a non-default currency is used in a single-currency group."""
    code = 'currency_not_allowed'
    default_message = 'Currency is not allowed in this group'


class UnsupportedCurrencyError(GroupValidationError):
    code = 'unsupported_currency'
    default_message = 'Unsupported currency'


class InvalidSplitParticipantError(GroupValidationError):
    """Raised when a split names someone who is not an active member."""
    code = 'invalid_split_participant'
    default_message = 'Some users in split are not group members'


class PayerNotMemberError(GroupValidationError):
    code = 'payer_not_member'
    default_message = 'Payer is not a member of this group'


class InvalidAmountError(GroupValidationError):
    code = 'invalid_amount'
    default_message = 'Amount must be positive'


class ReceiptRequiredError(GroupValidationError):
    code = 'receipt_required'
    default_message = 'This group requires a receipt for every expense'


class InvalidGroupSettingError(GroupValidationError):
    code = 'invalid_group_setting'
    default_message = 'Invalid group setting'


# =============================================================================
# Preconditions
# =============================================================================

class OutstandingDebtError(PreconditionFailedError):
    """Raised when removing a member who is party to a pending debt."""
    code = 'outstanding_debt'
    default_message = 'Cannot remove member with outstanding debts'


class OutstandingDebtsError(PreconditionFailedError):
    """Raised when deleting a group that still has pending debts."""
    code = 'outstanding_debts'
    default_message = 'Cannot delete group with outstanding debts'


# =============================================================================
# Permissions
# =============================================================================

class InsufficientPermissionsError(GroupsServiceError):
    """Raised when a user lacks required permissions for an action."""
    kind = 'forbidden'
    code = 'insufficient_permissions'
    default_message = 'You do not have permission to perform this action'
