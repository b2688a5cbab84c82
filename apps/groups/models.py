# ==========================================
# apps/groups/models.py
# ==========================================

from collections import defaultdict
from decimal import Decimal
import secrets
import string
import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

CODE_ALPHABET = string.ascii_uppercase + string.digits
GROUP_CODE_LENGTH = 6
INVITE_CODE_LENGTH = 10


def generate_group_code():
    """Random 6-character uppercase alphanumeric group code."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(GROUP_CODE_LENGTH))


def generate_invite_code():
    """Random uppercase alphanumeric invite token."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


class Currency(models.TextChoices):
    IDR = 'IDR', 'Indonesian Rupiah'
    USD = 'USD', 'US Dollar'
    EUR = 'EUR', 'Euro'
    JPY = 'JPY', 'Japanese Yen'
    SGD = 'SGD', 'Singapore Dollar'
    MYR = 'MYR', 'Malaysian Ringgit'
    KRW = 'KRW', 'South Korean Won'


class GroupRole(models.TextChoices):
    ADMIN = 'admin', 'Admin'
    MEMBER = 'member', 'Member'


class ExpenseCategory(models.TextChoices):
    FOOD = 'food', 'Food'
    TRANSPORT = 'transport', 'Transport'
    ACCOMMODATION = 'accommodation', 'Accommodation'
    ENTERTAINMENT = 'entertainment', 'Entertainment'
    SHOPPING = 'shopping', 'Shopping'
    UTILITIES = 'utilities', 'Utilities'
    OTHER = 'other', 'Other'


class DebtStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SETTLED = 'settled', 'Settled'
    DISPUTED = 'disputed', 'Disputed'


class Group(models.Model):
    """Shared-expense group: members, an expense ledger and derived debts."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group_code = models.CharField(max_length=8, unique=True, db_index=True, editable=False)
    owner = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='owned_groups')
    title = models.CharField(max_length=100)
    description = models.CharField(max_length=300, blank=True)

    # Settings
    default_currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.IDR)
    allow_multiple_currencies = models.BooleanField(default=True)
    auto_simplify_debts = models.BooleanField(default=True)
    require_receipt_for_expenses = models.BooleanField(default=False)
    max_members = models.PositiveIntegerField(
        default=50,
        validators=[MinValueValidator(2), MaxValueValidator(100)]
    )

    # Status
    is_active = models.BooleanField(default=True)
    is_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)

    # Invites (unique only when set)
    invite_code = models.CharField(max_length=16, unique=True, null=True, blank=True, editable=False)
    invite_code_expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'groups'
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='groups_owner_created_idx'),
            models.Index(fields=['is_active', 'is_archived'], name='groups_active_archived_idx'),
        ]
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.title} ({self.group_code})"

    def active_memberships(self):
        return self.memberships.filter(is_active=True).order_by('created_at', 'id')

    @property
    def member_count(self):
        return self.memberships.filter(is_active=True).count()

    def get_membership(self, user_id):
        """Return the membership record for a user (active or not), or None."""
        return self.memberships.filter(user_id=user_id).first()

    def has_member(self, user):
        return self.memberships.filter(user=user, is_active=True).exists()

    def get_user_role(self, user):
        membership = self.memberships.filter(user=user, is_active=True).first()
        return membership.role if membership else None

    def is_admin(self, user):
        return self.get_user_role(user) == GroupRole.ADMIN

    def has_pending_debts(self, user_id=None):
        """Whether any pending debt exists, optionally only those naming user_id."""
        pending = self.debts.filter(status=DebtStatus.PENDING)
        if user_id is not None:
            pending = pending.filter(models.Q(from_user_id=user_id) | models.Q(to_user_id=user_id))
        return pending.exists()

    def total_expenses_by_currency(self):
        totals = defaultdict(Decimal)
        for currency, amount in self.expenses.values_list('currency', 'amount'):
            totals[currency] += amount
        return dict(totals)

    def outstanding_debts_by_currency(self):
        totals = defaultdict(Decimal)
        pending = self.debts.filter(status=DebtStatus.PENDING).values_list('currency', 'amount')
        for currency, amount in pending:
            totals[currency] += amount
        return dict(totals)


class GroupMembership(models.Model):
    """User membership in a group. Soft-deleted via is_active, never removed."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='group_memberships')
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='memberships')
    username = models.CharField(max_length=100)
    role = models.CharField(max_length=20, choices=GroupRole.choices, default=GroupRole.MEMBER)
    joined_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    # Original join order; joined_at is refreshed on rejoin
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'group_memberships'
        unique_together = [['user', 'group']]
        indexes = [
            models.Index(fields=['group', 'is_active'], name='membership_group_active_idx'),
            models.Index(fields=['user', 'is_active'], name='membership_user_active_idx'),
        ]
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.username} in {self.group.title} ({self.role})"


class Expense(models.Model):
    """One ledger entry: who paid, how much, in what currency."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='expenses')
    description = models.CharField(max_length=200)
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=3, choices=Currency.choices)
    paid_by = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='expenses_paid')
    paid_by_username = models.CharField(max_length=100)
    category = models.CharField(max_length=20, choices=ExpenseCategory.choices, default=ExpenseCategory.OTHER)
    receipt_url = models.URLField(max_length=500, blank=True)
    notes = models.CharField(max_length=300, blank=True)
    date = models.DateTimeField()

    class Meta:
        db_table = 'group_expenses'
        indexes = [
            models.Index(fields=['group', 'currency'], name='expense_group_currency_idx'),
            models.Index(fields=['group', 'date'], name='expense_group_date_idx'),
        ]
        ordering = ['-date']

    def __str__(self):
        return f"{self.description}: {self.amount} {self.currency}"


class ExpenseSplit(models.Model):
    """A participant's share of an expense."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    expense = models.ForeignKey(Expense, on_delete=models.CASCADE, related_name='splits')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='expense_splits')
    username = models.CharField(max_length=100)
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = 'group_expense_splits'
        ordering = ['position']

    def __str__(self):
        return f"{self.username}: {self.amount}"


class Debt(models.Model):
    """Simplified pairwise obligation. Derived from the expense ledger."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='debts')
    from_user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='debts_owed')
    from_username = models.CharField(max_length=100)
    to_user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='debts_receivable')
    to_username = models.CharField(max_length=100)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, choices=Currency.choices)
    status = models.CharField(max_length=20, choices=DebtStatus.choices, default=DebtStatus.PENDING)
    settled_at = models.DateTimeField(null=True, blank=True)
    settled_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='debts_settled'
    )
    # Emission order from the simplifier
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'group_debts'
        indexes = [
            models.Index(fields=['group', 'status'], name='debt_group_status_idx'),
            models.Index(fields=['group', 'currency'], name='debt_group_currency_idx'),
        ]
        ordering = ['position']

    def __str__(self):
        return f"{self.from_username} -> {self.to_username}: {self.amount} {self.currency} ({self.status})"


class GroupComment(models.Model):
    """Discussion comment on a group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='group_comments')
    username = models.CharField(max_length=100)
    message = models.CharField(max_length=500)
    timestamp = models.DateTimeField(auto_now_add=True)
    edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'group_comments'
        ordering = ['timestamp']

    def __str__(self):
        return f"{self.username}: {self.message[:40]}"
