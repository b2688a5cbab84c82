from decimal import Decimal

from rest_framework import serializers

from apps.accounts.models import User
from .models import (
    Currency,
    Debt,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    Group,
    GroupComment,
    GroupMembership,
)


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class GroupMemberSerializer(serializers.ModelSerializer):
    """Member information as captured at join time."""

    user_id = serializers.UUIDField(source='user.id', read_only=True)

    class Meta:
        model = GroupMembership
        fields = ['id', 'user_id', 'username', 'role', 'joined_at', 'is_active']
        read_only_fields = fields


class ExpenseSplitSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ExpenseSplit
        fields = ['user_id', 'username', 'amount']
        read_only_fields = fields


class ExpenseSerializer(serializers.ModelSerializer):
    """Ledger entry with its splits."""

    paid_by = serializers.UUIDField(source='paid_by_id', read_only=True)
    split_between = ExpenseSplitSerializer(source='splits', many=True, read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id',
            'description',
            'amount',
            'currency',
            'paid_by',
            'paid_by_username',
            'split_between',
            'category',
            'receipt_url',
            'notes',
            'date',
        ]
        read_only_fields = fields


class DebtSerializer(serializers.ModelSerializer):
    from_user = serializers.SerializerMethodField()
    to_user = serializers.SerializerMethodField()
    settled_by = serializers.UUIDField(source='settled_by_id', read_only=True)

    class Meta:
        model = Debt
        fields = [
            'id',
            'from_user',
            'to_user',
            'amount',
            'currency',
            'status',
            'settled_at',
            'settled_by',
        ]
        read_only_fields = fields

    def get_from_user(self, obj):
        return {'user_id': str(obj.from_user_id), 'username': obj.from_username}

    def get_to_user(self, obj):
        return {'user_id': str(obj.to_user_id), 'username': obj.to_username}


class GroupCommentSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = GroupComment
        fields = ['id', 'user_id', 'username', 'message', 'timestamp', 'edited', 'edited_at']
        read_only_fields = fields


class GroupSerializer(serializers.ModelSerializer):
    """Main serializer for groups."""

    owner = UserMinimalSerializer(read_only=True)
    member_count = serializers.IntegerField(read_only=True)
    user_role = serializers.SerializerMethodField()
    members = serializers.SerializerMethodField()
    debts = DebtSerializer(many=True, read_only=True)
    total_expenses_by_currency = serializers.SerializerMethodField()
    outstanding_debts_by_currency = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'group_code',
            'title',
            'description',
            'owner',
            'default_currency',
            'allow_multiple_currencies',
            'auto_simplify_debts',
            'require_receipt_for_expenses',
            'max_members',
            'member_count',
            'user_role',
            'members',
            'debts',
            'total_expenses_by_currency',
            'outstanding_debts_by_currency',
            'invite_code',
            'invite_code_expires_at',
            'is_active',
            'is_archived',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_user_role(self, obj):
        """Get current user's role in the group."""
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return obj.get_user_role(request.user)
        return None

    def get_members(self, obj):
        return GroupMemberSerializer(obj.active_memberships(), many=True).data

    def get_total_expenses_by_currency(self, obj):
        return {currency: str(total) for currency, total in obj.total_expenses_by_currency().items()}

    def get_outstanding_debts_by_currency(self, obj):
        return {currency: str(total) for currency, total in obj.outstanding_debts_by_currency().items()}


class GroupListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    owner = UserMinimalSerializer(read_only=True)
    member_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Group
        fields = [
            'id',
            'group_code',
            'title',
            'description',
            'owner',
            'default_currency',
            'member_count',
            'updated_at',
        ]
        read_only_fields = fields


class GroupCreateSerializer(serializers.Serializer):
    """Serializer for creating groups."""

    title = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')
    default_currency = serializers.ChoiceField(choices=Currency.choices, required=False)
    max_members = serializers.IntegerField(min_value=2, max_value=100, required=False)
    allow_multiple_currencies = serializers.BooleanField(required=False, default=True)
    auto_simplify_debts = serializers.BooleanField(required=False, default=True)
    require_receipt_for_expenses = serializers.BooleanField(required=False, default=False)


class GroupUpdateSerializer(serializers.Serializer):
    """Partial update of group details and settings."""

    title = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(max_length=300, required=False, allow_blank=True)
    default_currency = serializers.ChoiceField(choices=Currency.choices, required=False)
    max_members = serializers.IntegerField(min_value=2, max_value=100, required=False)
    allow_multiple_currencies = serializers.BooleanField(required=False)
    auto_simplify_debts = serializers.BooleanField(required=False)
    require_receipt_for_expenses = serializers.BooleanField(required=False)


class JoinGroupSerializer(serializers.Serializer):
    """Serializer for joining a group with its group code."""

    group_code = serializers.CharField(min_length=6, max_length=8)


class JoinByInviteSerializer(serializers.Serializer):
    """Serializer for joining a group with an invite code."""

    invite_code = serializers.CharField(max_length=16)


class GenerateInviteSerializer(serializers.Serializer):
    expiration_hours = serializers.FloatField(min_value=0.01, max_value=24 * 30, required=False)


class RemoveMemberSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()


class AddFriendsSerializer(serializers.Serializer):
    usernames = serializers.ListField(
        child=serializers.CharField(max_length=50),
        allow_empty=False,
        max_length=100,
    )


class SplitInputSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'))


class ExpenseCreateSerializer(serializers.Serializer):
    """
    Input for adding an expense.

    Shape checks only; membership, currency policy and split conservation
    are enforced by the expense service.
    """

    description = serializers.CharField(max_length=200)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    currency = serializers.ChoiceField(choices=Currency.choices, required=False)
    paid_by = serializers.UUIDField(required=False)
    split_between = SplitInputSerializer(many=True, allow_empty=False)
    category = serializers.ChoiceField(choices=ExpenseCategory.choices, required=False, default=ExpenseCategory.OTHER)
    receipt_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    notes = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')


class SettleDebtSerializer(serializers.Serializer):
    debt_id = serializers.UUIDField()


class CommentInputSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=500)
