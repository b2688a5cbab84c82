# ==========================================
# apps/groups/admin.py
# ==========================================

from django.contrib import admin
from apps.groups.models import (
    Debt,
    Expense,
    ExpenseSplit,
    Group,
    GroupComment,
    GroupMembership,
)


class GroupMembershipInline(admin.TabularInline):
    """Inline admin for group memberships."""
    model = GroupMembership
    extra = 0
    fields = ['user', 'username', 'role', 'is_active', 'joined_at']
    readonly_fields = ['joined_at']


class DebtInline(admin.TabularInline):
    """Derived debts are rebuilt from the ledger, so they are read-only here."""
    model = Debt
    extra = 0
    fields = ['from_username', 'to_username', 'amount', 'currency', 'status', 'settled_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    """Admin interface for Groups."""

    list_display = [
        'title',
        'group_code',
        'owner',
        'member_count',
        'default_currency',
        'is_active',
        'is_archived',
        'updated_at'
    ]
    list_filter = ['is_active', 'is_archived', 'default_currency', 'created_at']
    search_fields = ['title', 'description', 'owner__email', 'group_code', 'invite_code']
    readonly_fields = ['group_code', 'invite_code', 'invite_code_expires_at', 'created_at', 'updated_at']
    inlines = [GroupMembershipInline, DebtInline]
    date_hierarchy = 'created_at'
    ordering = ['-updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'description', 'owner', 'group_code')
        }),
        ('Settings', {
            'fields': (
                'default_currency',
                'allow_multiple_currencies',
                'auto_simplify_debts',
                'require_receipt_for_expenses',
                'max_members',
            )
        }),
        ('Status', {
            'fields': ('is_active', 'is_archived', 'archived_at')
        }),
        ('Invitation', {
            'fields': ('invite_code', 'invite_code_expires_at')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of active members."""
        return obj.member_count
    member_count.short_description = 'Members'


class ExpenseSplitInline(admin.TabularInline):
    model = ExpenseSplit
    extra = 0
    fields = ['user', 'username', 'amount']


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    """Admin interface for the expense ledger."""

    list_display = ['description', 'group', 'amount', 'currency', 'paid_by_username', 'category', 'date']
    list_filter = ['currency', 'category', 'date']
    search_fields = ['description', 'group__title', 'paid_by_username']
    inlines = [ExpenseSplitInline]
    date_hierarchy = 'date'
    ordering = ['-date']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('group', 'paid_by')


@admin.register(GroupComment)
class GroupCommentAdmin(admin.ModelAdmin):
    """Admin interface for Group Comments."""

    list_display = ['group', 'username', 'message', 'edited', 'timestamp']
    list_filter = ['edited', 'timestamp']
    search_fields = ['group__title', 'username', 'message']
    readonly_fields = ['timestamp', 'edited_at']
    ordering = ['-timestamp']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('group', 'user')
