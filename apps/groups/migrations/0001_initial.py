# Generated manually for the shared-expense groups app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import migrations, models
import django.db.models.deletion

CURRENCY_CHOICES = [
    ('IDR', 'Indonesian Rupiah'),
    ('USD', 'US Dollar'),
    ('EUR', 'Euro'),
    ('JPY', 'Japanese Yen'),
    ('SGD', 'Singapore Dollar'),
    ('MYR', 'Malaysian Ringgit'),
    ('KRW', 'South Korean Won'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Group',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('group_code', models.CharField(db_index=True, editable=False, max_length=8, unique=True)),
                ('title', models.CharField(max_length=100)),
                ('description', models.CharField(blank=True, max_length=300)),
                ('default_currency', models.CharField(choices=CURRENCY_CHOICES, default='IDR', max_length=3)),
                ('allow_multiple_currencies', models.BooleanField(default=True)),
                ('auto_simplify_debts', models.BooleanField(default=True)),
                ('require_receipt_for_expenses', models.BooleanField(default=False)),
                ('max_members', models.PositiveIntegerField(default=50, validators=[MinValueValidator(2), MaxValueValidator(100)])),
                ('is_active', models.BooleanField(default=True)),
                ('is_archived', models.BooleanField(default=False)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('invite_code', models.CharField(blank=True, editable=False, max_length=16, null=True, unique=True)),
                ('invite_code_expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owned_groups', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'groups',
                'ordering': ['-updated_at'],
                'indexes': [
                    models.Index(fields=['owner', 'created_at'], name='groups_owner_created_idx'),
                    models.Index(fields=['is_active', 'is_archived'], name='groups_active_archived_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('username', models.CharField(max_length=100)),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('member', 'Member')], default='member', max_length=20)),
                ('joined_at', models.DateTimeField()),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='groups.group')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='group_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'group_memberships',
                'ordering': ['created_at', 'id'],
                'unique_together': {('user', 'group')},
                'indexes': [
                    models.Index(fields=['group', 'is_active'], name='membership_group_active_idx'),
                    models.Index(fields=['user', 'is_active'], name='membership_user_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Expense',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('description', models.CharField(max_length=200)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14, validators=[MinValueValidator(Decimal('0.01'))])),
                ('currency', models.CharField(choices=CURRENCY_CHOICES, max_length=3)),
                ('paid_by_username', models.CharField(max_length=100)),
                ('category', models.CharField(choices=[('food', 'Food'), ('transport', 'Transport'), ('accommodation', 'Accommodation'), ('entertainment', 'Entertainment'), ('shopping', 'Shopping'), ('utilities', 'Utilities'), ('other', 'Other')], default='other', max_length=20)),
                ('receipt_url', models.URLField(blank=True, max_length=500)),
                ('notes', models.CharField(blank=True, max_length=300)),
                ('date', models.DateTimeField()),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expenses', to='groups.group')),
                ('paid_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expenses_paid', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'group_expenses',
                'ordering': ['-date'],
                'indexes': [
                    models.Index(fields=['group', 'currency'], name='expense_group_currency_idx'),
                    models.Index(fields=['group', 'date'], name='expense_group_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ExpenseSplit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('username', models.CharField(max_length=100)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14, validators=[MinValueValidator(Decimal('0.00'))])),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('expense', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='splits', to='groups.expense')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expense_splits', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'group_expense_splits',
                'ordering': ['position'],
            },
        ),
        migrations.CreateModel(
            name='Debt',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('from_username', models.CharField(max_length=100)),
                ('to_username', models.CharField(max_length=100)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('currency', models.CharField(choices=CURRENCY_CHOICES, max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('settled', 'Settled'), ('disputed', 'Disputed')], default='pending', max_length=20)),
                ('settled_at', models.DateTimeField(blank=True, null=True)),
                ('position', models.PositiveIntegerField(default=0)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='debts', to='groups.group')),
                ('from_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='debts_owed', to=settings.AUTH_USER_MODEL)),
                ('to_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='debts_receivable', to=settings.AUTH_USER_MODEL)),
                ('settled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='debts_settled', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'group_debts',
                'ordering': ['position'],
                'indexes': [
                    models.Index(fields=['group', 'status'], name='debt_group_status_idx'),
                    models.Index(fields=['group', 'currency'], name='debt_group_currency_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupComment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('username', models.CharField(max_length=100)),
                ('message', models.CharField(max_length=500)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('edited', models.BooleanField(default=False)),
                ('edited_at', models.DateTimeField(blank=True, null=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='groups.group')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='group_comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'group_comments',
                'ordering': ['timestamp'],
            },
        ),
    ]
