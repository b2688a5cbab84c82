"""
Expense ledger service.

Validates and records group expenses. Every check runs before the first
write, and the debt recalculation triggered by a new expense happens in
the same transaction under the group's row lock.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.groups.models import (
    Currency,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    Group,
)

from .debt_management import rebuild_debts
from .debt_simplification import CENT, TOLERANCE, ZERO, round_amount
from .exceptions import (
    CurrencyNotAllowedError,
    GroupValidationError,
    InvalidAmountError,
    InvalidSplitParticipantError,
    PayerNotMemberError,
    ReceiptRequiredError,
    SplitMismatchError,
    UnsupportedCurrencyError,
)
from .group_management import get_group_by_id, lock_group, parse_uuid

logger = logging.getLogger(__name__)

# Expense.amount is DecimalField(max_digits=14, decimal_places=2)
MAX_AMOUNT = Decimal('999999999999.99')


def _to_amount(value, field: str) -> Decimal:
    """Parse a money value, unrounded. Raises InvalidAmountError."""
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        rounded = round_amount(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{field} must be a number", field=field, value=value)
    if abs(rounded) > MAX_AMOUNT:
        raise InvalidAmountError(
            f"{field} must not exceed {MAX_AMOUNT}",
            field=field,
            value=value,
        )
    return amount


def _round_shares(shares):
    """
    Round shares to cents, keeping their total equal to the rounded exact total.

    Cents lost or gained by rounding each share are moved onto the last
    shares, never taking one below zero.
    """
    rounded = [round_amount(share) for share in shares]
    drift = sum(rounded, ZERO) - round_amount(sum(shares, ZERO))
    index = len(rounded) - 1
    while drift != ZERO and index >= 0:
        if drift < ZERO:
            rounded[index] += CENT
            drift += CENT
        elif rounded[index] >= CENT:
            rounded[index] -= CENT
            drift -= CENT
        else:
            index -= 1
    return rounded


@transaction.atomic
def add_expense(
    *,
    group_id: UUID,
    description: str,
    amount,
    paid_by_id: UUID,
    split_between: Iterable[Mapping],
    currency: Optional[str] = None,
    category: str = ExpenseCategory.OTHER,
    receipt_url: str = '',
    notes: str = ''
) -> Group:
    """
    Record an expense and, if the group auto-simplifies, recompute debts.

    Args:
        group_id: UUID of the group
        description: What the expense was for
        amount: Total amount, must be positive
        paid_by_id: User id of the payer (an active member)
        split_between: Iterable of {'user_id': ..., 'amount': ...} shares;
            every participant must be an active member
        currency: Expense currency (defaults to the group's default)
        category: One of ExpenseCategory
        receipt_url: Optional receipt reference
        notes: Optional notes

    Returns:
        The updated Group

    Raises:
        GroupNotFoundError: If group doesn't exist
        UnsupportedCurrencyError: If currency is not a supported currency
        InvalidAmountError: If amount is not positive or a share is negative
        CurrencyNotAllowedError: If the group only allows its default currency
        PayerNotMemberError: If the payer is not an active member
        InvalidSplitParticipantError: If a participant is not an active member
        SplitMismatchError: If shares differ from amount by more than 0.01
        ReceiptRequiredError: If the group requires a receipt and none given
    """
    group = lock_group(group_id=group_id)

    currency = (currency or group.default_currency).upper()
    if currency not in Currency.values:
        raise UnsupportedCurrencyError(
            f"Unsupported currency: {currency}",
            field='currency',
            value=currency,
        )

    amount = _to_amount(amount, 'amount')
    if amount <= ZERO or round_amount(amount) <= ZERO:
        raise InvalidAmountError(field='amount', value=amount)

    if not group.allow_multiple_currencies and currency != group.default_currency:
        raise CurrencyNotAllowedError(
            f"Only {group.default_currency} is allowed in this group",
            field='currency',
            value=currency,
            allowed=group.default_currency,
        )

    if category not in ExpenseCategory.values:
        raise GroupValidationError(
            f"Unsupported category: {category}",
            field='category',
            value=category,
        )

    active = {
        membership.user_id: membership
        for membership in group.active_memberships().select_related('user')
    }

    payer_key = parse_uuid(paid_by_id)
    payer = active.get(payer_key)
    if payer is None:
        raise PayerNotMemberError(field='paid_by', user_id=paid_by_id)

    shares = []
    invalid_users = []
    for split in split_between:
        user_key = parse_uuid(split.get('user_id'))
        share = _to_amount(split.get('amount'), 'split_between.amount')
        if share < ZERO:
            raise InvalidAmountError(
                "Split amounts cannot be negative",
                field='split_between.amount',
                user_id=split.get('user_id'),
                value=share,
            )
        if user_key not in active:
            invalid_users.append(split.get('user_id'))
            continue
        shares.append((active[user_key], share))

    if invalid_users:
        raise InvalidSplitParticipantError(field='split_between', user_ids=invalid_users)

    split_total = sum((share for _membership, share in shares), ZERO)
    if abs(split_total - amount) > TOLERANCE:
        raise SplitMismatchError(
            field='split_between',
            amount=amount,
            split_total=split_total,
        )

    if group.require_receipt_for_expenses and not receipt_url:
        raise ReceiptRequiredError(field='receipt_url')

    amount = round_amount(amount)
    stored_shares = _round_shares([share for _membership, share in shares])

    # Names are captured now and never refreshed
    expense = Expense.objects.create(
        group=group,
        description=description,
        amount=amount,
        currency=currency,
        paid_by=payer.user,
        paid_by_username=payer.user.get_display_name(),
        category=category,
        receipt_url=receipt_url or '',
        notes=notes or '',
        date=timezone.now(),
    )
    ExpenseSplit.objects.bulk_create([
        ExpenseSplit(
            expense=expense,
            user=membership.user,
            username=membership.user.get_display_name(),
            amount=share,
            position=position,
        )
        for position, ((membership, _exact), share) in enumerate(zip(shares, stored_shares))
    ])

    logger.info(
        "Expense %s added to group %s: %s %s paid by %s",
        expense.id, group.id, amount, currency, payer.user_id,
    )

    if group.auto_simplify_debts:
        rebuild_debts(group)

    group.save(update_fields=['updated_at'])
    return group


def get_expenses(*, group_id: UUID, currency: Optional[str] = None) -> QuerySet[Expense]:
    """
    Expenses of a group, newest first, optionally for one currency.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = get_group_by_id(group_id=group_id)

    expenses = group.expenses.select_related('paid_by').prefetch_related('splits')
    if currency:
        expenses = expenses.filter(currency=currency.upper())
    return expenses.order_by('-date')
