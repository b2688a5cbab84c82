"""
Debt management service.

Bridges the group ledger in the database and the pure simplifier in
debt_simplification.py: builds ledger entries, stores the resulting debts
and handles settlement.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import Debt, DebtStatus, Group

from .debt_simplification import (
    LedgerEntry,
    Transfer,
    compute_balances,
    round_amount,
    simplify_ledger,
)
from .exceptions import AlreadySettledError, DebtNotFoundError
from .group_management import get_group_by_id, lock_group, parse_uuid

logger = logging.getLogger(__name__)


def _load_ledger(group: Group):
    """
    Ledger entries, member order and display names for a group.

    Names start from the denormalized ledger values and are overridden by
    membership names, which include former members.
    """
    entries = []
    names = {}

    expenses = group.expenses.prefetch_related('splits').order_by('date', 'id')
    for expense in expenses:
        splits = tuple((split.user_id, split.amount) for split in expense.splits.all())
        entries.append(LedgerEntry(
            payer_id=expense.paid_by_id,
            amount=expense.amount,
            currency=expense.currency,
            splits=splits,
        ))
        names.setdefault(expense.paid_by_id, expense.paid_by_username)
        for split in expense.splits.all():
            names.setdefault(split.user_id, split.username)

    member_ids = []
    for membership in group.memberships.order_by('created_at', 'id'):
        names[membership.user_id] = membership.username
        if membership.is_active:
            member_ids.append(membership.user_id)

    return entries, member_ids, names


def _replace_debts(group: Group, transfers: List[Transfer], names: Dict[UUID, str]) -> List[Debt]:
    """
    Replace every stored debt of the group with freshly simplified ones.

    Settled and disputed records are discarded along with pending ones, so
    settling a debt and then adding an expense erases the settlement.
    """
    group.debts.all().delete()

    debts = [
        Debt(
            group=group,
            from_user_id=transfer.debtor_id,
            from_username=names.get(transfer.debtor_id, ''),
            to_user_id=transfer.creditor_id,
            to_username=names.get(transfer.creditor_id, ''),
            amount=transfer.amount,
            currency=transfer.currency,
            status=DebtStatus.PENDING,
            position=position,
        )
        for position, transfer in enumerate(transfers)
    ]
    return Debt.objects.bulk_create(debts)


def rebuild_debts(group: Group) -> List[Debt]:
    """
    Recompute the group's debts from its entire ledger.

    The caller must hold the group's row lock.
    """
    entries, member_ids, names = _load_ledger(group)
    transfers = simplify_ledger(entries, member_ids)
    debts = _replace_debts(group, transfers, names)

    logger.info("Recalculated debts for group %s: %d transfers", group.id, len(debts))
    return debts


@transaction.atomic
def recalculate_debts(*, group_id: UUID) -> List[Debt]:
    """
    Explicitly recompute a group's debts.

    Calling this twice without an intervening expense yields the same set.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = lock_group(group_id=group_id)
    debts = rebuild_debts(group)
    group.save(update_fields=['updated_at'])
    return debts


def get_debts(*, group_id: UUID, currency: Optional[str] = None) -> QuerySet[Debt]:
    """
    Stored debts of a group in emission order, optionally for one currency.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = get_group_by_id(group_id=group_id)

    debts = group.debts.select_related('from_user', 'to_user', 'settled_by')
    if currency:
        debts = debts.filter(currency=currency.upper())
    return debts.order_by('position')


def get_balances(*, group_id: UUID) -> Dict[str, Dict[UUID, Decimal]]:
    """
    Net balance of each member per currency, rounded to cents.

    Positive means the member is owed money. Read-only; uses the same
    computation as the simplifier.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = get_group_by_id(group_id=group_id)
    entries, member_ids, _names = _load_ledger(group)

    return {
        currency: {member_id: round_amount(amount) for member_id, amount in balances.items()}
        for currency, balances in compute_balances(entries, member_ids).items()
    }


@transaction.atomic
def settle_debt(*, group_id: UUID, debt_id: UUID, settled_by: User) -> Group:
    """
    Mark a pending debt as settled.

    Does not re-run the simplifier.

    Raises:
        GroupNotFoundError: If group doesn't exist
        DebtNotFoundError: If the debt is not part of this group
        AlreadySettledError: If the debt is not pending
    """
    group = lock_group(group_id=group_id)

    debt = None
    if parse_uuid(debt_id) is not None:
        debt = group.debts.filter(id=debt_id).first()
    if debt is None:
        raise DebtNotFoundError(group_id=group.id, debt_id=debt_id)

    if debt.status != DebtStatus.PENDING:
        raise AlreadySettledError(debt_id=debt.id, status=debt.status)

    debt.status = DebtStatus.SETTLED
    debt.settled_at = timezone.now()
    debt.settled_by = settled_by
    debt.save(update_fields=['status', 'settled_at', 'settled_by'])
    group.save(update_fields=['updated_at'])

    logger.info("Debt %s in group %s settled by %s", debt.id, group.id, settled_by.id)
    return group
