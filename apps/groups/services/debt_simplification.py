"""
Debt simplification.

Pure functions over plain data: no ORM access happens here, so the
algorithm can be exercised directly in unit tests. The database-facing
side lives in debt_management.py.

Balances are computed per currency from the entire ledger and reduced with
a greedy largest-first matching of creditors against debtors, which emits at
most (members with a nonzero balance - 1) transfers per currency.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Hashable, Iterable, List, NamedTuple, Sequence, Tuple

ZERO = Decimal('0')
TOLERANCE = Decimal('0.01')
CENT = Decimal('0.01')


class LedgerEntry(NamedTuple):
    """One expense reduced to what the simplifier needs."""
    payer_id: Hashable
    amount: Decimal
    currency: str
    splits: Tuple[Tuple[Hashable, Decimal], ...]


class Transfer(NamedTuple):
    """One settle-up payment: debtor pays creditor."""
    debtor_id: Hashable
    creditor_id: Hashable
    amount: Decimal
    currency: str


def round_amount(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_balances(
    entries: Iterable[LedgerEntry],
    member_ids: Sequence[Hashable],
) -> Dict[str, Dict[Hashable, Decimal]]:
    """
    Net balance of every member, per currency.

    Positive balance means the member is owed money, negative means they owe.
    Each currency's mapping starts with every id in member_ids (in that order)
    at zero; ids that only appear in the ledger, such as former members with
    history, are appended the first time they are seen. Currencies appear in
    order of first use.
    """
    balances: Dict[str, Dict[Hashable, Decimal]] = {}

    for entry in entries:
        ledger = balances.get(entry.currency)
        if ledger is None:
            ledger = {member_id: ZERO for member_id in member_ids}
            balances[entry.currency] = ledger

        ledger[entry.payer_id] = ledger.get(entry.payer_id, ZERO) + entry.amount
        for participant_id, share in entry.splits:
            ledger[participant_id] = ledger.get(participant_id, ZERO) - share

    return balances


def simplify_balances(balances: Dict[Hashable, Decimal], currency: str) -> List[Transfer]:
    """
    Reduce one currency's balances to a minimal list of transfers.

    Creditors and debtors are each sorted by descending magnitude with a
    stable sort, so equal amounts keep the order of the balances mapping
    (join order). The two lists are then swept with two pointers.
    """
    creditors = [[member_id, amount] for member_id, amount in balances.items() if amount > TOLERANCE]
    debtors = [[member_id, -amount] for member_id, amount in balances.items() if amount < -TOLERANCE]

    creditors.sort(key=lambda item: item[1], reverse=True)
    debtors.sort(key=lambda item: item[1], reverse=True)

    transfers = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]

        settle_amount = min(creditor[1], debtor[1])
        if settle_amount > TOLERANCE:
            transfers.append(Transfer(
                debtor_id=debtor[0],
                creditor_id=creditor[0],
                amount=round_amount(settle_amount),
                currency=currency,
            ))

        creditor[1] -= settle_amount
        debtor[1] -= settle_amount

        if creditor[1] < TOLERANCE:
            i += 1
        if debtor[1] < TOLERANCE:
            j += 1

    return transfers


def simplify_ledger(
    entries: Iterable[LedgerEntry],
    member_ids: Sequence[Hashable],
) -> List[Transfer]:
    """Transfers for every currency in the ledger, concatenated in currency order."""
    transfers = []
    for currency, balances in compute_balances(entries, member_ids).items():
        transfers.extend(simplify_balances(balances, currency))
    return transfers
