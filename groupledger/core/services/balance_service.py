"""
services/balance_service.py — Balance computation and debt simplification.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula must not be reimplemented elsewhere in the codebase.
Any change to how balances work must be made here; all other behaviour
follows from it.

Layer rules:
  - No I/O. Receives already-loaded Expense and Settlement records.
  - Returns plain dicts and lists of frozen records.
  - Pure: identical input always yields identical output, in identical order.

Deleted accounts:
  Account deletion nulls participant references in stored records. The
  ledger never resurrects those identities:
    - expense with no payer         → skipped entirely (payer's credit forgiven)
    - split with no participant     → skipped (that debt is forgiven, and the
                                      payer is not credited for it either)
    - settlement missing either end → skipped
  Because every skip drops a credit AND its matching debit, the balance sum
  stays zero; what changes is that a payer is owed less than the expense
  implies. compute_forgiven_credits() reports that gap.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from groupledger.core.models.expense import Expense
from groupledger.core.models.money import Money, from_cents, to_cents, to_decimal
from groupledger.core.models.settlement import Settlement
from groupledger.core.models.split import UserId
from groupledger.core.models.transaction import BalanceSummary, Transaction


logger = logging.getLogger(__name__)

# Half a cent. Balances within EPSILON of zero count as settled.
EPSILON = Decimal("0.005")


# ── Core algorithms ────────────────────────────────────────────────────────

def compute_balances(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement] = (),
        verify_split_sums: bool = False,
) -> dict[UserId, Decimal]:
    """
    Canonical balance computation for a group.

    Returns {user_id: net_balance}. Positive means the participant is owed
    money; negative means they owe. Participants only appear once a record
    touches them; a zero entry is possible and callers must accept it.

    Algorithm:
      1. For each split of each expense, credit the payer and debit the
         participant by owed_amount (skipped when they are the same person).
      2. For each settlement, credit the payer and debit the recipient.

    Args:
        verify_split_sums: Log a warning for each expense whose splits do not
                           add up to its amount. Informational only; the
                           expense is still applied as recorded.
    """
    balances: dict[UserId, int] = {}

    def add(user_id: UserId, cents: int) -> None:
        balances[user_id] = balances.get(user_id, 0) + cents

    # Step 1: Expenses.
    for expense in expenses:
        if verify_split_sums and expense.split_total != expense.amount:
            logger.warning(
                "Expense %s splits sum to %s but amount is %s",
                expense.id, expense.split_total, expense.amount,
            )

        payer = expense.paid_by_user_id
        if payer is None:
            logger.debug("Skipping expense %s: payer account deleted", expense.id)
            continue

        for split in expense.splits:
            if split.user_id is None:
                logger.debug("Skipping split on expense %s: participant account deleted", expense.id)
                continue
            if split.user_id == payer:
                continue
            cents = to_cents(split.owed_amount)
            add(payer, cents)            # creditor
            add(split.user_id, -cents)   # debtor

    # Step 2: Settlements reduce outstanding debt.
    for settlement in settlements:
        if settlement.paid_by_user_id is None or settlement.paid_to_user_id is None:
            logger.debug("Skipping settlement %s: party account deleted", settlement.id)
            continue
        cents = to_cents(settlement.amount)
        add(settlement.paid_by_user_id, cents)    # paid off debt
        add(settlement.paid_to_user_id, -cents)   # received payment

    return {uid: from_cents(cents) for uid, cents in balances.items()}


def compute_forgiven_credits(expenses: Iterable[Expense]) -> dict[UserId, Decimal]:
    """
    Per payer, the total owed to them by participants whose accounts were
    deleted. compute_balances() drops these amounts; this makes the gap
    explainable ("you fronted $30, three ways, but one share was forgiven").

    Expenses without a payer are not reported: there is nobody to tell.
    """
    forgiven: dict[UserId, int] = {}
    for expense in expenses:
        if expense.paid_by_user_id is None:
            continue
        for split in expense.splits:
            if split.user_id is None:
                forgiven[expense.paid_by_user_id] = (
                    forgiven.get(expense.paid_by_user_id, 0) + to_cents(split.owed_amount)
                )
    return {uid: from_cents(cents) for uid, cents in forgiven.items()}


def simplify_debts(balances: Mapping[UserId, Money]) -> list[Transaction]:
    """
    Greedy minimum cash flow debt simplification.

    Repeatedly matches the largest remaining debtor with the largest remaining
    creditor. Each step retires at least one of them, so N participants with
    non-zero balances produce at most N-1 transactions. This bound is all the
    greedy pass guarantees; it does not always find the fewest transactions.

    Ordering is deterministic: creditors and debtors are each sorted by amount,
    descending, and equal amounts keep their order in `balances`. Transactions
    are returned in the order they are produced.

    Args:
        balances: {user_id: net_balance}, normally from compute_balances().
                  Entries within EPSILON of zero are ignored.

    Returns:
        List of Transaction; empty when everything is settled. If the input
        does not sum to zero the leftover stays unmatched; nothing is raised.
    """
    creditors: list[list] = []
    debtors: list[list] = []

    for uid, balance in balances.items():
        if uid is None:
            continue
        amount = to_decimal(balance)
        if amount > EPSILON:
            creditors.append([uid, amount])
        elif amount < -EPSILON:
            debtors.append([uid, -amount])

    # sorted() is stable, so equal amounts keep input order.
    creditors = sorted(creditors, key=lambda entry: entry[1], reverse=True)
    debtors = sorted(debtors, key=lambda entry: entry[1], reverse=True)

    transactions: list[Transaction] = []
    i = j = 0

    # Matching runs on the exact amounts; only emitted payments are rounded.
    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]

        transfer = min(creditor[1], debtor[1])
        cents = to_cents(transfer)
        if cents > 0:
            transactions.append(Transaction(
                from_user_id=debtor[0],
                to_user_id=creditor[0],
                amount=from_cents(cents),
            ))

        creditor[1] -= transfer
        debtor[1] -= transfer

        if creditor[1] <= EPSILON:
            i += 1
        if debtor[1] <= EPSILON:
            j += 1

    return transactions


def reconcile(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement] = (),
) -> list[Transaction]:
    """Expenses + settlements → suggested payments."""
    return simplify_debts(compute_balances(expenses, settlements))


def get_balance_summary(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        current_user_id: UserId | None,
        verify_split_sums: bool = False,
) -> BalanceSummary:
    """
    Builds the group view: every balance, the suggested payments, and the
    viewing participant's own balance (0.00 if no record touches them).
    """
    balances = compute_balances(expenses, settlements, verify_split_sums=verify_split_sums)
    return BalanceSummary(
        balances=balances,
        transactions=simplify_debts(balances),
        my_balance=balances.get(current_user_id, Decimal("0.00")),
    )
