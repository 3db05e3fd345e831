"""
tests/unit/test_reconcile.py — End-to-end tests: splits → balances → payments.

What this file proves:
  - The documented group scenarios produce the documented payments
  - Calculator output, stored as an expense, reconciles to whole cents
  - get_balance_summary reports every balance, the payments and my_balance
  - The Ledger facade (create_ledger) wires config into the services and
    converts payload validation failures into LedgerError / SplitResult.error

Unit test constraints:
  - No I/O. Payloads are plain dicts, as a transport layer would pass them.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from groupledger.core import LedgerError, create_ledger
from groupledger.core.errors import ErrorCode
from groupledger.core.models.expense import Expense, SplitMode
from groupledger.core.models.settlement import Settlement
from groupledger.core.models.split import Split
from groupledger.core.models.transaction import Transaction
from groupledger.core.services.balance_service import (
    compute_balances,
    get_balance_summary,
    reconcile,
)
from groupledger.core.services.split_service import compute_splits


def _expense_from(paid_by: str, total: str, mode: SplitMode, assignments: list, id: str = "e1") -> Expense:
    """Runs the calculator and stores the result the way a collaborator would."""
    result = compute_splits(mode, total, assignments)
    assert result.ok, result.error
    return Expense(
        id=id,
        paid_by_user_id=paid_by,
        amount=Decimal(total),
        splits=tuple(result.splits),
        split_mode=mode,
    )


@pytest.fixture()
def ledger():
    return create_ledger("testing")


# ── Documented scenarios ───────────────────────────────────────────────────

def test_meal_for_three():
    meal = _expense_from("A", "30.00", SplitMode.EQUAL, ["A", "B", "C"])

    assert [s.owed_amount for s in meal.splits] == [Decimal("10.00")] * 3
    assert compute_balances([meal]) == {
        "A": Decimal("20.00"),
        "B": Decimal("-10.00"),
        "C": Decimal("-10.00"),
    }
    assert reconcile([meal]) == [
        Transaction("B", "A", Decimal("10.00")),
        Transaction("C", "A", Decimal("10.00")),
    ]


def test_ten_dollars_three_ways():
    """A absorbs the extra cent as first participant, then is owed 3.33 by each."""
    expense = _expense_from("A", "10.00", SplitMode.EQUAL, ["A", "B", "C"])

    assert [s.owed_amount for s in expense.splits] == [
        Decimal("3.34"), Decimal("3.33"), Decimal("3.33"),
    ]
    assert expense.split_total == Decimal("10.00")
    assert reconcile([expense]) == [
        Transaction("B", "A", Decimal("3.33")),
        Transaction("C", "A", Decimal("3.33")),
    ]


def test_deleted_participant_leaves_payer_partly_unpaid():
    expense = Expense(
        paid_by_user_id="A",
        amount=Decimal("30.00"),
        splits=(
            Split("A", Decimal("10.00")),
            Split("B", Decimal("10.00")),
            Split(None, Decimal("10.00")),
        ),
    )
    assert reconcile([expense]) == [Transaction("B", "A", Decimal("10.00"))]


def test_settled_group_needs_no_payments():
    meal = _expense_from("A", "30.00", SplitMode.EQUAL, ["A", "B", "C"])
    settlements = [
        Settlement("B", "A", Decimal("10.00")),
        Settlement("C", "A", Decimal("10.00")),
    ]
    assert reconcile([meal], settlements) == []


def test_trip_with_every_split_mode():
    expenses = [
        _expense_from("A", "90.00", SplitMode.EQUAL, ["A", "B", "C"], id="hotel"),
        _expense_from("B", "45.00", SplitMode.EXACT, [
            {"user_id": "A", "amount": "20.00"},
            {"user_id": "C", "amount": "25.00"},
        ], id="car"),
        _expense_from("C", "60.00", SplitMode.PERCENTAGE, [
            {"user_id": "A", "percentage": "50"},
            {"user_id": "B", "percentage": "25"},
            {"user_id": "C", "percentage": "25"},
        ], id="food"),
        _expense_from("A", "40.00", SplitMode.SHARES, [
            {"user_id": "B", "shares": 1},
            {"user_id": "C", "shares": 3},
        ], id="fuel"),
        _expense_from("B", "33.00", SplitMode.LINE_ITEM, [
            {"id": "1", "amount": "20.00", "assignments": [{"user_id": "A"}, {"user_id": "B"}]},
            {"id": "2", "amount": "10.00", "assignments": [{"user_id": "C"}]},
        ], id="bar"),
    ]

    balances = compute_balances(expenses)
    payments = reconcile(expenses)

    assert sum(balances.values(), Decimal("0.00")) == Decimal("0.00")
    assert len(payments) <= len(balances) - 1

    settled = dict(balances)
    for txn in payments:
        settled[txn.from_user_id] += txn.amount
        settled[txn.to_user_id] -= txn.amount
    assert set(settled.values()) == {Decimal("0.00")}


# ── get_balance_summary ────────────────────────────────────────────────────

def test_balance_summary_for_debtor():
    meal = _expense_from("A", "30.00", SplitMode.EQUAL, ["A", "B", "C"])

    summary = get_balance_summary([meal], [], current_user_id="B")

    assert summary.my_balance == Decimal("-10.00")
    assert summary.balances["A"] == Decimal("20.00")
    assert summary.transactions == reconcile([meal])


def test_balance_summary_for_outsider():
    meal = _expense_from("A", "30.00", SplitMode.EQUAL, ["A", "B", "C"])

    assert get_balance_summary([meal], [], current_user_id="Z").my_balance == Decimal("0.00")
    assert get_balance_summary([meal], [], current_user_id=None).my_balance == Decimal("0.00")


# ── Ledger facade ──────────────────────────────────────────────────────────

def test_ledger_compute_splits(ledger):
    result = ledger.compute_splits("equal", "10.00", ["a", "b", "c"])
    assert result.ok
    assert result.total == Decimal("10.00")


def test_ledger_compute_splits_logs_rejection(ledger, caplog):
    with caplog.at_level(logging.INFO, logger="groupledger"):
        result = ledger.compute_splits("equal", "10.00", [])
    assert result.error.code == ErrorCode.INVALID_INPUT
    assert any(ErrorCode.INVALID_INPUT in record.getMessage() for record in caplog.records)


def test_ledger_payload_success(ledger):
    result = ledger.compute_splits_from_payload({
        "mode": "shares",
        "total": "30.00",
        "assignments": [{"user_id": "a", "shares": "2"}, {"user_id": "b", "shares": "1"}],
    })
    assert result.splits == [Split("a", Decimal("20.00")), Split("b", Decimal("10.00"))]


def test_ledger_payload_calculator_error(ledger):
    result = ledger.compute_splits_from_payload({
        "mode": "exact",
        "total": "30.00",
        "assignments": [{"user_id": "a", "amount": "10.00"}],
    })
    assert result.error.code == ErrorCode.SPLIT_MISMATCH
    assert result.error.message == "Amounts sum to $10.00 but total is $30.00. Difference: $20.00"


@pytest.mark.parametrize("payload, code, field", [
    ({"mode": "weighted", "total": "10.00", "assignments": ["a"]}, ErrorCode.INVALID_SPLIT_MODE, "mode"),
    ({"mode": "equal", "total": "10.005", "assignments": ["a"]}, ErrorCode.INVALID_AMOUNT_PRECISION, "total"),
    ({"mode": "equal", "assignments": ["a"]}, ErrorCode.MISSING_FIELD, "total"),
    ({"mode": "equal", "total": "10.00", "assignments": [""]}, ErrorCode.INVALID_FIELD, "assignments"),
])
def test_ledger_payload_validation_error(ledger, payload, code, field):
    result = ledger.compute_splits_from_payload(payload)

    assert not result.ok
    assert result.splits == []
    assert result.error.code == code
    assert result.error.field == field


def test_ledger_reconcile(ledger):
    meal = _expense_from("A", "30.00", SplitMode.EQUAL, ["A", "B", "C"])
    assert ledger.reconcile([meal]) == reconcile([meal])


def test_ledger_verifies_split_sums(ledger, caplog):
    broken = Expense(
        id="broken",
        paid_by_user_id="A",
        amount=Decimal("30.00"),
        splits=(Split("A", Decimal("10.00")), Split("B", Decimal("10.00"))),
    )
    with caplog.at_level(logging.WARNING, logger="groupledger"):
        ledger.compute_balances([broken])
    assert any("broken" in record.getMessage() for record in caplog.records)


def test_ledger_reconcile_payload(ledger):
    expenses = [{
        "id": "e1",
        "paid_by_user_id": "A",
        "amount": "10.00",
        "splits": [
            {"user_id": "A", "owed_amount": "3.34"},
            {"user_id": "B", "owed_amount": "3.33"},
            {"user_id": "C", "owed_amount": "3.33"},
        ],
    }]
    settlements = [{"paid_by_user_id": "C", "paid_to_user_id": "A", "amount": "3.33"}]

    assert ledger.reconcile_payload(expenses, settlements, current_user_id="A") == {
        "balances": [
            {"user_id": "A", "balance": "3.33"},
            {"user_id": "B", "balance": "-3.33"},
            {"user_id": "C", "balance": "0.00"},
        ],
        "transactions": [{"from_user_id": "B", "to_user_id": "A", "amount": "3.33"}],
        "my_balance": "3.33",
        "balance_sum": "0.00",
    }


def test_ledger_load_expenses_raises_ledger_error(ledger):
    with pytest.raises(LedgerError) as exc:
        ledger.load_expenses([{
            "paid_by_user_id": "A",
            "amount": "10.001",
            "splits": [],
        }])
    assert exc.value.code == ErrorCode.INVALID_AMOUNT_PRECISION
    assert exc.value.field == "amount"


def test_ledger_load_settlements_raises_ledger_error(ledger):
    with pytest.raises(LedgerError) as exc:
        ledger.load_settlements([{"paid_by_user_id": "A", "amount": "5.00"}])
    assert exc.value.code == ErrorCode.MISSING_FIELD
    assert exc.value.field == "paid_to_user_id"
