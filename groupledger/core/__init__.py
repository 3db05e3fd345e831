"""
core/__init__.py — Ledger factory.

Pattern: create_ledger(config_name) creates and returns a configured Ledger.
         Nothing is initialised at import time — this enables:
           - Multiple isolated ledger instances in tests
           - Using the services directly without any configuration

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure the "groupledger" logger
  3. Expose the split, balance and reconcile operations behind one object
  4. Convert payload validation failures (marshmallow ValidationError) into
     LedgerError, so collaborators handle a single error type

The services themselves are pure functions and can be imported directly;
the Ledger adds config-driven behaviour (split-sum verification, logging)
and the payload ↔ record conversion at the boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from marshmallow import ValidationError

from groupledger.config import BaseConfig, config_by_name, validate_production_config
from groupledger.core.errors import LedgerError, error_from_validation
from groupledger.core.models.expense import Expense, SplitMode
from groupledger.core.models.money import Money
from groupledger.core.models.settlement import Settlement
from groupledger.core.models.split import SplitResult, UserId
from groupledger.core.models.transaction import BalanceSummary, Transaction
from groupledger.core.schemas.balance_schema import BalanceSummarySchema
from groupledger.core.schemas.expense_schema import ExpenseSchema
from groupledger.core.schemas.settlement_schema import SettlementSchema
from groupledger.core.schemas.split_request_schema import ComputeSplitsSchema
from groupledger.core.services import balance_service, split_service


logger = logging.getLogger("groupledger")


# ── Ledger ─────────────────────────────────────────────────────────────────

class Ledger:
    """Configured entry point for collaborators (web handlers, jobs, UI layers)."""

    def __init__(self, config: type[BaseConfig]) -> None:
        self.config = config

    # ── Split calculation ──────────────────────────────────────────────────

    def compute_splits(
            self,
            mode: SplitMode | str,
            total: Money,
            assignment_data: list,
    ) -> SplitResult:
        result = split_service.compute_splits(mode, total, assignment_data)
        if not result.ok:
            logger.info("Split calculation rejected: %s", result.error.code)
        return result

    def compute_splits_from_payload(self, payload: dict) -> SplitResult:
        """
        Validates a raw split request and computes it.

        A payload that fails schema validation comes back as a SplitResult
        carrying the first validation error; nothing is raised.
        """
        try:
            request = ComputeSplitsSchema().load(payload)
        except ValidationError as err:
            error = error_from_validation(err.messages)
            logger.info("Split request rejected: %s", error.code)
            return SplitResult(error=error)

        return self.compute_splits(request["mode"], request["total"], request["assignments"])

    # ── Balances ───────────────────────────────────────────────────────────

    def compute_balances(
            self,
            expenses: Iterable[Expense],
            settlements: Iterable[Settlement] = (),
    ) -> dict[UserId, Decimal]:
        return balance_service.compute_balances(
            expenses,
            settlements,
            verify_split_sums=self.config.VERIFY_SPLIT_SUMS,
        )

    def simplify_debts(self, balances: Mapping[UserId, Money]) -> list[Transaction]:
        return balance_service.simplify_debts(balances)

    def reconcile(
            self,
            expenses: Iterable[Expense],
            settlements: Iterable[Settlement] = (),
    ) -> list[Transaction]:
        return self.simplify_debts(self.compute_balances(expenses, settlements))

    def balance_summary(
            self,
            expenses: Iterable[Expense],
            settlements: Iterable[Settlement],
            current_user_id: UserId | None,
    ) -> BalanceSummary:
        return balance_service.get_balance_summary(
            expenses,
            settlements,
            current_user_id,
            verify_split_sums=self.config.VERIFY_SPLIT_SUMS,
        )

    # ── Payload boundary ───────────────────────────────────────────────────

    def load_expenses(self, payload: list[dict]) -> list[Expense]:
        """Raises LedgerError if any expense payload is malformed."""
        return _load(ExpenseSchema(many=True), payload)

    def load_settlements(self, payload: list[dict]) -> list[Settlement]:
        """Raises LedgerError if any settlement payload is malformed."""
        return _load(SettlementSchema(many=True), payload)

    def reconcile_payload(
            self,
            expenses: list[dict],
            settlements: list[dict],
            current_user_id: UserId | None = None,
    ) -> dict:
        """
        Payload in, payload out: loads stored records, computes the group
        view, and dumps it with every amount as a decimal string.

        Raises:
            LedgerError — a record failed validation; `field` names the
                          offending field inside that record.
        """
        summary = self.balance_summary(
            self.load_expenses(expenses),
            self.load_settlements(settlements),
            current_user_id,
        )
        return BalanceSummarySchema().dump(summary)


def _load(schema, payload):
    try:
        return schema.load(payload)
    except ValidationError as err:
        raise error_from_validation(_unwrap_index(err.messages)) from err


def _unwrap_index(messages):
    """many=True errors are keyed by list index; report the inner field."""
    if isinstance(messages, dict) and messages and all(isinstance(k, int) for k in messages):
        return next(iter(messages.values()))
    return messages


# ── Factory ────────────────────────────────────────────────────────────────

def create_ledger(config_name: str = "development") -> Ledger:
    """
    Creates and returns a configured Ledger.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Raises:
        ValueError — production config failed validate_production_config().
    """
    config_class = config_by_name.get(config_name, config_by_name["development"])

    if config_name == "production":
        validate_production_config(config_class)  # raises ValueError if misconfigured

    _configure_logging(config_class)
    return Ledger(config_class)


def _configure_logging(config: type[BaseConfig]) -> None:
    """
    Sets the "groupledger" logger level and attaches a stderr handler once.

    If the host application already configured handlers for this logger,
    only the level is changed.
    """
    logger.setLevel(config.LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
        logger.addHandler(handler)


__all__ = ["Ledger", "LedgerError", "create_ledger"]
