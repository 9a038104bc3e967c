"""
Reconciliation session -- pure state machine for matching an account
against a bank statement.

Responsibility:
    Holds one in-progress reconciliation: the statement figures, the balance
    already agreed by earlier reconciliations and a working copy of the
    status of every unreconciled transaction. Toggling, clearing and
    unclearing change only this working copy; ``plan_completion`` turns it
    into the list of writes the service must persist.

Architecture position:
    Engines -- pure calculation, zero I/O. Driven by
    ``envelope_modules.reconciliation.ReconciliationService``.

States::

    STARTED --complete--> COMPLETED
       |
       +-----cancel-----> CANCELLED

Invariants enforced:
    - ``cleared_balance == starting_balance + sum(session-CLEARED amounts)``
      and ``difference == statement_balance - cleared_balance`` after every
      change.
    - A non-zero difference never completes silently: the caller must choose
      to create an adjustment or to decline one.
    - Amount, date, payee and category are never changed; only status.
    - ``refresh`` brings the stored amounts up to date with the ledger, so
      totals never reflect an edit made after the session started.

Failure modes:
    - TransactionNotFoundError when toggling a transaction not in the session.
    - NoActiveReconciliationError on any change after completion or cancel.
    - UnresolvedDifferenceError from ``plan_completion`` without a choice.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID

from envelope_engines.tracer import traced_engine
from envelope_kernel.domain.dtos import Transaction, TransactionStatus
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import (
    NoActiveReconciliationError,
    TransactionNotFoundError,
    UnresolvedDifferenceError,
)
from envelope_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation.session")


class SessionState(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AdjustmentChoice(str, Enum):
    """How to finish a reconciliation whose difference is not zero."""

    CREATE = "create"
    DECLINE = "decline"


@dataclass(frozen=True, slots=True)
class CompletionPlan:
    """Writes needed to complete a session."""

    reconcile_ids: tuple[UUID, ...]
    status_writes: tuple[tuple[UUID, TransactionStatus], ...]
    difference: Money
    adjustment_amount: Money | None

    @property
    def declined(self) -> bool:
        return not self.difference.is_zero and self.adjustment_amount is None


class ReconciliationSession:
    def __init__(
        self,
        *,
        session_id: UUID,
        account_id: UUID,
        statement_date: date,
        statement_balance: Money,
        starting_balance: Money,
        transactions: Iterable[Transaction],
    ):
        self.session_id = session_id
        self.account_id = account_id
        self.statement_date = statement_date
        self.statement_balance = statement_balance
        self.starting_balance = starting_balance
        self.state = SessionState.STARTED

        self._transactions: dict[UUID, Transaction] = {}
        self._statuses: dict[UUID, TransactionStatus] = {}
        for txn in transactions:
            if txn.status.is_locked:
                continue
            self._transactions[txn.id] = txn
            self._statuses[txn.id] = txn.status

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.STARTED

    def __contains__(self, transaction_id: UUID) -> bool:
        return transaction_id in self._transactions

    def status_of(self, transaction_id: UUID) -> TransactionStatus:
        self._require_member(transaction_id)
        return self._statuses[transaction_id]

    def cleared_total(self) -> Money:
        return Money.sum(
            self._transactions[tid].amount
            for tid, status in self._statuses.items()
            if status is TransactionStatus.CLEARED
        )

    def cleared_balance(self) -> Money:
        return self.starting_balance + self.cleared_total()

    def difference(self) -> Money:
        return self.statement_balance - self.cleared_balance()

    def can_complete(self) -> bool:
        return self.difference().is_zero

    def pending(self) -> list[Transaction]:
        return self._with_status(TransactionStatus.PENDING)

    def cleared(self) -> list[Transaction]:
        return self._with_status(TransactionStatus.CLEARED)

    def _with_status(self, status: TransactionStatus) -> list[Transaction]:
        found = [
            self._transactions[tid]
            for tid, s in self._statuses.items()
            if s is status
        ]
        found.sort(key=lambda t: t.date)
        return found

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def toggle(self, transaction_id: UUID) -> TransactionStatus:
        """Flip PENDING <-> CLEARED and return the new session status."""
        current = self.status_of(transaction_id)
        new = (
            TransactionStatus.PENDING
            if current is TransactionStatus.CLEARED
            else TransactionStatus.CLEARED
        )
        return self.mark(transaction_id, new)

    def mark(self, transaction_id: UUID, status: TransactionStatus) -> TransactionStatus:
        self._require_open()
        self._require_member(transaction_id)
        if status is TransactionStatus.RECONCILED:
            raise ValueError("Transactions become reconciled only on completion")
        self._statuses[transaction_id] = status
        logger.debug(
            "reconciliation_transaction_marked",
            extra={
                "session_id": str(self.session_id),
                "transaction_id": str(transaction_id),
                "status": status.value,
                "difference_cents": self.difference().cents,
            },
        )
        return status

    def refresh(
        self,
        transactions: Iterable[Transaction],
        starting_balance: Money | None = None,
    ) -> tuple[UUID, ...]:
        """
        Replace the stored copies of member transactions with ``transactions``
        (their current state) so totals follow later edits.  Members missing
        from ``transactions`` or now locked are dropped; transactions that
        were never members are not added.  Working statuses are kept.

        Returns the ids dropped.
        """
        self._require_open()
        current = {t.id: t for t in transactions}
        dropped = tuple(
            tid
            for tid in self._transactions
            if tid not in current or current[tid].status.is_locked
        )
        for tid in dropped:
            del self._transactions[tid]
            del self._statuses[tid]
        for tid in self._transactions:
            self._transactions[tid] = current[tid]
        if starting_balance is not None:
            self.starting_balance = starting_balance
        if dropped:
            logger.warning(
                "reconciliation_transactions_dropped",
                extra={
                    "session_id": str(self.session_id),
                    "transaction_ids": [str(tid) for tid in dropped],
                },
            )
        return dropped

    @traced_engine("reconciliation", "1.0", fingerprint_fields=("adjustment",))
    def plan_completion(self, *, adjustment: AdjustmentChoice | None = None) -> CompletionPlan:
        """
        Decide what completing now would write. Does not change state; call
        ``mark_completed`` after the writes are persisted.
        """
        self._require_open()
        difference = self.difference()
        if not difference.is_zero and adjustment is None:
            raise UnresolvedDifferenceError(self.account_id, str(difference))

        reconcile_ids = tuple(t.id for t in self.cleared())
        status_writes = tuple(
            (tid, status)
            for tid, status in self._statuses.items()
            if status is not TransactionStatus.CLEARED
            and status is not self._transactions[tid].status
        )
        adjustment_amount = (
            difference
            if not difference.is_zero and adjustment is AdjustmentChoice.CREATE
            else None
        )
        return CompletionPlan(
            reconcile_ids=reconcile_ids,
            status_writes=status_writes,
            difference=difference,
            adjustment_amount=adjustment_amount,
        )

    def mark_completed(self) -> None:
        self._require_open()
        self.state = SessionState.COMPLETED

    def cancel(self) -> None:
        self._require_open()
        self.state = SessionState.CANCELLED

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self.state is not SessionState.STARTED:
            raise NoActiveReconciliationError(self.account_id)

    def _require_member(self, transaction_id: UUID) -> None:
        if transaction_id not in self._transactions:
            raise TransactionNotFoundError(transaction_id)
