"""
Reconciliation Domain Models (``envelope_modules.reconciliation.models``).

Frozen views returned by ``ReconciliationService``. Pure data, zero I/O.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from envelope_engines.reconciliation import ReconciliationSession, SessionState
from envelope_kernel.domain.dtos import Transaction
from envelope_kernel.domain.values import Money


@dataclass(frozen=True)
class ReconciliationSummary:
    """Snapshot of an open session."""

    session_id: UUID
    account_id: UUID
    statement_date: date
    statement_balance: Money
    starting_balance: Money
    pending: tuple[Transaction, ...]
    cleared: tuple[Transaction, ...]
    cleared_balance: Money
    difference: Money
    state: SessionState

    @property
    def can_complete(self) -> bool:
        return self.difference.is_zero

    @classmethod
    def of(cls, session: ReconciliationSession) -> "ReconciliationSummary":
        return cls(
            session_id=session.session_id,
            account_id=session.account_id,
            statement_date=session.statement_date,
            statement_balance=session.statement_balance,
            starting_balance=session.starting_balance,
            pending=tuple(session.pending()),
            cleared=tuple(session.cleared()),
            cleared_balance=session.cleared_balance(),
            difference=session.difference(),
            state=session.state,
        )


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of a completed reconciliation."""

    session_id: UUID
    account_id: UUID
    transactions_reconciled: int
    adjustment_transaction_id: UUID | None = None
    adjustment_amount: Money | None = None
    declined_difference: Money | None = None

    @property
    def adjustment_created(self) -> bool:
        return self.adjustment_transaction_id is not None
