"""
envelope_modules.reconciliation.service
=======================================

Responsibility:
    Drives ``ReconciliationSession`` objects against the database: loads the
    account's unreconciled transactions at start, keeps one open session per
    account, and persists the completion plan (reconciled statuses, written
    back toggles, optional adjustment transaction, account reconcile stamp).

Architecture:
    Module layer.  The session state machine lives in
    ``envelope_engines.reconciliation``; record writes go through
    ``TransactionService`` and ``AccountService`` with ``auto_commit=False``
    so completion is a single database transaction owned here.

Invariants enforced:
    - At most one open session per account.
    - Completion either persists every write or none; on failure the
      session stays open.
    - Amount, date, payee and category of existing transactions are never
      changed; only status.
    - Summaries, toggles and completion reload the session's transactions
      first, so an amount edited after ``start`` counts at its current value
      and a deleted transaction drops out of the session.

Failure modes:
    - AccountNotFoundError / AccountArchivedError from ``start``.
    - ReconciliationInProgressError when a session is already open.
    - NoActiveReconciliationError for an account with no open session.
    - LockedError when toggling a reconciled transaction.
    - UnresolvedDifferenceError when completing with a non-zero difference
      and no adjustment choice.

Usage::

    service = ReconciliationService(session, clock)
    service.start(account_id, date(2025, 1, 31), Money.parse("935.00"))
    service.toggle(account_id, txn_id)
    result = service.complete(account_id)
"""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from envelope_engines.reconciliation import (
    AdjustmentChoice,
    ReconciliationSession,
)
from envelope_kernel.domain.clock import Clock, SystemClock
from envelope_kernel.domain.dtos import TransactionStatus
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import (
    AccountArchivedError,
    LockedError,
    NoActiveReconciliationError,
    ReconciliationInProgressError,
)
from envelope_kernel.logging_config import LogContext, get_logger
from envelope_kernel.services.account_service import AccountService
from envelope_kernel.services.transaction_service import TransactionService
from envelope_modules.reconciliation.config import ReconciliationConfig
from envelope_modules.reconciliation.models import (
    ReconciliationResult,
    ReconciliationSummary,
)

logger = get_logger("modules.reconciliation.service")


class ReconciliationService:
    """
    Orchestrates statement reconciliation for accounts.

    Transaction boundary:
        ``start``, ``toggle`` and ``cancel`` touch no rows.  ``complete``
        commits on success and rolls back on failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReconciliationConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReconciliationConfig.with_defaults()

        self._accounts = AccountService(session, auto_commit=False)
        self._transactions = TransactionService(session, auto_commit=False)

        self._open: dict[UUID, ReconciliationSession] = {}

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(
        self,
        account_id: UUID,
        statement_date: date,
        statement_balance: Money,
        replace: bool = False,
    ) -> ReconciliationSummary:
        account = self._accounts.get(account_id)
        if account.archived:
            raise AccountArchivedError(account_id, "reconcile")

        existing = self._open.get(account_id)
        if existing is not None:
            if not replace:
                raise ReconciliationInProgressError(account_id, existing.session_id)
            existing.cancel()
            logger.warning(
                "reconciliation_session_replaced",
                extra={
                    "account_id": str(account_id),
                    "replaced_session_id": str(existing.session_id),
                },
            )

        recon = ReconciliationSession(
            session_id=uuid4(),
            account_id=account_id,
            statement_date=statement_date,
            statement_balance=statement_balance,
            starting_balance=self._accounts.calculate_reconciled_balance(account_id),
            transactions=self._transactions.list_unreconciled(account_id),
        )
        self._open[account_id] = recon

        with LogContext.bind(account_id=str(account_id), session_id=str(recon.session_id)):
            logger.info(
                "reconciliation_started",
                extra={
                    "statement_date": statement_date.isoformat(),
                    "statement_balance_cents": statement_balance.cents,
                    "starting_balance_cents": recon.starting_balance.cents,
                    "difference_cents": recon.difference().cents,
                },
            )
        return ReconciliationSummary.of(recon)

    def cancel(self, account_id: UUID) -> None:
        recon = self.get_session(account_id)
        recon.cancel()
        del self._open[account_id]
        logger.info(
            "reconciliation_cancelled",
            extra={"account_id": str(account_id), "session_id": str(recon.session_id)},
        )

    # =========================================================================
    # Working state
    # =========================================================================

    def toggle(self, account_id: UUID, transaction_id: UUID) -> ReconciliationSummary:
        recon = self._current_session(account_id)
        self._refuse_locked(recon, transaction_id)
        recon.toggle(transaction_id)
        return ReconciliationSummary.of(recon)

    def clear(self, account_id: UUID, transaction_id: UUID) -> ReconciliationSummary:
        return self._mark(account_id, transaction_id, TransactionStatus.CLEARED)

    def unclear(self, account_id: UUID, transaction_id: UUID) -> ReconciliationSummary:
        return self._mark(account_id, transaction_id, TransactionStatus.PENDING)

    def _mark(
        self, account_id: UUID, transaction_id: UUID, status: TransactionStatus
    ) -> ReconciliationSummary:
        recon = self._current_session(account_id)
        self._refuse_locked(recon, transaction_id)
        recon.mark(transaction_id, status)
        return ReconciliationSummary.of(recon)

    def get_session(self, account_id: UUID) -> ReconciliationSession:
        recon = self._open.get(account_id)
        if recon is None:
            raise NoActiveReconciliationError(account_id)
        return recon

    def get_summary(self, account_id: UUID) -> ReconciliationSummary:
        return ReconciliationSummary.of(self._current_session(account_id))

    def has_open_session(self, account_id: UUID) -> bool:
        return account_id in self._open

    # =========================================================================
    # Completion
    # =========================================================================

    def complete(
        self,
        account_id: UUID,
        adjustment: AdjustmentChoice | None = None,
        adjustment_category_id: UUID | None = None,
    ) -> ReconciliationResult:
        """
        Persist the session.

        Preconditions:
            - An open session exists for ``account_id``.
            - The difference is zero, or ``adjustment`` says what to do.
        Postconditions:
            - Every session-CLEARED transaction is RECONCILED, other changed
              statuses are written back, and the account carries the
              statement date and balance as its last reconciliation.
            - With ``AdjustmentChoice.CREATE`` one reconciled adjustment
              transaction for the difference exists.
        Raises:
            UnresolvedDifferenceError, CategoryNotFoundError.  Any exception
            rolls the session back and leaves the reconciliation open.
        """
        recon = self._current_session(account_id)
        plan = recon.plan_completion(adjustment=adjustment)

        with LogContext.bind(account_id=str(account_id), session_id=str(recon.session_id)):
            try:
                for transaction_id, status in plan.status_writes:
                    self._transactions.set_status(transaction_id, status)
                for transaction_id in plan.reconcile_ids:
                    self._transactions.set_status(transaction_id, TransactionStatus.RECONCILED)

                adjustment_id = None
                if plan.adjustment_amount is not None:
                    created = self._transactions.create(
                        account_id=account_id,
                        date=recon.statement_date,
                        amount=plan.adjustment_amount,
                        payee_name=self._config.adjustment_payee,
                        category_id=adjustment_category_id,
                        memo=self._config.adjustment_memo,
                        status=TransactionStatus.CLEARED,
                    )
                    self._transactions.set_status(created.id, TransactionStatus.RECONCILED)
                    adjustment_id = created.id
                    logger.info(
                        "reconciliation_adjustment_created",
                        extra={
                            "transaction_id": str(adjustment_id),
                            "amount_cents": plan.adjustment_amount.cents,
                        },
                    )

                self._accounts.mark_reconciled(
                    account_id, recon.statement_date, recon.statement_balance
                )
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.exception("reconciliation_completion_failed")
                raise

            recon.mark_completed()
            del self._open[account_id]

            if plan.declined:
                logger.warning(
                    "reconciliation_difference_declined",
                    extra={"difference_cents": plan.difference.cents},
                )
            logger.info(
                "reconciliation_completed",
                extra={
                    "transactions_reconciled": len(plan.reconcile_ids),
                    "statement_balance_cents": recon.statement_balance.cents,
                },
            )

        return ReconciliationResult(
            session_id=recon.session_id,
            account_id=account_id,
            transactions_reconciled=len(plan.reconcile_ids),
            adjustment_transaction_id=adjustment_id,
            adjustment_amount=plan.adjustment_amount,
            declined_difference=plan.difference if plan.declined else None,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _current_session(self, account_id: UUID) -> ReconciliationSession:
        """The open session with its transactions reloaded from the ledger."""
        recon = self.get_session(account_id)
        recon.refresh(
            self._transactions.list_unreconciled(account_id),
            starting_balance=self._accounts.calculate_reconciled_balance(account_id),
        )
        return recon

    def _refuse_locked(self, recon: ReconciliationSession, transaction_id: UUID) -> None:
        if transaction_id in recon:
            return
        model = self._transactions.get_model(transaction_id)
        if model.is_locked:
            raise LockedError(transaction_id, "toggled")
