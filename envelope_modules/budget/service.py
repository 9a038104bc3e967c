"""
envelope_modules.budget.service
===============================

Responsibility:
    Allocates money to categories per period, reports what each category
    has left (with rollover), computes Available to Budget and manages
    category targets.  This module is thin glue over the rollover engine
    and the kernel record services.

Architecture:
    Module layer.  Rollover arithmetic lives in ``envelope_engines.rollover``;
    this service supplies it with per-period figures from SQL and keeps its
    ``RolloverIndex`` honest through session listeners.

Invariants enforced:
    - ``move_between_categories`` is zero-sum: Available to Budget does not
      change and the two allocations change by -amount / +amount.
    - Rollover results equal a from-scratch recomputation.  Every flush that
      touches a transaction, split or allocation invalidates cached balances
      from the earliest affected date; a rollback drops the whole index.
    - Every mutating method commits on success and rolls back on failure.

Failure modes:
    - CategoryNotFoundError for an unknown category.
    - SameCategoryError / InvalidAmountError from ``move_between_categories``.
    - InvalidAmountError / InvalidCustomIntervalError from ``set_target``.

Usage::

    budget = BudgetService(session, clock)
    budget.assign_to_category(groceries_id, period, Money.parse("400.00"))
    summary = budget.get_category_summary(groceries_id, period)
"""

from __future__ import annotations

import dataclasses
from datetime import date
from itertools import chain
from uuid import UUID

from sqlalchemy import BigInteger, event, func, inspect, select
from sqlalchemy.orm import Session

from envelope_engines.rollover import PeriodFigures, RolloverCalculator, RolloverIndex
from envelope_kernel.domain.clock import Clock, SystemClock
from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.target import BudgetTarget, TargetCadence
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import InvalidAmountError, SameCategoryError
from envelope_kernel.logging_config import LogContext, get_logger
from envelope_kernel.models.account import AccountModel
from envelope_kernel.models.budget import BudgetAllocationModel, BudgetTargetModel
from envelope_kernel.models.transaction import SplitModel, TransactionModel
from envelope_kernel.services.account_service import sum_cents
from envelope_kernel.services.category_service import CategoryService
from envelope_kernel.services.period_service import PeriodService
from envelope_modules.budget.config import BudgetConfig
from envelope_modules.budget.display import render_overview as render_overview_text
from envelope_modules.budget.income import IncomeService
from envelope_modules.budget.models import BudgetOverview, CategoryBudgetSummary

logger = get_logger("modules.budget.service")


class BudgetService:
    """
    Orchestrates budgeting operations.

    Contract:
        Each public mutating method either commits and returns, or rolls
        back and re-raises.  Queries never write.

    Rollover cache:
        The ``RolloverIndex`` belongs to this service instance and observes
        only its own session.  Writes made through another session are not
        seen; share the session or call ``reset_rollover_cache``.

    Lifetime:
        The service registers listeners on the session.  Use it as a context
        manager, or call ``close``, so they are removed when it is done::

            with BudgetService(session) as budget:
                budget.assign_to_category(category_id, period, amount)
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BudgetConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or BudgetConfig.with_defaults()

        self._categories = CategoryService(session, auto_commit=False)
        self.income = IncomeService(session)
        self.periods = PeriodService(
            self._config.period_type, self._clock, self._config.biweekly_anchor
        )

        self._index = RolloverIndex()
        self._rollover = RolloverCalculator(
            self._index, self._period_figures, self._earliest_activity_date
        )
        event.listen(session, "after_flush", self._after_flush)
        event.listen(session, "after_rollback", self._after_rollback)

    def close(self) -> None:
        """Detach the cache listeners from the session."""
        if event.contains(self._session, "after_flush", self._after_flush):
            event.remove(self._session, "after_flush", self._after_flush)
        if event.contains(self._session, "after_rollback", self._after_rollback):
            event.remove(self._session, "after_rollback", self._after_rollback)
        self._index.clear()

    def __enter__(self) -> BudgetService:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def reset_rollover_cache(self) -> None:
        self._index.clear()

    # =========================================================================
    # Allocations
    # =========================================================================

    def assign_to_category(
        self, category_id: UUID, period: BudgetPeriod, amount: Money
    ) -> Money:
        """Set the category's allocation for ``period`` to ``amount``."""
        with LogContext.bind(category_id=str(category_id), period=period.format()):
            try:
                self._categories.ensure_exists(category_id)
                model = self._allocation_model(category_id, period, create=True)
                previous = model.budgeted
                model.budgeted = amount
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "budget_assigned",
                extra={"from_cents": previous.cents, "to_cents": amount.cents},
            )
        return amount

    def add_to_category(
        self, category_id: UUID, period: BudgetPeriod, amount: Money
    ) -> Money:
        """Increase the category's allocation for ``period`` by ``amount``."""
        with LogContext.bind(category_id=str(category_id), period=period.format()):
            try:
                self._categories.ensure_exists(category_id)
                model = self._allocation_model(category_id, period, create=True)
                model.budgeted = model.budgeted + amount
                total = model.budgeted
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "budget_added",
                extra={"amount_cents": amount.cents, "total_cents": total.cents},
            )
        return total

    def move_between_categories(
        self,
        from_category_id: UUID,
        to_category_id: UUID,
        period: BudgetPeriod,
        amount: Money,
    ) -> None:
        if from_category_id == to_category_id:
            raise SameCategoryError(from_category_id)
        if not amount.is_positive:
            raise InvalidAmountError(amount, "amount to move must be greater than zero")

        try:
            self._categories.ensure_exists(from_category_id)
            self._categories.ensure_exists(to_category_id)
            source = self._allocation_model(from_category_id, period, create=True)
            target = self._allocation_model(to_category_id, period, create=True)
            source.budgeted = source.budgeted - amount
            target.budgeted = target.budgeted + amount
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "budget_moved",
            extra={
                "from_category_id": str(from_category_id),
                "to_category_id": str(to_category_id),
                "period": period.format(),
                "amount_cents": amount.cents,
            },
        )

    def get_allocation(self, category_id: UUID, period: BudgetPeriod) -> Money:
        model = self._allocation_model(category_id, period)
        return model.budgeted if model is not None else Money.zero()

    def get_allocation_history(self, category_id: UUID) -> list[tuple[BudgetPeriod, Money]]:
        """Every stored allocation for the category, oldest first."""
        stmt = (
            select(BudgetAllocationModel)
            .where(BudgetAllocationModel.category_id == category_id)
            .order_by(BudgetAllocationModel.period_start)
        )
        return [(m.period, m.budgeted) for m in self._session.scalars(stmt)]

    # =========================================================================
    # Summaries
    # =========================================================================

    def get_category_summary(
        self, category_id: UUID, period: BudgetPeriod
    ) -> CategoryBudgetSummary:
        self._categories.ensure_exists(category_id)
        result = self._rollover.summarize(category_id=category_id, period=period)
        return CategoryBudgetSummary(
            category_id=category_id,
            period=period,
            budgeted=result.budgeted,
            activity=result.activity,
            carried_in=result.carried_in,
            available=result.available,
        )

    def get_available_to_budget(self, period: BudgetPeriod) -> Money:
        """
        On-budget money through the end of ``period`` minus everything
        assigned in periods starting on or before ``period``'s start.

        Archived on-budget accounts still count; their money does not leave
        the budget by being archived.
        """
        starting = sum_cents(
            self._session,
            select(func.sum(AccountModel.starting_balance, type_=BigInteger)).where(
                AccountModel.on_budget.is_(True)
            ),
        )
        posted = sum_cents(
            self._session,
            select(func.sum(TransactionModel.amount, type_=BigInteger))
            .join(AccountModel, TransactionModel.account_id == AccountModel.id)
            .where(
                AccountModel.on_budget.is_(True),
                TransactionModel.transfer_transaction_id.is_(None),
                TransactionModel.date <= period.end_date(),
            ),
        )
        assigned = sum_cents(
            self._session,
            select(func.sum(BudgetAllocationModel.budgeted, type_=BigInteger)).where(
                BudgetAllocationModel.period_start <= period.start_date()
            ),
        )
        return starting + posted - assigned

    def get_budget_overview(self, period: BudgetPeriod) -> BudgetOverview:
        summaries = [
            self.get_category_summary(c.id, period)
            for c in self._categories.list_categories()
        ]
        expectation = self.income.get_expected_income(period)
        return BudgetOverview(
            period=period,
            categories=tuple(summaries),
            total_budgeted=Money.sum(s.budgeted for s in summaries),
            total_activity=Money.sum(s.activity for s in summaries),
            total_available=Money.sum(s.available for s in summaries),
            available_to_budget=self.get_available_to_budget(period),
            expected_income=expectation.expected_amount if expectation else None,
        )

    def format_amount(self, amount: Money) -> str:
        """``amount`` with the configured currency symbol."""
        return amount.format(self._config.currency_symbol)

    def render_overview(self, period: BudgetPeriod) -> str:
        names = {c.id: c.name for c in self._categories.list_categories()}
        return render_overview_text(
            self.get_budget_overview(period), names, self._config.currency_symbol
        )

    def get_overspent_categories(self, period: BudgetPeriod) -> list[CategoryBudgetSummary]:
        return [
            s
            for s in (
                self.get_category_summary(c.id, period)
                for c in self._categories.list_categories()
            )
            if s.overspent
        ]

    # =========================================================================
    # Targets
    # =========================================================================

    def get_target(self, category_id: UUID) -> BudgetTarget | None:
        model = self._target_model(category_id)
        return model.to_dto() if model is not None else None

    def set_target(
        self,
        category_id: UUID,
        amount: Money,
        cadence: TargetCadence,
        notes: str = "",
    ) -> BudgetTarget:
        """Create or replace the category's target."""
        self._categories.ensure_exists(category_id)
        existing = self._target_model(category_id)
        dto = BudgetTarget(
            category_id=category_id,
            amount=amount,
            cadence=cadence,
            notes=notes,
        )
        if existing is not None:
            dto = dataclasses.replace(dto, id=existing.id)
        dto.validate()

        try:
            if existing is None:
                model = BudgetTargetModel.from_dto(dto)
                self._session.add(model)
            else:
                model = existing
                model.apply(dto)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "budget_target_set",
            extra={
                "category_id": str(category_id),
                "amount_cents": amount.cents,
                "cadence": cadence.kind.value,
            },
        )
        return model.to_dto()

    def remove_target(self, category_id: UUID) -> bool:
        """Delete the category's target; False when it had none."""
        try:
            model = self._target_model(category_id)
            if model is None:
                return False
            self._session.delete(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("budget_target_removed", extra={"category_id": str(category_id)})
        return True

    def get_suggested_budget(self, category_id: UUID, period: BudgetPeriod) -> Money | None:
        target = self.get_target(category_id)
        if target is None:
            return None
        return target.calculate_for_period(period)

    # =========================================================================
    # Income comparison
    # =========================================================================

    def total_budgeted(self, period: BudgetPeriod) -> Money:
        """Sum of every allocation in exactly ``period``."""
        stmt = select(func.sum(BudgetAllocationModel.budgeted, type_=BigInteger)).where(
            *self._period_clause(period)
        )
        return sum_cents(self._session, stmt)

    def is_over_expected_income(self, period: BudgetPeriod) -> bool:
        expectation = self.income.get_expected_income(period)
        if expectation is None:
            return False
        return expectation.is_over_budget(self.total_budgeted(period))

    def remaining_to_budget_from_income(self, period: BudgetPeriod) -> Money | None:
        expectation = self.income.get_expected_income(period)
        if expectation is None:
            return None
        return expectation.remaining_to_budget(self.total_budgeted(period))

    # =========================================================================
    # Rollover inputs
    # =========================================================================

    def _period_figures(self, category_id: UUID, period: BudgetPeriod) -> PeriodFigures:
        return PeriodFigures(
            budgeted=self.get_allocation(category_id, period),
            activity=self._activity(category_id, period.start_date(), period.end_date()),
        )

    def _activity(self, category_id: UUID, start: date, end: date) -> Money:
        direct = select(func.sum(TransactionModel.amount, type_=BigInteger)).where(
            TransactionModel.category_id == category_id,
            TransactionModel.transfer_transaction_id.is_(None),
            TransactionModel.date >= start,
            TransactionModel.date <= end,
        )
        split = (
            select(func.sum(SplitModel.amount, type_=BigInteger))
            .join(TransactionModel, SplitModel.transaction_id == TransactionModel.id)
            .where(
                SplitModel.category_id == category_id,
                TransactionModel.transfer_transaction_id.is_(None),
                TransactionModel.date >= start,
                TransactionModel.date <= end,
            )
        )
        return sum_cents(self._session, direct) + sum_cents(self._session, split)

    def _earliest_activity_date(self, category_id: UUID) -> date | None:
        candidates = [
            self._session.scalar(
                select(func.min(BudgetAllocationModel.period_start)).where(
                    BudgetAllocationModel.category_id == category_id
                )
            ),
            self._session.scalar(
                select(func.min(TransactionModel.date)).where(
                    TransactionModel.category_id == category_id
                )
            ),
            self._session.scalar(
                select(func.min(TransactionModel.date))
                .join(SplitModel, SplitModel.transaction_id == TransactionModel.id)
                .where(SplitModel.category_id == category_id)
            ),
        ]
        found = [d for d in candidates if d is not None]
        return min(found) if found else None

    # =========================================================================
    # Cache maintenance
    # =========================================================================

    def _after_flush(self, session: Session, flush_context) -> None:
        earliest: date | None = None
        for obj in chain(session.new, session.dirty, session.deleted):
            dates = _affected_dates(obj)
            if dates is None:
                self._index.clear()
                logger.debug("rollover_index_cleared", extra={"reason": "unknown_scope"})
                return
            for d in dates:
                if earliest is None or d < earliest:
                    earliest = d
        if earliest is not None:
            self._index.invalidate(earliest)

    def _after_rollback(self, session: Session) -> None:
        self._index.clear()

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _period_clause(period: BudgetPeriod):
        return (
            BudgetAllocationModel.period_kind == period.kind.value,
            BudgetAllocationModel.period_start == period.start_date(),
            BudgetAllocationModel.period_end == period.end_date(),
        )

    def _allocation_model(
        self, category_id: UUID, period: BudgetPeriod, create: bool = False
    ) -> BudgetAllocationModel | None:
        stmt = select(BudgetAllocationModel).where(
            BudgetAllocationModel.category_id == category_id,
            *self._period_clause(period),
        )
        model = self._session.scalars(stmt).one_or_none()
        if model is None and create:
            model = BudgetAllocationModel(category_id=category_id, budgeted=Money.zero())
            model.period = period
            self._session.add(model)
        return model

    def _target_model(self, category_id: UUID) -> BudgetTargetModel | None:
        stmt = select(BudgetTargetModel).where(BudgetTargetModel.category_id == category_id)
        return self._session.scalars(stmt).one_or_none()


def _affected_dates(obj) -> list[date] | None:
    """
    Dates whose rollover balances a pending change to ``obj`` can alter:
    current and previous values.  None means the scope cannot be told.
    """
    if isinstance(obj, TransactionModel):
        return _current_and_previous(obj, "date")
    if isinstance(obj, SplitModel):
        parent = obj.transaction
        if parent is None:
            return None
        return _current_and_previous(parent, "date")
    if isinstance(obj, BudgetAllocationModel):
        return _current_and_previous(obj, "period_start")
    return []


def _current_and_previous(obj, attr: str) -> list[date]:
    history = inspect(obj).attrs[attr].history
    values = [getattr(obj, attr), *history.deleted]
    return [v for v in values if v is not None]
