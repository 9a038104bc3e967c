"""
envelope_modules.budget.income
==============================

Responsibility:
    Stores the income a user expects per budget period.  One expectation per
    period; setting it again overwrites.

Architecture:
    Module layer.  Owns its transaction boundary: commit on success,
    rollback and re-raise on failure.

Failure modes:
    - InvalidAmountError for a negative expected amount.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from envelope_kernel.domain.dtos import IncomeExpectation
from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money
from envelope_kernel.logging_config import get_logger
from envelope_kernel.models.budget import IncomeExpectationModel

logger = get_logger("modules.budget.income")


class IncomeService:
    def __init__(self, session: Session):
        self._session = session

    def set_expected_income(
        self, period: BudgetPeriod, amount: Money, notes: str = ""
    ) -> IncomeExpectation:
        try:
            model = self._find(period)
            if model is None:
                dto = IncomeExpectation(period=period, expected_amount=amount, notes=notes)
                dto.validate()
                model = IncomeExpectationModel.from_dto(dto)
                self._session.add(model)
            else:
                dto = IncomeExpectation(
                    id=model.id, period=period, expected_amount=amount, notes=notes
                )
                dto.validate()
                model.expected_amount = amount
                model.notes = notes
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "expected_income_set",
            extra={"period": period.format(), "amount_cents": amount.cents},
        )
        return model.to_dto()

    def get_expected_income(self, period: BudgetPeriod) -> IncomeExpectation | None:
        model = self._find(period)
        return model.to_dto() if model is not None else None

    def delete_expected_income(self, period: BudgetPeriod) -> bool:
        """Remove the expectation for ``period``; False when there was none."""
        try:
            model = self._find(period)
            if model is None:
                return False
            self._session.delete(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("expected_income_deleted", extra={"period": period.format()})
        return True

    def list_expectations(self) -> list[IncomeExpectation]:
        stmt = select(IncomeExpectationModel).order_by(IncomeExpectationModel.period_start)
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def _find(self, period: BudgetPeriod) -> IncomeExpectationModel | None:
        stmt = select(IncomeExpectationModel).where(
            IncomeExpectationModel.period_kind == period.kind.value,
            IncomeExpectationModel.period_start == period.start_date(),
            IncomeExpectationModel.period_end == period.end_date(),
        )
        return self._session.scalars(stmt).one_or_none()
