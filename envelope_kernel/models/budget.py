"""
Module: envelope_kernel.models.budget
Responsibility: ORM persistence for per-period allocations, category
    targets and income expectations.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - One allocation per (category, period) (uq_allocation_category_period).
    - One target per category (uq_target_category).
    - One income expectation per period (uq_income_period).

Periods are stored as (period_kind, period_start, period_end) so that range
queries ("every allocation starting on or before X") run in SQL.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from envelope_kernel.db.base import TrackedBase, UUIDString
from envelope_kernel.db.types import MoneyType
from envelope_kernel.domain.dtos import IncomeExpectation
from envelope_kernel.domain.period import BudgetPeriod, PeriodKind
from envelope_kernel.domain.target import BudgetTarget, CadenceKind, TargetCadence
from envelope_kernel.domain.values import Money


def period_from_columns(kind: str, start: date, end: date) -> BudgetPeriod:
    """Rebuild a BudgetPeriod from its stored columns."""
    period_kind = PeriodKind(kind)
    if period_kind is PeriodKind.MONTHLY:
        return BudgetPeriod.monthly(start.year, start.month)
    if period_kind is PeriodKind.WEEKLY:
        iso = start.isocalendar()
        return BudgetPeriod.weekly(iso.year, iso.week)
    if period_kind is PeriodKind.BI_WEEKLY:
        return BudgetPeriod.bi_weekly(start)
    return BudgetPeriod.custom(start, end)


class _PeriodColumns:
    period_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    @property
    def period(self) -> BudgetPeriod:
        return period_from_columns(self.period_kind, self.period_start, self.period_end)

    @period.setter
    def period(self, value: BudgetPeriod) -> None:
        self.period_kind = value.kind.value
        self.period_start = value.start_date()
        self.period_end = value.end_date()


class BudgetAllocationModel(_PeriodColumns, TrackedBase):
    """Amount assigned to one category for one period."""

    __tablename__ = "budget_allocations"

    __table_args__ = (
        UniqueConstraint(
            "category_id",
            "period_kind",
            "period_start",
            "period_end",
            name="uq_allocation_category_period",
        ),
        Index("idx_allocation_period_start", "period_start"),
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=False
    )
    budgeted: Mapped[Money] = mapped_column(MoneyType(), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    def __repr__(self) -> str:
        return f"<BudgetAllocationModel {self.period_kind}:{self.period_start} {self.budgeted}>"


class BudgetTargetModel(TrackedBase):
    __tablename__ = "budget_targets"

    __table_args__ = (
        UniqueConstraint("category_id", name="uq_target_category"),
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=False
    )
    amount: Mapped[Money] = mapped_column(MoneyType(), nullable=False)
    cadence_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    cadence_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cadence_target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self) -> BudgetTarget:
        return BudgetTarget(
            id=self.id,
            category_id=self.category_id,
            amount=self.amount,
            cadence=TargetCadence(
                kind=CadenceKind(self.cadence_kind),
                days=self.cadence_days,
                target_date=self.cadence_target_date,
            ),
            notes=self.notes,
            active=self.active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply(self, dto: BudgetTarget) -> None:
        """Copy every editable field of ``dto`` onto this row."""
        self.category_id = dto.category_id
        self.amount = dto.amount
        self.cadence_kind = dto.cadence.kind.value
        self.cadence_days = dto.cadence.days
        self.cadence_target_date = dto.cadence.target_date
        self.notes = dto.notes
        self.active = dto.active

    @classmethod
    def from_dto(cls, dto: BudgetTarget) -> "BudgetTargetModel":
        model = cls(id=dto.id)
        model.apply(dto)
        return model


class IncomeExpectationModel(_PeriodColumns, TrackedBase):
    __tablename__ = "income_expectations"

    __table_args__ = (
        UniqueConstraint(
            "period_kind", "period_start", "period_end", name="uq_income_period"
        ),
    )

    expected_amount: Mapped[Money] = mapped_column(MoneyType(), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    def to_dto(self) -> IncomeExpectation:
        return IncomeExpectation(
            id=self.id,
            period=self.period,
            expected_amount=self.expected_amount,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto: IncomeExpectation) -> "IncomeExpectationModel":
        model = cls(id=dto.id, expected_amount=dto.expected_amount, notes=dto.notes)
        model.period = dto.period
        return model
