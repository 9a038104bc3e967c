"""
BudgetTarget -- Recurring funding goal for a category.

Responsibility:
    Describes how much a category should receive and how often, and projects
    that goal onto any budget period so the engine can suggest an amount to
    assign.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Projection uses exact Decimal arithmetic on cents, never float.
    - Rounding is half away from zero; by-date goals round up so the goal is
      met on time; monthly-to-bi-weekly and yearly-to-monthly truncate.
    - Inactive targets project to zero.

Failure modes:
    - InvalidAmountError from ``validate`` on a zero or negative amount.
    - InvalidCustomIntervalError from ``validate`` on a custom cadence of
      fewer than one day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID, uuid4

from envelope_kernel.domain.period import BudgetPeriod, PeriodKind
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import InvalidAmountError, InvalidCustomIntervalError

# Average number of weeks in a month used for monthly -> weekly projection
WEEKS_PER_MONTH = Decimal("4.33")


class CadenceKind(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"
    BY_DATE = "by_date"


@dataclass(frozen=True, slots=True)
class TargetCadence:
    """How often a target repeats. ``days`` is set for CUSTOM, ``target_date`` for BY_DATE."""

    kind: CadenceKind
    days: int | None = None
    target_date: date | None = None

    @classmethod
    def weekly(cls) -> TargetCadence:
        return cls(CadenceKind.WEEKLY)

    @classmethod
    def monthly(cls) -> TargetCadence:
        return cls(CadenceKind.MONTHLY)

    @classmethod
    def yearly(cls) -> TargetCadence:
        return cls(CadenceKind.YEARLY)

    @classmethod
    def custom(cls, days: int) -> TargetCadence:
        return cls(CadenceKind.CUSTOM, days=days)

    @classmethod
    def by_date(cls, target_date: date) -> TargetCadence:
        return cls(CadenceKind.BY_DATE, target_date=target_date)

    def description(self) -> str:
        if self.kind is CadenceKind.CUSTOM:
            return f"Every {self.days} days"
        if self.kind is CadenceKind.BY_DATE:
            return f"By {self.target_date.isoformat()}"
        return self.kind.value.capitalize()

    def __str__(self) -> str:
        return self.description()


@dataclass(frozen=True)
class BudgetTarget:
    """
    A funding goal attached to exactly one category.

    Contract:
        Immutable. Edits produce a new instance via ``dataclasses.replace``;
        the service layer persists the replacement.
    """

    category_id: UUID
    amount: Money
    cadence: TargetCadence
    id: UUID = field(default_factory=uuid4)
    notes: str = ""
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def validate(self) -> None:
        if self.amount.is_negative:
            raise InvalidAmountError(self.amount, "target amount cannot be negative")
        if self.amount.is_zero:
            raise InvalidAmountError(self.amount, "target amount must be greater than zero")
        if self.cadence.kind is CadenceKind.CUSTOM and (self.cadence.days or 0) < 1:
            raise InvalidCustomIntervalError(
                self.cadence.days, "custom interval must be at least 1 day"
            )

    def calculate_for_period(self, period: BudgetPeriod) -> Money:
        """Suggested amount to budget in ``period`` to stay on track."""
        if not self.active:
            return Money.zero()

        kind = self.cadence.kind
        if kind is CadenceKind.WEEKLY:
            return self._weekly_for(period)
        if kind is CadenceKind.MONTHLY:
            return self._monthly_for(period)
        if kind is CadenceKind.YEARLY:
            return self._yearly_for(period)
        if kind is CadenceKind.CUSTOM:
            return _rounded(Decimal(self.amount.cents) * period.days() / self.cadence.days)
        if kind is CadenceKind.BY_DATE:
            return self._by_date_for(period)
        raise AssertionError(f"unhandled cadence kind {kind}")

    def _weekly_for(self, period: BudgetPeriod) -> Money:
        cents = Decimal(self.amount.cents)
        if period.kind is PeriodKind.WEEKLY:
            return self.amount
        if period.kind is PeriodKind.BI_WEEKLY:
            return Money(self.amount.cents * 2)
        # monthly and custom both scale by day count
        return _rounded(cents * period.days() / 7)

    def _monthly_for(self, period: BudgetPeriod) -> Money:
        cents = Decimal(self.amount.cents)
        if period.kind is PeriodKind.MONTHLY:
            return self.amount
        if period.kind is PeriodKind.WEEKLY:
            return _rounded(cents / WEEKS_PER_MONTH)
        if period.kind is PeriodKind.BI_WEEKLY:
            return Money(_truncating_div(self.amount.cents, 2))
        return _rounded(cents * period.days() / 30)

    def _yearly_for(self, period: BudgetPeriod) -> Money:
        cents = Decimal(self.amount.cents)
        if period.kind is PeriodKind.MONTHLY:
            return Money(_truncating_div(self.amount.cents, 12))
        if period.kind is PeriodKind.WEEKLY:
            return _rounded(cents / 52)
        if period.kind is PeriodKind.BI_WEEKLY:
            return _rounded(cents / 26)
        return _rounded(cents * period.days() / 365)

    def _by_date_for(self, period: BudgetPeriod) -> Money:
        target_date = self.cadence.target_date
        start = period.start_date()
        if target_date < start:
            return Money.zero()
        if target_date <= period.end_date():
            return self.amount

        months = months_between(start, target_date)
        if months <= 0:
            return self.amount
        quotient = Decimal(self.amount.cents) / months
        return Money(int(quotient.to_integral_value(rounding=ROUND_CEILING)))


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start``'s month to ``end``'s month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def _rounded(value: Decimal) -> Money:
    return Money(int(value.to_integral_value(rounding=ROUND_HALF_UP)))


def _truncating_div(cents: int, divisor: int) -> int:
    q = abs(cents) // divisor
    return -q if cents < 0 else q
