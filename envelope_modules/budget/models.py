"""
Budget Domain Models (``envelope_modules.budget.models``).

Read-side views produced by ``BudgetService``. Frozen, zero I/O.
"""

from dataclasses import dataclass
from uuid import UUID

from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money


@dataclass(frozen=True)
class CategoryBudgetSummary:
    """One category in one period: what was budgeted, spent and is left."""

    category_id: UUID
    period: BudgetPeriod
    budgeted: Money
    activity: Money
    carried_in: Money
    available: Money

    @property
    def overspent(self) -> bool:
        return self.available.is_negative


@dataclass(frozen=True)
class BudgetOverview:
    period: BudgetPeriod
    categories: tuple[CategoryBudgetSummary, ...]
    total_budgeted: Money
    total_activity: Money
    total_available: Money
    available_to_budget: Money
    expected_income: Money | None = None

    @property
    def overspent_categories(self) -> tuple[CategoryBudgetSummary, ...]:
        return tuple(c for c in self.categories if c.overspent)
