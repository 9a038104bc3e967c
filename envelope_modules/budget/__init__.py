"""
Budget Module.

Allocations per category and period, rollover summaries, Available to
Budget, category targets and expected income.
"""

from envelope_modules.budget.config import BudgetConfig
from envelope_modules.budget.display import render_overview
from envelope_modules.budget.income import IncomeService
from envelope_modules.budget.models import BudgetOverview, CategoryBudgetSummary
from envelope_modules.budget.service import BudgetService

__all__ = [
    "BudgetConfig",
    "BudgetOverview",
    "BudgetService",
    "CategoryBudgetSummary",
    "IncomeService",
    "render_overview",
]
