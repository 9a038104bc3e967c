"""ORM models for the envelope kernel."""

from envelope_kernel.models.account import AccountModel
from envelope_kernel.models.budget import (
    BudgetAllocationModel,
    BudgetTargetModel,
    IncomeExpectationModel,
    period_from_columns,
)
from envelope_kernel.models.category import CategoryGroupModel, CategoryModel
from envelope_kernel.models.payee import PayeeCategoryUsageModel, PayeeModel
from envelope_kernel.models.transaction import SplitModel, TransactionModel

__all__ = [
    "AccountModel",
    "BudgetAllocationModel",
    "BudgetTargetModel",
    "CategoryGroupModel",
    "CategoryModel",
    "IncomeExpectationModel",
    "PayeeCategoryUsageModel",
    "PayeeModel",
    "SplitModel",
    "TransactionModel",
    "period_from_columns",
]
