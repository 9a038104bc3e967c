"""Record services: accounts, categories, payees, transactions and periods."""

from envelope_kernel.services.account_service import AccountService
from envelope_kernel.services.category_service import CategoryService
from envelope_kernel.services.payee_service import PayeeService
from envelope_kernel.services.period_service import PeriodService
from envelope_kernel.services.transaction_service import (
    TransactionFilter,
    TransactionService,
)

__all__ = [
    "AccountService",
    "CategoryService",
    "PayeeService",
    "PeriodService",
    "TransactionFilter",
    "TransactionService",
]
