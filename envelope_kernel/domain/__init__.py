"""
Pure domain layer.

Immutable value objects and records with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (time enters only through an injected Clock)
"""

from envelope_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from envelope_kernel.domain.dtos import (
    Account,
    AccountType,
    Category,
    CategoryGroup,
    CategoryUsage,
    IncomeExpectation,
    Payee,
    Split,
    Transaction,
    TransactionStatus,
)
from envelope_kernel.domain.period import BudgetPeriod, PeriodKind
from envelope_kernel.domain.target import BudgetTarget, CadenceKind, TargetCadence
from envelope_kernel.domain.values import Money
