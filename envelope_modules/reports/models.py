"""
Report Models (``envelope_modules.reports.models``).

Frozen value objects returned by ``ReportService``.  Zero I/O.

Invariants enforced
-------------------
* Amounts are ``Money``; percentages are ``Decimal`` rounded to two places.
* Spending amounts keep their ledger sign (outflows are negative).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from envelope_kernel.domain.dtos import AccountType
from envelope_kernel.domain.values import Money


class ReportType(str, Enum):
    SPENDING_BY_CATEGORY = "spending_by_category"
    NET_WORTH = "net_worth"


@dataclass(frozen=True)
class ReportMetadata:
    report_type: ReportType
    generated_at: str
    start_date: date | None = None
    end_date: date | None = None


# =========================================================================
# Spending by category
# =========================================================================


@dataclass(frozen=True)
class CategorySpending:
    category_id: UUID
    category_name: str
    group_id: UUID
    group_name: str
    total_spending: Money
    transaction_count: int
    percentage: Decimal


@dataclass(frozen=True)
class GroupSpending:
    group_id: UUID
    group_name: str
    categories: tuple[CategorySpending, ...]
    total_spending: Money
    transaction_count: int
    percentage: Decimal


@dataclass(frozen=True)
class SpendingReport:
    """
    Outflows between ``start_date`` and ``end_date`` (inclusive), grouped by
    category group, largest spending first.  Transfers are left out; each
    split counts toward its own category.
    """

    metadata: ReportMetadata
    groups: tuple[GroupSpending, ...]
    total_spending: Money
    total_income: Money
    total_transactions: int
    uncategorized_spending: Money
    uncategorized_count: int

    @property
    def start_date(self) -> date:
        return self.metadata.start_date

    @property
    def end_date(self) -> date:
        return self.metadata.end_date

    def category(self, category_id: UUID) -> CategorySpending | None:
        for group in self.groups:
            for line in group.categories:
                if line.category_id == category_id:
                    return line
        return None


# =========================================================================
# Net worth
# =========================================================================


@dataclass(frozen=True)
class AccountBalanceLine:
    account_id: UUID
    account_name: str
    account_type: AccountType
    on_budget: bool
    balance: Money
    cleared_balance: Money
    uncleared_count: int


@dataclass(frozen=True)
class AccountTypeGroup:
    account_type: AccountType
    accounts: tuple[AccountBalanceLine, ...]
    total_balance: Money
    total_cleared: Money


@dataclass(frozen=True)
class NetWorthSummary:
    total_assets: Money
    total_liabilities: Money
    net_worth: Money
    on_budget_total: Money
    off_budget_total: Money


@dataclass(frozen=True)
class NetWorthReport:
    """Balances of every account grouped by type, with asset and liability totals."""

    metadata: ReportMetadata
    groups: tuple[AccountTypeGroup, ...]
    summary: NetWorthSummary
    include_archived: bool

    @property
    def net_worth(self) -> Money:
        return self.summary.net_worth
