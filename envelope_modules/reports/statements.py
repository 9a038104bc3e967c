"""
Pure report builders.

Transform transactions, categories and account balances into report
models.  ZERO I/O: no database, no clock.  ``ReportService`` loads the
inputs and supplies the metadata.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from envelope_kernel.domain.dtos import (
    Account,
    AccountType,
    Category,
    CategoryGroup,
    Transaction,
)
from envelope_kernel.domain.values import Money
from envelope_modules.reports.models import (
    AccountBalanceLine,
    AccountTypeGroup,
    CategorySpending,
    GroupSpending,
    NetWorthReport,
    NetWorthSummary,
    ReportMetadata,
    SpendingReport,
)

_HUNDRED = Decimal(100)
_PERCENT_PLACES = Decimal("0.01")

# Assets first, then liabilities
ACCOUNT_TYPE_ORDER: dict[AccountType, int] = {
    AccountType.CHECKING: 0,
    AccountType.SAVINGS: 1,
    AccountType.CASH: 2,
    AccountType.INVESTMENT: 3,
    AccountType.OTHER: 4,
    AccountType.CREDIT: 10,
    AccountType.LINE_OF_CREDIT: 11,
}


def percentage_of(part: Money, whole: Money) -> Decimal:
    """``|part|`` as a percentage of ``|whole|``; zero when ``whole`` is zero."""
    if whole.is_zero:
        return Decimal("0.00")
    ratio = Decimal(abs(part.cents)) / Decimal(abs(whole.cents)) * _HUNDRED
    return ratio.quantize(_PERCENT_PLACES, rounding=ROUND_HALF_UP)


# =========================================================================
# Spending by category
# =========================================================================


@dataclass
class _Tally:
    total: Money
    count: int = 0

    def add(self, amount: Money) -> None:
        self.total += amount
        self.count += 1


def build_spending_report(
    transactions: Iterable[Transaction],
    groups: Sequence[CategoryGroup],
    categories: Sequence[Category],
    metadata: ReportMetadata,
) -> SpendingReport:
    """
    Classify each non-transfer transaction as income (positive amount) or
    spending, and total spending per category.

    A split transaction adds one count and its split amount to each split's
    category.  Spending with no category is reported separately and still
    counts toward ``total_spending``.  Categories and groups with no
    spending are omitted.
    """
    by_category: dict[UUID, _Tally] = {}
    uncategorized = _Tally(Money.zero())
    total_income = Money.zero()
    total_spending = Money.zero()
    total_transactions = 0

    for txn in transactions:
        if txn.is_transfer:
            continue
        total_transactions += 1
        if txn.amount.is_positive:
            total_income += txn.amount
            continue
        if txn.is_split:
            for split in txn.splits:
                by_category.setdefault(split.category_id, _Tally(Money.zero())).add(split.amount)
                total_spending += split.amount
        elif txn.category_id is not None:
            by_category.setdefault(txn.category_id, _Tally(Money.zero())).add(txn.amount)
            total_spending += txn.amount
        else:
            uncategorized.add(txn.amount)
            total_spending += txn.amount

    report_groups: list[GroupSpending] = []
    for group in groups:
        lines = [
            CategorySpending(
                category_id=category.id,
                category_name=category.name,
                group_id=group.id,
                group_name=group.name,
                total_spending=tally.total,
                transaction_count=tally.count,
                percentage=percentage_of(tally.total, total_spending),
            )
            for category in categories
            if category.group_id == group.id
            and (tally := by_category.get(category.id)) is not None
            and not tally.total.is_zero
        ]
        if not lines:
            continue
        lines.sort(key=lambda line: line.total_spending)
        group_total = Money.sum(line.total_spending for line in lines)
        if group_total.is_zero:
            continue
        report_groups.append(
            GroupSpending(
                group_id=group.id,
                group_name=group.name,
                categories=tuple(lines),
                total_spending=group_total,
                transaction_count=sum(line.transaction_count for line in lines),
                percentage=percentage_of(group_total, total_spending),
            )
        )
    report_groups.sort(key=lambda g: g.total_spending)

    return SpendingReport(
        metadata=metadata,
        groups=tuple(report_groups),
        total_spending=total_spending,
        total_income=total_income,
        total_transactions=total_transactions,
        uncategorized_spending=uncategorized.total,
        uncategorized_count=uncategorized.count,
    )


# =========================================================================
# Net worth
# =========================================================================


def build_net_worth_report(
    balances: Iterable[AccountBalanceLine],
    metadata: ReportMetadata,
    include_archived: bool,
) -> NetWorthReport:
    """
    Group account balances by type (assets first) and total them.

    Liability balances are already negative, so
    ``net_worth == total_assets + total_liabilities``.
    """
    grouped: dict[AccountType, list[AccountBalanceLine]] = {}
    total_assets = Money.zero()
    total_liabilities = Money.zero()
    on_budget_total = Money.zero()
    off_budget_total = Money.zero()

    for line in balances:
        grouped.setdefault(line.account_type, []).append(line)
        if line.account_type.is_liability:
            total_liabilities += line.balance
        else:
            total_assets += line.balance
        if line.on_budget:
            on_budget_total += line.balance
        else:
            off_budget_total += line.balance

    groups = tuple(
        AccountTypeGroup(
            account_type=account_type,
            accounts=tuple(lines),
            total_balance=Money.sum(a.balance for a in lines),
            total_cleared=Money.sum(a.cleared_balance for a in lines),
        )
        for account_type, lines in sorted(
            grouped.items(), key=lambda item: ACCOUNT_TYPE_ORDER[item[0]]
        )
    )
    return NetWorthReport(
        metadata=metadata,
        groups=groups,
        summary=NetWorthSummary(
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            net_worth=total_assets + total_liabilities,
            on_budget_total=on_budget_total,
            off_budget_total=off_budget_total,
        ),
        include_archived=include_archived,
    )


def account_balance_line(
    account: Account, balance: Money, cleared_balance: Money, uncleared_count: int
) -> AccountBalanceLine:
    return AccountBalanceLine(
        account_id=account.id,
        account_name=account.name,
        account_type=account.account_type,
        on_budget=account.on_budget,
        balance=balance,
        cleared_balance=cleared_balance,
        uncleared_count=uncleared_count,
    )
