"""
Report Service (``envelope_modules.reports.service``).

Responsibility
--------------
Spending by category over a date range and net worth across accounts.
Loads transactions, categories and balances through the kernel services
and hands them to the pure builders in ``statements.py``.  Read-only.

Invariants enforced
-------------------
* Never writes: no commit, no flush, no status change.
* Transfers move money between accounts; they are neither spending nor
  income.

Failure modes
-------------
* ``ValueError`` when ``end`` is before ``start``, raised before any query.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from envelope_kernel.domain.clock import Clock, SystemClock
from envelope_kernel.domain.values import Money
from envelope_kernel.logging_config import get_logger
from envelope_kernel.services.account_service import AccountService
from envelope_kernel.services.category_service import CategoryService
from envelope_kernel.services.transaction_service import TransactionFilter, TransactionService
from envelope_modules.budget.config import BudgetConfig
from envelope_modules.reports.models import (
    NetWorthReport,
    ReportMetadata,
    ReportType,
    SpendingReport,
)
from envelope_modules.reports.statements import (
    account_balance_line,
    build_net_worth_report,
    build_spending_report,
)

logger = get_logger("modules.reports.service")


class ReportService:
    """
    Read-only report generation.

    The ``BudgetConfig`` supplies the currency symbol used by
    ``format_amount``; reports themselves carry plain ``Money``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BudgetConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or BudgetConfig.with_defaults()
        self._accounts = AccountService(session, auto_commit=False)
        self._categories = CategoryService(session, auto_commit=False)
        self._transactions = TransactionService(session, auto_commit=False)

    def format_amount(self, amount: Money) -> str:
        return amount.format(self._config.currency_symbol)

    def _metadata(
        self, report_type: ReportType, start: date | None = None, end: date | None = None
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            generated_at=self._clock.now().isoformat(),
            start_date=start,
            end_date=end,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def spending_by_category(self, start: date, end: date) -> SpendingReport:
        """Spending per category and group for transactions dated ``start``..``end``."""
        if end < start:
            raise ValueError(f"end {end.isoformat()} is before start {start.isoformat()}")

        transactions = self._transactions.list(TransactionFilter(start_date=start, end_date=end))
        report = build_spending_report(
            transactions,
            self._categories.list_groups(),
            self._categories.list_categories(),
            self._metadata(ReportType.SPENDING_BY_CATEGORY, start, end),
        )
        logger.info(
            "spending_report_generated",
            extra={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "group_count": len(report.groups),
                "total_spending_cents": report.total_spending.cents,
                "total_income_cents": report.total_income.cents,
                "uncategorized_count": report.uncategorized_count,
            },
        )
        return report

    def net_worth(self, include_archived: bool = False) -> NetWorthReport:
        """
        Working balance, cleared balance and pending count for every account,
        on-budget or not.  Archived accounts only with ``include_archived``.
        """
        lines = [
            account_balance_line(
                account,
                self._accounts.calculate_balance(account.id),
                self._accounts.calculate_cleared_balance(account.id),
                len(self._transactions.list_uncleared(account.id)),
            )
            for account in self._accounts.list(include_archived=include_archived)
        ]
        report = build_net_worth_report(
            lines, self._metadata(ReportType.NET_WORTH), include_archived
        )
        logger.info(
            "net_worth_report_generated",
            extra={
                "account_count": len(lines),
                "include_archived": include_archived,
                "net_worth_cents": report.net_worth.cents,
            },
        )
        return report
