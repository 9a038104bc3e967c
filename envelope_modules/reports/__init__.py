"""
Reports Module.

Read-only views over the ledger: spending by category for a date range and
net worth across accounts.
"""

from envelope_modules.reports.models import (
    AccountBalanceLine,
    AccountTypeGroup,
    CategorySpending,
    GroupSpending,
    NetWorthReport,
    NetWorthSummary,
    ReportMetadata,
    ReportType,
    SpendingReport,
)
from envelope_modules.reports.service import ReportService

__all__ = [
    "AccountBalanceLine",
    "AccountTypeGroup",
    "CategorySpending",
    "GroupSpending",
    "NetWorthReport",
    "NetWorthSummary",
    "ReportMetadata",
    "ReportService",
    "ReportType",
    "SpendingReport",
]
