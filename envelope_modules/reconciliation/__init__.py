"""
Reconciliation Module.

Matches an account's cleared transactions against a bank statement and
locks them once the balances agree.
"""

from envelope_engines.reconciliation import AdjustmentChoice
from envelope_modules.reconciliation.config import ReconciliationConfig
from envelope_modules.reconciliation.models import (
    ReconciliationResult,
    ReconciliationSummary,
)
from envelope_modules.reconciliation.service import ReconciliationService

__all__ = [
    "AdjustmentChoice",
    "ReconciliationConfig",
    "ReconciliationResult",
    "ReconciliationService",
    "ReconciliationSummary",
]
