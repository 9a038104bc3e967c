"""
Envelope Modules.

Thin orchestration layers over the envelope kernel and engines. Each module
contains:
- Domain models (read-side views)
- Configuration schemas
- A service that owns the database transaction boundary

Modules:
- Budget: allocations, rollover summaries, Available to Budget, targets, income
- Reconciliation: statement matching and locking of cleared transactions
- Reports: spending by category and net worth (read-only)

Actual calculation lives in the engines; record keeping in the kernel.
"""

from envelope_modules import budget, reconciliation, reports

__all__ = [
    "budget",
    "reconciliation",
    "reports",
]
