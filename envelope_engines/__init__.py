"""
Module: envelope_engines
Responsibility:
    Pure calculation engines: category rollover and the statement
    reconciliation state machine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import envelope_kernel (and sibling engine modules).
    MUST NOT import envelope_modules or envelope_config.

Invariants enforced:
    - Purity: engines never read the clock or the database. Dates and
      per-period figures are passed in by the calling service.
    - Integer-cent arithmetic through ``Money``; never float.

Usage:
    from envelope_engines.rollover import RolloverCalculator, RolloverIndex
    from envelope_engines.reconciliation import ReconciliationSession
"""

from envelope_engines.reconciliation import (
    AdjustmentChoice,
    CompletionPlan,
    ReconciliationSession,
    SessionState,
)
from envelope_engines.rollover import (
    PeriodFigures,
    RolloverCalculator,
    RolloverIndex,
    RolloverResult,
)
