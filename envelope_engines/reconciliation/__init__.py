"""Statement reconciliation state machine."""

from envelope_engines.reconciliation.session import (
    AdjustmentChoice,
    CompletionPlan,
    ReconciliationSession,
    SessionState,
)

__all__ = [
    "AdjustmentChoice",
    "CompletionPlan",
    "ReconciliationSession",
    "SessionState",
]
