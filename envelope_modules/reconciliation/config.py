"""
Reconciliation Configuration Schema.
"""

from dataclasses import dataclass
from typing import Self

from envelope_kernel.logging_config import get_logger

logger = get_logger("modules.reconciliation.config")


@dataclass(frozen=True)
class ReconciliationConfig:
    """Configuration schema for the reconciliation module."""

    adjustment_payee: str = "Reconciliation Adjustment"
    adjustment_memo: str = "Created during reconciliation to match statement balance"

    def __post_init__(self):
        if not self.adjustment_payee.strip():
            raise ValueError("adjustment_payee cannot be empty")

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_settings(cls, settings) -> Self:
        """Build from an ``envelope_config.Settings`` instance."""
        return cls(adjustment_payee=settings.adjustment_payee)
