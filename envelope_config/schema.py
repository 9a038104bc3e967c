"""
Settings schema.

The frozen runtime view of a settings file. YAML is parsed into this type by
``envelope_config.loader``; nothing else reads the file.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from envelope_kernel.domain.period import PeriodKind

SETTINGS_KEYS = frozenset({
    "budget_period_type",
    "currency_symbol",
    "database_url",
    "log_level",
    "adjustment_payee",
    "biweekly_anchor",
})

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Application settings."""

    budget_period_type: PeriodKind = PeriodKind.MONTHLY
    currency_symbol: str = "$"
    database_url: str = "sqlite:///envelope.db"
    log_level: str = "INFO"
    adjustment_payee: str = "Reconciliation Adjustment"
    biweekly_anchor: date | None = None

    def __post_init__(self):
        if self.budget_period_type is PeriodKind.CUSTOM:
            raise ValueError("budget_period_type cannot be custom")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")
        if not self.database_url:
            raise ValueError("database_url cannot be empty")
