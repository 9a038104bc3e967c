"""
envelope_modules.budget.config
==============================

Responsibility:
    Configuration schema for the budget module: which period kind budgets
    are kept in, the bi-weekly anchor and the display currency symbol.
    Values normally come from ``envelope_config.get_active_settings()``.

Failure modes:
    - ``ValueError`` from ``__post_init__`` for a CUSTOM period type or an
      empty currency symbol.
"""

from dataclasses import dataclass
from datetime import date
from typing import Self

from envelope_kernel.domain.period import PeriodKind
from envelope_kernel.logging_config import get_logger

logger = get_logger("modules.budget.config")


@dataclass(frozen=True)
class BudgetConfig:
    """
    Configuration schema for the budget module.

    Example::

        config = BudgetConfig(period_type=PeriodKind.WEEKLY, currency_symbol="EUR ")
    """

    period_type: PeriodKind = PeriodKind.MONTHLY
    biweekly_anchor: date | None = None
    currency_symbol: str = "$"

    def __post_init__(self):
        if self.period_type is PeriodKind.CUSTOM:
            raise ValueError("Budget period type cannot be custom")
        if not self.currency_symbol:
            raise ValueError("currency_symbol cannot be empty")
        logger.debug(
            "budget_config_loaded",
            extra={"period_type": self.period_type.value},
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_settings(cls, settings) -> Self:
        """Build from an ``envelope_config.Settings`` instance."""
        return cls(
            period_type=settings.budget_period_type,
            biweekly_anchor=settings.biweekly_anchor,
            currency_symbol=settings.currency_symbol,
        )
