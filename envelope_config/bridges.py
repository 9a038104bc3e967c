"""
Config -> runtime bridges.

Turns a ``Settings`` into a running application: structured logging at the
configured level, the database at ``database_url`` and the plain config
dataclasses each module accepts.  These live in envelope_config because the
kernel must NEVER import envelope_config.

Usage:
    from envelope_config.bridges import bootstrap

    runtime = bootstrap("~/.envelope/settings.yaml")
    with runtime.budget_service() as budget:
        budget.assign_to_category(category_id, period, amount)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session

from envelope_config import get_active_settings
from envelope_config.schema import Settings
from envelope_kernel.db.engine import get_session, init_database
from envelope_kernel.domain.clock import Clock
from envelope_kernel.logging_config import configure_logging, get_logger
from envelope_modules.budget import BudgetConfig, BudgetService
from envelope_modules.reconciliation import ReconciliationConfig, ReconciliationService
from envelope_modules.reports import ReportService

logger = get_logger("config.bridges")


def build_budget_config(settings: Settings) -> BudgetConfig:
    return BudgetConfig.from_settings(settings)


def build_reconciliation_config(settings: Settings) -> ReconciliationConfig:
    return ReconciliationConfig.from_settings(settings)


@dataclass(frozen=True)
class Runtime:
    """Everything ``bootstrap`` set up, and factories for the module services."""

    settings: Settings
    engine: Engine
    budget_config: BudgetConfig
    reconciliation_config: ReconciliationConfig

    def session(self) -> Session:
        return get_session()

    def budget_service(
        self, session: Session | None = None, clock: Clock | None = None
    ) -> BudgetService:
        return BudgetService(session or self.session(), clock, self.budget_config)

    def reconciliation_service(
        self, session: Session | None = None, clock: Clock | None = None
    ) -> ReconciliationService:
        return ReconciliationService(session or self.session(), clock, self.reconciliation_config)

    def report_service(
        self, session: Session | None = None, clock: Clock | None = None
    ) -> ReportService:
        return ReportService(session or self.session(), clock, self.budget_config)


def bootstrap(
    path: Path | str | None = None,
    *,
    settings: Settings | None = None,
    log_stream: Any = None,
) -> Runtime:
    """
    Start the application from a settings file (or a ``Settings`` already
    loaded).

    Logging is configured at ``settings.log_level`` before the database is
    opened, so the engine's own log entries already use it.  If logging was
    configured earlier in the process that configuration is kept.
    """
    if settings is None:
        settings = get_active_settings(path)

    configure_logging(level=settings.log_level, stream=log_stream)
    engine = init_database(settings.database_url)

    runtime = Runtime(
        settings=settings,
        engine=engine,
        budget_config=build_budget_config(settings),
        reconciliation_config=build_reconciliation_config(settings),
    )
    logger.info(
        "runtime_started",
        extra={
            "database_url": make_url(settings.database_url).render_as_string(hide_password=True),
            "log_level": settings.log_level,
            "budget_period_type": settings.budget_period_type.value,
            "currency_symbol": settings.currency_symbol,
        },
    )
    return runtime


__all__ = [
    "Runtime",
    "bootstrap",
    "build_budget_config",
    "build_reconciliation_config",
]
