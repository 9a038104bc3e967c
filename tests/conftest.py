"""
Pytest fixtures for the envelope budget test suite.

Provides:
- In-memory SQLite sessions with every table created and the reconciled
  transaction locks registered
- A deterministic clock fixed at 2025-01-15 12:00 UTC
- Seeded accounts and categories
- Structured log capture
"""

import json
import logging
from datetime import date, datetime, UTC
from io import StringIO
from types import SimpleNamespace

import pytest

from envelope_kernel.db.engine import drop_tables, get_session, init_database, reset_engine
from envelope_kernel.domain.clock import DeterministicClock
from envelope_kernel.domain.dtos import AccountType
from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money
from envelope_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from envelope_kernel.services.account_service import AccountService
from envelope_kernel.services.category_service import CategoryService
from envelope_kernel.services.transaction_service import TransactionService
from envelope_modules.budget import BudgetService
from envelope_modules.reconciliation import ReconciliationService

TEST_DATABASE_URL = "sqlite:///:memory:"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture envelope logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, budget):
            budget.assign_to_category(...)
            logs = captured_logs()
            assert any(r["message"] == "budget_assigned" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("envelope")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """A session on a fresh in-memory database."""
    init_database(TEST_DATABASE_URL)
    db_session = get_session()
    yield db_session
    db_session.close()
    drop_tables()
    reset_engine()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2025, 1, 15, 12, 0, tzinfo=UTC))


@pytest.fixture
def january():
    return BudgetPeriod.monthly(2025, 1)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def accounts(session):
    return AccountService(session)


@pytest.fixture
def categories(session):
    return CategoryService(session)


@pytest.fixture
def transactions(session):
    return TransactionService(session)


@pytest.fixture
def budget(session, clock):
    service = BudgetService(session, clock)
    yield service
    service.close()


@pytest.fixture
def reconciliation(session, clock):
    return ReconciliationService(session, clock)


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def seeded(accounts, categories):
    """
    Two on-budget accounts, one off-budget account and four categories in
    two groups.
    """
    checking = accounts.create("Checking", AccountType.CHECKING, Money.parse("1000.00"))
    savings = accounts.create("Savings", AccountType.SAVINGS, Money.parse("500.00"))
    brokerage = accounts.create(
        "Brokerage", AccountType.INVESTMENT, Money.parse("2000.00"), on_budget=False
    )

    bills = categories.create_group("Bills")
    everyday = categories.create_group("Everyday")
    rent = categories.create_category("Rent", bills.id)
    utilities = categories.create_category("Utilities", bills.id)
    groceries = categories.create_category("Groceries", everyday.id)
    dining = categories.create_category("Dining", everyday.id)

    return SimpleNamespace(
        checking=checking,
        savings=savings,
        brokerage=brokerage,
        bills=bills,
        everyday=everyday,
        rent=rent,
        utilities=utilities,
        groceries=groceries,
        dining=dining,
    )


@pytest.fixture
def jan():
    """Shorthand for days in January 2025."""
    return lambda day: date(2025, 1, day)
