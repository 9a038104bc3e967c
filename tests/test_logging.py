"""Tests for structured logging: JSON lines, bound context and error fields."""

import json
import logging
from datetime import date
from io import StringIO

import pytest

from envelope_kernel.domain.dtos import TransactionStatus
from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import LockedError
from envelope_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """Reconfigure the envelope logger onto a fresh stream at DEBUG."""
    reset_logging()
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)

    def _records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _records
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _event(records: list[dict], message: str) -> dict:
    return next(r for r in records if r["message"] == message)


class TestBudgetEvents:
    def test_assignment_carries_bound_context(self, budget, seeded, january, log_stream):
        budget.assign_to_category(seeded.groceries.id, january, Money.parse("400.00"))

        record = _event(log_stream(), "budget_assigned")
        assert record["level"] == "INFO"
        assert record["logger"] == "envelope.modules.budget.service"
        assert record["category_id"] == str(seeded.groceries.id)
        assert record["period"] == "2025-01"
        assert record["from_cents"] == 0
        assert record["to_cents"] == 40000

    def test_context_does_not_leak_past_operation(self, budget, seeded, january, log_stream):
        budget.assign_to_category(seeded.groceries.id, january, Money.parse("10.00"))
        get_logger("test").info("after_assignment")

        record = _event(log_stream(), "after_assignment")
        assert "category_id" not in record
        assert "period" not in record

    def test_every_line_is_one_json_object(self, budget, seeded, january, log_stream):
        budget.assign_to_category(seeded.rent.id, january, Money.parse("1200.00"))
        budget.move_between_categories(
            seeded.rent.id, seeded.dining.id, january, Money.parse("50.00")
        )
        records = log_stream()
        assert {"budget_assigned", "budget_moved"} <= {r["message"] for r in records}
        for record in records:
            assert {"ts", "level", "logger", "message"} <= set(record)


class TestLockedTransactionLogging:
    def test_refused_edit_is_logged(self, transactions, seeded, log_stream):
        txn = transactions.create(seeded.checking.id, date(2025, 1, 5), Money.parse("-20.00"))
        transactions.set_status(txn.id, TransactionStatus.RECONCILED)

        with pytest.raises(LockedError):
            transactions.update(txn.id, amount=Money.parse("-25.00"))

        record = _event(log_stream(), "locked_transaction_mutation_refused")
        assert record["level"] == "WARNING"
        assert record["transaction_id"] == str(txn.id)

    def test_error_attributes_become_exc_fields(self, transactions, seeded, log_stream):
        txn = transactions.create(seeded.checking.id, date(2025, 1, 5), Money.parse("-20.00"))
        transactions.set_status(txn.id, TransactionStatus.RECONCILED)
        logger = get_logger("test")

        try:
            transactions.delete(txn.id)
        except LockedError:
            logger.error("delete_failed", exc_info=True)

        record = _event(log_stream(), "delete_failed")
        assert record["exc_type"] == "LockedError"
        assert record["exc_code"] == "LOCKED"
        assert record["exc_transaction_id"] == str(txn.id)
        assert record["exc_operation"] == "deleted"
        assert "Traceback" in record["traceback"]


class TestReconciliationEvents:
    def test_start_logs_account_and_session(self, reconciliation, seeded, log_stream):
        summary = reconciliation.start(seeded.checking.id, date(2025, 1, 31), Money.parse("990.00"))

        record = _event(log_stream(), "reconciliation_started")
        assert record["account_id"] == str(seeded.checking.id)
        assert record["session_id"] == str(summary.session_id)
        assert record["difference_cents"] == -1000


class TestFormatter:
    def test_money_and_period_extras(self, log_stream):
        get_logger("test").info(
            "figures",
            extra={"amount": Money.parse("-12.34"), "budget_period": BudgetPeriod.weekly(2025, 3)},
        )
        record = _event(log_stream(), "figures")
        assert record["amount"] == -1234
        assert record["budget_period"] == "2025-W03"

    def test_non_envelope_exception(self, log_stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("plain_failure", exc_info=True)
        record = _event(log_stream(), "plain_failure")
        assert record["exc_type"] == "ValueError"
        assert "exc_code" not in record

    def test_debug_filtered_at_info(self):
        reset_logging()
        stream = StringIO()
        try:
            configure_logging(level="INFO", stream=stream)
            logger = get_logger("test")
            logger.debug("hidden")
            logger.info("shown")
            assert [json.loads(line)["message"] for line in stream.getvalue().splitlines()] == [
                "shown"
            ]
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_formatter_usable_on_its_own(self):
        record = logging.LogRecord("envelope.x", logging.INFO, __file__, 1, "standalone", (), None)
        assert json.loads(StructuredFormatter().format(record))["message"] == "standalone"


class TestLogContext:
    def test_bind_restores_previous_value(self):
        LogContext.set(period="2025-01")
        with LogContext.bind(period="2025-02", session_id="s-1"):
            assert LogContext.get_all() == {"period": "2025-02", "session_id": "s-1"}
        assert LogContext.get_all() == {"period": "2025-01"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(account_id="a-1"):
                raise RuntimeError("fail")
        assert LogContext.get_all() == {}

    def test_none_values_are_ignored(self):
        LogContext.set(account_id="a-1", category_id=None)
        assert LogContext.get_all() == {"account_id": "a-1"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(request_id="r-1")
        with pytest.raises(ValueError):
            with LogContext.bind(request_id="r-1"):
                pass

    def test_fields_are_the_budget_scopes(self):
        assert CONTEXT_FIELDS == ("account_id", "category_id", "period", "session_id")


class TestConfigureLogging:
    def test_second_call_adds_no_handler(self):
        envelope_logger = logging.getLogger("envelope")
        reset_logging()
        try:
            h1 = logging.StreamHandler(StringIO())
            assert configure_logging(handler=h1)
            handlers_before = list(envelope_logger.handlers)

            h2 = logging.StreamHandler(StringIO())
            assert not configure_logging(handler=h2)

            assert envelope_logger.handlers == handlers_before
            assert h2 not in envelope_logger.handlers
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_get_logger_namespace(self):
        assert get_logger("modules.budget.service").name == "envelope.modules.budget.service"
