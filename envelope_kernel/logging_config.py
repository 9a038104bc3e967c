"""
Structured JSON logging for the envelope budget engine.

Every logger lives under the ``envelope`` namespace and writes one JSON
object per line.  Event names are the log message (``budget_assigned``,
``reconciliation_completed``); everything else travels as ``extra`` fields
or as the bound context of the operation:

    account_id   account being reconciled or posted to
    category_id  category whose allocation is changing
    period       formatted budget period
    session_id   open reconciliation session

Amounts are logged as integer cents; a ``Money`` value passed as an extra
field is written the same way.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money

CONTEXT_FIELDS = ("account_id", "category_id", "period", "session_id")

_context: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"envelope_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context[name]
    except KeyError:
        raise ValueError(
            f"Unknown log context field {name!r}; expected one of {CONTEXT_FIELDS}"
        ) from None


class LogContext:
    """Operation-scoped fields added to every record logged inside the scope."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Set fields for the rest of the current context. None leaves a field as is."""
        for name, value in fields.items():
            var = _context_var(name)
            if value is not None:
                var.set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _context.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Set fields for the duration of a ``with`` block, then restore the
        previous values.

        Usage::

            with LogContext.bind(category_id=str(category_id), period=period.format()):
                logger.info("budget_assigned", extra={"to_cents": amount.cents})
        """
        tokens = [
            (var, var.set(str(value)))
            for var, value in ((_context_var(n), v) for n, v in fields.items())
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Money):
        return value.cents
    if isinstance(value, BudgetPeriod):
        return value.format()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: event, level, logger, context and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """
    ``exc_type`` and ``exc_message`` for any exception; for an
    ``EnvelopeError`` also its ``code`` and structured attributes
    (``exc_transaction_id``, ``exc_field`` ...).
    """
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "envelope"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger ``envelope.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> bool:
    """
    Attach a JSON handler to the ``envelope`` logger and set its level.

    Only the first call since start-up (or since ``reset_logging``) has any
    effect; it returns True, later calls return False.  ``level`` accepts a
    number or a level name such as ``"INFO"``.
    """
    global _configured
    with _lock:
        if _configured:
            return False
        _configured = True

    envelope_logger = logging.getLogger(_LOGGER_PREFIX)
    envelope_logger.setLevel(level.upper() if isinstance(level, str) else level)
    envelope_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    envelope_logger.addHandler(h)
    return True


def reset_logging() -> None:
    """Drop the handlers ``configure_logging`` installed. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    envelope_logger = logging.getLogger(_LOGGER_PREFIX)
    envelope_logger.handlers.clear()
    envelope_logger.setLevel(logging.WARNING)
