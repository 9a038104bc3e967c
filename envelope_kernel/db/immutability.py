"""
ORM-level lock on reconciled transactions.

Reconciled transactions agree with a bank statement. Editing one would
silently break that agreement, so the service layer refuses such edits with
``LockedError`` and requires an explicit unlock. This module is the second
line: SQLAlchemy event listeners that refuse the same writes when they reach
the flush, whichever code path produced them.

    session.flush()
         |
         v
    [before_update] --> _check_transaction_lock() --> LockedError
         |
    [before_delete] --> _check_transaction_delete() --> LockedError
         |
         v
    SQL sent to database (only if checks pass)

Rules for a row whose persisted status is RECONCILED:

    * the only allowed change is ``status`` (the unlock transition), plus the
      ``updated_at`` timestamp;
    * the row cannot be deleted.

The transition into RECONCILED (reconciliation completion) is allowed because
the persisted status at that point is not RECONCILED yet.

Usage:

    from envelope_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once, after models are imported
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from envelope_kernel.domain.dtos import TransactionStatus
from envelope_kernel.exceptions import LockedError
from envelope_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_ALWAYS_MUTABLE = frozenset({"updated_at"})


def _was_reconciled(target) -> bool:
    """Whether the row was RECONCILED before the pending change."""
    status_history = get_history(target, "status")
    if status_history.deleted:
        return status_history.deleted[0] == TransactionStatus.RECONCILED.value
    return target.status == TransactionStatus.RECONCILED.value


def _check_transaction_lock(mapper, connection, target):
    if not _was_reconciled(target):
        return

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in _ALWAYS_MUTABLE or attr.key == "status":
            continue
        if attr.history.has_changes():
            logger.error(
                "locked_transaction_write_blocked",
                extra={
                    "transaction_id": str(target.id),
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise LockedError(target.id, "modified")


def _check_transaction_delete(mapper, connection, target):
    if _was_reconciled(target):
        logger.error(
            "locked_transaction_write_blocked",
            extra={"transaction_id": str(target.id), "operation": "DELETE"},
        )
        raise LockedError(target.id, "deleted")


def register_immutability_listeners() -> None:
    """Register the reconciled-transaction listeners. Safe to call twice."""
    from envelope_kernel.models.transaction import TransactionModel

    if not event.contains(TransactionModel, "before_update", _check_transaction_lock):
        event.listen(TransactionModel, "before_update", _check_transaction_lock)
    if not event.contains(TransactionModel, "before_delete", _check_transaction_delete):
        event.listen(TransactionModel, "before_delete", _check_transaction_delete)


def unregister_immutability_listeners() -> None:
    """Remove the listeners. TESTS ONLY."""
    from envelope_kernel.models.transaction import TransactionModel

    if event.contains(TransactionModel, "before_update", _check_transaction_lock):
        event.remove(TransactionModel, "before_update", _check_transaction_lock)
    if event.contains(TransactionModel, "before_delete", _check_transaction_delete):
        event.remove(TransactionModel, "before_delete", _check_transaction_delete)
