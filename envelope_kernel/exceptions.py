"""
Typed exception hierarchy for the envelope budget engine.

Every error the engine reports is a typed exception with a machine-readable
``code`` class attribute and structured attributes (ids, field names,
offending values) so a caller can redisplay an editable form without parsing
message text.

Hierarchy::

    EnvelopeError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- CategoryGroupNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- PayeeNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- SameCategoryError
    |   +-- SameAccountError
    |   +-- InvalidFormatError
    |   +-- InvalidMonthError
    |   +-- InvalidCustomIntervalError
    |   +-- SplitsMismatchError
    |   +-- CategoryAndSplitsError
    |   +-- TransferWithCategoryError
    |   +-- TransactionNotLockedError
    |   +-- AccountArchivedError
    |   +-- CategoryInUseError
    |   +-- CategoryGroupNotEmptyError
    |
    +-- LockedError
    |
    +-- ReconciliationError
        +-- ReconciliationInProgressError
        +-- NoActiveReconciliationError
        +-- UnresolvedDifferenceError

Storage failures are not part of this hierarchy. SQLAlchemy errors propagate
to the caller unchanged after the owning service rolls back.
"""

from typing import Any


class EnvelopeError(Exception):
    """
    Base exception for all envelope engine errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "ENVELOPE_ERROR"


# Not found


class NotFoundError(EnvelopeError):
    """A referenced record does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "record"

    def __init__(self, entity_id: Any):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"
    entity_type: str = "account"


class CategoryNotFoundError(NotFoundError):
    code: str = "CATEGORY_NOT_FOUND"
    entity_type: str = "category"


class CategoryGroupNotFoundError(NotFoundError):
    code: str = "CATEGORY_GROUP_NOT_FOUND"
    entity_type: str = "category group"


class TransactionNotFoundError(NotFoundError):
    code: str = "TRANSACTION_NOT_FOUND"
    entity_type: str = "transaction"


class PayeeNotFoundError(NotFoundError):
    code: str = "PAYEE_NOT_FOUND"
    entity_type: str = "payee"


# Validation


class ValidationError(EnvelopeError):
    """Input rejected. ``field`` and ``value`` identify what to redisplay."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class InvalidAmountError(ValidationError):
    """Amount is zero, negative or out of range where that is not allowed."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: Any, reason: str, field: str = "amount"):
        self.reason = reason
        super().__init__(f"Invalid {field} {value}: {reason}", field=field, value=str(value))


class SameCategoryError(ValidationError):
    code: str = "SAME_CATEGORY"

    def __init__(self, category_id: Any):
        self.category_id = str(category_id)
        super().__init__(
            f"Cannot move funds from category {category_id} to itself",
            field="to_category_id",
            value=str(category_id),
        )


class SameAccountError(ValidationError):
    code: str = "SAME_ACCOUNT"

    def __init__(self, account_id: Any):
        self.account_id = str(account_id)
        super().__init__(
            f"Cannot transfer from account {account_id} to itself",
            field="to_account_id",
            value=str(account_id),
        )


class InvalidFormatError(ValidationError):
    """Text could not be parsed as the requested value type."""

    code: str = "INVALID_FORMAT"

    def __init__(self, text: str, expected: str, field: str | None = None):
        self.expected = expected
        super().__init__(
            f"Invalid {expected} format: {text!r}",
            field=field or expected,
            value=text,
        )


class InvalidMonthError(ValidationError):
    code: str = "INVALID_MONTH"

    def __init__(self, month: int):
        self.month = month
        super().__init__(f"Invalid month: {month}", field="month", value=month)


class InvalidCustomIntervalError(ValidationError):
    """Custom period range or custom cadence interval is not usable."""

    code: str = "INVALID_CUSTOM_INTERVAL"

    def __init__(self, value: Any, reason: str, field: str = "days"):
        self.reason = reason
        super().__init__(f"Invalid custom interval {value}: {reason}", field=field, value=str(value))


class SplitsMismatchError(ValidationError):
    code: str = "SPLITS_MISMATCH"

    def __init__(self, transaction_amount: str, splits_total: str):
        self.transaction_amount = transaction_amount
        self.splits_total = splits_total
        super().__init__(
            f"Split totals ({splits_total}) do not match transaction amount "
            f"({transaction_amount})",
            field="splits",
            value=splits_total,
        )


class CategoryAndSplitsError(ValidationError):
    code: str = "CATEGORY_AND_SPLITS"

    def __init__(self):
        super().__init__(
            "Transaction cannot have both a category and splits",
            field="category_id",
        )


class TransferWithCategoryError(ValidationError):
    code: str = "TRANSFER_WITH_CATEGORY"

    def __init__(self):
        super().__init__(
            "Transfer transactions cannot have a category or splits",
            field="category_id",
        )


class TransactionNotLockedError(ValidationError):
    code: str = "TRANSACTION_NOT_LOCKED"

    def __init__(self, transaction_id: Any):
        self.transaction_id = str(transaction_id)
        super().__init__(
            f"Transaction {transaction_id} is not locked",
            field="status",
        )


class AccountArchivedError(ValidationError):
    code: str = "ACCOUNT_ARCHIVED"

    def __init__(self, account_id: Any, operation: str):
        self.account_id = str(account_id)
        self.operation = operation
        super().__init__(
            f"Cannot {operation} on archived account {account_id}",
            field="account_id",
            value=str(account_id),
        )


class CategoryInUseError(ValidationError):
    """Category still referenced by transactions, splits or allocations."""

    code: str = "CATEGORY_IN_USE"

    def __init__(self, category_id: Any, reference_count: int):
        self.category_id = str(category_id)
        self.reference_count = reference_count
        super().__init__(
            f"Category {category_id} is used by {reference_count} transactions, "
            f"splits or allocations",
            field="category_id",
            value=str(category_id),
        )


class CategoryGroupNotEmptyError(ValidationError):
    code: str = "CATEGORY_GROUP_NOT_EMPTY"

    def __init__(self, group_id: Any, category_count: int):
        self.group_id = str(group_id)
        self.category_count = category_count
        super().__init__(
            f"Category group {group_id} contains {category_count} categories; "
            f"move or delete them first",
            field="group_id",
            value=str(group_id),
        )


# Locking


class LockedError(EnvelopeError):
    """Mutation of a reconciled transaction without unlocking first."""

    code: str = "LOCKED"

    def __init__(self, transaction_id: Any, operation: str):
        self.transaction_id = str(transaction_id)
        self.operation = operation
        super().__init__(
            f"Transaction {transaction_id} is reconciled and cannot be "
            f"{operation}. Unlock it first."
        )


# Reconciliation


class ReconciliationError(EnvelopeError):
    code: str = "RECONCILIATION_ERROR"


class ReconciliationInProgressError(ReconciliationError):
    code: str = "RECONCILIATION_IN_PROGRESS"

    def __init__(self, account_id: Any, session_id: Any):
        self.account_id = str(account_id)
        self.session_id = str(session_id)
        super().__init__(
            f"Account {account_id} already has an open reconciliation "
            f"session {session_id}"
        )


class NoActiveReconciliationError(ReconciliationError):
    code: str = "NO_ACTIVE_RECONCILIATION"

    def __init__(self, account_id: Any):
        self.account_id = str(account_id)
        super().__init__(f"No open reconciliation session for account {account_id}")


class UnresolvedDifferenceError(ReconciliationError):
    """Completion requested while the statement difference is non-zero."""

    code: str = "UNRESOLVED_DIFFERENCE"

    def __init__(self, account_id: Any, difference: str):
        self.account_id = str(account_id)
        self.difference = difference
        super().__init__(
            f"Reconciliation of account {account_id} has a difference of "
            f"{difference}; create or decline an adjustment"
        )
