"""
Domain records -- immutable data transfer objects for budget entities.

Responsibility:
    Frozen dataclasses for accounts, categories, transactions and income
    expectations. These are what services return and accept; ORM models
    convert to and from them at the storage boundary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A split transaction's splits sum exactly to the transaction amount.
    - A transaction never carries both a category and splits.
    - A transfer carries neither a category nor splits.
    - Only RECONCILED transactions are locked.

Failure modes:
    - SplitsMismatchError, CategoryAndSplitsError, TransferWithCategoryError
      from ``Transaction.validate``.
    - ValidationError on empty or over-long names.
    - InvalidAmountError on a negative income expectation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import (
    CategoryAndSplitsError,
    InvalidAmountError,
    SplitsMismatchError,
    TransferWithCategoryError,
    ValidationError,
)

MAX_ACCOUNT_NAME_LENGTH = 100
MAX_CATEGORY_NAME_LENGTH = 50
MAX_PAYEE_NAME_LENGTH = 100


def _validate_name(name: str, max_length: int, kind: str) -> None:
    if not name or not name.strip():
        raise ValidationError(f"{kind} name cannot be empty", field="name", value=name)
    if len(name) > max_length:
        raise ValidationError(
            f"{kind} name too long ({len(name)} chars, max {max_length})",
            field="name",
            value=name,
        )


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    CASH = "cash"
    INVESTMENT = "investment"
    LINE_OF_CREDIT = "line_of_credit"
    OTHER = "other"

    @property
    def is_liability(self) -> bool:
        return self in (AccountType.CREDIT, AccountType.LINE_OF_CREDIT)

    @classmethod
    def parse(cls, text: str) -> AccountType:
        """Lenient parse accepting common aliases (``credit_card``, ``loc``)."""
        aliases = {
            "credit_card": cls.CREDIT,
            "creditcard": cls.CREDIT,
            "lineofcredit": cls.LINE_OF_CREDIT,
            "loc": cls.LINE_OF_CREDIT,
        }
        key = text.strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(
                f"Unknown account type: {text!r}", field="account_type", value=text
            ) from None


@dataclass(frozen=True)
class Account:
    name: str
    account_type: AccountType = AccountType.CHECKING
    id: UUID = field(default_factory=uuid4)
    on_budget: bool = True
    archived: bool = False
    starting_balance: Money = field(default_factory=Money.zero)
    notes: str = ""
    sort_order: int = 0
    last_reconciled_date: date | None = None
    last_reconciled_balance: Money | None = None

    def validate(self) -> None:
        _validate_name(self.name, MAX_ACCOUNT_NAME_LENGTH, "Account")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryGroup:
    name: str
    id: UUID = field(default_factory=uuid4)
    sort_order: int = 0
    hidden: bool = False

    def validate(self) -> None:
        _validate_name(self.name, MAX_CATEGORY_NAME_LENGTH, "Category group")


@dataclass(frozen=True)
class Category:
    name: str
    group_id: UUID
    id: UUID = field(default_factory=uuid4)
    sort_order: int = 0
    hidden: bool = False
    notes: str = ""

    def validate(self) -> None:
        _validate_name(self.name, MAX_CATEGORY_NAME_LENGTH, "Category")


# ---------------------------------------------------------------------------
# Payees
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryUsage:
    """How often a payee's transactions were filed under one category."""

    category_id: UUID
    count: int
    last_used: int = 0


@dataclass(frozen=True)
class Payee:
    """
    A payee with a default category and learned category usage.

    ``manual`` is True when the default was chosen by the user; learned
    usage then no longer moves it.
    """

    name: str
    id: UUID = field(default_factory=uuid4)
    default_category_id: UUID | None = None
    manual: bool = False
    usage: tuple[CategoryUsage, ...] = ()

    def validate(self) -> None:
        _validate_name(self.name, MAX_PAYEE_NAME_LENGTH, "Payee")

    @staticmethod
    def normalize_name(name: str) -> str:
        return name.strip().lower()

    def matches_name(self, name: str) -> bool:
        return self.normalize_name(self.name) == self.normalize_name(name)

    def most_used_category(self) -> UUID | None:
        """Highest usage count; ties go to the most recently used category."""
        if not self.usage:
            return None
        return max(self.usage, key=lambda u: (u.count, u.last_used)).category_id

    def suggested_category(self) -> UUID | None:
        if self.default_category_id is not None:
            return self.default_category_id
        return self.most_used_category()

    def similarity_score(self, query: str) -> float:
        """
        0.0 to 1.0: exact match 1.0, substring either way 0.8, otherwise the
        character-set overlap of the normalized names.
        """
        name = self.normalize_name(self.name)
        query = self.normalize_name(query)
        if name == query:
            return 1.0
        if name in query or query in name:
            return 0.8
        name_chars, query_chars = set(name), set(query)
        union = name_chars | query_chars
        if not union:
            return 0.0
        return len(name_chars & query_chars) / len(union)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TransactionStatus(str, Enum):
    """
    Clearing state of a transaction.

    PENDING -> CLEARED -> RECONCILED. Reconciled transactions are locked until
    explicitly unlocked.
    """

    PENDING = "pending"
    CLEARED = "cleared"
    RECONCILED = "reconciled"

    @property
    def is_locked(self) -> bool:
        return self is TransactionStatus.RECONCILED

    @property
    def is_cleared(self) -> bool:
        return self in (TransactionStatus.CLEARED, TransactionStatus.RECONCILED)


@dataclass(frozen=True)
class Split:
    """One category's portion of a split transaction."""

    category_id: UUID
    amount: Money
    memo: str = ""


@dataclass(frozen=True)
class Transaction:
    """
    A dated amount on one account.

    Negative amounts are outflows. A transaction is categorized through
    ``category_id`` or through ``splits``, never both; transfers are linked to
    their counterpart through ``transfer_transaction_id`` and carry neither.
    """

    account_id: UUID
    date: date
    amount: Money
    id: UUID = field(default_factory=uuid4)
    payee_name: str = ""
    category_id: UUID | None = None
    splits: tuple[Split, ...] = ()
    memo: str = ""
    status: TransactionStatus = TransactionStatus.PENDING
    transfer_transaction_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_split(self) -> bool:
        return bool(self.splits)

    @property
    def is_transfer(self) -> bool:
        return self.transfer_transaction_id is not None

    @property
    def is_locked(self) -> bool:
        return self.status.is_locked

    def splits_total(self) -> Money:
        return Money.sum(s.amount for s in self.splits)

    def validate(self) -> None:
        if self.is_split:
            total = self.splits_total()
            if total != self.amount:
                raise SplitsMismatchError(
                    transaction_amount=str(self.amount), splits_total=str(total)
                )
        if self.category_id is not None and self.splits:
            raise CategoryAndSplitsError()
        if self.is_transfer and (self.category_id is not None or self.splits):
            raise TransferWithCategoryError()

    def category_amounts(self) -> list[tuple[UUID, Money]]:
        """(category, amount) pairs this transaction contributes to activity."""
        if self.is_transfer:
            return []
        if self.splits:
            return [(s.category_id, s.amount) for s in self.splits]
        if self.category_id is not None:
            return [(self.category_id, self.amount)]
        return []


# ---------------------------------------------------------------------------
# Income
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomeExpectation:
    """Income the user expects to receive during one budget period."""

    period: BudgetPeriod
    expected_amount: Money
    id: UUID = field(default_factory=uuid4)
    notes: str = ""

    def validate(self) -> None:
        if self.expected_amount.is_negative:
            raise InvalidAmountError(
                self.expected_amount, "expected income cannot be negative"
            )

    def is_over_budget(self, total_budgeted: Money) -> bool:
        return total_budgeted > self.expected_amount

    def remaining_to_budget(self, total_budgeted: Money) -> Money:
        return self.expected_amount - total_budgeted
