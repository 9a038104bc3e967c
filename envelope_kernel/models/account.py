"""
Module: envelope_kernel.models.account
Responsibility: ORM persistence for accounts and their last reconciliation.
Architecture position: Kernel > Models.  May import from db/ and domain/.
"""

from datetime import date

from sqlalchemy import Boolean, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from envelope_kernel.db.base import TrackedBase
from envelope_kernel.db.types import MoneyType
from envelope_kernel.domain.dtos import Account, AccountType
from envelope_kernel.domain.values import Money


class AccountModel(TrackedBase):
    """
    A financial account (checking, credit card, cash...).

    Guarantees:
        - starting_balance is stored as integer cents.
        - last_reconciled_date and last_reconciled_balance are set together.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_account_archived", "archived"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[str] = mapped_column(
        String(20), default=AccountType.CHECKING.value, nullable=False
    )
    on_budget: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    starting_balance: Mapped[Money] = mapped_column(
        MoneyType(), default=Money.zero, nullable=False
    )
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_reconciled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_reconciled_balance: Mapped[Money | None] = mapped_column(
        MoneyType(), nullable=True
    )

    def reconcile(self, statement_date: date, balance: Money) -> None:
        self.last_reconciled_date = statement_date
        self.last_reconciled_balance = balance

    def to_dto(self) -> Account:
        return Account(
            id=self.id,
            name=self.name,
            account_type=AccountType(self.account_type),
            on_budget=self.on_budget,
            archived=self.archived,
            starting_balance=self.starting_balance,
            notes=self.notes,
            sort_order=self.sort_order,
            last_reconciled_date=self.last_reconciled_date,
            last_reconciled_balance=self.last_reconciled_balance,
        )

    @classmethod
    def from_dto(cls, dto: Account) -> "AccountModel":
        return cls(
            id=dto.id,
            name=dto.name,
            account_type=dto.account_type.value,
            on_budget=dto.on_budget,
            archived=dto.archived,
            starting_balance=dto.starting_balance,
            notes=dto.notes,
            sort_order=dto.sort_order,
            last_reconciled_date=dto.last_reconciled_date,
            last_reconciled_balance=dto.last_reconciled_balance,
        )

    def __repr__(self) -> str:
        return f"<AccountModel {self.name} [{self.account_type}]>"
