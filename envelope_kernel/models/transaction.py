"""
Module: envelope_kernel.models.transaction
Responsibility: ORM persistence for transactions and their category splits.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Splits are owned by their transaction (cascade delete-orphan) and keep
      their entry order through ``position``.
    - A row persisted as RECONCILED accepts no field change other than the
      unlock transition (see db/immutability.py).
"""

import datetime as dt
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from envelope_kernel.db.base import Base, TrackedBase, UUIDString
from envelope_kernel.db.types import MoneyType
from envelope_kernel.domain.dtos import Split, Transaction, TransactionStatus
from envelope_kernel.domain.values import Money


class TransactionModel(TrackedBase):
    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transaction_account_date", "account_id", "date"),
        Index("idx_transaction_category", "category_id"),
        Index("idx_transaction_status", "status"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Money] = mapped_column(MoneyType(), nullable=False)
    payee_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=True
    )
    memo: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TransactionStatus.PENDING.value, nullable=False
    )
    # Counterpart of a transfer; no FK so either side can be removed first
    transfer_transaction_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True
    )

    splits: Mapped[list["SplitModel"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="SplitModel.position",
        lazy="selectin",
    )

    @property
    def status_enum(self) -> TransactionStatus:
        return TransactionStatus(self.status)

    @property
    def is_locked(self) -> bool:
        return self.status_enum.is_locked

    def replace_splits(self, splits: tuple[Split, ...] | list[Split]) -> None:
        self.splits = [
            SplitModel(
                category_id=s.category_id,
                amount=s.amount,
                memo=s.memo,
                position=i,
            )
            for i, s in enumerate(splits)
        ]

    def to_dto(self) -> Transaction:
        return Transaction(
            id=self.id,
            account_id=self.account_id,
            date=self.date,
            amount=self.amount,
            payee_name=self.payee_name,
            category_id=self.category_id,
            splits=tuple(s.to_dto() for s in self.splits),
            memo=self.memo,
            status=TransactionStatus(self.status),
            transfer_transaction_id=self.transfer_transaction_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: Transaction) -> "TransactionModel":
        model = cls(
            id=dto.id,
            account_id=dto.account_id,
            date=dto.date,
            amount=dto.amount,
            payee_name=dto.payee_name,
            category_id=dto.category_id,
            memo=dto.memo,
            status=dto.status.value,
            transfer_transaction_id=dto.transfer_transaction_id,
        )
        model.replace_splits(dto.splits)
        return model

    def __repr__(self) -> str:
        return f"<TransactionModel {self.date} {self.amount} [{self.status}]>"


class SplitModel(Base):
    __tablename__ = "transaction_splits"

    __table_args__ = (
        Index("idx_split_transaction", "transaction_id"),
        Index("idx_split_category", "category_id"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=False
    )
    amount: Mapped[Money] = mapped_column(MoneyType(), nullable=False)
    memo: Mapped[str] = mapped_column(Text, default="", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    transaction: Mapped[TransactionModel] = relationship(back_populates="splits")

    def to_dto(self) -> Split:
        return Split(category_id=self.category_id, amount=self.amount, memo=self.memo)
