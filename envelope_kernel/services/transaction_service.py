"""
TransactionService -- transaction records, splits, transfers and the
reconciled-transaction lock.

Responsibility:
    Creates, edits, lists and deletes transactions; keeps the two sides of a
    transfer consistent; and refuses every mutation of a reconciled
    transaction until it is explicitly unlocked.

Architecture position:
    Kernel > Services -- imperative shell.  Returns frozen ``Transaction``
    DTOs.  The ORM listener in db/immutability.py backs the lock at flush
    time.

Invariants enforced:
    - Every created or edited transaction passes ``Transaction.validate``.
    - Referenced accounts and categories exist; archived accounts accept no
      new transactions.
    - A transfer's two sides always carry opposite amounts and the same date.
    - RECONCILED transactions reject update, delete, status change and split
      edits with ``LockedError``; ``unlock`` moves them back to CLEARED.

Failure modes:
    - TransactionNotFoundError, AccountNotFoundError, CategoryNotFoundError.
    - LockedError, TransactionNotLockedError.
    - AccountArchivedError, SameAccountError, InvalidAmountError.
    - SplitsMismatchError, CategoryAndSplitsError, TransferWithCategoryError.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from envelope_kernel.domain.dtos import Split, Transaction, TransactionStatus
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import (
    AccountArchivedError,
    InvalidAmountError,
    LockedError,
    SameAccountError,
    TransactionNotFoundError,
    TransactionNotLockedError,
)
from envelope_kernel.logging_config import get_logger
from envelope_kernel.models.account import AccountModel
from envelope_kernel.models.transaction import SplitModel, TransactionModel
from envelope_kernel.services.account_service import AccountService
from envelope_kernel.services.base import BaseService
from envelope_kernel.services.category_service import CategoryService

logger = get_logger("services.transaction")

_UNSET: Any = object()


@dataclass(frozen=True)
class TransactionFilter:
    """Criteria for ``TransactionService.list``; unset fields do not filter."""

    account_id: UUID | None = None
    category_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: TransactionStatus | None = None
    limit: int | None = None


class TransactionService(BaseService[TransactionModel]):
    def __init__(self, session: Session, auto_commit: bool = True):
        super().__init__(session, auto_commit)
        self._accounts = AccountService(session, auto_commit=False)
        self._categories = CategoryService(session, auto_commit=False)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_model(self, transaction_id: UUID) -> TransactionModel:
        model = self.session.get(TransactionModel, transaction_id)
        if model is None:
            raise TransactionNotFoundError(transaction_id)
        return model

    def get(self, transaction_id: UUID) -> Transaction:
        return self.get_model(transaction_id).to_dto()

    def get_linked(self, transaction_id: UUID) -> Transaction | None:
        """The other side of a transfer, or None for ordinary transactions."""
        model = self.get_model(transaction_id)
        if model.transfer_transaction_id is None:
            return None
        linked = self.session.get(TransactionModel, model.transfer_transaction_id)
        return linked.to_dto() if linked is not None else None

    def list(self, criteria: TransactionFilter | None = None) -> list[Transaction]:
        """Transactions matching ``criteria``, oldest first."""
        criteria = criteria or TransactionFilter()
        stmt = select(TransactionModel)
        if criteria.account_id is not None:
            stmt = stmt.where(TransactionModel.account_id == criteria.account_id)
        if criteria.category_id is not None:
            stmt = stmt.where(
                or_(
                    TransactionModel.category_id == criteria.category_id,
                    TransactionModel.splits.any(SplitModel.category_id == criteria.category_id),
                )
            )
        if criteria.start_date is not None:
            stmt = stmt.where(TransactionModel.date >= criteria.start_date)
        if criteria.end_date is not None:
            stmt = stmt.where(TransactionModel.date <= criteria.end_date)
        if criteria.status is not None:
            stmt = stmt.where(TransactionModel.status == criteria.status.value)
        stmt = stmt.order_by(TransactionModel.date, TransactionModel.created_at)
        if criteria.limit is not None:
            stmt = stmt.limit(criteria.limit)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def list_uncleared(self, account_id: UUID) -> list[Transaction]:
        return self.list(TransactionFilter(account_id=account_id, status=TransactionStatus.PENDING))

    def list_unreconciled(self, account_id: UUID) -> list[Transaction]:
        """PENDING and CLEARED transactions of the account, oldest first."""
        stmt = (
            select(TransactionModel)
            .where(
                TransactionModel.account_id == account_id,
                TransactionModel.status != TransactionStatus.RECONCILED.value,
            )
            .order_by(TransactionModel.date, TransactionModel.created_at)
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        account_id: UUID,
        date: date,
        amount: Money,
        payee_name: str = "",
        category_id: UUID | None = None,
        splits: tuple[Split, ...] | list[Split] = (),
        memo: str = "",
        status: TransactionStatus = TransactionStatus.PENDING,
    ) -> Transaction:
        self._require_active_account(account_id, "add transactions")
        if category_id is not None:
            self._categories.ensure_exists(category_id)
        for split in splits:
            self._categories.ensure_exists(split.category_id)

        dto = Transaction(
            account_id=account_id,
            date=date,
            amount=amount,
            payee_name=payee_name.strip(),
            category_id=category_id,
            splits=tuple(splits),
            memo=memo,
            status=status,
        )
        dto.validate()

        model = TransactionModel.from_dto(dto)
        with self._unit_of_work():
            self.session.add(model)

        logger.info(
            "transaction_created",
            extra={
                "transaction_id": str(dto.id),
                "account_id": str(account_id),
                "date": date.isoformat(),
                "amount_cents": amount.cents,
                "split_count": len(dto.splits),
            },
        )
        return model.to_dto()

    def create_transfer(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Money,
        date: date,
        memo: str = "",
    ) -> tuple[Transaction, Transaction]:
        """
        Move money between two accounts as a linked outflow/inflow pair.

        Returns:
            ``(outflow, inflow)``.
        """
        if not amount.is_positive:
            raise InvalidAmountError(amount, "transfer amount must be positive")
        if from_account_id == to_account_id:
            raise SameAccountError(from_account_id)

        source = self._require_active_account(from_account_id, "transfer")
        destination = self._require_active_account(to_account_id, "transfer")

        outflow = Transaction(
            account_id=from_account_id,
            date=date,
            amount=-amount,
            payee_name=f"Transfer to {destination.name}",
            memo=memo,
        )
        inflow = Transaction(
            account_id=to_account_id,
            date=date,
            amount=amount,
            payee_name=f"Transfer from {source.name}",
            memo=memo,
            transfer_transaction_id=outflow.id,
        )
        outflow = dataclasses.replace(outflow, transfer_transaction_id=inflow.id)
        outflow.validate()
        inflow.validate()

        out_model = TransactionModel.from_dto(outflow)
        in_model = TransactionModel.from_dto(inflow)
        with self._unit_of_work():
            self.session.add_all([out_model, in_model])

        logger.info(
            "transfer_created",
            extra={
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
                "amount_cents": amount.cents,
                "outflow_id": str(outflow.id),
                "inflow_id": str(inflow.id),
            },
        )
        return out_model.to_dto(), in_model.to_dto()

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def update(
        self,
        transaction_id: UUID,
        *,
        date: date = _UNSET,
        amount: Money = _UNSET,
        payee_name: str = _UNSET,
        category_id: UUID | None = _UNSET,
        memo: str = _UNSET,
    ) -> Transaction:
        """
        Edit fields of an unlocked transaction. Omitted fields are unchanged;
        ``category_id=None`` removes the category. Setting a category drops
        any splits. Amount and date edits on a transfer are mirrored onto the
        other side.
        """
        model = self.get_model(transaction_id)
        self._require_unlocked(model, "edited")

        current = model.to_dto()
        changes: dict[str, Any] = {}
        if date is not _UNSET:
            changes["date"] = date
        if amount is not _UNSET:
            changes["amount"] = amount
        if payee_name is not _UNSET:
            changes["payee_name"] = payee_name.strip()
        if memo is not _UNSET:
            changes["memo"] = memo
        if category_id is not _UNSET:
            if category_id is not None:
                self._categories.ensure_exists(category_id)
                changes["splits"] = ()
            changes["category_id"] = category_id

        updated = dataclasses.replace(current, **changes)
        updated.validate()

        linked = None
        if updated.is_transfer and ("amount" in changes or "date" in changes):
            linked = self.session.get(TransactionModel, updated.transfer_transaction_id)
            if linked is not None:
                self._require_unlocked(linked, "edited")

        with self._unit_of_work():
            model.date = updated.date
            model.amount = updated.amount
            model.payee_name = updated.payee_name
            model.memo = updated.memo
            model.category_id = updated.category_id
            if "splits" in changes and model.splits:
                model.splits = []
            if linked is not None:
                linked.amount = -updated.amount
                linked.date = updated.date

        logger.info(
            "transaction_updated",
            extra={
                "transaction_id": str(transaction_id),
                "fields": sorted(changes),
                "mirrored_transfer": linked is not None,
            },
        )
        return model.to_dto()

    def set_splits(
        self, transaction_id: UUID, splits: tuple[Split, ...] | list[Split]
    ) -> Transaction:
        """Replace all splits; the transaction's single category is removed."""
        model = self.get_model(transaction_id)
        self._require_unlocked(model, "edited")
        for split in splits:
            self._categories.ensure_exists(split.category_id)

        updated = dataclasses.replace(model.to_dto(), splits=tuple(splits), category_id=None)
        updated.validate()

        with self._unit_of_work():
            model.category_id = None
            model.replace_splits(updated.splits)

        logger.info(
            "transaction_splits_set",
            extra={"transaction_id": str(transaction_id), "split_count": len(updated.splits)},
        )
        return model.to_dto()

    def clear_splits(self, transaction_id: UUID) -> Transaction:
        model = self.get_model(transaction_id)
        self._require_unlocked(model, "edited")
        if not model.splits:
            return model.to_dto()
        with self._unit_of_work():
            model.splits = []
        logger.info("transaction_splits_cleared", extra={"transaction_id": str(transaction_id)})
        return model.to_dto()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status(self, transaction_id: UUID, status: TransactionStatus) -> Transaction:
        model = self.get_model(transaction_id)
        if model.is_locked and status is not TransactionStatus.RECONCILED:
            raise LockedError(transaction_id, "changed")

        previous = model.status
        with self._unit_of_work():
            model.status = status.value

        logger.info(
            "transaction_status_changed",
            extra={
                "transaction_id": str(transaction_id),
                "from_status": previous,
                "to_status": status.value,
            },
        )
        return model.to_dto()

    def clear(self, transaction_id: UUID) -> Transaction:
        return self.set_status(transaction_id, TransactionStatus.CLEARED)

    def unclear(self, transaction_id: UUID) -> Transaction:
        return self.set_status(transaction_id, TransactionStatus.PENDING)

    def unlock(self, transaction_id: UUID) -> Transaction:
        """Move a reconciled transaction back to CLEARED so it can be edited."""
        model = self.get_model(transaction_id)
        if not model.is_locked:
            raise TransactionNotLockedError(transaction_id)

        with self._unit_of_work():
            model.status = TransactionStatus.CLEARED.value

        logger.warning(
            "transaction_unlocked",
            extra={"transaction_id": str(transaction_id), "account_id": str(model.account_id)},
        )
        return model.to_dto()

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, transaction_id: UUID) -> Transaction:
        """Delete a transaction; deleting either side of a transfer deletes both."""
        model = self.get_model(transaction_id)
        self._require_unlocked(model, "deleted")

        linked = None
        if model.transfer_transaction_id is not None:
            linked = self.session.get(TransactionModel, model.transfer_transaction_id)
            if linked is not None:
                self._require_unlocked(linked, "deleted")

        dto = model.to_dto()
        with self._unit_of_work():
            if linked is not None:
                self.session.delete(linked)
            self.session.delete(model)

        logger.info(
            "transaction_deleted",
            extra={
                "transaction_id": str(transaction_id),
                "linked_transaction_id": str(linked.id) if linked is not None else None,
            },
        )
        return dto

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_unlocked(self, model: TransactionModel, operation: str) -> None:
        if model.is_locked:
            logger.warning(
                "locked_transaction_mutation_refused",
                extra={"transaction_id": str(model.id), "operation": operation},
            )
            raise LockedError(model.id, operation)

    def _require_active_account(self, account_id: UUID, operation: str) -> AccountModel:
        account = self._accounts.get_model(account_id)
        if account.archived:
            raise AccountArchivedError(account_id, operation)
        return account
