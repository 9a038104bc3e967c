"""
AccountService -- account records and balances.

Responsibility:
    Creates, archives and looks up accounts and computes their working,
    cleared and on-budget balances from the transaction table.

Architecture position:
    Kernel > Services -- imperative shell.  Returns frozen ``Account`` DTOs,
    never ORM rows.

Failure modes:
    - AccountNotFoundError for an unknown id.
    - ValidationError on an empty or over-long name.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import BigInteger, func, select
from sqlalchemy.orm import Session

from envelope_kernel.domain.dtos import Account, AccountType, TransactionStatus
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import AccountNotFoundError
from envelope_kernel.logging_config import get_logger
from envelope_kernel.models.account import AccountModel
from envelope_kernel.models.transaction import TransactionModel
from envelope_kernel.services.base import BaseService

logger = get_logger("services.account")

_CLEARED_STATUSES = (TransactionStatus.CLEARED.value, TransactionStatus.RECONCILED.value)


def sum_cents(session: Session, stmt) -> Money:
    """Run a single-column SUM statement and return the result as Money."""
    return Money(int(session.execute(stmt).scalar() or 0))


class AccountService(BaseService[AccountModel]):
    def __init__(self, session: Session, auto_commit: bool = True):
        super().__init__(session, auto_commit)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def create(
        self,
        name: str,
        account_type: AccountType = AccountType.CHECKING,
        starting_balance: Money | None = None,
        on_budget: bool = True,
        notes: str = "",
    ) -> Account:
        dto = Account(
            name=name.strip(),
            account_type=account_type,
            starting_balance=starting_balance if starting_balance is not None else Money.zero(),
            on_budget=on_budget,
            notes=notes,
        )
        dto.validate()

        with self._unit_of_work():
            self.session.add(AccountModel.from_dto(dto))

        logger.info(
            "account_created",
            extra={
                "account_id": str(dto.id),
                "account_type": dto.account_type.value,
                "on_budget": dto.on_budget,
                "starting_balance_cents": dto.starting_balance.cents,
            },
        )
        return dto

    def get_model(self, account_id: UUID) -> AccountModel:
        model = self.session.get(AccountModel, account_id)
        if model is None:
            raise AccountNotFoundError(account_id)
        return model

    def get(self, account_id: UUID) -> Account:
        return self.get_model(account_id).to_dto()

    def list(self, include_archived: bool = False) -> list[Account]:
        stmt = select(AccountModel).order_by(AccountModel.sort_order, AccountModel.name)
        if not include_archived:
            stmt = stmt.where(AccountModel.archived.is_(False))
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def archive(self, account_id: UUID) -> Account:
        return self._set_archived(account_id, True)

    def unarchive(self, account_id: UUID) -> Account:
        return self._set_archived(account_id, False)

    def _set_archived(self, account_id: UUID, archived: bool) -> Account:
        with self._unit_of_work():
            model = self.get_model(account_id)
            model.archived = archived
        logger.info(
            "account_archived" if archived else "account_unarchived",
            extra={"account_id": str(account_id)},
        )
        return model.to_dto()

    def mark_reconciled(self, account_id: UUID, statement_date, balance: Money) -> Account:
        with self._unit_of_work():
            model = self.get_model(account_id)
            model.reconcile(statement_date, balance)
        return model.to_dto()

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def calculate_balance(self, account_id: UUID) -> Money:
        """Starting balance plus every transaction on the account."""
        model = self.get_model(account_id)
        stmt = select(func.sum(TransactionModel.amount, type_=BigInteger)).where(
            TransactionModel.account_id == account_id
        )
        return model.starting_balance + sum_cents(self.session, stmt)

    def calculate_cleared_balance(self, account_id: UUID) -> Money:
        """Starting balance plus cleared and reconciled transactions."""
        model = self.get_model(account_id)
        stmt = select(func.sum(TransactionModel.amount, type_=BigInteger)).where(
            TransactionModel.account_id == account_id,
            TransactionModel.status.in_(_CLEARED_STATUSES),
        )
        return model.starting_balance + sum_cents(self.session, stmt)

    def calculate_reconciled_balance(self, account_id: UUID) -> Money:
        """Starting balance plus reconciled transactions only."""
        model = self.get_model(account_id)
        stmt = select(func.sum(TransactionModel.amount, type_=BigInteger)).where(
            TransactionModel.account_id == account_id,
            TransactionModel.status == TransactionStatus.RECONCILED.value,
        )
        return model.starting_balance + sum_cents(self.session, stmt)

    def total_on_budget_balance(self) -> Money:
        """Working balance summed over active on-budget accounts."""
        total = Money.zero()
        for account in self.list():
            if account.on_budget:
                total += self.calculate_balance(account.id)
        return total
