"""
PayeeService -- payees, their default category and learned category usage.

Responsibility:
    Keeps one record per payee name (case-insensitive) and suggests a
    category for a new transaction from the payee's default or, failing
    that, from the category its past transactions used most.

Invariants enforced:
    - Payee names are unique after trimming and lower-casing.
    - A manually chosen default category is never replaced by learning;
      an automatic default follows the most used category.

Failure modes:
    - PayeeNotFoundError for an unknown id.
    - CategoryNotFoundError when a default category does not exist.
    - ValidationError on an empty, over-long or duplicate name.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from envelope_kernel.domain.dtos import Payee, Transaction
from envelope_kernel.exceptions import PayeeNotFoundError, ValidationError
from envelope_kernel.logging_config import get_logger
from envelope_kernel.models.payee import PayeeCategoryUsageModel, PayeeModel
from envelope_kernel.services.base import BaseService
from envelope_kernel.services.category_service import CategoryService

logger = get_logger("services.payee")

DEFAULT_SUGGESTION_LIMIT = 10
MIN_SIMILARITY = 0.3


class PayeeService(BaseService[PayeeModel]):
    def __init__(self, session: Session, auto_commit: bool = True):
        super().__init__(session, auto_commit)
        self._categories = CategoryService(session, auto_commit=False)

    # =========================================================================
    # Creation
    # =========================================================================

    def create(self, name: str, default_category_id: UUID | None = None) -> Payee:
        """Create a payee by hand; a given default category is kept as manual."""
        name = name.strip()
        dto = Payee(name=name, default_category_id=default_category_id, manual=True)
        dto.validate()
        if default_category_id is not None:
            self._categories.ensure_exists(default_category_id)
        self._require_unique_name(name)

        with self._unit_of_work():
            self.session.add(PayeeModel.from_dto(dto))
        logger.info(
            "payee_created",
            extra={
                "payee_id": str(dto.id),
                "payee_name": name,
                "default_category_id": str(default_category_id) if default_category_id else None,
            },
        )
        return dto

    def get_or_create(self, name: str) -> Payee:
        """Existing payee with this name, or a new automatic one."""
        existing = self.get_by_name(name)
        if existing is not None:
            return existing
        dto = Payee(name=name.strip())
        dto.validate()
        with self._unit_of_work():
            self.session.add(PayeeModel.from_dto(dto))
        logger.info("payee_created", extra={"payee_id": str(dto.id), "payee_name": dto.name})
        return dto

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, payee_id: UUID) -> Payee:
        return self._model(payee_id).to_dto()

    def get_by_name(self, name: str) -> Payee | None:
        model = self._model_by_name(name)
        return model.to_dto() if model is not None else None

    def find(self, identifier: str) -> Payee | None:
        """Look up by name first, then by id."""
        found = self.get_by_name(identifier)
        if found is not None:
            return found
        try:
            payee_id = UUID(identifier.strip())
        except ValueError:
            return None
        model = self.session.get(PayeeModel, payee_id)
        return model.to_dto() if model is not None else None

    def list(self) -> list[Payee]:
        stmt = select(PayeeModel).order_by(PayeeModel.normalized_name)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(PayeeModel)) or 0

    def search(self, query: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[Payee]:
        """
        Payees scoring above ``MIN_SIMILARITY`` against ``query``, best first.
        Equal scores keep alphabetical order.
        """
        scored = [(p, p.similarity_score(query)) for p in self.list()]
        scored = [(p, s) for p, s in scored if s > MIN_SIMILARITY]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [p for p, _ in scored[:limit]]

    def suggest(self, partial: str) -> list[Payee]:
        return self.search(partial, DEFAULT_SUGGESTION_LIMIT)

    def get_suggested_category(self, payee_name: str) -> UUID | None:
        payee = self.get_by_name(payee_name)
        if payee is None:
            return None
        return payee.suggested_category()

    # =========================================================================
    # Updates
    # =========================================================================

    def rename(self, payee_id: UUID, name: str) -> Payee:
        name = name.strip()
        Payee(name=name).validate()
        model = self._model(payee_id)
        old_name = model.name
        self._require_unique_name(name, exclude_id=payee_id)
        with self._unit_of_work():
            model.rename(name)
        logger.info(
            "payee_renamed",
            extra={"payee_id": str(payee_id), "from_name": old_name, "to_name": name},
        )
        return model.to_dto()

    def set_default_category(self, payee_id: UUID, category_id: UUID) -> Payee:
        model = self._model(payee_id)
        self._categories.ensure_exists(category_id)
        with self._unit_of_work():
            model.default_category_id = category_id
            model.manual = True
        logger.info(
            "payee_default_category_set",
            extra={"payee_id": str(payee_id), "category_id": str(category_id)},
        )
        return model.to_dto()

    def clear_default_category(self, payee_id: UUID) -> Payee:
        model = self._model(payee_id)
        with self._unit_of_work():
            model.default_category_id = None
            model.manual = False
        logger.info("payee_default_category_cleared", extra={"payee_id": str(payee_id)})
        return model.to_dto()

    def record_category_usage(self, payee_id: UUID, category_id: UUID) -> Payee:
        """Count one more use of ``category_id`` by this payee."""
        model = self._model(payee_id)
        self._categories.ensure_exists(category_id)
        with self._unit_of_work():
            model.usage_sequence += 1
            usage = next((u for u in model.usage if u.category_id == category_id), None)
            if usage is None:
                usage = PayeeCategoryUsageModel(category_id=category_id, count=0)
                model.usage.append(usage)
            usage.count += 1
            usage.last_used = model.usage_sequence
            if not model.manual:
                model.default_category_id = model.to_dto().most_used_category()
        logger.debug(
            "payee_category_usage_recorded",
            extra={
                "payee_id": str(payee_id),
                "category_id": str(category_id),
                "count": usage.count,
            },
        )
        return model.to_dto()

    def learn_from_transaction(self, transaction: Transaction) -> Payee | None:
        """
        Record the category of a categorized, non-transfer transaction
        against its payee, creating the payee when needed.  Split and
        uncategorized transactions teach nothing.
        """
        if transaction.is_transfer or transaction.category_id is None:
            return None
        if not transaction.payee_name.strip():
            return None
        payee = self.get_or_create(transaction.payee_name)
        return self.record_category_usage(payee.id, transaction.category_id)

    def delete(self, payee_id: UUID) -> Payee:
        model = self._model(payee_id)
        dto = model.to_dto()
        with self._unit_of_work():
            self.session.delete(model)
        logger.info("payee_deleted", extra={"payee_id": str(payee_id), "payee_name": dto.name})
        return dto

    # =========================================================================
    # Helpers
    # =========================================================================

    def _model(self, payee_id: UUID) -> PayeeModel:
        model = self.session.get(PayeeModel, payee_id)
        if model is None:
            raise PayeeNotFoundError(payee_id)
        return model

    def _model_by_name(self, name: str) -> PayeeModel | None:
        return self.session.scalar(
            select(PayeeModel).where(
                PayeeModel.normalized_name == Payee.normalize_name(name)
            )
        )

    def _require_unique_name(self, name: str, exclude_id: UUID | None = None) -> None:
        existing = self._model_by_name(name)
        if existing is not None and existing.id != exclude_id:
            raise ValidationError(f"Payee already exists: {name}", field="name", value=name)
