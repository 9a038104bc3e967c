"""
CategoryService -- category groups and categories (envelopes).

Invariants enforced:
    - Group names are unique; category names are unique within a group,
      including after a rename or a move.
    - A category referenced by a transaction, a split or an allocation is
      never deleted.  Its target and any payee links go with it.

Failure modes:
    - CategoryNotFoundError / CategoryGroupNotFoundError for unknown ids.
    - ValidationError on an empty, over-long or duplicate name.
    - CategoryInUseError when deleting a category that still has history.
    - CategoryGroupNotEmptyError when deleting a non-empty group without
      ``force``.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from envelope_kernel.domain.dtos import Category, CategoryGroup
from envelope_kernel.exceptions import (
    CategoryGroupNotEmptyError,
    CategoryGroupNotFoundError,
    CategoryInUseError,
    CategoryNotFoundError,
    ValidationError,
)
from envelope_kernel.logging_config import get_logger
from envelope_kernel.models.budget import BudgetAllocationModel, BudgetTargetModel
from envelope_kernel.models.category import CategoryGroupModel, CategoryModel
from envelope_kernel.models.payee import PayeeCategoryUsageModel, PayeeModel
from envelope_kernel.models.transaction import SplitModel, TransactionModel
from envelope_kernel.services.base import BaseService

logger = get_logger("services.category")


class CategoryService(BaseService[CategoryModel]):
    def __init__(self, session: Session, auto_commit: bool = True):
        super().__init__(session, auto_commit)

    # =========================================================================
    # Groups
    # =========================================================================

    def create_group(self, name: str, sort_order: int | None = None) -> CategoryGroup:
        name = name.strip()
        if sort_order is None:
            sort_order = len(self.list_groups())
        dto = CategoryGroup(name=name, sort_order=sort_order)
        dto.validate()
        self._require_unique_group_name(name)

        with self._unit_of_work():
            self.session.add(CategoryGroupModel.from_dto(dto))
        logger.info(
            "category_group_created", extra={"group_id": str(dto.id), "group_name": name}
        )
        return dto

    def update_group(
        self,
        group_id: UUID,
        *,
        name: str | None = None,
        hidden: bool | None = None,
    ) -> CategoryGroup:
        model = self._group_model(group_id)
        old_name = model.name
        if name is not None:
            name = name.strip()
            CategoryGroup(name=name).validate()
            self._require_unique_group_name(name, exclude_id=group_id)

        with self._unit_of_work():
            if name is not None:
                model.name = name
            if hidden is not None:
                model.hidden = hidden
        logger.info(
            "category_group_updated",
            extra={"group_id": str(group_id), "from_name": old_name, "to_name": model.name},
        )
        return model.to_dto()

    def delete_group(self, group_id: UUID, force: bool = False) -> None:
        """
        Delete a group.  A non-empty group needs ``force``, which deletes each
        of its categories under the usual in-use check.
        """
        model = self._group_model(group_id)
        categories = self.list_categories(group_id)
        if categories and not force:
            raise CategoryGroupNotEmptyError(group_id, len(categories))

        for category in categories:
            self._require_unused(category.id)

        with self._unit_of_work():
            for category in categories:
                self._delete_category_rows(category.id)
            self.session.delete(model)
        logger.info(
            "category_group_deleted",
            extra={"group_id": str(group_id), "category_count": len(categories)},
        )

    def reorder_groups(self, order: list[UUID]) -> None:
        """Give each listed group its position in ``order``; unknown ids are skipped."""
        with self._unit_of_work():
            for position, group_id in enumerate(order):
                model = self.session.get(CategoryGroupModel, group_id)
                if model is not None:
                    model.sort_order = position

    def get_group(self, group_id: UUID) -> CategoryGroup:
        return self._group_model(group_id).to_dto()

    def get_group_by_name(self, name: str) -> CategoryGroup | None:
        model = self.session.scalar(
            select(CategoryGroupModel).where(
                func.lower(CategoryGroupModel.name) == name.strip().lower()
            )
        )
        return model.to_dto() if model is not None else None

    def list_groups(self) -> list[CategoryGroup]:
        stmt = select(CategoryGroupModel).order_by(
            CategoryGroupModel.sort_order, CategoryGroupModel.name
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    # =========================================================================
    # Categories
    # =========================================================================

    def create_category(
        self,
        name: str,
        group_id: UUID,
        notes: str = "",
        sort_order: int | None = None,
    ) -> Category:
        name = name.strip()
        self.get_group(group_id)
        if sort_order is None:
            sort_order = len(self.list_categories(group_id))
        dto = Category(name=name, group_id=group_id, notes=notes, sort_order=sort_order)
        dto.validate()
        self._require_unique_category_name(name, group_id)

        with self._unit_of_work():
            self.session.add(CategoryModel.from_dto(dto))
        logger.info(
            "category_created",
            extra={
                "category_id": str(dto.id),
                "group_id": str(group_id),
                "category_name": name,
            },
        )
        return dto

    def update_category(
        self,
        category_id: UUID,
        *,
        name: str | None = None,
        notes: str | None = None,
        hidden: bool | None = None,
    ) -> Category:
        """Rename, re-note or hide a category; arguments left as None are kept."""
        model = self._category_model(category_id)
        old_name = model.name
        if name is not None:
            name = name.strip()
            Category(name=name, group_id=model.group_id).validate()
            self._require_unique_category_name(name, model.group_id, exclude_id=category_id)

        with self._unit_of_work():
            if name is not None:
                model.name = name
            if notes is not None:
                model.notes = notes
            if hidden is not None:
                model.hidden = hidden
        logger.info(
            "category_updated",
            extra={
                "category_id": str(category_id),
                "from_name": old_name,
                "to_name": model.name,
            },
        )
        return model.to_dto()

    def move_category(self, category_id: UUID, group_id: UUID) -> Category:
        """Move a category to the end of another group."""
        model = self._category_model(category_id)
        self.get_group(group_id)
        from_group_id = model.group_id
        if from_group_id == group_id:
            return model.to_dto()
        self._require_unique_category_name(model.name, group_id)

        with self._unit_of_work():
            model.sort_order = len(self.list_categories(group_id))
            model.group_id = group_id
        logger.info(
            "category_moved",
            extra={
                "category_id": str(category_id),
                "from_group_id": str(from_group_id),
                "to_group_id": str(group_id),
            },
        )
        return model.to_dto()

    def delete_category(self, category_id: UUID) -> None:
        self._category_model(category_id)
        self._require_unused(category_id)
        with self._unit_of_work():
            self._delete_category_rows(category_id)
        logger.info("category_deleted", extra={"category_id": str(category_id)})

    def reorder_categories(self, group_id: UUID, order: list[UUID]) -> None:
        """Positions within ``group_id``; ids of other groups are skipped."""
        self.get_group(group_id)
        with self._unit_of_work():
            for position, category_id in enumerate(order):
                model = self.session.get(CategoryModel, category_id)
                if model is not None and model.group_id == group_id:
                    model.sort_order = position

    def get_category(self, category_id: UUID) -> Category:
        return self._category_model(category_id).to_dto()

    def get_category_by_name(self, name: str) -> Category | None:
        """Case-insensitive; the first match in display order wins."""
        key = name.strip().lower()
        for category in self.list_categories():
            if category.name.lower() == key:
                return category
        return None

    def find_category(self, identifier: str) -> Category | None:
        """Look up by name first, then by id."""
        found = self.get_category_by_name(identifier)
        if found is not None:
            return found
        try:
            category_id = UUID(identifier.strip())
        except ValueError:
            return None
        model = self.session.get(CategoryModel, category_id)
        return model.to_dto() if model is not None else None

    def ensure_exists(self, category_id: UUID) -> None:
        self._category_model(category_id)

    def list_categories(self, group_id: UUID | None = None) -> list[Category]:
        """Categories ordered by group then position; optionally one group only."""
        stmt = (
            select(CategoryModel)
            .join(CategoryGroupModel, CategoryModel.group_id == CategoryGroupModel.id)
            .order_by(
                CategoryGroupModel.sort_order,
                CategoryModel.sort_order,
                CategoryModel.name,
            )
        )
        if group_id is not None:
            stmt = stmt.where(CategoryModel.group_id == group_id)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def reference_count(self, category_id: UUID) -> int:
        """Transactions, splits and allocations that point at the category."""
        counts = (
            select(func.count()).select_from(TransactionModel).where(
                TransactionModel.category_id == category_id
            ),
            select(func.count()).select_from(SplitModel).where(
                SplitModel.category_id == category_id
            ),
            select(func.count()).select_from(BudgetAllocationModel).where(
                BudgetAllocationModel.category_id == category_id
            ),
        )
        return sum(self.session.scalar(stmt) or 0 for stmt in counts)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _group_model(self, group_id: UUID) -> CategoryGroupModel:
        model = self.session.get(CategoryGroupModel, group_id)
        if model is None:
            raise CategoryGroupNotFoundError(group_id)
        return model

    def _category_model(self, category_id: UUID) -> CategoryModel:
        model = self.session.get(CategoryModel, category_id)
        if model is None:
            raise CategoryNotFoundError(category_id)
        return model

    def _require_unique_group_name(self, name: str, exclude_id: UUID | None = None) -> None:
        stmt = select(CategoryGroupModel).where(CategoryGroupModel.name == name)
        if exclude_id is not None:
            stmt = stmt.where(CategoryGroupModel.id != exclude_id)
        if self.session.scalar(stmt) is not None:
            raise ValidationError(
                f"Category group already exists: {name}", field="name", value=name
            )

    def _require_unique_category_name(
        self, name: str, group_id: UUID, exclude_id: UUID | None = None
    ) -> None:
        stmt = select(CategoryModel).where(
            CategoryModel.group_id == group_id, CategoryModel.name == name
        )
        if exclude_id is not None:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        if self.session.scalar(stmt) is not None:
            raise ValidationError(
                f"Category already exists in this group: {name}", field="name", value=name
            )

    def _require_unused(self, category_id: UUID) -> None:
        references = self.reference_count(category_id)
        if references:
            raise CategoryInUseError(category_id, references)

    def _delete_category_rows(self, category_id: UUID) -> None:
        target = self.session.scalar(
            select(BudgetTargetModel).where(BudgetTargetModel.category_id == category_id)
        )
        if target is not None:
            self.session.delete(target)
        usages = self.session.scalars(
            select(PayeeCategoryUsageModel).where(
                PayeeCategoryUsageModel.category_id == category_id
            )
        ).all()
        for usage in usages:
            usage.payee.usage.remove(usage)
        payees = self.session.scalars(
            select(PayeeModel).where(PayeeModel.default_category_id == category_id)
        ).all()
        for payee in payees:
            payee.default_category_id = None
            payee.manual = False
        # Dependents first; the category row is referenced by their FKs
        self.session.flush()
        self.session.delete(self.session.get(CategoryModel, category_id))
