"""
Module: envelope_kernel.models.category
Responsibility: ORM persistence for category groups and the categories
    (envelopes) inside them.
Architecture position: Kernel > Models.  May import from db/ and domain/.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from envelope_kernel.db.base import TrackedBase, UUIDString
from envelope_kernel.domain.dtos import Category, CategoryGroup


class CategoryGroupModel(TrackedBase):
    __tablename__ = "category_groups"

    __table_args__ = (
        UniqueConstraint("name", name="uq_category_group_name"),
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    categories: Mapped[list["CategoryModel"]] = relationship(
        back_populates="group",
        order_by="CategoryModel.sort_order",
    )

    def to_dto(self) -> CategoryGroup:
        return CategoryGroup(
            id=self.id,
            name=self.name,
            sort_order=self.sort_order,
            hidden=self.hidden,
        )

    @classmethod
    def from_dto(cls, dto: CategoryGroup) -> "CategoryGroupModel":
        return cls(
            id=dto.id,
            name=dto.name,
            sort_order=dto.sort_order,
            hidden=dto.hidden,
        )

    def __repr__(self) -> str:
        return f"<CategoryGroupModel {self.name}>"


class CategoryModel(TrackedBase):
    """A spending envelope. Names are unique within their group."""

    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("group_id", "name", name="uq_category_group_name_pair"),
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    group_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("category_groups.id"), nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    group: Mapped[CategoryGroupModel] = relationship(back_populates="categories")

    def to_dto(self) -> Category:
        return Category(
            id=self.id,
            name=self.name,
            group_id=self.group_id,
            sort_order=self.sort_order,
            hidden=self.hidden,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto: Category) -> "CategoryModel":
        return cls(
            id=dto.id,
            name=dto.name,
            group_id=dto.group_id,
            sort_order=dto.sort_order,
            hidden=dto.hidden,
            notes=dto.notes,
        )

    def __repr__(self) -> str:
        return f"<CategoryModel {self.name}>"
