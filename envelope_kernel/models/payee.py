"""
Module: envelope_kernel.models.payee
Responsibility: ORM persistence for payees and the per-category usage counts
    used to suggest a category for new transactions.
Architecture position: Kernel > Models.  May import from db/ and domain/.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from envelope_kernel.db.base import Base, TrackedBase, UUIDString
from envelope_kernel.domain.dtos import CategoryUsage, Payee


class PayeeModel(TrackedBase):
    """
    A payee. ``normalized_name`` (trimmed, lower-cased) is unique so lookups
    by name are case-insensitive.
    """

    __tablename__ = "payees"

    __table_args__ = (
        UniqueConstraint("normalized_name", name="uq_payee_normalized_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(100), nullable=False)
    default_category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=True
    )
    manual: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Bumped on every recorded usage; orders ties between usage counts
    usage_sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    usage: Mapped[list["PayeeCategoryUsageModel"]] = relationship(
        back_populates="payee",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def rename(self, name: str) -> None:
        self.name = name
        self.normalized_name = Payee.normalize_name(name)

    def to_dto(self) -> Payee:
        return Payee(
            id=self.id,
            name=self.name,
            default_category_id=self.default_category_id,
            manual=self.manual,
            usage=tuple(u.to_dto() for u in self.usage),
        )

    @classmethod
    def from_dto(cls, dto: Payee) -> "PayeeModel":
        model = cls(
            id=dto.id,
            default_category_id=dto.default_category_id,
            manual=dto.manual,
            usage_sequence=0,
        )
        model.rename(dto.name)
        return model

    def __repr__(self) -> str:
        return f"<PayeeModel {self.name}>"


class PayeeCategoryUsageModel(Base):
    __tablename__ = "payee_category_usage"

    __table_args__ = (
        UniqueConstraint("payee_id", "category_id", name="uq_payee_category_usage"),
    )

    payee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("payees.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=False
    )
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    payee: Mapped[PayeeModel] = relationship(back_populates="usage")

    def to_dto(self) -> CategoryUsage:
        return CategoryUsage(
            category_id=self.category_id, count=self.count, last_used=self.last_used
        )
