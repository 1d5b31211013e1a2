"""Ledger category definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .transaction_type import TransactionType


class Category(SQLModel, table=True):
    """Label scoped to a transaction type, used for organization and reporting."""

    __tablename__: ClassVar[str] = "category"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_category_owner_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    name: str = Field(index=True, nullable=False, max_length=128)
    transaction_type_id: Optional[int] = Field(
        default=None, foreign_key="transaction_type.id", index=True
    )

    transaction_type: "TransactionType | None" = Relationship(
        back_populates="categories",
        sa_relationship=relationship("TransactionType", back_populates="categories"),
    )

    @property
    def is_shared(self) -> bool:
        return self.user_id is None
