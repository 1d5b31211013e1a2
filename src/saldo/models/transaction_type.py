"""Transaction type definitions and the kind enumeration the ledger dispatches on."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .category import Category


class TypeKind(str, enum.Enum):
    """Balance semantics of a transaction type, independent of its display name."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    SAVING = "saving"
    NONE = "none"

    @property
    def is_transfer(self) -> bool:
        """Transfer-like kinds debit one source and credit another."""
        return self in (TypeKind.TRANSFER, TypeKind.SAVING)

    @property
    def uses_category(self) -> bool:
        return not self.is_transfer


class TransactionType(SQLModel, table=True):
    """Classification of a transaction; shared defaults have no owner."""

    __tablename__: ClassVar[str] = "transaction_type"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_transaction_type_owner_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    name: str = Field(nullable=False, max_length=128)
    kind: TypeKind = Field(default=TypeKind.NONE, nullable=False)
    # Stable identifier for shared defaults (income, expense, transfer, saving)
    key: Optional[str] = Field(default=None, unique=True, max_length=32)

    categories: list["Category"] = Relationship(
        back_populates="transaction_type",
        sa_relationship=relationship("Category", back_populates="transaction_type"),
    )

    @property
    def is_shared(self) -> bool:
        return self.user_id is None
