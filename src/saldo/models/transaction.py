"""SQLModel definitions for ledger transactions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .category import Category
    from .source import Source
    from .transaction_type import TransactionType


def _utcnow() -> datetime:
    """Naive UTC; every timestamp column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Transaction(SQLModel, table=True):
    """A single ledger entry.

    ``amount`` is always a positive magnitude; the direction of its effect is
    decided by the kind of ``type``. Transfers are one row that carries both
    ``source_id`` (debited) and ``target_source_id`` (credited).
    """

    __tablename__: ClassVar[str] = "transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    description: str = Field(nullable=False, max_length=255)
    occurred_at: datetime = Field(default_factory=_utcnow, nullable=False, index=True)
    amount: float = Field(nullable=False)
    type_id: int = Field(foreign_key="transaction_type.id", nullable=False, index=True)
    source_id: int = Field(foreign_key="source.id", nullable=False, index=True)
    target_source_id: Optional[int] = Field(default=None, foreign_key="source.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": _utcnow},
    )

    type: "TransactionType" = Relationship(
        sa_relationship=relationship("TransactionType", lazy="joined")
    )
    category: "Category | None" = Relationship(
        sa_relationship=relationship("Category", lazy="joined")
    )
    source: "Source" = Relationship(
        sa_relationship=relationship(
            "Source", foreign_keys="[Transaction.source_id]", lazy="joined"
        )
    )
    target_source: "Source | None" = Relationship(
        sa_relationship=relationship(
            "Source", foreign_keys="[Transaction.target_source_id]", lazy="joined"
        )
    )
