"""Source model: a named money container with a cached running balance."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Naive UTC; every timestamp column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Source(SQLModel, table=True):
    """Wallet, bank account or other container that transactions move money through.

    ``balance`` is derived data: it always equals ``initial_amount`` plus the
    signed effect of every transaction that references this source.
    """

    __tablename__: ClassVar[str] = "source"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_source_owner_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    name: str = Field(nullable=False, max_length=128)
    account_number: Optional[str] = Field(default=None, max_length=64)
    initial_amount: float = Field(default=0.0, nullable=False)
    balance: float = Field(default=0.0, nullable=False)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": _utcnow},
    )
