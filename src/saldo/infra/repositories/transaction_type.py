"""SQLModel implementation of TransactionType repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import selectinload
from sqlmodel import func, select

from ...models.category import Category
from ...models.transaction import Transaction
from ...models.transaction_type import TransactionType
from ..database import SessionFactory
from .scoping import excluding, name_matches, owned_by, visible_to


class SQLModelTransactionTypeRepository:
    """SQLModel-based transaction type repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, type_id: int, *, user_id: int) -> Optional[TransactionType]:
        """Retrieve a type visible to the user (owned or shared)."""
        with self.session_factory() as session:
            obj = session.exec(
                select(TransactionType)
                .where(TransactionType.id == type_id, visible_to(TransactionType, user_id))
                .options(selectinload(TransactionType.categories))  # type: ignore[arg-type]
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_owned(self, type_id: int, *, user_id: int) -> Optional[TransactionType]:
        with self.session_factory() as session:
            obj = session.exec(
                select(TransactionType).where(
                    TransactionType.id == type_id, owned_by(TransactionType, user_id)
                )
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_by_key(self, key: str) -> Optional[TransactionType]:
        """Retrieve a shared default by its stable key."""
        with self.session_factory() as session:
            obj = session.exec(select(TransactionType).where(TransactionType.key == key)).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[TransactionType]:
        """List visible types with their categories loaded."""
        with self.session_factory() as session:
            statement = (
                select(TransactionType)
                .where(visible_to(TransactionType, user_id))
                .options(selectinload(TransactionType.categories))  # type: ignore[arg-type]
                .order_by(TransactionType.name)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def find_by_name(
        self, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> Optional[TransactionType]:
        with self.session_factory() as session:
            obj = session.exec(
                select(TransactionType).where(
                    name_matches(TransactionType, name),
                    visible_to(TransactionType, user_id),
                    excluding(TransactionType, exclude_id),
                )
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def create(self, transaction_type: TransactionType, *, user_id: Optional[int]) -> TransactionType:
        """Create a new type; ``user_id`` None creates a shared default."""
        with self.session_factory() as session:
            transaction_type.user_id = user_id
            session.add(transaction_type)
            session.commit()
            session.refresh(transaction_type)
            session.expunge(transaction_type)
            return transaction_type

    def update(self, transaction_type: TransactionType, *, user_id: int) -> TransactionType:
        with self.session_factory() as session:
            transaction_type.user_id = user_id
            transaction_type = session.merge(transaction_type)
            session.commit()
            session.refresh(transaction_type)
            session.expunge(transaction_type)
            return transaction_type

    def delete(self, type_id: int, *, user_id: int) -> None:
        with self.session_factory() as session:
            obj = session.exec(
                select(TransactionType).where(
                    TransactionType.id == type_id, owned_by(TransactionType, user_id)
                )
            ).first()
            if obj:
                session.delete(obj)
                session.commit()

    def count_references(self, type_id: int) -> int:
        """Categories plus transactions that point at the type."""
        with self.session_factory() as session:
            categories = session.exec(
                select(func.count())
                .select_from(Category)
                .where(Category.transaction_type_id == type_id)
            ).one()
            transactions = session.exec(
                select(func.count())
                .select_from(Transaction)
                .where(Transaction.type_id == type_id)
            ).one()
            return categories + transactions
