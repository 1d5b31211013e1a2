"""SQLModel implementation of Category repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import func, select

from ...models.category import Category
from ...models.transaction import Transaction
from ..database import SessionFactory
from .scoping import excluding, name_matches, owned_by, visible_to


class SQLModelCategoryRepository:
    """SQLModel-based category repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, category_id: int, *, user_id: int) -> Optional[Category]:
        """Retrieve a category visible to the user (owned or shared)."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Category).where(Category.id == category_id, visible_to(Category, user_id))
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_owned(self, category_id: int, *, user_id: int) -> Optional[Category]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Category).where(Category.id == category_id, owned_by(Category, user_id))
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(
        self, *, user_id: int, transaction_type_id: Optional[int] = None
    ) -> list[Category]:
        """List visible categories, optionally restricted to one transaction type."""
        with self.session_factory() as session:
            statement = select(Category).where(visible_to(Category, user_id))
            if transaction_type_id is not None:
                statement = statement.where(Category.transaction_type_id == transaction_type_id)
            statement = statement.order_by(Category.name)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def find_by_name(
        self, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> Optional[Category]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Category).where(
                    name_matches(Category, name),
                    visible_to(Category, user_id),
                    excluding(Category, exclude_id),
                )
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def create(self, category: Category, *, user_id: Optional[int]) -> Category:
        """Create a new category; ``user_id`` None creates a shared default."""
        with self.session_factory() as session:
            category.user_id = user_id
            session.add(category)
            session.commit()
            session.refresh(category)
            session.expunge(category)
            return category

    def update(self, category: Category, *, user_id: int) -> Category:
        with self.session_factory() as session:
            category.user_id = user_id
            category = session.merge(category)
            session.commit()
            session.refresh(category)
            session.expunge(category)
            return category

    def delete(self, category_id: int, *, user_id: int) -> None:
        with self.session_factory() as session:
            category = session.exec(
                select(Category).where(Category.id == category_id, owned_by(Category, user_id))
            ).first()
            if category:
                session.delete(category)
                session.commit()

    def count_references(self, category_id: int) -> int:
        with self.session_factory() as session:
            return session.exec(
                select(func.count())
                .select_from(Transaction)
                .where(Transaction.category_id == category_id)
            ).one()
