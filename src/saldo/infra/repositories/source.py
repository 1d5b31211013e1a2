"""SQLModel implementation of Source repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import or_
from sqlmodel import func, select

from ...models.source import Source
from ...models.transaction import Transaction
from ..database import SessionFactory
from .scoping import excluding, name_matches, owned_by, visible_to


class SQLModelSourceRepository:
    """SQLModel-based source repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, source_id: int, *, user_id: int) -> Optional[Source]:
        """Retrieve a source owned by the user."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Source).where(Source.id == source_id, owned_by(Source, user_id))
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Source]:
        """List owned sources together with shared defaults, ordered by name."""
        with self.session_factory() as session:
            statement = (
                select(Source)
                .where(visible_to(Source, user_id))
                .order_by(Source.name)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def count_owned(self, *, user_id: int) -> int:
        with self.session_factory() as session:
            return session.exec(
                select(func.count()).select_from(Source).where(owned_by(Source, user_id))
            ).one()

    def find_by_name(
        self, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> Optional[Source]:
        """Case-insensitive lookup across the user's sources and shared defaults."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Source).where(
                    name_matches(Source, name),
                    visible_to(Source, user_id),
                    excluding(Source, exclude_id),
                )
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def create(self, source: Source, *, user_id: int) -> Source:
        """Create a new source; its balance starts at the initial amount."""
        with self.session_factory() as session:
            source.user_id = user_id
            source.balance = source.initial_amount or 0.0
            session.add(source)
            session.commit()
            session.refresh(source)
            session.expunge(source)
            return source

    def update(self, source: Source, *, user_id: int) -> Source:
        """Persist descriptive fields only; balances are owned by the ledger."""
        with self.session_factory() as session:
            stored = session.exec(
                select(Source).where(Source.id == source.id, owned_by(Source, user_id))
            ).one()
            stored.name = source.name
            stored.account_number = source.account_number
            session.add(stored)
            session.commit()
            session.refresh(stored)
            session.expunge(stored)
            return stored

    def delete(self, source_id: int, *, user_id: int) -> None:
        """Delete a source by ID."""
        with self.session_factory() as session:
            source = session.exec(
                select(Source).where(Source.id == source_id, owned_by(Source, user_id))
            ).first()
            if source:
                session.delete(source)
                session.commit()

    def count_references(self, source_id: int) -> int:
        """Number of transactions using the source as primary or target."""
        with self.session_factory() as session:
            return session.exec(
                select(func.count())
                .select_from(Transaction)
                .where(
                    or_(
                        Transaction.source_id == source_id,
                        Transaction.target_source_id == source_id,
                    )
                )
            ).one()
