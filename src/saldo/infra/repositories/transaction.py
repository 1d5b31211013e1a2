"""SQLModel implementation of Transaction repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import func, select

from ...models.transaction import Transaction
from ..database import SessionFactory

SORTABLE_COLUMNS = {
    "createdAt": Transaction.created_at,
    "updatedAt": Transaction.updated_at,
    "amount": Transaction.amount,
    "date": Transaction.occurred_at,
}


class SQLModelTransactionRepository:
    """Read-side transaction repository; mutations go through the ledger service."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction with type, category and sources loaded."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def _filtered(
        self,
        statement,
        *,
        user_id: int,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        type_id: Optional[int],
        category_id: Optional[int],
        source_id: Optional[int],
    ):
        statement = statement.where(Transaction.user_id == user_id)
        if start_date is not None:
            statement = statement.where(Transaction.occurred_at >= start_date)
        if end_date is not None:
            statement = statement.where(Transaction.occurred_at <= end_date)
        if type_id is not None:
            statement = statement.where(Transaction.type_id == type_id)
        if category_id is not None:
            statement = statement.where(Transaction.category_id == category_id)
        if source_id is not None:
            statement = statement.where(Transaction.source_id == source_id)
        return statement

    def search(
        self,
        *,
        user_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        type_id: Optional[int] = None,
        category_id: Optional[int] = None,
        source_id: Optional[int] = None,
        sort_by: str = "createdAt",
        descending: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """Filter, sort and page transactions; returns (rows, total matching rows)."""
        filters = dict(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            type_id=type_id,
            category_id=category_id,
            source_id=source_id,
        )
        column = SORTABLE_COLUMNS.get(sort_by, Transaction.created_at)
        with self.session_factory() as session:
            total = session.exec(
                self._filtered(select(func.count()).select_from(Transaction), **filters)
            ).one()
            statement = self._filtered(select(Transaction), **filters).order_by(
                column.desc() if descending else column.asc(),  # type: ignore[union-attr]
                Transaction.created_at.desc(),  # type: ignore[union-attr]
                Transaction.id.desc(),  # type: ignore[union-attr]
            )
            if limit is not None:
                statement = statement.offset(offset).limit(limit)
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows, total

    def filter_by_date_range(
        self, start_date: datetime, end_date: datetime, *, user_id: int
    ) -> list[Transaction]:
        """Transactions within [start_date, end_date], oldest first."""
        with self.session_factory() as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .where(Transaction.occurred_at >= start_date)
                .where(Transaction.occurred_at <= end_date)
                .order_by(Transaction.occurred_at)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def filter_by_source(self, source_id: int, *, user_id: int) -> list[Transaction]:
        """Transactions touching a source as primary or target."""
        with self.session_factory() as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .where(
                    (Transaction.source_id == source_id)
                    | (Transaction.target_source_id == source_id)
                )
                .order_by(Transaction.occurred_at)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows
