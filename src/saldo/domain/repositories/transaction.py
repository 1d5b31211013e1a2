"""Transaction repository protocol."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ...models.transaction import Transaction


class TransactionRepository(Protocol):
    """Read-side repository for transactions."""

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        ...

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
        """Filtered, sorted, paged search returning rows and total count."""
        ...

    def filter_by_date_range(
        self, start_date: datetime, end_date: datetime, *, user_id: int
    ) -> list[Transaction]:
        """Get transactions within a date range."""
        ...

    def filter_by_source(self, source_id: int, *, user_id: int) -> list[Transaction]:
        """Get transactions touching a source."""
        ...
