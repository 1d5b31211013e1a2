"""Transaction type repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.transaction_type import TransactionType


class TransactionTypeRepository(Protocol):
    """Repository for managing transaction types."""

    def get_by_id(self, type_id: int, *, user_id: int) -> Optional[TransactionType]:
        """Retrieve a type visible to the user."""
        ...

    def get_owned(self, type_id: int, *, user_id: int) -> Optional[TransactionType]:
        """Retrieve a type owned by the user."""
        ...

    def get_by_key(self, key: str) -> Optional[TransactionType]:
        """Retrieve a shared default by stable key."""
        ...

    def list_all(self, *, user_id: int) -> list[TransactionType]:
        """List visible types with categories."""
        ...

    def find_by_name(
        self, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> Optional[TransactionType]:
        """Case-insensitive lookup across owned and shared types."""
        ...

    def create(self, transaction_type: TransactionType, *, user_id: Optional[int]) -> TransactionType:
        """Create a new type."""
        ...

    def update(self, transaction_type: TransactionType, *, user_id: int) -> TransactionType:
        """Update an existing type."""
        ...

    def delete(self, type_id: int, *, user_id: int) -> None:
        """Delete a type by ID."""
        ...

    def count_references(self, type_id: int) -> int:
        """Categories and transactions pointing at the type."""
        ...
