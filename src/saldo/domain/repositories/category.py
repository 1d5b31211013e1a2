"""Category repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.category import Category


class CategoryRepository(Protocol):
    """Repository for managing category entities."""

    def get_by_id(self, category_id: int, *, user_id: int) -> Optional[Category]:
        """Retrieve a category visible to the user."""
        ...

    def get_owned(self, category_id: int, *, user_id: int) -> Optional[Category]:
        """Retrieve a category owned by the user."""
        ...

    def list_all(
        self, *, user_id: int, transaction_type_id: Optional[int] = None
    ) -> list[Category]:
        """List visible categories."""
        ...

    def find_by_name(
        self, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> Optional[Category]:
        """Case-insensitive lookup across owned and shared categories."""
        ...

    def create(self, category: Category, *, user_id: Optional[int]) -> Category:
        """Create a new category."""
        ...

    def update(self, category: Category, *, user_id: int) -> Category:
        """Update an existing category."""
        ...

    def delete(self, category_id: int, *, user_id: int) -> None:
        """Delete a category by ID."""
        ...

    def count_references(self, category_id: int) -> int:
        """Number of transactions using the category."""
        ...
