"""Source repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.source import Source


class SourceRepository(Protocol):
    """Repository for managing source entities."""

    def get_by_id(self, source_id: int, *, user_id: int) -> Optional[Source]:
        """Retrieve a source owned by the user."""
        ...

    def list_all(self, *, user_id: int) -> list[Source]:
        """List owned and shared sources."""
        ...

    def count_owned(self, *, user_id: int) -> int:
        """Number of sources the user owns."""
        ...

    def find_by_name(
        self, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> Optional[Source]:
        """Case-insensitive lookup across owned and shared sources."""
        ...

    def create(self, source: Source, *, user_id: int) -> Source:
        """Create a new source."""
        ...

    def update(self, source: Source, *, user_id: int) -> Source:
        """Update descriptive fields of a source."""
        ...

    def delete(self, source_id: int, *, user_id: int) -> None:
        """Delete a source by ID."""
        ...

    def count_references(self, source_id: int) -> int:
        """Number of transactions referencing the source."""
        ...
