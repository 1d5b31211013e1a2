"""Two-tier owner scope resolved once per ledger command.

Transaction types and categories resolve against the caller's own rows plus
the shared defaults; sources resolve against the caller's rows only, because
a shared source has no balance the caller may move. Lookups are cached for
the lifetime of the scope, which is a single unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlmodel import Session, select

from ..infra.repositories.scoping import owned_by, visible_to
from ..models.category import Category
from ..models.source import Source
from ..models.transaction_type import TransactionType


@dataclass
class OwnerScope:
    """Reference resolver bound to one session and one owner."""

    session: Session
    user_id: int
    _types: dict[int, Optional[TransactionType]] = field(default_factory=dict, repr=False)
    _categories: dict[int, Optional[Category]] = field(default_factory=dict, repr=False)
    _sources: dict[int, Optional[Source]] = field(default_factory=dict, repr=False)

    def transaction_type(self, type_id: int) -> Optional[TransactionType]:
        if type_id not in self._types:
            self._types[type_id] = self.session.exec(
                select(TransactionType).where(
                    TransactionType.id == type_id, visible_to(TransactionType, self.user_id)
                )
            ).first()
        return self._types[type_id]

    def category(self, category_id: int) -> Optional[Category]:
        if category_id not in self._categories:
            self._categories[category_id] = self.session.exec(
                select(Category).where(
                    Category.id == category_id, visible_to(Category, self.user_id)
                )
            ).first()
        return self._categories[category_id]

    def source(self, source_id: int) -> Optional[Source]:
        """Owned source, locked for update where the dialect supports row locks."""
        if source_id not in self._sources:
            self._sources[source_id] = self.session.exec(
                select(Source)
                .where(Source.id == source_id, owned_by(Source, self.user_id))
                .with_for_update()
            ).first()
        return self._sources[source_id]
