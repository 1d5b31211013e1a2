"""Ownership filters shared by every repository.

Entities are either owned by a user or shared defaults with ``user_id`` NULL.
Reads see both tiers; writes only ever touch the owned tier.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, or_


def visible_to(model: Any, user_id: int):
    """Clause matching rows owned by ``user_id`` or shared with everyone."""
    return or_(model.user_id.is_(None), model.user_id == user_id)


def owned_by(model: Any, user_id: int):
    """Clause matching rows owned by ``user_id`` only."""
    return model.user_id == user_id


def name_matches(model: Any, name: str):
    """Case-insensitive name comparison."""
    return func.lower(model.name) == name.strip().lower()


def excluding(model: Any, entity_id: Optional[int]):
    """Clause excluding one row, or a tautology when ``entity_id`` is None."""
    if entity_id is None:
        return model.id.is_not(None)
    return model.id != entity_id
