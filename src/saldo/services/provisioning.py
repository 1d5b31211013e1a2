"""Explicit, idempotent setup of shared defaults and per-user starter data.

Nothing here runs as a side effect of a read. ``seed_shared_defaults`` runs
once per database (CLI or app start-up); ``create_user`` provisions the
default sources as part of creating the account.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from ..errors import ConflictError, NotFoundError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.category import Category
from ..models.source import Source
from ..models.transaction_type import TransactionType, TypeKind
from ..models.user import User
from .validators import clean_name

logger = get_logger("services.provisioning")

# (stable key, display name, kind)
DEFAULT_TRANSACTION_TYPES: tuple[tuple[str, str, TypeKind], ...] = (
    ("income", "Income", TypeKind.INCOME),
    ("expense", "Expense", TypeKind.EXPENSE),
    ("transfer", "Transfer", TypeKind.TRANSFER),
    ("saving", "Saving", TypeKind.SAVING),
)

# (display name, key of the owning default type)
DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Food & Beverages", "expense"),
    ("Transportation", "expense"),
    ("Entertainment & Leisure", "expense"),
    ("Salary", "income"),
    ("Bonus", "income"),
)

DEFAULT_SOURCE_NAMES: tuple[str, ...] = ("Wallet", "Savings", "Investment")


@dataclass
class SeedReport:
    """What a seeding run inserted; empty lists mean everything already existed."""

    types: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)

    @property
    def created_anything(self) -> bool:
        return bool(self.types or self.categories)


def _seed_types(session: Session, report: SeedReport) -> dict[str, int]:
    ids: dict[str, int] = {}
    for key, name, kind in DEFAULT_TRANSACTION_TYPES:
        existing = session.exec(select(TransactionType).where(TransactionType.key == key)).first()
        if existing is None:
            existing = TransactionType(key=key, name=name, kind=kind, user_id=None)
            session.add(existing)
            session.flush()
            report.types.append(name)
        ids[key] = existing.id  # type: ignore[assignment]
    return ids


def _seed_categories(session: Session, type_ids: dict[str, int], report: SeedReport) -> None:
    for name, type_key in DEFAULT_CATEGORIES:
        existing = session.exec(
            select(Category).where(Category.name == name, Category.user_id.is_(None))  # type: ignore[union-attr]
        ).first()
        if existing is None:
            session.add(Category(name=name, transaction_type_id=type_ids[type_key], user_id=None))
            report.categories.append(name)
    session.flush()


def seed_shared_defaults(session_factory: SessionFactory) -> SeedReport:
    """Insert the shared transaction types and categories that are missing."""

    report = SeedReport()
    with session_factory() as session:
        type_ids = _seed_types(session, report)
        _seed_categories(session, type_ids, report)
        session.commit()
    if report.created_anything:
        logger.info(
            "Shared defaults seeded",
            extra={"types": report.types, "categories": report.categories},
        )
    return report


def _provision_sources(session: Session, user_id: int, names: Iterable[str]) -> list[Source]:
    owned = session.exec(
        select(func.count()).select_from(Source).where(Source.user_id == user_id)
    ).one()
    if owned:
        return []
    created = [Source(name=name, user_id=user_id, initial_amount=0.0, balance=0.0) for name in names]
    session.add_all(created)
    session.flush()
    return created


def provision_user_sources(
    session_factory: SessionFactory,
    user_id: int,
    names: Sequence[str] = DEFAULT_SOURCE_NAMES,
) -> list[Source]:
    """Give a user the default sources unless they already own some."""

    with session_factory() as session:
        created = _provision_sources(session, user_id, names)
        session.commit()
        session.expunge_all()
    if created:
        logger.info(
            "Default sources provisioned",
            extra={"user_id": user_id, "sources": [source.name for source in created]},
        )
    return created


def get_user(session_factory: SessionFactory, user_id: int) -> User:
    """Return the user or raise NotFoundError; owned rows need an existing owner."""

    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        session.expunge(user)
    return user


def create_user(
    session_factory: SessionFactory,
    username: str,
    *,
    default_source_names: Sequence[str] = DEFAULT_SOURCE_NAMES,
) -> User:
    """Create a user and provision their default sources in one unit of work."""

    username = clean_name(username, field_name="username")
    try:
        with session_factory() as session:
            if session.exec(select(User).where(User.username == username)).first():
                raise ConflictError("Username already exists", code="USER_EXISTS")
            user = User(username=username)
            session.add(user)
            session.flush()
            _provision_sources(session, user.id, default_source_names)  # type: ignore[arg-type]
            session.commit()
            session.refresh(user)
            session.expunge_all()
    except IntegrityError as exc:
        raise ConflictError("Username already exists", code="USER_EXISTS") from exc

    logger.info("User created", extra={"user_id": user.id, "username": username})
    return user
