"""Pytest configuration and shared fixtures for Saldo tests.

Every test gets its own temporary SQLite database with the shared defaults
seeded, plus factories for users and sources. Nothing touches the real
application database.
"""

from __future__ import annotations

from typing import Callable

import pytest
from sqlmodel import select

from saldo.config import TestingConfig
from saldo.infra.database import create_db_engine, create_session_factory, init_database
from saldo.models import Category, Source, TransactionType, User
from saldo.services.catalog import CategoryService, TransactionTypeService
from saldo.services.ledger import LedgerService
from saldo.services.provisioning import create_user, seed_shared_defaults
from saldo.services.sources import SourceService
from saldo.services.validators import TransactionCommand

# =============================================================================
# Configuration & Database Fixtures
# =============================================================================


@pytest.fixture
def test_config(tmp_path, monkeypatch: pytest.MonkeyPatch) -> TestingConfig:
    """Configuration pointing at a throwaway data directory."""

    monkeypatch.setenv("SALDO_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SALDO_DATABASE_URL", f"sqlite:///{tmp_path / 'saldo-test.db'}")
    monkeypatch.setenv("SALDO_DEV_MODE", "true")
    monkeypatch.delenv("SALDO_ALLOW_NEGATIVE_BALANCE", raising=False)
    monkeypatch.delenv("SALDO_DEFAULT_PAGE_SIZE", raising=False)
    return TestingConfig()


@pytest.fixture
def db_engine(test_config):
    """Isolated SQLite database with all tables created."""

    engine = create_db_engine(test_config)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Unit-of-work session factory over a database seeded with shared defaults."""

    factory = create_session_factory(db_engine)
    seed_shared_defaults(factory)
    return factory


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def ledger(session_factory) -> LedgerService:
    return LedgerService(session_factory)


@pytest.fixture
def strict_ledger(session_factory) -> LedgerService:
    """Ledger that refuses to push a source below zero."""

    return LedgerService(session_factory, allow_negative_balance=False)


@pytest.fixture
def source_service(session_factory) -> SourceService:
    return SourceService(session_factory)


@pytest.fixture
def category_service(session_factory) -> CategoryService:
    return CategoryService(session_factory)


@pytest.fixture
def type_service(session_factory) -> TransactionTypeService:
    return TransactionTypeService(session_factory)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(session_factory) -> Callable[..., User]:
    """Create users; default sources are skipped unless asked for."""

    def _create_user(username: str = "tester", *, with_default_sources: bool = False) -> User:
        names = ("Wallet", "Savings", "Investment") if with_default_sources else ()
        return create_user(session_factory, username, default_source_names=names)

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    return user_factory("tester")


@pytest.fixture
def other_user(user_factory) -> User:
    return user_factory("someone-else")


@pytest.fixture
def source_factory(source_service, user) -> Callable[..., Source]:
    """Create sources owned by ``user`` (or another owner)."""

    def _create_source(
        name: str = "Wallet",
        initial_amount: float = 0.0,
        owner: User | None = None,
        account_number: str | None = None,
    ) -> Source:
        owner = owner or user
        return source_service.create_source(
            owner.id, name, account_number=account_number, initial_amount=initial_amount
        )

    return _create_source


@pytest.fixture
def kinds(session_factory) -> dict[str, int]:
    """Ids of the shared default transaction types keyed by their stable key."""

    with session_factory() as session:
        rows = session.exec(select(TransactionType).where(TransactionType.key.is_not(None))).all()  # type: ignore[union-attr]
        return {row.key: row.id for row in rows}  # type: ignore[misc]


@pytest.fixture
def default_categories(session_factory) -> dict[str, int]:
    """Ids of the shared default categories keyed by name."""

    with session_factory() as session:
        rows = session.exec(select(Category).where(Category.user_id.is_(None))).all()  # type: ignore[union-attr]
        return {row.name: row.id for row in rows}  # type: ignore[misc]


@pytest.fixture
def balance_of(session_factory) -> Callable[[int], float]:
    """Read a source's stored balance straight from the database."""

    def _balance(source_id: int) -> float:
        with session_factory() as session:
            source = session.get(Source, source_id)
            assert source is not None
            return source.balance

    return _balance


def make_command(**values) -> TransactionCommand:
    """Command with a description filled in; everything else comes from ``values``."""

    values.setdefault("description", "Test transaction")
    return TransactionCommand(**values)


@pytest.fixture
def command() -> Callable[..., TransactionCommand]:
    return make_command
