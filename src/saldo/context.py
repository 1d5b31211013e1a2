"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import (
    SQLModelCategoryRepository,
    SQLModelSourceRepository,
    SQLModelTransactionRepository,
    SQLModelTransactionTypeRepository,
)
from .services.catalog import CategoryService, TransactionTypeService
from .services.ledger import LedgerService
from .services.provisioning import seed_shared_defaults
from .services.sources import SourceService


@dataclass
class AppContext:
    """Centralized application context with repositories and services."""

    # Configuration
    config: BaseConfig

    # Storage
    engine: Engine
    session_factory: SessionFactory

    # Repositories
    transaction_repo: SQLModelTransactionRepository
    source_repo: SQLModelSourceRepository
    category_repo: SQLModelCategoryRepository
    type_repo: SQLModelTransactionTypeRepository

    # Services
    ledger: LedgerService
    sources: SourceService
    categories: CategoryService
    transaction_types: TransactionTypeService

    def close(self) -> None:
        self.engine.dispose()


def create_app_context(config: Optional[BaseConfig] = None, *, seed_defaults: bool = True) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)
    if seed_defaults:
        seed_shared_defaults(session_factory)

    transaction_repo = SQLModelTransactionRepository(session_factory)
    source_repo = SQLModelSourceRepository(session_factory)
    category_repo = SQLModelCategoryRepository(session_factory)
    type_repo = SQLModelTransactionTypeRepository(session_factory)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        transaction_repo=transaction_repo,
        source_repo=source_repo,
        category_repo=category_repo,
        type_repo=type_repo,
        ledger=LedgerService(
            session_factory, allow_negative_balance=config.ALLOW_NEGATIVE_BALANCE
        ),
        sources=SourceService(session_factory, repository=source_repo),
        categories=CategoryService(
            session_factory, repository=category_repo, type_repository=type_repo
        ),
        transaction_types=TransactionTypeService(session_factory, repository=type_repo),
    )
