"""Category and transaction-type management.

Names are unique per owner, case-insensitively, and may not shadow a shared
default. Shared defaults are read-only: update and delete only reach rows the
caller owns, so a shared row reports as not found.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from ..domain.repositories import CategoryRepository, TransactionTypeRepository
from ..errors import ConflictError, FieldError, InternalError, LedgerError, NotFoundError
from ..infra.database import SessionFactory, is_unique_violation
from ..infra.repositories.category import SQLModelCategoryRepository
from ..infra.repositories.transaction_type import SQLModelTransactionTypeRepository
from ..logging_config import get_logger
from ..models.category import Category
from ..models.transaction_type import TransactionType, TypeKind
from .provisioning import get_user
from .validators import clean_name, parse_id

logger = get_logger("services.catalog")


def _integrity_error(exc: IntegrityError, conflict: ConflictError) -> LedgerError:
    """Name clashes become ``conflict``; any other integrity failure is internal."""
    if is_unique_violation(exc):
        return conflict
    logger.exception("Catalog write failed")
    return InternalError("Failed to save catalog entry")


class TransactionTypeService:
    """User-defined types carry kind ``none``: they classify but never move money."""

    def __init__(
        self,
        session_factory: SessionFactory,
        repository: TransactionTypeRepository | None = None,
    ):
        self.session_factory = session_factory
        self.repository: TransactionTypeRepository = (
            repository or SQLModelTransactionTypeRepository(session_factory)
        )

    def list_types(self, user_id: int) -> list[TransactionType]:
        return self.repository.list_all(user_id=user_id)

    def get_type(self, user_id: int, type_id: int) -> TransactionType:
        transaction_type = self.repository.get_by_id(type_id, user_id=user_id)
        if transaction_type is None:
            raise NotFoundError("Transaction type not found", code="TYPE_NOT_FOUND")
        return transaction_type

    def _ensure_unique(self, name: str, user_id: int, exclude_id: Optional[int] = None) -> None:
        duplicate = self.repository.find_by_name(name, user_id=user_id, exclude_id=exclude_id)
        if duplicate is None:
            return
        if duplicate.is_shared:
            raise ConflictError(
                "Transaction type already exists in default values", code="TYPE_EXISTS"
            )
        raise ConflictError("You already have a transaction type with this name", code="TYPE_EXISTS")

    def create_type(self, user_id: int, name: Any) -> TransactionType:
        type_name = clean_name(name)
        get_user(self.session_factory, user_id)
        self._ensure_unique(type_name, user_id)
        try:
            created = self.repository.create(
                TransactionType(name=type_name, kind=TypeKind.NONE), user_id=user_id
            )
        except IntegrityError as exc:
            raise _integrity_error(
                exc,
                ConflictError(
                    "You already have a transaction type with this name", code="TYPE_EXISTS"
                ),
            ) from exc
        logger.info("Transaction type created", extra={"user_id": user_id, "type_id": created.id})
        return created

    def update_type(self, user_id: int, type_id: int, name: Any) -> TransactionType:
        type_name = clean_name(name)
        existing = self.repository.get_owned(type_id, user_id=user_id)
        if existing is None:
            raise NotFoundError(
                "Transaction type not found or not owned by user", code="TYPE_NOT_FOUND"
            )
        self._ensure_unique(type_name, user_id, exclude_id=type_id)
        existing.name = type_name
        try:
            return self.repository.update(existing, user_id=user_id)
        except IntegrityError as exc:
            raise _integrity_error(
                exc,
                ConflictError(
                    "Another transaction type with this name already exists", code="TYPE_EXISTS"
                ),
            ) from exc

    def delete_type(self, user_id: int, type_id: int) -> None:
        if self.repository.get_owned(type_id, user_id=user_id) is None:
            raise NotFoundError(
                "Transaction type not found or not owned by user", code="TYPE_NOT_FOUND"
            )
        if self.repository.count_references(type_id):
            raise ConflictError(
                "Transaction type is in use and cannot be deleted", code="TYPE_IN_USE"
            )
        self.repository.delete(type_id, user_id=user_id)
        logger.info("Transaction type deleted", extra={"user_id": user_id, "type_id": type_id})


class CategoryService:
    """Categories optionally scoped to a transaction type visible to the owner."""

    def __init__(
        self,
        session_factory: SessionFactory,
        repository: CategoryRepository | None = None,
        type_repository: TransactionTypeRepository | None = None,
    ):
        self.session_factory = session_factory
        self.repository: CategoryRepository = (
            repository or SQLModelCategoryRepository(session_factory)
        )
        self.type_repository: TransactionTypeRepository = (
            type_repository or SQLModelTransactionTypeRepository(session_factory)
        )

    def list_categories(
        self, user_id: int, transaction_type_id: Optional[int] = None
    ) -> list[Category]:
        return self.repository.list_all(user_id=user_id, transaction_type_id=transaction_type_id)

    def get_category(self, user_id: int, category_id: int) -> Category:
        category = self.repository.get_by_id(category_id, user_id=user_id)
        if category is None:
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
        return category

    def _ensure_unique(self, name: str, user_id: int, exclude_id: Optional[int] = None) -> None:
        if self.repository.find_by_name(name, user_id=user_id, exclude_id=exclude_id):
            raise ConflictError("Category with this name already exists", code="CATEGORY_EXISTS")

    def _resolve_type_id(self, user_id: int, raw_type_id: Any) -> Optional[int]:
        if raw_type_id in (None, ""):
            return None
        type_id = parse_id(raw_type_id)
        if type_id is None or self.type_repository.get_by_id(type_id, user_id=user_id) is None:
            raise NotFoundError(
                "Transaction type not found",
                code="TYPE_NOT_FOUND",
                details=[FieldError("transaction_type_id", "Transaction type not found")],
            )
        return type_id

    def create_category(
        self, user_id: int, name: Any, transaction_type_id: Any = None
    ) -> Category:
        category_name = clean_name(name)
        get_user(self.session_factory, user_id)
        type_id = self._resolve_type_id(user_id, transaction_type_id)
        self._ensure_unique(category_name, user_id)
        try:
            created = self.repository.create(
                Category(name=category_name, transaction_type_id=type_id), user_id=user_id
            )
        except IntegrityError as exc:
            raise _integrity_error(
                exc,
                ConflictError("Category with this name already exists", code="CATEGORY_EXISTS"),
            ) from exc
        logger.info("Category created", extra={"user_id": user_id, "category_id": created.id})
        return created

    def update_category(
        self, user_id: int, category_id: int, name: Any, transaction_type_id: Any = None
    ) -> Category:
        category_name = clean_name(name)
        existing = self.repository.get_owned(category_id, user_id=user_id)
        if existing is None:
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
        self._ensure_unique(category_name, user_id, exclude_id=category_id)
        existing.name = category_name
        if transaction_type_id is not None:
            existing.transaction_type_id = self._resolve_type_id(user_id, transaction_type_id)
        try:
            return self.repository.update(existing, user_id=user_id)
        except IntegrityError as exc:
            raise _integrity_error(
                exc,
                ConflictError(
                    "Another category with this name already exists", code="CATEGORY_EXISTS"
                ),
            ) from exc

    def delete_category(self, user_id: int, category_id: int) -> None:
        if self.repository.get_owned(category_id, user_id=user_id) is None:
            raise NotFoundError(
                "Category not found or not owned by user", code="CATEGORY_NOT_FOUND"
            )
        if self.repository.count_references(category_id):
            raise ConflictError(
                "Category is used by transactions and cannot be deleted", code="CATEGORY_IN_USE"
            )
        self.repository.delete(category_id, user_id=user_id)
        logger.info("Category deleted", extra={"user_id": user_id, "category_id": category_id})
