"""Source management and balance recalculation."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from ..domain.repositories.source import SourceRepository
from ..errors import ConflictError, FieldError, InternalError, NotFoundError, ValidationError
from ..infra.database import SessionFactory, is_unique_violation
from ..infra.repositories.scoping import owned_by
from ..infra.repositories.source import SQLModelSourceRepository
from ..logging_config import get_logger
from ..models.source import Source
from .provisioning import get_user
from .recalculator import recalculate_balance
from .validators import clean_source_fields, parse_amount

logger = get_logger("services.sources")


class SourceService:
    """CRUD for sources; balances change only through the ledger or a recalculation."""

    def __init__(self, session_factory: SessionFactory, repository: SourceRepository | None = None):
        self.session_factory = session_factory
        self.repository: SourceRepository = repository or SQLModelSourceRepository(session_factory)

    def list_sources(self, user_id: int) -> list[Source]:
        """Owned sources plus shared defaults. Never provisions anything."""
        return self.repository.list_all(user_id=user_id)

    def get_source(self, user_id: int, source_id: int) -> Source:
        source = self.repository.get_by_id(source_id, user_id=user_id)
        if source is None:
            raise NotFoundError("Source not found", code="SOURCE_NOT_FOUND")
        return source

    def _ensure_unique(self, name: str, user_id: int, exclude_id: Optional[int] = None) -> None:
        if self.repository.find_by_name(name, user_id=user_id, exclude_id=exclude_id):
            raise ConflictError("Source with this name already exists", code="SOURCE_EXISTS")

    def create_source(
        self,
        user_id: int,
        name: Any,
        account_number: Any = None,
        initial_amount: Any = None,
    ) -> Source:
        clean_name, number, amount = clean_source_fields(name, account_number, initial_amount)
        get_user(self.session_factory, user_id)
        self._ensure_unique(clean_name, user_id)
        try:
            created = self.repository.create(
                Source(name=clean_name, account_number=number, initial_amount=amount or 0.0),
                user_id=user_id,
            )
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise ConflictError(
                    "Source with this name already exists", code="SOURCE_EXISTS"
                ) from exc
            logger.exception("Source insert failed", extra={"user_id": user_id})
            raise InternalError("Failed to create source") from exc
        logger.info("Source created", extra={"user_id": user_id, "source_id": created.id})
        return created

    def update_source(
        self,
        user_id: int,
        source_id: int,
        name: Any,
        account_number: Any = None,
        initial_amount: Any = None,
    ) -> Source:
        """Rename a source; a changed initial amount triggers a full recalculation."""

        clean_name, number, amount = clean_source_fields(name, account_number, initial_amount)
        self.get_source(user_id, source_id)
        self._ensure_unique(clean_name, user_id, exclude_id=source_id)
        try:
            with self.session_factory() as session:
                source = session.exec(
                    select(Source)
                    .where(Source.id == source_id, owned_by(Source, user_id))
                    .with_for_update()
                ).one()
                source.name = clean_name
                source.account_number = number
                if amount is not None and amount != source.initial_amount:
                    source.initial_amount = amount
                    source.balance = recalculate_balance(session, source_id, amount)
                session.add(source)
                session.commit()
                session.refresh(source)
                session.expunge(source)
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                logger.exception("Source update failed", extra={"source_id": source_id})
                raise InternalError("Failed to update source") from exc
            raise ConflictError(
                "Another source with this name already exists", code="SOURCE_EXISTS"
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception("Source update failed", extra={"source_id": source_id})
            raise InternalError("Failed to update source") from exc
        return source

    def delete_source(self, user_id: int, source_id: int) -> None:
        """Delete an owned source that no transaction references."""

        self.get_source(user_id, source_id)
        if self.repository.count_references(source_id):
            raise ConflictError(
                "Source is used by transactions and cannot be deleted", code="SOURCE_IN_USE"
            )
        self.repository.delete(source_id, user_id=user_id)
        logger.info("Source deleted", extra={"user_id": user_id, "source_id": source_id})

    def recalculate_source_balance(
        self, user_id: int, source_id: int, new_initial_amount: Any
    ) -> float:
        """Store a new initial amount and rebuild the balance from history."""

        amount = parse_amount(new_initial_amount)
        if amount is None:
            raise ValidationError(
                [FieldError("initial_amount", "Initial amount must be a valid number")]
            )
        try:
            with self.session_factory() as session:
                source = session.exec(
                    select(Source)
                    .where(Source.id == source_id, owned_by(Source, user_id))
                    .with_for_update()
                ).first()
                if source is None:
                    raise NotFoundError("Source not found", code="SOURCE_NOT_FOUND")
                balance = recalculate_balance(session, source_id, amount)
                source.initial_amount = amount
                source.balance = balance
                session.add(source)
                session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Balance recalculation failed", extra={"source_id": source_id})
            raise InternalError("Failed to recalculate balance") from exc

        logger.info(
            "Source balance recalculated",
            extra={"user_id": user_id, "source_id": source_id, "balance": balance},
        )
        return balance
