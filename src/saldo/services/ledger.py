"""Ledger engine: transaction mutations that keep source balances consistent.

Every mutation is one unit of work. The transaction row and every source
balance it touches are written in the same session and committed once; any
failure rolls the whole session back, so callers never observe a transaction
without its balance effect or the other way round.
"""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..errors import DomainError, FieldError, InternalError, LedgerError, NotFoundError, ValidationError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.source import Source
from ..models.transaction import Transaction
from ..models.transaction_type import TransactionType, TypeKind
from .scope import OwnerScope
from .validators import CleanTransaction, TransactionCommand, clean_transaction_command, parse_id

logger = get_logger("services.ledger")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True, slots=True)
class BalanceEffect:
    """Signed change applied to one source's balance."""

    source_id: int
    delta: float

    def reversed(self) -> BalanceEffect:
        return BalanceEffect(self.source_id, -self.delta)


def balance_effects(
    kind: TypeKind, amount: float, source_id: int, target_source_id: Optional[int]
) -> list[BalanceEffect]:
    """Effects of a transaction of ``kind`` on the sources it references."""

    if kind == TypeKind.INCOME:
        return [BalanceEffect(source_id, amount)]
    if kind == TypeKind.EXPENSE:
        return [BalanceEffect(source_id, -amount)]
    if kind.is_transfer:
        if target_source_id is None:
            raise DomainError(
                "Transfer transaction has no target source", code="TARGET_SOURCE_REQUIRED"
            )
        return [BalanceEffect(source_id, -amount), BalanceEffect(target_source_id, amount)]
    return []


def net_deltas(effects: Iterable[BalanceEffect]) -> dict[int, float]:
    """Collapse effects into one delta per source, dropping sources that net to zero."""

    totals: dict[int, float] = defaultdict(float)
    for effect in effects:
        totals[effect.source_id] += effect.delta
    return {source_id: delta for source_id, delta in totals.items() if delta != 0}


@dataclass(frozen=True, slots=True)
class _Resolved:
    """A cleaned command whose references were checked against the owner scope."""

    values: CleanTransaction
    transaction_type: TransactionType
    category_id: Optional[int]
    target_source_id: Optional[int]

    @property
    def kind(self) -> TypeKind:
        return TypeKind(self.transaction_type.kind)

    def effects(self) -> list[BalanceEffect]:
        return balance_effects(
            self.kind, self.values.amount, self.values.source_id, self.target_source_id
        )


def _stored_effects(transaction: Transaction) -> list[BalanceEffect]:
    """Effects exactly as they were applied when the stored row was written."""

    return balance_effects(
        TypeKind(transaction.type.kind),
        transaction.amount,
        transaction.source_id,
        transaction.target_source_id,
    )


class LedgerService:
    """Create, update and delete transactions atomically with their balance effects."""

    def __init__(self, session_factory: SessionFactory, *, allow_negative_balance: bool = True):
        self.session_factory = session_factory
        self.allow_negative_balance = allow_negative_balance

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Session]:
        """One session per mutation; storage failures surface as InternalError."""
        try:
            with self.session_factory() as session:
                yield session
        except (DomainError, ValidationError) as exc:
            logger.warning("Ledger %s rejected", operation, extra={"code": exc.code})
            raise
        except LedgerError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Ledger %s failed in storage", operation)
            raise InternalError(f"Failed to {operation} transaction") from exc

    # ------------------------------------------------------------------ reads

    def get_transaction(self, user_id: int, transaction_id: int) -> Transaction:
        """Return an owned transaction with its relations loaded."""
        with self._unit_of_work("load") as session:
            transaction = self._load(session, user_id, transaction_id)
            session.expunge(transaction)
            return transaction

    # -------------------------------------------------------------- mutations

    def create_transaction(self, user_id: int, command: TransactionCommand) -> Transaction:
        """Insert a transaction and apply its balance effect."""

        with self._unit_of_work("create") as session:
            scope = OwnerScope(session, user_id)
            resolved = self._resolve(scope, command)
            values = resolved.values
            transaction = Transaction(
                user_id=user_id,
                description=values.description,
                amount=values.amount,
                type_id=resolved.transaction_type.id,
                source_id=values.source_id,
                category_id=resolved.category_id,
                target_source_id=resolved.target_source_id,
                occurred_at=values.occurred_at or _utcnow(),
            )
            session.add(transaction)
            session.flush()
            self._apply(session, resolved.effects())
            session.commit()

            logger.info(
                "Transaction created",
                extra={
                    "user_id": user_id,
                    "transaction_id": transaction.id,
                    "kind": resolved.kind.value,
                    "amount": values.amount,
                },
            )
            return self._detach(session, user_id, transaction.id)

    def update_transaction(
        self, user_id: int, transaction_id: int, command: TransactionCommand
    ) -> Transaction:
        """Reverse the stored effect, rewrite the row, apply the new effect."""

        with self._unit_of_work("update") as session:
            existing = self._load(session, user_id, transaction_id)
            reversal = [effect.reversed() for effect in _stored_effects(existing)]
            scope = OwnerScope(session, user_id)
            resolved = self._resolve(
                scope, command, also_lock=[effect.source_id for effect in reversal]
            )
            values = resolved.values

            previous_kind = TypeKind(existing.type.kind)

            existing.description = values.description
            existing.amount = values.amount
            existing.type_id = resolved.transaction_type.id
            existing.source_id = values.source_id
            # Fields that do not apply to the new kind are cleared, not left behind.
            existing.category_id = resolved.category_id
            existing.target_source_id = resolved.target_source_id
            if values.occurred_at is not None:
                existing.occurred_at = values.occurred_at
            existing.updated_at = _utcnow()
            session.add(existing)
            session.flush()

            self._apply(session, reversal + resolved.effects())
            session.commit()

            logger.info(
                "Transaction updated",
                extra={
                    "user_id": user_id,
                    "transaction_id": transaction_id,
                    "previous_kind": previous_kind.value,
                    "kind": resolved.kind.value,
                    "amount": values.amount,
                },
            )
            return self._detach(session, user_id, transaction_id)

    def delete_transaction(self, user_id: int, transaction_id: int) -> None:
        """Reverse the stored effect and remove the row."""

        with self._unit_of_work("delete") as session:
            existing = self._load(session, user_id, transaction_id)
            reversal = [effect.reversed() for effect in _stored_effects(existing)]
            session.delete(existing)
            session.flush()
            self._apply(session, reversal, enforce_policy=False)
            session.commit()

        logger.info(
            "Transaction deleted",
            extra={"user_id": user_id, "transaction_id": transaction_id},
        )

    # -------------------------------------------------------------- internals

    def _load(self, session: Session, user_id: int, transaction_id: int) -> Transaction:
        transaction = session.exec(
            select(Transaction).where(
                Transaction.id == transaction_id, Transaction.user_id == user_id
            )
        ).first()
        if transaction is None:
            raise NotFoundError("Transaction not found", code="TRANSACTION_NOT_FOUND")
        return transaction

    def _detach(self, session: Session, user_id: int, transaction_id: Optional[int]) -> Transaction:
        """Reload the committed row with fresh relations and hand it out detached."""
        transaction = session.exec(
            select(Transaction)
            .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .execution_options(populate_existing=True)
        ).one()
        session.expunge_all()
        return transaction

    def _resolve(
        self, scope: OwnerScope, command: TransactionCommand, also_lock: Sequence[int] = ()
    ) -> _Resolved:
        """Validate the command against its type's kind, then check every reference.

        The type is looked up first so kind rules are reported together with
        the shape errors. Sources are locked in ascending id order, the same
        order :meth:`_apply` writes them in.
        """

        type_id = parse_id(command.type_id)
        transaction_type = scope.transaction_type(type_id) if type_id is not None else None
        kind = TypeKind(transaction_type.kind) if transaction_type is not None else None
        values = clean_transaction_command(command, kind)

        target_id = values.target_source_id if kind is not None and kind.is_transfer else None
        lock_ids = {values.source_id, *also_lock}
        if target_id is not None:
            lock_ids.add(target_id)
        sources = {source_id: scope.source(source_id) for source_id in sorted(lock_ids)}

        missing: list[FieldError] = []
        if transaction_type is None:
            missing.append(FieldError("type_id", "Transaction type not found"))
        if sources[values.source_id] is None:
            missing.append(FieldError("source_id", "Source not found"))
        if target_id is not None and sources[target_id] is None:
            missing.append(FieldError("target_source_id", "Target source not found"))
        if missing or transaction_type is None or kind is None:
            raise NotFoundError("Referenced entity not found", code="REFERENCE_NOT_FOUND", details=missing)

        if kind.is_transfer:
            return _Resolved(values, transaction_type, None, target_id)

        category = scope.category(values.category_id) if values.category_id is not None else None
        if category is None:
            raise NotFoundError(
                "Referenced entity not found",
                code="REFERENCE_NOT_FOUND",
                details=[FieldError("category_id", "Category not found")],
            )
        if category.transaction_type_id not in (None, transaction_type.id):
            raise DomainError(
                "Category does not belong to the selected transaction type",
                code="CATEGORY_TYPE_MISMATCH",
                details=[FieldError("category_id", "Belongs to another transaction type")],
            )
        return _Resolved(values, transaction_type, values.category_id, None)

    def _apply(
        self, session: Session, effects: Iterable[BalanceEffect], *, enforce_policy: bool = True
    ) -> None:
        deltas = net_deltas(effects)
        for source_id, delta in sorted(deltas.items()):
            self._adjust_balance(session, source_id, delta)
        if enforce_policy:
            self._enforce_funds_policy(session, deltas)

    def _adjust_balance(self, session: Session, source_id: int, delta: float) -> None:
        """Relative in-database increment so concurrent writers cannot lose updates."""
        source = session.get(Source, source_id, with_for_update=True)
        if source is None:
            raise InternalError(f"Source {source_id} vanished during the update")
        source.balance = Source.balance + delta  # type: ignore[assignment]
        session.add(source)
        session.flush()

    def _enforce_funds_policy(self, session: Session, deltas: dict[int, float]) -> None:
        """Insufficient-funds policy; the only place balances are checked against zero."""
        if self.allow_negative_balance:
            return
        for source_id, delta in deltas.items():
            if delta >= 0:
                continue
            source = session.get(Source, source_id)
            if source is not None and source.balance < 0:
                raise DomainError(
                    f"Insufficient funds in source '{source.name}'",
                    code="INSUFFICIENT_FUNDS",
                    details=[FieldError("amount", "Exceeds the available balance")],
                )
