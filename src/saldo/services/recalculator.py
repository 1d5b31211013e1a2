"""Balance recalculation from the full transaction history.

The ledger service keeps ``Source.balance`` up to date incrementally. The
functions here compute the same figure from scratch:

    balance = initial + income - expense + transfers_in - transfers_out

``compute_balance`` is pure and works on any iterable of entries;
``recalculate_balance`` asks the database for the four sums.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, func, select

from ..models.transaction import Transaction
from ..models.transaction_type import TransactionType, TypeKind

TRANSFER_KINDS = (TypeKind.TRANSFER, TypeKind.SAVING)


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """The balance-relevant projection of a transaction."""

    kind: TypeKind
    amount: float
    source_id: int
    target_source_id: Optional[int] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> LedgerEntry:
        """Build an entry from a transaction whose ``type`` relationship is loaded."""
        return cls(
            kind=TypeKind(transaction.type.kind),
            amount=transaction.amount,
            source_id=transaction.source_id,
            target_source_id=transaction.target_source_id,
        )


def compute_balance(
    source_id: int, initial_amount: Optional[float], entries: Iterable[LedgerEntry]
) -> float:
    """Authoritative balance of ``source_id`` given its history."""

    income = expense = transfers_in = transfers_out = 0.0
    for entry in entries:
        if entry.kind == TypeKind.INCOME and entry.source_id == source_id:
            income += entry.amount
        elif entry.kind == TypeKind.EXPENSE and entry.source_id == source_id:
            expense += entry.amount
        elif entry.kind in TRANSFER_KINDS:
            if entry.source_id == source_id:
                transfers_out += entry.amount
            if entry.target_source_id == source_id:
                transfers_in += entry.amount
    return (initial_amount or 0.0) + income - expense + transfers_in - transfers_out


def _sum_amount(session: Session, *criteria: ColumnElement[bool]) -> float:
    statement = (
        select(func.coalesce(func.sum(Transaction.amount), 0.0))
        .select_from(Transaction)
        .join(TransactionType, TransactionType.id == Transaction.type_id)  # type: ignore[arg-type]
        .where(*criteria)
    )
    return float(session.exec(statement).one())


def recalculate_balance(session: Session, source_id: int, initial_amount: Optional[float]) -> float:
    """Read-only recalculation using aggregate queries against the store."""

    income = _sum_amount(
        session, Transaction.source_id == source_id, TransactionType.kind == TypeKind.INCOME
    )
    expense = _sum_amount(
        session, Transaction.source_id == source_id, TransactionType.kind == TypeKind.EXPENSE
    )
    transfers_out = _sum_amount(
        session,
        Transaction.source_id == source_id,
        TransactionType.kind.in_(TRANSFER_KINDS),  # type: ignore[attr-defined]
    )
    transfers_in = _sum_amount(
        session,
        Transaction.target_source_id == source_id,
        TransactionType.kind.in_(TRANSFER_KINDS),  # type: ignore[attr-defined]
    )
    return (initial_amount or 0.0) + income - expense + transfers_in - transfers_out
