"""camelCase JSON views of the models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from ..models.category import Category
from ..models.source import Source
from ..models.transaction import Transaction
from ..models.transaction_type import TransactionType, TypeKind
from ..services.reports import CalendarDay, MonthlySummary, PaginationMeta


def _iso(value: Optional[datetime | date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def source_to_dict(source: Optional[Source]) -> Optional[dict[str, Any]]:
    if source is None:
        return None
    return {
        "id": source.id,
        "name": source.name,
        "accountNumber": source.account_number,
        "initialAmount": source.initial_amount,
        "balance": source.balance,
        "userId": source.user_id,
        "createdAt": _iso(source.created_at),
        "updatedAt": _iso(source.updated_at),
    }


def category_to_dict(category: Optional[Category]) -> Optional[dict[str, Any]]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "transactionTypeId": category.transaction_type_id,
        "userId": category.user_id,
    }


def transaction_type_to_dict(
    transaction_type: Optional[TransactionType], *, include_categories: bool = False
) -> Optional[dict[str, Any]]:
    if transaction_type is None:
        return None
    payload: dict[str, Any] = {
        "id": transaction_type.id,
        "name": transaction_type.name,
        "kind": TypeKind(transaction_type.kind).value,
        "key": transaction_type.key,
        "userId": transaction_type.user_id,
    }
    if include_categories:
        payload["categories"] = [category_to_dict(c) for c in transaction_type.categories]
    return payload


def transaction_to_dict(transaction: Transaction) -> dict[str, Any]:
    return {
        "id": transaction.id,
        "description": transaction.description,
        "amount": transaction.amount,
        "date": _iso(transaction.occurred_at),
        "typeId": transaction.type_id,
        "sourceId": transaction.source_id,
        "targetSourceId": transaction.target_source_id,
        "categoryId": transaction.category_id,
        "userId": transaction.user_id,
        "createdAt": _iso(transaction.created_at),
        "updatedAt": _iso(transaction.updated_at),
        "type": transaction_type_to_dict(transaction.type),
        "category": category_to_dict(transaction.category),
        "source": source_to_dict(transaction.source),
        "targetSource": source_to_dict(transaction.target_source),
    }


def pagination_to_dict(meta: PaginationMeta) -> dict[str, int]:
    return {
        "rowsCount": meta.rows_count,
        "pageCount": meta.page_count,
        "currentPage": meta.current_page,
        "limit": meta.limit,
    }


def summary_to_dict(summary: MonthlySummary) -> dict[str, Any]:
    totals = summary.totals
    return {
        "month": summary.month,
        "totalIncome": totals.get(TypeKind.INCOME.value, 0.0),
        "totalExpense": totals.get(TypeKind.EXPENSE.value, 0.0),
        "totalTransfer": totals.get(TypeKind.TRANSFER.value, 0.0),
        "totalSaving": totals.get(TypeKind.SAVING.value, 0.0),
        "netAmount": summary.net_amount,
    }


def calendar_day_to_dict(day: CalendarDay) -> dict[str, Any]:
    return {
        "date": day.day.isoformat(),
        "types": dict(day.totals),
        "netAmount": day.net_amount,
    }
