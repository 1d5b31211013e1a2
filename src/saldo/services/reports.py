"""Transaction listings and simple sums.

Covers the read side of the ledger: filtered/sorted/paged listings, monthly
totals per type kind, a day-by-day calendar and an income/expense recap for a
filter range. Totals are grouped by the stable type kind, never by name.
"""

from __future__ import annotations

import calendar
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from ..domain.repositories.transaction import TransactionRepository
from ..errors import FieldError, ValidationError
from ..models.transaction import Transaction
from ..models.transaction_type import TypeKind
from .validators import parse_datetime, parse_id

_MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")
SORT_FIELDS = ("createdAt", "amount", "updatedAt", "date")
REPORTED_KINDS = (TypeKind.INCOME, TypeKind.EXPENSE, TypeKind.TRANSFER, TypeKind.SAVING)


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """Return the first and last instant of a ``YYYY-MM`` month."""

    if not isinstance(month, str) or not _MONTH_PATTERN.match(month):
        raise ValidationError(
            [FieldError("month", "Invalid month format. Use YYYY-MM")],
            code="INVALID_MONTH_FORMAT",
        )
    year, month_number = (int(part) for part in month.split("-"))
    if not 1 <= month_number <= 12:
        raise ValidationError(
            [FieldError("month", "Month must be between 01 and 12")],
            code="INVALID_MONTH_FORMAT",
        )
    last_day = calendar.monthrange(year, month_number)[1]
    start = datetime(year, month_number, 1)
    end = datetime.combine(date(year, month_number, last_day), time.max)
    return start, end


def _current_month_bounds(today: Optional[date] = None) -> tuple[datetime, datetime]:
    today = today or datetime.now(timezone.utc).date()
    return month_bounds(f"{today.year:04d}-{today.month:02d}")


@dataclass(slots=True)
class TransactionQuery:
    """Listing parameters; defaults to the current month, newest first."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    type_id: Optional[int] = None
    category_id: Optional[int] = None
    source_id: Optional[int] = None
    sort_by: str = "createdAt"
    descending: bool = True
    page: int = 1
    limit: int = 10

    @classmethod
    def from_mapping(
        cls, args: Mapping[str, Any], *, default_limit: int = 10, max_limit: int = 100
    ) -> TransactionQuery:
        """Parse query-string style arguments; unknown sort values fall back to defaults."""

        query = cls(limit=default_limit)
        start_raw, end_raw = args.get("startDate"), args.get("endDate")
        if start_raw and end_raw:
            start, end = parse_datetime(start_raw), parse_datetime(end_raw)
            if start is None or end is None:
                raise ValidationError(
                    [FieldError("startDate", "Invalid startDate or endDate format. Use YYYY-MM-DD")],
                    code="INVALID_DATE_FORMAT",
                )
            if isinstance(end_raw, str) and len(end_raw.strip()) == 10:
                end = datetime.combine(end.date(), time.max)
            query.start_date, query.end_date = start, end
        else:
            query.start_date, query.end_date = _current_month_bounds()

        query.type_id = parse_id(args.get("typeId"))
        query.category_id = parse_id(args.get("categoryId"))
        query.source_id = parse_id(args.get("sourceId"))

        sort_by = str(args.get("sortBy") or "createdAt")
        query.sort_by = sort_by if sort_by in SORT_FIELDS else "createdAt"
        query.descending = str(args.get("order") or "desc").lower() != "asc"

        query.page = max(1, parse_id(args.get("page")) or 1)
        query.limit = min(max_limit, parse_id(args.get("limit")) or default_limit)
        return query

    def filters(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "type_id": self.type_id,
            "category_id": self.category_id,
            "source_id": self.source_id,
        }


@dataclass(frozen=True, slots=True)
class PaginationMeta:
    rows_count: int
    page_count: int
    current_page: int
    limit: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> PaginationMeta:
        return cls(
            rows_count=total,
            page_count=math.ceil(total / limit) if limit else 0,
            current_page=page,
            limit=limit,
        )


@dataclass(slots=True)
class TransactionPage:
    transactions: list[Transaction]
    pagination: PaginationMeta


def list_transactions(
    repository: TransactionRepository, user_id: int, query: TransactionQuery
) -> TransactionPage:
    """One page of the user's transactions matching the query."""

    rows, total = repository.search(
        user_id=user_id,
        sort_by=query.sort_by,
        descending=query.descending,
        limit=query.limit,
        offset=(query.page - 1) * query.limit,
        **query.filters(),
    )
    return TransactionPage(rows, PaginationMeta.build(total, query.page, query.limit))


def _kind_of(transaction: Transaction) -> TypeKind:
    return TypeKind(transaction.type.kind)


@dataclass(slots=True)
class MonthlySummary:
    month: str
    totals: dict[str, float] = field(default_factory=dict)

    @property
    def net_amount(self) -> float:
        return self.totals.get(TypeKind.INCOME.value, 0.0) - self.totals.get(
            TypeKind.EXPENSE.value, 0.0
        )


def _empty_totals() -> dict[str, float]:
    return {kind.value: 0.0 for kind in REPORTED_KINDS}


def monthly_summary(repository: TransactionRepository, user_id: int, month: str) -> MonthlySummary:
    """Totals per type kind for a month; net is income minus expense."""

    start, end = month_bounds(month)
    summary = MonthlySummary(month=month, totals=_empty_totals())
    for transaction in repository.filter_by_date_range(start, end, user_id=user_id):
        kind = _kind_of(transaction)
        if kind in REPORTED_KINDS:
            summary.totals[kind.value] += transaction.amount
    return summary


@dataclass(slots=True)
class CalendarDay:
    day: date
    totals: dict[str, float] = field(default_factory=dict)

    @property
    def net_amount(self) -> float:
        return self.totals.get(TypeKind.INCOME.value, 0.0) - self.totals.get(
            TypeKind.EXPENSE.value, 0.0
        )


def month_calendar(repository: TransactionRepository, user_id: int, month: str) -> list[CalendarDay]:
    """One entry per day of the month with per-kind totals (days without activity included)."""

    start, end = month_bounds(month)
    days: dict[date, CalendarDay] = {}
    current = start.date()
    while current <= end.date():
        days[current] = CalendarDay(current)
        current += timedelta(days=1)

    for transaction in repository.filter_by_date_range(start, end, user_id=user_id):
        bucket = days[transaction.occurred_at.date()].totals
        kind = _kind_of(transaction).value
        bucket[kind] = bucket.get(kind, 0.0) + transaction.amount
    return list(days.values())


def range_recap(
    repository: TransactionRepository, user_id: int, query: TransactionQuery
) -> dict[str, float]:
    """Income and expense totals over every row matching the query (ignores paging)."""

    rows, _ = repository.search(user_id=user_id, **query.filters())
    total_income = sum(t.amount for t in rows if _kind_of(t) == TypeKind.INCOME)
    total_expense = sum(t.amount for t in rows if _kind_of(t) == TypeKind.EXPENSE)
    return {"total_income": total_income, "total_expense": total_expense}
