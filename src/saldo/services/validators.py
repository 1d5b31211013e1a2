"""Input-shape validation for ledger commands and named catalog entities.

Validators never touch storage and never stop at the first problem: each
returns every failing field so callers can report them together.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..errors import DomainError, FieldError, ValidationError
from ..models.transaction_type import TypeKind

DESCRIPTION_MAX_LENGTH = 255
NAME_MAX_LENGTH = 128
ACCOUNT_NUMBER_MAX_LENGTH = 64

# Incoming keys accepted for each command field (API payloads use camelCase).
_TRANSACTION_KEYS = {
    "description": ("description",),
    "amount": ("amount",),
    "type_id": ("type_id", "typeId"),
    "source_id": ("source_id", "sourceId"),
    "category_id": ("category_id", "categoryId"),
    "target_source_id": ("target_source_id", "targetSourceId"),
    "occurred_at": ("occurred_at", "date"),
}


def _pick(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(slots=True)
class TransactionCommand:
    """Raw create/update request for a ledger transaction.

    Values may arrive as strings from an HTTP payload; nothing is coerced until
    :func:`clean_transaction_command` runs.
    """

    description: Any = None
    amount: Any = None
    type_id: Any = None
    source_id: Any = None
    category_id: Any = None
    target_source_id: Any = None
    occurred_at: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TransactionCommand:
        """Bind request data (camelCase or snake_case keys) to a command."""

        return cls(**{name: _pick(data, keys) for name, keys in _TRANSACTION_KEYS.items()})


@dataclass(frozen=True, slots=True)
class CleanTransaction:
    """Typed, shape-validated transaction values."""

    description: str
    amount: float
    type_id: int
    source_id: int
    category_id: Optional[int] = None
    target_source_id: Optional[int] = None
    occurred_at: Optional[datetime] = None


@dataclass(slots=True)
class _Collector:
    errors: list[FieldError] = field(default_factory=list)
    codes: list[Optional[str]] = field(default_factory=list)

    def add(self, field_name: str, message: str, code: Optional[str] = None) -> None:
        self.errors.append(FieldError(field_name, message))
        self.codes.append(code)


def parse_amount(value: Any) -> Optional[float]:
    """Return a finite float or None when the value is not a usable number."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(Decimal(value.strip()))
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_id(value: Any) -> Optional[int]:
    """Return a positive integer id or None."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Accept datetimes, dates and ISO-8601 strings (``YYYY-MM-DD`` or full timestamps).

    Values with an offset are converted to naive UTC; naive values are taken as UTC.
    """

    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def _check_kind_rules(collector: _Collector, kind: TypeKind, values: dict[str, Any]) -> None:
    # Only fields that parsed are checked; unparsable ones are already reported.
    if kind.is_transfer:
        target_id = values.get("target_source_id")
        if "target_source_id" in values and target_id is None:
            collector.add(
                "target_source_id",
                "Target source is required for transfers",
                code="TARGET_SOURCE_REQUIRED",
            )
        elif target_id is not None and target_id == values.get("source_id"):
            collector.add(
                "target_source_id", "Target source cannot be the same as source", code="SELF_TRANSFER"
            )
    elif "category_id" in values and values["category_id"] is None:
        collector.add("category_id", "Category is required", code="CATEGORY_REQUIRED")


def _clean(
    command: TransactionCommand, kind: Optional[TypeKind] = None
) -> tuple[dict[str, Any], _Collector]:
    collector = _Collector()
    values: dict[str, Any] = {}

    description = command.description
    if _is_blank(description) or not isinstance(description, str):
        collector.add("description", "Description is required")
    elif len(description.strip()) > DESCRIPTION_MAX_LENGTH:
        collector.add(
            "description", f"Description must be {DESCRIPTION_MAX_LENGTH} characters or fewer"
        )
    else:
        values["description"] = description.strip()

    if _is_blank(command.amount):
        collector.add("amount", "Amount is required")
    else:
        amount = parse_amount(command.amount)
        if amount is None:
            collector.add("amount", "Amount must be a valid number")
        elif amount <= 0:
            collector.add("amount", "Amount must be greater than zero")
        else:
            values["amount"] = amount

    for name, label in (("type_id", "Transaction type"), ("source_id", "Source")):
        raw = getattr(command, name)
        if _is_blank(raw):
            collector.add(name, f"{label} is required")
            continue
        parsed = parse_id(raw)
        if parsed is None:
            collector.add(name, f"{label} must be a positive integer id")
        else:
            values[name] = parsed

    for name, label in (("category_id", "Category"), ("target_source_id", "Target source")):
        raw = getattr(command, name)
        if _is_blank(raw):
            values[name] = None
            continue
        parsed = parse_id(raw)
        if parsed is None:
            collector.add(name, f"{label} must be a positive integer id")
        else:
            values[name] = parsed

    if _is_blank(command.occurred_at):
        values["occurred_at"] = None
    else:
        occurred_at = parse_datetime(command.occurred_at)
        if occurred_at is None:
            collector.add("date", "Enter a valid date (YYYY-MM-DD)")
        else:
            values["occurred_at"] = occurred_at

    if kind is not None:
        _check_kind_rules(collector, kind, values)
    return values, collector


def validate_transaction_command(
    command: TransactionCommand, kind: Optional[TypeKind] = None
) -> list[FieldError]:
    """Return every problem with the command (empty when valid).

    With ``kind`` known, the kind rules are checked as well: transfers need a
    distinct target source, every other kind needs a category.
    """

    _, collector = _clean(command, kind)
    return collector.errors


def clean_transaction_command(
    command: TransactionCommand, kind: Optional[TypeKind] = None
) -> CleanTransaction:
    """Coerce a command into typed values or raise listing every failing field.

    A lone failure keeps its own code (``TARGET_SOURCE_REQUIRED``,
    ``CATEGORY_REQUIRED``); a self-transfer on an otherwise valid command is a
    ``DomainError``.
    """

    values, collector = _clean(command, kind)
    if not collector.errors:
        return CleanTransaction(**values)
    code = collector.codes[0] if len(collector.errors) == 1 else None
    if code == "SELF_TRANSFER":
        raise DomainError(
            "Target source cannot be the same as source", code=code, details=collector.errors
        )
    raise ValidationError(collector.errors, code=code)


def validate_name(value: Any, *, field_name: str = "name") -> list[FieldError]:
    """Names of sources, categories and types: required, trimmed, bounded."""

    if _is_blank(value) or not isinstance(value, str):
        return [FieldError(field_name, "Name is required")]
    if len(value.strip()) > NAME_MAX_LENGTH:
        return [FieldError(field_name, f"Name must be {NAME_MAX_LENGTH} characters or fewer")]
    return []


def clean_name(value: Any, *, field_name: str = "name") -> str:
    errors = validate_name(value, field_name=field_name)
    if errors:
        raise ValidationError(errors)
    return value.strip()


def clean_source_fields(
    name: Any, account_number: Any = None, initial_amount: Any = None
) -> tuple[str, Optional[str], Optional[float]]:
    """Validate source input; ``initial_amount`` None means "not supplied"."""

    errors = validate_name(name)
    number: Optional[str] = None
    if not _is_blank(account_number):
        number = str(account_number).strip()
        if len(number) > ACCOUNT_NUMBER_MAX_LENGTH:
            errors.append(
                FieldError(
                    "account_number",
                    f"Account number must be {ACCOUNT_NUMBER_MAX_LENGTH} characters or fewer",
                )
            )
    amount: Optional[float] = None
    if not _is_blank(initial_amount):
        amount = parse_amount(initial_amount)
        if amount is None:
            errors.append(FieldError("initial_amount", "Initial amount must be a valid number"))
    if errors:
        raise ValidationError(errors)
    return name.strip(), number, amount
