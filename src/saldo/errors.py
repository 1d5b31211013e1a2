"""Typed errors raised by the ledger core.

Every error carries a stable machine-readable ``code``, a human-readable
message and an optional list of per-field details. The HTTP adapter maps the
error class to a status code; the core never deals in status codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single (field, message) validation failure."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class LedgerError(Exception):
    """Base class for every error the core reports to callers."""

    default_code = "ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Iterable[FieldError] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details: list[FieldError] = list(details or [])

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = [detail.as_dict() for detail in self.details]
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(LedgerError):
    """Client input is malformed or missing required fields."""

    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        details: Iterable[FieldError],
        message: str = "Validation failed",
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, code, details)


class NotFoundError(LedgerError):
    """A referenced entity is missing or not owned by the caller."""

    default_code = "NOT_FOUND"


class ConflictError(LedgerError):
    """Duplicate name, or an entity still in use and therefore not deletable."""

    default_code = "CONFLICT"


class DomainError(LedgerError):
    """The request is well formed but violates a ledger rule."""

    default_code = "DOMAIN_ERROR"


class InternalError(LedgerError):
    """Storage failure or another unexpected condition."""

    default_code = "INTERNAL_ERROR"
