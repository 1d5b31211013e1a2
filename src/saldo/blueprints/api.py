"""JSON envelope, owner resolution and error mapping shared by every blueprint."""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ..context import AppContext
from ..errors import (
    ConflictError,
    DomainError,
    InternalError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from ..logging_config import get_logger

logger = get_logger("blueprints.api")

OWNER_HEADER = "X-User-Id"

_STATUS_BY_ERROR: tuple[tuple[type[LedgerError], int], ...] = (
    (ValidationError, 400),
    (DomainError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InternalError, 500),
)


class UnauthorizedError(LedgerError):
    """The request did not carry a usable owner id."""

    default_code = "UNAUTHORIZED"


def status_for(error: LedgerError) -> int:
    if isinstance(error, UnauthorizedError):
        return 401
    for error_cls, status in _STATUS_BY_ERROR:
        if isinstance(error, error_cls):
            return status
    return 500


def success(data: Any, status: int = 200) -> tuple[Response, int]:
    return jsonify({"data": data, "errors": False}), status


def failure(code: str, message: str, status: int, details: list[dict[str, str]] | None = None):
    payload: dict[str, Any] = {"code": code, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify({"data": None, "errors": payload}), status


def app_context() -> AppContext:
    return current_app.extensions["saldo"]


def current_user_id() -> int:
    """Owner id supplied by the upstream auth layer."""

    raw = request.headers.get(OWNER_HEADER, "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        raise UnauthorizedError("Unauthorized")
    return int(raw)


def json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def register_error_handlers(app: Flask) -> None:
    """Translate core errors into the JSON error envelope."""

    @app.errorhandler(LedgerError)
    def _handle_ledger_error(error: LedgerError):
        status = status_for(error)
        if status >= 500:
            logger.error("Request failed", extra={"code": error.code, "path": request.path})
        else:
            logger.warning(
                "Request rejected",
                extra={"code": error.code, "status": status, "path": request.path},
            )
        details = [detail.as_dict() for detail in error.details]
        return failure(error.code, error.message, status, details)

    @app.errorhandler(HTTPException)
    def _handle_http_error(error: HTTPException):
        code = (error.name or "error").upper().replace(" ", "_")
        return failure(code, error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception("Unhandled error", extra={"path": request.path})
        return failure("INTERNAL_ERROR", "Internal server error", 500)
