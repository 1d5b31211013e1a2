"""Transaction type blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("transaction_types", __name__, url_prefix="/transaction-types")

from . import routes  # noqa: E402,F401 - ensure routes get registered

__all__ = ["bp"]
