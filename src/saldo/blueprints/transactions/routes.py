"""Transaction routes: ledger mutations, listings and monthly reports."""

from __future__ import annotations

from flask import request

from ...services import reports
from ...services.validators import TransactionCommand
from ..api import app_context, current_user_id, json_body, success
from ..serializers import (
    calendar_day_to_dict,
    pagination_to_dict,
    summary_to_dict,
    transaction_to_dict,
)
from . import bp


def _query() -> reports.TransactionQuery:
    config = app_context().config
    return reports.TransactionQuery.from_mapping(
        request.args,
        default_limit=config.DEFAULT_PAGE_SIZE,
        max_limit=config.MAX_PAGE_SIZE,
    )


@bp.get("")
def list_transactions():
    user_id = current_user_id()
    page = reports.list_transactions(app_context().transaction_repo, user_id, _query())
    return success(
        {
            "transactions": [transaction_to_dict(t) for t in page.transactions],
            "pagination": pagination_to_dict(page.pagination),
        }
    )


@bp.get("/recap")
def range_recap():
    user_id = current_user_id()
    recap = reports.range_recap(app_context().transaction_repo, user_id, _query())
    return success({"totalIncome": recap["total_income"], "totalExpense": recap["total_expense"]})


@bp.get("/summary")
def monthly_summary():
    user_id = current_user_id()
    summary = reports.monthly_summary(
        app_context().transaction_repo, user_id, request.args.get("month", "")
    )
    return success(summary_to_dict(summary))


@bp.get("/calendar")
def month_calendar():
    user_id = current_user_id()
    days = reports.month_calendar(
        app_context().transaction_repo, user_id, request.args.get("month", "")
    )
    return success([calendar_day_to_dict(day) for day in days])


@bp.get("/<int:transaction_id>")
def get_transaction(transaction_id: int):
    user_id = current_user_id()
    transaction = app_context().ledger.get_transaction(user_id, transaction_id)
    return success(transaction_to_dict(transaction))


@bp.post("")
def create_transaction():
    user_id = current_user_id()
    command = TransactionCommand.from_mapping(json_body())
    transaction = app_context().ledger.create_transaction(user_id, command)
    return success(transaction_to_dict(transaction), 201)


@bp.put("/<int:transaction_id>")
def update_transaction(transaction_id: int):
    user_id = current_user_id()
    command = TransactionCommand.from_mapping(json_body())
    transaction = app_context().ledger.update_transaction(user_id, transaction_id, command)
    return success(transaction_to_dict(transaction))


@bp.delete("/<int:transaction_id>")
def delete_transaction(transaction_id: int):
    user_id = current_user_id()
    app_context().ledger.delete_transaction(user_id, transaction_id)
    return success({"message": "Transaction deleted successfully"})
