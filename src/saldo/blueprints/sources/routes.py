"""Source routes."""

from __future__ import annotations

from ..api import app_context, current_user_id, json_body, success
from ..serializers import source_to_dict
from . import bp


def _pick(body: dict, camel: str, snake: str):
    return body.get(camel, body.get(snake))


@bp.get("")
def list_sources():
    user_id = current_user_id()
    sources = app_context().sources.list_sources(user_id)
    return success([source_to_dict(source) for source in sources])


@bp.get("/<int:source_id>")
def get_source(source_id: int):
    user_id = current_user_id()
    return success(source_to_dict(app_context().sources.get_source(user_id, source_id)))


@bp.post("")
def create_source():
    user_id = current_user_id()
    body = json_body()
    source = app_context().sources.create_source(
        user_id,
        body.get("name"),
        account_number=_pick(body, "accountNumber", "account_number"),
        initial_amount=_pick(body, "initialAmount", "initial_amount"),
    )
    return success(source_to_dict(source), 201)


@bp.put("/<int:source_id>")
def update_source(source_id: int):
    user_id = current_user_id()
    body = json_body()
    source = app_context().sources.update_source(
        user_id,
        source_id,
        body.get("name"),
        account_number=_pick(body, "accountNumber", "account_number"),
        initial_amount=_pick(body, "initialAmount", "initial_amount"),
    )
    return success(source_to_dict(source))


@bp.post("/<int:source_id>/recalculate")
def recalculate_source(source_id: int):
    user_id = current_user_id()
    body = json_body()
    balance = app_context().sources.recalculate_source_balance(
        user_id, source_id, _pick(body, "initialAmount", "initial_amount")
    )
    return success({"id": source_id, "balance": balance})


@bp.delete("/<int:source_id>")
def delete_source(source_id: int):
    user_id = current_user_id()
    app_context().sources.delete_source(user_id, source_id)
    return success({"message": "Source deleted successfully"})
