"""Transaction type routes."""

from __future__ import annotations

from ..api import app_context, current_user_id, json_body, success
from ..serializers import transaction_type_to_dict
from . import bp


@bp.get("")
def list_transaction_types():
    user_id = current_user_id()
    types = app_context().transaction_types.list_types(user_id)
    return success([transaction_type_to_dict(t, include_categories=True) for t in types])


@bp.get("/<int:type_id>")
def get_transaction_type(type_id: int):
    user_id = current_user_id()
    transaction_type = app_context().transaction_types.get_type(user_id, type_id)
    return success(transaction_type_to_dict(transaction_type, include_categories=True))


@bp.post("")
def create_transaction_type():
    user_id = current_user_id()
    created = app_context().transaction_types.create_type(user_id, json_body().get("name"))
    return success(transaction_type_to_dict(created), 201)


@bp.put("/<int:type_id>")
def update_transaction_type(type_id: int):
    user_id = current_user_id()
    updated = app_context().transaction_types.update_type(user_id, type_id, json_body().get("name"))
    return success(transaction_type_to_dict(updated))


@bp.delete("/<int:type_id>")
def delete_transaction_type(type_id: int):
    user_id = current_user_id()
    app_context().transaction_types.delete_type(user_id, type_id)
    return success({"message": "Transaction type deleted successfully"})
