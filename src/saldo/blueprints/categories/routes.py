"""Category routes."""

from __future__ import annotations

from flask import request

from ...services.validators import parse_id
from ..api import app_context, current_user_id, json_body, success
from ..serializers import category_to_dict
from . import bp


@bp.get("")
def list_categories():
    user_id = current_user_id()
    type_id = parse_id(request.args.get("transactionTypeId"))
    categories = app_context().categories.list_categories(user_id, transaction_type_id=type_id)
    return success([category_to_dict(category) for category in categories])


@bp.get("/<int:category_id>")
def get_category(category_id: int):
    user_id = current_user_id()
    return success(category_to_dict(app_context().categories.get_category(user_id, category_id)))


@bp.post("")
def create_category():
    user_id = current_user_id()
    body = json_body()
    category = app_context().categories.create_category(
        user_id,
        body.get("name"),
        transaction_type_id=body.get("transactionTypeId", body.get("transaction_type_id")),
    )
    return success(category_to_dict(category), 201)


@bp.put("/<int:category_id>")
def update_category(category_id: int):
    user_id = current_user_id()
    body = json_body()
    category = app_context().categories.update_category(
        user_id,
        category_id,
        body.get("name"),
        transaction_type_id=body.get("transactionTypeId", body.get("transaction_type_id")),
    )
    return success(category_to_dict(category))


@bp.delete("/<int:category_id>")
def delete_category(category_id: int):
    user_id = current_user_id()
    app_context().categories.delete_category(user_id, category_id)
    return success({"message": "Category deleted successfully"})
