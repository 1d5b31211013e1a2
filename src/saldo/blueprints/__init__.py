"""Blueprint exports."""

from . import categories, sources, transaction_types, transactions

__all__ = [
    "categories",
    "sources",
    "transaction_types",
    "transactions",
]
