"""SQLModel table exports."""

from .category import Category
from .source import Source
from .transaction import Transaction
from .transaction_type import TransactionType, TypeKind
from .user import User

__all__ = [
    "Category",
    "Source",
    "Transaction",
    "TransactionType",
    "TypeKind",
    "User",
]
