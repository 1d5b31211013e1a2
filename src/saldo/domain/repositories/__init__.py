"""Repository protocol definitions for domain layer."""

from .category import CategoryRepository
from .source import SourceRepository
from .transaction import TransactionRepository
from .transaction_type import TransactionTypeRepository

__all__ = [
    "CategoryRepository",
    "SourceRepository",
    "TransactionRepository",
    "TransactionTypeRepository",
]
