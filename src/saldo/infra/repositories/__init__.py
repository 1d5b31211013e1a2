"""Concrete repository implementations using SQLModel."""

from .category import SQLModelCategoryRepository
from .source import SQLModelSourceRepository
from .transaction import SQLModelTransactionRepository
from .transaction_type import SQLModelTransactionTypeRepository

__all__ = [
    "SQLModelCategoryRepository",
    "SQLModelSourceRepository",
    "SQLModelTransactionRepository",
    "SQLModelTransactionTypeRepository",
]
