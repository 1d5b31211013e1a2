"""Service module exports."""

from . import (
    catalog,
    ledger,
    provisioning,
    recalculator,
    reports,
    scope,
    sources,
    validators,
)

__all__ = [
    "catalog",
    "ledger",
    "provisioning",
    "recalculator",
    "reports",
    "scope",
    "sources",
    "validators",
]
