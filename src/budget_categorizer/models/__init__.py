"""Data models for transactions, categories, rules and locks."""

from budget_categorizer.models.category import (
    Category,
    CategoryRegistry,
    CategoryRule,
    TransactionLock,
)
from budget_categorizer.models.report import CategorizationSummary, ClassificationStats
from budget_categorizer.models.state import EngineState, LedgerState
from budget_categorizer.models.transaction import (
    CategorizedTransaction,
    Transaction,
    fingerprint,
)

__all__ = [
    "Transaction",
    "CategorizedTransaction",
    "fingerprint",
    "Category",
    "CategoryRegistry",
    "CategoryRule",
    "TransactionLock",
    "ClassificationStats",
    "CategorizationSummary",
    "EngineState",
    "LedgerState",
]
