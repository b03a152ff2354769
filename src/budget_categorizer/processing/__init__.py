"""Categorization engine and the workflows built on it."""

from budget_categorizer.processing.categorizer import (
    Categorizer,
    ClassificationResult,
    categorize_transactions,
    classify,
    group_by_text,
    summarize,
)
from budget_categorizer.processing.deduplicator import (
    Deduplicator,
    ImportResult,
    find_new_transactions,
)
from budget_categorizer.processing.locks import (
    get_lock,
    is_locked,
    list_locks,
    lock,
    unlock,
)
from budget_categorizer.processing.rules import (
    delete_rule,
    get_rule,
    list_rules,
    normalize_text,
    set_rule,
)
from budget_categorizer.processing.workflows import (
    UNCATEGORIZE,
    BulkMode,
    RepairResult,
    bulk_categorize,
    categorize,
    derive_rule_from_categorized_transaction,
    fix_invalid_categorizations,
    import_transactions,
    reclassify,
)
from budget_categorizer.processing.store import CategorizationStore

__all__ = [
    "Categorizer",
    "ClassificationResult",
    "categorize_transactions",
    "classify",
    "group_by_text",
    "summarize",
    "Deduplicator",
    "ImportResult",
    "find_new_transactions",
    "lock",
    "unlock",
    "is_locked",
    "get_lock",
    "list_locks",
    "set_rule",
    "delete_rule",
    "get_rule",
    "list_rules",
    "normalize_text",
    "UNCATEGORIZE",
    "BulkMode",
    "RepairResult",
    "categorize",
    "bulk_categorize",
    "derive_rule_from_categorized_transaction",
    "fix_invalid_categorizations",
    "import_transactions",
    "reclassify",
    "CategorizationStore",
]
