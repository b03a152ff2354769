"""Classification engine combining locks and rules."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from budget_categorizer.models.report import CategorizationSummary, ClassificationStats
from budget_categorizer.models.state import EngineState
from budget_categorizer.models.transaction import (
    CategorizedTransaction,
    Transaction,
    fingerprint,
)
from budget_categorizer.processing.rules import normalize_text
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    """Output of one classification pass."""

    categorized: tuple[CategorizedTransaction, ...]
    stats: ClassificationStats


def classify(
    transactions: Iterable[Transaction],
    state: EngineState,
) -> ClassificationResult:
    """Categorize every transaction from scratch.

    For each transaction (in order):
    1. A lock on its fingerprint wins, and the result is marked locked.
    2. Otherwise a rule on its normalized text applies.
    3. Otherwise it stays uncategorized.

    Nothing from a previous pass is reused, so calling this again with the
    same inputs yields the same output. Unmatched transactions are not an
    error.

    Args:
        transactions: Transactions to classify.
        state: Rules and locks to apply.

    Returns:
        ClassificationResult with the categorized views and pass counts.
    """
    rules = state.rules
    locks = state.locks
    categorized: list[CategorizedTransaction] = []
    locked_count = 0
    rule_count = 0

    for txn in transactions:
        fp = fingerprint(txn)
        txn_lock = locks.get(fp)

        if txn_lock is not None:
            categorized.append(
                CategorizedTransaction(
                    transaction=txn,
                    fingerprint=fp,
                    category_id=txn_lock.category_id,
                    is_locked=True,
                )
            )
            locked_count += 1
            continue

        rule = rules.get(normalize_text(txn.text))
        if rule is not None:
            categorized.append(
                CategorizedTransaction(
                    transaction=txn,
                    fingerprint=fp,
                    category_id=rule.category_id,
                )
            )
            rule_count += 1
        else:
            categorized.append(CategorizedTransaction(transaction=txn, fingerprint=fp))

    total = len(categorized)
    stats = ClassificationStats(
        total=total,
        categorized=locked_count + rule_count,
        uncategorized=total - locked_count - rule_count,
        locked=locked_count,
        rules_applied=rule_count,
    )
    return ClassificationResult(categorized=tuple(categorized), stats=stats)


def group_by_text(
    categorized: Iterable[CategorizedTransaction],
) -> dict[str, list[CategorizedTransaction]]:
    """Group categorized transactions by normalized text.

    Args:
        categorized: Categorized transactions.

    Returns:
        Dict mapping normalized text to its transactions, in first-seen order.
    """
    groups: dict[str, list[CategorizedTransaction]] = {}
    for item in categorized:
        groups.setdefault(normalize_text(item.text), []).append(item)
    return groups


def summarize(categorized: Sequence[CategorizedTransaction]) -> CategorizationSummary:
    """Compute aggregate statistics over categorized output.

    Args:
        categorized: Output of a classification pass.

    Returns:
        CategorizationSummary including text-pattern counts.
    """
    categorized_count = 0
    locked_count = 0
    patterns: set[str] = set()
    patterns_with_category: set[str] = set()

    for item in categorized:
        key = normalize_text(item.text)
        patterns.add(key)
        if item.category_id is not None:
            categorized_count += 1
            patterns_with_category.add(key)
        if item.is_locked:
            locked_count += 1

    return CategorizationSummary(
        total=len(categorized),
        categorized=categorized_count,
        uncategorized=len(categorized) - categorized_count,
        locked=locked_count,
        unique_text_patterns=len(patterns),
        patterns_with_rules=len(patterns_with_category),
    )


class Categorizer:
    """Applies an engine state to transactions and logs the outcome.

    Precedence (highest first):
    1. Locks on the transaction fingerprint
    2. Rules on the normalized text
    3. Uncategorized
    """

    def __init__(self, state: EngineState):
        """Initialize categorizer.

        Args:
            state: Rules and locks to apply.
        """
        self.state = state

    def categorize(self, transactions: Iterable[Transaction]) -> ClassificationResult:
        """Classify transactions and log a one-line summary.

        Args:
            transactions: Transactions to classify.

        Returns:
            ClassificationResult for the pass.
        """
        result = classify(transactions, self.state)
        stats = result.stats
        logger.info(
            f"Categorized {stats.categorized}/{stats.total} transactions "
            f"({stats.locked} locked, {stats.rules_applied} by rule), "
            f"{stats.uncategorized} uncategorized"
        )
        return result

    def get_category_summary(
        self, categorized: Iterable[CategorizedTransaction]
    ) -> dict[str, int]:
        """Get count of transactions by category.

        Args:
            categorized: Categorized transactions.

        Returns:
            Dict mapping category ID (or "Uncategorized") to count.
        """
        summary: dict[str, int] = {}
        for item in categorized:
            category = item.category_id or "Uncategorized"
            summary[category] = summary.get(category, 0) + 1
        return summary


def categorize_transactions(
    transactions: Iterable[Transaction],
    state: EngineState,
) -> ClassificationResult:
    """Convenience function to classify with summary logging.

    Args:
        transactions: Transactions to classify.
        state: Rules and locks to apply.

    Returns:
        ClassificationResult for the pass.
    """
    categorizer = Categorizer(state)
    return categorizer.categorize(transactions)
