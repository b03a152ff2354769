"""Summary statistics produced by classification."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClassificationStats:
    """Counts gathered during a single classification pass.

    Attributes:
        total: Number of transactions classified.
        categorized: Transactions that received a category (locked or by rule).
        uncategorized: Transactions left without a category.
        locked: Transactions whose category came from a lock.
        rules_applied: Transactions whose category came from a rule.
    """

    total: int = 0
    categorized: int = 0
    uncategorized: int = 0
    locked: int = 0
    rules_applied: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "categorized": self.categorized,
            "uncategorized": self.uncategorized,
            "locked": self.locked,
            "rules_applied": self.rules_applied,
        }


@dataclass(frozen=True)
class CategorizationSummary:
    """Aggregate view derived from categorized output.

    Attributes:
        total: Number of transactions.
        categorized: Transactions with a category.
        uncategorized: Transactions without a category.
        locked: Locked transactions.
        unique_text_patterns: Distinct normalized texts.
        patterns_with_rules: Distinct normalized texts with at least one
            categorized transaction.
    """

    total: int = 0
    categorized: int = 0
    uncategorized: int = 0
    locked: int = 0
    unique_text_patterns: int = 0
    patterns_with_rules: int = 0

    @property
    def categorized_ratio(self) -> float:
        """Share of transactions with a category (0.0 when empty)."""
        if self.total == 0:
            return 0.0
        return self.categorized / self.total
