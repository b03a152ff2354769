"""Immutable state values passed between workflows."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from budget_categorizer.models.category import CategoryRule, TransactionLock
from budget_categorizer.models.report import ClassificationStats
from budget_categorizer.models.transaction import CategorizedTransaction, Transaction


@dataclass(frozen=True)
class EngineState:
    """Rule and lock stores consulted by the classification engine.

    Attributes:
        rules: Rules keyed by normalized text.
        locks: Locks keyed by transaction fingerprint.
    """

    rules: Mapping[str, CategoryRule] = field(default_factory=dict)
    locks: Mapping[str, TransactionLock] = field(default_factory=dict)

    def with_rules(self, rules: Mapping[str, CategoryRule]) -> "EngineState":
        return replace(self, rules=rules)

    def with_locks(self, locks: Mapping[str, TransactionLock]) -> "EngineState":
        return replace(self, locks=locks)


@dataclass(frozen=True)
class LedgerState:
    """Everything a workflow reads and produces.

    ``categorized`` and ``stats`` are always the output of classifying
    ``transactions`` against ``engine``; workflows replace them together.

    Attributes:
        transactions: Known transactions in import order.
        engine: Current rules and locks.
        categorized: Classification output for ``transactions``.
        stats: Counts from the last classification pass.
        selection: Fingerprints currently selected for bulk actions.
    """

    transactions: tuple[Transaction, ...] = ()
    engine: EngineState = field(default_factory=EngineState)
    categorized: tuple[CategorizedTransaction, ...] = ()
    stats: ClassificationStats = field(default_factory=ClassificationStats)
    selection: frozenset[str] = frozenset()

    def find(self, fingerprint: str) -> CategorizedTransaction | None:
        """Find the categorized view of a transaction by fingerprint."""
        for item in self.categorized:
            if item.fingerprint == fingerprint:
                return item
        return None
