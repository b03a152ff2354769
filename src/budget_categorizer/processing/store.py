"""Application-owned store holding the current ledger state."""

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from budget_categorizer.models.category import CategoryRegistry, CategoryRule, TransactionLock
from budget_categorizer.models.report import CategorizationSummary
from budget_categorizer.models.state import EngineState, LedgerState
from budget_categorizer.models.transaction import CategorizedTransaction, Transaction
from budget_categorizer.persistence.snapshot import SnapshotError, parse_snapshot, serialize_state
from budget_categorizer.processing import locks as lock_store
from budget_categorizer.processing import rules as rule_store
from budget_categorizer.processing import workflows
from budget_categorizer.processing.categorizer import summarize
from budget_categorizer.processing.deduplicator import ImportResult
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)


class CategorizationStore:
    """Holds one :class:`LedgerState` and applies workflows to it.

    Each method computes a complete new state and then swaps it in with a
    single assignment, so ``state`` always refers to a consistent value.
    If a workflow raises, the previous state stays current.

    Note: This class is NOT thread-safe. It is meant for one writer.
    """

    def __init__(self, registry: CategoryRegistry, state: Optional[LedgerState] = None):
        """Initialize the store.

        Args:
            registry: Category hierarchy used for validation.
            state: Initial state (defaults to empty).
        """
        self.registry = registry
        self._state = state if state is not None else LedgerState()

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def transactions(self) -> tuple[CategorizedTransaction, ...]:
        return self._state.categorized

    @property
    def rules(self) -> list[CategoryRule]:
        return rule_store.list_rules(self._state.engine.rules)

    @property
    def locks(self) -> list[TransactionLock]:
        return lock_store.list_locks(self._state.engine.locks)

    def summary(self) -> CategorizationSummary:
        return summarize(self._state.categorized)

    def set_registry(self, registry: CategoryRegistry) -> None:
        """Replace the category snapshot after the hierarchy changed."""
        self.registry = registry

    # Transactions

    def import_transactions(self, incoming: Iterable[Transaction]) -> ImportResult:
        """Import new transactions, skipping known fingerprints."""
        self._state, result = workflows.import_transactions(self._state, incoming)
        return result

    def categorize(
        self,
        fingerprint: str,
        category_id: str,
        create_rule: bool = False,
        now: Optional[datetime] = None,
    ) -> None:
        self._state = workflows.categorize(
            self._state, self.registry, fingerprint, category_id, create_rule, now=now
        )

    def bulk_categorize(
        self,
        category_id: str,
        mode: workflows.BulkMode = workflows.BulkMode.CREATE_RULE,
        reason: Optional[str] = None,
        fingerprints: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Categorize the given fingerprints, or the current selection."""
        selected = list(fingerprints) if fingerprints is not None else self.selected_fingerprints()
        self._state = workflows.bulk_categorize(
            self._state, self.registry, selected, category_id, mode, reason, now=now
        )

    def derive_rule(self, fingerprint: str, now: Optional[datetime] = None) -> None:
        self._state = workflows.derive_rule_from_categorized_transaction(
            self._state, fingerprint, self.registry, now=now
        )

    def fix_invalid_categorizations(self) -> int:
        """Repair assignments to non-leaf categories.

        Returns:
            Number of repaired transactions.
        """
        result = workflows.fix_invalid_categorizations(self._state, self.registry)
        self._state = result.state
        return result.repaired

    def apply_rules_to_all(self) -> None:
        """Re-run classification without changing rules or locks."""
        self._state = workflows.reclassify(self._state)

    # Rules and locks

    def set_rule(self, text: str, category_id: str, now: Optional[datetime] = None) -> None:
        rules = rule_store.set_rule(self._state.engine.rules, text, category_id, now=now)
        self._state = workflows.reclassify(self._state, self._state.engine.with_rules(rules))

    def delete_rule(self, text: str) -> None:
        rules = rule_store.delete_rule(self._state.engine.rules, text)
        self._state = workflows.reclassify(self._state, self._state.engine.with_rules(rules))

    def lock(
        self,
        fingerprint: str,
        category_id: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        locks = lock_store.lock(self._state.engine.locks, fingerprint, category_id, reason, now=now)
        self._state = workflows.reclassify(self._state, self._state.engine.with_locks(locks))

    def unlock(self, fingerprint: str) -> None:
        locks = lock_store.unlock(self._state.engine.locks, fingerprint)
        self._state = workflows.reclassify(self._state, self._state.engine.with_locks(locks))

    # Selection

    def select(self, fingerprint: str) -> None:
        self._state = replace(self._state, selection=self._state.selection | {fingerprint})

    def deselect(self, fingerprint: str) -> None:
        self._state = replace(self._state, selection=self._state.selection - {fingerprint})

    def toggle_selection(self, fingerprint: str) -> None:
        if fingerprint in self._state.selection:
            self.deselect(fingerprint)
        else:
            self.select(fingerprint)

    def select_all(self) -> None:
        self._state = replace(
            self._state,
            selection=frozenset(item.fingerprint for item in self._state.categorized),
        )

    def clear_selection(self) -> None:
        self._state = replace(self._state, selection=frozenset())

    def selected_fingerprints(self) -> list[str]:
        """Selected fingerprints in transaction order."""
        selection = self._state.selection
        seen = dict.fromkeys(
            item.fingerprint for item in self._state.categorized if item.fingerprint in selection
        )
        return list(seen)

    def selected_transactions(self) -> list[CategorizedTransaction]:
        selection = self._state.selection
        return [item for item in self._state.categorized if item.fingerprint in selection]

    # Persistence

    def snapshot(self, saved_at: Optional[datetime] = None) -> dict[str, Any]:
        """Serializable form of the current rules and locks."""
        return serialize_state(
            self._state.engine,
            saved_at=saved_at,
            transaction_count=len(self._state.transactions),
        )

    def load_snapshot(self, data: object) -> None:
        """Replace rules and locks from a snapshot and reclassify.

        Raises:
            SnapshotError: If the snapshot is invalid. The current state is kept.
        """
        result = parse_snapshot(data)
        if result.state is None:
            raise SnapshotError(result.error or "Invalid snapshot")
        self._state = workflows.reclassify(self._state, result.state)
        logger.info(
            f"Loaded snapshot with {len(result.state.rules)} rules "
            f"and {len(result.state.locks)} locks"
        )

    def reset(self) -> None:
        """Drop all transactions, rules, locks and selection."""
        self._state = LedgerState(engine=EngineState())
