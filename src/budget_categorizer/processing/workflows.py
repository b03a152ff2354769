"""Mutation workflows built on the rule and lock stores.

Every workflow takes a :class:`LedgerState` and returns a new one. Rules and
locks are updated first, then the full transaction set is classified again,
so the categorized view can never drift from the stores. A workflow that
raises leaves the caller's state untouched.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from budget_categorizer.errors import (
    LockedTransactionError,
    MissingCategoryForRule,
    TransactionNotFoundError,
)
from budget_categorizer.models.category import CategoryRegistry
from budget_categorizer.models.state import EngineState, LedgerState
from budget_categorizer.models.transaction import CategorizedTransaction, Transaction
from budget_categorizer.processing import locks as lock_store
from budget_categorizer.processing import rules as rule_store
from budget_categorizer.processing.categorizer import categorize_transactions
from budget_categorizer.processing.deduplicator import Deduplicator, ImportResult
from budget_categorizer.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)

# Bulk target that clears locks instead of assigning a category
UNCATEGORIZE = "__uncategorized"

# Reason stored on locks placed by a single categorize without a rule
MANUAL_LOCK_REASON = "manual categorization"


class BulkMode(Enum):
    """How a bulk categorization is recorded."""

    CREATE_RULE = "create_rule"  # One rule per distinct text in the selection
    LOCK_AS_EXCEPTION = "lock_as_exception"  # One lock per selected occurrence


@dataclass(frozen=True)
class RepairResult:
    """Outcome of :func:`fix_invalid_categorizations`."""

    state: LedgerState
    repaired: int


def reclassify(state: LedgerState, engine: Optional[EngineState] = None) -> LedgerState:
    """Classify all transactions again, optionally against a new engine state.

    Args:
        state: Current ledger state.
        engine: Replacement rules and locks (defaults to the current ones).

    Returns:
        New state whose ``categorized`` and ``stats`` match ``engine``.
    """
    engine = engine if engine is not None else state.engine
    result = categorize_transactions(state.transactions, engine)
    return replace(
        state,
        engine=engine,
        categorized=result.categorized,
        stats=result.stats,
    )


def import_transactions(
    state: LedgerState,
    incoming: Iterable[Transaction],
) -> tuple[LedgerState, ImportResult]:
    """Add freshly ingested transactions, skipping ones already known.

    Args:
        state: Current ledger state.
        incoming: Transactions from statement ingestion.

    Returns:
        Tuple of (new state, ImportResult).
    """
    new, duplicates = Deduplicator().split(state.transactions, incoming)
    new_state = reclassify(replace(state, transactions=state.transactions + tuple(new)))

    new_categorized = new_state.categorized[len(state.transactions):]
    auto_categorized = sum(1 for item in new_categorized if item.category_id is not None)

    logger.info(
        f"Imported {len(new)} new transactions, {auto_categorized} auto-categorized, "
        f"{len(duplicates)} duplicates ignored"
    )
    return new_state, ImportResult(
        imported_count=len(new),
        duplicate_count=len(duplicates),
        auto_categorized_count=auto_categorized,
        duplicates=tuple(duplicates),
    )


def _require(state: LedgerState, fingerprint: str) -> CategorizedTransaction:
    item = state.find(fingerprint)
    if item is None:
        raise TransactionNotFoundError(fingerprint)
    return item


def categorize(
    state: LedgerState,
    registry: CategoryRegistry,
    fingerprint: str,
    category_id: str,
    create_rule: bool = False,
    now: Optional[datetime] = None,
) -> LedgerState:
    """Assign a category to one transaction.

    With ``create_rule`` the choice becomes a rule for the transaction's
    text, which also recategorizes every other transaction with that text.
    Without it the choice is pinned to this occurrence as a lock.

    Args:
        state: Current ledger state.
        registry: Category hierarchy used for leaf validation.
        fingerprint: Target transaction.
        category_id: Category to assign.
        create_rule: Record the choice as a text rule instead of a lock.
        now: Timestamp for the stored rule or lock.

    Returns:
        New ledger state.

    Raises:
        TransactionNotFoundError: If no transaction has this fingerprint.
        LockedTransactionError: If the transaction is locked.
        InvalidCategoryAssignment: If the category is not an assignable leaf.
        EmptyRuleTextError: If ``create_rule`` is set and the text is blank.
    """
    with LogContext(logger, "categorize", fingerprint=fingerprint, category_id=category_id):
        item = _require(state, fingerprint)
        if lock_store.is_locked(state.engine.locks, fingerprint):
            raise LockedTransactionError(fingerprint)
        registry.validate_assignment(category_id)

        engine = state.engine
        if create_rule:
            engine = engine.with_rules(
                rule_store.set_rule(engine.rules, item.text, category_id, now=now)
            )
            logger.info(f"Rule '{rule_store.normalize_text(item.text)}' -> {category_id}")
        else:
            engine = engine.with_locks(
                lock_store.lock(
                    engine.locks, fingerprint, category_id, MANUAL_LOCK_REASON, now=now
                )
            )

        return reclassify(state, engine)


def bulk_categorize(
    state: LedgerState,
    registry: CategoryRegistry,
    fingerprints: Iterable[str],
    category_id: str,
    mode: BulkMode = BulkMode.CREATE_RULE,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LedgerState:
    """Categorize a selection of transactions in one step.

    In ``LOCK_AS_EXCEPTION`` mode each selected occurrence gets its own
    lock carrying ``reason``. In ``CREATE_RULE`` mode one rule is upserted
    per distinct text among the selection; blank texts are skipped. Passing
    :data:`UNCATEGORIZE` as the category unlocks every selected transaction
    instead.

    All references are checked before anything changes. The selection is
    cleared afterwards.

    Args:
        state: Current ledger state.
        registry: Category hierarchy used for leaf validation.
        fingerprints: Selected transactions.
        category_id: Category to assign, or UNCATEGORIZE.
        mode: How the assignment is recorded.
        reason: Note attached to every lock in lock mode.
        now: Timestamp for stored rules or locks.

    Returns:
        New ledger state with an empty selection.

    Raises:
        TransactionNotFoundError: If any fingerprint is unknown.
        InvalidCategoryAssignment: If the category is not an assignable leaf.
    """
    selected = list(dict.fromkeys(fingerprints))
    with LogContext(
        logger, "bulk_categorize", count=len(selected), category_id=category_id, mode=mode.value
    ):
        index = {item.fingerprint: item for item in state.categorized}
        for fp in selected:
            if fp not in index:
                raise TransactionNotFoundError(fp)

        engine = state.engine
        if category_id == UNCATEGORIZE:
            locks = engine.locks
            for fp in selected:
                locks = lock_store.unlock(locks, fp)
            engine = engine.with_locks(locks)
            logger.info(f"Unlocked {len(selected)} transactions")
        else:
            registry.validate_assignment(category_id)
            if mode is BulkMode.LOCK_AS_EXCEPTION:
                locks = engine.locks
                for fp in selected:
                    locks = lock_store.lock(locks, fp, category_id, reason, now=now)
                engine = engine.with_locks(locks)
                logger.info(f"Locked {len(selected)} transactions to {category_id}")
            else:
                texts = dict.fromkeys(
                    rule_store.normalize_text(index[fp].text) for fp in selected
                )
                if "" in texts:
                    del texts[""]
                    logger.debug("Skipping blank text in bulk rule creation")
                rules = engine.rules
                for text in texts:
                    rules = rule_store.set_rule(rules, text, category_id, now=now)
                engine = engine.with_rules(rules)
                logger.info(
                    f"Upserted {len(texts)} rules to {category_id} "
                    f"from {len(selected)} selected transactions"
                )

        return replace(reclassify(state, engine), selection=frozenset())


def derive_rule_from_categorized_transaction(
    state: LedgerState,
    fingerprint: str,
    registry: Optional[CategoryRegistry] = None,
    now: Optional[datetime] = None,
) -> LedgerState:
    """Turn an existing categorization into a rule for its text.

    Args:
        state: Current ledger state.
        fingerprint: Transaction whose category becomes the rule target.
        registry: When given, the category must be an assignable leaf.
        now: Timestamp for the stored rule.

    Returns:
        New ledger state.

    Raises:
        TransactionNotFoundError: If no transaction has this fingerprint.
        MissingCategoryForRule: If the transaction has no category.
        InvalidCategoryAssignment: If the category is not an assignable leaf.
        EmptyRuleTextError: If the transaction text is blank.
    """
    with LogContext(logger, "derive_rule", fingerprint=fingerprint):
        item = _require(state, fingerprint)
        if item.category_id is None:
            raise MissingCategoryForRule(fingerprint)
        if registry is not None:
            registry.validate_assignment(item.category_id)

        engine = state.engine.with_rules(
            rule_store.set_rule(state.engine.rules, item.text, item.category_id, now=now)
        )
        return reclassify(state, engine)


def fix_invalid_categorizations(
    state: LedgerState,
    registry: CategoryRegistry,
) -> RepairResult:
    """Clear assignments to categories that can no longer hold transactions.

    Typically needed after a restructuring turned a leaf into a parent. For
    each offending transaction the lock is released, and the rule for its
    text is dropped if that rule targets an invalid category. Running it a
    second time repairs nothing.

    Args:
        state: Current ledger state.
        registry: Category hierarchy used for leaf validation.

    Returns:
        RepairResult with the new state and the number of repaired transactions.
    """
    locks = state.engine.locks
    rules = state.engine.rules
    repaired = 0

    for item in state.categorized:
        if item.category_id is None or registry.is_leaf(item.category_id):
            continue

        repaired += 1
        logger.debug(
            f"Invalid assignment {item.fingerprint} -> {item.category_id}: "
            f"{registry.assignment_problem(item.category_id)}"
        )
        if item.is_locked:
            locks = lock_store.unlock(locks, item.fingerprint)
        rule = rule_store.get_rule(rules, item.text)
        if rule is not None and not registry.is_leaf(rule.category_id):
            rules = rule_store.delete_rule(rules, item.text)

    if repaired == 0:
        logger.debug("No invalid categorizations found")
        return RepairResult(state=state, repaired=0)

    logger.info(f"Repaired {repaired} invalid categorizations")
    engine = EngineState(rules=rules, locks=locks)
    return RepairResult(state=reclassify(state, engine), repaired=repaired)
