"""Rule templates and state merging.

Rule templates carry category names next to IDs so they can be shared
between households whose category IDs differ.
"""

from collections.abc import Mapping
from typing import Any

from budget_categorizer.models.category import CategoryRegistry, CategoryRule, normalize_text
from budget_categorizer.models.state import EngineState
from budget_categorizer.utils.date_utils import datetime_to_iso, parse_iso_datetime, utc_now
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)


def export_rules(state: EngineState, registry: CategoryRegistry) -> dict[str, Any]:
    """Export rules as a shareable template.

    Args:
        state: Engine state holding the rules.
        registry: Categories used to resolve names.

    Returns:
        Dict with a ``rules`` list of text, category ID/name and timestamps.
    """
    exported: list[dict[str, Any]] = []
    for rule in state.rules.values():
        category = registry.get(rule.category_id)
        exported.append(
            {
                "text": rule.text,
                "category_id": rule.category_id,
                "category_name": category.name if category else None,
                "created_at": datetime_to_iso(rule.created_at),
                "updated_at": datetime_to_iso(rule.updated_at),
            }
        )
    return {"rules": exported}


def _resolve_category(entry: Mapping[str, Any], registry: CategoryRegistry) -> str | None:
    category_id = entry.get("category_id")
    if not (isinstance(category_id, str) and category_id in registry):
        name = entry.get("category_name")
        category = registry.find_by_name(name) if isinstance(name, str) else None
        category_id = category.id if category is not None else None
    # Only leaves can hold transactions
    if category_id is None or not registry.is_leaf(category_id):
        return None
    return category_id


def import_rules(
    data: Mapping[str, Any],
    state: EngineState,
    registry: CategoryRegistry,
) -> EngineState:
    """Merge a rule template into engine state.

    Each rule's category is matched by ID first, then by name. Rules whose
    category cannot be resolved to an assignable leaf, or that are malformed,
    are skipped with a warning. Imported rules replace existing rules for the
    same text.

    Args:
        data: Template as produced by :func:`export_rules`.
        state: Current engine state.
        registry: Categories available in this household.

    Returns:
        New EngineState with the imported rules.
    """
    entries = data.get("rules")
    if not isinstance(entries, list):
        logger.warning("Rule template has no 'rules' list, nothing imported")
        return state

    rules = dict(state.rules)
    imported = 0
    skipped = 0

    for entry in entries:
        if not isinstance(entry, Mapping) or not isinstance(entry.get("text"), str):
            skipped += 1
            logger.warning(f"Skipping malformed rule entry: {entry!r}")
            continue

        text = normalize_text(entry["text"])
        category_id = _resolve_category(entry, registry)
        if not text or category_id is None:
            skipped += 1
            logger.warning(
                f"Skipping rule '{text}': category "
                f"'{entry.get('category_id') or entry.get('category_name')}' "
                "not found or not a leaf"
            )
            continue

        try:
            created_at = parse_iso_datetime(str(entry["created_at"]))
            updated_at = parse_iso_datetime(str(entry["updated_at"]))
        except (KeyError, ValueError):
            created_at = updated_at = utc_now()

        rules[text] = CategoryRule(
            text=text,
            category_id=category_id,
            created_at=created_at,
            updated_at=updated_at,
        )
        imported += 1

    logger.info(f"Imported {imported} rules, skipped {skipped}")
    return state.with_rules(rules)


def merge_states(
    base: EngineState,
    incoming: EngineState,
    overwrite_rules: bool = True,
    overwrite_locks: bool = False,
) -> EngineState:
    """Combine two engine states.

    Args:
        base: State to merge into.
        incoming: State to merge from.
        overwrite_rules: Incoming rules replace base rules for the same text.
        overwrite_locks: Incoming locks replace base locks for the same fingerprint.

    Returns:
        New merged EngineState. Neither input is modified.
    """
    rules = dict(base.rules)
    for text, rule in incoming.rules.items():
        if overwrite_rules or text not in rules:
            rules[text] = rule

    locks = dict(base.locks)
    for fp, txn_lock in incoming.locks.items():
        if overwrite_locks or fp not in locks:
            locks[fp] = txn_lock

    return EngineState(rules=rules, locks=locks)
