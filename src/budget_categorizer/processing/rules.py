"""Rule store: normalized statement text to category.

Every function returns a new mapping and leaves its input untouched, so a
reader holding an earlier mapping never sees a half-applied change.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Optional

from budget_categorizer.errors import EmptyRuleTextError
from budget_categorizer.models.category import CategoryRule, normalize_text
from budget_categorizer.utils.date_utils import utc_now
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)

RuleMap = Mapping[str, CategoryRule]


def set_rule(
    rules: RuleMap,
    text: str,
    category_id: str,
    now: Optional[datetime] = None,
) -> dict[str, CategoryRule]:
    """Create or update the rule for a text.

    Args:
        rules: Current rules keyed by normalized text.
        text: Statement text; normalized before use.
        category_id: Category to assign.
        now: Timestamp to record (defaults to current UTC time).

    Returns:
        New rule mapping. An existing rule keeps its ``created_at``.

    Raises:
        EmptyRuleTextError: If the text is blank after normalization.
    """
    key = normalize_text(text)
    if not key:
        raise EmptyRuleTextError(text)

    timestamp = now or utc_now()
    new_rules = dict(rules)
    existing = new_rules.get(key)

    if existing is not None:
        new_rules[key] = CategoryRule(
            text=key,
            category_id=category_id,
            created_at=existing.created_at,
            updated_at=timestamp,
        )
        logger.debug(f"Updated rule '{key}': {existing.category_id} -> {category_id}")
    else:
        new_rules[key] = CategoryRule(
            text=key,
            category_id=category_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        logger.debug(f"Created rule '{key}' -> {category_id}")

    return new_rules


def delete_rule(rules: RuleMap, text: str) -> dict[str, CategoryRule]:
    """Remove the rule for a text, if any.

    Args:
        rules: Current rules keyed by normalized text.
        text: Statement text; normalized before lookup.

    Returns:
        New rule mapping without that rule.
    """
    key = normalize_text(text)
    new_rules = dict(rules)
    if new_rules.pop(key, None) is not None:
        logger.debug(f"Deleted rule '{key}'")
    return new_rules


def get_rule(rules: RuleMap, text: str) -> Optional[CategoryRule]:
    """Look up the rule matching a text."""
    return rules.get(normalize_text(text))


def list_rules(rules: RuleMap) -> list[CategoryRule]:
    """All rules, in insertion order."""
    return list(rules.values())
