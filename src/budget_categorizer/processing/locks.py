"""Lock store: fingerprint to pinned category.

A lock fixes the category of one transaction occurrence regardless of any
rule matching its text. Like the rule store, all operations are
copy-on-write.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Optional

from budget_categorizer.models.category import TransactionLock
from budget_categorizer.utils.date_utils import utc_now
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)

LockMap = Mapping[str, TransactionLock]


def lock(
    locks: LockMap,
    fingerprint: str,
    category_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[str, TransactionLock]:
    """Pin a transaction occurrence to a category (upsert).

    Args:
        locks: Current locks keyed by fingerprint.
        fingerprint: Transaction fingerprint.
        category_id: Category to pin.
        reason: Optional note stored with the lock.
        now: Timestamp to record (defaults to current UTC time).

    Returns:
        New lock mapping.
    """
    new_locks = dict(locks)
    new_locks[fingerprint] = TransactionLock(
        fingerprint=fingerprint,
        category_id=category_id,
        locked_at=now or utc_now(),
        reason=reason,
    )
    logger.debug(f"Locked {fingerprint} -> {category_id}")
    return new_locks


def unlock(locks: LockMap, fingerprint: str) -> dict[str, TransactionLock]:
    """Release the lock on a transaction occurrence, if any."""
    new_locks = dict(locks)
    if new_locks.pop(fingerprint, None) is not None:
        logger.debug(f"Unlocked {fingerprint}")
    return new_locks


def is_locked(locks: LockMap, fingerprint: str) -> bool:
    return fingerprint in locks


def get_lock(locks: LockMap, fingerprint: str) -> Optional[TransactionLock]:
    return locks.get(fingerprint)


def list_locks(locks: LockMap) -> list[TransactionLock]:
    return list(locks.values())
