"""Serializable snapshots of rule and lock state.

A snapshot is a plain JSON-compatible dict. Rules and locks are written as
ordered ``[key, value]`` pairs with ISO-8601 timestamps. This module does no
file I/O; the persistence side reads and writes the dicts and can call
:func:`validate_snapshot` to reject corrupt input before rebuilding state.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from budget_categorizer.models.category import CategoryRule, TransactionLock, normalize_text
from budget_categorizer.models.state import EngineState
from budget_categorizer.utils.date_utils import datetime_to_iso, parse_iso_datetime, utc_now
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)

# Current snapshot schema version
SNAPSHOT_VERSION = 1

# Versions this module knows how to read
SUPPORTED_VERSIONS = frozenset({SNAPSHOT_VERSION})


class SnapshotError(Exception):
    """Exception raised when a snapshot cannot be turned into state."""

    pass


@dataclass(frozen=True)
class SnapshotParseResult:
    """Tagged result of parsing a snapshot.

    Exactly one of ``state`` and ``error`` is set.
    """

    state: Optional[EngineState] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is not None


@dataclass(frozen=True)
class SnapshotMetadata:
    """Summary of a snapshot without rebuilding its state."""

    version: int
    saved_at: datetime
    rule_count: int
    lock_count: int
    transaction_count: Optional[int] = None


def _rule_to_dict(rule: CategoryRule) -> dict[str, Any]:
    return {
        "text": rule.text,
        "category_id": rule.category_id,
        "created_at": datetime_to_iso(rule.created_at),
        "updated_at": datetime_to_iso(rule.updated_at),
    }


def _lock_to_dict(txn_lock: TransactionLock) -> dict[str, Any]:
    return {
        "fingerprint": txn_lock.fingerprint,
        "category_id": txn_lock.category_id,
        "locked_at": datetime_to_iso(txn_lock.locked_at),
        "reason": txn_lock.reason,
    }


def serialize_state(
    state: EngineState,
    saved_at: Optional[datetime] = None,
    transaction_count: Optional[int] = None,
) -> dict[str, Any]:
    """Convert engine state into a snapshot dict.

    Args:
        state: Rules and locks to serialize.
        saved_at: Save timestamp (defaults to current UTC time).
        transaction_count: Optional count stored in the metadata.

    Returns:
        JSON-compatible snapshot.
    """
    metadata: dict[str, Any] = {"saved_at": datetime_to_iso(saved_at or utc_now())}
    if transaction_count is not None:
        metadata["transaction_count"] = transaction_count

    return {
        "version": SNAPSHOT_VERSION,
        "rules": [[key, _rule_to_dict(rule)] for key, rule in state.rules.items()],
        "locks": [[key, _lock_to_dict(lock)] for key, lock in state.locks.items()],
        "metadata": metadata,
    }


def _require_str(entry: Mapping[str, Any], name: str, where: str) -> str:
    value = entry.get(name)
    if not isinstance(value, str) or not value:
        raise SnapshotError(f"{where}: '{name}' must be a non-empty string")
    return value


def _require_timestamp(entry: Mapping[str, Any], name: str, where: str) -> datetime:
    raw = _require_str(entry, name, where)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise SnapshotError(f"{where}: '{name}' is not an ISO-8601 timestamp: {raw!r}") from None


def _pairs(data: Mapping[str, Any], name: str) -> list[tuple[str, Mapping[str, Any]]]:
    entries = data.get(name)
    if not isinstance(entries, list):
        raise SnapshotError(f"'{name}' must be a list, got {type(entries).__name__}")

    pairs: list[tuple[str, Mapping[str, Any]]] = []
    seen: set[str] = set()
    for i, entry in enumerate(entries):
        where = f"{name}[{i}]"
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise SnapshotError(f"{where}: expected a [key, value] pair")
        key, value = entry
        if not isinstance(key, str) or not key:
            raise SnapshotError(f"{where}: key must be a non-empty string")
        if not isinstance(value, Mapping):
            raise SnapshotError(f"{where}: value must be an object")
        if key in seen:
            raise SnapshotError(f"{where}: duplicate key {key!r}")
        seen.add(key)
        pairs.append((key, value))
    return pairs


def _check_header(data: object) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise SnapshotError(f"Snapshot must be an object, got {type(data).__name__}")

    version = data.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise SnapshotError(f"Snapshot version must be an integer, got {version!r}")
    if version not in SUPPORTED_VERSIONS:
        raise SnapshotError(f"Unsupported snapshot version: {version}")

    metadata = data.get("metadata")
    if not isinstance(metadata, Mapping):
        raise SnapshotError("Snapshot is missing 'metadata'")
    _require_timestamp(metadata, "saved_at", "metadata")
    return data


def deserialize_state(data: object) -> EngineState:
    """Rebuild engine state from a snapshot dict.

    Args:
        data: Snapshot as loaded from JSON.

    Returns:
        EngineState with the snapshot's rules and locks.

    Raises:
        SnapshotError: If the snapshot is malformed or of an unknown version.
    """
    snapshot = _check_header(data)

    rules: dict[str, CategoryRule] = {}
    for key, entry in _pairs(snapshot, "rules"):
        where = f"rule {key!r}"
        text = _require_str(entry, "text", where)
        if text != normalize_text(text):
            raise SnapshotError(f"{where}: text is not normalized")
        if text != key:
            raise SnapshotError(f"{where}: key does not match text {text!r}")
        rules[key] = CategoryRule(
            text=text,
            category_id=_require_str(entry, "category_id", where),
            created_at=_require_timestamp(entry, "created_at", where),
            updated_at=_require_timestamp(entry, "updated_at", where),
        )

    locks: dict[str, TransactionLock] = {}
    for key, entry in _pairs(snapshot, "locks"):
        where = f"lock {key!r}"
        fp = _require_str(entry, "fingerprint", where)
        if fp != key:
            raise SnapshotError(f"{where}: key does not match fingerprint {fp!r}")
        reason = entry.get("reason")
        if reason is not None and not isinstance(reason, str):
            raise SnapshotError(f"{where}: 'reason' must be a string or null")
        locks[key] = TransactionLock(
            fingerprint=fp,
            category_id=_require_str(entry, "category_id", where),
            locked_at=_require_timestamp(entry, "locked_at", where),
            reason=reason,
        )

    return EngineState(rules=rules, locks=locks)


def parse_snapshot(data: object) -> SnapshotParseResult:
    """Parse a snapshot without raising.

    Args:
        data: Snapshot as loaded from JSON.

    Returns:
        SnapshotParseResult carrying either the state or the error message.
    """
    try:
        return SnapshotParseResult(state=deserialize_state(data))
    except SnapshotError as e:
        logger.warning(f"Rejected snapshot: {e}")
        return SnapshotParseResult(error=str(e))


def validate_snapshot(data: object) -> bool:
    """Check whether a snapshot can be turned into state.

    Args:
        data: Snapshot as loaded from JSON.

    Returns:
        True if :func:`deserialize_state` would succeed.
    """
    try:
        deserialize_state(data)
    except SnapshotError:
        return False
    return True


def snapshot_metadata(data: object) -> SnapshotMetadata:
    """Read the header of a snapshot.

    Args:
        data: Snapshot as loaded from JSON.

    Returns:
        SnapshotMetadata with version, save time and entry counts.

    Raises:
        SnapshotError: If the header is invalid.
    """
    snapshot = _check_header(data)
    metadata = snapshot["metadata"]
    count = metadata.get("transaction_count")
    return SnapshotMetadata(
        version=snapshot["version"],
        saved_at=parse_iso_datetime(metadata["saved_at"]),
        rule_count=len(_pairs(snapshot, "rules")),
        lock_count=len(_pairs(snapshot, "locks")),
        transaction_count=count if isinstance(count, int) and not isinstance(count, bool) else None,
    )
