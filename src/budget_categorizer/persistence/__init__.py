"""Snapshot codec and rule exchange for the persistence side."""

from budget_categorizer.persistence.snapshot import (
    SNAPSHOT_VERSION,
    SnapshotError,
    SnapshotMetadata,
    SnapshotParseResult,
    deserialize_state,
    parse_snapshot,
    serialize_state,
    snapshot_metadata,
    validate_snapshot,
)
from budget_categorizer.persistence.exchange import (
    export_rules,
    import_rules,
    merge_states,
)

__all__ = [
    "SNAPSHOT_VERSION",
    "SnapshotError",
    "SnapshotMetadata",
    "SnapshotParseResult",
    "serialize_state",
    "deserialize_state",
    "parse_snapshot",
    "validate_snapshot",
    "snapshot_metadata",
    "export_rules",
    "import_rules",
    "merge_states",
]
