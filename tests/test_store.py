"""Tests for the application-owned CategorizationStore."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from budget_categorizer.errors import InvalidCategoryAssignment, LockedTransactionError
from budget_categorizer.models.category import Category, CategoryRegistry
from budget_categorizer.models.transaction import Transaction
from budget_categorizer.persistence.snapshot import SnapshotError
from budget_categorizer.processing.store import CategorizationStore
from budget_categorizer.processing.workflows import UNCATEGORIZE, BulkMode


def create_transaction(text: str, amount: str, day: int) -> Transaction:
    """Helper to create test transactions."""
    return Transaction(date=date(2024, 2, day), amount=Decimal(amount), text=text)


@pytest.fixture
def store(registry: CategoryRegistry) -> CategorizationStore:
    """Store holding two KIWI purchases and one REMA purchase."""
    store = CategorizationStore(registry)
    store.import_transactions(
        [
            create_transaction("KIWI", "-100", 1),
            create_transaction("KIWI", "-50", 2),
            create_transaction("REMA", "-30", 3),
        ]
    )
    return store


def fp(store: CategorizationStore, index: int) -> str:
    return store.transactions[index].fingerprint


class TestStoreWorkflows:
    """Tests for workflow methods on the store."""

    def test_starts_empty(self, registry: CategoryRegistry) -> None:
        """Test a fresh store."""
        store = CategorizationStore(registry)
        assert store.transactions == ()
        assert store.rules == []
        assert store.locks == []
        assert store.summary().total == 0

    def test_categorize_with_rule(self, store: CategorizationStore, now: datetime) -> None:
        """Test that a rule created through the store categorizes matching texts."""
        store.categorize(fp(store, 0), "groceries", create_rule=True, now=now)

        assert [t.category_id for t in store.transactions] == ["groceries", "groceries", None]
        assert [r.text for r in store.rules] == ["kiwi"]
        assert store.state.stats.rules_applied == 2

    def test_failed_workflow_keeps_state(self, store: CategorizationStore) -> None:
        """Test that a rejected action leaves the store unchanged."""
        before = store.state
        with pytest.raises(InvalidCategoryAssignment):
            store.categorize(fp(store, 0), "food", create_rule=True)
        assert store.state is before

    def test_lock_blocks_categorize_until_unlocked(
        self, store: CategorizationStore, now: datetime
    ) -> None:
        """Test lock and unlock through the store."""
        store.lock(fp(store, 0), "gifts", reason="gift card", now=now)
        assert store.transactions[0].is_locked

        with pytest.raises(LockedTransactionError):
            store.categorize(fp(store, 0), "groceries")

        store.unlock(fp(store, 0))
        store.categorize(fp(store, 0), "groceries", now=now)
        assert store.transactions[0].category_id == "groceries"

    def test_set_and_delete_rule(self, store: CategorizationStore, now: datetime) -> None:
        """Test direct rule management reclassifies immediately."""
        store.set_rule("rema", "groceries", now=now)
        assert store.transactions[2].category_id == "groceries"

        store.delete_rule("REMA")
        assert store.transactions[2].category_id is None

    def test_derive_rule(self, store: CategorizationStore, now: datetime) -> None:
        """Test promoting a locked choice to a rule."""
        store.categorize(fp(store, 0), "restaurants", now=now)
        store.derive_rule(fp(store, 0), now=now)

        assert store.transactions[1].category_id == "restaurants"

    def test_fix_invalid_after_registry_change(
        self, store: CategorizationStore, registry: CategoryRegistry, now: datetime
    ) -> None:
        """Test repairing assignments after the hierarchy changes."""
        store.categorize(fp(store, 2), "transport", create_rule=True, now=now)

        categories = dict(registry.categories)
        categories["transport"] = Category(id="transport", name="Transport")
        categories["fuel"] = Category(id="fuel", name="Fuel", parent_id="transport")
        store.set_registry(CategoryRegistry(categories=categories))

        assert store.fix_invalid_categorizations() == 1
        assert store.transactions[2].category_id is None
        assert store.fix_invalid_categorizations() == 0

    def test_duplicate_import(self, store: CategorizationStore) -> None:
        """Test that re-importing reports duplicates."""
        result = store.import_transactions([create_transaction("KIWI", "-100", 1)])
        assert result.imported_count == 0
        assert result.duplicate_count == 1
        assert len(store.transactions) == 3

    def test_apply_rules_to_all_is_stable(
        self, store: CategorizationStore, now: datetime
    ) -> None:
        """Test that re-running classification changes nothing."""
        store.set_rule("kiwi", "groceries", now=now)
        before = store.state
        store.apply_rules_to_all()
        assert store.state == before


class TestSelection:
    """Tests for selection handling."""

    def test_select_toggle_and_clear(self, store: CategorizationStore) -> None:
        """Test basic selection operations."""
        store.select(fp(store, 2))
        store.toggle_selection(fp(store, 0))
        assert store.selected_fingerprints() == [fp(store, 0), fp(store, 2)]

        store.toggle_selection(fp(store, 0))
        assert store.selected_fingerprints() == [fp(store, 2)]

        store.deselect(fp(store, 2))
        assert store.selected_fingerprints() == []

    def test_select_all(self, store: CategorizationStore) -> None:
        """Test selecting every transaction."""
        store.select_all()
        assert len(store.selected_transactions()) == 3
        store.clear_selection()
        assert store.selected_transactions() == []

    def test_bulk_uses_selection(self, store: CategorizationStore, now: datetime) -> None:
        """Test that bulk_categorize defaults to the current selection."""
        store.select(fp(store, 0))
        store.select(fp(store, 1))

        store.bulk_categorize("gifts", mode=BulkMode.LOCK_AS_EXCEPTION, reason="party", now=now)

        assert [t.is_locked for t in store.transactions] == [True, True, False]
        assert store.selected_fingerprints() == []

        store.bulk_categorize(UNCATEGORIZE, fingerprints=[fp(store, 1)])
        assert [t.is_locked for t in store.transactions] == [True, False, False]


class TestStorePersistence:
    """Tests for snapshot save and load on the store."""

    def test_snapshot_and_reload(
        self, store: CategorizationStore, registry: CategoryRegistry, now: datetime
    ) -> None:
        """Test that a snapshot restores rules and locks into another store."""
        store.set_rule("kiwi", "groceries", now=now)
        store.lock(fp(store, 2), "transport", now=now)
        data = store.snapshot(saved_at=now)

        assert data["metadata"]["transaction_count"] == 3

        other = CategorizationStore(registry)
        other.import_transactions(t.transaction for t in store.transactions)
        other.load_snapshot(data)

        assert other.transactions == store.transactions
        assert other.snapshot(saved_at=now) == data

    def test_invalid_snapshot_keeps_state(self, store: CategorizationStore, now: datetime) -> None:
        """Test that a rejected snapshot does not touch the store."""
        store.set_rule("kiwi", "groceries", now=now)
        before = store.state

        with pytest.raises(SnapshotError, match="Unsupported snapshot version"):
            store.load_snapshot({"version": 2, "rules": [], "locks": [], "metadata": {}})

        assert store.state is before

    def test_reset(self, store: CategorizationStore, now: datetime) -> None:
        """Test that reset clears everything."""
        store.set_rule("kiwi", "groceries", now=now)
        store.select_all()
        store.reset()

        assert store.transactions == ()
        assert store.rules == []
        assert store.selected_fingerprints() == []
