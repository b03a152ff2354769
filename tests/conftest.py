"""Shared fixtures for budget categorizer tests."""

from datetime import datetime, timezone

import pytest

from budget_categorizer.models.category import Category, CategoryRegistry


@pytest.fixture
def now() -> datetime:
    """Fixed timestamp used for rules and locks."""
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def registry() -> CategoryRegistry:
    """Household categories covering every leaf/non-leaf shape.

    - food: top-level with subcategories groceries and restaurants
    - home: top-level with subcategory gifts
    - transport: top-level that disallows subcategories (leaf)
    - misc: top-level that allows subcategories but has none (not a leaf)
    - transfers: income category that disallows subcategories (leaf)
    """
    return CategoryRegistry.from_categories(
        [
            Category(id="food", name="Food", child_ids=("groceries", "restaurants")),
            Category(id="groceries", name="Groceries", parent_id="food"),
            Category(id="restaurants", name="Restaurants", parent_id="food"),
            Category(id="home", name="Home"),
            Category(id="gifts", name="Gifts", parent_id="home"),
            Category(id="transport", name="Transport", allow_subcategories=False),
            Category(id="misc", name="Misc"),
            Category(
                id="transfers", name="Transfers", is_income=True, allow_subcategories=False
            ),
        ]
    )
