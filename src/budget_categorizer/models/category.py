"""Category, rule and lock data models."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from budget_categorizer.errors import InvalidCategoryAssignment
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)


def normalize_text(text: str) -> str:
    """Normalize statement text for rule matching (trim, lowercase)."""
    return text.strip().lower()


@dataclass(frozen=True)
class Category:
    """Category definition with two-level hierarchy support.

    Attributes:
        id: Unique identifier for this category.
        name: Human-readable category name.
        parent_id: Parent category ID for subcategories.
        is_income: Income categories cannot be renamed or deleted.
        child_ids: IDs of subcategories (top-level categories only).
        allow_subcategories: Whether a top-level category may own subcategories.
        display_order: Order for displaying in outputs.
    """

    id: str
    name: str
    parent_id: Optional[str] = None
    is_income: bool = False
    child_ids: tuple[str, ...] = ()
    allow_subcategories: bool = True
    display_order: int = 0

    @property
    def is_subcategory(self) -> bool:
        """Check if this is a subcategory."""
        return self.parent_id is not None

    @property
    def is_editable(self) -> bool:
        """Income categories are structurally locked."""
        return not self.is_income

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Category":
        """Create a Category from a dictionary (e.g., from YAML config).

        Args:
            data: Dictionary containing category data.

        Returns:
            A new Category instance.
        """
        children = data.get("children") or ()
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            parent_id=str(data["parent"]) if data.get("parent") else None,
            is_income=bool(data.get("income", False)),
            child_ids=tuple(str(c) for c in children),  # type: ignore[union-attr]
            allow_subcategories=bool(data.get("allow_subcategories", True)),
            display_order=int(data.get("display_order", 0)),  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return f"Category(id={self.id!r}, name={self.name!r}, parent={self.parent_id!r})"


@dataclass(frozen=True)
class CategoryRule:
    """Maps a normalized statement text to a category.

    Attributes:
        text: Normalized (trimmed, lowercased) text this rule matches.
        category_id: Category assigned on match.
        created_at: When the rule was first created.
        updated_at: When the rule last changed.
    """

    text: str
    category_id: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TransactionLock:
    """Manual exception pinning one transaction occurrence to a category.

    Attributes:
        fingerprint: Fingerprint of the locked transaction.
        category_id: Category the transaction is pinned to.
        locked_at: When the lock was placed.
        reason: Optional free-text note.
    """

    fingerprint: str
    category_id: str
    locked_at: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class CategoryRegistry:
    """Read-only snapshot of the category hierarchy.

    The registry is owned by the category-management side; the engine only
    reads it to decide which categories can hold transactions. Child links
    are taken from each parent's ``child_ids`` and from each child's
    ``parent_id``, so either side of the relation is enough.
    """

    categories: dict[str, Category] = field(default_factory=dict)
    _children: dict[str, tuple[str, ...]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        children: dict[str, list[str]] = {}
        for category in self.categories.values():
            for child_id in category.child_ids:
                children.setdefault(category.id, []).append(child_id)
        for category in self.categories.values():
            if category.parent_id is None:
                continue
            if category.parent_id not in self.categories:
                logger.warning(
                    f"Category '{category.id}' references unknown parent '{category.parent_id}'"
                )
            siblings = children.setdefault(category.parent_id, [])
            if category.id not in siblings:
                siblings.append(category.id)
        object.__setattr__(
            self, "_children", {k: tuple(v) for k, v in children.items()}
        )

    @classmethod
    def from_categories(cls, categories: Iterable[Category]) -> "CategoryRegistry":
        """Build a registry from category objects."""
        return cls(categories={c.id: c for c in categories})

    def __contains__(self, category_id: object) -> bool:
        return category_id in self.categories

    def __iter__(self) -> Iterator[Category]:
        return iter(self.categories.values())

    def __len__(self) -> int:
        return len(self.categories)

    def get(self, category_id: str) -> Optional[Category]:
        return self.categories.get(category_id)

    def children_of(self, category_id: str) -> tuple[str, ...]:
        """IDs of the subcategories currently owned by a category."""
        return self._children.get(category_id, ())

    def find_by_name(self, name: str) -> Optional[Category]:
        """Find a category by exact name."""
        for category in self.categories.values():
            if category.name == name:
                return category
        return None

    def assignment_problem(self, category_id: str) -> Optional[str]:
        """Explain why a category cannot hold transactions.

        Args:
            category_id: Category to check.

        Returns:
            A reason string, or None if the category is an assignable leaf.
        """
        category = self.categories.get(category_id)
        if category is None:
            return "category does not exist"
        if self.children_of(category_id):
            return "category has subcategories"
        if category.is_subcategory:
            return None
        if category.allow_subcategories:
            return "top-level category accepts subcategories"
        return None

    def is_leaf(self, category_id: str) -> bool:
        """Check whether transactions may be assigned to a category.

        A subcategory is always a leaf. A top-level category is a leaf only
        when it is configured to disallow subcategories and has none.
        """
        return self.assignment_problem(category_id) is None

    def validate_assignment(self, category_id: str) -> None:
        """Ensure a category can hold transactions.

        Args:
            category_id: Category to check.

        Raises:
            InvalidCategoryAssignment: If the category is not an assignable leaf.
        """
        problem = self.assignment_problem(category_id)
        if problem is not None:
            raise InvalidCategoryAssignment(category_id, problem)

    def leaf_ids(self) -> list[str]:
        """IDs of every assignable category, in display order."""
        ordered = sorted(self.categories.values(), key=lambda c: (c.display_order, c.name))
        return [c.id for c in ordered if self.is_leaf(c.id)]
