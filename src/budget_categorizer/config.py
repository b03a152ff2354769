"""Configuration loading and validation for the budget categorizer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from budget_categorizer.models.category import Category, CategoryRegistry
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


def default_categories() -> list[Category]:
    """Built-in top-level categories present in every household.

    Returns:
        Income, savings and transfer categories. All are income categories
        and therefore cannot be renamed or deleted.
    """
    return [
        Category(id="income", name="Income", is_income=True, display_order=0),
        Category(id="savings", name="Savings", is_income=True, display_order=1),
        Category(
            id="transfers",
            name="Transfers",
            is_income=True,
            allow_subcategories=False,
            display_order=2,
        ),
    ]


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file (None disables file logging).
    """

    level: str = "INFO"
    file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        log_file = data.get("file")
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(log_file) if log_file else None,
        )


@dataclass
class StorageConfig:
    """Locations the CLI reads and writes state snapshots.

    Attributes:
        state_file: Default snapshot path for rules and locks.
    """

    state_file: Path = field(default_factory=lambda: Path("data/categorizer_state.json"))

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "StorageConfig":
        """Create from dictionary."""
        state_file = data.get("state_file")
        if state_file:
            return cls(state_file=Path(str(state_file)))
        return cls()


@dataclass
class Config:
    """Main configuration container.

    Attributes:
        registry: Category hierarchy.
        logging: Logging configuration.
        storage: Snapshot locations.
    """

    registry: CategoryRegistry = field(
        default_factory=lambda: CategoryRegistry.from_categories(default_categories())
    )
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def load_settings(path: Path) -> tuple[LoggingConfig, StorageConfig]:
    """Load settings from settings.yaml.

    Args:
        path: Path to settings.yaml.

    Returns:
        Tuple of (LoggingConfig, StorageConfig).
    """
    data = load_yaml_file(path)

    logging_config = LoggingConfig()
    if isinstance(data.get("logging"), dict):
        logging_config = LoggingConfig.from_dict(data["logging"])  # type: ignore[arg-type]

    storage = StorageConfig()
    if isinstance(data.get("storage"), dict):
        storage = StorageConfig.from_dict(data["storage"])  # type: ignore[arg-type]

    return logging_config, storage


def build_registry(categories: list[Category]) -> CategoryRegistry:
    """Validate a category list and build a registry from it.

    Args:
        categories: Categories in configuration order.

    Returns:
        CategoryRegistry.

    Raises:
        ConfigError: On duplicate IDs, unknown parents, more than two levels,
            or subcategories under a category that disallows them.
    """
    by_id: dict[str, Category] = {}
    for category in categories:
        if category.id in by_id:
            raise ConfigError(f"Duplicate category id: '{category.id}'")
        by_id[category.id] = category

    for category in categories:
        if category.parent_id is None:
            continue
        parent = by_id.get(category.parent_id)
        if parent is None:
            raise ConfigError(
                f"Category '{category.id}' references unknown parent '{category.parent_id}'"
            )
        if parent.parent_id is not None:
            raise ConfigError(
                f"Category '{category.id}' is nested under subcategory '{parent.id}'; "
                "only two levels are supported"
            )
        if not parent.allow_subcategories:
            raise ConfigError(
                f"Category '{parent.id}' does not allow subcategories "
                f"but '{category.id}' lists it as parent"
            )

    return CategoryRegistry(categories=by_id)


def load_categories(path: Path) -> CategoryRegistry:
    """Load the category hierarchy from categories.yaml.

    Args:
        path: Path to categories.yaml.

    Returns:
        CategoryRegistry built from the file.

    Raises:
        ConfigError: If the file structure is invalid.
    """
    data = load_yaml_file(path)

    categories: list[Category] = []
    cat_list = data.get("categories")
    if cat_list is not None:
        if not isinstance(cat_list, list):
            raise ConfigError(f"'categories' must be a list, got {type(cat_list).__name__}")
        for cat_data in cat_list:
            if not isinstance(cat_data, dict) or "id" not in cat_data:
                raise ConfigError(f"Category entry must be a mapping with an 'id': {cat_data!r}")
            categories.append(Category.from_dict(cat_data))

    return build_registry(categories)


def load_config(
    settings_path: Optional[Path] = None,
    categories_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
) -> Config:
    """Load complete configuration from all config files.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        categories_path: Path to categories.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).

    Returns:
        Complete Config object. Missing files fall back to defaults.
    """
    if config_dir is None:
        config_dir = Path("config")

    if settings_path is None:
        settings_path = config_dir / "settings.yaml"
    if categories_path is None:
        categories_path = config_dir / "categories.yaml"

    config = Config()

    if settings_path.exists():
        config.logging, config.storage = load_settings(settings_path)
        logger.info(f"Loaded settings from {settings_path}")
    else:
        logger.warning(f"Settings file not found: {settings_path}, using defaults")

    if categories_path.exists():
        config.registry = load_categories(categories_path)
        logger.info(f"Loaded {len(config.registry)} categories from {categories_path}")
    else:
        logger.warning(f"Categories file not found: {categories_path}, using built-in categories")

    return config
