"""Jar Tracker - Inventory tracking for home-canned jars."""

from .analytics import Analytics
from .backup import BackupManager
from .batch_manager import BatchManager
from .config import ConfigManager
from .errors import (
    DuplicateNameError,
    EntityInUseError,
    InvalidArgumentError,
    JarTrackerError,
    NotFoundError,
    ProtectedEntityError,
    StorageUnavailableError,
    TransactionError,
    ValidationError,
)
from .item_types import ItemTypeManager
from .labels import decode_jar_label, encode_jar_label
from .models import (
    BackupPayload,
    Batch,
    BatchRecipe,
    BatchStatus,
    Category,
    CategoryStats,
    CreatedBatch,
    DateFormat,
    DeleteResult,
    ItemType,
    ItemTypeStats,
    Jar,
    JarSize,
    JarSizeCount,
    JarStats,
    MonthlyStats,
    Recipe,
    RecipeSource,
    StockLevel,
    UseResult,
    YearlyStats,
)
from .output_formatter import OutputFormatter
from .recipe_manager import RecipeManager
from .settings import SettingsManager
from .sqlite_store import SQLiteStore
from .taxonomy import CategoryStore, JarSizeStore

__version__ = "0.1.0"

__all__ = [
    "Analytics",
    "BackupManager",
    "BackupPayload",
    "Batch",
    "BatchManager",
    "BatchRecipe",
    "BatchStatus",
    "Category",
    "CategoryStats",
    "CategoryStore",
    "ConfigManager",
    "CreatedBatch",
    "DateFormat",
    "decode_jar_label",
    "DeleteResult",
    "DuplicateNameError",
    "encode_jar_label",
    "EntityInUseError",
    "InvalidArgumentError",
    "ItemType",
    "ItemTypeManager",
    "ItemTypeStats",
    "Jar",
    "JarSize",
    "JarSizeCount",
    "JarSizeStore",
    "JarStats",
    "JarTrackerError",
    "MonthlyStats",
    "NotFoundError",
    "OutputFormatter",
    "ProtectedEntityError",
    "Recipe",
    "RecipeManager",
    "RecipeSource",
    "SettingsManager",
    "SQLiteStore",
    "StockLevel",
    "StorageUnavailableError",
    "TransactionError",
    "UseResult",
    "ValidationError",
    "YearlyStats",
]
