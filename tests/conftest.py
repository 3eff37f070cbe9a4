"""Shared test fixtures for Jar Tracker."""

import pytest

from jar_tracker.analytics import Analytics
from jar_tracker.backup import BackupManager
from jar_tracker.batch_manager import BatchManager
from jar_tracker.item_types import ItemTypeManager
from jar_tracker.models import ItemType
from jar_tracker.recipe_manager import RecipeManager
from jar_tracker.settings import SettingsManager
from jar_tracker.sqlite_store import SQLiteStore
from jar_tracker.taxonomy import CategoryStore, JarSizeStore


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def store(temp_data_dir):
    """Create a SQLiteStore with a temporary database."""
    sqlite_store = SQLiteStore(db_path=temp_data_dir / "jartracker.db")
    yield sqlite_store
    sqlite_store.close()


@pytest.fixture
def item_types(store):
    return ItemTypeManager(store)


@pytest.fixture
def batches(store):
    return BatchManager(store)


@pytest.fixture
def recipes(store):
    return RecipeManager(store)


@pytest.fixture
def categories(store):
    return CategoryStore(store)


@pytest.fixture
def jar_sizes(store):
    return JarSizeStore(store)


@pytest.fixture
def analytics(store):
    return Analytics(store, low_stock_threshold=2)


@pytest.fixture
def backup_manager(store, temp_data_dir):
    return BackupManager(store, backup_dir=temp_data_dir / "backups", keep=3)


@pytest.fixture
def settings(store):
    return SettingsManager(store)


@pytest.fixture
def jam_id(item_types):
    """Item type id for "Strawberry Jam" in Preserves."""
    return item_types.upsert_item_type(ItemType(name="Strawberry Jam", category="Preserves"))


@pytest.fixture
def pickles_id(item_types):
    """Item type id for "Dill Pickles" in Pickles."""
    return item_types.upsert_item_type(ItemType(name="Dill Pickles", category="Pickles"))
