"""Database schema definitions and migration helpers.

Migrations are additive only: tables are created with ``IF NOT EXISTS`` and
columns introduced after the first release are added when ``PRAGMA
table_info`` shows they are missing. Every step is safe to run repeatedly.
"""

import logging
import sqlite3

from .models import (
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_ICON,
    DEFAULT_JAR_SIZES,
    LEGACY_CATEGORY_IDS,
    LEGACY_JAR_SIZES,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3

_DDL_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS item_types (
        id INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL UNIQUE COLLATE NOCASE,
        category TEXT,
        recipe TEXT,
        notes TEXT,
        recipe_image TEXT,
        low_stock_threshold INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS recipes (
        id INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL,
        content TEXT NOT NULL DEFAULT '',
        image TEXT,
        created_date TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        last_used_date TEXT
    )
    """,
    # recipe_id is a weak reference: no foreign key, stale ids are tolerated.
    """
    CREATE TABLE IF NOT EXISTS jars (
        id INTEGER PRIMARY KEY NOT NULL,
        item_type_id INTEGER NOT NULL REFERENCES item_types(id) ON DELETE CASCADE,
        fill_date TEXT NOT NULL,
        used INTEGER NOT NULL DEFAULT 0,
        jar_size TEXT,
        location TEXT,
        batch_id TEXT,
        recipe_id INTEGER,
        used_date TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS batch_recipes (
        batch_id TEXT PRIMARY KEY NOT NULL,
        recipe TEXT,
        recipe_image TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL UNIQUE COLLATE NOCASE,
        icon TEXT NOT NULL,
        is_default INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jar_sizes (
        id INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL UNIQUE COLLATE NOCASE,
        is_default INTEGER NOT NULL DEFAULT 0,
        hidden INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS app_settings (
        key TEXT PRIMARY KEY NOT NULL,
        value TEXT NOT NULL
    )
    """,
)

# Columns added after the first schema version: (table, column, declaration).
ADDITIVE_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("item_types", "category", "TEXT"),
    ("item_types", "recipe_image", "TEXT"),
    ("item_types", "low_stock_threshold", "INTEGER"),
    ("jars", "jar_size", "TEXT"),
    ("jars", "location", "TEXT"),
    ("jars", "batch_id", "TEXT"),
    ("jars", "recipe_id", "INTEGER"),
    ("jars", "used_date", "TEXT"),
    ("jar_sizes", "hidden", "INTEGER NOT NULL DEFAULT 0"),
)

_INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_jars_item_type_id ON jars(item_type_id)",
    "CREATE INDEX IF NOT EXISTS idx_jars_batch_id ON jars(batch_id)",
)


def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Return the column names of a table."""
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def add_missing_columns(conn: sqlite3.Connection) -> list[str]:
    """Add any additive column the table does not have yet.

    Returns:
        "table.column" names that were added
    """
    added = []
    columns_by_table: dict[str, set[str]] = {}
    for table, column, declaration in ADDITIVE_COLUMNS:
        if table not in columns_by_table:
            columns_by_table[table] = table_columns(conn, table)
        if column in columns_by_table[table]:
            continue
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {declaration}")
        columns_by_table[table].add(column)
        added.append(f"{table}.{column}")
        logger.info("Added column %s.%s", table, column)
    return added


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the recorded schema version (0 for a fresh database)."""
    row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
    return row["version"] or 0


def seed_default_categories(conn: sqlite3.Connection) -> int:
    """Insert each built-in category that is missing. Returns rows inserted."""
    inserted = 0
    for name, icon in DEFAULT_CATEGORIES:
        cursor = conn.execute(
            "INSERT OR IGNORE INTO categories (name, icon, is_default) VALUES (?, ?, 1)",
            (name, icon),
        )
        inserted += cursor.rowcount
    if inserted:
        logger.info("Seeded %d default categories", inserted)
    return inserted


def seed_default_jar_sizes(conn: sqlite3.Connection) -> int:
    """Insert each built-in jar size that is missing. Returns rows inserted."""
    inserted = 0
    for name in DEFAULT_JAR_SIZES:
        cursor = conn.execute(
            "INSERT OR IGNORE INTO jar_sizes (name, is_default, hidden) VALUES (?, 1, 0)",
            (name,),
        )
        inserted += cursor.rowcount
    if inserted:
        logger.info("Seeded %d default jar sizes", inserted)
    return inserted


def normalize_legacy_values(conn: sqlite3.Connection) -> None:
    """Bring rows written by older releases in line with the current model."""
    for legacy_id, name in LEGACY_CATEGORY_IDS.items():
        cursor = conn.execute(
            "UPDATE item_types SET category = ? WHERE category = ?", (name, legacy_id)
        )
        if cursor.rowcount:
            logger.info("Migrated category %r to %r", legacy_id, name)

    for legacy_name, name in LEGACY_JAR_SIZES.items():
        cursor = conn.execute(
            "UPDATE jars SET jar_size = ? WHERE jar_size = ?", (name, legacy_name)
        )
        if cursor.rowcount:
            logger.info("Migrated jar size %r to %r", legacy_name, name)

    conn.execute(
        """
        INSERT OR IGNORE INTO categories (name, icon, is_default)
        SELECT DISTINCT category, ?, 0 FROM item_types
        WHERE category IS NOT NULL AND category != ''
        """,
        (DEFAULT_CATEGORY_ICON,),
    )
    conn.execute(
        """
        INSERT OR IGNORE INTO jar_sizes (name, is_default, hidden)
        SELECT DISTINCT jar_size, 0, 0 FROM jars
        WHERE jar_size IS NOT NULL AND jar_size != ''
        """
    )

    # Jars from before batches existed each become their own batch.
    cursor = conn.execute(
        "UPDATE jars SET batch_id = 'batch_legacy_' || id WHERE batch_id IS NULL OR batch_id = ''"
    )
    if cursor.rowcount:
        logger.info("Assigned singleton batches to %d legacy jars", cursor.rowcount)

    conn.execute("UPDATE jars SET used_date = fill_date WHERE used = 1 AND used_date IS NULL")
    conn.execute("UPDATE jars SET used_date = NULL WHERE used = 0 AND used_date IS NOT NULL")


def copy_item_type_recipes(conn: sqlite3.Connection) -> int:
    """Copy item types' embedded recipes to batches that have no recipe yet.

    Returns:
        Number of batch recipe rows created
    """
    cursor = conn.execute(
        """
        INSERT OR IGNORE INTO batch_recipes (batch_id, recipe, recipe_image)
        SELECT j.batch_id, it.recipe, it.recipe_image
        FROM jars j
        JOIN item_types it ON it.id = j.item_type_id
        WHERE it.recipe IS NOT NULL AND it.recipe != ''
          AND j.batch_id NOT IN (SELECT batch_id FROM batch_recipes)
        GROUP BY j.batch_id
        HAVING MAX(j.recipe_id) IS NULL
        """
    )
    if cursor.rowcount:
        logger.info("Copied item type recipes to %d batches", cursor.rowcount)
    return cursor.rowcount


def initialize_schema(conn: sqlite3.Connection) -> int:
    """Create or upgrade the schema and seed the default taxonomy.

    Returns:
        The schema version found before the upgrade
    """
    for statement in _DDL_STATEMENTS:
        conn.execute(statement)

    previous_version = get_schema_version(conn)
    add_missing_columns(conn)
    for statement in _INDEX_STATEMENTS:
        conn.execute(statement)

    seed_default_categories(conn)
    seed_default_jar_sizes(conn)
    normalize_legacy_values(conn)

    if previous_version < SCHEMA_VERSION:
        copy_item_type_recipes(conn)
        conn.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.info("Schema upgraded from version %d to %d", previous_version, SCHEMA_VERSION)

    return previous_version
