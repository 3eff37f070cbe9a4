"""Item type management for Jar Tracker."""

import logging
import sqlite3

from .errors import DuplicateNameError, NotFoundError, ValidationError
from .models import DEFAULT_CATEGORY, ItemType
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


def row_to_item_type(row: sqlite3.Row) -> ItemType:
    """Build an ItemType from an ``item_types`` row."""
    return ItemType(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        recipe=row["recipe"],
        recipe_image=row["recipe_image"],
        notes=row["notes"],
        low_stock_threshold=row["low_stock_threshold"],
    )


class ItemTypeManager:
    """Manages named product types and their jars."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def _check_name(
        self, conn: sqlite3.Connection, name: str, exclude_id: int | None = None
    ) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Item type name cannot be empty")
        row = conn.execute(
            "SELECT id FROM item_types WHERE name = ? COLLATE NOCASE", (cleaned,)
        ).fetchone()
        if row is not None and row["id"] != exclude_id:
            raise DuplicateNameError("Item type", cleaned)
        return cleaned

    def upsert_item_type(self, item_type: ItemType) -> int:
        """Insert a new item type or update an existing one in place.

        Args:
            item_type: Item type to save; ``id`` selects update vs insert

        Returns:
            The item type id

        Raises:
            NotFoundError: If ``id`` is set but no such item type exists
            DuplicateNameError: If another item type has the same name
        """

        def _upsert(conn: sqlite3.Connection) -> int:
            name = self._check_name(conn, item_type.name, item_type.id)
            values = (
                name,
                item_type.category,
                item_type.recipe,
                item_type.notes,
                item_type.recipe_image,
                item_type.low_stock_threshold,
            )
            if item_type.id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO item_types
                        (name, category, recipe, notes, recipe_image, low_stock_threshold)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
                logger.info("Created item type %r", name)
                return cursor.lastrowid

            cursor = conn.execute(
                """
                UPDATE item_types
                SET name = ?, category = ?, recipe = ?, notes = ?, recipe_image = ?,
                    low_stock_threshold = ?
                WHERE id = ?
                """,
                (*values, item_type.id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Item type", item_type.id)
            return item_type.id

        return self.store.run(_upsert)

    def get_item_type(self, item_type_id: int) -> ItemType | None:
        """Get an item type by id, or None."""
        row = self.store.query_one("SELECT * FROM item_types WHERE id = ?", (item_type_id,))
        return row_to_item_type(row) if row else None

    def find_item_type_by_name(self, name: str) -> ItemType | None:
        """Find an item type by name, ignoring case."""
        row = self.store.query_one(
            "SELECT * FROM item_types WHERE name = ? COLLATE NOCASE", (name.strip(),)
        )
        return row_to_item_type(row) if row else None

    def list_item_types(self, category: str | None = None) -> list[ItemType]:
        """List item types ordered by name, optionally within one category."""
        if category:
            rows = self.store.query(
                """
                SELECT * FROM item_types
                WHERE COALESCE(NULLIF(category, ''), ?) = ? COLLATE NOCASE
                ORDER BY name COLLATE NOCASE
                """,
                (DEFAULT_CATEGORY, category),
            )
        else:
            rows = self.store.query("SELECT * FROM item_types ORDER BY name COLLATE NOCASE")
        return [row_to_item_type(row) for row in rows]

    def get_or_create_item_type(self, name: str, category: str | None = None) -> ItemType:
        """Return the item type with this name, creating it if needed.

        An existing item type keeps its category.
        """

        def _get_or_create(conn: sqlite3.Connection) -> ItemType:
            row = conn.execute(
                "SELECT * FROM item_types WHERE name = ? COLLATE NOCASE", (name.strip(),)
            ).fetchone()
            if row is not None:
                return row_to_item_type(row)
            new_id = self.upsert_item_type(ItemType(name=name, category=category or DEFAULT_CATEGORY))
            return row_to_item_type(
                conn.execute("SELECT * FROM item_types WHERE id = ?", (new_id,)).fetchone()
            )

        return self.store.run(_get_or_create)

    def delete_item_type(self, item_type_id: int) -> int:
        """Delete an item type and, by cascade, every jar of it.

        Returns:
            Number of jars removed

        Raises:
            NotFoundError: If the item type does not exist
        """

        def _delete(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                "SELECT name FROM item_types WHERE id = ?", (item_type_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError("Item type", item_type_id)

            batch_ids = [
                r["batch_id"]
                for r in conn.execute(
                    "SELECT DISTINCT batch_id FROM jars WHERE item_type_id = ?", (item_type_id,)
                )
            ]
            jar_count = conn.execute(
                "SELECT COUNT(*) AS count FROM jars WHERE item_type_id = ?", (item_type_id,)
            ).fetchone()["count"]

            conn.execute("DELETE FROM item_types WHERE id = ?", (item_type_id,))
            # Batches left without jars take their recipe overrides with them.
            for batch_id in batch_ids:
                remaining = conn.execute(
                    "SELECT 1 FROM jars WHERE batch_id = ? LIMIT 1", (batch_id,)
                ).fetchone()
                if remaining is None:
                    conn.execute("DELETE FROM batch_recipes WHERE batch_id = ?", (batch_id,))

            logger.info("Deleted item type %r and %d jars", row["name"], jar_count)
            return jar_count

        return self.store.run(_delete)
