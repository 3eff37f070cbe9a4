"""Category and jar size taxonomy management.

Both taxonomies hold built-in defaults (seeded at startup, never renamed or
deleted) plus user-added custom entries. Names are unique ignoring case.
Deleting an entry that is still referenced is refused unless the caller names
a replacement entry to reassign the references to.
"""

import logging
import sqlite3

from .errors import (
    DuplicateNameError,
    EntityInUseError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
)
from .models import DEFAULT_CATEGORY_ICON, Category, JarSize
from .schema import seed_default_categories, seed_default_jar_sizes
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


class TaxonomyStore:
    """Shared behaviour for the category and jar size stores."""

    entity = "Entry"
    table = ""
    model: type[Category] | type[JarSize]
    # Column holding the entry name on the referencing table.
    referrer_table = ""
    referrer_column = ""
    referrer_label = "rows"

    def __init__(self, store: SQLiteStore):
        self.store = store

    def _to_model(self, row: sqlite3.Row):
        return self.model(**dict(row))

    def _fetch(self, conn: sqlite3.Connection, entry_id: int) -> sqlite3.Row:
        row = conn.execute(f"SELECT * FROM {self.table} WHERE id = ?", (entry_id,)).fetchone()
        if row is None:
            raise NotFoundError(self.entity, entry_id)
        return row

    def _clean_name(
        self, conn: sqlite3.Connection, name: str, exclude_id: int | None = None
    ) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError(f"{self.entity} name cannot be empty")

        existing = conn.execute(
            f"SELECT id FROM {self.table} WHERE name = ? COLLATE NOCASE", (cleaned,)
        ).fetchone()
        if existing is not None and existing["id"] != exclude_id:
            raise DuplicateNameError(self.entity, cleaned)
        return cleaned

    def _usage_count(self, conn: sqlite3.Connection, name: str) -> int:
        row = conn.execute(
            f"SELECT COUNT(*) AS count FROM {self.referrer_table} "
            f"WHERE {self.referrer_column} = ? COLLATE NOCASE",
            (name,),
        ).fetchone()
        return row["count"]

    def _rename_references(self, conn: sqlite3.Connection, old: str, new: str) -> int:
        cursor = conn.execute(
            f"UPDATE {self.referrer_table} SET {self.referrer_column} = ? "
            f"WHERE {self.referrer_column} = ? COLLATE NOCASE",
            (new, old),
        )
        return cursor.rowcount

    def get(self, entry_id: int):
        """Get an entry by id.

        Raises:
            NotFoundError: If no entry has this id
        """
        return self.store.run(lambda conn: self._to_model(self._fetch(conn, entry_id)))

    def find_by_name(self, name: str):
        """Find an entry by name, ignoring case. Returns None if missing."""
        row = self.store.query_one(
            f"SELECT * FROM {self.table} WHERE name = ? COLLATE NOCASE", (name.strip(),)
        )
        return self._to_model(row) if row else None

    def usage_count(self, entry_id: int) -> int:
        """Number of rows referencing the entry."""

        def _count(conn: sqlite3.Connection) -> int:
            return self._usage_count(conn, self._fetch(conn, entry_id)["name"])

        return self.store.run(_count)

    def delete(self, entry_id: int, reassign_to: str | None = None) -> int:
        """Delete a custom entry.

        Args:
            entry_id: Entry to delete
            reassign_to: Name of another entry that takes over any references

        Returns:
            Number of references that were reassigned

        Raises:
            NotFoundError: If the entry (or the replacement) does not exist
            ProtectedEntityError: If the entry is a built-in default
            EntityInUseError: If referenced and no replacement was given
        """

        def _delete(conn: sqlite3.Connection) -> int:
            row = self._fetch(conn, entry_id)
            if row["is_default"]:
                raise ProtectedEntityError(self.entity, row["name"])

            in_use = self._usage_count(conn, row["name"])
            moved = 0
            if in_use:
                if reassign_to is None:
                    raise EntityInUseError(self.entity, row["name"], in_use, self.referrer_label)
                target = conn.execute(
                    f"SELECT * FROM {self.table} WHERE name = ? COLLATE NOCASE",
                    (reassign_to.strip(),),
                ).fetchone()
                if target is None:
                    raise NotFoundError(self.entity, reassign_to)
                if target["id"] == entry_id:
                    raise ValidationError(f"Cannot reassign {self.entity.lower()} to itself")
                moved = self._rename_references(conn, row["name"], target["name"])

            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (entry_id,))
            logger.info("Deleted %s %r (reassigned %d)", self.entity.lower(), row["name"], moved)
            return moved

        return self.store.run(_delete)


class CategoryStore(TaxonomyStore):
    """Manages categories."""

    entity = "Category"
    table = "categories"
    model = Category
    referrer_table = "item_types"
    referrer_column = "category"
    referrer_label = "item(s)"

    def list(self, include_hidden: bool = False) -> list[Category]:
        """List categories, defaults first then by name.

        Categories cannot be hidden; ``include_hidden`` is accepted so both
        taxonomies share one call shape.
        """
        rows = self.store.query(
            "SELECT * FROM categories ORDER BY is_default DESC, name COLLATE NOCASE"
        )
        return [Category(**dict(row)) for row in rows]

    def add(self, name: str, icon: str = DEFAULT_CATEGORY_ICON) -> Category:
        """Add a custom category.

        Raises:
            DuplicateNameError: If a category with this name exists
        """

        def _add(conn: sqlite3.Connection) -> Category:
            cleaned = self._clean_name(conn, name)
            cursor = conn.execute(
                "INSERT INTO categories (name, icon, is_default) VALUES (?, ?, 0)",
                (cleaned, icon or DEFAULT_CATEGORY_ICON),
            )
            return Category(id=cursor.lastrowid, name=cleaned, icon=icon or DEFAULT_CATEGORY_ICON)

        category = self.store.run(_add)
        logger.info("Added category %r", category.name)
        return category

    def update(self, category_id: int, name: str | None = None, icon: str | None = None) -> Category:
        """Rename a custom category and/or change its icon.

        Item types using the old name follow the rename.

        Raises:
            ProtectedEntityError: If the category is a built-in default
            DuplicateNameError: If the new name is taken
        """

        def _update(conn: sqlite3.Connection) -> Category:
            row = self._fetch(conn, category_id)
            if row["is_default"]:
                raise ProtectedEntityError(self.entity, row["name"])

            new_name = row["name"] if name is None else self._clean_name(conn, name, category_id)
            new_icon = icon or row["icon"]
            conn.execute(
                "UPDATE categories SET name = ?, icon = ? WHERE id = ?",
                (new_name, new_icon, category_id),
            )
            if new_name != row["name"]:
                self._rename_references(conn, row["name"], new_name)
            return Category(id=category_id, name=new_name, icon=new_icon, is_default=False)

        return self.store.run(_update)

    def seed_defaults(self) -> int:
        """Insert missing built-in categories. Safe to call repeatedly."""
        return self.store.run(seed_default_categories)


class JarSizeStore(TaxonomyStore):
    """Manages jar sizes."""

    entity = "Jar size"
    table = "jar_sizes"
    model = JarSize
    referrer_table = "jars"
    referrer_column = "jar_size"
    referrer_label = "jar(s)"

    def list(self, include_hidden: bool = False) -> list[JarSize]:
        """List jar sizes.

        Args:
            include_hidden: False for selection pickers (visible only, defaults
                first); True for management (visible first, then defaults)
        """
        if include_hidden:
            sql = "SELECT * FROM jar_sizes ORDER BY hidden ASC, is_default DESC, name COLLATE NOCASE"
        else:
            sql = "SELECT * FROM jar_sizes WHERE hidden = 0 ORDER BY is_default DESC, name COLLATE NOCASE"
        return [JarSize(**dict(row)) for row in self.store.query(sql)]

    def add(self, name: str) -> JarSize:
        """Add a custom jar size.

        Raises:
            DuplicateNameError: If a jar size with this name exists
        """

        def _add(conn: sqlite3.Connection) -> JarSize:
            cleaned = self._clean_name(conn, name)
            cursor = conn.execute(
                "INSERT INTO jar_sizes (name, is_default, hidden) VALUES (?, 0, 0)", (cleaned,)
            )
            return JarSize(id=cursor.lastrowid, name=cleaned)

        jar_size = self.store.run(_add)
        logger.info("Added jar size %r", jar_size.name)
        return jar_size

    def update(self, jar_size_id: int, name: str | None = None) -> JarSize:
        """Rename a custom jar size; jars using the old name follow the rename.

        Raises:
            ProtectedEntityError: If the jar size is a built-in default
            DuplicateNameError: If the new name is taken
        """

        def _update(conn: sqlite3.Connection) -> JarSize:
            row = self._fetch(conn, jar_size_id)
            if row["is_default"]:
                raise ProtectedEntityError(self.entity, row["name"])
            if name is None:
                return JarSize(**dict(row))

            new_name = self._clean_name(conn, name, jar_size_id)
            conn.execute("UPDATE jar_sizes SET name = ? WHERE id = ?", (new_name, jar_size_id))
            if new_name != row["name"]:
                self._rename_references(conn, row["name"], new_name)
            return JarSize(id=jar_size_id, name=new_name, hidden=bool(row["hidden"]))

        return self.store.run(_update)

    def toggle_hidden(self, jar_size_id: int) -> JarSize:
        """Flip a jar size between hidden and visible. Defaults may be hidden."""

        def _toggle(conn: sqlite3.Connection) -> JarSize:
            self._fetch(conn, jar_size_id)
            conn.execute(
                "UPDATE jar_sizes SET hidden = CASE WHEN hidden = 0 THEN 1 ELSE 0 END WHERE id = ?",
                (jar_size_id,),
            )
            return JarSize(**dict(self._fetch(conn, jar_size_id)))

        return self.store.run(_toggle)

    def seed_defaults(self) -> int:
        """Insert missing built-in jar sizes. Safe to call repeatedly."""
        return self.store.run(seed_default_jar_sizes)
