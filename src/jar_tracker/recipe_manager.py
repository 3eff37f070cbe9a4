"""Recipe collection and batch recipe management for Jar Tracker.

A batch's recipe comes from one of two places. A batch can link to a saved
recipe (``jars.recipe_id``, written to every jar of the batch) and can carry
its own batch-local text and image in ``batch_recipes``. The batch-local
override wins whenever it has content; a link to a recipe that has since
been deleted simply resolves to nothing.
"""

import logging
import sqlite3

from .errors import NotFoundError, ValidationError
from .models import BatchRecipe, Recipe, RecipeSource
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


def row_to_recipe(row: sqlite3.Row) -> Recipe:
    """Build a Recipe from a ``recipes`` row."""
    return Recipe(
        id=row["id"],
        name=row["name"],
        content=row["content"] or "",
        image=row["image"],
        created_date=row["created_date"],
        last_used_date=row["last_used_date"],
    )


class RecipeManager:
    """Manages saved recipes and the recipes attached to batches."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    # --- Recipe collection ---

    def create_recipe(self, name: str, content: str = "", image: str | None = None) -> Recipe:
        """Save a new recipe.

        Raises:
            ValidationError: If the name is blank
        """
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Recipe name cannot be empty")

        def _create(conn: sqlite3.Connection) -> Recipe:
            cursor = conn.execute(
                "INSERT INTO recipes (name, content, image, created_date) "
                "VALUES (?, ?, ?, datetime('now'))",
                (cleaned, content or "", image),
            )
            return self._fetch(conn, cursor.lastrowid)

        recipe = self.store.run(_create)
        logger.info("Created recipe %r (id %d)", recipe.name, recipe.id)
        return recipe

    def _fetch(self, conn: sqlite3.Connection, recipe_id: int) -> Recipe:
        row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
        if row is None:
            raise NotFoundError("Recipe", recipe_id)
        return row_to_recipe(row)

    def get_recipe(self, recipe_id: int) -> Recipe | None:
        """Get a recipe by id, or None."""
        row = self.store.query_one("SELECT * FROM recipes WHERE id = ?", (recipe_id,))
        return row_to_recipe(row) if row else None

    def list_recipes(self) -> list[Recipe]:
        """List recipes, most recently used first, then newest."""
        rows = self.store.query(
            "SELECT * FROM recipes ORDER BY last_used_date DESC, created_date DESC, id DESC"
        )
        return [row_to_recipe(row) for row in rows]

    def update_recipe(
        self,
        recipe_id: int,
        name: str | None = None,
        content: str | None = None,
        image: str | None = None,
    ) -> Recipe:
        """Update recipe fields. Fields left as None are unchanged.

        Editing a recipe does not count as using it, so ``last_used_date``
        is left alone.

        Raises:
            NotFoundError: If the recipe does not exist
        """
        fields = []
        values: list = []
        if name is not None:
            if not name.strip():
                raise ValidationError("Recipe name cannot be empty")
            fields.append("name = ?")
            values.append(name.strip())
        if content is not None:
            fields.append("content = ?")
            values.append(content)
        if image is not None:
            fields.append("image = ?")
            values.append(image)

        def _update(conn: sqlite3.Connection) -> Recipe:
            self._fetch(conn, recipe_id)
            if fields:
                conn.execute(
                    f"UPDATE recipes SET {', '.join(fields)} WHERE id = ?", (*values, recipe_id)
                )
            return self._fetch(conn, recipe_id)

        return self.store.run(_update)

    def delete_recipe(self, recipe_id: int) -> bool:
        """Delete a recipe. Jars linked to it keep their (now stale) link.

        Returns:
            True if a recipe was deleted
        """
        deleted = self.store.run(
            lambda conn: conn.execute("DELETE FROM recipes WHERE id = ?", (recipe_id,)).rowcount
        )
        if deleted:
            logger.info("Deleted recipe %d", recipe_id)
        return bool(deleted)

    # --- Batch recipes ---

    @staticmethod
    def _require_batch(conn: sqlite3.Connection, batch_id: str) -> sqlite3.Row:
        row = conn.execute(
            "SELECT recipe_id FROM jars WHERE batch_id = ? ORDER BY id LIMIT 1", (batch_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("Batch", batch_id)
        return row

    def link_recipe_to_batch(self, batch_id: str, recipe_id: int | None) -> int:
        """Link a saved recipe to every jar of a batch, or unlink with None.

        Linking refreshes the recipe's ``last_used_date``.

        Returns:
            Number of jars updated

        Raises:
            NotFoundError: If the batch or the recipe does not exist
        """

        def _link(conn: sqlite3.Connection) -> int:
            self._require_batch(conn, batch_id)
            if recipe_id is not None:
                self._fetch(conn, recipe_id)
                conn.execute(
                    "UPDATE recipes SET last_used_date = datetime('now') WHERE id = ?",
                    (recipe_id,),
                )
            cursor = conn.execute(
                "UPDATE jars SET recipe_id = ? WHERE batch_id = ?", (recipe_id, batch_id)
            )
            return cursor.rowcount

        updated = self.store.run(_link)
        logger.info("Linked recipe %s to batch %s (%d jars)", recipe_id, batch_id, updated)
        return updated

    def set_batch_recipe(
        self, batch_id: str, content: str | None, image: str | None = None
    ) -> None:
        """Store batch-local recipe text and image, replacing any previous override."""

        def _set(conn: sqlite3.Connection) -> None:
            self._require_batch(conn, batch_id)
            conn.execute(
                """
                INSERT INTO batch_recipes (batch_id, recipe, recipe_image) VALUES (?, ?, ?)
                ON CONFLICT(batch_id) DO UPDATE SET
                    recipe = excluded.recipe, recipe_image = excluded.recipe_image
                """,
                (batch_id, content, image),
            )

        self.store.run(_set)

    def clear_batch_recipe(self, batch_id: str) -> bool:
        """Remove a batch's local override. Returns True if one existed."""
        cursor_count = self.store.run(
            lambda conn: conn.execute(
                "DELETE FROM batch_recipes WHERE batch_id = ?", (batch_id,)
            ).rowcount
        )
        return bool(cursor_count)

    def get_batch_recipe(self, batch_id: str) -> BatchRecipe:
        """Resolve the recipe shown for a batch.

        The batch-local override is used when it has text or an image;
        otherwise the linked recipe supplies content. A link to a deleted
        recipe resolves to empty content with ``stale_link`` set.
        """

        def _resolve(conn: sqlite3.Connection) -> BatchRecipe:
            jar = conn.execute(
                "SELECT recipe_id FROM jars WHERE batch_id = ? ORDER BY id LIMIT 1", (batch_id,)
            ).fetchone()
            recipe_id = jar["recipe_id"] if jar else None

            linked = None
            if recipe_id is not None:
                row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
                linked = row_to_recipe(row) if row else None

            override = conn.execute(
                "SELECT recipe, recipe_image FROM batch_recipes WHERE batch_id = ?", (batch_id,)
            ).fetchone()
            if override is not None and (override["recipe"] or override["recipe_image"]):
                return BatchRecipe(
                    batch_id=batch_id,
                    content=override["recipe"] or "",
                    image=override["recipe_image"],
                    source=RecipeSource.OVERRIDE,
                    recipe_id=recipe_id,
                    recipe=linked,
                    stale_link=recipe_id is not None and linked is None,
                )

            if linked is not None:
                return BatchRecipe(
                    batch_id=batch_id,
                    content=linked.content,
                    image=linked.image,
                    source=RecipeSource.RECIPE,
                    recipe_id=recipe_id,
                    recipe=linked,
                )

            return BatchRecipe(
                batch_id=batch_id, recipe_id=recipe_id, stale_link=recipe_id is not None
            )

        return self.store.run(_resolve)

    def promote_batch_recipe(self, batch_id: str, name: str) -> Recipe:
        """Save a batch's local recipe into the collection and link the batch to it.

        The batch-local override is removed once the batch is linked.

        Raises:
            NotFoundError: If the batch does not exist
            ValidationError: If the batch has no local recipe to save
        """

        def _promote(conn: sqlite3.Connection) -> Recipe:
            self._require_batch(conn, batch_id)
            override = conn.execute(
                "SELECT recipe, recipe_image FROM batch_recipes WHERE batch_id = ?", (batch_id,)
            ).fetchone()
            if override is None or not (override["recipe"] or override["recipe_image"]):
                raise ValidationError(f"Batch '{batch_id}' has no batch recipe to save")

            recipe = self.create_recipe(name, override["recipe"] or "", override["recipe_image"])
            self.link_recipe_to_batch(batch_id, recipe.id)
            conn.execute("DELETE FROM batch_recipes WHERE batch_id = ?", (batch_id,))
            return self._fetch(conn, recipe.id)

        return self.store.run(_promote)
