"""Batch and jar management for Jar Tracker."""

import logging
import sqlite3
import time
from datetime import date, datetime, timezone
from uuid import uuid4

from .errors import InvalidArgumentError, NotFoundError, TransactionError, ValidationError
from .models import DEFAULT_CATEGORY, Batch, BatchStatus, CreatedBatch, DeleteResult, Jar, UseResult
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)

_BATCH_SELECT = """
    WITH grouped AS (
        SELECT batch_id, item_type_id, MIN(id) AS first_id,
               COUNT(*) AS total_jars,
               SUM(CASE WHEN used = 1 THEN 1 ELSE 0 END) AS used_jars,
               GROUP_CONCAT(id) AS jar_ids
        FROM jars
        GROUP BY item_type_id, batch_id
    )
    SELECT g.batch_id, g.item_type_id, g.total_jars, g.used_jars, g.jar_ids,
           f.fill_date, f.jar_size, f.location, f.recipe_id,
           it.name, it.category, it.notes
    FROM grouped g
    JOIN jars f ON f.id = g.first_id
    JOIN item_types it ON it.id = g.item_type_id
"""


def new_batch_id() -> str:
    """Generate a batch id from the current time and a random suffix."""
    return f"batch_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def normalize_date(value: str | date | datetime, field: str = "fill_date") -> str:
    """Return an ISO-8601 string for a date, datetime or ISO string.

    Raises:
        ValidationError: If a string value is not a valid ISO date
    """
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    text = (value or "").strip()
    try:
        datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value!r} (expected an ISO date)") from e
    return text


def _escape_like(text: str) -> str:
    """Make ``%`` and ``_`` match literally in a LIKE pattern escaped with ``\\``."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def row_to_jar(row: sqlite3.Row) -> Jar:
    """Build a Jar from a ``jars`` row."""
    return Jar(
        id=row["id"],
        item_type_id=row["item_type_id"],
        batch_id=row["batch_id"],
        fill_date=row["fill_date"],
        used=bool(row["used"]),
        used_date=row["used_date"],
        jar_size=row["jar_size"],
        location=row["location"],
        recipe_id=row["recipe_id"],
    )


def row_to_batch(row: sqlite3.Row) -> Batch:
    """Build a Batch view from a grouped batch row."""
    used_jars = row["used_jars"] or 0
    return Batch(
        batch_id=row["batch_id"],
        item_type_id=row["item_type_id"],
        name=row["name"],
        category=row["category"] or DEFAULT_CATEGORY,
        fill_date=row["fill_date"],
        jar_size=row["jar_size"],
        location=row["location"],
        notes=row["notes"],
        recipe_id=row["recipe_id"],
        total_jars=row["total_jars"],
        used_jars=used_jars,
        available_jars=row["total_jars"] - used_jars,
        jar_ids=sorted(int(jar_id) for jar_id in row["jar_ids"].split(",")),
    )


class BatchManager:
    """Manages jars and the batches they are grouped into."""

    def __init__(self, store: SQLiteStore, max_batch_quantity: int = 100):
        self.store = store
        self.max_batch_quantity = max_batch_quantity

    def _check_quantity(self, quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidArgumentError(f"Quantity must be a whole number, got {quantity!r}")
        if not 1 <= quantity <= self.max_batch_quantity:
            raise InvalidArgumentError(
                f"Quantity must be between 1 and {self.max_batch_quantity}, got {quantity}"
            )

    @staticmethod
    def _require_item_type(conn: sqlite3.Connection, item_type_id: int) -> None:
        row = conn.execute("SELECT 1 FROM item_types WHERE id = ?", (item_type_id,)).fetchone()
        if row is None:
            raise NotFoundError("Item type", item_type_id)

    @staticmethod
    def _insert_jars(
        conn: sqlite3.Connection,
        item_type_id: int,
        fill_date: str,
        quantity: int,
        batch_id: str,
        jar_size: str | None,
        location: str | None,
        recipe_id: int | None,
    ) -> list[int]:
        jar_ids = []
        for _ in range(quantity):
            cursor = conn.execute(
                """
                INSERT INTO jars
                    (item_type_id, fill_date, used, jar_size, location, batch_id, recipe_id)
                VALUES (?, ?, 0, ?, ?, ?, ?)
                """,
                (item_type_id, fill_date, jar_size, location, batch_id, recipe_id),
            )
            jar_ids.append(cursor.lastrowid)
        return jar_ids

    def _run_insert(self, operation, description: str):
        try:
            return self.store.run(operation)
        except sqlite3.Error as e:
            logger.error("%s failed and was rolled back: %s", description, e)
            raise TransactionError(f"{description} failed; no jars were saved: {e}") from e

    # --- Creating jars ---

    def create_jar(
        self,
        item_type_id: int,
        fill_date: str | date,
        jar_size: str | None = None,
        location: str | None = None,
        recipe_id: int | None = None,
    ) -> int:
        """Create a single jar in a batch of its own.

        Returns:
            The new jar id
        """
        return self.create_multiple_jars(
            item_type_id, fill_date, 1, jar_size, location, recipe_id
        ).jar_ids[0]

    def create_multiple_jars(
        self,
        item_type_id: int,
        fill_date: str | date,
        quantity: int,
        jar_size: str | None = None,
        location: str | None = None,
        recipe_id: int | None = None,
    ) -> CreatedBatch:
        """Create a new batch of ``quantity`` jars.

        Either every jar is written or none is.

        Args:
            item_type_id: Item type the jars hold
            fill_date: Date the jars were filled
            quantity: Number of jars, 1 to ``max_batch_quantity``
            jar_size: Optional jar size name
            location: Optional storage location
            recipe_id: Optional saved recipe to link

        Returns:
            The new batch id and jar ids

        Raises:
            InvalidArgumentError: If quantity is out of range
            NotFoundError: If the item type does not exist
            TransactionError: If writing failed; nothing was saved
        """
        self._check_quantity(quantity)
        fill_date = normalize_date(fill_date)
        batch_id = new_batch_id()

        def _create(conn: sqlite3.Connection) -> list[int]:
            self._require_item_type(conn, item_type_id)
            if recipe_id is not None:
                conn.execute(
                    "UPDATE recipes SET last_used_date = datetime('now') WHERE id = ?",
                    (recipe_id,),
                )
            return self._insert_jars(
                conn, item_type_id, fill_date, quantity, batch_id, jar_size, location, recipe_id
            )

        jar_ids = self._run_insert(_create, f"Creating batch of {quantity} jars")
        logger.info("Created batch %s with %d jars", batch_id, len(jar_ids))
        return CreatedBatch(batch_id=batch_id, jar_ids=jar_ids)

    def add_multiple_jars_to_batch(
        self,
        batch_id: str,
        item_type_id: int,
        fill_date: str | date | None,
        quantity: int,
        jar_size: str | None = None,
        location: str | None = None,
    ) -> list[int]:
        """Add jars to an existing batch.

        New jars take the batch's fill date, size, location and recipe link
        unless a value is given.

        Raises:
            NotFoundError: If the batch does not exist
            ValidationError: If the item type does not match the batch
            TransactionError: If writing failed; nothing was saved
        """
        self._check_quantity(quantity)
        if fill_date is not None:
            fill_date = normalize_date(fill_date)

        def _extend(conn: sqlite3.Connection) -> list[int]:
            first = conn.execute(
                "SELECT * FROM jars WHERE batch_id = ? ORDER BY id LIMIT 1", (batch_id,)
            ).fetchone()
            if first is None:
                raise NotFoundError("Batch", batch_id)
            if first["item_type_id"] != item_type_id:
                raise ValidationError(
                    f"Batch '{batch_id}' holds item type {first['item_type_id']}, not {item_type_id}"
                )
            return self._insert_jars(
                conn,
                item_type_id,
                fill_date or first["fill_date"],
                quantity,
                batch_id,
                jar_size if jar_size is not None else first["jar_size"],
                location if location is not None else first["location"],
                first["recipe_id"],
            )

        jar_ids = self._run_insert(_extend, f"Adding {quantity} jars to batch {batch_id}")
        logger.info("Added %d jars to batch %s", len(jar_ids), batch_id)
        return jar_ids

    def add_jar_to_batch(
        self,
        batch_id: str,
        item_type_id: int,
        fill_date: str | date | None = None,
        jar_size: str | None = None,
        location: str | None = None,
    ) -> int:
        """Add one jar to an existing batch. Returns the new jar id."""
        return self.add_multiple_jars_to_batch(
            batch_id, item_type_id, fill_date, 1, jar_size, location
        )[0]

    # --- Jar state ---

    def mark_jar_used(self, jar_id: int, used_at: str | datetime | None = None) -> UseResult:
        """Mark a jar as used, stamping the used date.

        Marking a jar that is already used changes nothing and reports
        ``success=False``.
        """
        used_date = normalize_date(used_at, "used_date") if used_at else (
            datetime.now(timezone.utc).isoformat()
        )

        def _mark(conn: sqlite3.Connection) -> UseResult:
            cursor = conn.execute(
                "UPDATE jars SET used = 1, used_date = ? WHERE id = ? AND used = 0",
                (used_date, jar_id),
            )
            row = conn.execute("SELECT * FROM jars WHERE id = ?", (jar_id,)).fetchone()
            if row is None:
                return UseResult(success=False, message="Jar not found")
            if cursor.rowcount == 0:
                return UseResult(
                    success=False,
                    message="This jar has already been marked as used",
                    jar=row_to_jar(row),
                )
            return UseResult(
                success=True, message="Jar marked as used successfully", jar=row_to_jar(row)
            )

        result = self.store.run(_mark)
        logger.debug("mark_jar_used(%s): %s", jar_id, result.message)
        return result

    # --- Deleting ---

    @staticmethod
    def _drop_empty_batch(conn: sqlite3.Connection, batch_id: str) -> bool:
        remaining = conn.execute(
            "SELECT COUNT(*) AS count FROM jars WHERE batch_id = ?", (batch_id,)
        ).fetchone()["count"]
        if remaining:
            return False
        conn.execute("DELETE FROM batch_recipes WHERE batch_id = ?", (batch_id,))
        return True

    def delete_jar_with_batch_check(self, jar_id: int) -> DeleteResult:
        """Delete a jar and report whether its batch went with it."""

        def _delete(conn: sqlite3.Connection) -> DeleteResult:
            row = conn.execute("SELECT batch_id FROM jars WHERE id = ?", (jar_id,)).fetchone()
            if row is None:
                return DeleteResult(success=False)
            conn.execute("DELETE FROM jars WHERE id = ?", (jar_id,))
            batch_deleted = self._drop_empty_batch(conn, row["batch_id"])
            return DeleteResult(success=True, batch_deleted=batch_deleted, batch_id=row["batch_id"])

        result = self.store.run(_delete)
        if result.batch_deleted:
            logger.info("Deleted last jar %d; batch %s removed", jar_id, result.batch_id)
        return result

    def delete_batch(self, batch_id: str) -> int:
        """Delete every jar of a batch along with its recipe override.

        Returns:
            Number of jars deleted

        Raises:
            NotFoundError: If the batch does not exist
        """

        def _delete(conn: sqlite3.Connection) -> int:
            deleted = conn.execute("DELETE FROM jars WHERE batch_id = ?", (batch_id,)).rowcount
            if not deleted:
                raise NotFoundError("Batch", batch_id)
            conn.execute("DELETE FROM batch_recipes WHERE batch_id = ?", (batch_id,))
            return deleted

        deleted = self.store.run(_delete)
        logger.info("Deleted batch %s (%d jars)", batch_id, deleted)
        return deleted

    # --- Queries ---

    def get_all_batches(
        self,
        status: BatchStatus | str | None = None,
        search: str | None = None,
        category: str | None = None,
    ) -> list[Batch]:
        """List batches, newest fill date first.

        Args:
            status: ``available`` keeps batches with an unused jar, ``used``
                keeps batches with a used jar
            search: Case-insensitive substring of the item type name
            category: Category name the item type must be in
        """
        status = BatchStatus(status) if status else BatchStatus.ALL
        conditions = []
        params: list = []
        if status is BatchStatus.AVAILABLE:
            conditions.append("g.total_jars - g.used_jars > 0")
        elif status is BatchStatus.USED:
            conditions.append("g.used_jars > 0")
        if search:
            conditions.append("it.name LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(search.strip())}%")
        if category:
            conditions.append("COALESCE(NULLIF(it.category, ''), ?) = ? COLLATE NOCASE")
            params.extend([DEFAULT_CATEGORY, category])

        sql = _BATCH_SELECT
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY f.fill_date DESC, g.first_id DESC"
        return [row_to_batch(row) for row in self.store.query(sql, tuple(params))]

    def get_batch(self, batch_id: str) -> Batch | None:
        """Get one batch view, or None if the batch has no jars."""
        row = self.store.query_one(_BATCH_SELECT + " WHERE g.batch_id = ?", (batch_id,))
        return row_to_batch(row) if row else None

    def get_jar(self, jar_id: int) -> Jar:
        """Get a jar by id.

        Raises:
            NotFoundError: If the jar does not exist
        """
        jar = self.find_jar(jar_id)
        if jar is None:
            raise NotFoundError("Jar", jar_id)
        return jar

    def find_jar(self, jar_id: int) -> Jar | None:
        """Get a jar by id, or None."""
        row = self.store.query_one("SELECT * FROM jars WHERE id = ?", (jar_id,))
        return row_to_jar(row) if row else None

    def get_jars_for_batch(self, batch_id: str) -> list[Jar]:
        rows = self.store.query("SELECT * FROM jars WHERE batch_id = ? ORDER BY id", (batch_id,))
        return [row_to_jar(row) for row in rows]

    def get_jars_for_item_type(self, item_type_id: int) -> list[Jar]:
        rows = self.store.query(
            "SELECT * FROM jars WHERE item_type_id = ? ORDER BY id", (item_type_id,)
        )
        return [row_to_jar(row) for row in rows]

    def update_batch(
        self,
        batch_id: str,
        fill_date: str | date | None = None,
        jar_size: str | None = None,
        location: str | None = None,
    ) -> int:
        """Update shared attributes on every jar of a batch.

        Returns:
            Number of jars updated

        Raises:
            NotFoundError: If the batch does not exist
        """
        fields = []
        values: list = []
        if fill_date is not None:
            fields.append("fill_date = ?")
            values.append(normalize_date(fill_date))
        if jar_size is not None:
            fields.append("jar_size = ?")
            values.append(jar_size)
        if location is not None:
            fields.append("location = ?")
            values.append(location)

        def _update(conn: sqlite3.Connection) -> int:
            count = conn.execute(
                "SELECT COUNT(*) AS count FROM jars WHERE batch_id = ?", (batch_id,)
            ).fetchone()["count"]
            if not count:
                raise NotFoundError("Batch", batch_id)
            if not fields:
                return 0
            return conn.execute(
                f"UPDATE jars SET {', '.join(fields)} WHERE batch_id = ?", (*values, batch_id)
            ).rowcount

        return self.store.run(_update)
