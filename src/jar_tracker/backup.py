"""JSON export, import and timestamped backups for Jar Tracker.

Import replaces the whole database. The payload is validated before anything
is touched, and the delete-and-reinsert runs as one transaction: if any row
fails, the previous contents are left exactly as they were.
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .batch_manager import normalize_date
from .errors import TransactionError, ValidationError
from .models import (
    BackupPayload,
    BatchRecipeOverride,
    Category,
    ItemType,
    Jar,
    JarSize,
    Recipe,
)
from .schema import (
    copy_item_type_recipes,
    normalize_legacy_values,
    seed_default_categories,
    seed_default_jar_sizes,
)
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "jartracker-backup"

_CLEAR_STATEMENTS = (
    "DELETE FROM batch_recipes",
    "DELETE FROM jars",
    "DELETE FROM item_types",
    "DELETE FROM recipes",
    "DELETE FROM categories",
    "DELETE FROM jar_sizes",
)


class BackupManager:
    """Exports and restores the complete jar database."""

    def __init__(
        self,
        store: SQLiteStore,
        backup_dir: Path | None = None,
        keep: int = 10,
    ):
        self.store = store
        self.backup_dir = Path(backup_dir) if backup_dir else store.db_path.parent / "backups"
        self.keep = keep

    # --- Export ---

    def export_data(self) -> BackupPayload:
        """Snapshot every table as a BackupPayload, ids included."""

        def _export(conn: sqlite3.Connection) -> BackupPayload:
            def rows(sql: str) -> list[dict]:
                return [dict(row) for row in conn.execute(sql).fetchall()]

            jars = []
            for row in rows("SELECT * FROM jars ORDER BY id"):
                row["used"] = bool(row["used"])
                jars.append(Jar(**row))

            return BackupPayload(
                item_types=[ItemType(**r) for r in rows("SELECT * FROM item_types ORDER BY id")],
                jars=jars,
                categories=[Category(**r) for r in rows("SELECT * FROM categories ORDER BY id")],
                jar_sizes=[JarSize(**r) for r in rows("SELECT * FROM jar_sizes ORDER BY id")],
                recipes=[Recipe(**r) for r in rows("SELECT * FROM recipes ORDER BY id")],
                batch_recipes=[
                    BatchRecipeOverride(**r)
                    for r in rows("SELECT * FROM batch_recipes ORDER BY batch_id")
                ],
            )

        return self.store.run(_export)

    def export_json(self, indent: int | None = 2) -> str:
        """Export the database as a backup JSON document."""
        return self.export_data().model_dump_json(by_alias=True, indent=indent)

    # --- Import ---

    @staticmethod
    def parse(text: str | bytes) -> BackupPayload:
        """Parse and validate a backup document without touching the database.

        Raises:
            ValidationError: If the document is malformed or inconsistent
        """
        try:
            payload = BackupPayload.model_validate_json(text)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid backup file: {e}") from e

        item_type_ids = {it.id for it in payload.item_types if it.id is not None}
        orphans = sorted({j.item_type_id for j in payload.jars} - item_type_ids)
        if orphans:
            raise ValidationError(
                f"Invalid backup file: jars reference unknown item types {orphans}"
            )

        for jar in payload.jars:
            try:
                jar.fill_date = normalize_date(jar.fill_date, "fillDateISO")
                if jar.used and jar.used_date is not None:
                    jar.used_date = normalize_date(jar.used_date, "usedDateISO")
            except ValidationError as e:
                raise ValidationError(f"Invalid backup file: jar {jar.id}: {e}") from e
        return payload

    def read_file(self, path: Path) -> BackupPayload:
        """Load and validate a backup file without touching the database.

        Raises:
            ValidationError: If the file does not exist or is not a valid backup
        """
        path = Path(path)
        if not path.exists():
            raise ValidationError(f"Backup file not found: {path}")
        return self.parse(path.read_text(encoding="utf-8"))

    def import_json(self, text: str | bytes) -> dict[str, int]:
        """Replace the database with the contents of a backup document."""
        return self.import_data(self.parse(text))

    def import_data(self, payload: BackupPayload) -> dict[str, int]:
        """Replace the database with ``payload`` in a single transaction.

        Categories and jar sizes missing from the payload are seeded with the
        defaults. Legacy category ids and jar size labels are normalized.

        Returns:
            Row counts inserted per table

        Raises:
            TransactionError: If any write failed; the database is unchanged
        """

        def _import(conn: sqlite3.Connection) -> dict[str, int]:
            for statement in _CLEAR_STATEMENTS:
                conn.execute(statement)

            counts = {}
            if payload.categories is None:
                counts["categories"] = seed_default_categories(conn)
            else:
                conn.executemany(
                    "INSERT INTO categories (id, name, icon, is_default) VALUES (?, ?, ?, ?)",
                    [(c.id, c.name, c.icon, int(c.is_default)) for c in payload.categories],
                )
                counts["categories"] = len(payload.categories)

            if payload.jar_sizes is None:
                counts["jar_sizes"] = seed_default_jar_sizes(conn)
            else:
                conn.executemany(
                    "INSERT INTO jar_sizes (id, name, is_default, hidden) VALUES (?, ?, ?, ?)",
                    [(s.id, s.name, int(s.is_default), int(s.hidden)) for s in payload.jar_sizes],
                )
                counts["jar_sizes"] = len(payload.jar_sizes)

            recipes = payload.recipes or []
            conn.executemany(
                """
                INSERT INTO recipes (id, name, content, image, created_date, last_used_date)
                VALUES (?, ?, ?, ?, COALESCE(?, datetime('now')), ?)
                """,
                [
                    (r.id, r.name, r.content, r.image, r.created_date, r.last_used_date)
                    for r in recipes
                ],
            )
            counts["recipes"] = len(recipes)

            conn.executemany(
                """
                INSERT INTO item_types
                    (id, name, category, recipe, notes, recipe_image, low_stock_threshold)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        it.id,
                        it.name,
                        it.category,
                        it.recipe,
                        it.notes,
                        it.recipe_image,
                        it.low_stock_threshold,
                    )
                    for it in payload.item_types
                ],
            )
            counts["item_types"] = len(payload.item_types)

            conn.executemany(
                """
                INSERT INTO jars
                    (id, item_type_id, fill_date, used, used_date, jar_size, location,
                     batch_id, recipe_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        j.id,
                        j.item_type_id,
                        j.fill_date,
                        int(j.used),
                        j.used_date,
                        j.jar_size,
                        j.location,
                        j.batch_id,
                        j.recipe_id,
                    )
                    for j in payload.jars
                ],
            )
            counts["jars"] = len(payload.jars)

            conn.executemany(
                "INSERT INTO batch_recipes (batch_id, recipe, recipe_image) VALUES (?, ?, ?)",
                [(b.batch_id, b.recipe, b.recipe_image) for b in payload.batch_recipes],
            )
            counts["batch_recipes"] = len(payload.batch_recipes)

            normalize_legacy_values(conn)
            # Backups from before batch recipes existed carry recipes on item types.
            if "batch_recipes" not in payload.model_fields_set:
                counts["batch_recipes"] += copy_item_type_recipes(conn)
            return counts

        try:
            counts = self.store.run(_import)
        except sqlite3.Error as e:
            logger.error("Import failed and was rolled back: %s", e)
            raise TransactionError(f"Import failed; existing data was left unchanged: {e}") from e

        logger.info("Imported backup: %s", counts)
        return counts

    # --- Backup files ---

    def create_backup(self) -> Path:
        """Write a timestamped export file and prune old ones.

        Returns:
            Path of the new backup file
        """
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        destination = self.backup_dir / f"{BACKUP_PREFIX}_{timestamp}.json"
        destination.write_text(self.export_json(), encoding="utf-8")
        logger.info("Backup created: %s", destination.name)
        self._cleanup_old_backups()
        return destination

    def _cleanup_old_backups(self) -> list[Path]:
        """Remove the oldest backups beyond ``keep``. Returns removed paths."""
        backups = self.list_backups()
        removed = []
        for backup in backups[self.keep :]:
            backup.unlink()
            removed.append(backup)
            logger.info("Removed old backup: %s", backup.name)
        return removed

    def list_backups(self) -> list[Path]:
        """Backup files, newest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}_*.json"), reverse=True)

    def restore_file(self, path: Path) -> dict[str, int]:
        """Import a backup file.

        Raises:
            ValidationError: If the file does not exist or is not a valid backup
            TransactionError: If the import failed; the database is unchanged
        """
        payload = self.read_file(path)
        counts = self.import_data(payload)
        logger.info("Restored backup %s", Path(path).name)
        return counts
