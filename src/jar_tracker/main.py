"""CLI entry point for Jar Tracker."""

from datetime import date
from pathlib import Path
from typing import Annotated

import typer

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
from .logging_setup import configure_logging
from .models import BatchStatus
from .output_formatter import OutputFormatter
from .recipe_manager import RecipeManager
from .settings import SettingsManager
from .sqlite_store import SQLiteStore
from .taxonomy import CategoryStore, JarSizeStore

app = typer.Typer(
    name="jar-tracker",
    help="Inventory tracking for home-canned jars",
    no_args_is_help=True,
)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
store: SQLiteStore | None = None
data_dir_override: Path | None = None

# Most specific first.
ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (DuplicateNameError, "DUPLICATE_NAME"),
    (EntityInUseError, "IN_USE"),
    (InvalidArgumentError, "INVALID_ARGUMENT"),
    (ValidationError, "VALIDATION_ERROR"),
    (ProtectedEntityError, "PROTECTED"),
    (NotFoundError, "NOT_FOUND"),
    (TransactionError, "TRANSACTION_FAILED"),
    (StorageUnavailableError, "STORAGE_UNAVAILABLE"),
)


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_data_dir() -> Path:
    """CLI --data-dir overrides config, which overrides default."""
    return data_dir_override or get_config().data.storage_dir


def get_store() -> SQLiteStore:
    """Get or create the SQLiteStore using config values."""
    global store
    if store is None:
        store = SQLiteStore(get_data_dir() / get_config().data.db_name)
    return store


def get_batch_manager() -> BatchManager:
    return BatchManager(get_store(), max_batch_quantity=get_config().inventory.max_batch_quantity)


def get_analytics() -> Analytics:
    return Analytics(get_store(), low_stock_threshold=get_config().inventory.low_stock_threshold)


def get_backup_manager() -> BackupManager:
    cfg = get_config()
    return BackupManager(get_store(), get_data_dir() / "backups", keep=cfg.data.backup_keep)


def fail(e: Exception) -> None:
    """Report an error and exit with status 1."""
    if not isinstance(e, JarTrackerError):
        formatter.error(str(e))
        raise typer.Exit(code=1)
    code = next((code for cls, code in ERROR_CODES if isinstance(e, cls)), None)
    formatter.error(str(e), error_code=code)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
) -> None:
    """Jar Tracker CLI - Keep track of your home-canned jars."""
    global formatter, config, store, data_dir_override

    formatter = OutputFormatter(json_mode=json_output)

    # Load config early
    config = ConfigManager()
    configure_logging(config.logging.level)

    data_dir_override = data_dir
    store = None

    def _close() -> None:
        if store is not None:
            store.close()

    ctx.call_on_close(_close)


# --- Batches ---
batch_app = typer.Typer(help="Batch commands")
app.add_typer(batch_app, name="batch")


@batch_app.command("add")
def batch_add(
    name: Annotated[str, typer.Argument(help="Item type name, e.g. 'Strawberry Jam'")],
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Number of jars")] = 1,
    fill_date: Annotated[
        str | None, typer.Option("--date", "-d", help="Fill date (YYYY-MM-DD), default today")
    ] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Category for a new item type")
    ] = None,
    jar_size: Annotated[str | None, typer.Option("--size", "-s", help="Jar size")] = None,
    location: Annotated[str | None, typer.Option("--location", "-l", help="Storage location")] = None,
    recipe_id: Annotated[
        int | None, typer.Option("--recipe-id", help="Saved recipe to link")
    ] = None,
) -> None:
    """Record a new batch of jars."""
    try:
        cfg = get_config()
        manager = get_batch_manager()
        # A new item type is only kept if its jars are saved too.
        with get_store().transaction():
            item_type = ItemTypeManager(get_store()).get_or_create_item_type(
                name, category or cfg.defaults.category
            )
            created = manager.create_multiple_jars(
                item_type.id,
                fill_date or date.today().isoformat(),
                quantity,
                jar_size=jar_size,
                location=location or cfg.defaults.location,
                recipe_id=recipe_id,
            )
        batch = manager.get_batch(created.batch_id)

        output_data = {
            "success": True,
            "message": f"Added {len(created.jar_ids)} jar(s) of {item_type.name}",
            "data": {"batch": batch.model_dump(mode="json"), "jar_ids": created.jar_ids},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@batch_app.command("list")
def batch_list(
    status: Annotated[
        BatchStatus, typer.Option("--status", help="Filter by jar availability")
    ] = BatchStatus.ALL,
    search: Annotated[str | None, typer.Option("--search", help="Filter by item name")] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category")
    ] = None,
) -> None:
    """List batches, newest first."""
    try:
        batches = get_batch_manager().get_all_batches(status=status, search=search, category=category)
        output_data = {
            "success": True,
            "data": {
                "batches": [b.model_dump(mode="json") for b in batches],
                "count": len(batches),
            },
        }
        formatter.output(output_data, f"{len(batches)} batches")
    except Exception as e:
        fail(e)


@batch_app.command("show")
def batch_show(batch_id: Annotated[str, typer.Argument(help="Batch ID")]) -> None:
    """Show a batch, its jars and its recipe."""
    try:
        manager = get_batch_manager()
        batch = manager.get_batch(batch_id)
        if batch is None:
            raise NotFoundError("Batch", batch_id)

        output_data = {
            "success": True,
            "data": {
                "batch": batch.model_dump(mode="json"),
                "jars": [j.model_dump(mode="json") for j in manager.get_jars_for_batch(batch_id)],
                "batch_recipe": RecipeManager(get_store())
                .get_batch_recipe(batch_id)
                .model_dump(mode="json"),
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@batch_app.command("extend")
def batch_extend(
    batch_id: Annotated[str, typer.Argument(help="Batch ID")],
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Number of jars to add")] = 1,
    jar_size: Annotated[str | None, typer.Option("--size", "-s", help="Jar size")] = None,
    location: Annotated[str | None, typer.Option("--location", "-l", help="Storage location")] = None,
) -> None:
    """Add jars to an existing batch."""
    try:
        manager = get_batch_manager()
        batch = manager.get_batch(batch_id)
        if batch is None:
            raise NotFoundError("Batch", batch_id)
        jar_ids = manager.add_multiple_jars_to_batch(
            batch_id, batch.item_type_id, None, quantity, jar_size=jar_size, location=location
        )
        formatter.success(f"Added {len(jar_ids)} jar(s) to batch {batch_id}", {"jar_ids": jar_ids})
    except Exception as e:
        fail(e)


@batch_app.command("update")
def batch_update(
    batch_id: Annotated[str, typer.Argument(help="Batch ID")],
    fill_date: Annotated[str | None, typer.Option("--date", "-d", help="Fill date")] = None,
    jar_size: Annotated[str | None, typer.Option("--size", "-s", help="Jar size")] = None,
    location: Annotated[str | None, typer.Option("--location", "-l", help="Storage location")] = None,
) -> None:
    """Change fill date, size or location for every jar in a batch."""
    try:
        updated = get_batch_manager().update_batch(
            batch_id, fill_date=fill_date, jar_size=jar_size, location=location
        )
        formatter.success(f"Updated {updated} jar(s) in batch {batch_id}", {"updated": updated})
    except Exception as e:
        fail(e)


@batch_app.command("delete")
def batch_delete(batch_id: Annotated[str, typer.Argument(help="Batch ID")]) -> None:
    """Delete a batch and all of its jars."""
    try:
        deleted = get_batch_manager().delete_batch(batch_id)
        formatter.success(f"Deleted batch {batch_id} ({deleted} jars)", {"deleted": deleted})
    except Exception as e:
        fail(e)


# --- Jars ---
jar_app = typer.Typer(help="Individual jar commands")
app.add_typer(jar_app, name="jar")


def _resolve_jar_ref(jar_ref: str) -> int:
    """Accept a jar id or a scanned label payload."""
    if jar_ref.strip().isdigit():
        return int(jar_ref)
    jar_id = decode_jar_label(jar_ref)
    if jar_id is None:
        raise ValidationError(f"Not a jar id or Jar Tracker label: {jar_ref!r}")
    return jar_id


@jar_app.command("use")
def jar_use(jar_ref: Annotated[str, typer.Argument(help="Jar ID or scanned label")]) -> None:
    """Mark a jar as used."""
    try:
        result = get_batch_manager().mark_jar_used(_resolve_jar_ref(jar_ref))
        if not result.success:
            code = "NOT_FOUND" if result.jar is None else "ALREADY_USED"
            formatter.error(result.message, error_code=code)
            raise typer.Exit(code=1)
        output_data = {
            "success": True,
            "message": result.message,
            "data": {"jar": result.jar.model_dump(mode="json")},
        }
        formatter.output(output_data, result.message)
    except typer.Exit:
        raise
    except Exception as e:
        fail(e)


@jar_app.command("delete")
def jar_delete(jar_id: Annotated[int, typer.Argument(help="Jar ID")]) -> None:
    """Delete one jar; its batch goes too if it was the last jar."""
    try:
        result = get_batch_manager().delete_jar_with_batch_check(jar_id)
        if not result.success:
            raise NotFoundError("Jar", jar_id)
        message = f"Deleted jar {jar_id}"
        if result.batch_deleted:
            message += f" (batch {result.batch_id} is now empty and was removed)"
        formatter.success(message, result.model_dump(mode="json"))
    except Exception as e:
        fail(e)


@jar_app.command("show")
def jar_show(jar_ref: Annotated[str, typer.Argument(help="Jar ID or scanned label")]) -> None:
    """Show one jar."""
    try:
        jar = get_batch_manager().get_jar(_resolve_jar_ref(jar_ref))
        formatter.output({"success": True, "data": {"jar": jar.model_dump(mode="json")}})
    except Exception as e:
        fail(e)


# --- Item types ---
item_app = typer.Typer(help="Item type commands")
app.add_typer(item_app, name="item")


@item_app.command("list")
def item_list(
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category")
    ] = None,
) -> None:
    """List item types with jar counts."""
    try:
        levels = get_analytics().item_type_stock()
        if category:
            levels = [lvl for lvl in levels if lvl.category.lower() == category.lower()]
        output_data = {
            "success": True,
            "data": {
                "item_types": [lvl.model_dump(mode="json") for lvl in levels],
                "count": len(levels),
            },
        }
        formatter.output(output_data, f"{len(levels)} item types")
    except Exception as e:
        fail(e)


@item_app.command("delete")
def item_delete(item_type_id: Annotated[int, typer.Argument(help="Item type ID")]) -> None:
    """Delete an item type and every jar of it."""
    try:
        removed = ItemTypeManager(get_store()).delete_item_type(item_type_id)
        formatter.success(
            f"Deleted item type {item_type_id} and {removed} jar(s)", {"jars_removed": removed}
        )
    except Exception as e:
        fail(e)


# --- Taxonomy ---
category_app = typer.Typer(help="Category commands")
app.add_typer(category_app, name="category")


@category_app.command("list")
def category_list() -> None:
    """List categories."""
    try:
        categories = CategoryStore(get_store()).list()
        formatter.output(
            {"success": True, "data": {"categories": [c.model_dump(mode="json") for c in categories]}}
        )
    except Exception as e:
        fail(e)


@category_app.command("add")
def category_add(
    name: Annotated[str, typer.Argument(help="Category name")],
    icon: Annotated[str, typer.Option("--icon", "-i", help="Emoji icon")] = "\U0001f4e6",
) -> None:
    """Add a custom category."""
    try:
        category = CategoryStore(get_store()).add(name, icon)
        formatter.success(f"Added category {category.name}", {"category": category.model_dump()})
    except Exception as e:
        fail(e)


@category_app.command("rename")
def category_rename(
    category_id: Annotated[int, typer.Argument(help="Category ID")],
    name: Annotated[str | None, typer.Argument(help="New name")] = None,
    icon: Annotated[str | None, typer.Option("--icon", "-i", help="New emoji icon")] = None,
) -> None:
    """Rename a custom category or change its icon."""
    try:
        category = CategoryStore(get_store()).update(category_id, name=name, icon=icon)
        formatter.success(f"Updated category {category.name}", {"category": category.model_dump()})
    except Exception as e:
        fail(e)


@category_app.command("delete")
def category_delete(
    category_id: Annotated[int, typer.Argument(help="Category ID")],
    reassign_to: Annotated[
        str | None, typer.Option("--reassign-to", help="Move item types to this category")
    ] = None,
) -> None:
    """Delete a custom category."""
    try:
        moved = CategoryStore(get_store()).delete(category_id, reassign_to=reassign_to)
        formatter.success(f"Deleted category {category_id}", {"reassigned": moved})
    except Exception as e:
        fail(e)


size_app = typer.Typer(help="Jar size commands")
app.add_typer(size_app, name="size")


@size_app.command("list")
def size_list(
    show_all: Annotated[bool, typer.Option("--all", "-a", help="Include hidden sizes")] = False,
) -> None:
    """List jar sizes."""
    try:
        sizes = JarSizeStore(get_store()).list(include_hidden=show_all)
        formatter.output(
            {"success": True, "data": {"jar_sizes": [s.model_dump(mode="json") for s in sizes]}}
        )
    except Exception as e:
        fail(e)


@size_app.command("add")
def size_add(name: Annotated[str, typer.Argument(help="Jar size name")]) -> None:
    """Add a custom jar size."""
    try:
        jar_size = JarSizeStore(get_store()).add(name)
        formatter.success(f"Added jar size {jar_size.name}", {"jar_size": jar_size.model_dump()})
    except Exception as e:
        fail(e)


@size_app.command("rename")
def size_rename(
    jar_size_id: Annotated[int, typer.Argument(help="Jar size ID")],
    name: Annotated[str, typer.Argument(help="New name")],
) -> None:
    """Rename a custom jar size."""
    try:
        jar_size = JarSizeStore(get_store()).update(jar_size_id, name=name)
        formatter.success(f"Renamed jar size to {jar_size.name}", {"jar_size": jar_size.model_dump()})
    except Exception as e:
        fail(e)


@size_app.command("toggle")
def size_toggle(jar_size_id: Annotated[int, typer.Argument(help="Jar size ID")]) -> None:
    """Hide or show a jar size."""
    try:
        jar_size = JarSizeStore(get_store()).toggle_hidden(jar_size_id)
        state = "hidden" if jar_size.hidden else "visible"
        formatter.success(f"Jar size {jar_size.name} is now {state}", {"jar_size": jar_size.model_dump()})
    except Exception as e:
        fail(e)


@size_app.command("delete")
def size_delete(
    jar_size_id: Annotated[int, typer.Argument(help="Jar size ID")],
    reassign_to: Annotated[
        str | None, typer.Option("--reassign-to", help="Move jars to this size")
    ] = None,
) -> None:
    """Delete a custom jar size."""
    try:
        moved = JarSizeStore(get_store()).delete(jar_size_id, reassign_to=reassign_to)
        formatter.success(f"Deleted jar size {jar_size_id}", {"reassigned": moved})
    except Exception as e:
        fail(e)


# --- Recipes ---
recipe_app = typer.Typer(help="Recipe commands")
app.add_typer(recipe_app, name="recipe")


@recipe_app.command("list")
def recipe_list() -> None:
    """List saved recipes."""
    try:
        recipes = RecipeManager(get_store()).list_recipes()
        formatter.output(
            {"success": True, "data": {"recipes": [r.model_dump(mode="json") for r in recipes]}}
        )
    except Exception as e:
        fail(e)


@recipe_app.command("add")
def recipe_add(
    name: Annotated[str, typer.Argument(help="Recipe name")],
    content: Annotated[str | None, typer.Option("--content", help="Recipe text")] = None,
    from_file: Annotated[
        Path | None, typer.Option("--file", "-f", help="Read recipe text from a file")
    ] = None,
) -> None:
    """Save a recipe to the collection."""
    try:
        text = from_file.read_text(encoding="utf-8") if from_file else (content or "")
        recipe = RecipeManager(get_store()).create_recipe(name, text)
        formatter.success(f"Saved recipe {recipe.name}", {"recipe": recipe.model_dump()})
    except Exception as e:
        fail(e)


@recipe_app.command("show")
def recipe_show(batch_id: Annotated[str, typer.Argument(help="Batch ID")]) -> None:
    """Show the recipe for a batch."""
    try:
        resolved = RecipeManager(get_store()).get_batch_recipe(batch_id)
        formatter.output({"success": True, "data": {"batch_recipe": resolved.model_dump(mode="json")}})
    except Exception as e:
        fail(e)


@recipe_app.command("delete")
def recipe_delete(recipe_id: Annotated[int, typer.Argument(help="Recipe ID")]) -> None:
    """Delete a saved recipe. Linked batches keep their jars."""
    try:
        if not RecipeManager(get_store()).delete_recipe(recipe_id):
            raise NotFoundError("Recipe", recipe_id)
        formatter.success(f"Deleted recipe {recipe_id}")
    except Exception as e:
        fail(e)


@recipe_app.command("link")
def recipe_link(
    batch_id: Annotated[str, typer.Argument(help="Batch ID")],
    recipe_id: Annotated[
        int | None, typer.Argument(help="Recipe ID; omit to unlink")
    ] = None,
) -> None:
    """Link a saved recipe to a batch."""
    try:
        updated = RecipeManager(get_store()).link_recipe_to_batch(batch_id, recipe_id)
        action = f"Linked recipe {recipe_id} to" if recipe_id is not None else "Unlinked recipe from"
        formatter.success(f"{action} batch {batch_id}", {"jars_updated": updated})
    except Exception as e:
        fail(e)


@recipe_app.command("set-batch")
def recipe_set_batch(
    batch_id: Annotated[str, typer.Argument(help="Batch ID")],
    content: Annotated[str | None, typer.Option("--content", help="Batch recipe text")] = None,
    clear: Annotated[bool, typer.Option("--clear", help="Remove the batch recipe")] = False,
) -> None:
    """Set or clear the recipe text kept on a single batch."""
    try:
        manager = RecipeManager(get_store())
        if clear:
            manager.clear_batch_recipe(batch_id)
            formatter.success(f"Cleared batch recipe for {batch_id}")
        else:
            manager.set_batch_recipe(batch_id, content)
            formatter.success(f"Saved batch recipe for {batch_id}")
    except Exception as e:
        fail(e)


@recipe_app.command("promote")
def recipe_promote(
    batch_id: Annotated[str, typer.Argument(help="Batch ID")],
    name: Annotated[str, typer.Argument(help="Name for the saved recipe")],
) -> None:
    """Save a batch's own recipe into the recipe collection."""
    try:
        recipe = RecipeManager(get_store()).promote_batch_recipe(batch_id, name)
        formatter.success(f"Saved recipe {recipe.name}", {"recipe": recipe.model_dump()})
    except Exception as e:
        fail(e)


# --- Statistics ---
stats_app = typer.Typer(help="Stock levels and canning statistics")
app.add_typer(stats_app, name="stats")


@stats_app.command("summary")
def stats_summary() -> None:
    """Total, available and used jar counts."""
    try:
        summary = get_analytics().jar_stats()
        formatter.output({"success": True, "data": {"summary": summary.model_dump()}})
    except Exception as e:
        fail(e)


@stats_app.command("low")
def stats_low(
    threshold: Annotated[
        int | None, typer.Option("--threshold", "-t", help="Override the low stock threshold")
    ] = None,
) -> None:
    """Item types that are running low."""
    try:
        items = get_analytics().running_low_items(threshold)
        output_data = {
            "success": True,
            "data": {"running_low": [i.model_dump() for i in items], "count": len(items)},
        }
        formatter.output(output_data, f"{len(items)} items are running low")
    except Exception as e:
        fail(e)


@stats_app.command("out")
def stats_out() -> None:
    """Item types with every jar used."""
    try:
        items = get_analytics().out_of_stock_items()
        output_data = {
            "success": True,
            "data": {"out_of_stock": [i.model_dump() for i in items], "count": len(items)},
        }
        formatter.output(output_data, f"{len(items)} items are out of stock")
    except Exception as e:
        fail(e)


@stats_app.command("yearly")
def stats_yearly() -> None:
    """Jars canned and used per year."""
    try:
        yearly = get_analytics().yearly_stats()
        formatter.output({"success": True, "data": {"yearly": [y.model_dump() for y in yearly]}})
    except Exception as e:
        fail(e)


@stats_app.command("monthly")
def stats_monthly(
    year: Annotated[int | None, typer.Option("--year", "-y", help="Year, default this year")] = None,
) -> None:
    """Jars canned and used per month of a year."""
    try:
        monthly = get_analytics().monthly_stats(year or date.today().year)
        formatter.output({"success": True, "data": {"monthly": [m.model_dump() for m in monthly]}})
    except Exception as e:
        fail(e)


@stats_app.command("categories")
def stats_categories(
    year: Annotated[int | None, typer.Option("--year", "-y", help="Year, default this year")] = None,
) -> None:
    """Jars canned and used per category in a year."""
    try:
        analytics = get_analytics()
        year = year or date.today().year
        output_data = {
            "success": True,
            "data": {
                "category_stats": [c.model_dump() for c in analytics.category_stats(year)],
                "usage_rate": analytics.usage_rate(year),
                "year": year,
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


# --- Backup ---
backup_app = typer.Typer(help="Export, import and backup commands")
app.add_typer(backup_app, name="backup")


@backup_app.command("export")
def backup_export(
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to a file instead of stdout")
    ] = None,
) -> None:
    """Export all data as a backup JSON document."""
    try:
        document = get_backup_manager().export_json()
        if output is None:
            print(document)
            return
        output.write_text(document, encoding="utf-8")
        formatter.success(f"Exported data to {output}", {"path": str(output)})
    except Exception as e:
        fail(e)


@backup_app.command("import")
def backup_import(
    path: Annotated[Path, typer.Argument(help="Backup JSON file")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Replace data without asking")] = False,
) -> None:
    """Replace all data with the contents of a backup file."""
    try:
        if not yes and not formatter.json_mode:
            typer.confirm("This replaces all existing jars and item types. Continue?", abort=True)
        manager = get_backup_manager()
        payload = manager.read_file(path)
        safety_copy = None
        if get_config().data.backup_enabled:
            safety_copy = manager.create_backup()
        counts = manager.import_data(payload)
        formatter.success(
            f"Imported {counts['jars']} jars and {counts['item_types']} item types",
            {"counts": counts, "previous_data_backup": safety_copy},
        )
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@backup_app.command("create")
def backup_create() -> None:
    """Write a timestamped backup file."""
    try:
        path = get_backup_manager().create_backup()
        formatter.success(f"Backup written to {path}", {"path": path})
    except Exception as e:
        fail(e)


# --- Labels ---
label_app = typer.Typer(help="QR label payloads")
app.add_typer(label_app, name="label")


@label_app.command("encode")
def label_encode(jar_id: Annotated[int, typer.Argument(help="Jar ID")]) -> None:
    """Print the QR payload for a jar."""
    try:
        get_batch_manager().get_jar(jar_id)
        payload = encode_jar_label(jar_id)
        formatter.success(payload, {"payload": payload, "jar_id": jar_id})
    except Exception as e:
        fail(e)


@label_app.command("decode")
def label_decode(payload: Annotated[str, typer.Argument(help="Scanned QR payload")]) -> None:
    """Read the jar id from a scanned QR payload."""
    jar_id = decode_jar_label(payload)
    if jar_id is None:
        formatter.error("Not a Jar Tracker label", error_code="INVALID_LABEL")
        raise typer.Exit(code=1)
    formatter.success(f"Jar {jar_id}", {"jar_id": jar_id})


# --- Settings ---
settings_app = typer.Typer(help="Display preferences")
app.add_typer(settings_app, name="settings")


@settings_app.command("date-format")
def settings_date_format(
    fmt: Annotated[
        str | None,
        typer.Argument(help="MM/DD/YYYY, DD/MM/YYYY or 'MMM DD, YYYY'; omit to show"),
    ] = None,
) -> None:
    """Show or change the date display format."""
    try:
        settings = SettingsManager(get_store())
        if fmt is None:
            current = settings.get_date_format()
            formatter.success(f"Date format: {current.value}", {"date_format": current.value})
            return
        saved = settings.set_date_format(fmt)
        formatter.success(f"Date format set to {saved.value}", {"date_format": saved.value})
    except Exception as e:
        fail(e)


if __name__ == "__main__":
    app()
