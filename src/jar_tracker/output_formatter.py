"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Envelope with ``success``, ``message`` and ``data`` keys
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2, ensure_ascii=False))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "batches" in payload:
            self._render_batches(payload["batches"])
        elif "batch" in payload:
            self._render_batch(payload)
        elif "jar" in payload:
            self._render_jar(payload["jar"])
        elif "item_types" in payload:
            self._render_item_types(payload["item_types"])
        elif "categories" in payload:
            self._render_categories(payload["categories"])
        elif "jar_sizes" in payload:
            self._render_jar_sizes(payload["jar_sizes"])
        elif "recipes" in payload:
            self._render_recipes(payload["recipes"])
        elif "batch_recipe" in payload:
            self._render_batch_recipe(payload["batch_recipe"])
        elif "summary" in payload:
            self._render_summary(payload["summary"])
        elif "running_low" in payload:
            self._render_stock_levels(payload["running_low"], "Running Low", "No items are running low")
        elif "out_of_stock" in payload:
            self._render_stock_levels(payload["out_of_stock"], "Out of Stock", "Nothing is out of stock")
        elif "yearly" in payload:
            self._render_yearly(payload["yearly"])
        elif "monthly" in payload:
            self._render_monthly(payload["monthly"])
        elif "category_stats" in payload:
            self._render_category_stats(payload["category_stats"])

    def _render_batches(self, batches: list[dict]) -> None:
        """Render batch list with Rich."""
        if not batches:
            self.console.print("[dim]No batches found[/dim]")
            return

        table = Table(title="Batches", show_header=True, header_style="bold cyan")
        table.add_column("Batch", style="dim")
        table.add_column("Item", style="cyan")
        table.add_column("Category", style="yellow")
        table.add_column("Filled")
        table.add_column("Size", style="green")
        table.add_column("Location")
        table.add_column("Available", justify="right", style="magenta")

        for batch in batches:
            table.add_row(
                batch["batch_id"],
                batch["name"],
                batch.get("category", "Other"),
                batch["fill_date"][:10],
                batch.get("jar_size") or "-",
                batch.get("location") or "-",
                f"{batch['available_jars']}/{batch['total_jars']}",
            )

        self.console.print(table)
        self.console.print(f"\nTotal batches: {len(batches)}")

    def _render_batch(self, payload: dict) -> None:
        """Render one batch with its jars."""
        batch = payload["batch"]
        lines = [
            f"[bold]{batch['name']}[/bold] ({batch.get('category', 'Other')})",
            f"Batch: {batch['batch_id']}",
            f"Filled: {batch['fill_date'][:10]}",
            f"Size: {batch.get('jar_size') or '-'}",
            f"Location: {batch.get('location') or '-'}",
            f"Jars: {batch['available_jars']} available of {batch['total_jars']}",
        ]
        if batch.get("notes"):
            lines.append(f"Notes: {batch['notes']}")
        self.console.print(Panel("\n".join(lines), title="Batch", expand=False))

        jars = payload.get("jars", [])
        if jars:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Jar", justify="right")
            table.add_column("Status")
            table.add_column("Used")
            for jar in jars:
                status = "[dim]used[/dim]" if jar["used"] else "[green]available[/green]"
                table.add_row(str(jar["id"]), status, (jar.get("used_date") or "-")[:10])
            self.console.print(table)

        recipe = payload.get("batch_recipe")
        if recipe and recipe.get("content"):
            self.console.print(Panel(recipe["content"], title="Recipe", expand=False))

    def _render_jar(self, jar: dict) -> None:
        status = f"used {jar['used_date'][:10]}" if jar["used"] else "available"
        self.console.print(
            f"Jar {jar['id']} | batch {jar.get('batch_id')} | filled {jar['fill_date'][:10]} | {status}"
        )

    def _render_item_types(self, item_types: list[dict]) -> None:
        if not item_types:
            self.console.print("[dim]No item types[/dim]")
            return

        table = Table(title="Item Types", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Category", style="yellow")
        table.add_column("Total", justify="right")
        table.add_column("Available", justify="right", style="magenta")

        for item in item_types:
            table.add_row(
                str(item["item_type_id"]),
                item["name"],
                f"{item.get('category_icon', '')} {item.get('category', 'Other')}".strip(),
                str(item.get("total", 0)),
                str(item.get("available", 0)),
            )

        self.console.print(table)

    def _render_categories(self, categories: list[dict]) -> None:
        table = Table(title="Categories", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Icon")
        table.add_column("Name", style="cyan")
        table.add_column("Type")

        for category in categories:
            table.add_row(
                str(category["id"]),
                category["icon"],
                category["name"],
                "default" if category["is_default"] else "custom",
            )

        self.console.print(table)

    def _render_jar_sizes(self, jar_sizes: list[dict]) -> None:
        table = Table(title="Jar Sizes", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Visible")

        for jar_size in jar_sizes:
            table.add_row(
                str(jar_size["id"]),
                jar_size["name"],
                "default" if jar_size["is_default"] else "custom",
                "[dim]hidden[/dim]" if jar_size["hidden"] else "[green]✓[/green]",
            )

        self.console.print(table)

    def _render_recipes(self, recipes: list[dict]) -> None:
        if not recipes:
            self.console.print("[dim]No saved recipes[/dim]")
            return

        table = Table(title="Recipes", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Last used")

        for recipe in recipes:
            table.add_row(
                str(recipe["id"]),
                recipe["name"],
                (recipe.get("last_used_date") or "never")[:10],
            )

        self.console.print(table)

    def _render_batch_recipe(self, recipe: dict) -> None:
        if not recipe.get("content"):
            note = " (linked recipe was deleted)" if recipe.get("stale_link") else ""
            self.console.print(f"[dim]No recipe for this batch{note}[/dim]")
            return
        title = recipe["recipe"]["name"] if recipe.get("recipe") else "Batch recipe"
        self.console.print(Panel(recipe["content"], title=title, expand=False))

    def _render_summary(self, summary: dict) -> None:
        self.console.print(
            Panel(
                f"Total: [bold]{summary['total']}[/bold]\n"
                f"Available: [green]{summary['available']}[/green]\n"
                f"Used: [dim]{summary['used']}[/dim]",
                title="Jars",
                expand=False,
            )
        )

    def _render_stock_levels(self, items: list[dict], title: str, empty: str) -> None:
        if not items:
            self.console.print(f"[dim]{empty}[/dim]")
            return

        self.console.print(f"\n[bold yellow]{title}[/bold yellow]")

        table = Table(show_header=True, header_style="bold")
        table.add_column("Item")
        table.add_column("Category")
        table.add_column("Available", justify="right", style="red")
        table.add_column("Threshold", justify="right")

        for item in items:
            table.add_row(
                item["name"],
                f"{item.get('category_icon', '')} {item.get('category', 'Other')}".strip(),
                str(item["available"]),
                str(item.get("threshold") or "-"),
            )

        self.console.print(table)

    def _render_yearly(self, yearly: list[dict]) -> None:
        table = Table(title="Canning by Year", show_header=True, header_style="bold cyan")
        table.add_column("Year")
        table.add_column("Canned", justify="right")
        table.add_column("Used", justify="right")
        table.add_column("Still available", justify="right", style="green")

        for stats in yearly:
            table.add_row(
                str(stats["year"]),
                str(stats["canned"]),
                str(stats["used"]),
                str(stats["still_available"]),
            )

        self.console.print(table)

    def _render_monthly(self, monthly: list[dict]) -> None:
        table = Table(title="Canning by Month", show_header=True, header_style="bold cyan")
        table.add_column("Month")
        table.add_column("Canned", justify="right")
        table.add_column("Used", justify="right")

        for stats in monthly:
            table.add_row(f"{stats['year']}-{stats['month']:02d}", str(stats["canned"]), str(stats["used"]))

        self.console.print(table)

    def _render_category_stats(self, categories: list[dict]) -> None:
        if not categories:
            self.console.print("[dim]No jars canned in this year[/dim]")
            return

        table = Table(title="Canning by Category", show_header=True, header_style="bold cyan")
        table.add_column("Category")
        table.add_column("Canned", justify="right")
        table.add_column("Used", justify="right")
        table.add_column("Still available", justify="right", style="green")

        for stats in categories:
            table.add_row(
                f"{stats['icon']} {stats['category']}",
                str(stats["canned"]),
                str(stats["used"]),
                str(stats["still_available"]),
            )

        self.console.print(table)

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output, ensure_ascii=False))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder, ensure_ascii=False))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
