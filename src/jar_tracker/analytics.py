"""Stock levels and canning statistics for Jar Tracker.

Everything here is read-only and computed from the jar rows on demand.
Yearly and monthly rollups group the same jars twice: once by fill date
("canned") and once by used date for used jars ("used"). A jar filled in one
year and opened in the next counts toward canned in the first year and used
in the second.
"""

import logging
import sqlite3
from datetime import date

from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_CATEGORY_ICON,
    CategoryStats,
    ItemTypeStats,
    JarSizeCount,
    JarStats,
    MonthlyStats,
    StockLevel,
    YearlyStats,
)
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)

UNKNOWN_JAR_SIZE = "Unknown"

# Category of an item type, with missing values reported as the default.
_CATEGORY_EXPR = f"COALESCE(NULLIF(it.category, ''), '{DEFAULT_CATEGORY}')"


def _year(value: int) -> str:
    return f"{value:04d}"


class Analytics:
    """Aggregate queries over the jar inventory."""

    def __init__(self, store: SQLiteStore, low_stock_threshold: int = 2):
        self.store = store
        self.low_stock_threshold = low_stock_threshold

    def _category_icons(self) -> dict[str, str]:
        rows = self.store.query("SELECT name, icon FROM categories")
        return {row["name"].lower(): row["icon"] for row in rows}

    # --- Stock ---

    def jar_stats(self) -> JarStats:
        """Total, available and used jar counts across the whole inventory."""
        row = self.store.query_one(
            """
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN used = 1 THEN 1 ELSE 0 END) AS used
            FROM jars
            """
        )
        total = row["total"] or 0
        used = row["used"] or 0
        return JarStats(total=total, available=total - used, used=used)

    def item_type_stock(self) -> list[StockLevel]:
        """Per item type jar counts, including item types with no jars."""
        rows = self.store.query(
            f"""
            SELECT it.id, it.name, {_CATEGORY_EXPR} AS category, it.low_stock_threshold,
                   COUNT(j.id) AS total,
                   SUM(CASE WHEN j.used = 1 THEN 1 ELSE 0 END) AS used
            FROM item_types it
            LEFT JOIN jars j ON j.item_type_id = it.id
            GROUP BY it.id
            ORDER BY it.name COLLATE NOCASE
            """
        )
        icons = self._category_icons()
        levels = []
        for row in rows:
            total = row["total"] or 0
            used = row["used"] or 0
            levels.append(
                StockLevel(
                    item_type_id=row["id"],
                    name=row["name"],
                    category=row["category"],
                    category_icon=icons.get(row["category"].lower(), DEFAULT_CATEGORY_ICON),
                    total=total,
                    used=used,
                    available=total - used,
                    threshold=row["low_stock_threshold"],
                )
            )
        return levels

    def running_low_items(self, threshold: int | None = None) -> list[StockLevel]:
        """Item types with some, but not many, jars left.

        An item type is running low when ``0 < available <= threshold``. Its
        own ``low_stock_threshold`` applies when set above zero; otherwise the
        ``threshold`` argument, or the configured default. Results are ordered
        most urgent first.
        """
        fallback = threshold if threshold is not None else self.low_stock_threshold
        low = []
        for level in self.item_type_stock():
            effective = level.threshold if level.threshold and level.threshold > 0 else fallback
            if 0 < level.available <= effective:
                low.append(level.model_copy(update={"threshold": effective}))
        low.sort(key=lambda level: (level.available / level.threshold, level.name.lower()))
        return low

    def out_of_stock_items(self) -> list[StockLevel]:
        """Item types that have jars, all of them used."""
        return [level for level in self.item_type_stock() if level.total and not level.available]

    # --- Rollups ---

    def yearly_stats(self, include_current_year: bool = True) -> list[YearlyStats]:
        """Canned, used and still-available counts per year, newest first."""
        canned = self.store.query(
            """
            SELECT substr(fill_date, 1, 4) AS year, COUNT(*) AS canned,
                   SUM(CASE WHEN used = 0 THEN 1 ELSE 0 END) AS still_available
            FROM jars
            GROUP BY year
            """
        )
        used = self.store.query(
            """
            SELECT substr(used_date, 1, 4) AS year, COUNT(*) AS used
            FROM jars
            WHERE used = 1 AND used_date IS NOT NULL
            GROUP BY year
            """
        )

        by_year: dict[int, YearlyStats] = {}
        for row in canned:
            year = int(row["year"])
            by_year[year] = YearlyStats(
                year=year, canned=row["canned"], still_available=row["still_available"] or 0
            )
        for row in used:
            year = int(row["year"])
            by_year.setdefault(year, YearlyStats(year=year)).used = row["used"]

        if include_current_year:
            current = date.today().year
            by_year.setdefault(current, YearlyStats(year=current))

        return sorted(by_year.values(), key=lambda stats: stats.year, reverse=True)

    def category_stats(self, year: int) -> list[CategoryStats]:
        """Per category counts for one year, most canned first."""

        def _collect(conn: sqlite3.Connection) -> tuple[list, list]:
            canned = conn.execute(
                f"""
                SELECT {_CATEGORY_EXPR} AS category, COUNT(*) AS canned,
                       SUM(CASE WHEN j.used = 0 THEN 1 ELSE 0 END) AS still_available
                FROM jars j
                JOIN item_types it ON it.id = j.item_type_id
                WHERE substr(j.fill_date, 1, 4) = ?
                GROUP BY {_CATEGORY_EXPR} COLLATE NOCASE
                """,
                (_year(year),),
            ).fetchall()
            used = conn.execute(
                f"""
                SELECT {_CATEGORY_EXPR} AS category, COUNT(*) AS used
                FROM jars j
                JOIN item_types it ON it.id = j.item_type_id
                WHERE j.used = 1 AND substr(j.used_date, 1, 4) = ?
                GROUP BY {_CATEGORY_EXPR} COLLATE NOCASE
                """,
                (_year(year),),
            ).fetchall()
            return canned, used

        canned, used = self.store.run(_collect)
        icons = self._category_icons()
        stats: dict[str, CategoryStats] = {}
        for row in canned:
            stats[row["category"].lower()] = CategoryStats(
                category=row["category"],
                icon=icons.get(row["category"].lower(), DEFAULT_CATEGORY_ICON),
                canned=row["canned"],
                still_available=row["still_available"] or 0,
            )
        for row in used:
            key = row["category"].lower()
            if key not in stats:
                stats[key] = CategoryStats(
                    category=row["category"], icon=icons.get(key, DEFAULT_CATEGORY_ICON)
                )
            stats[key].used = row["used"]

        return sorted(stats.values(), key=lambda s: (-s.canned, -s.used, s.category.lower()))

    def item_type_stats(self, year: int, category: str | None = None) -> list[ItemTypeStats]:
        """Per item type counts for one year, most canned first."""
        category_filter = ""
        params: tuple = (_year(year),)
        if category:
            category_filter = f" AND {_CATEGORY_EXPR} = ? COLLATE NOCASE"
            params += (category,)

        def _collect(conn: sqlite3.Connection) -> tuple[list, list]:
            canned = conn.execute(
                f"""
                SELECT it.id, it.name, {_CATEGORY_EXPR} AS category, COUNT(*) AS canned,
                       SUM(CASE WHEN j.used = 0 THEN 1 ELSE 0 END) AS still_available
                FROM jars j
                JOIN item_types it ON it.id = j.item_type_id
                WHERE substr(j.fill_date, 1, 4) = ?{category_filter}
                GROUP BY it.id
                """,
                params,
            ).fetchall()
            used = conn.execute(
                f"""
                SELECT it.id, it.name, {_CATEGORY_EXPR} AS category, COUNT(*) AS used
                FROM jars j
                JOIN item_types it ON it.id = j.item_type_id
                WHERE j.used = 1 AND substr(j.used_date, 1, 4) = ?{category_filter}
                GROUP BY it.id
                """,
                params,
            ).fetchall()
            return canned, used

        canned, used = self.store.run(_collect)
        stats: dict[int, ItemTypeStats] = {}
        for row in canned:
            stats[row["id"]] = ItemTypeStats(
                item_type_id=row["id"],
                name=row["name"],
                category=row["category"],
                canned=row["canned"],
                still_available=row["still_available"] or 0,
            )
        for row in used:
            if row["id"] not in stats:
                stats[row["id"]] = ItemTypeStats(
                    item_type_id=row["id"], name=row["name"], category=row["category"]
                )
            stats[row["id"]].used = row["used"]

        return sorted(stats.values(), key=lambda s: (-s.canned, -s.used, s.name.lower()))

    def monthly_stats(self, year: int) -> list[MonthlyStats]:
        """Canned and used counts for each of the twelve months of a year."""
        canned = self.store.query(
            """
            SELECT CAST(substr(fill_date, 6, 2) AS INTEGER) AS month, COUNT(*) AS count
            FROM jars
            WHERE substr(fill_date, 1, 4) = ?
            GROUP BY month
            """,
            (_year(year),),
        )
        used = self.store.query(
            """
            SELECT CAST(substr(used_date, 6, 2) AS INTEGER) AS month, COUNT(*) AS count
            FROM jars
            WHERE used = 1 AND substr(used_date, 1, 4) = ?
            GROUP BY month
            """,
            (_year(year),),
        )
        months = {month: MonthlyStats(year=year, month=month) for month in range(1, 13)}
        for row in canned:
            if row["month"] in months:
                months[row["month"]].canned = row["count"]
        for row in used:
            if row["month"] in months:
                months[row["month"]].used = row["count"]
        return list(months.values())

    def jar_size_breakdown(
        self,
        year: int | None = None,
        category: str | None = None,
        item_type_id: int | None = None,
    ) -> list[JarSizeCount]:
        """Jar counts by size within jars filled in ``year`` and matching the filters."""
        conditions = []
        params: list = []
        if year is not None:
            conditions.append("substr(j.fill_date, 1, 4) = ?")
            params.append(_year(year))
        if category:
            conditions.append(f"{_CATEGORY_EXPR} = ? COLLATE NOCASE")
            params.append(category)
        if item_type_id is not None:
            conditions.append("j.item_type_id = ?")
            params.append(item_type_id)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = self.store.query(
            f"""
            SELECT COALESCE(NULLIF(j.jar_size, ''), '{UNKNOWN_JAR_SIZE}') AS jar_size,
                   COUNT(*) AS count,
                   SUM(CASE WHEN j.used = 1 THEN 1 ELSE 0 END) AS used
            FROM jars j
            JOIN item_types it ON it.id = j.item_type_id
            {where}
            GROUP BY 1
            ORDER BY count DESC, jar_size COLLATE NOCASE
            """,
            tuple(params),
        )
        return [
            JarSizeCount(jar_size=row["jar_size"], count=row["count"], used=row["used"] or 0)
            for row in rows
        ]

    def usage_rate(self, year: int) -> float | None:
        """Jars used in ``year`` as a percentage of jars canned in it.

        Returns None when nothing was canned that year.
        """
        stats = next((s for s in self.yearly_stats(False) if s.year == year), None)
        if stats is None or not stats.canned:
            return None
        return round(stats.used / stats.canned * 100, 1)
