"""Tests for stock levels and canning statistics."""

from datetime import date

from jar_tracker.models import ItemType


def _use(batches, jar_ids, used_at):
    for jar_id in jar_ids:
        batches.mark_jar_used(jar_id, used_at=used_at)


class TestJarStats:
    """Tests for inventory totals."""

    def test_empty(self, analytics):
        """An empty inventory reports zeros."""
        stats = analytics.jar_stats()

        assert (stats.total, stats.available, stats.used) == (0, 0, 0)

    def test_available_is_total_minus_used(self, analytics, batches, jam_id, pickles_id):
        """Available always equals total minus used."""
        jam = batches.create_multiple_jars(jam_id, "2024-07-01", 4)
        batches.create_multiple_jars(pickles_id, "2024-08-01", 3)
        _use(batches, jam.jar_ids[:3], "2024-09-01")

        stats = analytics.jar_stats()

        assert stats.total == 7
        assert stats.used == 3
        assert stats.available == 4

    def test_item_type_stock_includes_empty_types(self, analytics, batches, jam_id, pickles_id):
        """Item types without jars are listed with zero counts."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 2)

        stock = {level.name: level for level in analytics.item_type_stock()}

        assert stock["Dill Pickles"].total == 0
        assert stock["Strawberry Jam"].available == 2
        assert stock["Strawberry Jam"].category_icon == "\U0001f36f"


class TestRunningLow:
    """Tests for running low and out of stock signals."""

    def test_one_left_is_running_low(self, analytics, batches, jam_id):
        """Five jars with four used leaves one, which is running low."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 5)
        _use(batches, created.jar_ids[:4], "2024-09-01")

        low = analytics.running_low_items()

        assert [(level.name, level.available) for level in low] == [("Strawberry Jam", 1)]
        assert analytics.out_of_stock_items() == []

    def test_all_used_is_out_of_stock(self, analytics, batches, jam_id):
        """With every jar used the item is out of stock, not running low."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 5)
        _use(batches, created.jar_ids, "2024-09-01")

        assert analytics.running_low_items() == []
        assert [level.name for level in analytics.out_of_stock_items()] == ["Strawberry Jam"]

    def test_never_canned_is_neither(self, analytics, jam_id):
        """Item types with no jars are not flagged."""
        assert analytics.running_low_items() == []
        assert analytics.out_of_stock_items() == []

    def test_threshold_argument(self, analytics, batches, jam_id):
        """A higher threshold flags fuller item types."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 4)

        assert analytics.running_low_items() == []
        [level] = analytics.running_low_items(threshold=4)
        assert level.threshold == 4

    def test_item_type_threshold_wins(self, analytics, batches, item_types):
        """An item type's own threshold overrides the default."""
        salsa_id = item_types.upsert_item_type(
            ItemType(name="Salsa", category="Sauces", low_stock_threshold=6)
        )
        batches.create_multiple_jars(salsa_id, "2024-07-01", 5)

        [level] = analytics.running_low_items()

        assert level.name == "Salsa"
        assert level.threshold == 6

    def test_most_urgent_first(self, analytics, batches, jam_id, pickles_id):
        """Items closest to empty relative to their threshold come first."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 2)
        batches.create_multiple_jars(pickles_id, "2024-07-01", 1)

        assert [level.name for level in analytics.running_low_items()] == [
            "Dill Pickles",
            "Strawberry Jam",
        ]


class TestYearlyStats:
    """Tests for yearly rollups."""

    def test_canned_and_used_years_differ(self, analytics, batches, jam_id):
        """A jar filled in 2023 and used in 2024 counts in both years."""
        created = batches.create_multiple_jars(jam_id, "2023-08-01", 3)
        _use(batches, created.jar_ids[:2], "2024-02-10T09:00:00")

        stats = {s.year: s for s in analytics.yearly_stats(include_current_year=False)}

        assert stats[2023].canned == 3
        assert stats[2023].used == 0
        assert stats[2023].still_available == 1
        assert stats[2024].canned == 0
        assert stats[2024].used == 2

    def test_newest_first(self, analytics, batches, jam_id):
        """Years are sorted descending."""
        batches.create_multiple_jars(jam_id, "2021-08-01", 1)
        batches.create_multiple_jars(jam_id, "2023-08-01", 1)
        batches.create_multiple_jars(jam_id, "2022-08-01", 1)

        years = [s.year for s in analytics.yearly_stats(include_current_year=False)]

        assert years == [2023, 2022, 2021]

    def test_current_year_included(self, analytics):
        """The current year is present even without jars."""
        stats = analytics.yearly_stats()

        assert [s.year for s in stats] == [date.today().year]
        assert stats[0].canned == 0

    def test_usage_rate(self, analytics, batches, jam_id):
        """Usage rate is used over canned for the year, as a percentage."""
        created = batches.create_multiple_jars(jam_id, "2024-06-01", 3)
        batches.mark_jar_used(created.jar_ids[0], used_at="2024-10-01")

        assert analytics.usage_rate(2024) == 33.3
        assert analytics.usage_rate(2019) is None


class TestBreakdowns:
    """Tests for monthly, category and jar size breakdowns."""

    def test_monthly_has_twelve_months(self, analytics, batches, jam_id):
        """Every month is reported, empty ones as zero."""
        created = batches.create_multiple_jars(jam_id, "2024-07-04", 2)
        batches.create_multiple_jars(jam_id, "2024-12-31", 1)
        batches.mark_jar_used(created.jar_ids[0], used_at="2024-11-15T10:00:00")

        months = analytics.monthly_stats(2024)

        assert [m.month for m in months] == list(range(1, 13))
        assert months[6].canned == 2
        assert months[11].canned == 1
        assert months[10].used == 1
        assert sum(m.canned for m in months) == 3

    def test_category_stats(self, analytics, batches, item_types, jam_id, pickles_id):
        """Counts are grouped by category and sorted by canned."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 2)
        pickles = batches.create_multiple_jars(pickles_id, "2024-08-01", 4)
        mystery_id = item_types.upsert_item_type(ItemType(name="Mystery"))
        batches.create_multiple_jars(mystery_id, "2024-09-01", 1)
        batches.mark_jar_used(pickles.jar_ids[0], used_at="2024-10-01")

        stats = analytics.category_stats(2024)

        assert [(s.category, s.canned, s.used) for s in stats] == [
            ("Pickles", 4, 1),
            ("Preserves", 2, 0),
            ("Other", 1, 0),
        ]
        assert stats[0].still_available == 3

    def test_category_used_only_in_year(self, analytics, batches, jam_id):
        """A category with jars used but not canned in the year still appears."""
        created = batches.create_multiple_jars(jam_id, "2023-07-01", 1)
        batches.mark_jar_used(created.jar_ids[0], used_at="2024-01-05")

        [stats] = analytics.category_stats(2024)

        assert (stats.category, stats.canned, stats.used) == ("Preserves", 0, 1)

    def test_item_type_stats_by_category(self, analytics, batches, jam_id, pickles_id):
        """Item type stats can be limited to one category."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 2)
        batches.create_multiple_jars(pickles_id, "2024-08-01", 4)

        all_items = analytics.item_type_stats(2024)
        preserves = analytics.item_type_stats(2024, category="preserves")

        assert [s.name for s in all_items] == ["Dill Pickles", "Strawberry Jam"]
        assert [(s.name, s.canned) for s in preserves] == [("Strawberry Jam", 2)]

    def test_jar_size_breakdown(self, analytics, batches, jam_id, pickles_id):
        """Sizes are counted with missing sizes reported as Unknown."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 3, jar_size="Pint (16 oz)")
        batches.create_multiple_jars(pickles_id, "2024-07-01", 1, jar_size="Quart (32 oz)")
        batches.create_multiple_jars(pickles_id, "2024-07-01", 2)
        batches.create_multiple_jars(jam_id, "2023-07-01", 5, jar_size="Quart (32 oz)")

        sizes = analytics.jar_size_breakdown(year=2024)

        assert [(s.jar_size, s.count) for s in sizes] == [
            ("Pint (16 oz)", 3),
            ("Unknown", 2),
            ("Quart (32 oz)", 1),
        ]

    def test_jar_size_breakdown_filters(self, analytics, batches, jam_id, pickles_id):
        """Category and item type filters narrow the breakdown."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 3, jar_size="Pint (16 oz)")
        batches.create_multiple_jars(pickles_id, "2024-07-01", 1, jar_size="Quart (32 oz)")

        by_category = analytics.jar_size_breakdown(year=2024, category="Pickles")
        by_item = analytics.jar_size_breakdown(item_type_id=jam_id)

        assert [(s.jar_size, s.count) for s in by_category] == [("Quart (32 oz)", 1)]
        assert [(s.jar_size, s.count) for s in by_item] == [("Pint (16 oz)", 3)]
