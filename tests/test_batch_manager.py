"""Tests for batch and jar management."""

from datetime import date

import pytest

from jar_tracker.batch_manager import BatchManager, new_batch_id, normalize_date
from jar_tracker.errors import (
    InvalidArgumentError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from jar_tracker.models import BatchStatus, ItemType


def _jar_count(store):
    return store.query_one("SELECT COUNT(*) AS c FROM jars")["c"]


class TestHelpers:
    """Tests for module helpers."""

    def test_new_batch_id_format(self):
        """Batch ids carry a millisecond timestamp and random suffix."""
        batch_id = new_batch_id()
        prefix, millis, suffix = batch_id.split("_")

        assert prefix == "batch"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_new_batch_ids_unique(self):
        """Consecutive ids differ."""
        assert len({new_batch_id() for _ in range(50)}) == 50

    def test_normalize_date(self):
        """Dates and ISO strings normalize to ISO strings."""
        assert normalize_date(date(2024, 7, 1)) == "2024-07-01"
        assert normalize_date(" 2024-07-01T08:30:00 ") == "2024-07-01T08:30:00"

    def test_normalize_date_rejects_garbage(self):
        """Non-dates raise ValidationError."""
        with pytest.raises(ValidationError):
            normalize_date("last tuesday")


class TestCreateJars:
    """Tests for creating jars and batches."""

    def test_create_multiple_jars(self, batches, jam_id):
        """All jars share one new batch id."""
        created = batches.create_multiple_jars(
            jam_id, "2024-07-01", 5, jar_size="Pint (16 oz)", location="Pantry"
        )

        assert created.batch_id.startswith("batch_")
        assert len(created.jar_ids) == 5
        assert created.jar_ids == sorted(created.jar_ids)
        jars = batches.get_jars_for_batch(created.batch_id)
        assert [j.id for j in jars] == created.jar_ids
        assert all(j.jar_size == "Pint (16 oz)" and j.location == "Pantry" for j in jars)
        assert all(not j.used and j.used_date is None for j in jars)

    def test_create_jar_single_batch(self, batches, jam_id):
        """create_jar makes a batch of one."""
        jar_id = batches.create_jar(jam_id, date(2024, 7, 1))

        jar = batches.get_jar(jar_id)
        assert jar.fill_date == "2024-07-01"
        assert batches.get_batch(jar.batch_id).total_jars == 1

    @pytest.mark.parametrize("quantity", [0, -1, 101, True, 2.5])
    def test_quantity_out_of_range(self, batches, jam_id, quantity):
        """Quantity must be a whole number from 1 to the maximum."""
        with pytest.raises(InvalidArgumentError):
            batches.create_multiple_jars(jam_id, "2024-07-01", quantity)

    def test_quantity_limit_configurable(self, store, jam_id):
        """The maximum batch size comes from configuration."""
        small = BatchManager(store, max_batch_quantity=3)

        with pytest.raises(InvalidArgumentError):
            small.create_multiple_jars(jam_id, "2024-07-01", 4)
        assert len(small.create_multiple_jars(jam_id, "2024-07-01", 3).jar_ids) == 3

    def test_missing_item_type(self, batches):
        """Jars need an existing item type."""
        with pytest.raises(NotFoundError):
            batches.create_multiple_jars(999, "2024-07-01", 2)

    def test_atomic_on_failure(self, store, batches, jam_id):
        """A failure on the third insert leaves no jars from the call."""
        store.run(
            lambda conn: conn.execute("""
                CREATE TRIGGER fail_third_jar BEFORE INSERT ON jars
                WHEN (SELECT COUNT(*) FROM jars) >= 2
                BEGIN
                    SELECT RAISE(ABORT, 'simulated failure');
                END
            """)
        )

        with pytest.raises(TransactionError):
            batches.create_multiple_jars(jam_id, "2024-07-01", 5)

        assert _jar_count(store) == 0
        assert batches.get_all_batches() == []

    def test_create_links_recipe(self, batches, recipes, jam_id):
        """A recipe id is stored on every jar and marks the recipe used."""
        recipe = recipes.create_recipe("Jam", "Cook berries")

        created = batches.create_multiple_jars(jam_id, "2024-07-01", 2, recipe_id=recipe.id)

        assert {j.recipe_id for j in batches.get_jars_for_batch(created.batch_id)} == {recipe.id}
        assert recipes.get_recipe(recipe.id).last_used_date is not None


class TestExtendBatch:
    """Tests for adding jars to an existing batch."""

    def test_inherits_batch_attributes(self, batches, recipes, jam_id):
        """New jars copy the batch's date, size, location and recipe link."""
        recipe = recipes.create_recipe("Jam")
        created = batches.create_multiple_jars(
            jam_id, "2024-07-01", 2, jar_size="Quart (32 oz)", location="Cellar", recipe_id=recipe.id
        )

        new_ids = batches.add_multiple_jars_to_batch(created.batch_id, jam_id, None, 3)

        assert len(new_ids) == 3
        jars = batches.get_jars_for_batch(created.batch_id)
        assert len(jars) == 5
        added = [j for j in jars if j.id in new_ids]
        assert all(
            j.fill_date == "2024-07-01"
            and j.jar_size == "Quart (32 oz)"
            and j.location == "Cellar"
            and j.recipe_id == recipe.id
            for j in added
        )

    def test_overrides(self, batches, jam_id):
        """Explicit values override inherited ones."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1, location="Cellar")

        jar_id = batches.add_jar_to_batch(created.batch_id, jam_id, "2024-07-02", location="Garage")

        jar = batches.get_jar(jar_id)
        assert jar.fill_date == "2024-07-02"
        assert jar.location == "Garage"
        assert jar.batch_id == created.batch_id

    def test_missing_batch(self, batches, jam_id):
        """Extending an unknown batch raises NotFoundError."""
        with pytest.raises(NotFoundError):
            batches.add_multiple_jars_to_batch("batch_nope", jam_id, None, 1)

    def test_item_type_must_match(self, batches, jam_id, pickles_id):
        """Jars of another item type cannot join the batch."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)

        with pytest.raises(ValidationError):
            batches.add_multiple_jars_to_batch(created.batch_id, pickles_id, None, 1)


class TestMarkJarUsed:
    """Tests for mark_jar_used."""

    def test_marks_used(self, batches, jam_id):
        """A jar becomes used with a used date."""
        jar_id = batches.create_jar(jam_id, "2024-07-01")

        result = batches.mark_jar_used(jar_id)

        assert result.success is True
        assert result.jar.used is True
        assert result.jar.used_date is not None

    def test_explicit_used_date(self, batches, jam_id):
        """The used date can be supplied."""
        jar_id = batches.create_jar(jam_id, "2024-07-01")

        result = batches.mark_jar_used(jar_id, used_at="2025-01-15T12:00:00")

        assert result.jar.used_date == "2025-01-15T12:00:00"

    def test_second_call_is_noop(self, batches, jam_id):
        """Marking twice fails softly and keeps the first used date."""
        jar_id = batches.create_jar(jam_id, "2024-07-01")
        first = batches.mark_jar_used(jar_id, used_at="2025-01-15T12:00:00")

        second = batches.mark_jar_used(jar_id, used_at="2025-02-01T12:00:00")

        assert second.success is False
        assert "already" in second.message
        assert second.jar.used_date == first.jar.used_date
        assert batches.get_jar(jar_id).used_date == "2025-01-15T12:00:00"

    def test_missing_jar(self, batches):
        """A missing jar is reported, not raised."""
        result = batches.mark_jar_used(4242)

        assert result.success is False
        assert result.message == "Jar not found"
        assert result.jar is None

    def test_used_date_invariant(self, store, batches, jam_id):
        """Used jars have a used date; available jars do not."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 4)
        batches.mark_jar_used(created.jar_ids[0])
        batches.mark_jar_used(created.jar_ids[2])

        rows = store.query("SELECT used, used_date FROM jars")

        assert all((row["used"] == 1) == (row["used_date"] is not None) for row in rows)


class TestDeleteJars:
    """Tests for jar and batch deletion."""

    def test_batch_deleted_only_with_last_jar(self, batches, recipes, jam_id):
        """batch_deleted is reported only when the final jar goes."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 3)
        recipes.set_batch_recipe(created.batch_id, "Notes")

        results = [batches.delete_jar_with_batch_check(jar_id) for jar_id in created.jar_ids]

        assert [r.batch_deleted for r in results] == [False, False, True]
        assert all(r.success and r.batch_id == created.batch_id for r in results)
        assert batches.get_batch(created.batch_id) is None
        assert recipes.get_batch_recipe(created.batch_id).source.value == "none"

    def test_delete_missing_jar(self, batches):
        """Deleting an unknown jar reports failure."""
        result = batches.delete_jar_with_batch_check(999)

        assert result.success is False
        assert result.batch_deleted is False

    def test_delete_batch(self, store, batches, jam_id):
        """delete_batch removes every jar in the batch and nothing else."""
        doomed = batches.create_multiple_jars(jam_id, "2024-07-01", 3)
        kept = batches.create_multiple_jars(jam_id, "2024-07-02", 2)

        assert batches.delete_batch(doomed.batch_id) == 3
        assert _jar_count(store) == 2
        assert batches.get_batch(kept.batch_id).total_jars == 2

    def test_delete_missing_batch(self, batches):
        """Deleting an unknown batch raises NotFoundError."""
        with pytest.raises(NotFoundError):
            batches.delete_batch("batch_nope")


class TestBatchQueries:
    """Tests for batch listing and lookups."""

    def test_get_all_batches_counts(self, batches, jam_id):
        """Each batch row carries totals and ordered jar ids."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 3, jar_size="Pint (16 oz)")
        batches.mark_jar_used(created.jar_ids[1])

        [batch] = batches.get_all_batches()

        assert batch.batch_id == created.batch_id
        assert batch.name == "Strawberry Jam"
        assert batch.category == "Preserves"
        assert batch.jar_size == "Pint (16 oz)"
        assert batch.total_jars == 3
        assert batch.used_jars == 1
        assert batch.available_jars == 2
        assert batch.jar_ids == created.jar_ids

    def test_sorted_by_fill_date_desc(self, batches, jam_id, pickles_id):
        """Newest fill date first."""
        old = batches.create_multiple_jars(jam_id, "2023-05-01", 1)
        new = batches.create_multiple_jars(pickles_id, "2024-09-01", 1)
        mid = batches.create_multiple_jars(jam_id, "2024-01-15", 1)

        assert [b.batch_id for b in batches.get_all_batches()] == [
            new.batch_id,
            mid.batch_id,
            old.batch_id,
        ]

    def test_same_date_batches_stay_separate(self, batches, jam_id):
        """Two batches filled on the same day are not merged."""
        batches.create_multiple_jars(jam_id, "2024-07-01", 2)
        batches.create_multiple_jars(jam_id, "2024-07-01", 3)

        assert sorted(b.total_jars for b in batches.get_all_batches()) == [2, 3]

    def test_status_filter(self, batches, jam_id, pickles_id):
        """Status filters on available and used jars."""
        full = batches.create_multiple_jars(jam_id, "2024-07-01", 2)
        empty = batches.create_multiple_jars(pickles_id, "2024-07-02", 1)
        batches.mark_jar_used(empty.jar_ids[0])

        available = batches.get_all_batches(status=BatchStatus.AVAILABLE)
        used = batches.get_all_batches(status="used")

        assert [b.batch_id for b in available] == [full.batch_id]
        assert [b.batch_id for b in used] == [empty.batch_id]
        assert len(batches.get_all_batches(status="all")) == 2

    def test_search_and_category_filters(self, batches, jam_id, pickles_id):
        """Search matches names ignoring case; category matches exactly."""
        jam = batches.create_multiple_jars(jam_id, "2024-07-01", 1)
        pickles = batches.create_multiple_jars(pickles_id, "2024-07-02", 1)

        assert [b.batch_id for b in batches.get_all_batches(search="straw")] == [jam.batch_id]
        assert [b.batch_id for b in batches.get_all_batches(category="pickles")] == [pickles.batch_id]

    def test_search_wildcards_match_literally(self, batches, item_types):
        """Percent and underscore in the search text match only themselves."""
        sugar = item_types.upsert_item_type(ItemType(name="50% Sugar Jam"))
        butter = item_types.upsert_item_type(ItemType(name="Apple Butter"))
        sauce = item_types.upsert_item_type(ItemType(name="Hot_Sauce"))
        pickles = item_types.upsert_item_type(ItemType(name="Pickles"))
        created = {
            type_id: batches.create_multiple_jars(type_id, "2024-07-01", 1).batch_id
            for type_id in (sugar, butter, sauce, pickles)
        }

        assert [b.batch_id for b in batches.get_all_batches(search="%")] == [created[sugar]]
        assert [b.batch_id for b in batches.get_all_batches(search="_")] == [created[sauce]]
        assert batches.get_all_batches(search="e_B") == []

    def test_get_jars_for_item_type_ordered(self, batches, jam_id):
        """Jars for an item type come back in id order."""
        first = batches.create_multiple_jars(jam_id, "2024-08-01", 2)
        second = batches.create_multiple_jars(jam_id, "2024-06-01", 2)

        ids = [j.id for j in batches.get_jars_for_item_type(jam_id)]

        assert ids == first.jar_ids + second.jar_ids

    def test_get_jar_missing(self, batches):
        """get_jar raises for unknown ids while find_jar returns None."""
        with pytest.raises(NotFoundError):
            batches.get_jar(31337)
        assert batches.find_jar(31337) is None


class TestUpdateBatch:
    """Tests for bulk batch edits."""

    def test_updates_every_jar(self, batches, jam_id):
        """Batch edits write through to all jars."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 3, location="Pantry")

        updated = batches.update_batch(
            created.batch_id, fill_date="2024-07-03", jar_size="Half-pint (8 oz)", location="Cellar"
        )

        assert updated == 3
        jars = batches.get_jars_for_batch(created.batch_id)
        assert {(j.fill_date, j.jar_size, j.location) for j in jars} == {
            ("2024-07-03", "Half-pint (8 oz)", "Cellar")
        }

    def test_leaves_other_batches(self, batches, jam_id):
        """Only jars in the named batch change."""
        target = batches.create_multiple_jars(jam_id, "2024-07-01", 1, location="Pantry")
        other = batches.create_multiple_jars(jam_id, "2024-07-01", 1, location="Pantry")

        batches.update_batch(target.batch_id, location="Cellar")

        assert batches.get_batch(other.batch_id).location == "Pantry"

    def test_missing_batch(self, batches):
        """Updating an unknown batch raises NotFoundError."""
        with pytest.raises(NotFoundError):
            batches.update_batch("batch_nope", location="Cellar")
