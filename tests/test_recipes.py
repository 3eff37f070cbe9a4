"""Tests for the recipe collection and batch recipes."""

import pytest

from jar_tracker.errors import NotFoundError, ValidationError
from jar_tracker.models import RecipeSource


class TestRecipeCollection:
    """Tests for saved recipes."""

    def test_create_and_get(self, recipes):
        """A created recipe has a creation date and no last used date."""
        recipe = recipes.create_recipe("  Strawberry Jam  ", "Hull, mash, boil", "jam.png")

        saved = recipes.get_recipe(recipe.id)
        assert saved.name == "Strawberry Jam"
        assert saved.content == "Hull, mash, boil"
        assert saved.image == "jam.png"
        assert saved.created_date is not None
        assert saved.last_used_date is None

    def test_blank_name_rejected(self, recipes):
        """Recipes need a name."""
        with pytest.raises(ValidationError):
            recipes.create_recipe(" ")

    def test_list_puts_recently_used_first(self, recipes, batches, jam_id):
        """A recipe linked to a batch sorts ahead of unused ones."""
        first = recipes.create_recipe("First")
        second = recipes.create_recipe("Second")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)

        recipes.link_recipe_to_batch(created.batch_id, first.id)

        assert [r.id for r in recipes.list_recipes()] == [first.id, second.id]

    def test_update_keeps_last_used(self, recipes, batches, jam_id):
        """Editing a recipe does not change its last used date."""
        recipe = recipes.create_recipe("Jam", "v1")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)
        recipes.link_recipe_to_batch(created.batch_id, recipe.id)
        before = recipes.get_recipe(recipe.id).last_used_date

        updated = recipes.update_recipe(recipe.id, content="v2")

        assert updated.content == "v2"
        assert updated.name == "Jam"
        assert updated.last_used_date == before

    def test_update_missing(self, recipes):
        """Updating an unknown recipe raises NotFoundError."""
        with pytest.raises(NotFoundError):
            recipes.update_recipe(77, name="Nope")

    def test_delete(self, recipes):
        """delete_recipe reports whether anything was removed."""
        recipe = recipes.create_recipe("Jam")

        assert recipes.delete_recipe(recipe.id) is True
        assert recipes.delete_recipe(recipe.id) is False
        assert recipes.get_recipe(recipe.id) is None


class TestBatchRecipes:
    """Tests for resolving and editing batch recipes."""

    def test_no_recipe(self, recipes, batches, jam_id):
        """A batch with neither link nor override resolves to nothing."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 2)

        resolved = recipes.get_batch_recipe(created.batch_id)

        assert resolved.source == RecipeSource.NONE
        assert resolved.content == ""
        assert resolved.stale_link is False

    def test_linked_recipe(self, recipes, batches, jam_id):
        """A linked recipe supplies the batch content."""
        recipe = recipes.create_recipe("Jam", "Boil hard for one minute", "jam.png")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 3)

        assert recipes.link_recipe_to_batch(created.batch_id, recipe.id) == 3
        resolved = recipes.get_batch_recipe(created.batch_id)

        assert resolved.source == RecipeSource.RECIPE
        assert resolved.content == "Boil hard for one minute"
        assert resolved.image == "jam.png"
        assert resolved.recipe.id == recipe.id

    def test_override_wins_over_link(self, recipes, batches, jam_id):
        """Batch-local content takes precedence over the linked recipe."""
        recipe = recipes.create_recipe("Jam", "Linked text")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1, recipe_id=recipe.id)

        recipes.set_batch_recipe(created.batch_id, "Used less sugar")
        resolved = recipes.get_batch_recipe(created.batch_id)

        assert resolved.source == RecipeSource.OVERRIDE
        assert resolved.content == "Used less sugar"
        assert resolved.recipe_id == recipe.id

    def test_empty_override_falls_back_to_link(self, recipes, batches, jam_id):
        """An override with no text or image does not hide the link."""
        recipe = recipes.create_recipe("Jam", "Linked text")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1, recipe_id=recipe.id)

        recipes.set_batch_recipe(created.batch_id, "")

        assert recipes.get_batch_recipe(created.batch_id).source == RecipeSource.RECIPE

    def test_deleted_recipe_is_stale_link(self, recipes, batches, jam_id):
        """A link to a deleted recipe resolves softly."""
        recipe = recipes.create_recipe("Jam", "Linked text")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 2, recipe_id=recipe.id)

        recipes.delete_recipe(recipe.id)
        resolved = recipes.get_batch_recipe(created.batch_id)

        assert resolved.source == RecipeSource.NONE
        assert resolved.stale_link is True
        assert resolved.content == ""
        assert batches.get_jar(created.jar_ids[0]).recipe_id == recipe.id

    def test_unlink(self, recipes, batches, jam_id):
        """Linking None clears the link on every jar."""
        recipe = recipes.create_recipe("Jam")
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 2, recipe_id=recipe.id)

        recipes.link_recipe_to_batch(created.batch_id, None)

        assert {j.recipe_id for j in batches.get_jars_for_batch(created.batch_id)} == {None}

    def test_link_missing_recipe_or_batch(self, recipes, batches, jam_id):
        """Linking needs both the batch and the recipe to exist."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)
        recipe = recipes.create_recipe("Jam")

        with pytest.raises(NotFoundError):
            recipes.link_recipe_to_batch(created.batch_id, 999)
        with pytest.raises(NotFoundError):
            recipes.link_recipe_to_batch("batch_nope", recipe.id)

    def test_set_override_replaces(self, recipes, batches, jam_id):
        """Setting an override twice keeps only the latest."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)

        recipes.set_batch_recipe(created.batch_id, "first")
        recipes.set_batch_recipe(created.batch_id, "second", "photo.jpg")
        resolved = recipes.get_batch_recipe(created.batch_id)

        assert (resolved.content, resolved.image) == ("second", "photo.jpg")

    def test_clear_override(self, recipes, batches, jam_id):
        """clear_batch_recipe reports whether an override existed."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)
        recipes.set_batch_recipe(created.batch_id, "notes")

        assert recipes.clear_batch_recipe(created.batch_id) is True
        assert recipes.clear_batch_recipe(created.batch_id) is False

    def test_promote(self, recipes, batches, jam_id):
        """Promoting saves the override as a recipe and links the batch."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 2)
        recipes.set_batch_recipe(created.batch_id, "Family method", "family.jpg")

        recipe = recipes.promote_batch_recipe(created.batch_id, "Family Jam")

        assert recipe.content == "Family method"
        assert recipe.image == "family.jpg"
        assert recipe.last_used_date is not None
        resolved = recipes.get_batch_recipe(created.batch_id)
        assert resolved.source == RecipeSource.RECIPE
        assert resolved.recipe_id == recipe.id

    def test_promote_without_override(self, recipes, batches, jam_id):
        """There is nothing to promote without a batch-local recipe."""
        created = batches.create_multiple_jars(jam_id, "2024-07-01", 1)

        with pytest.raises(ValidationError):
            recipes.promote_batch_recipe(created.batch_id, "Empty")
