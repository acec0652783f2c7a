"""Tests for the recipe writer."""

from unittest.mock import patch

import pytest
from conftest import recipe_payload
from sqlalchemy.exc import IntegrityError, OperationalError

from recipe_importer.errors import PersistenceError
from recipe_importer.models.enums import SourceKind
from recipe_importer.models.ingredient import Ingredient
from recipe_importer.models.recipe import Recipe, RecipeIngredient, RecipeStep
from recipe_importer.schemas.extraction import ExtractedRecipe
from recipe_importer.services.ingredient_resolver import IngredientResolver
from recipe_importer.services.persistence import RecipeWriter, total_time

USER = "user-123"


def extracted(**overrides) -> ExtractedRecipe:
    return ExtractedRecipe.model_validate(recipe_payload(**overrides))


def write(db, recipe: ExtractedRecipe, resolver: IngredientResolver | None = None):
    return RecipeWriter(db).write(
        recipe,
        user_id=USER,
        source_url="https://recipes.test/carbonara",
        source_kind=SourceKind.WEBSITE,
        language="en",
        resolver=resolver or IngredientResolver(db),
    )


def test_total_time():
    """Test total time is the sum of the known parts."""
    assert total_time(10, 15) == 25
    assert total_time(None, 15) == 15
    assert total_time(None, None) is None


def test_write_full_recipe(db, measurement_types):
    """Test header, steps and ingredient lines are written in order."""
    result = write(db, extracted())

    recipe = db.get(Recipe, result.recipe_id)
    assert recipe.name == "Spaghetti Carbonara"
    assert recipe.user_id == USER
    assert recipe.total_time_minutes == 25
    assert recipe.source_kind == "website"
    assert recipe.keywords == ["pasta"]
    assert [s.step_number for s in recipe.steps] == [1, 2]
    assert [line.ingredient.name_en for line in recipe.ingredients] == ["spaghetti", "egg"]
    assert [line.display_order for line in recipe.ingredients] == [0, 1]
    assert recipe.ingredients[0].measurement_type_id == measurement_types["gram"].id
    assert recipe.ingredients[0].quantity == 400

    assert result.steps_written == 2
    assert result.ingredients_written == 2
    assert result.new_ingredients_count == 2


def test_unknown_unit_is_left_unset(db, measurement_types):
    """Test that a unit without exact match leaves the line without a unit."""
    payload = recipe_payload()
    payload["ingredients"][0]["measurement_type"] = "grams"
    result = write(db, ExtractedRecipe.model_validate(payload))

    line = db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id == result.recipe_id).first()
    assert line.measurement_type_id is None


def test_existing_ingredients_are_not_counted_as_new(db, measurement_types):
    """Test new ingredient count only includes created rows."""
    db.add(Ingredient(name_en="egg", name_de="Ei"))
    db.commit()
    result = write(db, extracted())
    assert result.new_ingredients_count == 1
    assert db.query(Ingredient).count() == 2


def test_failing_step_is_skipped(db, measurement_types):
    """Test that a step that violates a constraint is skipped, not fatal."""
    steps = [
        {"step_number": 1, "instruction": "🥘 Boil water"},
        {"step_number": 1, "instruction": "🧂 Salt the water"},
        {"step_number": 2, "instruction": "🍝 Add pasta"},
    ]
    result = write(db, extracted(steps=steps))

    assert result.steps_written == 2
    rows = db.query(RecipeStep).filter(RecipeStep.recipe_id == result.recipe_id).order_by(RecipeStep.step_number)
    assert [r.instruction for r in rows] == ["🥘 Boil water", "🍝 Add pasta"]
    assert result.ingredients_written == 2


def test_failing_ingredient_line_is_skipped(db, measurement_types):
    """Test that a failing ingredient line does not lose the recipe or other lines."""
    resolver = IngredientResolver(db)
    original = resolver.resolve

    def flaky(line):
        if line.name_en == "egg":
            raise IntegrityError("INSERT", {}, Exception("boom"))
        return original(line)

    with patch.object(resolver, "resolve", side_effect=flaky):
        result = write(db, extracted(), resolver)

    assert result.ingredients_written == 1
    assert result.steps_written == 2
    names = [line.ingredient.name_en for line in db.get(Recipe, result.recipe_id).ingredients]
    assert names == ["spaghetti"]


def test_header_failure_raises(db, measurement_types):
    """Test that a header insert failure aborts with PersistenceError and writes nothing."""
    with patch.object(db, "commit", side_effect=OperationalError("INSERT", {}, Exception("down"))):
        with pytest.raises(PersistenceError):
            write(db, extracted())
    assert db.query(Recipe).count() == 0


def test_set_image(db, measurement_types):
    """Test attaching an image URL after the fact."""
    result = write(db, extracted())
    RecipeWriter(db).set_image(result.recipe_id, "https://storage.test/recipe-images/1.jpg")
    db.expire_all()
    assert db.get(Recipe, result.recipe_id).image_url == "https://storage.test/recipe-images/1.jpg"
