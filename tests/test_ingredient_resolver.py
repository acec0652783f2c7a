"""Tests for ingredient and unit resolution."""

from recipe_importer.models.ingredient import Ingredient
from recipe_importer.schemas.extraction import ExtractedIngredient
from recipe_importer.services.ingredient_resolver import IngredientResolver


def mention(name_en: str, name_de: str, **kwargs) -> ExtractedIngredient:
    return ExtractedIngredient(name_en=name_en, name_de=name_de, **kwargs)


def seed(db, *pairs):
    rows = [Ingredient(name_en=en, name_de=de) for en, de in pairs]
    db.add_all(rows)
    db.commit()
    return rows


def test_existing_reference_is_used(db, measurement_types):
    """Test that a verified existing_ingredient_id wins over name matching."""
    onion, shallot = seed(db, ("onion", "Zwiebel"), ("shallot", "Schalotte"))
    resolver = IngredientResolver(db)

    result = resolver.resolve(mention("onion", "Zwiebel", is_new=False, existing_ingredient_id=shallot.id))
    assert result.ingredient_id == shallot.id
    assert result.created is False


def test_stale_reference_falls_back_to_name(db, measurement_types):
    """Test that a reference to a missing row falls through to name matching."""
    (onion,) = seed(db, ("onion", "Zwiebel"))
    resolver = IngredientResolver(db)

    result = resolver.resolve(mention("Onion", "Zwiebel", is_new=False, existing_ingredient_id=99999))
    assert result.ingredient_id == onion.id
    assert result.created is False


def test_reference_ignored_when_marked_new(db, measurement_types):
    """Test that is_new=True skips the reference."""
    onion, garlic = seed(db, ("onion", "Zwiebel"), ("garlic", "Knoblauch"))
    resolver = IngredientResolver(db)

    result = resolver.resolve(mention("garlic", "Knoblauch", is_new=True, existing_ingredient_id=onion.id))
    assert result.ingredient_id == garlic.id


def test_case_insensitive_english_match(db, measurement_types):
    """Test English name matching ignores case and surrounding whitespace."""
    (butter,) = seed(db, ("Butter", "Butter"))
    result = IngredientResolver(db).resolve(mention("  BUTTER ", "Markenbutter"))
    assert result.ingredient_id == butter.id
    assert result.created is False


def test_german_name_match(db, measurement_types):
    """Test fallback to the German name when the English name differs."""
    (scallion,) = seed(db, ("scallion", "Frühlingszwiebel"))
    result = IngredientResolver(db).resolve(mention("spring onion", "frühlingszwiebel"))
    assert result.ingredient_id == scallion.id


def test_new_ingredient_created_once(db, measurement_types):
    """Test that an unknown ingredient is created and reused within the same run."""
    resolver = IngredientResolver(db)
    first = resolver.resolve(mention("za'atar", "Za'atar"))
    second = resolver.resolve(mention("Za'atar", "Za'atar"))

    assert first.created is True
    assert second.created is False
    assert second.ingredient_id == first.ingredient_id
    assert db.query(Ingredient).filter(Ingredient.name_en == "za'atar").count() == 1


def test_resolution_is_deterministic(db, measurement_types):
    """Test that the same input against the same rows resolves identically."""
    seed(db, ("tomato", "Tomate"), ("cherry tomato", "Kirschtomate"), ("salt", "Salz"))
    mentions = [
        mention("Tomato", "Tomaten"),
        mention("sea salt", "Salz"),
        mention("cherry tomato", "Kirschtomate", is_new=False, existing_ingredient_id=1_000_000),
    ]

    first = [IngredientResolver(db).resolve(m).ingredient_id for m in mentions]
    second = [IngredientResolver(db).resolve(m).ingredient_id for m in mentions]
    assert first == second


def test_measurement_type_exact_match(db, measurement_types):
    """Test unit mapping by case-insensitive exact English name only."""
    resolver = IngredientResolver(db)
    assert resolver.resolve_measurement_type("Gram") == measurement_types["gram"].id
    assert resolver.resolve_measurement_type(" tablespoon ") == measurement_types["tablespoon"].id
    assert resolver.resolve_measurement_type("g") is None
    assert resolver.resolve_measurement_type("grams") is None
    assert resolver.resolve_measurement_type("Gramm") is None
    assert resolver.resolve_measurement_type(None) is None


def test_measurement_types_can_be_passed_in(db, measurement_types):
    """Test that a preloaded unit list is used without querying."""
    resolver = IngredientResolver(db, [measurement_types["cup"]])
    assert resolver.resolve_measurement_type("cup") == measurement_types["cup"].id
    assert resolver.resolve_measurement_type("gram") is None
