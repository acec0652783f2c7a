"""Persist extracted recipes.

The recipe header is the durability boundary: it is committed first and on
its own. Steps and ingredient lines are written one per savepoint, so a bad
row is skipped without losing the recipe.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_importer.errors import PersistenceError
from recipe_importer.models.enums import SourceKind
from recipe_importer.models.recipe import Recipe, RecipeIngredient, RecipeStep
from recipe_importer.schemas.extraction import ExtractedRecipe
from recipe_importer.services.ingredient_resolver import IngredientResolver

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    recipe_id: int
    steps_written: int
    ingredients_written: int
    new_ingredients_count: int


def total_time(prep: int | None, cook: int | None) -> int | None:
    if prep is None and cook is None:
        return None
    return (prep or 0) + (cook or 0)


class RecipeWriter:
    """Write a validated extraction payload as recipe, step and ingredient rows."""

    def __init__(self, db: Session):
        self.db = db

    def write(
        self,
        extracted: ExtractedRecipe,
        user_id: str,
        source_url: str | None,
        source_kind: SourceKind,
        language: str,
        resolver: IngredientResolver,
    ) -> PersistResult:
        """Insert the recipe and its children.

        Raises:
            PersistenceError: If the recipe header cannot be created.
        """
        header = extracted.recipe
        if header is None:
            raise PersistenceError("Extraction payload has no recipe to save")

        recipe = Recipe(
            user_id=user_id,
            name=header.name.strip(),
            author=header.author,
            description=header.description,
            prep_time_minutes=header.prep_time_minutes,
            cook_time_minutes=header.cook_time_minutes,
            total_time_minutes=total_time(header.prep_time_minutes, header.cook_time_minutes),
            recipe_yield=header.recipe_yield,
            category=header.category,
            cuisine=header.cuisine,
            keywords=header.keywords or [],
            source_url=source_url,
            source_kind=source_kind.value,
            language=language,
        )
        try:
            self.db.add(recipe)
            self.db.commit()
            self.db.refresh(recipe)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create recipe for user {user_id}: {e}")
            raise PersistenceError("Failed to save recipe") from e

        logger.info(f"Created recipe {recipe.id} '{recipe.name}' for user {user_id}")

        steps_written = 0
        for step in extracted.step_list:
            try:
                with self.db.begin_nested():
                    self.db.add(
                        RecipeStep(
                            recipe_id=recipe.id,
                            step_number=step.step_number,
                            instruction=step.instruction,
                            duration_minutes=step.duration_minutes,
                        )
                    )
                steps_written += 1
            except SQLAlchemyError as e:
                logger.warning(f"Skipping step {step.step_number} of recipe {recipe.id}: {e}")

        ingredients_written = 0
        new_ingredients = 0
        for order, line in enumerate(extracted.ingredient_list):
            try:
                with self.db.begin_nested():
                    resolved = resolver.resolve(line)
                    self.db.add(
                        RecipeIngredient(
                            recipe_id=recipe.id,
                            ingredient_id=resolved.ingredient_id,
                            measurement_type_id=resolver.resolve_measurement_type(line.measurement_type),
                            quantity=line.quantity,
                            notes=line.notes,
                            display_order=order,
                        )
                    )
                ingredients_written += 1
                if resolved.created:
                    new_ingredients += 1
            except SQLAlchemyError as e:
                logger.warning(f"Skipping ingredient '{line.name_en}' of recipe {recipe.id}: {e}")

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to commit child rows of recipe {recipe.id}: {e}")
            steps_written = ingredients_written = new_ingredients = 0

        logger.info(
            f"Recipe {recipe.id}: {steps_written} steps, {ingredients_written} ingredients "
            f"({new_ingredients} new)"
        )
        return PersistResult(
            recipe_id=recipe.id,
            steps_written=steps_written,
            ingredients_written=ingredients_written,
            new_ingredients_count=new_ingredients,
        )

    def set_image(self, recipe_id: int, image_url: str) -> None:
        """Store the uploaded image URL on the recipe. Failures are logged only."""
        try:
            recipe = self.db.get(Recipe, recipe_id)
            if recipe is None:
                return
            recipe.image_url = image_url
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to set image for recipe {recipe_id}: {e}")
