"""SQLAlchemy models."""

from recipe_importer.models.import_log import ImportLog
from recipe_importer.models.ingredient import Ingredient, MeasurementType
from recipe_importer.models.recipe import Recipe, RecipeIngredient, RecipeStep
from recipe_importer.models.tokens import TokenAccount, TokenTransaction

__all__ = [
    "Ingredient",
    "MeasurementType",
    "Recipe",
    "RecipeStep",
    "RecipeIngredient",
    "TokenAccount",
    "TokenTransaction",
    "ImportLog",
]
