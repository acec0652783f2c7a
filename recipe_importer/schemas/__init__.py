"""Pydantic schemas for API requests, responses and extraction payloads."""

from recipe_importer.schemas.extraction import (
    ExtractedIngredient,
    ExtractedRecipe,
    ExtractedRecipeHeader,
    ExtractedStep,
)
from recipe_importer.schemas.recipe_import import (
    ImportJobResponse,
    ImportResponse,
    ImportStats,
    MediaImportRequest,
    TokenBalanceResponse,
    TokensUsed,
    UrlImportRequest,
)

__all__ = [
    "ExtractedIngredient",
    "ExtractedRecipe",
    "ExtractedRecipeHeader",
    "ExtractedStep",
    "ImportJobResponse",
    "ImportResponse",
    "ImportStats",
    "MediaImportRequest",
    "TokenBalanceResponse",
    "TokensUsed",
    "UrlImportRequest",
]
