"""Recipe import request and response schemas.

The wire format is camelCase; Python code uses snake_case field names.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UrlImportRequest(CamelModel):
    """Request to import a recipe from a webpage or video URL."""

    url: str = Field(..., max_length=2048)
    language: Literal["en", "de"] = "en"
    reword: bool = True
    start_timestamp: str | None = Field(None, max_length=32)
    end_timestamp: str | None = Field(None, max_length=32)


class MediaImportRequest(CamelModel):
    """Request to import a recipe from a previously uploaded image or PDF."""

    storage_paths: list[str]
    media_type: Literal["image", "pdf"]
    language: Literal["en", "de"] = "en"
    reword: bool = True


class TokensUsed(CamelModel):
    """Extraction model usage across all calls of one import."""

    input_tokens: int = 0
    output_tokens: int = 0


class ImportStats(CamelModel):
    """Summary of what an import created."""

    steps_count: int
    ingredients_count: int
    new_ingredients_count: int
    tokens_used: TokensUsed


class ImportResponse(CamelModel):
    """Outcome of an import. Domain failures use ``success=False``, never transport status."""

    success: bool
    import_id: int | None = None
    recipe_id: int | None = None
    recipe_name: str | None = None
    error: str | None = None
    tokens_deducted: int | None = None
    tokens_remaining: int | None = None
    tokens_required: int | None = None
    tokens_available: int | None = None
    rate_limit_remaining: int | None = None
    rate_limit_reset: datetime | None = None
    stats: ImportStats | None = None


class ImportJobResponse(CamelModel):
    """Status of an import attempt, for clients that lost their connection."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    import_type: str
    status: str  # pending, success, failed
    stage: str | None = None
    recipe_id: int | None = None
    recipe_name: str | None = None
    tokens_used: int | None = None
    error_message: str | None = None
    duration_ms: int | None = None
    created_at: datetime


class TokenBalanceResponse(CamelModel):
    """Current token balance and rate limit window of the caller."""

    balance: int
    rate_limit_remaining: int
    rate_limit_reset: datetime
