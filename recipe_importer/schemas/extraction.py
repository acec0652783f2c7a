"""Schema of the structured payload returned by the extraction model.

Required fields have no defaults so a payload that omits them fails
validation instead of being filled in. Optional fields are explicitly
nullable and default to ``None``. Strings are stripped before length
checks, so a whitespace-only name counts as missing.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExtractedIngredient(BaseModel):
    """Ingredient mention as extracted from the source."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name_en: str = Field(..., min_length=1, max_length=255)
    name_de: str = Field(..., min_length=1, max_length=255)
    quantity: float | None = None
    measurement_type: str | None = None
    notes: str | None = None
    is_new: bool = True
    existing_ingredient_id: int | None = None


class ExtractedStep(BaseModel):
    """Single instruction step."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    step_number: int = Field(..., gt=0)
    instruction: str = Field(..., min_length=1)
    duration_minutes: int | None = Field(None, ge=0)


class ExtractedRecipeHeader(BaseModel):
    """Recipe-level fields."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    author: str | None = None
    description: str | None = None
    prep_time_minutes: int | None = Field(None, ge=0)
    cook_time_minutes: int | None = Field(None, ge=0)
    recipe_yield: str | None = None
    category: str | None = None
    cuisine: str | None = None
    keywords: list[str] | None = None
    image_url: str | None = None


class ExtractedRecipe(BaseModel):
    """Full extraction payload."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    is_valid_recipe: bool
    error_message: str | None = None
    recipe: ExtractedRecipeHeader | None = None
    steps: list[ExtractedStep] | None = None
    ingredients: list[ExtractedIngredient] | None = None

    @model_validator(mode="after")
    def require_recipe_when_valid(self) -> "ExtractedRecipe":
        """A payload that claims to be a recipe must carry the recipe header."""
        if self.is_valid_recipe and self.recipe is None:
            raise ValueError("recipe is required when is_valid_recipe is true")
        return self

    @property
    def step_list(self) -> list[ExtractedStep]:
        return self.steps or []

    @property
    def ingredient_list(self) -> list[ExtractedIngredient]:
        return self.ingredients or []
