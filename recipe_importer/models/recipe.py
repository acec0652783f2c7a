"""Recipe, RecipeStep and RecipeIngredient models."""

from sqlalchemy import JSON, Column, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from recipe_importer.database import Base
from recipe_importer.models.mixins import TimestampMixin


class Recipe(Base, TimestampMixin):
    """Imported recipe owned by a single account."""

    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    author = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    prep_time_minutes = Column(Integer, nullable=True)
    cook_time_minutes = Column(Integer, nullable=True)
    total_time_minutes = Column(Integer, nullable=True)
    recipe_yield = Column(String(100), nullable=True)
    category = Column(String(100), nullable=True, index=True)
    cuisine = Column(String(100), nullable=True, index=True)
    keywords = Column(JSON, nullable=True)
    source_url = Column(Text, nullable=True)
    source_kind = Column(String(20), nullable=False)
    language = Column(String(5), nullable=False, default="en")
    image_url = Column(Text, nullable=True)

    # Relationships
    steps = relationship(
        "RecipeStep",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeStep.step_number",
    )
    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.display_order",
    )


class RecipeStep(Base, TimestampMixin):
    """Single instruction within a recipe."""

    __tablename__ = "recipe_steps"
    __table_args__ = (UniqueConstraint("recipe_id", "step_number", name="uq_recipe_step_number"),)

    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=True)

    # Relationships
    recipe = relationship("Recipe", back_populates="steps")


class RecipeIngredient(Base, TimestampMixin):
    """Ingredient line of a recipe, referencing a canonical ingredient."""

    __tablename__ = "recipe_ingredients"

    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id"), nullable=False, index=True)
    measurement_type_id = Column(Integer, ForeignKey("measurement_types.id"), nullable=True)
    quantity = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)

    # Relationships
    recipe = relationship("Recipe", back_populates="ingredients")
    ingredient = relationship("Ingredient")
    measurement_type = relationship("MeasurementType")
