"""Resolve extracted ingredient mentions to canonical ingredients and units."""

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from recipe_importer.models.ingredient import Ingredient, MeasurementType
from recipe_importer.schemas.extraction import ExtractedIngredient

logger = logging.getLogger(__name__)


@dataclass
class ResolvedIngredient:
    ingredient_id: int
    created: bool


class IngredientResolver:
    """Map ``ExtractedIngredient`` to an ``Ingredient`` row.

    Resolution order:
        1. The extractor's ``existing_ingredient_id`` when ``is_new`` is false
           and the row still exists.
        2. Case-insensitive match on the English name.
        3. Case-insensitive match on the German name.
        4. A new ingredient created from both names.

    Lookups are ordered by id so the same input against the same rows always
    resolves to the same ingredient. New rows are flushed, so later lines of
    the same recipe see them.
    """

    def __init__(self, db: Session, measurement_types: list[MeasurementType] | None = None):
        self.db = db
        if measurement_types is None:
            measurement_types = self.db.query(MeasurementType).order_by(MeasurementType.id).all()
        self._units_by_name: dict[str, int] = {}
        for unit in sorted(measurement_types, key=lambda m: m.id):
            self._units_by_name.setdefault(unit.name_en.strip().lower(), unit.id)

    def _find_by_name(self, column, name: str) -> Ingredient | None:
        if not name:
            return None
        return (
            self.db.query(Ingredient)
            .filter(func.lower(column) == name.lower())
            .order_by(Ingredient.id)
            .first()
        )

    def resolve(self, extracted: ExtractedIngredient) -> ResolvedIngredient:
        name_en = extracted.name_en.strip()
        name_de = extracted.name_de.strip()

        if not extracted.is_new and extracted.existing_ingredient_id is not None:
            existing = self.db.get(Ingredient, extracted.existing_ingredient_id)
            if existing is not None:
                return ResolvedIngredient(ingredient_id=existing.id, created=False)
            logger.warning(
                f"Extractor referenced missing ingredient {extracted.existing_ingredient_id} for '{name_en}'"
            )

        match = self._find_by_name(Ingredient.name_en, name_en)
        if match is None:
            match = self._find_by_name(Ingredient.name_de, name_de)
        if match is not None:
            return ResolvedIngredient(ingredient_id=match.id, created=False)

        ingredient = Ingredient(name_en=name_en, name_de=name_de)
        self.db.add(ingredient)
        self.db.flush()
        logger.info(f"Created ingredient {ingredient.id}: {name_en} / {name_de}")
        return ResolvedIngredient(ingredient_id=ingredient.id, created=True)

    def resolve_measurement_type(self, name: str | None) -> int | None:
        """Exact, case-insensitive match on the English unit name. No fuzzy matching."""
        if not name:
            return None
        return self._units_by_name.get(name.strip().lower())
