"""Ingredient and MeasurementType models (shared across all accounts)."""

from sqlalchemy import Column, Integer, String

from recipe_importer.database import Base
from recipe_importer.models.mixins import TimestampMixin


class MeasurementType(Base, TimestampMixin):
    """Canonical measurement unit. Reference data, read-only to the import pipeline."""

    __tablename__ = "measurement_types"

    id = Column(Integer, primary_key=True, index=True)
    name_en = Column(String(100), unique=True, nullable=False)
    name_de = Column(String(100), unique=True, nullable=False)
    abbreviation_en = Column(String(20), nullable=False)
    abbreviation_de = Column(String(20), nullable=False)


class Ingredient(Base, TimestampMixin):
    """Canonical bilingual ingredient."""

    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, index=True)
    name_en = Column(String(255), unique=True, nullable=False, index=True)
    name_de = Column(String(255), unique=True, nullable=False, index=True)
