"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .ingredient import Ingredient
from .dish import Dish
from .recipe import Recipe, RecipeIngredient
from .production_batch import ProductionBatch
from .enums import BatchStatus, ConversionStatus, SessionState, UnitFamily

__all__ = [
    "Base",
    "BaseModel",
    # Catalog
    "Ingredient",
    "Dish",
    # Production
    "Recipe",
    "RecipeIngredient",
    "ProductionBatch",
    # Enums
    "BatchStatus",
    "ConversionStatus",
    "SessionState",
    "UnitFamily",
]
