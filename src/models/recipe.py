"""
Recipe models for costed production recipes.

This module contains:
- Recipe: Master record of one finalized recipe session
- RecipeIngredient: One priced ingredient issuance within a recipe

Both are written once, when a recipe session is finalized, and are not
edited afterwards. Ingredient names and units are copied onto the line
items so the record stays readable if the ingredient is later renamed.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from src.utils.constants import RECIPE_STATUS_COMPLETED


class Recipe(BaseModel):
    """
    Recipe master record.

    Attributes:
        dish_id: Dish that was produced
        dish_name: Dish name at the time of production
        barcode: Dish barcode at the time of production
        batch_number: Batch number shared with the resulting ProductionBatch
        qty_produced: Number of dish units produced
        total_cost: Sum of all line item costs
        cost_per_unit: total_cost / qty_produced
        recipe_date: Production date
        status: Always "Completed" for persisted recipes
        created_by: Operator name
    """

    __tablename__ = "recipes"

    dish_id = Column(Integer, ForeignKey("dishes.id", ondelete="RESTRICT"), nullable=False)
    dish_name = Column(String(200), nullable=False)
    barcode = Column(String(100), nullable=True)
    batch_number = Column(String(100), nullable=False, index=True)

    qty_produced = Column(Numeric(14, 4), nullable=False)
    total_cost = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    cost_per_unit = Column(Numeric(14, 6), nullable=False, default=Decimal("0"))

    recipe_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=RECIPE_STATUS_COMPLETED)
    created_by = Column(String(100), nullable=True)

    dish = relationship("Dish", back_populates="recipes")
    line_items = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )
    production_batch = relationship("ProductionBatch", back_populates="recipe", uselist=False)

    __table_args__ = (
        Index("idx_recipe_dish", "dish_id"),
        Index("idx_recipe_date", "recipe_date"),
        CheckConstraint("qty_produced > 0", name="ck_recipe_qty_produced_positive"),
        CheckConstraint("total_cost >= 0", name="ck_recipe_total_cost_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"Recipe(id={self.id}, dish_id={self.dish_id}, "
            f"batch_number='{self.batch_number}', qty_produced={self.qty_produced})"
        )


class RecipeIngredient(BaseModel):
    """
    Priced ingredient issuance belonging to a Recipe.

    Attributes:
        recipe_id: Parent recipe
        position: 1-based order of entry within the recipe
        ingredient_id: Ingredient that was issued
        ingredient_name: Ingredient name at the time of issue
        unit_measure: Ingredient base unit
        convert_unit: Unit the quantity was issued in
        qty_issued: Quantity issued, in convert_unit
        qty_in_base: Quantity issued, in unit_measure
        rate: Cost per base unit used for pricing
        total_cost: qty_in_base * rate
        stock_before: Ingredient stock when the item was entered
        remaining_qty: Advisory stock left after the issue (never below zero)
        conversion_status: How qty_issued was turned into qty_in_base
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    ingredient_name = Column(String(200), nullable=False)

    unit_measure = Column(String(20), nullable=False)
    convert_unit = Column(String(20), nullable=False)
    qty_issued = Column(Numeric(14, 4), nullable=False)
    qty_in_base = Column(Numeric(14, 6), nullable=False)
    rate = Column(Numeric(14, 6), nullable=False)
    total_cost = Column(Numeric(14, 4), nullable=False)
    stock_before = Column(Numeric(14, 4), nullable=False)
    remaining_qty = Column(Numeric(14, 4), nullable=False)
    conversion_status = Column(String(30), nullable=False)

    recipe = relationship("Recipe", back_populates="line_items")
    ingredient = relationship("Ingredient", back_populates="line_items")

    __table_args__ = (
        Index("idx_recipe_ingredient_recipe", "recipe_id"),
        Index("idx_recipe_ingredient_ingredient", "ingredient_id"),
        CheckConstraint("qty_issued > 0", name="ck_recipe_ingredient_qty_positive"),
        CheckConstraint("total_cost >= 0", name="ck_recipe_ingredient_cost_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"RecipeIngredient(recipe_id={self.recipe_id}, ingredient_id={self.ingredient_id}, "
            f"qty_issued={self.qty_issued} {self.convert_unit})"
        )
