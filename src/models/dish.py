"""
Dish model.

A dish is a sellable product made from ingredients (e.g. "Chips"). It is
read-only to the costing engine and only labels recipes and batches.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Column, Numeric, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class Dish(BaseModel):
    """
    Dish (sellable product) model.

    Attributes:
        code: Unique product code
        name: Display name
        barcode: Optional barcode printed on labels
        sales_cost: Selling price per unit
        purchase_cost: Reference purchase cost per unit
        active: Inactive dishes cannot start new recipes
    """

    __tablename__ = "dishes"

    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    barcode = Column(String(100), nullable=True)
    sales_cost = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    purchase_cost = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    active = Column(Boolean, nullable=False, default=True)

    recipes = relationship("Recipe", back_populates="dish", lazy="select")
    production_batches = relationship("ProductionBatch", back_populates="dish", lazy="select")
