"""
Ingredient model for stock-keeping ingredients.

An ingredient is bought in packs (e.g. a 5 L jerrycan of oil) but stocked
and costed in a single base unit (L). Recipe issuances in any compatible
unit are converted into that base unit before pricing and depletion.
"""

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship, validates

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient model.

    Attributes:
        code: Short unique product code (e.g. "ING-001")
        name: Unique display name (e.g. "Potato")
        base_unit: Canonical unit symbol in which stock and cost are denominated
        pack_size: Size of one purchase pack, in base units
        price_per_pack: Purchase price of one pack
        cost_per_base_unit: Monetary cost of one base unit
        current_stock: Quantity on hand, in base units
        reorder_point: Stock level at or below which the ingredient is low
        active: Inactive ingredients are hidden from listings
        notes: Free text
    """

    __tablename__ = "ingredients"

    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False, unique=True, index=True)
    base_unit = Column(String(20), nullable=False)

    pack_size = Column(Numeric(14, 4), nullable=False, default=Decimal("1"))
    price_per_pack = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    cost_per_base_unit = Column(Numeric(14, 6), nullable=False, default=Decimal("0"))

    current_stock = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    reorder_point = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))

    active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    line_items = relationship("RecipeIngredient", back_populates="ingredient", lazy="select")

    __table_args__ = (
        Index("idx_ingredient_active", "active"),
        CheckConstraint("current_stock >= 0", name="ck_ingredient_stock_non_negative"),
        CheckConstraint("cost_per_base_unit >= 0", name="ck_ingredient_cost_non_negative"),
        CheckConstraint("pack_size > 0", name="ck_ingredient_pack_size_positive"),
    )

    @validates("base_unit")
    def _normalize_base_unit(self, _key: str, value: str) -> str:
        """Store the canonical symbol, e.g. "Liters" becomes "L"."""
        # Local import to avoid circular dependency
        from src.services.unit_converter import normalize_unit

        return normalize_unit(value).symbol

    @property
    def is_low_stock(self) -> bool:
        """True when stock is at or below the reorder point."""
        return (self.current_stock or 0) <= (self.reorder_point or 0)

    @property
    def stock_value(self) -> Decimal:
        """Value of stock on hand at the current base-unit cost."""
        return Decimal(str(self.current_stock or 0)) * Decimal(str(self.cost_per_base_unit or 0))

    def __repr__(self) -> str:
        """String representation of ingredient."""
        return (
            f"Ingredient(id={self.id}, name='{self.name}', "
            f"stock={self.current_stock} {self.base_unit})"
        )
