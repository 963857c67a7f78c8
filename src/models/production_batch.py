"""
ProductionBatch model for costed dish stock.

A production batch is the output of one finalized recipe session: a
quantity of a dish sitting in stock with a known cost per unit. Downstream
sales and spoilage draw it down; the costing engine only creates it.
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
from .enums import BatchStatus


class ProductionBatch(BaseModel):
    """
    ProductionBatch model.

    Attributes:
        batch_number: Unique batch code (BATCH-YYYYMMDD-HHMMSS-<dish id>)
        dish_id: Dish that was produced
        dish_name: Dish name at the time of production
        recipe_id: Recipe the batch was produced from
        qty_produced: Units produced
        qty_remaining: Units still in stock (starts at qty_produced)
        qty_sold: Units sold (starts at 0)
        cost_per_unit: total_production_cost / qty_produced
        total_production_cost: Sum of ingredient costs
        selling_price: Dish selling price at the time of production
        production_date: Date produced
        expiry_date: Optional expiry date
        status: BatchStatus value
        created_by: Operator name
    """

    __tablename__ = "production_batches"

    batch_number = Column(String(100), nullable=False, unique=True, index=True)
    dish_id = Column(Integer, ForeignKey("dishes.id", ondelete="RESTRICT"), nullable=False)
    dish_name = Column(String(200), nullable=False)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="RESTRICT"), nullable=False)

    qty_produced = Column(Numeric(14, 4), nullable=False)
    qty_remaining = Column(Numeric(14, 4), nullable=False)
    qty_sold = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))

    cost_per_unit = Column(Numeric(14, 6), nullable=False)
    total_production_cost = Column(Numeric(14, 4), nullable=False)
    selling_price = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))

    production_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=BatchStatus.IN_STOCK.value)
    created_by = Column(String(100), nullable=True)

    dish = relationship("Dish", back_populates="production_batches")
    recipe = relationship("Recipe", back_populates="production_batch")

    __table_args__ = (
        Index("idx_production_batch_dish", "dish_id"),
        Index("idx_production_batch_status", "status"),
        Index("idx_production_batch_date", "production_date"),
        CheckConstraint("qty_produced > 0", name="ck_production_batch_qty_positive"),
        CheckConstraint("qty_remaining >= 0", name="ck_production_batch_remaining_non_negative"),
        CheckConstraint("qty_sold >= 0", name="ck_production_batch_sold_non_negative"),
        CheckConstraint("cost_per_unit >= 0", name="ck_production_batch_cost_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"ProductionBatch(batch_number='{self.batch_number}', dish_id={self.dish_id}, "
            f"qty_remaining={self.qty_remaining})"
        )
