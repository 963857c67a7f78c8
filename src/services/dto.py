"""Data Transfer Objects for the service layer.

This module provides immutable data structures passed between the recipe
session and the production gateway, plus pagination parameters for list
queries.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from src.services.catalog_service import DishSnapshot
from src.services.unit_converter import ConversionDecision


@dataclass(frozen=True)
class RecipeLineItem:
    """One priced ingredient issuance inside a recipe session.

    Line items are never edited in place. Production figures (produced
    quantity and cost per dish) are only set on the session's last item;
    earlier items carry cost_per_dish = 0.

    Attributes:
        position: 1-based order of entry
        ingredient_id: Ingredient issued
        ingredient_name: Ingredient name when issued
        base_unit: Ingredient base unit
        issued_quantity: Quantity as entered
        issued_unit: Unit as entered (base unit if left blank)
        base_quantity: Quantity in base units
        rate: Cost per base unit used for pricing
        cost: base_quantity * rate
        stock_before: Ingredient stock when the item was entered
        remaining_stock: Advisory stock after the issue, never below zero
        decision: Conversion decision record
        produced_quantity: Dish units produced (last item only)
        cost_per_dish: Running total cost / produced_quantity (last item only)
    """

    position: int
    ingredient_id: int
    ingredient_name: str
    base_unit: str
    issued_quantity: Decimal
    issued_unit: str
    base_quantity: Decimal
    rate: Decimal
    cost: Decimal
    stock_before: Decimal
    remaining_stock: Decimal
    decision: ConversionDecision
    produced_quantity: Optional[Decimal] = None
    cost_per_dish: Decimal = Decimal("0")

    @property
    def has_conversion_warning(self) -> bool:
        """True when the base quantity is a pass-through guess."""
        return not self.decision.is_faithful

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient_name,
            "base_unit": self.base_unit,
            "issued_quantity": self.issued_quantity,
            "issued_unit": self.issued_unit,
            "base_quantity": self.base_quantity,
            "rate": self.rate,
            "cost": self.cost,
            "stock_before": self.stock_before,
            "remaining_stock": self.remaining_stock,
            "produced_quantity": self.produced_quantity,
            "cost_per_dish": self.cost_per_dish,
            "conversion": self.decision.to_dict(),
        }


@dataclass(frozen=True)
class ProductionDraft:
    """Everything the production gateway needs to commit one recipe session.

    Attributes:
        dish: Dish snapshot taken when the dish was selected
        batch_number: Batch number assigned on the first line item
        recipe_date: Production date
        line_items: All N line items in entry order
        produced_quantity: Dish units produced (from the last line item)
        total_cost: Sum of line item costs
        cost_per_unit: total_cost / produced_quantity
        created_by: Operator name
        expiry_date: Optional batch expiry date
    """

    dish: DishSnapshot
    batch_number: str
    recipe_date: date
    line_items: Tuple[RecipeLineItem, ...]
    produced_quantity: Decimal
    total_cost: Decimal
    cost_per_unit: Decimal
    created_by: Optional[str] = None
    expiry_date: Optional[date] = None

    def base_quantities_by_ingredient(self) -> Dict[int, Decimal]:
        """Total base-unit quantity to deduct per ingredient, in first-seen order."""
        totals: Dict[int, Decimal] = {}
        for item in self.line_items:
            totals[item.ingredient_id] = totals.get(item.ingredient_id, Decimal("0")) + item.base_quantity
        return totals


@dataclass
class PaginationParams:
    """Page-based pagination for list queries.

    Attributes:
        page: Page number (1-indexed, default 1)
        per_page: Items per page (default 50, max 1000)

    Raises:
        ValueError: If page < 1, per_page < 1, or per_page > 1000
    """

    page: int = 1
    per_page: int = 50

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.per_page <= 1000:
            raise ValueError("per_page must be between 1 and 1000")

    def offset(self) -> int:
        """SQL OFFSET for this page."""
        return (self.page - 1) * self.per_page
