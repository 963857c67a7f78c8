"""
Cost calculation for ingredient issuances.

This module provides:
- calculate_issue_cost(): money cost of an issued quantity
- calculate_remaining_stock(): advisory stock preview after an issue
- CostCalculator: prices an issuance against live ingredient data looked up
  through an explicit repository

Monetary results keep full Decimal precision; display rounding belongs to
the caller.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from src.services.catalog_service import IngredientRepository, IngredientSnapshot
from src.services.unit_converter import ConversionResult, convert_to_base_unit
from src.utils.config import get_config
from src.utils.validators import to_decimal


def calculate_issue_cost(
    quantity: Any,
    issued_unit: Optional[str],
    cost_per_base_unit: Any,
    base_unit: str,
    *,
    strict: bool = False,
) -> Decimal:
    """
    Calculate the cost of an issued quantity.

    Example:
        500 ML of oil at 300 per L -> 0.5 * 300 = 150

    Args:
        quantity: Issued quantity
        issued_unit: Unit issued in (blank means base unit)
        cost_per_base_unit: Cost of one base unit
        base_unit: Ingredient base unit
        strict: Reject unconvertible units instead of passing them through

    Returns:
        Cost as Decimal, unrounded
    """
    result = convert_to_base_unit(quantity, issued_unit, base_unit, strict=strict)
    return result.quantity * to_decimal(cost_per_base_unit)


def calculate_remaining_stock(
    current_stock: Any,
    quantity: Any,
    issued_unit: Optional[str],
    base_unit: str,
    *,
    strict: bool = False,
) -> Decimal:
    """
    Calculate stock left after an issue, clamped at zero.

    This is a preview only. It never raises for over-issuance; stock is
    enforced when the production is committed.

    Returns:
        max(0, current_stock - converted quantity)
    """
    result = convert_to_base_unit(quantity, issued_unit, base_unit, strict=strict)
    remaining = to_decimal(current_stock) - result.quantity
    return max(Decimal("0"), remaining)


@dataclass(frozen=True)
class PricedIssue:
    """
    An ingredient issuance priced against live ingredient data.

    Attributes:
        ingredient: Ingredient snapshot used for pricing
        issued_quantity: Quantity as issued
        conversion: Base-unit quantity and conversion decision
        cost: conversion.quantity * ingredient.cost_per_base_unit
        remaining_stock: Advisory stock after the issue, never below zero
    """

    ingredient: IngredientSnapshot
    issued_quantity: Decimal
    conversion: ConversionResult
    cost: Decimal
    remaining_stock: Decimal

    @property
    def base_quantity(self) -> Decimal:
        return self.conversion.quantity


class CostCalculator:
    """
    Prices ingredient issuances.

    Ingredient data comes from the repository passed in, never from a
    module-level cache, so every price reflects the row as it is now.

    Args:
        repository: Object providing get_ingredient(id) -> IngredientSnapshot
        strict: Reject unknown/incompatible units. Defaults to the
            RECIPE_COSTING_STRICT_UNITS configuration setting.
    """

    def __init__(self, repository: Optional[IngredientRepository] = None, strict: Optional[bool] = None):
        self.repository = repository if repository is not None else IngredientRepository()
        self.strict = get_config().strict_units if strict is None else strict

    def price_issue(self, ingredient_id: int, quantity: Any, issued_unit: Optional[str] = None) -> PricedIssue:
        """
        Price an issuance of an ingredient.

        Args:
            ingredient_id: Ingredient to issue
            quantity: Quantity issued
            issued_unit: Unit issued in; blank means the ingredient's base unit

        Returns:
            PricedIssue

        Raises:
            IngredientNotFound: From the repository
            UnknownUnitError / IncompatibleUnitsError: strict mode only
        """
        ingredient = self.repository.get_ingredient(ingredient_id)
        return self.price_snapshot(ingredient, quantity, issued_unit)

    def price_snapshot(
        self, ingredient: IngredientSnapshot, quantity: Any, issued_unit: Optional[str] = None
    ) -> PricedIssue:
        """Price an issuance against an already-loaded ingredient snapshot."""
        qty = to_decimal(quantity)
        conversion = convert_to_base_unit(qty, issued_unit, ingredient.base_unit, strict=self.strict)
        cost = conversion.quantity * ingredient.cost_per_base_unit
        remaining = max(Decimal("0"), ingredient.current_stock - conversion.quantity)
        return PricedIssue(
            ingredient=ingredient,
            issued_quantity=qty,
            conversion=conversion,
            cost=cost,
            remaining_stock=remaining,
        )
