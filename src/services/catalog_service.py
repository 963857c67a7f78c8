"""
Catalog Service - ingredient and dish registry.

This module provides:
- Ingredient creation with base-unit normalization and cost derivation
- Dish creation and lookup
- Purchase receipts (stock increments in any convertible unit)
- Low-stock listing
- IngredientRepository: read-only snapshots used by the cost calculator and
  recipe sessions

Snapshots are frozen dataclasses detached from any database session, so a
recipe session can hold them without keeping a transaction open.
"""

from contextlib import nullcontext
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update

from src.models import Dish, Ingredient
from src.services.database import session_scope
from src.services.exceptions import DishNotFound, IngredientNotFound, ValidationError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import convert_to_base_unit, normalize_unit
from src.utils.config import get_config
from src.utils.constants import DEFAULT_BASE_UNIT, STOCK_DECIMAL_PLACES
from src.utils.validators import (
    to_decimal,
    to_stock_quantity,
    validate_non_negative_number,
    validate_positive_number,
    validate_required_string,
)

logger = get_service_logger(__name__)


# =============================================================================
# Snapshots
# =============================================================================


@dataclass(frozen=True)
class IngredientSnapshot:
    """Point-in-time view of an ingredient's costing data."""

    id: int
    code: str
    name: str
    base_unit: str
    cost_per_base_unit: Decimal
    current_stock: Decimal

    @classmethod
    def from_model(cls, ingredient: Ingredient) -> "IngredientSnapshot":
        return cls(
            id=ingredient.id,
            code=ingredient.code,
            name=ingredient.name,
            base_unit=ingredient.base_unit,
            cost_per_base_unit=to_decimal(ingredient.cost_per_base_unit or 0),
            current_stock=to_decimal(ingredient.current_stock or 0),
        )


@dataclass(frozen=True)
class DishSnapshot:
    """Point-in-time view of a dish."""

    id: int
    code: str
    name: str
    barcode: Optional[str]
    sales_cost: Decimal
    purchase_cost: Decimal

    @classmethod
    def from_model(cls, dish: Dish) -> "DishSnapshot":
        return cls(
            id=dish.id,
            code=dish.code,
            name=dish.name,
            barcode=dish.barcode,
            sales_cost=to_decimal(dish.sales_cost or 0),
            purchase_cost=to_decimal(dish.purchase_cost or 0),
        )


class IngredientRepository:
    """
    Database-backed lookup of live ingredient and dish data.

    Every call reads the current row, so costs and stock reflect purchases
    made while a recipe session is open.
    """

    def get_ingredient(self, ingredient_id: int) -> IngredientSnapshot:
        """
        Raises:
            IngredientNotFound: If no active ingredient has this ID
        """
        with session_scope() as session:
            ingredient = session.get(Ingredient, ingredient_id)
            if ingredient is None or not ingredient.active:
                raise IngredientNotFound(ingredient_id)
            return IngredientSnapshot.from_model(ingredient)

    def get_dish(self, dish_id: int) -> DishSnapshot:
        """
        Raises:
            DishNotFound: If no active dish has this ID
        """
        with session_scope() as session:
            dish = session.get(Dish, dish_id)
            if dish is None or not dish.active:
                raise DishNotFound(dish_id)
            return DishSnapshot.from_model(dish)


# =============================================================================
# Ingredient Operations
# =============================================================================


def create_ingredient(ingredient_data: Dict[str, Any], *, session=None) -> Ingredient:
    """
    Create a new ingredient.

    The base unit is normalized once here (e.g. "Liters" -> "L"). When
    cost_per_base_unit is not supplied it is derived as
    price_per_pack / pack_size.

    Args:
        ingredient_data: Dictionary with keys:
            - code (str, required)
            - name (str, required)
            - base_unit (str, default "KG")
            - pack_size (number > 0, default 1)
            - price_per_pack (number >= 0, default 0)
            - cost_per_base_unit (number >= 0, optional)
            - current_stock (number >= 0, default 0)
            - reorder_point (number >= 0, default 0)
            - notes (str, optional)
        session: Optional database session

    Returns:
        The created Ingredient

    Raises:
        ValidationError: If any field is invalid or code/name already exist
    """
    errors = []
    for field, label in (("code", "Code"), ("name", "Name")):
        is_valid, error = validate_required_string(ingredient_data.get(field), label)
        if not is_valid:
            errors.append(error)

    base_unit = ingredient_data.get("base_unit") or DEFAULT_BASE_UNIT
    if not normalize_unit(base_unit).recognized and get_config().strict_units:
        errors.append(f"Base unit: '{base_unit}' is not a known unit")

    numeric_fields = {
        "pack_size": (ingredient_data.get("pack_size", 1), validate_positive_number),
        "price_per_pack": (ingredient_data.get("price_per_pack", 0), validate_non_negative_number),
        "current_stock": (ingredient_data.get("current_stock", 0), validate_non_negative_number),
        "reorder_point": (ingredient_data.get("reorder_point", 0), validate_non_negative_number),
    }
    if ingredient_data.get("cost_per_base_unit") is not None:
        numeric_fields["cost_per_base_unit"] = (
            ingredient_data["cost_per_base_unit"],
            validate_non_negative_number,
        )
    for field, (value, validator) in numeric_fields.items():
        is_valid, error = validator(value, field)
        if not is_valid:
            errors.append(error)

    if errors:
        raise ValidationError(errors)

    pack_size = to_decimal(numeric_fields["pack_size"][0])
    price_per_pack = to_decimal(numeric_fields["price_per_pack"][0])
    if "cost_per_base_unit" in numeric_fields:
        cost_per_base_unit = to_decimal(numeric_fields["cost_per_base_unit"][0])
    else:
        cost_per_base_unit = price_per_pack / pack_size

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        _ensure_unique(session, Ingredient, "Ingredient", ingredient_data)

        ingredient = Ingredient(
            code=ingredient_data["code"].strip(),
            name=ingredient_data["name"].strip(),
            base_unit=base_unit,
            pack_size=pack_size,
            price_per_pack=price_per_pack,
            cost_per_base_unit=cost_per_base_unit,
            current_stock=to_decimal(numeric_fields["current_stock"][0]),
            reorder_point=to_decimal(numeric_fields["reorder_point"][0]),
            notes=ingredient_data.get("notes"),
        )
        session.add(ingredient)
        session.flush()

        log_operation(
            logger,
            operation="create_ingredient",
            outcome="success",
            ingredient_id=ingredient.id,
            base_unit=ingredient.base_unit,
        )
        return ingredient


def get_ingredient(ingredient_id: int, *, session=None) -> Ingredient:
    """
    Retrieve an ingredient by ID.

    Raises:
        IngredientNotFound: If the ingredient doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        ingredient = session.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise IngredientNotFound(ingredient_id)
        return ingredient


def list_ingredients(*, active_only: bool = True, session=None) -> List[Dict[str, Any]]:
    """
    List ingredients ordered by name.

    Returns:
        List of ingredient dictionaries with an added "stock_value" field
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(Ingredient)
        if active_only:
            query = query.filter(Ingredient.active.is_(True))
        result = []
        for ingredient in query.order_by(Ingredient.name).all():
            data = ingredient.to_dict()
            data["stock_value"] = str(ingredient.stock_value)
            result.append(data)
        return result


def receive_stock(
    ingredient_id: int,
    quantity: Any,
    unit: Optional[str] = None,
    *,
    session=None,
) -> Dict[str, Any]:
    """
    Record a purchase receipt by adding stock to an ingredient.

    The quantity is converted into the ingredient's base unit. Unknown or
    incompatible units are always rejected here, whatever the strictness
    setting, because a guessed quantity would corrupt the stock figure.

    Args:
        ingredient_id: Ingredient receiving stock
        quantity: Quantity received (> 0)
        unit: Unit received in; defaults to the ingredient's base unit
        session: Optional database session

    Returns:
        Dict with "ingredient_id", "received" (base units), "base_unit",
        "current_stock"

    Raises:
        ValidationError: Non-positive quantity
        UnknownUnitError / IncompatibleUnitsError: Unit cannot be converted
        IngredientNotFound: If the ingredient doesn't exist
    """
    is_valid, error = validate_positive_number(quantity, "Quantity received")
    if not is_valid:
        raise ValidationError([error])

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        ingredient = session.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise IngredientNotFound(ingredient_id)

        result = convert_to_base_unit(quantity, unit, ingredient.base_unit, strict=True)
        received = to_stock_quantity(result.quantity)

        # Increment in SQL so concurrent receipts and issues don't overwrite each other,
        # rounded to the stock column's scale
        session.execute(
            update(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .values(
                current_stock=func.round(
                    Ingredient.current_stock + received, STOCK_DECIMAL_PLACES
                )
            )
        )
        session.refresh(ingredient)

        log_operation(
            logger,
            operation="receive_stock",
            outcome="success",
            ingredient_id=ingredient_id,
            received=str(received),
            base_unit=ingredient.base_unit,
        )
        return {
            "ingredient_id": ingredient_id,
            "received": received,
            "base_unit": ingredient.base_unit,
            "current_stock": to_stock_quantity(ingredient.current_stock),
        }


def get_low_stock_ingredients(*, session=None) -> List[Dict[str, Any]]:
    """
    List active ingredients whose stock is at or below their reorder point.

    Returns:
        List of dicts with "id", "code", "name", "base_unit", "current_stock",
        "reorder_point" and "shortfall", lowest stock first
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        ingredients = (
            session.query(Ingredient)
            .filter(Ingredient.active.is_(True))
            .filter(Ingredient.current_stock <= Ingredient.reorder_point)
            .order_by(Ingredient.current_stock, Ingredient.name)
            .all()
        )
        return [
            {
                "id": ingredient.id,
                "code": ingredient.code,
                "name": ingredient.name,
                "base_unit": ingredient.base_unit,
                "current_stock": to_decimal(ingredient.current_stock),
                "reorder_point": to_decimal(ingredient.reorder_point),
                "shortfall": to_decimal(ingredient.reorder_point)
                - to_decimal(ingredient.current_stock),
            }
            for ingredient in ingredients
        ]


# =============================================================================
# Dish Operations
# =============================================================================


def create_dish(dish_data: Dict[str, Any], *, session=None) -> Dish:
    """
    Create a new dish.

    Args:
        dish_data: Dictionary with keys code, name (required), barcode,
            sales_cost, purchase_cost (optional, >= 0)
        session: Optional database session

    Returns:
        The created Dish

    Raises:
        ValidationError: If any field is invalid or the code already exists
    """
    errors = []
    for field, label in (("code", "Code"), ("name", "Name")):
        is_valid, error = validate_required_string(dish_data.get(field), label)
        if not is_valid:
            errors.append(error)
    for field in ("sales_cost", "purchase_cost"):
        is_valid, error = validate_non_negative_number(dish_data.get(field, 0), field)
        if not is_valid:
            errors.append(error)
    if errors:
        raise ValidationError(errors)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        if session.query(Dish).filter(Dish.code == dish_data["code"].strip()).first():
            raise ValidationError([f"Dish code '{dish_data['code']}' already exists"])

        dish = Dish(
            code=dish_data["code"].strip(),
            name=dish_data["name"].strip(),
            barcode=dish_data.get("barcode"),
            sales_cost=to_decimal(dish_data.get("sales_cost", 0)),
            purchase_cost=to_decimal(dish_data.get("purchase_cost", 0)),
        )
        session.add(dish)
        session.flush()
        return dish


def get_dish(dish_id: int, *, session=None) -> Dish:
    """
    Retrieve a dish by ID.

    Raises:
        DishNotFound: If the dish doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        dish = session.get(Dish, dish_id)
        if dish is None:
            raise DishNotFound(dish_id)
        return dish


def _ensure_unique(session, model, label: str, data: Dict[str, Any]) -> None:
    errors = []
    if session.query(model).filter(model.code == data["code"].strip()).first():
        errors.append(f"{label} code '{data['code'].strip()}' already exists")
    if session.query(model).filter(model.name == data["name"].strip()).first():
        errors.append(f"{label} name '{data['name'].strip()}' already exists")
    if errors:
        raise ValidationError(errors)
