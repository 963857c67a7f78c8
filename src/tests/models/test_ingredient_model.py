"""Tests for the ingredient, dish and production batch models."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from src.models import Dish, Ingredient, ProductionBatch, Recipe
from src.services.database import session_scope


def test_base_unit_stored_as_canonical_symbol(test_db):
    ingredient = Ingredient(code="ING-1", name="Milk", base_unit=" litres ")
    assert ingredient.base_unit == "L"


def test_unknown_base_unit_kept_verbatim(test_db):
    ingredient = Ingredient(code="ING-1", name="Saffron", base_unit="pinch")
    assert ingredient.base_unit == "pinch"


def test_stock_value_and_low_stock():
    ingredient = Ingredient(
        code="ING-1",
        name="Potato",
        base_unit="KG",
        cost_per_base_unit=Decimal("80"),
        current_stock=Decimal("5"),
        reorder_point=Decimal("10"),
    )
    assert ingredient.stock_value == Decimal("400")
    assert ingredient.is_low_stock


def test_negative_stock_rejected_by_database(test_db):
    with pytest.raises(IntegrityError):
        with session_scope() as session:
            session.add(
                Ingredient(code="ING-1", name="Potato", base_unit="KG", current_stock=Decimal("-1"))
            )


def test_to_dict_serializes_decimals_and_dates(test_db):
    with session_scope() as session:
        dish = Dish(code="DSH-1", name="Chips", sales_cost=Decimal("15"))
        session.add(dish)
        session.flush()
        recipe = Recipe(
            dish_id=dish.id,
            dish_name=dish.name,
            batch_number="BATCH-20251228-205740-1",
            qty_produced=Decimal("40"),
            total_cost=Decimal("310"),
            cost_per_unit=Decimal("7.75"),
            recipe_date=date(2025, 12, 28),
        )
        session.add(recipe)
        session.flush()
        data = recipe.to_dict()

    assert data["recipe_date"] == "2025-12-28"
    assert data["cost_per_unit"] == "7.75"
    assert data["status"] == "Completed"
    assert data["uuid"]


def test_batch_number_unique(test_db):
    with session_scope() as session:
        dish = Dish(code="DSH-1", name="Chips")
        session.add(dish)
        session.flush()
        recipe = Recipe(
            dish_id=dish.id,
            dish_name="Chips",
            batch_number="BATCH-1",
            qty_produced=Decimal("1"),
            recipe_date=date(2025, 12, 28),
        )
        session.add(recipe)
        session.flush()
        dish_id, recipe_id = dish.id, recipe.id

    def _batch():
        return ProductionBatch(
            batch_number="BATCH-1",
            dish_id=dish_id,
            dish_name="Chips",
            recipe_id=recipe_id,
            qty_produced=Decimal("1"),
            qty_remaining=Decimal("1"),
            cost_per_unit=Decimal("1"),
            total_production_cost=Decimal("1"),
            production_date=date(2025, 12, 28),
        )

    with session_scope() as session:
        session.add(_batch())

    with pytest.raises(IntegrityError):
        with session_scope() as session:
            session.add(_batch())
