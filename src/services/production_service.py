"""
Production Service - persistence gateway for finalized recipe sessions.

This module provides functions for:
- Atomically committing a recipe, its line items, the resulting production
  batch, and the matching ingredient stock deductions
- Conditional stock decrements that never drive stock negative
- Querying production batches and recipes

Atomicity:
    commit_production() runs every write in one session. Any failure
    (insufficient stock, constraint violation, driver error) rolls back the
    recipe, line items, stock decrements and batch together.
    When the caller supplies its own session the writes run inside a
    SAVEPOINT, so a failure leaves nothing pending for the caller to commit.

Concurrency:
    Stock is decremented with a single conditional UPDATE
    ("... SET current_stock = round(current_stock - :x, 4)
    WHERE round(current_stock, 4) >= :x"),
    so two commits racing for the same ingredient cannot both succeed when
    only one can be covered.
"""

from contextlib import contextmanager, nullcontext
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from src.models import BatchStatus, Dish, Ingredient, ProductionBatch, Recipe, RecipeIngredient
from src.services.batch_number import ensure_unique_batch_number
from src.services.database import session_scope
from src.services.dto import PaginationParams, ProductionDraft, RecipeLineItem
from src.services.exceptions import (
    DishNotFound,
    IngredientNotFound,
    InsufficientStock,
    PersistenceFailure,
    ProductionBatchNotFound,
    RecipeNotFound,
    ServiceError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import (
    DEFAULT_CREATED_BY,
    RECIPE_STATUS_COMPLETED,
    STOCK_DECIMAL_PLACES,
)
from src.utils.validators import to_decimal, to_stock_quantity

logger = get_service_logger(__name__)


# =============================================================================
# Stock
# =============================================================================


def decrement_stock(ingredient_id: int, amount: Decimal, *, session) -> None:
    """
    Deduct stock from an ingredient if, and only if, enough is on hand.

    Must run inside the caller's transaction so the deduction commits or
    rolls back with the rest of the production.

    Both sides are compared and stored at the stock column's scale. SQLite
    keeps Numeric values as binary floats, so unrounded arithmetic drifts
    (0.3 - 0.1 - 0.1 < 0.1) and would refuse an exactly sufficient issue.

    Args:
        ingredient_id: Ingredient to deduct from
        amount: Quantity in the ingredient's base unit
        session: Database session (required)

    Raises:
        IngredientNotFound: If the ingredient doesn't exist
        InsufficientStock: If live stock is below amount
    """
    amount = to_stock_quantity(amount)
    stmt = (
        update(Ingredient)
        .where(Ingredient.id == ingredient_id)
        .where(func.round(Ingredient.current_stock, STOCK_DECIMAL_PLACES) >= amount)
        .values(
            current_stock=func.round(Ingredient.current_stock - amount, STOCK_DECIMAL_PLACES)
        )
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount == 1:
        return

    # Read fresh column values; the identity map may hold a stale object
    row = (
        session.query(Ingredient.name, Ingredient.current_stock, Ingredient.base_unit)
        .filter(Ingredient.id == ingredient_id)
        .first()
    )
    if row is None:
        raise IngredientNotFound(ingredient_id)
    raise InsufficientStock(
        row.name, amount, to_stock_quantity(row.current_stock), row.base_unit
    )


# =============================================================================
# Recipe and Batch Persistence
# =============================================================================


def save_recipe(draft: ProductionDraft, batch_number: str, *, session) -> Recipe:
    """Insert the recipe master record for a draft and return it (with ID)."""
    recipe = Recipe(
        dish_id=draft.dish.id,
        dish_name=draft.dish.name,
        barcode=draft.dish.barcode,
        batch_number=batch_number,
        qty_produced=draft.produced_quantity,
        total_cost=draft.total_cost,
        cost_per_unit=draft.cost_per_unit,
        recipe_date=draft.recipe_date,
        status=RECIPE_STATUS_COMPLETED,
        created_by=draft.created_by or DEFAULT_CREATED_BY,
    )
    session.add(recipe)
    session.flush()
    return recipe


def save_line_items(
    recipe_id: int, items: List[RecipeLineItem], *, session
) -> List[RecipeIngredient]:
    """Insert the line items of a recipe in entry order."""
    records = []
    for item in items:
        record = RecipeIngredient(
            recipe_id=recipe_id,
            position=item.position,
            ingredient_id=item.ingredient_id,
            ingredient_name=item.ingredient_name,
            unit_measure=item.base_unit,
            convert_unit=item.issued_unit,
            qty_issued=item.issued_quantity,
            qty_in_base=item.base_quantity,
            rate=item.rate,
            total_cost=item.cost,
            stock_before=item.stock_before,
            remaining_qty=item.remaining_stock,
            conversion_status=item.decision.status.value,
        )
        session.add(record)
        records.append(record)
    session.flush()
    return records


def save_production_batch(
    draft: ProductionDraft, batch_number: str, recipe_id: int, *, session
) -> ProductionBatch:
    """Insert the production batch for a committed recipe."""
    batch = ProductionBatch(
        batch_number=batch_number,
        dish_id=draft.dish.id,
        dish_name=draft.dish.name,
        recipe_id=recipe_id,
        qty_produced=draft.produced_quantity,
        qty_remaining=draft.produced_quantity,
        qty_sold=Decimal("0"),
        cost_per_unit=draft.cost_per_unit,
        total_production_cost=draft.total_cost,
        selling_price=draft.dish.sales_cost,
        production_date=draft.recipe_date,
        expiry_date=draft.expiry_date,
        status=BatchStatus.IN_STOCK.value,
        created_by=draft.created_by or DEFAULT_CREATED_BY,
    )
    session.add(batch)
    session.flush()
    return batch


@contextmanager
def _savepoint(session):
    """Yield session inside a nested transaction that rolls back on error."""
    with session.begin_nested():
        yield session


def commit_production(draft: ProductionDraft, *, session=None) -> Dict[str, Any]:
    """
    Commit a finalized recipe session.

    This function atomically:
    1. Validates the dish still exists
    2. Resolves a free batch number (appending -2, -3... on collision)
    3. Inserts the recipe master record
    4. Inserts its line items
    5. Deducts each ingredient's stock by its total base-unit quantity
    6. Inserts the production batch (In Stock, nothing sold)

    Args:
        draft: ProductionDraft built by RecipeSession.finalize()
        session: Optional database session (uses session_scope if not provided).
            A caller-owned session gets a SAVEPOINT, so a failure discards
            this commit's writes but leaves the caller's earlier work intact.

    Returns:
        Batch dictionary (see get_batch()) plus "recipe_id"

    Raises:
        DishNotFound: If the dish no longer exists
        IngredientNotFound: If an ingredient no longer exists
        InsufficientStock: If any ingredient's live stock is too low
        PersistenceFailure: If the database rejects any write
    """
    cm = _savepoint(session) if session is not None else session_scope()
    try:
        with cm as session:
            if session.get(Dish, draft.dish.id) is None:
                raise DishNotFound(draft.dish.id)

            batch_number = ensure_unique_batch_number(
                draft.batch_number, lambda candidate: _batch_number_taken(session, candidate)
            )

            recipe = save_recipe(draft, batch_number, session=session)
            save_line_items(recipe.id, list(draft.line_items), session=session)

            for ingredient_id, amount in draft.base_quantities_by_ingredient().items():
                decrement_stock(ingredient_id, amount, session=session)

            batch = save_production_batch(draft, batch_number, recipe.id, session=session)
            result = _batch_to_dict(batch)

    except ServiceError as e:
        log_operation(
            logger,
            operation="commit_production",
            outcome=type(e).__name__,
            level=logging.WARNING,
            batch_number=draft.batch_number,
            dish_id=draft.dish.id,
            error=str(e),
        )
        raise
    except SQLAlchemyError as e:
        log_operation(
            logger,
            operation="commit_production",
            outcome="persistence_failure",
            level=logging.ERROR,
            batch_number=draft.batch_number,
            dish_id=draft.dish.id,
            error=str(e),
        )
        raise PersistenceFailure(f"Failed to commit production: {e}", e) from e

    log_operation(
        logger,
        operation="commit_production",
        outcome="success",
        batch_number=result["batch_number"],
        recipe_id=result["recipe_id"],
        dish_id=result["dish_id"],
        total_cost=str(result["total_production_cost"]),
    )
    return result


def _batch_number_taken(session, batch_number: str) -> bool:
    return (
        session.query(ProductionBatch.id)
        .filter(ProductionBatch.batch_number == batch_number)
        .first()
        is not None
    )


# =============================================================================
# Queries
# =============================================================================


def get_batch(batch_number: str, *, session=None) -> Dict[str, Any]:
    """
    Get a production batch by batch number.

    Returns:
        Dict with batch_number, dish_id, dish_name, recipe_id, qty_produced,
        qty_remaining, qty_sold, cost_per_unit, total_production_cost,
        selling_price, production_date, expiry_date, status, created_at

    Raises:
        ProductionBatchNotFound: If no batch has this number
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batch = (
            session.query(ProductionBatch)
            .filter(ProductionBatch.batch_number == batch_number)
            .first()
        )
        if batch is None:
            raise ProductionBatchNotFound(batch_number)
        return _batch_to_dict(batch)


def list_batches(
    *,
    dish_id: Optional[int] = None,
    status: Optional[str] = None,
    pagination: Optional[PaginationParams] = None,
    session=None,
) -> List[Dict[str, Any]]:
    """
    List production batches, newest first.

    Args:
        dish_id: Optional filter by dish
        status: Optional filter by BatchStatus value
        pagination: Optional page/per_page; None returns all batches
        session: Optional database session

    Returns:
        List of batch dictionaries (see get_batch())
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(ProductionBatch)
        if dish_id is not None:
            query = query.filter(ProductionBatch.dish_id == dish_id)
        if status is not None:
            query = query.filter(ProductionBatch.status == status)
        query = query.order_by(ProductionBatch.id.desc())
        if pagination is not None:
            query = query.offset(pagination.offset()).limit(pagination.per_page)
        return [_batch_to_dict(batch) for batch in query.all()]


def get_recipe(recipe_id: int, *, session=None) -> Dict[str, Any]:
    """
    Get a committed recipe with its line items.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        recipe = (
            session.query(Recipe)
            .options(joinedload(Recipe.line_items))
            .filter(Recipe.id == recipe_id)
            .first()
        )
        if recipe is None:
            raise RecipeNotFound(recipe_id)

        result = recipe.to_dict()
        result["line_items"] = [item.to_dict() for item in recipe.line_items]
        return result


def get_batch_summary(*, session=None) -> Dict[str, Any]:
    """
    Summarize production batch stock.

    Returns:
        Dict with:
            - batch_count (int)
            - total_produced (Decimal)
            - total_remaining (Decimal)
            - remaining_value (Decimal): remaining units at selling price
            - remaining_cost (Decimal): remaining units at cost per unit
            - projected_profit (Decimal): remaining_value - remaining_cost
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        batches = session.query(ProductionBatch).all()

        total_produced = Decimal("0")
        total_remaining = Decimal("0")
        remaining_value = Decimal("0")
        remaining_cost = Decimal("0")
        for batch in batches:
            remaining = to_decimal(batch.qty_remaining or 0)
            total_produced += to_decimal(batch.qty_produced or 0)
            total_remaining += remaining
            remaining_value += remaining * to_decimal(batch.selling_price or 0)
            remaining_cost += remaining * to_decimal(batch.cost_per_unit or 0)

        return {
            "batch_count": len(batches),
            "total_produced": total_produced,
            "total_remaining": total_remaining,
            "remaining_value": remaining_value,
            "remaining_cost": remaining_cost,
            "projected_profit": remaining_value - remaining_cost,
        }



def _batch_to_dict(batch: ProductionBatch) -> Dict[str, Any]:
    return {
        "batch_number": batch.batch_number,
        "dish_id": batch.dish_id,
        "dish_name": batch.dish_name,
        "recipe_id": batch.recipe_id,
        "qty_produced": to_decimal(batch.qty_produced),
        "qty_remaining": to_decimal(batch.qty_remaining),
        "qty_sold": to_decimal(batch.qty_sold),
        "cost_per_unit": to_decimal(batch.cost_per_unit),
        "total_production_cost": to_decimal(batch.total_production_cost),
        "selling_price": to_decimal(batch.selling_price),
        "production_date": batch.production_date,
        "expiry_date": batch.expiry_date,
        "status": batch.status,
        "created_at": batch.created_at,
    }


# =============================================================================
# Gateway
# =============================================================================


class ProductionGateway:
    """
    Persistence gateway handed to recipe sessions.

    Wraps commit_production() so a session can be given a fake gateway in
    tests, or a gateway bound to a caller-owned database session.

    Args:
        session: Optional database session to commit into. When omitted each
            commit opens its own session_scope().
    """

    def __init__(self, session=None):
        self.session = session

    def commit(self, draft: ProductionDraft) -> Dict[str, Any]:
        """Commit a finalized draft. See commit_production()."""
        return commit_production(draft, session=self.session)
