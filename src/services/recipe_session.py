"""
Recipe Session - accumulates the ingredients issued for one production batch.

A session is owned by a single operator and lives in memory until it is
finalized. Its lifecycle:

    EMPTY                 no line items; dish and ingredient count may be set
    ACCUMULATING          1..N-2 line items
    AWAITING_PRODUCTION   N-1 line items; the next item must carry the
                          quantity produced
    FINALIZABLE           N line items, the last with a produced quantity
    FINALIZED             committed; no further operations
    ABANDONED             discarded by the operator; no further operations

Prices shown while accumulating are previews against live ingredient data.
Stock is only enforced when the session is finalized, where the production
gateway deducts it atomically.

Usage:
    session = RecipeSession()
    session.select_dish(chips_id)
    session.set_ingredient_count(2)
    session.add_line_item(potato_id, "2", "KG")
    session.add_line_item(oil_id, "500", "ML", produced_quantity="40")
    batch = session.finalize()
"""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from src.models.enums import SessionState
from src.services.catalog_service import DishSnapshot, IngredientRepository
from src.services.cost_calculator import CostCalculator
from src.services.batch_number import generate_batch_number
from src.services.dto import ProductionDraft, RecipeLineItem
from src.services.exceptions import (
    MissingProducedQuantity,
    ServiceError,
    SessionStateError,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.production_service import ProductionGateway
from src.utils.constants import DEFAULT_CREATED_BY
from src.utils.datetime_utils import local_now
from src.utils.validators import to_decimal, validate_positive_number

logger = get_service_logger(__name__)


class RecipeSession:
    """
    In-memory recipe being costed for one dish.

    Every operation either succeeds completely or raises without changing
    the session.

    Args:
        repository: Source of live dish and ingredient data
        calculator: CostCalculator used to price line items. Defaults to one
            built on the same repository.
        gateway: Object with commit(draft) -> dict used by finalize()
        clock: Callable returning the current wall-clock datetime
        recipe_date: Production date; defaults to the clock's date when the
            first ingredient is added
        created_by: Operator name recorded on the recipe and batch
    """

    def __init__(
        self,
        repository: Optional[IngredientRepository] = None,
        calculator: Optional[CostCalculator] = None,
        gateway: Optional[Any] = None,
        clock: Callable[[], datetime] = local_now,
        recipe_date: Optional[date] = None,
        created_by: str = DEFAULT_CREATED_BY,
    ):
        self.repository = repository if repository is not None else IngredientRepository()
        self.calculator = calculator if calculator is not None else CostCalculator(self.repository)
        self.gateway = gateway if gateway is not None else ProductionGateway()
        self.clock = clock
        self.created_by = created_by

        self._requested_date = recipe_date
        self._recipe_date: Optional[date] = None
        self._dish: Optional[DishSnapshot] = None
        self._ingredient_count: Optional[int] = None
        self._items: List[RecipeLineItem] = []
        self._batch_number: Optional[str] = None
        self._terminal_state: Optional[SessionState] = None
        self._result: Optional[Dict[str, Any]] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> SessionState:
        if self._terminal_state is not None:
            return self._terminal_state
        count = len(self._items)
        if count == 0:
            return SessionState.EMPTY
        if count == self._ingredient_count:
            return SessionState.FINALIZABLE
        if count == self._ingredient_count - 1:
            return SessionState.AWAITING_PRODUCTION
        return SessionState.ACCUMULATING

    @property
    def dish(self) -> Optional[DishSnapshot]:
        return self._dish

    @property
    def ingredient_count(self) -> Optional[int]:
        return self._ingredient_count

    @property
    def line_items(self) -> Tuple[RecipeLineItem, ...]:
        return tuple(self._items)

    @property
    def batch_number(self) -> Optional[str]:
        return self._batch_number

    @property
    def recipe_date(self) -> Optional[date]:
        return self._recipe_date or self._requested_date

    @property
    def total_cost(self) -> Decimal:
        return sum((item.cost for item in self._items), Decimal("0"))

    @property
    def produced_quantity(self) -> Optional[Decimal]:
        if self.state != SessionState.FINALIZABLE:
            return None
        return self._items[-1].produced_quantity

    @property
    def cost_per_unit(self) -> Optional[Decimal]:
        produced = self.produced_quantity
        if produced is None:
            return None
        return self.total_cost / produced

    @property
    def conversion_warnings(self) -> List[RecipeLineItem]:
        """Line items whose base quantity was passed through unconverted."""
        return [item for item in self._items if item.has_conversion_warning]

    @property
    def result(self) -> Optional[Dict[str, Any]]:
        """Committed batch record once finalized."""
        return self._result

    def _require_state(self, operation: str, *allowed: SessionState) -> None:
        if self.state not in allowed:
            raise SessionStateError(operation, self.state.value)

    def _require_not_terminal(self, operation: str) -> None:
        if self.state.is_terminal:
            raise SessionStateError(operation, self.state.value)

    # =========================================================================
    # Setup
    # =========================================================================

    def select_dish(self, dish_id: int) -> DishSnapshot:
        """
        Choose the dish being produced.

        Only allowed before any ingredient is added. Any batch number left
        from an earlier dish is cleared.

        Raises:
            SessionStateError: If line items already exist
            DishNotFound: If no active dish has this ID
        """
        self._require_state("select dish", SessionState.EMPTY)
        dish = self.repository.get_dish(dish_id)

        self._dish = dish
        self._batch_number = None
        log_operation(
            logger,
            operation="select_dish",
            outcome="success",
            level=logging.DEBUG,
            dish_id=dish.id,
            dish_name=dish.name,
        )
        return dish

    def set_ingredient_count(self, count: int) -> None:
        """
        Fix the number of ingredients (N) the recipe will use.

        Raises:
            SessionStateError: If line items already exist
            ValidationError: If count is not an integer >= 1
        """
        self._require_state("set ingredient count", SessionState.EMPTY)
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValidationError(["Number of ingredients: Must be a whole number of at least 1"])
        self._ingredient_count = count

    # =========================================================================
    # Line Items
    # =========================================================================

    def add_line_item(
        self,
        ingredient_id: int,
        quantity: Any,
        issued_unit: Optional[str] = None,
        produced_quantity: Any = None,
    ) -> RecipeLineItem:
        """
        Price and append one ingredient issuance.

        The Nth (last) item must carry the quantity of dishes produced; no
        other item may. The first item assigns the session's batch number.

        Args:
            ingredient_id: Ingredient being issued
            quantity: Quantity issued (> 0)
            issued_unit: Unit issued in; blank means the ingredient's base unit
            produced_quantity: Dish units produced, on the last item only

        Returns:
            The new RecipeLineItem

        Raises:
            SessionStateError: If the session is terminal or already full
            ValidationError: No dish, no ingredient count, bad quantity, or a
                produced quantity on an item other than the last
            MissingProducedQuantity: Last item without a produced quantity > 0
            IngredientNotFound: If no active ingredient has this ID
            UnknownUnitError / IncompatibleUnitsError: strict unit mode only
        """
        self._require_not_terminal("add ingredient")
        if self._dish is None:
            raise ValidationError(["Dish: No dish selected"])
        if self._ingredient_count is None:
            raise ValidationError(["Number of ingredients: Not set"])
        if len(self._items) >= self._ingredient_count:
            raise SessionStateError(
                "add ingredient",
                self.state.value,
                f"all {self._ingredient_count} ingredients already added",
            )

        is_valid, error = validate_positive_number(quantity, "Quantity issued")
        if not is_valid:
            raise ValidationError([error])

        position = len(self._items) + 1
        is_last = position == self._ingredient_count
        produced = None
        if is_last:
            if produced_quantity is None:
                raise MissingProducedQuantity(self._ingredient_count)
            is_valid, _ = validate_positive_number(produced_quantity, "Quantity produced")
            if not is_valid:
                raise MissingProducedQuantity(self._ingredient_count)
            produced = to_decimal(produced_quantity)
        elif produced_quantity is not None:
            raise ValidationError(
                [
                    f"Quantity produced: Only allowed on ingredient {self._ingredient_count} "
                    f"of {self._ingredient_count}"
                ]
            )

        priced = self.calculator.price_issue(ingredient_id, quantity, issued_unit)
        ingredient = priced.ingredient

        cost_per_dish = Decimal("0")
        if produced is not None:
            cost_per_dish = (self.total_cost + priced.cost) / produced

        item = RecipeLineItem(
            position=position,
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            base_unit=ingredient.base_unit,
            issued_quantity=priced.issued_quantity,
            issued_unit=issued_unit.strip() if issued_unit and issued_unit.strip() else ingredient.base_unit,
            base_quantity=priced.base_quantity,
            rate=ingredient.cost_per_base_unit,
            cost=priced.cost,
            stock_before=ingredient.current_stock,
            remaining_stock=priced.remaining_stock,
            decision=priced.conversion.decision,
            produced_quantity=produced,
            cost_per_dish=cost_per_dish,
        )

        if self._batch_number is None:
            started_at = self.clock()
            self._batch_number = generate_batch_number(self._dish.id, started_at)
            self._recipe_date = self._requested_date or started_at.date()
        self._items.append(item)

        log_operation(
            logger,
            operation="add_line_item",
            outcome="success",
            level=logging.DEBUG,
            batch_number=self._batch_number,
            position=position,
            ingredient_id=ingredient.id,
            base_quantity=str(item.base_quantity),
            cost=str(item.cost),
            conversion_status=item.decision.status.value,
        )
        return item

    def remove_line_item(self, index: int) -> RecipeLineItem:
        """
        Remove a line item by its 0-based index.

        The batch number is kept. Production figures on the remaining items
        are cleared, so the new last item has to be entered again with its
        produced quantity.

        The state follows the new item count. With N-1 items left the next
        entry is the last one, so the session is AWAITING_PRODUCTION.

        Raises:
            SessionStateError: If the session is finalized or abandoned
            ValidationError: If the index is out of range
        """
        self._require_not_terminal("remove ingredient")
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._items):
            raise ValidationError([f"Line item: No line item at index {index}"])

        removed = self._items[index]
        remaining = self._items[:index] + self._items[index + 1:]
        self._items = [
            replace(item, position=position, produced_quantity=None, cost_per_dish=Decimal("0"))
            for position, item in enumerate(remaining, start=1)
        ]
        log_operation(
            logger,
            operation="remove_line_item",
            outcome="success",
            level=logging.DEBUG,
            batch_number=self._batch_number,
            ingredient_id=removed.ingredient_id,
            remaining_items=len(self._items),
        )
        return removed

    # =========================================================================
    # Completion
    # =========================================================================

    def build_draft(self) -> ProductionDraft:
        """
        Snapshot the session for the production gateway.

        Raises:
            SessionStateError: If the session is not finalizable
        """
        self._require_state("finalize", SessionState.FINALIZABLE)
        produced = self._items[-1].produced_quantity
        total = self.total_cost
        return ProductionDraft(
            dish=self._dish,
            batch_number=self._batch_number,
            recipe_date=self.recipe_date,
            line_items=tuple(self._items),
            produced_quantity=produced,
            total_cost=total,
            cost_per_unit=total / produced,
            created_by=self.created_by,
        )

    def finalize(self) -> Dict[str, Any]:
        """
        Commit the recipe and its production batch.

        On success the session becomes FINALIZED. If the gateway fails (for
        example InsufficientStock or PersistenceFailure) the session stays
        FINALIZABLE with its line items intact, so the operator can retry.

        Returns:
            Committed batch dictionary from the gateway

        Raises:
            SessionStateError: If the session is not finalizable
            InsufficientStock: If live stock no longer covers the issue
            PersistenceFailure: If the database rejects the commit
        """
        draft = self.build_draft()
        try:
            result = self.gateway.commit(draft)
        except ServiceError as e:
            log_operation(
                logger,
                operation="finalize",
                outcome="failed",
                level=logging.WARNING,
                batch_number=draft.batch_number,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        self._terminal_state = SessionState.FINALIZED
        self._result = result
        log_operation(
            logger,
            operation="finalize",
            outcome="success",
            batch_number=result.get("batch_number", draft.batch_number),
            dish_id=draft.dish.id,
            total_cost=str(draft.total_cost),
            cost_per_unit=str(draft.cost_per_unit),
        )
        return result

    def reset(self) -> None:
        """
        Discard all in-progress work and return to EMPTY.

        Persisted data is not touched.

        Raises:
            SessionStateError: If the session is finalized or abandoned
        """
        self._require_not_terminal("reset")
        self._dish = None
        self._ingredient_count = None
        self._items = []
        self._batch_number = None
        self._recipe_date = None

    def abandon(self) -> None:
        """
        Discard the session permanently.

        Raises:
            SessionStateError: If the session is already finalized or abandoned
        """
        self._require_not_terminal("abandon")
        discarded = len(self._items)
        self._items = []
        self._terminal_state = SessionState.ABANDONED
        log_operation(
            logger,
            operation="abandon",
            outcome="success",
            level=logging.DEBUG,
            batch_number=self._batch_number,
            discarded_items=discarded,
        )
