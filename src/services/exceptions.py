"""Service layer exception classes for Recipe Costing.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── MissingProducedQuantity
    │   └── UnitConversionError
    │       ├── UnknownUnitError
    │       └── IncompatibleUnitsError
    ├── SessionStateError
    ├── IngredientNotFound
    ├── DishNotFound
    ├── RecipeNotFound
    ├── ProductionBatchNotFound
    ├── InsufficientStock
    └── PersistenceFailure
"""

from decimal import Decimal
from typing import Optional, Union


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ValidationError(ServiceError):
    """Raised when input validation fails.

    Validation errors are local and recoverable: the operation that raised
    them made no changes.

    Args:
        errors: List of human-readable error messages

    Example:
        >>> raise ValidationError(["Quantity issued: Must be greater than zero"])
        ValidationError: Validation failed: Quantity issued: Must be greater than zero
    """

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class MissingProducedQuantity(ValidationError):
    """Raised when the last ingredient of a recipe is added without a produced quantity."""

    def __init__(self, ingredient_count: int):
        self.ingredient_count = ingredient_count
        super().__init__(
            [
                f"Ingredient {ingredient_count} of {ingredient_count} is the last one: "
                f"quantity produced must be greater than zero"
            ]
        )


class UnitConversionError(ValidationError):
    """Base class for unit conversions that cannot be performed faithfully.

    Only raised in strict unit mode; in permissive mode the same condition is
    reported through the conversion decision record instead.
    """

    def __init__(self, message: str, issued_unit: str, base_unit: str):
        self.issued_unit = issued_unit
        self.base_unit = base_unit
        super().__init__([message])


class UnknownUnitError(UnitConversionError):
    """Raised when the issued unit is not in the conversion table.

    Example:
        >>> raise UnknownUnitError("CUP", "KG")
        UnknownUnitError: Validation failed: Unknown unit 'CUP' cannot be converted to KG
    """

    def __init__(self, issued_unit: str, base_unit: str):
        super().__init__(
            f"Unknown unit '{issued_unit}' cannot be converted to {base_unit}",
            issued_unit,
            base_unit,
        )


class IncompatibleUnitsError(UnitConversionError):
    """Raised when the issued and base units belong to different families.

    Example:
        >>> raise IncompatibleUnitsError("KG", "L")
        IncompatibleUnitsError: Validation failed: Cannot convert KG to L: incompatible unit types
    """

    def __init__(self, issued_unit: str, base_unit: str):
        super().__init__(
            f"Cannot convert {issued_unit} to {base_unit}: incompatible unit types",
            issued_unit,
            base_unit,
        )


class SessionStateError(ServiceError):
    """Raised when a recipe session operation is not allowed in its current state.

    Args:
        operation: Name of the rejected operation
        state: Current session state value
    """

    def __init__(self, operation: str, state: str, detail: Optional[str] = None):
        self.operation = operation
        self.state = state
        message = f"Cannot {operation} while recipe session is {state}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class IngredientNotFound(ServiceError):
    """Raised when an ingredient cannot be found by ID."""

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient with ID {ingredient_id} not found")


class DishNotFound(ServiceError):
    """Raised when a dish cannot be found by ID."""

    def __init__(self, dish_id: int):
        self.dish_id = dish_id
        super().__init__(f"Dish with ID {dish_id} not found")


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID."""

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class ProductionBatchNotFound(ServiceError):
    """Raised when a production batch cannot be found by batch number."""

    def __init__(self, batch_number: str):
        self.batch_number = batch_number
        super().__init__(f"Production batch '{batch_number}' not found")


class InsufficientStock(ServiceError):
    """Raised when live ingredient stock cannot cover an issuance at commit time.

    Example:
        >>> raise InsufficientStock("Potato", Decimal("60"), Decimal("50"), "KG")
        InsufficientStock: Insufficient stock for Potato: required 60 KG, available 50 KG
    """

    def __init__(
        self,
        ingredient_name: str,
        required: Union[Decimal, float],
        available: Union[Decimal, float],
        unit: str = "",
    ):
        self.ingredient_name = ingredient_name
        self.required = required
        self.available = available
        self.unit = unit
        suffix = f" {unit}" if unit else ""
        super().__init__(
            f"Insufficient stock for {ingredient_name}: "
            f"required {required}{suffix}, available {available}{suffix}"
        )


class PersistenceFailure(ServiceError):
    """Raised when a database commit fails; all changes of the unit of work are rolled back."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
