"""Services package - Business logic layer for Recipe Costing.

Architecture:
- Services: Stateless functions organized by domain (catalog, production)
- Transactions: Managed via session_scope() context manager; functions accept
  an optional ``session`` to join a caller's transaction
- Exceptions: Consistent error handling via the ServiceError hierarchy
- Recipe sessions: In-memory state machines that price ingredient issuances
  and hand a finished draft to the production gateway

Service Modules:
- unit_converter: Unit normalization, conversion table and base-unit conversion
- cost_calculator: Issue pricing and advisory stock previews
- batch_number: Batch number generation
- catalog_service: Ingredient and dish registry, purchase receipts, low stock
- production_service: Atomic recipe/batch persistence and batch queries
- recipe_session: Recipe session state machine

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured operation logging
"""

from .exceptions import (
    ServiceError,
    ValidationError,
    MissingProducedQuantity,
    UnitConversionError,
    UnknownUnitError,
    IncompatibleUnitsError,
    SessionStateError,
    IngredientNotFound,
    DishNotFound,
    RecipeNotFound,
    ProductionBatchNotFound,
    InsufficientStock,
    PersistenceFailure,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "MissingProducedQuantity",
    "UnitConversionError",
    "UnknownUnitError",
    "IncompatibleUnitsError",
    "SessionStateError",
    "IngredientNotFound",
    "DishNotFound",
    "RecipeNotFound",
    "ProductionBatchNotFound",
    "InsufficientStock",
    "PersistenceFailure",
]
