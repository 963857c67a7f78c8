"""Unit tests for exception hierarchy.

Validates that all exceptions inherit from ServiceError and carry the
attributes callers use to report them.
"""

import inspect
from decimal import Decimal

import pytest

from src.services import exceptions as exc_module
from src.services.exceptions import (
    IncompatibleUnitsError,
    InsufficientStock,
    MissingProducedQuantity,
    PersistenceFailure,
    ServiceError,
    SessionStateError,
    UnitConversionError,
    UnknownUnitError,
    ValidationError,
)


def get_all_exception_classes():
    """Discover all exception classes in the exceptions module."""
    return [
        (name, obj)
        for name, obj in inspect.getmembers(exc_module, inspect.isclass)
        if issubclass(obj, Exception) and obj.__module__ == exc_module.__name__
    ]


@pytest.mark.parametrize("name,exc_class", get_all_exception_classes())
def test_exception_inherits_from_service_error(name, exc_class):
    assert issubclass(exc_class, ServiceError), f"{name} must inherit from ServiceError"


def test_all_exceptions_exported_from_services_package():
    import src.services as services

    for name, _ in get_all_exception_classes():
        assert hasattr(services, name), f"{name} missing from src.services"


def test_validation_error_joins_messages():
    error = ValidationError(["Code: This field is required", "Name: This field is required"])
    assert error.errors == ["Code: This field is required", "Name: This field is required"]
    assert str(error) == (
        "Validation failed: Code: This field is required; Name: This field is required"
    )


def test_missing_produced_quantity_is_validation_error():
    error = MissingProducedQuantity(3)
    assert isinstance(error, ValidationError)
    assert error.ingredient_count == 3
    assert "Ingredient 3 of 3" in str(error)


def test_unit_errors_carry_units():
    unknown = UnknownUnitError("cup", "KG")
    incompatible = IncompatibleUnitsError("KG", "L")

    assert isinstance(unknown, UnitConversionError)
    assert isinstance(incompatible, ValidationError)
    assert (unknown.issued_unit, unknown.base_unit) == ("cup", "KG")
    assert "incompatible unit types" in str(incompatible)


def test_session_state_error_message():
    error = SessionStateError("add ingredient", "finalized", "all 2 ingredients already added")
    assert error.operation == "add ingredient"
    assert error.state == "finalized"
    assert str(error) == (
        "Cannot add ingredient while recipe session is finalized: all 2 ingredients already added"
    )


def test_insufficient_stock_message():
    error = InsufficientStock("Potato", Decimal("60"), Decimal("50"), "KG")
    assert error.required == Decimal("60")
    assert error.available == Decimal("50")
    assert str(error) == "Insufficient stock for Potato: required 60 KG, available 50 KG"


def test_persistence_failure_keeps_original_error():
    original = RuntimeError("disk full")
    error = PersistenceFailure("commit failed", original)
    assert error.original_error is original
    assert str(error) == "Database error: commit failed"
