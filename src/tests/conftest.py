"""Pytest configuration and fixtures for service layer tests."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from src.models.base import Base
from src.services.database import create_database_engine
from src.utils.config import reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Give every test a fresh, permissive configuration."""
    monkeypatch.delenv("RECIPE_COSTING_STRICT_UNITS", raising=False)
    monkeypatch.delenv("RECIPE_COSTING_DATABASE_URL", raising=False)
    monkeypatch.delenv("RECIPE_COSTING_ENV", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    import src.models  # noqa: F401

    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session


@pytest.fixture(scope="function")
def file_db(tmp_path):
    """Provide a file-backed SQLite database shared across threads.

    Each session_scope() gets its own session and connection, so concurrent
    commits compete for the database lock the way separate operators would.
    """
    import src.models  # noqa: F401

    engine = create_database_engine(f"sqlite:///{tmp_path / 'recipe_costing_test.db'}")
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: session_factory

    yield engine

    db_module.get_session_factory = original_get_session
    engine.dispose()


class FixedClock:
    """Callable clock returning a fixed time, advanced explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fixed_clock():
    return FixedClock(datetime(2025, 12, 28, 20, 57, 40))


def _create_chips_catalog():
    from src.services import catalog_service

    potato = catalog_service.create_ingredient(
        {
            "code": "ING-POT",
            "name": "Potato",
            "base_unit": "KG",
            "cost_per_base_unit": Decimal("80"),
            "current_stock": Decimal("50"),
            "reorder_point": Decimal("10"),
        }
    )
    oil = catalog_service.create_ingredient(
        {
            "code": "ING-OIL",
            "name": "Oil",
            "base_unit": "L",
            "cost_per_base_unit": Decimal("300"),
            "current_stock": Decimal("10"),
            "reorder_point": Decimal("2"),
        }
    )
    chips = catalog_service.create_dish(
        {
            "code": "DSH-CHIPS",
            "name": "Chips",
            "barcode": "6001234567890",
            "sales_cost": Decimal("15"),
        }
    )
    return {"potato_id": potato.id, "oil_id": oil.id, "dish_id": chips.id}


@pytest.fixture
def chips_catalog(test_db):
    """Chips dish with Potato (KG, 80, 50 in stock) and Oil (L, 300, 10 in stock).

    Returns a dict of IDs: potato_id, oil_id, dish_id.
    """
    return _create_chips_catalog()


@pytest.fixture
def chips_catalog_file(file_db):
    """The Chips catalog in the file-backed database."""
    return _create_chips_catalog()
